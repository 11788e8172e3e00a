"""Session helpers — pure functions over unix timestamps and a fixed UTC offset."""

_DAY = 24 * 60 * 60


def session_start_timestamp(now: int, utc_offset_minutes: int = 330) -> int:
    """Return the unix timestamp of local midnight for the day containing *now*.

    Candles with ``time >= session_start`` belong to today's session.

    Args:
        now: Current time in unix seconds.
        utc_offset_minutes: Exchange offset from UTC (IST is +330).
    """
    offset = utc_offset_minutes * 60
    local = now + offset
    return local - local % _DAY - offset
