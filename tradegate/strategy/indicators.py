"""Technical indicators — EMA, RSI, ATR, ADX, VWAP. Pure functions, no I/O.

Every function returns ``None`` when the history is too short for the
requested period instead of raising.
"""

from typing import Optional

from tradegate.strategy.models import AdxResult, CandleData


def _true_range(candle: CandleData, prev_close: float) -> float:
    return max(
        candle.high - candle.low,
        abs(candle.high - prev_close),
        abs(candle.low - prev_close),
    )


def calculate_ema(candles: list[CandleData], period: int) -> Optional[float]:
    """Calculate the latest Exponential Moving Average value.

    Uses the standard EMA formula:
        ``EMA_today = close × k + EMA_yesterday × (1 - k)``
    where ``k = 2 / (period + 1)``.

    The first EMA value is seeded with the SMA of the first *period*
    closes.  Returns ``None`` if fewer than *period* candles are provided.
    """
    if period <= 0 or len(candles) < period:
        return None

    k = 2.0 / (period + 1)
    ema = sum(c.close for c in candles[:period]) / period
    for candle in candles[period:]:
        ema = candle.close * k + ema * (1 - k)
    return ema


# ── RSI ──────────────────────────────────────────────────────────────────


def calculate_rsi(candles: list[CandleData], period: int = 14) -> Optional[float]:
    """Calculate the Relative Strength Index over the last *period* deltas.

    Algorithm:
        1. Take the last ``period + 1`` closes.
        2. Sum positive deltas (gains) and absolute negative deltas (losses).
        3. RSI = 100 when there are no losses.
        4. Otherwise RSI = 100 - 100 / (1 + avg_gain / avg_loss).

    Returns ``None`` if fewer than ``period + 1`` candles are provided.
    """
    if period <= 0 or len(candles) < period + 1:
        return None

    recent = candles[-(period + 1):]
    gains = 0.0
    losses = 0.0
    for i in range(1, len(recent)):
        diff = recent[i].close - recent[i - 1].close
        if diff >= 0:
            gains += diff
        else:
            losses += -diff

    if losses == 0:
        return 100.0
    rs = (gains / period) / (losses / period)
    return 100.0 - 100.0 / (1.0 + rs)


# ── ATR ──────────────────────────────────────────────────────────────────


def calculate_atr(candles: list[CandleData], period: int = 14) -> Optional[float]:
    """Calculate Wilder's Average True Range.

    TR = max(high - low, |high - prev_close|, |low - prev_close|)

    Seeded with the mean of the first *period* true ranges, then
    ``atr = (atr × (period - 1) + tr) / period`` for each later bar.

    Requires ``period + 1`` candles (need a previous close for TR).
    """
    if period <= 0 or len(candles) < period + 1:
        return None

    true_ranges = [
        _true_range(candles[i], candles[i - 1].close)
        for i in range(1, len(candles))
    ]

    atr = sum(true_ranges[:period]) / period
    for tr in true_ranges[period:]:
        atr = (atr * (period - 1) + tr) / period
    return atr


# ── ADX ──────────────────────────────────────────────────────────────────


def calculate_adx(candles: list[CandleData], period: int = 14) -> Optional[AdxResult]:
    """Calculate the Average Directional Index (Wilder).

    Algorithm:
        1. +DM / -DM and TR per bar.
        2. Wilder-smooth +DM, -DM, and TR, seeded with the sum of the
           first *period* bars.
        3. +DI = 100 × smoothed_+DM / smoothed_TR
        4. -DI = 100 × smoothed_-DM / smoothed_TR
        5. DX = 100 × |+DI − −DI| / (+DI + −DI)
        6. ADX = Wilder-smoothed DX over *period*.

    +DI / -DI in the result come from the last smoothed values.

    Requires at least ``2 × period + 1`` candles.
    """
    if period <= 0 or len(candles) < 2 * period + 1:
        return None

    tr_raw: list[float] = []
    plus_dm_raw: list[float] = []
    minus_dm_raw: list[float] = []

    for i in range(1, len(candles)):
        cur = candles[i]
        prev = candles[i - 1]
        up_move = cur.high - prev.high
        down_move = prev.low - cur.low

        tr_raw.append(_true_range(cur, prev.close))
        plus_dm_raw.append(up_move if (up_move > down_move and up_move > 0) else 0.0)
        minus_dm_raw.append(down_move if (down_move > up_move and down_move > 0) else 0.0)

    smoothed_tr = sum(tr_raw[:period])
    smoothed_plus_dm = sum(plus_dm_raw[:period])
    smoothed_minus_dm = sum(minus_dm_raw[:period])

    dx_values: list[float] = []
    for i in range(period, len(tr_raw)):
        smoothed_tr = smoothed_tr - smoothed_tr / period + tr_raw[i]
        smoothed_plus_dm = smoothed_plus_dm - smoothed_plus_dm / period + plus_dm_raw[i]
        smoothed_minus_dm = smoothed_minus_dm - smoothed_minus_dm / period + minus_dm_raw[i]
        if smoothed_tr == 0:
            continue
        plus_di = 100.0 * smoothed_plus_dm / smoothed_tr
        minus_di = 100.0 * smoothed_minus_dm / smoothed_tr
        di_sum = plus_di + minus_di
        dx_values.append(0.0 if di_sum == 0 else 100.0 * abs(plus_di - minus_di) / di_sum)

    # Flat stretches (zero TR) are skipped above and can leave too few DX values
    if len(dx_values) < period:
        return None

    adx = sum(dx_values[:period]) / period
    for dx in dx_values[period:]:
        adx = (adx * (period - 1) + dx) / period

    plus_di = 100.0 * smoothed_plus_dm / smoothed_tr if smoothed_tr > 0 else 0.0
    minus_di = 100.0 * smoothed_minus_dm / smoothed_tr if smoothed_tr > 0 else 0.0
    return AdxResult(adx=adx, plus_di=plus_di, minus_di=minus_di)


# ── VWAP ─────────────────────────────────────────────────────────────────


def calculate_vwap(candles: list[CandleData], session_start: int) -> Optional[float]:
    """Volume-weighted average price of the current session.

    Only candles with ``time >= session_start`` take part.  Typical price
    is ``(high + low + close) / 3``.  Returns ``None`` when no candle
    qualifies or the session volume is zero.
    """
    session = [c for c in candles if c.time >= session_start]
    if not session:
        return None

    tpv_sum = 0.0
    vol_sum = 0.0
    for c in session:
        typical = (c.high + c.low + c.close) / 3
        tpv_sum += typical * c.volume
        vol_sum += c.volume
    return tpv_sum / vol_sum if vol_sum > 0 else None


def average_volume(candles: list[CandleData], lookback: int = 20) -> Optional[float]:
    """Mean volume of the last *lookback* candles, ``None`` if too few."""
    if lookback <= 0 or len(candles) < lookback:
        return None
    return sum(c.volume for c in candles[-lookback:]) / lookback
