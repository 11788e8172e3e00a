"""Tests for the station agent: zone state machine and zone checks."""

import pytest

from tradegate.agents.base import Finding, Pass
from tradegate.agents.context import OrderInfo, StationData, TradeContext
from tradegate.agents.station import (
    APPROACHING,
    AT_ZONE,
    BREAK_RETEST,
    INSIDE_ZONE,
    REJECTION,
    StationContext,
    check_daily_approach_angle,
    check_daily_zone_confluence,
    check_volume_expansion,
    check_zone_alignment,
    check_zone_presence,
    check_zone_scenario,
    check_zone_strength,
    determine_zone_state,
    find_break_volume_ratio,
    run_station_agent,
)
from tradegate.strategy.models import CandleData, Station, StationAnalysis


def _make_candle(o: float, h: float, l: float, c: float, vol: float = 1000, t: int = 0) -> CandleData:
    return CandleData(time=t, open=o, high=h, low=l, close=c, volume=vol)


def _zone(
    zone_type: str = "RESISTANCE",
    quality: int = 8,
    tests: int = 2,
    distance: float = 0.1,
    timeframes: tuple[str, ...] = ("15m", "Daily"),
) -> Station:
    return Station(
        price=100.0, zone_type=zone_type, quality=quality,
        factors=tuple(f"{tf} {zone_type.capitalize()}" for tf in timeframes),
        timeframes=timeframes, tests=tests, distance=distance,
    )


def _sc(
    zone: Station | None,
    state: str = AT_ZONE,
    side: str = "BUY",
    c15: list[CandleData] | None = None,
    daily: list[CandleData] | None = None,
) -> StationContext:
    analysis = StationAnalysis(available=zone is not None, nearest_station=zone)
    return StationContext(
        trade=TradeContext(order=OrderInfo("INFY", side, spot_price=100.1)),
        analysis=analysis,
        zone_state=state,
        candles_15m=tuple(c15 or ()),
        candles_daily=tuple(daily or ()),
    )


_BREAK = _make_candle(100.6, 101.5, 100.6, 101.2)
_ABOVE = _make_candle(100.4, 100.5, 100.2, 100.3)
_STRADDLE = _make_candle(100.0, 100.3, 99.7, 100.1)
_RETEST = _make_candle(100.2, 100.4, 100.1, 100.3)


# ── Zone state ───────────────────────────────────────────────────────────


class TestDetermineZoneState:
    def test_inside_zone_takes_precedence_over_break_retest(self):
        candles = [_BREAK] + [_ABOVE] * 4 + [_STRADDLE] * 5
        assert determine_zone_state(_zone(), candles, 100.1) == INSIDE_ZONE

    def test_break_retest(self):
        candles = [_BREAK] + [_ABOVE] * 4 + [_RETEST] * 5
        assert determine_zone_state(_zone(), candles, 100.3) == BREAK_RETEST

    def test_break_too_recent(self):
        # The break is one of the last three candles: no pullback yet
        candles = [_ABOVE] * 5 + [_BREAK, _RETEST, _RETEST]
        assert determine_zone_state(_zone(), candles, 100.3) == AT_ZONE

    def test_rejection(self):
        candles = [_make_candle(100.0, 101.0, 99.95, 100.1)]
        assert determine_zone_state(_zone(), candles, 100.1) == REJECTION

    def test_at_zone(self):
        candles = [_make_candle(100.0, 100.2, 99.95, 100.15)]
        assert determine_zone_state(_zone(), candles, 100.15) == AT_ZONE

    def test_support_rejection_uses_lower_wick(self):
        candles = [_make_candle(100.2, 100.25, 99.6, 100.1)]
        assert determine_zone_state(_zone("SUPPORT"), candles, 100.1) == REJECTION

    def test_approaching(self):
        assert determine_zone_state(_zone(), [_ABOVE], 103.0) == APPROACHING

    def test_no_zone(self):
        assert determine_zone_state(None, [_ABOVE], 100.0) == APPROACHING


class TestBreakVolumeRatio:
    def test_ratio_of_break_candle(self):
        candles = [_ABOVE] * 19 + [_make_candle(100.6, 101.5, 100.6, 101.2, vol=3000)]
        assert find_break_volume_ratio(_zone(), candles) == pytest.approx(3000 / 1100)

    def test_short_history(self):
        assert find_break_volume_ratio(_zone(), [_BREAK] * 5) is None

    def test_zero_average_volume(self):
        candles = [_make_candle(100.6, 101.5, 100.6, 101.2, vol=0)] * 20
        assert find_break_volume_ratio(_zone(), candles) is None


# ── Checks ───────────────────────────────────────────────────────────────


class TestZonePresence:
    def test_open_space(self):
        assert check_zone_presence(_sc(None)).title == "No major zone within 2%, open space entry"

    def test_distant_zone(self):
        assert "approaching" in check_zone_presence(_sc(_zone(distance=3.0))).title

    def test_multi_factor_zone(self):
        title = check_zone_presence(_sc(_zone())).title
        assert title == "Resistance 100, 15m Resistance, Daily Resistance (2 signals)"


class TestZoneAlignment:
    def test_buying_into_resistance(self):
        finding = check_zone_alignment(_sc(_zone()))
        assert isinstance(finding, Finding)
        assert finding.risk_score == 15

    def test_selling_into_support(self):
        assert isinstance(check_zone_alignment(_sc(_zone("SUPPORT"), side="SELL")), Finding)

    def test_break_retest_flips_role(self):
        result = check_zone_alignment(_sc(_zone(), state=BREAK_RETEST))
        assert isinstance(result, Pass)
        assert "flipped to support" in result.title

    def test_aligned(self):
        assert isinstance(check_zone_alignment(_sc(_zone("SUPPORT"))), Pass)

    def test_pivot(self):
        assert "Pivot" in check_zone_alignment(_sc(_zone("PIVOT"))).title

    def test_far_zone_skipped(self):
        assert check_zone_alignment(_sc(_zone(distance=2.5))) is None


class TestZoneScenario:
    def test_inside_zone_is_no_trade(self):
        finding = check_zone_scenario(_sc(_zone(), state=INSIDE_ZONE))
        assert finding.id == "INSIDE_ZONE"
        assert finding.risk_score == 12

    def test_break_retest(self):
        assert "Break+Retest" in check_zone_scenario(_sc(_zone(), state=BREAK_RETEST)).title

    def test_rejection(self):
        assert "Rejection" in check_zone_scenario(_sc(_zone(), state=REJECTION)).title


class TestVolumeExpansion:
    def test_low_break_volume(self):
        candles = [_ABOVE] * 19 + [_BREAK]
        finding = check_volume_expansion(_sc(_zone(), state=BREAK_RETEST, c15=candles))
        assert finding.id == "LOW_BREAK_VOLUME"

    def test_expanded_break_volume(self):
        candles = [_ABOVE] * 19 + [_make_candle(100.6, 101.5, 100.6, 101.2, vol=3000)]
        result = check_volume_expansion(_sc(_zone(), state=BREAK_RETEST, c15=candles))
        assert isinstance(result, Pass)

    def test_only_for_break_retest(self):
        assert check_volume_expansion(_sc(_zone(), state=AT_ZONE)) is None


class TestZoneStrength:
    def test_weak_zone(self):
        assert check_zone_strength(_sc(_zone(quality=3))).id == "WEAK_ZONE"

    def test_overtested_zone(self):
        assert check_zone_strength(_sc(_zone(quality=8, tests=4))).id == "ZONE_WEAKENED"

    def test_strong_zone(self):
        assert "Strong" in check_zone_strength(_sc(_zone(quality=8, tests=2))).title


class TestDailyChecks:
    def test_intraday_only_zone(self):
        finding = check_daily_zone_confluence(_sc(_zone(timeframes=("15m",))))
        assert finding.id == "NO_DAILY_CONFLUENCE"
        assert finding.risk_score == 10

    def test_daily_zone(self):
        assert isinstance(check_daily_zone_confluence(_sc(_zone())), Pass)

    def test_extended_beyond_support(self):
        daily = [_make_candle(100, 100, 97, 98), _make_candle(98, 99, 97, 98.5), _make_candle(98, 98, 96, 97)]
        finding = check_daily_approach_angle(_sc(_zone("SUPPORT"), daily=daily))
        assert finding.id == "ZONE_EXTENDED"

    def test_intact_approach(self):
        daily = [_make_candle(101, 102, 100, 101)] * 3
        assert isinstance(check_daily_approach_angle(_sc(_zone("SUPPORT"), daily=daily)), Pass)


# ── Agent ────────────────────────────────────────────────────────────────


def _support_fixture() -> list[CandleData]:
    candles = [_make_candle(105, 106, 104, 105, t=i * 900) for i in range(220)]
    for i in (40, 100):
        candles[i] = _make_candle(105.0, 105.5, 100.0, 104.0, t=i * 900)
    candles[219] = _make_candle(104.0, 104.5, 100.1, 100.2, t=219 * 900)
    return candles


class TestRunStationAgent:
    def test_unavailable(self):
        assert run_station_agent(TradeContext(order=OrderInfo("INFY", "BUY"))).unavailable is True

    def test_no_candles_is_open_space(self):
        ctx = TradeContext(order=OrderInfo("INFY", "BUY", spot_price=100.0), station=StationData())
        result = run_station_agent(ctx)
        assert result.verdict == "clear"
        assert result.checks[0].title == "No major zone within 2%, open space entry"

    def test_buy_at_strong_support(self):
        candles = tuple(_support_fixture())
        order = OrderInfo("INFY", "BUY", spot_price=100.2, product_type="CNC")
        result = run_station_agent(
            TradeContext(order=order, station=StationData(candles_15m=candles, candles_daily=candles))
        )
        assert len(result.checks) == 7
        assert result.verdict == "clear"
        assert result.checks[1].title == "Buying at support 100, zone is demand"

    def test_sell_into_support(self):
        candles = tuple(_support_fixture())
        order = OrderInfo("INFY", "SELL", spot_price=100.2)
        result = run_station_agent(
            TradeContext(order=order, station=StationData(candles_15m=candles, candles_daily=candles))
        )
        assert [c.id for c in result.triggered] == ["ZONE_ALIGNMENT_CONFLICT"]
        assert result.risk_score == 15
