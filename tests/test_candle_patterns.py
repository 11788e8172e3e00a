"""Tests for tradegate.strategy.candle_patterns."""

from tradegate.strategy.candle_patterns import (
    analyze_volume,
    detect_patterns,
    evaluate_patterns,
    is_doji,
)
from tradegate.strategy.models import CandleData, CandlePattern


def _make_candle(o: float, h: float, l: float, c: float, vol: float = 1000, t: int = 0) -> CandleData:
    return CandleData(time=t, open=o, high=h, low=l, close=c, volume=vol)


_QUIET = _make_candle(100, 101, 99, 100)


def _names(candles: list[CandleData]) -> list[str]:
    return [p.name for p in detect_patterns(candles)]


def _pattern(name: str, direction: str, strength: str) -> CandlePattern:
    return CandlePattern(name, 1, direction, f"{name} meaning", strength)


# ── Detection ────────────────────────────────────────────────────────────


class TestDetectPatterns:
    def test_needs_three_candles(self):
        assert detect_patterns([_QUIET, _QUIET]) == []

    def test_doji(self):
        assert _names([_QUIET, _QUIET, _make_candle(100, 101, 99, 100.05)]) == ["Doji"]

    def test_doji_needs_range(self):
        assert is_doji(_make_candle(100, 100, 100, 100)) is False

    def test_hammer(self):
        assert _names([_QUIET, _QUIET, _make_candle(100, 101.1, 97, 101)]) == ["Hammer"]

    def test_shooting_star(self):
        assert _names([_QUIET, _QUIET, _make_candle(101, 104, 99.9, 100)]) == ["Shooting Star"]

    def test_bullish_engulfing(self):
        candles = [
            _QUIET,
            _make_candle(105, 105.5, 102.5, 103),
            _make_candle(102.8, 106, 102.5, 105.5),
        ]
        assert _names(candles) == ["Bullish Engulfing"]

    def test_bearish_engulfing(self):
        candles = [
            _QUIET,
            _make_candle(103, 105.5, 102.5, 105),
            _make_candle(105.2, 105.5, 102, 102.5),
        ]
        assert _names(candles) == ["Bearish Engulfing"]

    def test_three_white_soldiers(self):
        candles = [
            _make_candle(100, 102.2, 99.8, 102),
            _make_candle(102, 104.2, 101.8, 104),
            _make_candle(104, 106.2, 103.8, 106),
        ]
        assert "Three White Soldiers" in _names(candles)


# ── Pattern vs bias ──────────────────────────────────────────────────────


class TestEvaluatePatterns:
    def test_strongest_conflict_wins(self):
        patterns = [
            _pattern("Hanging Man", "bearish", "moderate"),
            _pattern("Bearish Engulfing", "bearish", "strong"),
        ]
        ev = evaluate_patterns(patterns, "BULLISH")
        assert ev.passed is False
        assert ev.name == "Bearish Engulfing"
        assert ev.severity == "warning"
        assert ev.risk_score == 18
        assert ev.all_conflicts == ("Bearish Engulfing", "Hanging Man")

    def test_moderate_conflict(self):
        ev = evaluate_patterns([_pattern("Hammer", "bullish", "moderate")], "BEARISH")
        assert ev.passed is False
        assert ev.severity == "caution"
        assert ev.risk_score == 10

    def test_weak_conflict(self):
        ev = evaluate_patterns([_pattern("Bearish Harami", "bearish", "weak")], "BULLISH")
        assert ev.risk_score == 5

    def test_confirming_pattern(self):
        ev = evaluate_patterns([_pattern("Hammer", "bullish", "moderate")], "BULLISH")
        assert ev.passed is True
        assert ev.label == "Pattern confirms trade: Hammer"

    def test_neutral_pattern(self):
        ev = evaluate_patterns([_pattern("Doji", "neutral", "weak")], "BULLISH")
        assert ev.passed is True
        assert ev.label == "Neutral pattern: Doji (wait for confirmation)"

    def test_no_patterns(self):
        ev = evaluate_patterns([], "BEARISH")
        assert ev.passed is True
        assert ev.label is None


# ── Volume ───────────────────────────────────────────────────────────────


def _volume_series(last: CandleData, prev_close: float = 100.0) -> list[CandleData]:
    """18 quiet candles at volume 1000, a previous candle and *last*."""
    candles = [_make_candle(100, 101, 99, 100, vol=1000, t=i) for i in range(18)]
    candles.append(_make_candle(100, 105, 99, prev_close, vol=1000, t=18))
    candles.append(last)
    return candles


class TestAnalyzeVolume:
    def test_needs_six_candles(self):
        assert analyze_volume([_QUIET] * 5) is None

    def test_climax(self):
        last = _make_candle(104, 105, 104, 104.5, vol=3000, t=19)
        assert analyze_volume(_volume_series(last, prev_close=104)).signal == "climax"

    def test_divergence(self):
        last = _make_candle(100, 101.5, 100, 101, vol=800, t=19)
        assert analyze_volume(_volume_series(last)).signal == "divergence"

    def test_churn(self):
        # Move thresholds are fractions of the close, so a small move on heavy volume churns
        last = _make_candle(100, 100.2, 99.9, 100.05, vol=2000, t=19)
        assert analyze_volume(_volume_series(last)).signal == "churn"

    def test_fakeout_needs_half_the_close(self):
        last = _make_candle(100, 100, 39, 40, vol=900, t=19)
        assert analyze_volume(_volume_series(last)).signal == "fakeout"
        # A 10% drop on light volume is only a weak move
        last = _make_candle(100, 100, 89, 90, vol=900, t=19)
        assert analyze_volume(_volume_series(last)).signal == "weak_bearish"

    def test_weak_bearish(self):
        last = _make_candle(100, 100, 98.5, 99, vol=900, t=19)
        assert analyze_volume(_volume_series(last)).signal == "weak_bearish"
