"""Tests for the behavioral agent and the bias helpers it relies on."""

import pytest

from tradegate.agents.behavioral import (
    check_adding_to_loser,
    check_against_trend,
    check_duplicate_order,
    check_high_vix,
    check_position_count,
    check_sector_exposure,
    run_behavioral_agent,
)
from tradegate.agents.context import (
    OpenOrder,
    OrderInfo,
    OrdersSnapshot,
    Position,
    PositionsSnapshot,
    SectorSnapshot,
    Sentiment,
    TradeContext,
)
from tradegate.market.sector_map import get_sector, root_symbol
from tradegate.strategy.bias import is_swing, normalise_bias, sector_change_to_bias, trade_bias


def _order(symbol: str = "HDFCBANK", side: str = "BUY", **kwargs) -> OrderInfo:
    return OrderInfo(symbol=symbol, transaction_type=side, **kwargs)


def _ctx(order: OrderInfo | None = None, positions: list[Position] | None = None, **kwargs) -> TradeContext:
    order = order or _order()
    return TradeContext(
        order=order,
        positions=PositionsSnapshot.for_symbol(positions or [], order.symbol),
        **kwargs,
    )


# ── Bias helpers ─────────────────────────────────────────────────────────


class TestBias:
    @pytest.mark.parametrize(
        "instrument, side, expected",
        [("EQ", "BUY", "BULLISH"), ("EQ", "SELL", "BEARISH"), ("CE", "BUY", "BULLISH"),
         ("PE", "BUY", "BEARISH"), ("PE", "SELL", "BULLISH"), ("FUT", "SELL", "BEARISH")],
    )
    def test_trade_bias(self, instrument, side, expected):
        assert trade_bias(instrument, side) == expected

    def test_is_swing(self):
        assert is_swing("NRML") is True
        assert is_swing("cnc") is True
        assert is_swing("MIS") is False
        assert is_swing(None) is False

    def test_normalise_bias(self):
        assert normalise_bias("Mildly Bullish") == "BULLISH"
        assert normalise_bias("STRONGLY BEARISH") == "BEARISH"
        assert normalise_bias("Sideways") == "NEUTRAL"
        assert normalise_bias(None) == "NEUTRAL"

    def test_sector_change_to_bias(self):
        assert sector_change_to_bias(0.31) == "BULLISH"
        assert sector_change_to_bias(0.3) == "NEUTRAL"
        assert sector_change_to_bias(-0.5) == "BEARISH"
        assert sector_change_to_bias(None) == "NEUTRAL"


class TestSectorMap:
    def test_known_symbol(self):
        assert get_sector("hdfcbank") == "Bank Nifty"

    def test_unknown_symbol(self):
        assert get_sector("UNKNOWNCO") is None
        assert get_sector(None) is None

    def test_root_symbol(self):
        assert root_symbol("RELIANCE26MAR1400CE") == "RELIANCE"
        assert root_symbol("infy") == "INFY"
        assert root_symbol(None) == ""


# ── Snapshots ────────────────────────────────────────────────────────────


class TestSnapshots:
    def test_zero_quantity_positions_dropped(self):
        snap = PositionsSnapshot.for_symbol(
            [Position("INFY", 0), Position("TCS", 10)], "TCS"
        )
        assert snap.count == 1
        assert snap.same_symbol.tradingsymbol == "TCS"

    def test_derivative_matches_underlying(self):
        snap = PositionsSnapshot.for_symbol([Position("NIFTY26MAR22000CE", 50)], "NIFTY")
        assert snap.same_symbol is not None

    def test_only_open_orders_kept(self):
        snap = OrdersSnapshot.from_orders([
            OpenOrder("INFY", "COMPLETE"),
            OpenOrder("INFY", "open"),
            OpenOrder("TCS", "TRIGGER PENDING"),
        ])
        assert snap.open_count == 2

    def test_order_from_request(self):
        order = OrderInfo.from_request({
            "symbol": "infy", "transactionType": "buy", "spotPrice": "1500.5", "productType": "cnc",
        })
        assert order.symbol == "INFY"
        assert order.exchange == "NSE"
        assert order.instrument_type == "EQ"
        assert order.spot_price == 1500.5
        assert order.is_swing is True

    def test_unparseable_spot_price_is_none(self):
        order = OrderInfo.from_request({"symbol": "INFY", "transactionType": "BUY", "spotPrice": "abc"})
        assert order.spot_price is None
        assert OrderInfo.from_request({"symbol": "INFY", "transactionType": "BUY", "spotPrice": [1]}).spot_price is None


# ── Checks ───────────────────────────────────────────────────────────────


class TestAddingToLoser:
    def test_flags_buying_more_of_a_loser(self):
        finding = check_adding_to_loser(_ctx(positions=[Position("HDFCBANK", 10, pnl=-250)]))
        assert finding.id == "ADDING_TO_LOSER"
        assert finding.risk_score == 25

    def test_small_loss_ignored(self):
        assert check_adding_to_loser(_ctx(positions=[Position("HDFCBANK", 10, pnl=-150)])) is None

    def test_nfo_threshold_is_wider(self):
        order = _order("NIFTY", exchange="NFO")
        assert check_adding_to_loser(_ctx(order, [Position("NIFTY26MARFUT", 50, pnl=-400)])) is None
        assert check_adding_to_loser(_ctx(order, [Position("NIFTY26MARFUT", 50, pnl=-600)])) is not None

    def test_reducing_is_fine(self):
        order = _order(side="SELL")
        assert check_adding_to_loser(_ctx(order, [Position("HDFCBANK", 10, pnl=-900)])) is None


class TestAgainstTrend:
    def test_aligned(self):
        ctx = _ctx(sentiment=Sentiment(intraday_bias="BULLISH"))
        assert check_against_trend(ctx) is None

    def test_market_conflict_only(self):
        ctx = _ctx(sentiment=Sentiment(intraday_bias="BEARISH"))
        finding = check_against_trend(ctx)
        assert finding.severity == "caution"
        assert finding.risk_score == 10

    def test_market_and_sector_conflict(self):
        ctx = _ctx(
            sentiment=Sentiment(intraday_bias="BEARISH"),
            sector=SectorSnapshot(name="Bank Nifty", change=-1.2, bias="BEARISH"),
        )
        finding = check_against_trend(ctx)
        assert finding.severity == "warning"
        assert finding.risk_score == 20
        assert "Bank Nifty is bearish" in finding.detail

    def test_put_buyer_is_bearish(self):
        order = _order(instrument_type="PE")
        ctx = _ctx(order, sentiment=Sentiment(intraday_bias="BEARISH"))
        assert check_against_trend(ctx) is None


class TestPositionCount:
    def test_thresholds(self):
        def positions(n):
            return [Position(f"SYM{i}", 1) for i in range(n)]

        assert check_position_count(_ctx(positions=positions(3))) is None
        assert check_position_count(_ctx(positions=positions(4))).risk_score == 8
        assert check_position_count(_ctx(positions=positions(6))).risk_score == 15


class TestHighVix:
    def test_levels(self):
        assert check_high_vix(_ctx(vix=None)) is None
        assert check_high_vix(_ctx(vix=15.0)) is None
        assert check_high_vix(_ctx(vix=20.0)).id == "ELEVATED_VIX"
        assert check_high_vix(_ctx(vix=26.0)).id == "HIGH_VIX"

    def test_nan(self):
        assert check_high_vix(_ctx(vix=float("nan"))) is None


class TestDuplicateOrder:
    def test_pending_order_for_symbol(self):
        orders = OrdersSnapshot.from_orders([OpenOrder("HDFCBANK", "OPEN", "BUY", 10)])
        finding = check_duplicate_order(_ctx(orders=orders))
        assert finding.id == "DUPLICATE_ORDER"
        assert finding.risk_score == 12

    def test_other_symbol(self):
        orders = OrdersSnapshot.from_orders([OpenOrder("INFY", "OPEN", "BUY", 10)])
        assert check_duplicate_order(_ctx(orders=orders)) is None


class TestSectorExposure:
    def test_two_in_sector(self):
        ctx = _ctx(
            positions=[Position("ICICIBANK", 10), Position("AXISBANK26MARFUT", 5)],
            sector=SectorSnapshot(name="Bank Nifty", change=0.1),
        )
        assert check_sector_exposure(ctx).risk_score == 10

    def test_three_in_sector(self):
        ctx = _ctx(
            positions=[Position("ICICIBANK", 10), Position("AXISBANK", 5), Position("KOTAKBANK", 1)],
            sector=SectorSnapshot(name="Bank Nifty"),
        )
        assert check_sector_exposure(ctx).severity == "warning"

    def test_no_sector(self):
        assert check_sector_exposure(_ctx(positions=[Position("ICICIBANK", 10)])) is None


class TestRunBehavioralAgent:
    def test_clean_context_is_clear(self):
        result = run_behavioral_agent(_ctx())
        assert result.verdict == "clear"
        assert len(result.checks) == 6
        assert all(c.passed for c in result.checks)

    def test_scores_add_up(self):
        ctx = _ctx(
            positions=[Position("HDFCBANK", 10, pnl=-300)],
            vix=26.0,
        )
        result = run_behavioral_agent(ctx)
        # adding to loser 25 + high vix 18
        assert result.risk_score == 43
        assert result.verdict == "warning"
        assert {c.id for c in result.triggered} == {"ADDING_TO_LOSER", "HIGH_VIX"}
