"""
Tests for FIFO matching of trade legs.
"""

from datetime import date
from decimal import Decimal

from conftest import make_leg
from tradeledger.ledger.matcher import FifoMatcher, gross_pnl, match_trades, sort_legs
from tradeledger.models import InstrumentClass, RecordStatus, Side, TradeLeg


D1 = date(2024, 3, 1)
D2 = date(2024, 3, 2)
D3 = date(2024, 3, 3)
D4 = date(2024, 3, 4)


def realized(records):
    return [r for r in records if r.status == RecordStatus.REALIZED]


class TestSortLegs:
    """Tests for sort_legs function."""

    def test_buy_before_sell_on_same_date(self):
        sell = make_leg("INFY", Side.SELL, "5", "110", D1)
        buy = make_leg("INFY", Side.BUY, "5", "100", D1)

        assert sort_legs([sell, buy]) == [buy, sell]

    def test_date_order_and_stability(self):
        a = make_leg("A", Side.BUY, "1", "1", D2, leg_id="a")
        b = make_leg("B", Side.BUY, "1", "1", D1, leg_id="b")
        c = make_leg("C", Side.BUY, "1", "1", D2, leg_id="c")

        assert [leg.leg_id for leg in sort_legs([a, b, c])] == ["b", "a", "c"]


class TestGrossPnl:
    """Tests for gross_pnl function."""

    def test_equity(self):
        assert gross_pnl(
            Decimal("100"), Decimal("110"), Decimal("100"), InstrumentClass.EQUITY
        ) == Decimal("1000")

    def test_future_scales_by_quantity_and_lot(self):
        assert gross_pnl(
            Decimal("100"), Decimal("110"), Decimal("2"), InstrumentClass.FUTURE, 50
        ) == Decimal("1000")

    def test_option_is_lot_basis_only(self):
        """Test option P&L does not scale with matched quantity."""
        one = gross_pnl(Decimal("100"), Decimal("120"), Decimal("1"), InstrumentClass.OPTION, 50)
        three = gross_pnl(Decimal("100"), Decimal("120"), Decimal("3"), InstrumentClass.OPTION, 50)

        assert one == Decimal("1000")
        assert three == one

    def test_loss(self):
        assert gross_pnl(
            Decimal("450"), Decimal("440"), Decimal("20"), InstrumentClass.EQUITY
        ) == Decimal("-200")


class TestFifoMatcher:
    """Tests for FifoMatcher class."""

    def test_single_pair(self, single_pair_legs: list[TradeLeg]):
        """Test one BUY closed by one SELL."""
        matcher = FifoMatcher()
        records = matcher.run(single_pair_legs)

        assert [r.status for r in records] == [RecordStatus.OPEN_LONG, RecordStatus.REALIZED]

        trade = records[1]
        assert trade.gross_pnl == Decimal("1000.00")
        assert trade.buy_charges == Decimal("4.22")
        assert trade.sell_charges == Decimal("15.32")
        assert trade.net_pnl == Decimal("980.46")
        assert trade.net_pnl == trade.gross_pnl - (trade.buy_charges + trade.sell_charges)
        assert trade.entry_price == Decimal("100")
        assert trade.exit_price == Decimal("110")
        assert matcher.open_quantity("INFY") == Decimal("0")
        assert matcher.open_positions() == {}

    def test_open_long_record(self, single_pair_legs: list[TradeLeg]):
        """Test every BUY emits an open record with null P&L."""
        records = match_trades(single_pair_legs[:1])

        assert len(records) == 1
        assert records[0].status == RecordStatus.OPEN_LONG
        assert records[0].gross_pnl is None
        assert records[0].net_pnl is None
        assert records[0].charges == Decimal("4.22")
        assert not records[0].is_realized

    def test_partial_fills(self):
        """Test two SELLs closing one BUY both reference that BUY."""
        buy = make_leg("INFY", Side.BUY, "10", "100", D1, leg_id="b1")
        legs = [
            buy,
            make_leg("INFY", Side.SELL, "6", "110", D2, leg_id="s1"),
            make_leg("INFY", Side.SELL, "4", "120", D3, leg_id="s2"),
        ]

        matcher = FifoMatcher()
        trades = realized(matcher.run(legs))

        assert len(trades) == 2
        assert all(t.buy_leg is buy for t in trades)
        assert all(t.entry_price == Decimal("100") for t in trades)
        assert [t.quantity for t in trades] == [Decimal("6"), Decimal("4")]
        assert trades[0].gross_pnl == Decimal("60.00")
        assert trades[1].gross_pnl == Decimal("80.00")
        assert matcher.open_lots("INFY") == []

    def test_charges_not_prorated(self):
        """Test a partial match still nets the full BUY leg charges."""
        buy = make_leg("INFY", Side.BUY, "100", "100", D1)
        sell = make_leg("INFY", Side.SELL, "50", "110", D2)

        matcher = FifoMatcher()
        trade = realized(matcher.run([buy, sell]))[0]

        assert trade.buy_charges == matcher.charges_for(buy)
        assert trade.buy_charges == Decimal("4.22")

    def test_fifo_ordering(self):
        """Test the oldest BUY is matched first."""
        first = make_leg("INFY", Side.BUY, "5", "100", D1, leg_id="b1")
        second = make_leg("INFY", Side.BUY, "5", "105", D2, leg_id="b2")
        sell = make_leg("INFY", Side.SELL, "5", "110", D3, leg_id="s1")

        matcher = FifoMatcher()
        trades = realized(matcher.run([second, sell, first]))

        assert len(trades) == 1
        assert trades[0].buy_leg is first
        lots = matcher.open_lots("INFY")
        assert len(lots) == 1
        assert lots[0].buy_leg is second
        assert lots[0].remaining_quantity == Decimal("5")

    def test_sell_spans_multiple_lots(self):
        """Test a SELL larger than the head lot continues into the next one."""
        first = make_leg("INFY", Side.BUY, "5", "100", D1)
        second = make_leg("INFY", Side.BUY, "5", "105", D2)
        sell = make_leg("INFY", Side.SELL, "8", "110", D3)

        matcher = FifoMatcher()
        trades = realized(matcher.run([first, second, sell]))

        assert [(t.buy_leg, t.quantity) for t in trades] == [
            (first, Decimal("5")),
            (second, Decimal("3")),
        ]
        # sell charges counted once across the SELL's records
        assert trades[0].charges == matcher.charges_for(sell)
        assert trades[1].charges == Decimal("0")
        assert matcher.open_lots("INFY")[0].remaining_quantity == Decimal("2")

    def test_remainder_stays_at_head(self):
        """Test a partly consumed lot keeps its place ahead of newer lots."""
        first = make_leg("INFY", Side.BUY, "10", "100", D1)
        second = make_leg("INFY", Side.BUY, "10", "105", D2)

        matcher = FifoMatcher()
        matcher.run([first, second, make_leg("INFY", Side.SELL, "4", "110", D3)])
        trades = realized(matcher.process(make_leg("INFY", Side.SELL, "6", "111", D4)))

        assert len(trades) == 1
        assert trades[0].buy_leg is first
        assert matcher.open_lots("INFY")[0].buy_leg is second

    def test_naked_short(self):
        """Test a SELL with no open BUY becomes an open record with charges."""
        sell = make_leg("TCS", Side.SELL, "5", "3500", D1)

        records = match_trades([sell])

        assert len(records) == 1
        assert records[0].status == RecordStatus.OPEN_SHORT
        assert records[0].gross_pnl is None
        assert records[0].net_pnl is None
        assert records[0].charges > Decimal("0")
        assert records[0].charges == Decimal("24.37")

    def test_oversold_remainder_is_single_open_record(self):
        """Test the unmatched part of a SELL becomes one open-short record."""
        buy = make_leg("INFY", Side.BUY, "5", "100", D1)
        sell = make_leg("INFY", Side.SELL, "8", "110", D2)

        matcher = FifoMatcher()
        records = matcher.run([buy, sell])

        assert [r.status for r in records] == [
            RecordStatus.OPEN_LONG, RecordStatus.REALIZED, RecordStatus.OPEN_SHORT,
        ]
        assert records[1].quantity == Decimal("5")
        assert records[2].quantity == Decimal("3")
        assert records[2].charges == Decimal("0")
        assert matcher.open_positions() == {}

    def test_symbols_are_independent(self):
        """Test a SELL never closes another symbol's BUY."""
        records = match_trades([
            make_leg("INFY", Side.BUY, "5", "100", D1),
            make_leg("TCS", Side.SELL, "5", "3500", D2),
        ])

        assert [r.status for r in records] == [RecordStatus.OPEN_LONG, RecordStatus.OPEN_SHORT]

    def test_option_pnl_lot_basis(self):
        """Test option round trip uses lot-basis P&L and premium-basis charges."""
        legs = [
            make_leg("NIFTY24MAR22000CE", Side.BUY, "50", "100", D1,
                     InstrumentClass.OPTION, lot_size=50),
            make_leg("NIFTY24MAR22000CE", Side.SELL, "50", "120", D2,
                     InstrumentClass.OPTION, lot_size=50),
        ]

        trade = realized(match_trades(legs))[0]

        assert trade.gross_pnl == Decimal("1000.00")
        assert trade.buy_charges == Decimal("2.11")
        assert trade.sell_charges == Decimal("8.35")
        assert trade.net_pnl == Decimal("989.54")

    def test_future_pnl(self):
        legs = [
            make_leg("NIFTYFUT", Side.BUY, "2", "100", D1, InstrumentClass.FUTURE, lot_size=50),
            make_leg("NIFTYFUT", Side.SELL, "2", "110", D2, InstrumentClass.FUTURE, lot_size=50),
        ]

        trade = realized(match_trades(legs))[0]

        assert trade.gross_pnl == Decimal("1000.00")

    def test_quantity_conservation(self, mixed_legs: list[TradeLeg]):
        """Test every unit of every leg is accounted for exactly once."""
        legs = mixed_legs + [
            make_leg("INFY", Side.BUY, "30", "101", D4),
            make_leg("INFY", Side.SELL, "45", "105", date(2024, 3, 25)),
        ]

        matcher = FifoMatcher()
        records = matcher.run(legs)

        for leg in legs:
            if leg.side == Side.SELL:
                covered = sum(
                    (r.quantity for r in records if r.leg is leg and r.status != RecordStatus.OPEN_LONG),
                    Decimal("0"),
                )
                assert covered == leg.quantity
            else:
                matched = sum(
                    (r.quantity for r in records if r.buy_leg is leg), Decimal("0")
                )
                remaining = sum(
                    (lot.remaining_quantity for lot in matcher.open_lots(leg.symbol)
                     if lot.buy_leg is leg),
                    Decimal("0"),
                )
                assert matched + remaining == leg.quantity

    def test_deterministic(self, mixed_legs: list[TradeLeg]):
        """Test identical input gives identical records."""
        assert match_trades(mixed_legs) == match_trades(list(mixed_legs))

    def test_empty_input(self):
        assert match_trades([]) == []
