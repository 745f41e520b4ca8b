"""
FIFO matching of opening and closing legs.

Each symbol owns a queue of open BUY lots, oldest at the head. A SELL consumes
lots from the head until it is filled or the queue runs dry; whatever is left
becomes a single open-short record. A lot that is only partly consumed goes
back to the head of its queue, since it is still the oldest.

Legs are processed in (date, BUY-before-SELL) order so that same-day opens can
close same-day. Given the same input, the match sequence and every P&L value
are deterministic.

The queues are plain per-instance state with no locking: reconciliation runs
for one account must be serialized by the caller, because the match result
depends on processing order.
"""

import logging
from collections import deque
from decimal import Decimal
from typing import Iterable, Optional

from tradeledger.ledger.charges import DEFAULT_SCHEDULE, calculate_charges, round_money
from tradeledger.models import (
    ChargeSchedule,
    InstrumentClass,
    MatchedTrade,
    OpenLot,
    RecordStatus,
    Side,
    TradeLeg,
)


logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def sort_legs(legs: Iterable[TradeLeg]) -> list[TradeLeg]:
    """Order legs by date, BUY before SELL on the same date. Stable."""
    return sorted(legs, key=lambda leg: (leg.trade_date, 0 if leg.side == Side.BUY else 1))


def gross_pnl(
    buy_price: Decimal,
    sell_price: Decimal,
    quantity: Decimal,
    instrument_class: InstrumentClass,
    lot_size: int = 1,
) -> Decimal:
    """
    Gross P&L of a matched quantity.

    - EQUITY: (sell - buy) x quantity
    - FUTURE: (sell - buy) x quantity x lot size
    - OPTION: (sell - buy) x lot size, independent of quantity

    The OPTION formula is kept as the ledger has always computed it; it is not
    scaled by quantity, unlike FUTURE.
    """
    price_diff = sell_price - buy_price
    if instrument_class == InstrumentClass.FUTURE:
        return price_diff * quantity * Decimal(lot_size)
    if instrument_class == InstrumentClass.OPTION:
        return price_diff * Decimal(lot_size)
    return price_diff * quantity


class FifoMatcher:
    """
    Per-symbol FIFO open-position book.

    Example:
        >>> matcher = FifoMatcher()
        >>> records = matcher.run(legs)
        >>> matcher.open_quantity("INFY")
        Decimal('0')
    """

    def __init__(self, schedule: Optional[ChargeSchedule] = None):
        """
        Initialize an empty book.

        Args:
            schedule: Charge rates used for every leg
        """
        self.schedule = schedule or DEFAULT_SCHEDULE
        self._queues: dict[str, deque[OpenLot]] = {}
        self._charge_cache: dict[TradeLeg, Decimal] = {}

    def charges_for(self, leg: TradeLeg) -> Decimal:
        """Full-leg charges, computed once per leg."""
        if leg not in self._charge_cache:
            self._charge_cache[leg] = calculate_charges(leg, self.schedule)
        return self._charge_cache[leg]

    def run(self, legs: Iterable[TradeLeg]) -> list[MatchedTrade]:
        """
        Sort legs and process them all.

        Args:
            legs: Trade legs across any number of symbols

        Returns:
            Ledger records in processing order
        """
        records: list[MatchedTrade] = []
        for leg in sort_legs(legs):
            records.extend(self.process(leg))
        return records

    def process(self, leg: TradeLeg) -> list[MatchedTrade]:
        """
        Apply a single leg to the book.

        Legs must arrive in sorted order; use run() for unsorted input.

        Returns:
            Records emitted for this leg
        """
        if leg.side == Side.BUY:
            return [self._open_long(leg)]
        return self._close(leg)

    def _open_long(self, leg: TradeLeg) -> MatchedTrade:
        self._queues.setdefault(leg.symbol, deque()).append(
            OpenLot(buy_leg=leg, remaining_quantity=leg.quantity)
        )
        return MatchedTrade(
            leg=leg,
            buy_leg=None,
            quantity=leg.quantity,
            gross_pnl=None,
            charges=self.charges_for(leg),
            net_pnl=None,
            entry_price=leg.price,
            exit_price=None,
            status=RecordStatus.OPEN_LONG,
        )

    def _close(self, sell: TradeLeg) -> list[MatchedTrade]:
        records: list[MatchedTrade] = []
        queue = self._queues.get(sell.symbol)
        sell_charges = self.charges_for(sell)
        remaining = sell.quantity
        # full sell charges are booked on the first record of this SELL only
        booked = sell_charges

        while remaining > ZERO and queue:
            head = queue.popleft()
            matched_qty = min(remaining, head.remaining_quantity)
            buy = head.buy_leg
            lot_size = sell.lot_size or buy.lot_size or 1

            gross = gross_pnl(buy.price, sell.price, matched_qty, sell.instrument_class, lot_size)
            buy_charges = self.charges_for(buy)
            net = gross - (buy_charges + sell_charges)

            records.append(MatchedTrade(
                leg=sell,
                buy_leg=buy,
                quantity=matched_qty,
                gross_pnl=round_money(gross),
                charges=booked,
                net_pnl=round_money(net),
                entry_price=buy.price,
                exit_price=sell.price,
                status=RecordStatus.REALIZED,
                buy_charges=buy_charges,
                sell_charges=sell_charges,
            ))
            booked = ZERO

            head.remaining_quantity -= matched_qty
            if head.remaining_quantity > ZERO:
                queue.appendleft(head)
            remaining -= matched_qty

        if queue is not None and not queue:
            del self._queues[sell.symbol]

        if remaining > ZERO:
            logger.debug("%s: %s of SELL %s left unmatched (open short)",
                         sell.symbol, remaining, sell.leg_id or sell.trade_date)
            records.append(MatchedTrade(
                leg=sell,
                buy_leg=None,
                quantity=remaining,
                gross_pnl=None,
                charges=booked,
                net_pnl=None,
                entry_price=None,
                exit_price=sell.price,
                status=RecordStatus.OPEN_SHORT,
                sell_charges=sell_charges,
            ))

        return records

    def open_lots(self, symbol: str) -> list[OpenLot]:
        """Open BUY lots for a symbol, oldest first."""
        return list(self._queues.get(symbol, ()))

    def open_quantity(self, symbol: str) -> Decimal:
        """Total unmatched BUY quantity for a symbol."""
        return sum((lot.remaining_quantity for lot in self._queues.get(symbol, ())), ZERO)

    def open_positions(self) -> dict[str, Decimal]:
        """Unmatched BUY quantity per symbol, for symbols with open lots."""
        return {symbol: self.open_quantity(symbol) for symbol in sorted(self._queues)}


def match_trades(
    legs: Iterable[TradeLeg],
    schedule: Optional[ChargeSchedule] = None,
) -> list[MatchedTrade]:
    """
    Run FIFO matching over legs with a fresh book.

    Args:
        legs: Trade legs, any order
        schedule: Charge rates

    Returns:
        Ledger records in processing order
    """
    return FifoMatcher(schedule).run(legs)
