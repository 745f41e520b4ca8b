"""
Transaction charges for a single trade leg.

Components (rates from ChargeSchedule):
- Brokerage: rate x effective value, capped per leg
- Securities transaction tax: SELL legs only
- Exchange transaction charge
- GST on brokerage plus exchange transaction charge
- Stamp duty: BUY legs only

Option legs are charged on premium basis (price x lot size); everything else
on price x quantity. Components are summed unrounded and the total is rounded
to 2 decimals once.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from tradeledger.models import ChargeSchedule, InstrumentClass, Side, TradeLeg


CENT = Decimal("0.01")
ZERO = Decimal("0")

DEFAULT_SCHEDULE = ChargeSchedule()


@dataclass(frozen=True)
class ChargeBreakdown:
    """Unrounded charge components of one leg."""
    effective_value: Decimal
    brokerage: Decimal
    stt: Decimal
    exchange_txn: Decimal
    gst: Decimal
    stamp_duty: Decimal

    @property
    def total(self) -> Decimal:
        """Sum of all components, rounded to 2 decimals."""
        raw = self.brokerage + self.stt + self.exchange_txn + self.gst + self.stamp_duty
        return round_money(raw)


def round_money(value: Decimal) -> Decimal:
    """Round half-up to 2 decimals."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def effective_value(
    price: Decimal,
    quantity: Decimal,
    instrument_class: InstrumentClass,
    lot_size: int = 1,
) -> Decimal:
    """Charge basis: premium basis for options, traded value otherwise."""
    if instrument_class == InstrumentClass.OPTION:
        return price * Decimal(lot_size)
    return price * quantity


def charge_breakdown(
    leg: TradeLeg,
    schedule: Optional[ChargeSchedule] = None,
) -> ChargeBreakdown:
    """
    Compute every charge component of a leg.

    Args:
        leg: Trade leg with resolved instrument class and lot size
        schedule: Charge rates (defaults to the standard schedule)

    Returns:
        ChargeBreakdown with unrounded components
    """
    schedule = schedule or DEFAULT_SCHEDULE
    value = effective_value(leg.price, leg.quantity, leg.instrument_class, leg.lot_size)

    brokerage = min(value * schedule.brokerage_rate, schedule.brokerage_cap)
    stt = value * schedule.stt_rate if leg.side == Side.SELL else ZERO
    exchange_txn = value * schedule.exchange_txn_rate
    gst = (brokerage + exchange_txn) * schedule.gst_rate
    stamp_duty = value * schedule.stamp_duty_rate if leg.side == Side.BUY else ZERO

    return ChargeBreakdown(
        effective_value=value,
        brokerage=brokerage,
        stt=stt,
        exchange_txn=exchange_txn,
        gst=gst,
        stamp_duty=stamp_duty,
    )


def calculate_charges(
    leg: TradeLeg,
    schedule: Optional[ChargeSchedule] = None,
) -> Decimal:
    """Total charges of a leg, rounded once to 2 decimals. Never negative."""
    total = charge_breakdown(leg, schedule).total
    return total if total > ZERO else ZERO


def calculate_single_trade_pnl(
    entry_price: Decimal,
    exit_price: Decimal,
    quantity: Decimal,
    instrument_class: InstrumentClass = InstrumentClass.EQUITY,
    lot_size: int = 1,
    schedule: Optional[ChargeSchedule] = None,
) -> dict[str, Decimal]:
    """
    P&L of a manually entered round trip.

    Charges are taken on the exit value with every component applied, the
    way manual entries have always been costed.

    Args:
        entry_price: Price paid
        exit_price: Price received
        quantity: Quantity traded
        instrument_class: Selects the P&L formula and charge basis
        lot_size: Contract multiplier
        schedule: Charge rates

    Returns:
        Dictionary with:
        - pnl: Net P&L after charges
        - pnl_percentage: Net P&L as percent of entry value
        - charges: Total charges
    """
    from tradeledger.ledger.matcher import gross_pnl

    schedule = schedule or DEFAULT_SCHEDULE
    gross = gross_pnl(entry_price, exit_price, quantity, instrument_class, lot_size)

    value = effective_value(exit_price, quantity, instrument_class, lot_size)
    brokerage = min(value * schedule.brokerage_rate, schedule.brokerage_cap)
    exchange_txn = value * schedule.exchange_txn_rate
    total_charges = (
        brokerage
        + value * schedule.stt_rate
        + exchange_txn
        + (brokerage + exchange_txn) * schedule.gst_rate
        + value * schedule.stamp_duty_rate
    )

    net = gross - total_charges
    entry_value = entry_price * quantity
    pnl_percentage = net / entry_value * 100 if entry_price > ZERO and quantity > ZERO else ZERO

    return {
        "pnl": round_money(net),
        "pnl_percentage": round_money(pnl_percentage),
        "charges": round_money(total_charges),
    }
