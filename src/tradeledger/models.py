"""
Core data models for the trade ledger reconciliation engine.

This module defines the fundamental data structures used throughout the system,
including trade legs, column mappings, open-position queue entries, matched
trades and ledger summaries. All monetary and quantity values use Decimal.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class Side(Enum):
    """Trade direction indicator."""
    BUY = "BUY"
    SELL = "SELL"


class InstrumentClass(Enum):
    """Instrument class, which selects the P&L formula and charge basis."""
    EQUITY = "EQUITY"
    FUTURE = "FUTURE"
    OPTION = "OPTION"


class RecordStatus(Enum):
    """State of a ledger record produced by the matcher."""
    OPEN_LONG = "OPEN_LONG"      # BUY pushed onto the queue
    REALIZED = "REALIZED"        # SELL quantity matched against a BUY
    OPEN_SHORT = "OPEN_SHORT"    # SELL quantity with nothing left to match


class RejectReason(Enum):
    """Why a raw row was dropped by the row parser."""
    INVALID_DATE = "INVALID_DATE"
    MISSING_SYMBOL = "MISSING_SYMBOL"
    NON_POSITIVE_QUANTITY = "NON_POSITIVE_QUANTITY"
    NON_POSITIVE_PRICE = "NON_POSITIVE_PRICE"


class ActionType(Enum):
    """Types of logged actions for the decision log."""
    CONFIG_LOADED = "CONFIG_LOADED"
    SCHEMA_DETECTED = "SCHEMA_DETECTED"
    ROWS_PARSED = "ROWS_PARSED"
    LEDGER_RECONCILED = "LEDGER_RECONCILED"


# Semantic fields a column can be mapped to, in detection order.
MAPPING_FIELDS = (
    "date",
    "symbol",
    "quantity",
    "price",
    "side",
    "instrument_type",
    "lot_size",
    "segment",
)

REQUIRED_FIELDS = ("date", "symbol", "quantity", "price")


# One input line, header -> cell. Only lives while rows are being parsed.
RawRow = dict[str, str]


@dataclass(frozen=True)
class ColumnMapping:
    """
    Mapping of semantic fields to header names for one import job.

    Attributes:
        date: Header holding the trade date/time
        symbol: Header holding the trading symbol
        quantity: Header holding the filled quantity
        price: Header holding the execution price
        side: Header holding BUY/SELL
        instrument_type: Header holding instrument type or product
        lot_size: Header holding the contract multiplier
        segment: Header holding the exchange segment
        confidence: Share of required fields mapped (0-100)
        dialect: Best-guess broker dialect label
        inferred_fields: Fields mapped from sample-row content, not headers
    """
    date: Optional[str] = None
    symbol: Optional[str] = None
    quantity: Optional[str] = None
    price: Optional[str] = None
    side: Optional[str] = None
    instrument_type: Optional[str] = None
    lot_size: Optional[str] = None
    segment: Optional[str] = None
    confidence: int = 0
    dialect: str = "unknown"
    inferred_fields: tuple[str, ...] = ()

    def get(self, field_name: str) -> Optional[str]:
        """Header mapped to a semantic field, or None."""
        if field_name not in MAPPING_FIELDS:
            raise KeyError(field_name)
        return getattr(self, field_name)

    def as_dict(self) -> dict[str, Optional[str]]:
        """Field -> header for every semantic field."""
        return {name: getattr(self, name) for name in MAPPING_FIELDS}

    @property
    def missing_required(self) -> list[str]:
        """Required fields with no mapped header."""
        return [name for name in REQUIRED_FIELDS if getattr(self, name) is None]

    @property
    def is_complete(self) -> bool:
        return not self.missing_required


@dataclass(frozen=True)
class TradeLeg:
    """
    One normalized BUY or SELL execution.

    Attributes:
        trade_date: Execution date
        symbol: Upper-cased trading symbol
        quantity: Filled quantity (> 0)
        price: Execution price (> 0)
        side: BUY or SELL
        instrument_class: EQUITY, FUTURE or OPTION
        lot_size: Contract multiplier (>= 1)
        segment: Exchange segment label
        leg_id: Identifier of the source row or record
        source_row: 1-based data row number, when parsed from text
    """
    trade_date: date
    symbol: str
    quantity: Decimal
    price: Decimal
    side: Side
    instrument_class: InstrumentClass = InstrumentClass.EQUITY
    lot_size: int = 1
    segment: str = "NSE"
    leg_id: str = ""
    source_row: Optional[int] = None

    @property
    def trade_value(self) -> Decimal:
        """Price times quantity."""
        return self.price * self.quantity

    @property
    def is_buy(self) -> bool:
        return self.side == Side.BUY

    @property
    def is_sell(self) -> bool:
        return self.side == Side.SELL


@dataclass(frozen=True)
class RowReject:
    """
    A raw row the parser dropped, with the first failing check.

    Attributes:
        row_number: 1-based data row number (or record index)
        reason: Which validation failed
        detail: Human-readable explanation
        raw: The row as read from the input
    """
    row_number: int
    reason: RejectReason
    detail: str
    raw: dict = field(default_factory=dict)


@dataclass
class ParseResult:
    """Legs produced from an input plus the rows that were dropped."""
    legs: list[TradeLeg]
    rejects: list[RowReject]

    @property
    def total_rows(self) -> int:
        return len(self.legs) + len(self.rejects)


@dataclass
class OpenLot:
    """
    Entry of a per-symbol open-position queue.

    Mutated in place by the matcher; removed once remaining_quantity is zero.
    """
    buy_leg: TradeLeg
    remaining_quantity: Decimal


@dataclass(frozen=True)
class MatchedTrade:
    """
    One ledger record emitted by the FIFO matcher.

    Realized records pair a SELL leg with the BUY it closed. Open records carry
    no P&L: an open-long record is emitted for every BUY, and an open-short
    record for SELL quantity that found nothing to close.

    Attributes:
        leg: Leg that produced this record (SELL for realized/open-short)
        buy_leg: Matched BUY leg, or None for open records
        quantity: Quantity covered by this record
        gross_pnl: Realized P&L before charges (None when open)
        charges: Full-leg charges of `leg`, booked on its first record only
        net_pnl: gross_pnl minus buy and sell leg charges (None when open)
        entry_price: BUY price, when known
        exit_price: SELL price, when known
        status: OPEN_LONG, REALIZED or OPEN_SHORT
        buy_charges: Full charges of the matched BUY leg
        sell_charges: Full charges of the SELL leg
    """
    leg: TradeLeg
    buy_leg: Optional[TradeLeg]
    quantity: Decimal
    gross_pnl: Optional[Decimal]
    charges: Decimal
    net_pnl: Optional[Decimal]
    entry_price: Optional[Decimal]
    exit_price: Optional[Decimal]
    status: RecordStatus
    buy_charges: Decimal = Decimal("0")
    sell_charges: Decimal = Decimal("0")

    @property
    def is_realized(self) -> bool:
        return self.net_pnl is not None

    @property
    def symbol(self) -> str:
        return self.leg.symbol

    @property
    def trade_date(self) -> date:
        return self.leg.trade_date


@dataclass(frozen=True)
class LedgerSummary:
    """
    Portfolio aggregates derived from a full ledger.

    Attributes:
        total_pnl: Sum of gross P&L over realized records
        total_charges: Sum of charges over all records
        net_pnl: Sum of net P&L over realized records
        realized_count: Number of realized records
        open_position_count: Number of open records
    """
    total_pnl: Decimal
    total_charges: Decimal
    net_pnl: Decimal
    realized_count: int
    open_position_count: int


@dataclass
class ChargeSchedule:
    """
    Rates used by the charges calculator.

    Attributes:
        brokerage_rate: Brokerage as a fraction of effective value
        brokerage_cap: Flat cap on brokerage per leg
        stt_rate: Securities transaction tax, SELL legs only
        exchange_txn_rate: Exchange transaction charge
        gst_rate: GST on brokerage plus exchange transaction charge
        stamp_duty_rate: Stamp duty, BUY legs only
    """
    brokerage_rate: Decimal = Decimal("0.0003")
    brokerage_cap: Decimal = Decimal("20")
    stt_rate: Decimal = Decimal("0.001")
    exchange_txn_rate: Decimal = Decimal("0.0000325")
    gst_rate: Decimal = Decimal("0.18")
    stamp_duty_rate: Decimal = Decimal("0.00003")


@dataclass
class LedgerConfig:
    """
    Reconciliation configuration loaded from YAML.

    Attributes:
        account_id: Account the ledger belongs to
        charges: Charge rates
        max_rows: Optional cap on input rows/records per run
        require_full_confidence: Reject imports missing a required column
        default_segment: Segment used when a row carries none
        output_dir: Directory for output files
    """
    account_id: str = "default"
    charges: ChargeSchedule = field(default_factory=ChargeSchedule)
    max_rows: Optional[int] = None
    require_full_confidence: bool = False
    default_segment: str = "NSE"
    output_dir: str = "output"


@dataclass
class DecisionLogEntry:
    """
    Entry for the append-only decision log.

    Attributes:
        timestamp: When the action occurred
        action_type: Type of action
        account_id: Account involved (if applicable)
        details: JSON-serializable details dictionary
    """
    timestamp: datetime
    action_type: ActionType
    account_id: Optional[str]
    details: dict

    @classmethod
    def create(
        cls,
        action_type: ActionType,
        account_id: Optional[str],
        details: dict,
    ) -> "DecisionLogEntry":
        """Factory method with auto-generated timestamp."""
        return cls(
            timestamp=datetime.now(),
            action_type=action_type,
            account_id=account_id,
            details=details,
        )
