"""
Row parsing and normalization.

Applies a ColumnMapping to raw rows and coerces each into a TradeLeg. Rows
that fail validation are dropped with a structured reject reason instead of
raising, so one bad line never sinks an import.
"""

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from tradeledger.data.dates import parse_trade_date
from tradeledger.models import (
    ColumnMapping,
    InstrumentClass,
    ParseResult,
    RawRow,
    RejectReason,
    RowReject,
    Side,
    TradeLeg,
)


logger = logging.getLogger(__name__)

BUY_TOKENS = frozenset({"BUY", "B", "BOUGHT", "LONG", "PURCHASE", "PURCHASED"})
SELL_TOKENS = frozenset({"SELL", "S", "SOLD", "SHORT", "SALE"})

DEFAULT_SEGMENT = "NSE"

# Ordered substring rules over "<instrument type> <segment>", first hit wins.
_INSTRUMENT_RULES = [
    (InstrumentClass.FUTURE, ("FUT",)),
    (InstrumentClass.OPTION, ("OPT", "CE", "PE", "CALL", "PUT")),
    (InstrumentClass.EQUITY, ("EQ", "CASH", "DELIVERY")),
]

_NON_NUMERIC = re.compile(r"[^\d.\-]")
_LEADING_NUMBER = re.compile(r"^-?(?:\d+\.?\d*|\.\d+)")


def _finite(number: Decimal) -> Decimal:
    return number if number.is_finite() else Decimal("0")


def parse_number(value) -> Decimal:
    """
    Parse a numeric cell, ignoring currency symbols and separators.

    Non-numeric characters are stripped and the leading number is read
    ("1,234.50" -> 1234.50, "Rs 99" -> 99). Anything unreadable, NaN or
    infinite is 0. Never raises.
    """
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return _finite(value)
    if isinstance(value, (int, float)):
        try:
            return _finite(Decimal(str(value)))
        except InvalidOperation:
            return Decimal("0")

    cleaned = _NON_NUMERIC.sub("", str(value))
    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        return Decimal("0")
    try:
        return _finite(Decimal(match.group(0)))
    except InvalidOperation:
        return Decimal("0")


def parse_lot_size(value) -> int:
    """Parse a lot size; missing, zero or negative values mean 1."""
    lot_size = int(parse_number(value))
    return lot_size if lot_size >= 1 else 1


def normalize_side(value) -> Side:
    """
    Normalize a BUY/SELL token.

    Unrecognized or empty values default to BUY.
    """
    if not value:
        return Side.BUY

    normalized = str(value).upper().strip()
    if normalized in BUY_TOKENS:
        return Side.BUY
    if normalized in SELL_TOKENS:
        return Side.SELL

    logger.debug('Unrecognized side "%s", defaulting to BUY', value)
    return Side.BUY


def classify_instrument(instrument_type: str = "", segment: str = "") -> InstrumentClass:
    """Classify from combined instrument-type and segment text (default EQUITY)."""
    combined = f"{instrument_type or ''} {segment or ''}".upper()
    for instrument_class, markers in _INSTRUMENT_RULES:
        if any(marker in combined for marker in markers):
            return instrument_class
    return InstrumentClass.EQUITY


def _cell(row: RawRow, header: Optional[str], default: str) -> str:
    if header is None:
        return default
    value = row.get(header)
    if value is None:
        return default
    return str(value).strip()


def build_leg(
    fields: dict,
    row_number: int,
    leg_id: str,
    default_segment: str = DEFAULT_SEGMENT,
    raw: Optional[dict] = None,
) -> Union[TradeLeg, RowReject]:
    """
    Coerce semantic field values into a TradeLeg, or explain why not.

    Args:
        fields: Values keyed by semantic field name
        row_number: 1-based position of the row or record
        leg_id: Identifier to give the leg
        default_segment: Segment used when the row carries none
        raw: Original row, kept on rejects

    Returns:
        TradeLeg, or RowReject for the first failing check
    """
    raw = raw if raw is not None else dict(fields)

    date_value = fields.get("date")
    trade_date = parse_trade_date(date_value)
    if trade_date is None:
        return RowReject(row_number, RejectReason.INVALID_DATE,
                         f"Could not parse date: {date_value!r}", raw)

    symbol = str(fields.get("symbol") or "").strip().upper()
    if not symbol:
        return RowReject(row_number, RejectReason.MISSING_SYMBOL, "Symbol is empty", raw)

    quantity = parse_number(fields.get("quantity"))
    if quantity <= 0:
        return RowReject(row_number, RejectReason.NON_POSITIVE_QUANTITY,
                         f"Quantity must be positive, got {quantity}", raw)

    price = parse_number(fields.get("price"))
    if price <= 0:
        return RowReject(row_number, RejectReason.NON_POSITIVE_PRICE,
                         f"Price must be positive, got {price}", raw)

    instrument_type = str(fields.get("instrument_type") or "").strip()
    segment = str(fields.get("segment") or "").strip()

    return TradeLeg(
        trade_date=trade_date,
        symbol=symbol,
        quantity=quantity,
        price=price,
        side=normalize_side(fields.get("side")),
        instrument_class=classify_instrument(instrument_type, segment),
        lot_size=parse_lot_size(fields.get("lot_size")),
        segment=segment or default_segment,
        leg_id=leg_id,
        source_row=row_number,
    )


def parse_rows(
    rows: list[RawRow],
    mapping: ColumnMapping,
    default_segment: str = DEFAULT_SEGMENT,
) -> ParseResult:
    """
    Parse raw rows into trade legs using a column mapping.

    A row is dropped when its date cannot be normalized, its symbol is empty,
    or its quantity or price is not positive.

    Args:
        rows: Raw rows keyed by header
        mapping: Detected (or manually corrected) column mapping
        default_segment: Segment used when a row carries none

    Returns:
        ParseResult with the valid legs and a reject per dropped row
    """
    legs: list[TradeLeg] = []
    rejects: list[RowReject] = []

    for index, row in enumerate(rows, start=1):
        if not row or not any(str(v).strip() for v in row.values() if v is not None):
            continue

        fields = {
            "date": _cell(row, mapping.date, ""),
            "symbol": _cell(row, mapping.symbol, ""),
            "quantity": _cell(row, mapping.quantity, "0"),
            "price": _cell(row, mapping.price, "0"),
            "side": _cell(row, mapping.side, ""),
            "instrument_type": _cell(row, mapping.instrument_type, ""),
            "lot_size": _cell(row, mapping.lot_size, "1"),
            "segment": _cell(row, mapping.segment, ""),
        }

        result = build_leg(fields, index, f"row-{index}", default_segment, raw=dict(row))
        if isinstance(result, RowReject):
            logger.debug("Dropped row %d: %s", index, result.detail)
            rejects.append(result)
        else:
            legs.append(result)

    logger.info("Parsed %d valid trades from %d rows (%d rejected)",
                len(legs), len(legs) + len(rejects), len(rejects))
    return ParseResult(legs=legs, rejects=rejects)
