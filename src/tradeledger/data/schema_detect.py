"""
Column auto-detection for broker trade exports.

Maps free-form header names onto the semantic fields the row parser needs,
using an ordered synonym table and normalized string containment. Detection
is a pure function of headers, sample rows and leading text; a partial mapping
is still returned when required fields are missing, and the caller decides
whether manual confirmation is needed.
"""

import logging
import re
from dataclasses import dataclass

from tradeledger.data.dates import looks_like_date
from tradeledger.data.dialects import detect_dialect, get_preset_for_dialect
from tradeledger.data.loaders import EmptyInputError, read_csv_rows
from tradeledger.data.rows import BUY_TOKENS, SELL_TOKENS
from tradeledger.models import ColumnMapping, MAPPING_FIELDS, RawRow, REQUIRED_FIELDS


logger = logging.getLogger(__name__)

SAMPLE_ROW_COUNT = 5

# Synonyms per semantic field. Dict order is the field iteration order.
COLUMN_SYNONYMS: dict[str, list[str]] = {
    "date": [
        "date", "trade_date", "tradedate", "order_execution_time", "execution_time",
        "timestamp", "datetime", "trade date", "order date", "time", "executed_at",
        "order_time", "fill_time", "transaction_date", "execution_date",
    ],
    "symbol": [
        "symbol", "tradingsymbol", "trading_symbol", "scrip", "instrument",
        "stock", "ticker", "instrument_name", "scrip name", "stock name",
        "security", "script", "company", "underlying",
    ],
    "quantity": [
        "quantity", "qty", "volume", "trade_qty", "filled_quantity",
        "filled_qty", "executed_qty", "order_qty", "lot size", "lots",
        "contracts", "shares", "units",
    ],
    "price": [
        "price", "trade_price", "executed_price", "avg_price", "average_price",
        "rate", "ltp", "last_traded_price", "execution_price", "fill price",
        "fill_price", "trade rate", "executed rate", "order_price",
    ],
    "side": [
        "trade_type", "tradetype", "type", "transaction_type", "transaction",
        "order_type", "buy_sell", "side", "action", "direction", "b/s", "buy/sell",
        "order_side", "trade side", "buy or sell",
    ],
    "instrument_type": [
        "instrument_type", "segment", "product", "series", "exchange",
        "market", "category", "asset_class", "instrument", "product_type",
    ],
    "lot_size": [
        "lot_size", "lotsize", "lot", "multiplier", "contract_size",
        "lot multiplier", "contract multiplier",
    ],
    "segment": [
        "segment", "exchange", "market", "exchange_segment", "segment_name",
        "market segment", "trading segment",
    ],
}

_SEPARATORS = re.compile(r"[_\s-]")
_DATE_HINT = re.compile(r"[-/A-Za-z]")


@dataclass
class DetectedFormat:
    """Result of detecting the layout of an export."""
    mapping: ColumnMapping
    headers: list[str]
    sample_rows: list[RawRow]


def normalize_header(value: str) -> str:
    """Lower-case and strip separators ("Trade Date" -> "tradedate")."""
    return _SEPARATORS.sub("", value.strip().lower())


def _header_matches(header_norm: str, synonyms: list[str]) -> bool:
    for synonym in synonyms:
        synonym_norm = normalize_header(synonym)
        if synonym_norm in header_norm or header_norm in synonym_norm:
            return True
    return False


def _match_headers(headers: list[str]) -> dict[str, str]:
    """First matching header per field, each header claimed at most once."""
    matched: dict[str, str] = {}
    claimed: set[str] = set()

    for field_name, synonyms in COLUMN_SYNONYMS.items():
        for header in headers:
            if header in claimed:
                continue
            header_norm = normalize_header(header)
            if not header_norm:
                continue
            if _header_matches(header_norm, synonyms):
                matched[field_name] = header
                claimed.add(header)
                break

    return matched


def _fill_from_preset(matched: dict[str, str], headers: list[str], dialect: str) -> None:
    preset = get_preset_for_dialect(dialect)
    if preset is None:
        return

    by_lower = {h.strip().lower(): h for h in headers}
    claimed = set(matched.values())
    for field_name, column in preset.columns.items():
        if field_name in matched:
            continue
        header = by_lower.get(column.lower())
        if header is not None and header not in claimed:
            matched[field_name] = header
            claimed.add(header)


def _sample_values(sample_rows: list[RawRow], header: str) -> list[str]:
    values = []
    for row in sample_rows:
        cell = row.get(header)
        if cell is not None and str(cell).strip():
            values.append(str(cell).strip())
    return values


def _looks_like_side(values: list[str]) -> bool:
    tokens = BUY_TOKENS | SELL_TOKENS
    return bool(values) and all(v.upper() in tokens for v in values)


def _looks_like_date(values: list[str]) -> bool:
    # bare numbers ("2024", "150") are quantities or prices, not dates
    if not values or not all(_DATE_HINT.search(v) for v in values):
        return False
    return all(looks_like_date(v) for v in values)


def _infer_from_samples(
    matched: dict[str, str],
    headers: list[str],
    sample_rows: list[RawRow],
) -> list[str]:
    """Map date/side from sample content when no header matched them."""
    inferred: list[str] = []
    if not sample_rows:
        return inferred

    checks = [("date", _looks_like_date), ("side", _looks_like_side)]
    for field_name, looks_like in checks:
        if field_name in matched:
            continue
        claimed = set(matched.values())
        for header in headers:
            if header in claimed:
                continue
            if looks_like(_sample_values(sample_rows, header)):
                matched[field_name] = header
                inferred.append(field_name)
                break

    return inferred


def detect_column_mapping(
    headers: list[str],
    sample_rows: list[RawRow] | None = None,
    text: str = "",
) -> ColumnMapping:
    """
    Infer which header holds which semantic field.

    Args:
        headers: Header names, in file order
        sample_rows: Up to five parsed rows, used when headers are unhelpful
        text: Raw export text, searched for broker names

    Returns:
        ColumnMapping with confidence = required fields matched / 4 * 100
    """
    headers = [h.strip() for h in headers]
    sample_rows = list(sample_rows or [])[:SAMPLE_ROW_COUNT]

    matched = _match_headers(headers)
    dialect = detect_dialect(headers, text)
    _fill_from_preset(matched, headers, dialect)
    inferred = _infer_from_samples(matched, headers, sample_rows)

    required_matches = sum(1 for f in REQUIRED_FIELDS if f in matched)
    confidence = round(required_matches / len(REQUIRED_FIELDS) * 100)

    mapping = ColumnMapping(
        **{f: matched.get(f) for f in MAPPING_FIELDS},
        confidence=confidence,
        dialect=dialect,
        inferred_fields=tuple(inferred),
    )

    logger.info(
        "Detected mapping (confidence %d%%, dialect %s): %s",
        confidence, dialect, mapping.as_dict(),
    )
    if mapping.missing_required:
        logger.info("Unmapped required fields: %s", mapping.missing_required)

    return mapping


def detect_format(text: str) -> DetectedFormat:
    """
    Detect the column mapping of a raw export.

    Args:
        text: Export text, already decoded

    Returns:
        DetectedFormat with the mapping, headers and sample rows

    Raises:
        EmptyInputError: If the text has no header or no data rows
    """
    headers, rows = read_csv_rows(text)
    if not rows:
        raise EmptyInputError("CSV file is empty or invalid")

    sample_rows = rows[:SAMPLE_ROW_COUNT]
    mapping = detect_column_mapping(headers, sample_rows, text)
    return DetectedFormat(mapping=mapping, headers=headers, sample_rows=sample_rows)
