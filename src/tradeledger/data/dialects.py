"""
Broker dialects: known export conventions and how to recognize them.

A dialect is recognized heuristically, first by broker names appearing in the
headers or the start of the file, then by characteristic header combinations.
"""

from dataclasses import dataclass, field
from typing import Optional


UNKNOWN_DIALECT = "unknown"

# How much of the raw text is searched for broker names.
CONTENT_SCAN_CHARS = 500


@dataclass(frozen=True)
class BrokerPreset:
    """
    Known export layout of one broker.

    Attributes:
        name: Display name of the export
        broker: Dialect label
        columns: Semantic field -> header name used by this broker
        timezone: Timezone the export timestamps are in
        date_format: Date layout hint for reviewers
        description: Short description
    """
    name: str
    broker: str
    columns: dict[str, str] = field(default_factory=dict)
    timezone: str = "UTC"
    date_format: str = "auto-detect"
    description: str = ""


BROKER_PRESETS: dict[str, BrokerPreset] = {
    "zerodha": BrokerPreset(
        name="Zerodha Tradebook",
        broker="zerodha",
        columns={
            "symbol": "Tradingsymbol",
            "side": "Transaction Type",
            "quantity": "Quantity",
            "price": "Price",
            "date": "Trade Date",
            "instrument_type": "Product",
        },
        timezone="Asia/Kolkata",
        date_format="yyyy-MM-dd",
        description="Standard Zerodha tradebook CSV export",
    ),
    "upstox": BrokerPreset(
        name="Upstox Tradebook",
        broker="upstox",
        columns={
            "symbol": "Symbol",
            "side": "Side",
            "quantity": "Qty",
            "price": "Price",
            "date": "Date",
            "instrument_type": "Product Type",
        },
        timezone="Asia/Kolkata",
        date_format="dd-MM-yyyy",
        description="Standard Upstox tradebook CSV export",
    ),
    "angelone": BrokerPreset(
        name="Angel One Tradebook",
        broker="angelone",
        columns={
            "symbol": "Instrument",
            "side": "Buy/Sell",
            "quantity": "Qty",
            "price": "Price",
            "date": "Trade Date",
            "instrument_type": "Product",
        },
        timezone="Asia/Kolkata",
        date_format="dd/MM/yyyy",
        description="Standard Angel One tradebook CSV export",
    ),
    "generic": BrokerPreset(
        name="Generic CSV",
        broker="generic",
        description="Manual column mapping for any CSV format",
    ),
}

# Broker names searched for in headers and leading text, in priority order.
_BROKER_MARKERS = [
    ("zerodha", ("zerodha", "kite")),
    ("upstox", ("upstox",)),
    ("angelone", ("angelone", "angel")),
    ("groww", ("groww",)),
    ("icici", ("icici",)),
    ("hdfc", ("hdfc",)),
    ("kotak", ("kotak",)),
]

# Header combinations characteristic of a broker's export.
_HEADER_SIGNATURES = [
    ("zerodha", ("tradingsymbol", "transaction type")),
    ("upstox", ("symbol", "side", "qty")),
    ("angelone", ("instrument", "buy/sell", "order no")),
]


def detect_dialect(headers: list[str], text: str = "") -> str:
    """
    Best-guess broker dialect for an export.

    Args:
        headers: Header names of the export
        text: Raw export text; only the first 500 characters are searched

    Returns:
        Dialect label, or "unknown"
    """
    headers_str = ",".join(headers).lower()
    content_str = text[:CONTENT_SCAN_CHARS].lower()

    for broker, markers in _BROKER_MARKERS:
        if any(m in headers_str or m in content_str for m in markers):
            return broker

    return detect_dialect_from_headers(headers) or UNKNOWN_DIALECT


def detect_dialect_from_headers(headers: list[str]) -> Optional[str]:
    """Recognize a broker from characteristic header combinations."""
    header_str = " ".join(headers).lower()
    for broker, required in _HEADER_SIGNATURES:
        if all(token in header_str for token in required):
            return broker
    return None


def get_preset_for_dialect(dialect: str) -> Optional[BrokerPreset]:
    """Get the preset for a dialect label, if one is known."""
    return BROKER_PRESETS.get(dialect)
