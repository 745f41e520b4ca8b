"""
Data ingestion module for the trade ledger.

Provides date normalization, column detection, row parsing, broker record
adapters, and CSV persistence of ledgers and reject lists.
"""

from tradeledger.data.dates import normalize_date, parse_trade_date
from tradeledger.data.schema_detect import detect_column_mapping, detect_format
from tradeledger.data.rows import parse_rows
from tradeledger.data.broker_records import parse_broker_records, get_adapter
from tradeledger.data.loaders import (
    read_export_file,
    read_broker_records,
    save_ledger,
    save_rejects,
    load_ledger,
)
from tradeledger.data.schemas import (
    LEDGER_SCHEMA,
    REJECTS_SCHEMA,
)

__all__ = [
    "normalize_date",
    "parse_trade_date",
    "detect_column_mapping",
    "detect_format",
    "parse_rows",
    "parse_broker_records",
    "get_adapter",
    "read_export_file",
    "read_broker_records",
    "save_ledger",
    "save_rejects",
    "load_ledger",
    "LEDGER_SCHEMA",
    "REJECTS_SCHEMA",
]
