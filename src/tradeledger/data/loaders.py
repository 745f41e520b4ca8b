"""
Data loading and saving functions for trade exports and ledger files.

Handles reading raw export text into header-keyed rows, and output of the
reconciled ledger and reject list to CSV (plus reading a saved ledger back so
its summary can be recomputed).
"""

import csv
import io
import json
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Optional

import pandas as pd

from tradeledger.data.schemas import LEDGER_SCHEMA, REJECTS_SCHEMA, FileSchema
from tradeledger.models import (
    InstrumentClass,
    MatchedTrade,
    RawRow,
    RecordStatus,
    RowReject,
    Side,
    TradeLeg,
)


class DataLoadError(Exception):
    """Raised when data cannot be loaded or is invalid."""
    pass


class EmptyInputError(DataLoadError):
    """Raised when an export has no header or no data rows."""
    pass


def read_csv_rows(text: str) -> tuple[list[str], list[RawRow]]:
    """
    Split export text into trimmed headers and header-keyed rows.

    Blank lines are skipped; a leading byte-order mark is ignored.

    Args:
        text: Export text, already decoded

    Returns:
        Tuple of (headers, rows)
    """
    if not text or not text.strip():
        return [], []

    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    if not reader.fieldnames:
        return [], []

    headers = [h.strip() for h in reader.fieldnames]
    rows: list[RawRow] = []
    for record in reader:
        row = {
            key.strip(): (value or "").strip()
            for key, value in record.items()
            if key is not None and isinstance(value, (str, type(None)))
        }
        if not any(row.values()):
            continue
        rows.append(row)

    return headers, rows


def read_export_file(file_path: str | Path) -> str:
    """
    Read a trade export from disk.

    Raises:
        DataLoadError: If the file is missing or cannot be decoded
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise DataLoadError(f"File not found: {file_path}")
    try:
        return file_path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise DataLoadError(f"Failed to read {file_path}: {e}")


def read_broker_records(file_path: str | Path) -> list[dict]:
    """
    Read broker API records saved as a JSON array.

    Raises:
        DataLoadError: If the file is missing or not a JSON array of objects
    """
    text = read_export_file(file_path)
    try:
        records = json.loads(text)
    except json.JSONDecodeError as e:
        raise DataLoadError(f"Invalid JSON in {file_path}: {e}")
    if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
        raise DataLoadError(f"{file_path} must contain a JSON array of objects")
    return records


def _num(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


def ledger_to_dataframe(records: list[MatchedTrade]) -> pd.DataFrame:
    """Convert ledger records to a pandas DataFrame, one row per record."""
    rows = []
    for rec in records:
        buy = rec.buy_leg
        rows.append({
            "status": rec.status.value,
            "trade_date": rec.leg.trade_date.isoformat(),
            "symbol": rec.leg.symbol,
            "side": rec.leg.side.value,
            "quantity": float(rec.quantity),
            "price": float(rec.leg.price),
            "instrument_class": rec.leg.instrument_class.value,
            "lot_size": rec.leg.lot_size,
            "segment": rec.leg.segment,
            "leg_id": rec.leg.leg_id,
            "leg_quantity": float(rec.leg.quantity),
            "buy_leg_id": buy.leg_id if buy else None,
            "buy_trade_date": buy.trade_date.isoformat() if buy else None,
            "buy_quantity": float(buy.quantity) if buy else None,
            "pnl": _num(rec.gross_pnl),
            "charges": float(rec.charges),
            "net_pnl": _num(rec.net_pnl),
            "entry_price": _num(rec.entry_price),
            "exit_price": _num(rec.exit_price),
            "buy_charges": float(rec.buy_charges),
            "sell_charges": float(rec.sell_charges),
        })
    return pd.DataFrame(rows, columns=LEDGER_SCHEMA.all_columns)


def save_ledger(
    records: list[MatchedTrade],
    output_path: str | Path,
) -> Path:
    """
    Save ledger records to CSV file.

    Args:
        records: Records produced by the matcher
        output_path: Path for output CSV file

    Returns:
        Path to the saved file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    df = ledger_to_dataframe(records)
    df.to_csv(output_path, index=False)

    return output_path


def save_rejects(
    rejects: list[RowReject],
    output_path: str | Path,
) -> Path:
    """
    Save the reject list to CSV file.

    Args:
        rejects: Rows dropped by the parser
        output_path: Path for output CSV file

    Returns:
        Path to the saved file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    records = []
    for rej in rejects:
        records.append({
            "row_number": rej.row_number,
            "reason": rej.reason.value,
            "detail": rej.detail,
            "raw": json.dumps(rej.raw, default=str),
        })

    df = pd.DataFrame(records, columns=REJECTS_SCHEMA.all_columns)
    df.to_csv(output_path, index=False)

    return output_path


def _opt_decimal(value: str) -> Optional[Decimal]:
    return Decimal(value) if value != "" else None


def _row_to_record(row: dict) -> MatchedTrade:
    instrument_class = InstrumentClass(row["instrument_class"])
    lot_size = int(float(row["lot_size"]))
    quantity = Decimal(row["quantity"])

    leg = TradeLeg(
        trade_date=date.fromisoformat(row["trade_date"]),
        symbol=row["symbol"],
        quantity=Decimal(row.get("leg_quantity") or row["quantity"]),
        price=Decimal(row["price"]),
        side=Side(row["side"]),
        instrument_class=instrument_class,
        lot_size=lot_size,
        segment=row["segment"],
        leg_id=row["leg_id"],
    )

    buy_leg = None
    if row.get("buy_leg_id"):
        buy_leg = TradeLeg(
            trade_date=date.fromisoformat(row["buy_trade_date"]),
            symbol=row["symbol"],
            quantity=Decimal(row.get("buy_quantity") or row["quantity"]),
            price=Decimal(row["entry_price"]),
            side=Side.BUY,
            instrument_class=instrument_class,
            lot_size=lot_size,
            segment=row["segment"],
            leg_id=row["buy_leg_id"],
        )

    return MatchedTrade(
        leg=leg,
        buy_leg=buy_leg,
        quantity=quantity,
        gross_pnl=_opt_decimal(row["pnl"]),
        charges=Decimal(row["charges"]),
        net_pnl=_opt_decimal(row["net_pnl"]),
        entry_price=_opt_decimal(row.get("entry_price", "")),
        exit_price=_opt_decimal(row.get("exit_price", "")),
        status=RecordStatus(row["status"]),
        buy_charges=Decimal(row.get("buy_charges") or "0"),
        sell_charges=Decimal(row.get("sell_charges") or "0"),
    )


def load_ledger(file_path: str | Path) -> list[MatchedTrade]:
    """
    Load ledger records previously written by save_ledger.

    Args:
        file_path: Path to ledger CSV file

    Returns:
        List of MatchedTrade records, in file order

    Raises:
        DataLoadError: If the file cannot be loaded or is invalid
    """
    file_path = Path(file_path)
    df = _load_csv(file_path, LEDGER_SCHEMA)

    records = []
    for index, row in enumerate(df.to_dict(orient="records"), start=1):
        try:
            records.append(_row_to_record(row))
        except (ValueError, KeyError, ArithmeticError) as e:
            raise DataLoadError(f"Invalid ledger row {index} in {file_path}: {e}")

    return records


def _load_csv(file_path: Path, schema: FileSchema) -> pd.DataFrame:
    """
    Load a CSV file as strings and validate against schema.

    Args:
        file_path: Path to CSV file
        schema: Expected file schema

    Returns:
        Loaded DataFrame

    Raises:
        DataLoadError: If file cannot be loaded or has missing columns
    """
    if not file_path.exists():
        raise DataLoadError(f"File not found: {file_path}")

    try:
        df = pd.read_csv(file_path, dtype=str, keep_default_na=False)
    except Exception as e:
        raise DataLoadError(f"Failed to load CSV file {file_path}: {e}")

    is_valid, missing = schema.validate_columns(df.columns.tolist())
    if not is_valid:
        raise DataLoadError(
            f"File {file_path} is missing required columns: {missing}"
        )

    return df
