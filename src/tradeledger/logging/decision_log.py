"""
Append-only decision logging for the trade ledger.

Every reconciliation step (config, detected mapping, parse outcome, ledger
totals) is written as one JSON line so a run can be audited and reproduced.
"""

import json
from datetime import datetime, date
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

from tradeledger.models import (
    ActionType,
    ColumnMapping,
    DecisionLogEntry,
    LedgerConfig,
    LedgerSummary,
    ParseResult,
)


class DecisionLogger:
    """
    Append-only decision logger.

    Writes all decisions to a JSONL file for audit purposes.
    Each line is a complete JSON object representing one action.
    """

    def __init__(self, log_path: str | Path):
        """
        Initialize the decision logger.

        Args:
            log_path: Path to the log file (will be created if not exists)
        """
        self.log_path = Path(log_path)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)

    def log(self, entry: DecisionLogEntry) -> None:
        """
        Write a decision log entry.

        Args:
            entry: DecisionLogEntry to write
        """
        record = {
            "timestamp": entry.timestamp.isoformat(),
            "action_type": entry.action_type.value,
            "account_id": entry.account_id,
            "details": entry.details,
        }

        with open(self.log_path, "a") as f:
            f.write(json.dumps(record, cls=DecimalEncoder) + "\n")

    def log_config_loaded(
        self,
        config: LedgerConfig,
        config_path: str,
    ) -> None:
        """
        Log configuration loading.

        Args:
            config: Loaded configuration
            config_path: Path to configuration file
        """
        charges = config.charges
        details = {
            "config_path": config_path,
            "max_rows": config.max_rows,
            "require_full_confidence": config.require_full_confidence,
            "default_segment": config.default_segment,
            "charges": {
                "brokerage_rate": str(charges.brokerage_rate),
                "brokerage_cap": str(charges.brokerage_cap),
                "stt_rate": str(charges.stt_rate),
                "exchange_txn_rate": str(charges.exchange_txn_rate),
                "gst_rate": str(charges.gst_rate),
                "stamp_duty_rate": str(charges.stamp_duty_rate),
            },
        }

        entry = DecisionLogEntry.create(
            action_type=ActionType.CONFIG_LOADED,
            account_id=config.account_id,
            details=details,
        )
        self.log(entry)

    def log_schema_detected(
        self,
        account_id: str,
        mapping: ColumnMapping,
    ) -> None:
        """
        Log the column mapping chosen for an import.

        Args:
            account_id: Account identifier
            mapping: Detected column mapping
        """
        details = {
            "confidence": mapping.confidence,
            "dialect": mapping.dialect,
            "mapping": mapping.as_dict(),
            "missing_required": mapping.missing_required,
            "inferred_fields": list(mapping.inferred_fields),
        }

        entry = DecisionLogEntry.create(
            action_type=ActionType.SCHEMA_DETECTED,
            account_id=account_id,
            details=details,
        )
        self.log(entry)

    def log_rows_parsed(
        self,
        account_id: str,
        result: ParseResult,
    ) -> None:
        """
        Log row parsing outcome.

        Args:
            account_id: Account identifier
            result: Legs and rejects from the row parser
        """
        reasons: dict[str, int] = {}
        for reject in result.rejects:
            reasons[reject.reason.value] = reasons.get(reject.reason.value, 0) + 1

        details = {
            "total_rows": result.total_rows,
            "valid_legs": len(result.legs),
            "rejected_rows": len(result.rejects),
            "reject_reasons": reasons,
            "rejected_row_numbers": [r.row_number for r in result.rejects[:20]],  # First 20
        }

        entry = DecisionLogEntry.create(
            action_type=ActionType.ROWS_PARSED,
            account_id=account_id,
            details=details,
        )
        self.log(entry)

    def log_ledger_reconciled(
        self,
        account_id: str,
        summary: LedgerSummary,
        open_positions: dict[str, Decimal],
    ) -> None:
        """
        Log ledger totals after matching.

        Args:
            account_id: Account identifier
            summary: Ledger summary
            open_positions: Unmatched BUY quantity per symbol
        """
        details = {
            "total_pnl": str(summary.total_pnl),
            "total_charges": str(summary.total_charges),
            "net_pnl": str(summary.net_pnl),
            "realized_count": summary.realized_count,
            "open_position_count": summary.open_position_count,
            "open_positions": {s: str(q) for s, q in open_positions.items()},
        }

        entry = DecisionLogEntry.create(
            action_type=ActionType.LEDGER_RECONCILED,
            account_id=account_id,
            details=details,
        )
        self.log(entry)

    def read_log(
        self,
        account_id: Optional[str] = None,
        action_type: Optional[ActionType] = None,
    ) -> list[DecisionLogEntry]:
        """
        Read entries back from the log file, oldest first.

        Args:
            account_id: Only entries for this account
            action_type: Only entries of this action type

        Returns:
            List of DecisionLogEntry objects
        """
        if not self.log_path.exists():
            return []

        entries = []
        with open(self.log_path, "r") as f:
            for line in f:
                if not line.strip():
                    continue
                entry = _entry_from_json(line)
                if account_id is not None and entry.account_id != account_id:
                    continue
                if action_type is not None and entry.action_type != action_type:
                    continue
                entries.append(entry)

        return entries


def _entry_from_json(line: str) -> DecisionLogEntry:
    record = json.loads(line)
    return DecisionLogEntry(
        timestamp=datetime.fromisoformat(record["timestamp"]),
        action_type=ActionType(record["action_type"]),
        account_id=record.get("account_id"),
        details=record.get("details", {}),
    )


class DecimalEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal and date types."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, (date, datetime)):
            return obj.isoformat()
        return super().default(obj)
