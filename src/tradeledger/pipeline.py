"""
End-to-end reconciliation: detect, parse, match, summarize.

The stages are pure functions over their inputs; this module wires them
together, enforces the caller-facing limits in LedgerConfig and writes the
decision log when one is given.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from tradeledger.analytics.summary import summarize_ledger
from tradeledger.data.broker_records import BrokerRecordAdapter, parse_broker_records
from tradeledger.data.loaders import EmptyInputError, read_csv_rows
from tradeledger.data.rows import parse_rows
from tradeledger.data.schema_detect import SAMPLE_ROW_COUNT, detect_column_mapping
from tradeledger.ledger.matcher import FifoMatcher
from tradeledger.logging.decision_log import DecisionLogger
from tradeledger.models import (
    ColumnMapping,
    LedgerConfig,
    LedgerSummary,
    MatchedTrade,
    ParseResult,
    RowReject,
    TradeLeg,
)


logger = logging.getLogger(__name__)


class MappingConfidenceError(Exception):
    """Raised when full confidence is required and a required column is unmapped."""
    pass


class InputTooLargeError(Exception):
    """Raised when an input has more rows than the configured cap."""
    pass


@dataclass
class ReconciliationResult:
    """
    Everything produced by one reconciliation run.

    Attributes:
        mapping: Column mapping used (None for broker records)
        legs: Valid trade legs
        rejects: Rows or records dropped by the parser
        records: Ledger records from the matcher
        summary: Aggregates over records
        open_positions: Unmatched BUY quantity per symbol
    """
    mapping: Optional[ColumnMapping]
    legs: list[TradeLeg]
    rejects: list[RowReject]
    records: list[MatchedTrade]
    summary: LedgerSummary
    open_positions: dict[str, Decimal] = field(default_factory=dict)


def _check_size(count: int, config: LedgerConfig) -> None:
    if config.max_rows is not None and count > config.max_rows:
        raise InputTooLargeError(
            f"Input has {count} rows, more than the configured limit of {config.max_rows}"
        )


def reconcile_legs(
    legs: list[TradeLeg],
    config: Optional[LedgerConfig] = None,
    decision_logger: Optional[DecisionLogger] = None,
) -> tuple[list[MatchedTrade], LedgerSummary, dict[str, Decimal]]:
    """
    Match legs and summarize the resulting ledger.

    Args:
        legs: Valid trade legs, any order
        config: Ledger configuration (charge rates)
        decision_logger: Optional decision log

    Returns:
        Tuple of (records, summary, open_positions)
    """
    config = config or LedgerConfig()

    matcher = FifoMatcher(config.charges)
    records = matcher.run(legs)
    summary = summarize_ledger(records)
    open_positions = matcher.open_positions()

    logger.info(
        "Reconciled %d legs: %d realized, %d open, net P&L %s",
        len(legs), summary.realized_count, summary.open_position_count, summary.net_pnl,
    )

    if decision_logger is not None:
        decision_logger.log_ledger_reconciled(config.account_id, summary, open_positions)

    return records, summary, open_positions


def _finish(
    mapping: Optional[ColumnMapping],
    parsed: ParseResult,
    config: LedgerConfig,
    decision_logger: Optional[DecisionLogger],
) -> ReconciliationResult:
    if decision_logger is not None:
        decision_logger.log_rows_parsed(config.account_id, parsed)

    records, summary, open_positions = reconcile_legs(parsed.legs, config, decision_logger)
    return ReconciliationResult(
        mapping=mapping,
        legs=parsed.legs,
        rejects=parsed.rejects,
        records=records,
        summary=summary,
        open_positions=open_positions,
    )


def reconcile_text(
    text: str,
    config: Optional[LedgerConfig] = None,
    mapping: Optional[ColumnMapping] = None,
    decision_logger: Optional[DecisionLogger] = None,
) -> ReconciliationResult:
    """
    Reconcile a raw delimited export.

    Args:
        text: Export text, already decoded
        config: Ledger configuration
        mapping: Column mapping to use instead of detecting one
        decision_logger: Optional decision log

    Returns:
        ReconciliationResult

    Raises:
        EmptyInputError: If the text has no data rows
        InputTooLargeError: If the row count exceeds config.max_rows
        MappingConfidenceError: If full confidence is required but not reached
    """
    config = config or LedgerConfig()

    headers, rows = read_csv_rows(text)
    if not rows:
        raise EmptyInputError("CSV file is empty or invalid")
    _check_size(len(rows), config)

    if mapping is None:
        mapping = detect_column_mapping(headers, rows[:SAMPLE_ROW_COUNT], text)

    if decision_logger is not None:
        decision_logger.log_schema_detected(config.account_id, mapping)

    if config.require_full_confidence and not mapping.is_complete:
        raise MappingConfidenceError(
            f"Could not map required columns: {', '.join(mapping.missing_required)} "
            f"(confidence {mapping.confidence}%)"
        )

    parsed = parse_rows(rows, mapping, config.default_segment)
    return _finish(mapping, parsed, config, decision_logger)


def reconcile_records(
    records: list[dict],
    broker: str | BrokerRecordAdapter,
    config: Optional[LedgerConfig] = None,
    decision_logger: Optional[DecisionLogger] = None,
) -> ReconciliationResult:
    """
    Reconcile pre-structured broker API records.

    Args:
        records: Raw records, already fetched
        broker: Broker name or adapter
        config: Ledger configuration
        decision_logger: Optional decision log

    Returns:
        ReconciliationResult with mapping None

    Raises:
        BrokerAdapterError: If the broker is not supported
        InputTooLargeError: If the record count exceeds config.max_rows
    """
    config = config or LedgerConfig()
    _check_size(len(records), config)

    parsed = parse_broker_records(records, broker, config.default_segment)
    return _finish(None, parsed, config, decision_logger)
