"""
Command-line interface for the trade ledger.

Provides commands for:
- detect: Show the column mapping detected for an export
- reconcile: Match trades and write the ledger
- summary: Recompute totals from a saved ledger
- log: List entries from a decision log
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from tradeledger import __version__
from tradeledger.analytics import (
    summarize_ledger,
    calculate_pnl_by_symbol,
    calculate_win_rate,
)
from tradeledger.config import (
    ConfigurationError,
    apply_env_overrides,
    load_ledger_config,
)
from tradeledger.data import (
    detect_format,
    read_export_file,
    read_broker_records,
    save_ledger,
    save_rejects,
    load_ledger,
)
from tradeledger.data.broker_records import BrokerAdapterError
from tradeledger.data.loaders import DataLoadError
from tradeledger.logging import DecisionLogger
from tradeledger.models import ActionType, LedgerConfig, LedgerSummary, MAPPING_FIELDS
from tradeledger.pipeline import (
    InputTooLargeError,
    MappingConfidenceError,
    reconcile_records,
    reconcile_text,
)


def _echo_summary(summary: LedgerSummary) -> None:
    click.echo("Ledger Summary:")
    click.echo(f"  Gross P&L:      {summary.total_pnl:,.2f}")
    click.echo(f"  Charges:        {summary.total_charges:,.2f}")
    click.echo(f"  Net P&L:        {summary.net_pnl:,.2f}")
    click.echo(f"  Realized:       {summary.realized_count}")
    click.echo(f"  Open positions: {summary.open_position_count}")


@click.group()
@click.version_option(version=__version__, prog_name="tradeledger")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(verbose: bool):
    """
    Trade Ledger Reconciliation Engine.

    Detects broker export columns, matches trades FIFO per symbol and
    reports realized P&L net of transaction charges.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def detect(file: str):
    """
    Show the column mapping detected for an export file.
    """
    try:
        detected = detect_format(read_export_file(file))
    except DataLoadError as e:
        click.echo(f"Error reading export: {e}", err=True)
        sys.exit(1)

    mapping = detected.mapping
    click.echo(f"Headers: {', '.join(detected.headers)}")
    click.echo(f"Dialect: {mapping.dialect}")
    click.echo(f"Confidence: {mapping.confidence}%")
    click.echo()
    click.echo("Column mapping:")
    for field_name in MAPPING_FIELDS:
        header = mapping.get(field_name)
        marker = " (from sample rows)" if field_name in mapping.inferred_fields else ""
        click.echo(f"  {field_name:<16} {header if header is not None else '-'}{marker}")

    if mapping.missing_required:
        click.echo()
        click.echo(f"Unmapped required fields: {', '.join(mapping.missing_required)}")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--config", "-c",
    type=click.Path(exists=True),
    default=None,
    help="Path to ledger configuration YAML file",
)
@click.option(
    "--broker-json",
    is_flag=True,
    help="Treat FILE as a JSON array of broker API records",
)
@click.option(
    "--broker", "-b",
    default="zerodha",
    show_default=True,
    help="Record adapter to use with --broker-json",
)
@click.option(
    "--output-dir", "-o",
    type=click.Path(),
    default=None,
    help="Output directory. Defaults to config output_dir.",
)
def reconcile(
    file: str,
    config: Optional[str],
    broker_json: bool,
    broker: str,
    output_dir: Optional[str],
):
    """
    Reconcile an export file into a ledger.

    Writes the ledger and reject list as CSV plus a decision log, then
    prints the summary.
    """
    try:
        ledger_config = load_ledger_config(config) if config else LedgerConfig()
        apply_env_overrides(ledger_config)
    except ConfigurationError as e:
        click.echo(f"Error loading config: {e}", err=True)
        sys.exit(1)

    out_dir = Path(output_dir or ledger_config.output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    decision_logger = DecisionLogger(out_dir / "decision_log.jsonl")
    if config:
        decision_logger.log_config_loaded(ledger_config, config)

    click.echo(f"Reconciling {file}...")
    try:
        if broker_json:
            result = reconcile_records(
                read_broker_records(file), broker, ledger_config, decision_logger,
            )
        else:
            result = reconcile_text(
                read_export_file(file), ledger_config, decision_logger=decision_logger,
            )
    except (DataLoadError, BrokerAdapterError, InputTooLargeError, MappingConfidenceError) as e:
        click.echo(f"Error reconciling {file}: {e}", err=True)
        sys.exit(1)

    if result.mapping is not None:
        click.echo(f"  Dialect: {result.mapping.dialect} "
                   f"(confidence {result.mapping.confidence}%)")
    click.echo(f"  Valid trades: {len(result.legs)}")
    click.echo(f"  Rejected rows: {len(result.rejects)}")

    account_id = ledger_config.account_id
    ledger_path = save_ledger(result.records, out_dir / f"ledger_{account_id}.csv")
    click.echo(f"  Ledger saved: {ledger_path}")
    if result.rejects:
        rejects_path = save_rejects(result.rejects, out_dir / f"rejects_{account_id}.csv")
        click.echo(f"  Rejects saved: {rejects_path}")

    click.echo()
    _echo_summary(result.summary)

    if result.open_positions:
        click.echo()
        click.echo("Open long quantity:")
        for symbol, quantity in result.open_positions.items():
            click.echo(f"  {symbol:<20} {quantity}")


@main.command()
@click.argument("ledger_csv", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--by-symbol",
    is_flag=True,
    help="Also show P&L per symbol",
)
def summary(ledger_csv: str, by_symbol: bool):
    """
    Recompute the summary of a saved ledger.
    """
    try:
        records = load_ledger(ledger_csv)
    except DataLoadError as e:
        click.echo(f"Error loading ledger: {e}", err=True)
        sys.exit(1)

    _echo_summary(summarize_ledger(records))

    stats = calculate_win_rate(records)
    click.echo(f"  Win rate:       {stats['win_rate']:.2%} "
               f"({stats['win_count']}W / {stats['loss_count']}L)")

    if by_symbol:
        click.echo()
        click.echo(f"{'Symbol':<20} {'Net P&L':>14} {'Charges':>12} {'Realized':>9}")
        click.echo("-" * 58)
        for symbol, bucket in calculate_pnl_by_symbol(records).items():
            click.echo(
                f"{symbol:<20} {bucket['net_pnl']:>14,.2f} "
                f"{bucket['charges']:>12,.2f} {bucket['realized_count']:>9}"
            )


@main.command(name="log")
@click.argument("log_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--account", "-a", default=None, help="Only entries for this account")
@click.option(
    "--action",
    type=click.Choice([a.value for a in ActionType], case_sensitive=False),
    default=None,
    help="Only entries of this action type",
)
def show_log(log_file: str, account: Optional[str], action: Optional[str]):
    """
    List entries from a decision log.
    """
    action_type = ActionType(action.upper()) if action else None
    try:
        entries = DecisionLogger(log_file).read_log(account_id=account, action_type=action_type)
    except (ValueError, KeyError) as e:
        click.echo(f"Error reading decision log: {e}", err=True)
        sys.exit(1)

    if not entries:
        click.echo("No matching entries.")
        return

    for entry in entries:
        click.echo(
            f"{entry.timestamp:%Y-%m-%d %H:%M:%S}  {entry.action_type.value:<18} "
            f"{entry.account_id or '-'}"
        )
        for key, value in entry.details.items():
            click.echo(f"    {key}: {value}")


if __name__ == "__main__":
    main()
