"""
Tests for the command-line interface.
"""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from tradeledger import __version__
from tradeledger.cli import main


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in (
        "TRADELEDGER_MAX_ROWS",
        "TRADELEDGER_DEFAULT_SEGMENT",
        "TRADELEDGER_REQUIRE_FULL_CONFIDENCE",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def export_file(temp_output_dir: Path, sample_export_text: str) -> Path:
    path = temp_output_dir / "tradebook.csv"
    path.write_text(sample_export_text)
    return path


class TestDetectCommand:
    """Tests for the detect command."""

    def test_prints_mapping(self, runner: CliRunner, export_file: Path):
        result = runner.invoke(main, ["detect", str(export_file)])

        assert result.exit_code == 0
        assert "Confidence: 100%" in result.output
        assert "Dialect: unknown" in result.output
        assert "Symbol" in result.output

    def test_empty_file(self, runner: CliRunner, temp_output_dir: Path):
        path = temp_output_dir / "empty.csv"
        path.write_text("")

        result = runner.invoke(main, ["detect", str(path)])

        assert result.exit_code == 1
        assert "CSV file is empty or invalid" in result.output


class TestReconcileCommand:
    """Tests for the reconcile command."""

    def test_writes_outputs(self, runner: CliRunner, export_file: Path, temp_output_dir: Path):
        out_dir = temp_output_dir / "out"

        result = runner.invoke(main, ["reconcile", str(export_file), "-o", str(out_dir)])

        assert result.exit_code == 0, result.output
        assert "Valid trades: 3" in result.output
        assert "Rejected rows: 3" in result.output
        assert "980.46" in result.output
        assert (out_dir / "ledger_default.csv").exists()
        assert (out_dir / "rejects_default.csv").exists()
        assert (out_dir / "decision_log.jsonl").exists()

    def test_with_config(self, runner: CliRunner, export_file: Path, temp_output_dir: Path):
        config_path = temp_output_dir / "ledger.yaml"
        config_path.write_text(f"account_id: ACC1\noutput_dir: {temp_output_dir / 'acc1'}\n")

        result = runner.invoke(main, ["reconcile", str(export_file), "-c", str(config_path)])

        assert result.exit_code == 0, result.output
        assert (temp_output_dir / "acc1" / "ledger_ACC1.csv").exists()

        log_lines = (temp_output_dir / "acc1" / "decision_log.jsonl").read_text().splitlines()
        assert json.loads(log_lines[0])["action_type"] == "CONFIG_LOADED"

    def test_broker_json(
        self,
        runner: CliRunner,
        temp_output_dir: Path,
        sample_zerodha_records: list[dict],
    ):
        path = temp_output_dir / "records.json"
        path.write_text(json.dumps(sample_zerodha_records))

        result = runner.invoke(main, [
            "reconcile", str(path), "--broker-json", "--broker", "zerodha",
            "-o", str(temp_output_dir / "out"),
        ])

        assert result.exit_code == 0, result.output
        assert "Valid trades: 2" in result.output
        assert "980.46" in result.output

    def test_unknown_broker(self, runner: CliRunner, temp_output_dir: Path):
        path = temp_output_dir / "records.json"
        path.write_text("[]")

        result = runner.invoke(main, [
            "reconcile", str(path), "--broker-json", "--broker", "nosuchbroker",
            "-o", str(temp_output_dir / "out"),
        ])

        assert result.exit_code == 1
        assert "No record adapter" in result.output

    def test_full_confidence_required(self, runner: CliRunner, temp_output_dir: Path):
        export = temp_output_dir / "partial.csv"
        export.write_text("Date,Symbol,Side,Quantity\n15-03-2024,INFY,BUY,10\n")
        config_path = temp_output_dir / "ledger.yaml"
        config_path.write_text("require_full_confidence: true\n")

        result = runner.invoke(main, [
            "reconcile", str(export), "-c", str(config_path),
            "-o", str(temp_output_dir / "out"),
        ])

        assert result.exit_code == 1
        assert "Could not map required columns" in result.output

    def test_invalid_config(self, runner: CliRunner, export_file: Path, temp_output_dir: Path):
        config_path = temp_output_dir / "ledger.yaml"
        config_path.write_text("max_rows: -1\n")

        result = runner.invoke(main, ["reconcile", str(export_file), "-c", str(config_path)])

        assert result.exit_code == 1
        assert "Error loading config" in result.output


class TestSummaryCommand:
    """Tests for the summary command."""

    def test_recomputes_summary(self, runner: CliRunner, export_file: Path, temp_output_dir: Path):
        out_dir = temp_output_dir / "out"
        runner.invoke(main, ["reconcile", str(export_file), "-o", str(out_dir)])

        result = runner.invoke(main, ["summary", str(out_dir / "ledger_default.csv"), "--by-symbol"])

        assert result.exit_code == 0, result.output
        assert "980.46" in result.output
        assert "1,000.00" in result.output
        assert "Win rate:       100.00%" in result.output
        assert "INFY" in result.output
        assert "TCS" in result.output

    def test_invalid_ledger(self, runner: CliRunner, temp_csv_file: Path):
        temp_csv_file.write_text("symbol\nINFY\n")

        result = runner.invoke(main, ["summary", str(temp_csv_file)])

        assert result.exit_code == 1
        assert "Error loading ledger" in result.output


class TestLogCommand:
    """Tests for the log command."""

    def test_lists_filtered_entries(
        self, runner: CliRunner, export_file: Path, temp_output_dir: Path
    ):
        out_dir = temp_output_dir / "out"
        runner.invoke(main, ["reconcile", str(export_file), "-o", str(out_dir)])
        log_file = str(out_dir / "decision_log.jsonl")

        result = runner.invoke(main, ["log", log_file, "--action", "ledger_reconciled"])

        assert result.exit_code == 0, result.output
        assert "LEDGER_RECONCILED" in result.output
        assert "net_pnl: 980.46" in result.output
        assert "SCHEMA_DETECTED" not in result.output

    def test_no_matching_entries(
        self, runner: CliRunner, export_file: Path, temp_output_dir: Path
    ):
        out_dir = temp_output_dir / "out"
        runner.invoke(main, ["reconcile", str(export_file), "-o", str(out_dir)])

        result = runner.invoke(
            main, ["log", str(out_dir / "decision_log.jsonl"), "--account", "OTHER"]
        )

        assert result.exit_code == 0
        assert "No matching entries." in result.output

    def test_corrupt_log(self, runner: CliRunner, temp_output_dir: Path):
        log_file = temp_output_dir / "decision_log.jsonl"
        log_file.write_text("{not json\n")

        result = runner.invoke(main, ["log", str(log_file)])

        assert result.exit_code == 1
        assert "Error reading decision log" in result.output


class TestVersion:
    def test_version(self, runner: CliRunner):
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output
