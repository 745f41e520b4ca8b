"""
Pytest fixtures for the trade ledger tests.

Provides common test data and utilities used across test modules.
"""

import tempfile
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from tradeledger.models import (
    InstrumentClass,
    LedgerConfig,
    Side,
    TradeLeg,
)


def make_leg(
    symbol: str,
    side: Side,
    quantity: str,
    price: str,
    trade_date: date,
    instrument_class: InstrumentClass = InstrumentClass.EQUITY,
    lot_size: int = 1,
    leg_id: str = "",
) -> TradeLeg:
    """Build a TradeLeg from string amounts."""
    return TradeLeg(
        trade_date=trade_date,
        symbol=symbol,
        quantity=Decimal(quantity),
        price=Decimal(price),
        side=side,
        instrument_class=instrument_class,
        lot_size=lot_size,
        leg_id=leg_id,
    )


@pytest.fixture
def single_pair_legs() -> list[TradeLeg]:
    """BUY 100 @ 100 then SELL 100 @ 110 (gross P&L 1000)."""
    return [
        make_leg("INFY", Side.BUY, "100", "100", date(2024, 3, 15), leg_id="b1"),
        make_leg("INFY", Side.SELL, "100", "110", date(2024, 3, 16), leg_id="s1"),
    ]


@pytest.fixture
def mixed_legs() -> list[TradeLeg]:
    """Legs across symbols: a closed pair, a naked short and an open long."""
    return [
        make_leg("INFY", Side.BUY, "100", "100", date(2024, 3, 15), leg_id="b1"),
        make_leg("INFY", Side.SELL, "100", "110", date(2024, 3, 16), leg_id="s1"),
        make_leg("TCS", Side.SELL, "5", "3500", date(2024, 3, 17), leg_id="s2"),
        make_leg("WIPRO", Side.BUY, "20", "450", date(2024, 3, 18), leg_id="b2"),
        make_leg("WIPRO", Side.SELL, "20", "440", date(2024, 3, 19), leg_id="s3"),
        make_leg("SBIN", Side.BUY, "10", "600", date(2024, 3, 20), leg_id="b3"),
    ]


@pytest.fixture
def sample_export_text() -> str:
    """
    Small export with three valid rows and three invalid ones.

    Row 4 has no symbol, row 5 has an unparseable date and row 6 has a
    zero quantity.
    """
    return (
        "Date,Symbol,Side,Quantity,Price\n"
        "15-03-2024,INFY,BUY,100,100\n"
        "16-03-2024,INFY,SELL,100,110\n"
        "17-03-2024,TCS,SELL,5,3500\n"
        "18-03-2024,,BUY,5,100\n"
        "abc,RELIANCE,BUY,5,2500\n"
        "19-03-2024,WIPRO,BUY,0,450\n"
    )


@pytest.fixture
def sample_zerodha_records() -> list[dict]:
    """Kite Connect style trade records for one closed INFY pair."""
    return [
        {
            "order_id": "240315000001",
            "tradingsymbol": "INFY",
            "exchange": "NSE",
            "transaction_type": "BUY",
            "product": "CNC",
            "quantity": 100,
            "average_price": 100.0,
            "order_timestamp": "2024-03-15 09:15:00",
        },
        {
            "order_id": "240316000001",
            "tradingsymbol": "INFY",
            "exchange": "NSE",
            "transaction_type": "SELL",
            "product": "CNC",
            "quantity": 100,
            "average_price": 110.0,
            "order_timestamp": "2024-03-16 10:30:00",
        },
    ]


@pytest.fixture
def sample_ledger_config() -> LedgerConfig:
    """Create a sample ledger configuration for testing."""
    return LedgerConfig(account_id="TEST001", output_dir="output")


@pytest.fixture
def temp_output_dir() -> Path:
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_csv_file(temp_output_dir: Path) -> Path:
    """Create a temporary CSV file path."""
    return temp_output_dir / "test_data.csv"
