"""
Analytics module for the trade ledger.

Provides ledger totals and P&L breakdowns.
"""

from tradeledger.analytics.summary import (
    summarize_ledger,
    calculate_pnl_by_symbol,
    calculate_pnl_by_instrument_class,
    calculate_win_rate,
)

__all__ = [
    "summarize_ledger",
    "calculate_pnl_by_symbol",
    "calculate_pnl_by_instrument_class",
    "calculate_win_rate",
]
