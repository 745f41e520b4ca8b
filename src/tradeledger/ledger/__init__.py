"""
Ledger module for the trade ledger.

Provides transaction charges and FIFO matching of opening and closing legs.
"""

from tradeledger.ledger.charges import (
    calculate_charges,
    calculate_single_trade_pnl,
)
from tradeledger.ledger.matcher import (
    FifoMatcher,
    match_trades,
)

__all__ = [
    "calculate_charges",
    "calculate_single_trade_pnl",
    "FifoMatcher",
    "match_trades",
]
