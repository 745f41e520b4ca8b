"""
Trade Ledger Reconciliation Engine (tradeledger)

Ingests broker trade-export text or pre-structured broker API records,
auto-detects which column means what, normalizes dates, sides and instrument
classes, then matches opening and closing legs per symbol using FIFO to produce
realized P&L net of transaction charges, plus portfolio aggregates.

The engine is synchronous and in-memory. Network fetching, persistence and
rendering belong to the caller.
"""

__version__ = "0.1.0"
__author__ = "Trade Ledger Team"
