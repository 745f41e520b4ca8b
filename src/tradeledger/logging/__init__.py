"""
Decision logging module for the trade ledger.

Provides append-only decision logging for audit and reproducibility.
"""

from tradeledger.logging.decision_log import DecisionLogger, DecimalEncoder

__all__ = [
    "DecisionLogger",
    "DecimalEncoder",
]
