"""
Ledger aggregates.

Pure functions over the full matcher output: portfolio totals plus breakdowns
by symbol and instrument class. Nothing here mutates the ledger, so any of
these can be recomputed at any time.
"""

from collections import defaultdict
from decimal import Decimal

from tradeledger.ledger.charges import round_money
from tradeledger.models import LedgerSummary, MatchedTrade


ZERO = Decimal("0")


def summarize_ledger(records: list[MatchedTrade]) -> LedgerSummary:
    """
    Summarize a ledger.

    Args:
        records: All records produced by the matcher, realized and open

    Returns:
        LedgerSummary with:
        - total_pnl: Gross P&L over realized records
        - total_charges: Charges over all records
        - net_pnl: Net P&L over realized records
        - realized_count / open_position_count: Record counts
    """
    realized = [r for r in records if r.is_realized]

    total_pnl = sum((r.gross_pnl for r in realized), ZERO)
    total_charges = sum((r.charges for r in records), ZERO)
    net_pnl = sum((r.net_pnl for r in realized), ZERO)

    return LedgerSummary(
        total_pnl=round_money(total_pnl),
        total_charges=round_money(total_charges),
        net_pnl=round_money(net_pnl),
        realized_count=len(realized),
        open_position_count=len(records) - len(realized),
    )


def _empty_bucket() -> dict[str, Decimal]:
    return {
        "gross_pnl": ZERO,
        "net_pnl": ZERO,
        "charges": ZERO,
        "realized_count": 0,
        "open_count": 0,
    }


def _add(bucket: dict, record: MatchedTrade) -> None:
    bucket["charges"] += record.charges
    if record.is_realized:
        bucket["gross_pnl"] += record.gross_pnl
        bucket["net_pnl"] += record.net_pnl
        bucket["realized_count"] += 1
    else:
        bucket["open_count"] += 1


def calculate_pnl_by_symbol(
    records: list[MatchedTrade],
) -> dict[str, dict[str, Decimal]]:
    """
    Calculate P&L by symbol.

    Returns:
        Dictionary mapping symbol -> {gross_pnl, net_pnl, charges,
        realized_count, open_count}, sorted by symbol
    """
    result: dict[str, dict] = defaultdict(_empty_bucket)
    for record in records:
        _add(result[record.symbol], record)
    return {symbol: result[symbol] for symbol in sorted(result)}


def calculate_pnl_by_instrument_class(
    records: list[MatchedTrade],
) -> dict[str, dict[str, Decimal]]:
    """
    Calculate P&L by instrument class (EQUITY, FUTURE, OPTION).

    Returns:
        Dictionary mapping class name -> same buckets as by symbol
    """
    result: dict[str, dict] = defaultdict(_empty_bucket)
    for record in records:
        _add(result[record.leg.instrument_class.value], record)
    return dict(result)


def calculate_win_rate(
    records: list[MatchedTrade],
) -> dict[str, Decimal]:
    """
    Calculate win/loss statistics over realized records (by net P&L).

    Returns:
        Dictionary with win rate statistics
    """
    realized = [r for r in records if r.is_realized]
    if not realized:
        return {
            "win_count": 0,
            "loss_count": 0,
            "breakeven_count": 0,
            "win_rate": ZERO,
            "avg_win": ZERO,
            "avg_loss": ZERO,
        }

    winners = [r for r in realized if r.net_pnl > ZERO]
    losers = [r for r in realized if r.net_pnl < ZERO]
    breakeven = [r for r in realized if r.net_pnl == ZERO]

    win_rate = Decimal(len(winners)) / Decimal(len(realized))

    avg_win = ZERO
    if winners:
        avg_win = sum((r.net_pnl for r in winners), ZERO) / Decimal(len(winners))

    avg_loss = ZERO
    if losers:
        avg_loss = sum((r.net_pnl for r in losers), ZERO) / Decimal(len(losers))

    return {
        "win_count": len(winners),
        "loss_count": len(losers),
        "breakeven_count": len(breakeven),
        "win_rate": win_rate,
        "avg_win": round_money(avg_win),
        "avg_loss": round_money(avg_loss),
    }
