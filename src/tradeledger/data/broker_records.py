"""
Adapters for pre-structured broker API trade records.

Broker APIs return records with known keys, so they bypass column detection:
an adapter maps each record onto the semantic fields and the same validation
as text rows applies. Fetching the records is the caller's job.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from tradeledger.data.rows import DEFAULT_SEGMENT, build_leg
from tradeledger.models import ParseResult, RowReject, TradeLeg


logger = logging.getLogger(__name__)


class BrokerAdapterError(Exception):
    """Raised when no adapter exists for a broker."""
    pass


def _first(record: dict, *keys: str, default: Any = None) -> Any:
    """First present, non-empty value among keys."""
    for key in keys:
        value = record.get(key)
        if value not in (None, ""):
            return value
    return default


class BrokerRecordAdapter(ABC):
    """
    Abstract base class for broker record adapters.

    Implementations translate one raw API record into a dictionary keyed by
    semantic field (date, symbol, quantity, price, side, instrument_type,
    lot_size, segment).
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the broker name this adapter handles."""
        pass

    @abstractmethod
    def normalize(self, record: dict) -> dict:
        """
        Map a raw record onto semantic fields.

        Args:
            record: Record as returned by the broker API

        Returns:
            Dictionary keyed by semantic field name
        """
        pass

    def record_id(self, record: dict, index: int) -> str:
        """Identifier for the leg built from a record."""
        return f"{self.name}-{index}"


class ZerodhaRecordAdapter(BrokerRecordAdapter):
    """Kite Connect trade/order records."""

    @property
    def name(self) -> str:
        return "zerodha"

    def normalize(self, record: dict) -> dict:
        return {
            "date": _first(record, "fill_timestamp", "order_timestamp",
                           "exchange_timestamp", "timestamp", "trade_date"),
            "symbol": _first(record, "tradingsymbol", "instrument_token", default=""),
            "quantity": _first(record, "quantity", "filled_quantity", default=0),
            "price": _first(record, "average_price", "price", default=0),
            "side": _first(record, "transaction_type", "side", default="BUY"),
            "instrument_type": _first(record, "instrument_type", "product", default=""),
            "lot_size": _first(record, "lot_size", default=1),
            "segment": _first(record, "segment", "exchange", default=""),
        }

    def record_id(self, record: dict, index: int) -> str:
        identifier = _first(record, "order_id", "trade_id")
        return str(identifier) if identifier is not None else super().record_id(record, index)


class GenericRecordAdapter(BrokerRecordAdapter):
    """Records already keyed by semantic field name."""

    @property
    def name(self) -> str:
        return "generic"

    def normalize(self, record: dict) -> dict:
        return {
            "date": _first(record, "date", "trade_date"),
            "symbol": _first(record, "symbol", default=""),
            "quantity": _first(record, "quantity", default=0),
            "price": _first(record, "price", default=0),
            "side": _first(record, "side", "trade_type", default=""),
            "instrument_type": _first(record, "instrument_type", default=""),
            "lot_size": _first(record, "lot_size", default=1),
            "segment": _first(record, "segment", default=""),
        }


_ADAPTERS: dict[str, type[BrokerRecordAdapter]] = {
    "zerodha": ZerodhaRecordAdapter,
    "kite": ZerodhaRecordAdapter,
    "generic": GenericRecordAdapter,
}


def get_adapter(broker: str) -> BrokerRecordAdapter:
    """
    Get the adapter for a broker.

    Raises:
        BrokerAdapterError: If the broker is not supported
    """
    adapter_cls = _ADAPTERS.get(broker.strip().lower())
    if adapter_cls is None:
        raise BrokerAdapterError(
            f"No record adapter for broker '{broker}'. "
            f"Supported: {', '.join(sorted(_ADAPTERS))}"
        )
    return adapter_cls()


def parse_broker_records(
    records: list[dict],
    broker: str | BrokerRecordAdapter,
    default_segment: str = DEFAULT_SEGMENT,
) -> ParseResult:
    """
    Convert broker API records into trade legs.

    Args:
        records: Raw records, already fetched
        broker: Broker name or adapter instance
        default_segment: Segment used when a record carries none

    Returns:
        ParseResult with valid legs and rejected records
    """
    adapter = broker if isinstance(broker, BrokerRecordAdapter) else get_adapter(broker)

    legs: list[TradeLeg] = []
    rejects: list[RowReject] = []
    for index, record in enumerate(records, start=1):
        fields = adapter.normalize(record)
        result = build_leg(
            fields,
            index,
            adapter.record_id(record, index),
            default_segment,
            raw=dict(record),
        )
        if isinstance(result, RowReject):
            logger.debug("Dropped %s record %d: %s", adapter.name, index, result.detail)
            rejects.append(result)
        else:
            legs.append(result)

    logger.info("Parsed %d valid trades from %d %s records (%d rejected)",
                len(legs), len(records), adapter.name, len(rejects))
    return ParseResult(legs=legs, rejects=rejects)
