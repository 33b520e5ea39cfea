"""Transaction filters applied to a block before streaming.

Every filter is a pure, order-preserving function over a sequence of
transactions. A subscription carries exactly one :data:`Filter` variant,
resolved from its request by :func:`resolve_filter`.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple, Union

from ethstream.exceptions import InvalidFilterError, InvalidRangeError
from ethstream.models.api import SubscribeRequest
from ethstream.models.blockchain import Transaction

WEI_PER_ETH = Decimal(10) ** 18

# USD buckets, [min, max); None = unbounded
VALUE_RANGES: Dict[str, Tuple[Decimal, Optional[Decimal]]] = {
    "0-100": (Decimal(0), Decimal(100)),
    "100-500": (Decimal(100), Decimal(500)),
    "500-2000": (Decimal(500), Decimal(2000)),
    "2000-5000": (Decimal(2000), Decimal(5000)),
    ">5000": (Decimal(5000), None),
}


@dataclass(frozen=True)
class AllFilter:
    pass


@dataclass(frozen=True)
class AllWithAddressFilter:
    address: str


@dataclass(frozen=True)
class SenderFilter:
    address: str


@dataclass(frozen=True)
class ReceiverFilter:
    address: str


@dataclass(frozen=True)
class ValueRangeFilter:
    bucket: str


Filter = Union[AllFilter, AllWithAddressFilter, SenderFilter, ReceiverFilter, ValueRangeFilter]


def _same_address(a: Optional[str], b: str) -> bool:
    return a is not None and a.lower() == b.lower()


def filter_all(transactions: Sequence[Transaction]) -> List[Transaction]:
    return list(transactions)


def filter_by_address(transactions: Sequence[Transaction], address: str) -> List[Transaction]:
    """Keep transactions where the address is either the sender or the receiver."""
    return [
        tx for tx in transactions
        if _same_address(tx.sender, address) or _same_address(tx.receiver, address)
    ]


def filter_by_sender(transactions: Sequence[Transaction], address: str) -> List[Transaction]:
    return [tx for tx in transactions if _same_address(tx.sender, address)]


def filter_by_receiver(transactions: Sequence[Transaction], address: str) -> List[Transaction]:
    return [tx for tx in transactions if _same_address(tx.receiver, address)]


def usd_value(tx: Transaction, exchange_rate: Decimal) -> Decimal:
    """Fiat value of a transaction: wei / 1e18 * ETH/USD rate."""
    return Decimal(tx.value_wei) / WEI_PER_ETH * Decimal(exchange_rate)


def filter_by_value_range(
    transactions: Sequence[Transaction],
    bucket: str,
    exchange_rate: Decimal,
) -> List[Transaction]:
    """
    Keep transactions whose USD value falls in the named bucket.

    Buckets are half-open ``[min, max)``, except ``>5000`` which has no upper
    bound, so a value of exactly 100 lands in ``100-500``.

    Raises:
        InvalidRangeError: unknown bucket label
    """
    if bucket not in VALUE_RANGES:
        raise InvalidRangeError(f"Invalid range: {bucket!r}")

    low, high = VALUE_RANGES[bucket]
    kept = []
    for tx in transactions:
        amount = usd_value(tx, exchange_rate)
        if amount >= low and (high is None or amount < high):
            kept.append(tx)
    return kept


def resolve_filter(request: SubscribeRequest) -> Filter:
    """
    Pick the single filter variant a subscription request describes.

    ``range`` is exclusive with ``type`` and ``address``. Without a range,
    ``type`` is mandatory; ``sender``/``receiver`` also need an address.
    """
    address = request.address.strip() if request.address else None

    if request.range is not None:
        if request.type is not None or address:
            raise InvalidFilterError("range cannot be combined with type or address")
        if request.range not in VALUE_RANGES:
            raise InvalidRangeError(f"Invalid range: {request.range!r}")
        return ValueRangeFilter(bucket=request.range)

    if request.type is None:
        raise InvalidFilterError("Invalid filter: either type or range is required")

    if request.type == "all":
        return AllWithAddressFilter(address=address) if address else AllFilter()

    if request.type in ("sender", "receiver"):
        if not address:
            raise InvalidFilterError(f"Invalid filter: type {request.type!r} requires an address")
        if request.type == "sender":
            return SenderFilter(address=address)
        return ReceiverFilter(address=address)

    raise InvalidFilterError(f"Invalid filter type: {request.type!r}")


def apply_filter(
    transactions: Sequence[Transaction],
    tx_filter: Filter,
    exchange_rate: Decimal,
) -> List[Transaction]:
    if isinstance(tx_filter, AllFilter):
        return filter_all(transactions)
    if isinstance(tx_filter, AllWithAddressFilter):
        return filter_by_address(transactions, tx_filter.address)
    if isinstance(tx_filter, SenderFilter):
        return filter_by_sender(transactions, tx_filter.address)
    if isinstance(tx_filter, ReceiverFilter):
        return filter_by_receiver(transactions, tx_filter.address)
    if isinstance(tx_filter, ValueRangeFilter):
        return filter_by_value_range(transactions, tx_filter.bucket, exchange_rate)
    raise InvalidFilterError(f"Unsupported filter: {tx_filter!r}")
