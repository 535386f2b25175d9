"""Shared types for PayID metrics generation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Mapping, Union


@dataclass(frozen=True)
class AddressCount:
    """Count of addresses for one (payment network, environment) pair."""

    payment_network: str
    environment: str
    count: int

    @classmethod
    def coerce(cls, record: Union["AddressCount", Mapping[str, Any]]) -> "AddressCount":
        """Accept either an ``AddressCount`` or a query-row style mapping."""

        if isinstance(record, cls):
            return record
        payment_network = record.get("payment_network", record.get("paymentNetwork"))
        return cls(
            payment_network=str(payment_network),
            environment=str(record["environment"]),
            count=int(record["count"]),
        )


AddressCountFetcher = Callable[
    [], Awaitable[Iterable[Union[AddressCount, Mapping[str, Any]]]]
]
PayIdCountFetcher = Callable[[], Awaitable[int]]
