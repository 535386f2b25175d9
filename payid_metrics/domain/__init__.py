"""Domain types for PayID metrics."""

from .types import AddressCount, AddressCountFetcher, PayIdCountFetcher

__all__ = ["AddressCount", "AddressCountFetcher", "PayIdCountFetcher"]
