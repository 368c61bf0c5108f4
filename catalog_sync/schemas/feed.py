# File: catalog_sync/schemas/feed.py
"""
In-memory records produced by the feed parser.

Records are immutable and live for a single sync run. Numeric fields hold
whatever the parser produced; the validator decides whether a record may
reach Shopify.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Generic, List, TypeVar, Union

R = TypeVar("R")


@dataclass(frozen=True)
class IncomingProduct:
    """One row of the new/updated products feed"""
    code: str
    title: str
    description: str
    brand: str
    category: str
    subcategory: str
    barcode: str
    price: Union[Decimal, float, int, None]
    stock: Union[int, float, Decimal, None]
    bec: str = ""
    image_url: str = ""

    @property
    def business_key(self) -> str:
        return self.barcode

    @property
    def label(self) -> str:
        """Human readable name used in ledger entries"""
        return (self.title or "").strip() or (self.code or "").strip() or (self.barcode or "").strip() or "<unnamed>"


@dataclass(frozen=True)
class DelistedProduct:
    """One row of the out-of-stock feed; only the code is used"""
    code: str

    @property
    def business_key(self) -> str:
        return self.code


@dataclass
class ParsedFeed(Generic[R]):
    records: List[R] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    total_rows: int = 0

    @property
    def skipped_rows(self) -> int:
        return self.total_rows - len(self.records)


@dataclass(frozen=True)
class FeedFiles:
    incoming: Path
    delisted: Path
