# catalog_sync/services/feeds/validator.py
"""
Business-validity checks applied before any record reaches Shopify.

A rejected record produces exactly one ledger entry naming the first field
that failed.
"""

import math
from decimal import Decimal
from numbers import Number
from typing import List, Optional, Sequence, TypeVar

from catalog_sync.schemas.feed import DelistedProduct, IncomingProduct
from catalog_sync.services.progress import FailureLedger

T = TypeVar("T")


def _is_blank(value) -> bool:
    return value is None or not str(value).strip()


def _is_finite_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, Number):
        return False
    if isinstance(value, Decimal):
        return value.is_finite()
    return math.isfinite(value)


def incoming_problem(product: IncomingProduct) -> Optional[str]:
    """Return the name of the first invalid field, or None when the product is valid"""
    if _is_blank(product.title):
        return "title"
    if _is_blank(product.barcode):
        return "barcode"
    if not _is_finite_number(product.price) or product.price < 0:
        return "price"
    stock = product.stock
    if not _is_finite_number(stock) or stock < 0 or stock != int(stock):
        return "stock"
    return None


def validate_incoming(product: IncomingProduct, ledger: FailureLedger) -> bool:
    problem = incoming_problem(product)
    if problem is None:
        return True

    if problem in ("price", "stock"):
        detail = f"invalid {problem}: {getattr(product, problem)!r}"
    else:
        detail = f"missing {problem}"
    ledger.record(f"Validation failed for {product.label}: {detail}")
    return False


def validate_delisted(product: DelistedProduct, ledger: FailureLedger) -> bool:
    if _is_blank(product.code):
        ledger.record("Validation failed for delisted product: missing code")
        return False
    return True


def validate(record, ledger: FailureLedger) -> bool:
    """Validate a record of either feed type"""
    if isinstance(record, IncomingProduct):
        return validate_incoming(record, ledger)
    if isinstance(record, DelistedProduct):
        return validate_delisted(record, ledger)
    raise TypeError(f"Unsupported record type: {type(record).__name__}")


def filter_valid(records: Sequence[T], ledger: FailureLedger) -> List[T]:
    """Keep the records that pass validation, preserving order"""
    return [record for record in records if validate(record, ledger)]
