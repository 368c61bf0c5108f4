# catalog_sync/services/shopify/catalog_index.py
"""
Lookup of existing Shopify products by business key.

The index is built once per sync run from the keys found in both feeds and is
read-only afterwards. Keys are normalised with the same rules as feed values
so that encoding debris never causes a silent miss.
"""

import logging
import math
from typing import Dict, Iterable, List, Optional

from catalog_sync.core.utils import chunked, sanitize_key
from catalog_sync.schemas.shopify import RemoteProductRef
from catalog_sync.services.shopify.client import ShopifyGraphQLClient
from catalog_sync.services.shopify.queries import build_barcode_search

logger = logging.getLogger(__name__)

INDEX_BATCH_SIZE = 250
PAGE_SIZE = 250


class CatalogIndex:
    """Read-only mapping from business key to RemoteProductRef"""

    def __init__(self, refs: Optional[Dict[str, RemoteProductRef]] = None):
        self._refs: Dict[str, RemoteProductRef] = dict(refs or {})

    def get(self, key: str) -> Optional[RemoteProductRef]:
        return self._refs.get(sanitize_key(key))

    def __contains__(self, key: str) -> bool:
        return sanitize_key(key) in self._refs

    def __len__(self) -> int:
        return len(self._refs)

    def as_dict(self) -> Dict[str, RemoteProductRef]:
        return dict(self._refs)


def unique_keys(keys: Iterable[str]) -> List[str]:
    """Normalised, non-empty keys in first-seen order"""
    seen = set()
    result = []
    for key in keys:
        cleaned = sanitize_key(key)
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            result.append(cleaned)
    return result


async def build_catalog_index(
    client: ShopifyGraphQLClient,
    keys: Iterable[str],
    batch_size: int = INDEX_BATCH_SIZE,
    page_size: int = PAGE_SIZE,
) -> CatalogIndex:
    """
    Fetch every existing remote product whose first variant barcode matches one of ``keys``.

    Keys are queried in batches of ``batch_size`` using an OR of exact
    terms; within a batch, cursor pagination is followed to the end before
    the next batch starts. When two remote products share a key, the first
    one returned wins.

    Args:
        client: Shopify client
        keys: Business keys from both feeds (barcodes and codes)
        batch_size: Keys per search expression

    Returns:
        CatalogIndex keyed by normalised business key
    """
    wanted = unique_keys(keys)
    refs: Dict[str, RemoteProductRef] = {}
    total_batches = math.ceil(len(wanted) / batch_size) if wanted else 0
    logger.info(f"Fetching existing products from Shopify for {len(wanted)} keys...")

    for batch_number, batch in enumerate(chunked(wanted, batch_size), start=1):
        batch_keys = set(batch)
        search = build_barcode_search(batch)
        cursor = None

        while True:
            page = await client.fetch_products_page(search, first=page_size, after=cursor)
            for entry in page.entries:
                key = sanitize_key(entry.barcode)
                # Search is tokenised server side; keep exact matches only
                if not key or key not in batch_keys or key in refs:
                    continue
                refs[key] = RemoteProductRef(
                    product_id=entry.product_id,
                    inventory_item_id=entry.inventory_item_id,
                )
            if not page.has_next_page or not page.end_cursor:
                break
            cursor = page.end_cursor

        logger.info(f"Fetched batch {batch_number}/{total_batches} of existing products")

    logger.info(f"Total existing products fetched: {len(refs)}")
    return CatalogIndex(refs)
