# catalog_sync/services/inventory.py
"""
Stock adjustments at the fulfillment location, for both feed types.

Incoming products get their feed stock applied as an additive delta.
Delisted products are either zeroed (delta 0, the product stays) or deleted,
depending on the run's DelistedPolicy.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from catalog_sync.core.enums import DelistedPolicy, MutationKind
from catalog_sync.core.utils import chunked, sanitize_key
from catalog_sync.schemas.feed import DelistedProduct, IncomingProduct
from catalog_sync.schemas.shopify import InventoryChange, RemoteProductRef, describe_errors
from catalog_sync.services.progress import RunContext
from catalog_sync.services.shopify.catalog_index import CatalogIndex
from catalog_sync.services.shopify.client import ShopifyGraphQLClient

logger = logging.getLogger(__name__)

INVENTORY_BATCH_SIZE = 250
DELETE_BATCH_SIZE = 50


@dataclass
class SyncedItem:
    """An incoming product that Shopify accepted, ready for stock adjustment"""
    product: IncomingProduct
    kind: MutationKind
    product_id: str
    inventory_item_id: str


@dataclass
class DelistedReport:
    policy: DelistedPolicy
    processed: int = 0
    not_found: int = 0
    failed: int = 0


def incoming_delta(product: IncomingProduct) -> int:
    """Feed stock, floor-truncated"""
    return int(math.floor(product.stock))


class InventoryAdjuster:

    def __init__(
        self,
        client: ShopifyGraphQLClient,
        ctx: RunContext,
        location_id: str,
        batch_size: int = INVENTORY_BATCH_SIZE,
        delete_batch_size: int = DELETE_BATCH_SIZE,
    ):
        self.client = client
        self.ctx = ctx
        self.location_id = location_id
        self.batch_size = batch_size
        self.delete_batch_size = delete_batch_size
        self.adjusted = 0

    async def _apply(self, labelled: Sequence[Tuple[str, InventoryChange]], failure_prefix: str) -> int:
        """
        Send the changes in combined calls and record per-item errors.

        Returns the number of changes Shopify accepted.
        """
        accepted = 0
        for chunk in chunked(labelled, self.batch_size):
            result = await self.client.adjust_inventory([change for _, change in chunk])
            for position, (label, _) in enumerate(chunk):
                errors = result.errors_for(position)
                if errors:
                    self.ctx.ledger.record(f"{failure_prefix} {label}: {describe_errors(errors)}")
                else:
                    accepted += 1
        self.adjusted += accepted
        return accepted

    async def apply_incoming(self, items: Sequence[SyncedItem]) -> int:
        """Apply each synced product's stock as a delta at the configured location"""
        if not items:
            logger.info("No inventory changes for this batch")
            return 0

        labelled = [
            (item.product.label, InventoryChange(
                inventory_item_id=item.inventory_item_id,
                delta=incoming_delta(item.product),
                location_id=self.location_id,
            ))
            for item in items
        ]
        accepted = await self._apply(labelled, "Failed to update inventory for")
        logger.info(f"Updated inventory for {accepted}/{len(items)} products")
        return accepted

    async def process_delisted(
        self,
        products: Sequence[DelistedProduct],
        index: CatalogIndex,
        policy: DelistedPolicy,
    ) -> DelistedReport:
        """
        Zero or delete every delisted product that exists remotely.

        Codes missing from the catalog index are recorded as not found and
        never reach Shopify.
        """
        logger.info(f"Processing {len(products)} delisted products (policy: {policy.value})...")
        report = DelistedReport(policy=policy)
        matched: List[Tuple[str, RemoteProductRef]] = []
        seen = set()

        for product in products:
            code = sanitize_key(product.code)
            if code in seen:
                logger.debug(f"Duplicate delisted code {code} ignored")
                continue
            seen.add(code)

            ref = index.get(code)
            if ref is None:
                report.not_found += 1
                self.ctx.ledger.record(f"Delisted product not found: {code}")
                continue
            matched.append((code, ref))

        if not matched:
            logger.info("No delisted products to update")
            return report

        if policy is DelistedPolicy.DELETE:
            await self._delete(matched, report)
        else:
            await self._zero_stock(matched, report)

        logger.info(f"Processed {report.processed} delisted products ({report.failed} failed, {report.not_found} not found)")
        return report

    async def _zero_stock(self, matched: Sequence[Tuple[str, RemoteProductRef]], report: DelistedReport) -> None:
        # Delta 0 relies on convergence; the current remote quantity is not read
        labelled = []
        for code, ref in matched:
            if not ref.inventory_item_id:
                report.failed += 1
                self.ctx.ledger.record(f"No inventory item for delisted product {code}")
                continue
            labelled.append((code, InventoryChange(
                inventory_item_id=ref.inventory_item_id,
                delta=0,
                location_id=self.location_id,
            )))

        if not labelled:
            return
        accepted = await self._apply(labelled, "Failed to update delisted inventory for")
        report.processed += accepted
        report.failed += len(labelled) - accepted

    async def _delete(self, matched: Sequence[Tuple[str, RemoteProductRef]], report: DelistedReport) -> None:
        for chunk in chunked(matched, self.delete_batch_size):
            results = await self.client.delete_products([ref.product_id for _, ref in chunk])
            for (code, _), result in zip(chunk, results):
                if result.ok:
                    report.processed += 1
                    logger.info(f"Deleted product {code}")
                else:
                    report.failed += 1
                    self.ctx.ledger.record(f"Failed to delete product {code}: {describe_errors(result.errors)}")
