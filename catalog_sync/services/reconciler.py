# catalog_sync/services/reconciler.py
"""
Batch reconciler: the create-or-update engine.

For each batch of validated incoming products:
1. Partition by business key into updates (key in the catalog index) and creates
2. Send one combined mutation, sub-operations addressed by batch position
3. Record field-level rejections in the ledger and drop those items
4. Attach images to newly created products (best effort)
5. Hand the accepted items to the inventory adjuster

Matching is by barcode only, so a product that already exists remotely is
always updated in place. Re-running with the same feed against the resulting
catalog only produces updates.
"""

import logging
import math
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Sequence

from catalog_sync.core.enums import MutationKind
from catalog_sync.core.exceptions import ShopifyAPIError
from catalog_sync.core.utils import chunked, sanitize_key, sanitize_text
from catalog_sync.schemas.feed import IncomingProduct
from catalog_sync.schemas.shopify import ProductMutation, ProductMutationFailure, RemoteProductRef, describe_errors
from catalog_sync.services.inventory import InventoryAdjuster, SyncedItem
from catalog_sync.services.progress import INCOMING_PHASE_WEIGHT, RunContext
from catalog_sync.services.shopify.catalog_index import CatalogIndex
from catalog_sync.services.shopify.client import ShopifyGraphQLClient

logger = logging.getLogger(__name__)

BATCH_SIZE = 50
DEFAULT_VENDOR = "Unknown"
DEFAULT_PRODUCT_TYPE = "Unknown"


@dataclass
class ReconcileReport:
    created: int = 0
    updated: int = 0
    failed: int = 0
    mutation_calls: int = 0
    synced: List[SyncedItem] = field(default_factory=list)


def format_price(value) -> str:
    try:
        price = Decimal(str(value))
    except InvalidOperation:
        price = Decimal("0")
    return str(price.quantize(Decimal("0.01")))


def build_product_input(product: IncomingProduct, ref: Optional[RemoteProductRef] = None) -> ProductMutation:
    """
    ProductInput for one feed row. An existing remote product turns the
    sub-operation into an update of that product.
    """
    subcategory = sanitize_text(product.subcategory)
    product_input: Dict[str, Any] = {
        "title": sanitize_text(product.title),
        "descriptionHtml": sanitize_text(product.description),
        "vendor": sanitize_text(product.brand) or DEFAULT_VENDOR,
        "productType": sanitize_text(product.category) or DEFAULT_PRODUCT_TYPE,
        "tags": [subcategory] if subcategory else [],
        "variants": [
            {
                "barcode": sanitize_key(product.barcode),
                "price": format_price(product.price),
            }
        ],
    }
    if ref is not None:
        product_input["id"] = ref.product_id
        return ProductMutation(kind=MutationKind.UPDATE, input=product_input)
    return ProductMutation(kind=MutationKind.CREATE, input=product_input)


class BatchReconciler:
    """
    Creates or updates validated incoming products in fixed-width batches.

    Batches run one after another; each advances progress by its share of
    the incoming phase, proportional to its item count.
    """

    def __init__(
        self,
        client: ShopifyGraphQLClient,
        index: CatalogIndex,
        ctx: RunContext,
        inventory: InventoryAdjuster,
        batch_size: int = BATCH_SIZE,
    ):
        self.client = client
        self.index = index
        self.ctx = ctx
        self.inventory = inventory
        self.batch_size = batch_size
        self.report = ReconcileReport()

    def _deduplicate(self, products: Sequence[IncomingProduct]) -> List[IncomingProduct]:
        unique: List[IncomingProduct] = []
        seen = set()
        for product in products:
            key = sanitize_key(product.barcode)
            if key in seen:
                self.ctx.warn(f"Duplicate barcode {key} in incoming feed; keeping the first row")
                continue
            seen.add(key)
            unique.append(product)
        return unique

    async def reconcile(self, products: Sequence[IncomingProduct]) -> ReconcileReport:
        """
        Process all products batch by batch.

        Raises:
            ShopifyAPIError: On a non-recoverable remote failure; earlier
                batches stay applied
        """
        products = self._deduplicate(products)
        if not products:
            logger.info("No incoming products to sync")
            self.ctx.progress.advance(INCOMING_PHASE_WEIGHT)
            return self.report

        total = len(products)
        total_batches = math.ceil(total / self.batch_size)
        for batch_number, batch in enumerate(chunked(products, self.batch_size), start=1):
            synced = await self.process_batch(batch)
            await self.inventory.apply_incoming(synced)
            logger.info(f"Processed incoming batch {batch_number}/{total_batches}")
            self.ctx.progress.advance(INCOMING_PHASE_WEIGHT * len(batch) / total)

        logger.info(
            f"Incoming sync done: {self.report.created} created, "
            f"{self.report.updated} updated, {self.report.failed} failed"
        )
        return self.report

    async def process_batch(self, batch: Sequence[IncomingProduct]) -> List[SyncedItem]:
        """Send one combined create-or-update request; return the accepted items"""
        refs = [self.index.get(product.barcode) for product in batch]
        mutations = [build_product_input(product, ref) for product, ref in zip(batch, refs)]
        creates = sum(1 for mutation in mutations if mutation.kind is MutationKind.CREATE)
        logger.info(f"Sending batch of {len(batch)} products ({creates} creates, {len(batch) - creates} updates)")

        results = await self.client.sync_products(mutations)
        self.report.mutation_calls += 1

        synced: List[SyncedItem] = []
        for product, ref, mutation, result in zip(batch, refs, mutations, results):
            kind = mutation.kind
            if isinstance(result, ProductMutationFailure):
                self.report.failed += 1
                self.ctx.ledger.record(f"Failed to {kind.value} product {product.label}: {result.describe()}")
                continue

            inventory_item_id = result.inventory_item_id or (ref.inventory_item_id if ref else None)
            if not inventory_item_id:
                self.report.failed += 1
                self.ctx.ledger.record(f"No inventory item returned for product {product.label}")
                continue

            if kind is MutationKind.CREATE:
                self.report.created += 1
            else:
                self.report.updated += 1
            logger.debug(f"Successfully {kind.past_tense} product: {product.label}")

            item = SyncedItem(
                product=product,
                kind=kind,
                product_id=result.product_id,
                inventory_item_id=inventory_item_id,
            )
            synced.append(item)
            self.report.synced.append(item)

            if kind is MutationKind.CREATE:
                await self.attach_image(item)

        return synced

    async def attach_image(self, item: SyncedItem) -> bool:
        """Best-effort image upload; failures only reach the ledger"""
        image_url = (item.product.image_url or "").strip()
        if not image_url:
            return False

        try:
            result = await self.client.attach_image(item.product_id, image_url, alt=sanitize_text(item.product.title))
        except ShopifyAPIError as e:
            self.ctx.ledger.record(f"Image upload failed for {item.product.label}: {e}")
            return False

        if not result.ok:
            self.ctx.ledger.record(f"Image upload failed for {item.product.label}: {describe_errors(result.errors)}")
            return False

        logger.info(f"✅ Image uploaded for {item.product.label}")
        return True
