# catalog_sync/services/sync_service.py
"""
Entry points for a complete feed sync run.

Phases run strictly in sequence:
1. Validation of both feeds
2. Catalog index build (10% of progress)
3. Create-or-update batches with inventory deltas (80%)
4. Delisted products, zeroed or deleted per policy (10%)

A run ends with a SyncResult in every case: success, partial success with
ledger entries, or a fatal error message. Remote writes made before a fatal
error are not rolled back.
"""

import logging
from pathlib import Path
from typing import Optional, Sequence, Union

from catalog_sync.core.config import Settings, SyncConfig
from catalog_sync.core.enums import DelistedPolicy
from catalog_sync.core.exceptions import CatalogSyncError, ShopifyAPIError
from catalog_sync.schemas.feed import DelistedProduct, IncomingProduct
from catalog_sync.schemas.sync import SyncResult
from catalog_sync.services.feeds.locator import locate_feed_files
from catalog_sync.services.feeds.parser import parse_delisted_feed, parse_incoming_feed
from catalog_sync.services.feeds.validator import filter_valid
from catalog_sync.services.inventory import DelistedReport, InventoryAdjuster
from catalog_sync.services.progress import (
    DELISTED_PHASE_WEIGHT,
    INDEX_PHASE_WEIGHT,
    ProgressCallback,
    RunContext,
)
from catalog_sync.services.reconciler import BatchReconciler
from catalog_sync.services.shopify.catalog_index import build_catalog_index
from catalog_sync.services.shopify.client import ShopifyGraphQLClient

logger = logging.getLogger(__name__)


def _summary(incoming: int, delisted: int, reconciler: Optional[BatchReconciler], failures: int) -> str:
    message = f"Synced {incoming} incoming and {delisted} delisted products"
    if reconciler is not None:
        report = reconciler.report
        message += f" (created {report.created}, updated {report.updated}, failed {report.failed})"
    if failures:
        message += f" with {failures} failures"
    return message


def _result(
    ctx: RunContext,
    success: bool,
    message: str,
    reconciler: Optional[BatchReconciler] = None,
    delisted: Optional[DelistedReport] = None,
) -> SyncResult:
    report = reconciler.report if reconciler is not None else None
    return SyncResult(
        success=success,
        message=message,
        progress=ctx.progress.value,
        failures=ctx.ledger.entries,
        warnings=list(ctx.warnings),
        created=report.created if report else 0,
        updated=report.updated if report else 0,
        failed=report.failed if report else 0,
        delisted_processed=delisted.processed if delisted else 0,
    )


async def run_sync(
    client: ShopifyGraphQLClient,
    config: SyncConfig,
    incoming: Sequence[IncomingProduct],
    delisted: Sequence[DelistedProduct],
    ctx: Optional[RunContext] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> SyncResult:
    """
    Reconcile parsed feeds against the Shopify catalog.

    Args:
        client: Rate-limited Shopify client
        config: Run configuration, including the delisted policy
        incoming: Records from the new/updated feed
        delisted: Records from the out-of-stock feed
        ctx: Run context to reuse (parse warnings, progress already made)
        on_progress: Called with the running 0-100 total after each advance

    Returns:
        SyncResult; never raises for remote or precondition failures
    """
    ctx = ctx or RunContext.create(on_progress)
    reconciler: Optional[BatchReconciler] = None
    delisted_report: Optional[DelistedReport] = None
    logger.info("Starting Shopify sync with GraphQL...")

    try:
        valid_incoming = filter_valid(incoming, ctx.ledger)
        valid_delisted = filter_valid(delisted, ctx.ledger)
        logger.info(f"Valid incoming products: {len(valid_incoming)} / {len(incoming)}")
        logger.info(f"Valid delisted products: {len(valid_delisted)} / {len(delisted)}")

        keys = [product.barcode for product in valid_incoming] + [product.code for product in valid_delisted]
        index = await build_catalog_index(client, keys, batch_size=config.index_batch_size)
        ctx.progress.advance(INDEX_PHASE_WEIGHT)

        adjuster = InventoryAdjuster(
            client,
            ctx,
            location_id=config.location_id,
            batch_size=config.inventory_batch_size,
            delete_batch_size=config.batch_size,
        )
        reconciler = BatchReconciler(client, index, ctx, adjuster, batch_size=config.batch_size)
        await reconciler.reconcile(valid_incoming)

        delisted_report = await adjuster.process_delisted(valid_delisted, index, config.policy)
        ctx.progress.advance(DELISTED_PHASE_WEIGHT)
        ctx.progress.complete()

    except (CatalogSyncError, ShopifyAPIError) as e:
        logger.error(f"Sync failed: {e}")
        return _result(ctx, False, f"Failed to sync products: {e}", reconciler, delisted_report)

    failures = len(ctx.ledger)
    message = _summary(len(incoming), len(delisted), reconciler, failures)
    if failures:
        logger.error(f"Failed to sync {failures} products")
    logger.info("Shopify sync completed")
    return _result(ctx, failures == 0, message, reconciler, delisted_report)


async def run_sync_from_directory(
    settings: Settings,
    feed_directory: Optional[Union[str, Path]] = None,
    policy: Optional[DelistedPolicy] = None,
    client: Optional[ShopifyGraphQLClient] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> SyncResult:
    """
    Locate, parse and sync the feeds found in ``feed_directory``.

    Configuration and feed problems abort the run before any remote write.
    """
    ctx = RunContext.create(on_progress)
    try:
        config = SyncConfig.from_settings(settings, policy=policy)
        files = locate_feed_files(
            feed_directory or settings.FEED_DIRECTORY,
            incoming_prefix=settings.INCOMING_FEED_PREFIX,
            delisted_prefix=settings.DELISTED_FEED_PREFIX,
            suffix=settings.FEED_SUFFIX,
        )
        incoming = parse_incoming_feed(files.incoming, encoding=settings.FEED_ENCODING)
        delisted = parse_delisted_feed(files.delisted, encoding=settings.FEED_ENCODING)
    except CatalogSyncError as e:
        logger.error(f"Sync failed: {e}")
        return _result(ctx, False, f"Failed to sync products: {e}")

    ctx.warnings.extend(incoming.warnings + delisted.warnings)
    client = client or ShopifyGraphQLClient.from_config(config)
    return await run_sync(client, config, incoming.records, delisted.records, ctx=ctx)
