# catalog_sync/cli/sync_feeds.py
import asyncio
import sys

import click

from catalog_sync.core.config import get_settings
from catalog_sync.core.enums import DelistedPolicy
from catalog_sync.core.exceptions import ConfigurationError
from catalog_sync.core.logging_config import configure_logging
from catalog_sync.schemas.sync import SyncResult
from catalog_sync.services.sync_service import run_sync_from_directory


def _report(result: SyncResult):
    click.echo(result.message)
    for warning in result.warnings:
        click.echo(f"  warning: {warning}")
    for failure in result.failures:
        click.echo(f"  - {failure}")

    sys.exit(0 if result.success else 1)


@click.command()
@click.option("--feed-dir", type=click.Path(file_okay=False), default=None,
              help="Directory holding the unpacked feeds (defaults to FEED_DIRECTORY)")
@click.option("--policy", type=click.Choice([policy.value for policy in DelistedPolicy]), default=None,
              help="How to handle delisted products (defaults to DELISTED_POLICY)")
def sync_feeds(feed_dir, policy):
    """Sync the incoming and delisted feeds with Shopify"""
    try:
        settings = get_settings()
    except ConfigurationError as e:
        configure_logging()
        _report(SyncResult(success=False, message=f"Failed to sync products: {e}"))
        return

    configure_logging(settings.LOG_LEVEL)

    def _show_progress(value: int):
        click.echo(f"Progress: {value}%")

    result = asyncio.run(run_sync_from_directory(
        settings,
        feed_directory=feed_dir,
        policy=DelistedPolicy(policy) if policy else None,
        on_progress=_show_progress,
    ))
    _report(result)


if __name__ == "__main__":
    sync_feeds()
