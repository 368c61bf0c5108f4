# catalog_sync/services/feeds/locator.py

import logging
from pathlib import Path
from typing import Union

from catalog_sync.core.exceptions import MissingFeedError
from catalog_sync.schemas.feed import FeedFiles

logger = logging.getLogger(__name__)


def find_feed_file(directory: Path, prefix: str, suffix: str) -> Path:
    """First file (by name) in ``directory`` matching ``prefix*suffix``"""
    matches = sorted(
        path for path in directory.iterdir()
        if path.is_file() and path.name.startswith(prefix) and path.name.endswith(suffix)
    )
    if not matches:
        raise MissingFeedError(f"No feed matching {prefix}*{suffix} found in {directory}")
    if len(matches) > 1:
        logger.warning(f"Several feeds match {prefix}*{suffix}; using {matches[0].name}")
    return matches[0]


def locate_feed_files(
    directory: Union[str, Path],
    incoming_prefix: str = "StockNouveautesCgn",
    delisted_prefix: str = "StockEpuisesCgn",
    suffix: str = ".csv",
) -> FeedFiles:
    """
    Find the incoming and delisted feeds inside the unpacked feed directory.

    Raises:
        MissingFeedError: If the directory or either feed is missing
    """
    directory = Path(directory)
    logger.info(f"Scanning {directory} for feed files...")
    if not directory.is_dir():
        raise MissingFeedError(f"Feed directory not found: {directory}")

    files = FeedFiles(
        incoming=find_feed_file(directory, incoming_prefix, suffix),
        delisted=find_feed_file(directory, delisted_prefix, suffix),
    )
    logger.info(f"Found incoming feed: {files.incoming}")
    logger.info(f"Found delisted feed: {files.delisted}")
    return files
