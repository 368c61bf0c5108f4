"""
Text and batching helpers shared by the feed and Shopify layers.
"""
import re

from typing import Iterator, List, Optional, Sequence, TypeVar

T = TypeVar('T')

# U+FFFD written as UTF-8 and read back as cp1252 turns into three characters
REPLACEMENT_ARTIFACTS = ("\u00ef\u00bf\u00bd", "\ufffd")
MAX_TEXT_LENGTH = 255

# C0/C1 controls, zero-width and bidi marks, BOM. Accented and other non-ASCII
# letters are not in the class and pass through.
CONTROL_CHARS_PATTERN = "[\x00-\x1f\x7f-\x9f\u200b-\u200f\u202a-\u202e\u2060\ufeff]"
_CONTROL_CHARS = re.compile(CONTROL_CHARS_PATTERN)


def strip_artifacts(value: Optional[str]) -> str:
    """Remove replacement-character artifacts and non-printable characters."""
    if not value:
        return ""
    text = str(value)
    for artifact in REPLACEMENT_ARTIFACTS:
        text = text.replace(artifact, "")
    return _CONTROL_CHARS.sub("", text)


def sanitize_key(value: Optional[str]) -> str:
    """
    Normalise a business key (barcode or product code).

    Feed values and remote values go through the same rules so that
    lookups never miss because of encoding debris.
    """
    return strip_artifacts(value).strip()


def sanitize_text(value: Optional[str], max_length: int = MAX_TEXT_LENGTH) -> str:
    """Clean free text before it is sent to Shopify."""
    return strip_artifacts(value).strip()[:max_length]


def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    if size <= 0:
        raise ValueError("Batch size must be positive")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])
