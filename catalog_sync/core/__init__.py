"""
Core module exports.
"""
from .enums import DelistedPolicy, MutationKind

from .exceptions import (
    BaseServiceError,
    CatalogSyncError,
    PreconditionError,
    ConfigurationError,
    MissingFeedError,
    FeedParseError,
    PlatformServiceError,
    ShopifyServiceError,
    ShopifyAPIError,
    ShopifyGraphQLError,
    ShopifyRateLimitError,
)

from .utils import chunked, sanitize_text, sanitize_key
