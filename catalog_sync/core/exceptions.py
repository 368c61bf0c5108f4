class BaseServiceError(Exception):
    """Base exception for all service-related errors."""
    pass

class CatalogSyncError(BaseServiceError):
    """Base exception for errors that abort a sync run."""
    pass

class PreconditionError(CatalogSyncError):
    """Raised before any remote write when a run cannot start."""
    pass

class ConfigurationError(PreconditionError):
    """Raised when required run configuration is missing or invalid."""
    pass

class MissingFeedError(PreconditionError):
    """Raised when a feed file cannot be found."""
    pass

class FeedParseError(PreconditionError):
    """Raised when a feed is empty or cannot be decoded."""
    pass

class PlatformServiceError(BaseServiceError):
    """Base exception for platform service errors."""
    pass

class ShopifyServiceError(PlatformServiceError):
    """Base exception for Shopify-specific errors."""
    pass

class ShopifyAPIError(ShopifyServiceError):
    """Raised when Shopify API calls fail."""
    pass

class ShopifyGraphQLError(ShopifyAPIError):
    """Raised when a GraphQL response carries top-level errors."""
    def __init__(self, errors):
        self.errors = errors
        message = "GraphQL query failed with errors:\n"
        for error in errors:
            msg = error.get('message', 'Unknown error')
            path = error.get('path', [])
            message += f"- Message: {msg}, Path: {path}\n"
        super().__init__(message)

class ShopifyRateLimitError(ShopifyAPIError):
    """Raised when throttling persists after every retry."""
    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"GraphQL request failed after {attempts} attempts due to rate limiting")
