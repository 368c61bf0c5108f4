from .feed import IncomingProduct, DelistedProduct, ParsedFeed, FeedFiles
from .shopify import (
    RemoteProductRef,
    UserError,
    ProductMutationSuccess,
    ProductMutationFailure,
    ProductMutationResult,
    ProductsPage,
    InventoryChange,
    InventoryAdjustResult,
    ProductDeleteResult,
    MediaAttachResult,
    ProductMutation,
    parse_product_mutation,
    describe_errors,
)
from .sync import SyncResult
