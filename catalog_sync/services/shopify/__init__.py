from .client import ShopifyGraphQLClient
from .catalog_index import CatalogIndex, build_catalog_index
