# catalog_sync/services/shopify/queries.py
"""
GraphQL documents for the Shopify Admin API.

Documents only ever contain generated aliases and variable names. Every
value coming from a feed is passed through ``variables`` so the server does
the escaping.
"""

from typing import List, Sequence

from catalog_sync.core.enums import MutationKind

PRODUCTS_BY_BARCODE_QUERY = """
query productsByBarcode($first: Int!, $query: String!, $after: String) {
  products(first: $first, query: $query, after: $after) {
    edges {
      node {
        id
        variants(first: 1) {
          edges {
            node {
              barcode
              inventoryItem {
                id
              }
            }
          }
        }
      }
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}
"""

_PRODUCT_RESULT_SELECTION = """{
    product {
      id
      variants(first: 1) {
        edges {
          node {
            inventoryItem {
              id
            }
          }
        }
      }
    }
    userErrors {
      field
      message
    }
  }"""

_PRODUCT_DELETE_SELECTION = """{
    deletedProductId
    userErrors {
      field
      message
    }
  }"""

INVENTORY_ADJUST_MUTATION = """
mutation inventoryAdjustQuantities($input: InventoryAdjustQuantitiesInput!) {
  inventoryAdjustQuantities(input: $input) {
    userErrors {
      field
      message
    }
  }
}
"""

PRODUCT_CREATE_MEDIA_MUTATION = """
mutation productCreateMedia($productId: ID!, $media: [CreateMediaInput!]!) {
  productCreateMedia(productId: $productId, media: $media) {
    media {
      ... on MediaImage {
        id
      }
    }
    mediaUserErrors {
      field
      message
    }
    userErrors {
      field
      message
    }
  }
}
"""

_MUTATION_FIELDS = {
    MutationKind.CREATE: "productCreate",
    MutationKind.UPDATE: "productUpdate",
}


def alias(index: int) -> str:
    return f"item{index}"


def input_variable(index: int) -> str:
    return f"input{index}"


def quote_search_value(value: str) -> str:
    """Quote a value for Shopify search syntax"""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_barcode_search(keys: Sequence[str], field: str = "barcode") -> str:
    """OR of exact barcode terms, e.g. ``barcode:"123" OR barcode:"456"``"""
    return " OR ".join(f"{field}:{quote_search_value(key)}" for key in keys)


def build_product_sync_mutation(kinds: Sequence[MutationKind]) -> str:
    """
    One mutation document holding a productCreate or productUpdate per item.

    Sub-operation ``i`` is aliased ``item{i}`` and reads ``$input{i}`` so
    results can be matched back to the batch positionally.
    """
    if not kinds:
        raise ValueError("Cannot build a mutation without operations")

    definitions = ", ".join(f"${input_variable(i)}: ProductInput!" for i in range(len(kinds)))
    operations: List[str] = [
        f"  {alias(i)}: {_MUTATION_FIELDS[kind]}(input: ${input_variable(i)}) {_PRODUCT_RESULT_SELECTION}"
        for i, kind in enumerate(kinds)
    ]
    return f"mutation syncProducts({definitions}) {{\n" + "\n".join(operations) + "\n}\n"


def build_product_delete_mutation(count: int) -> str:
    if count <= 0:
        raise ValueError("Cannot build a mutation without operations")

    definitions = ", ".join(f"${input_variable(i)}: ProductDeleteInput!" for i in range(count))
    operations = [
        f"  {alias(i)}: productDelete(input: ${input_variable(i)}) {_PRODUCT_DELETE_SELECTION}"
        for i in range(count)
    ]
    return f"mutation deleteProducts({definitions}) {{\n" + "\n".join(operations) + "\n}\n"
