# File: catalog_sync/schemas/shopify.py
"""
Typed views over Shopify Admin GraphQL responses.

Each operation the sync engine uses gets its own record type so callers
never dig through nested dictionaries. Per-item product mutation results are
a tagged variant: either a success payload or a list of field errors.
"""

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from catalog_sync.core.enums import MutationKind


class RemoteProductRef(BaseModel):
    """Identifiers of an existing remote product, keyed by business key in the catalog index"""
    model_config = ConfigDict(frozen=True)

    product_id: str
    inventory_item_id: Optional[str] = None


class UserError(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: Optional[List[str]] = None
    message: str = "Unknown error"

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "UserError":
        field = payload.get("field")
        if isinstance(field, str):
            field = [field]
        return cls(field=[str(part) for part in field] if field else None,
                   message=payload.get("message") or "Unknown error")

    def describe(self) -> str:
        if self.field:
            return f"{'.'.join(self.field)}: {self.message}"
        return self.message

    def change_index(self) -> Optional[int]:
        """Position of the inventory change this error refers to, if the field path names one"""
        if not self.field:
            return None
        for before, part in zip(self.field, self.field[1:]):
            if before == "changes" and part.isdigit():
                return int(part)
        return None


def describe_errors(errors: List[UserError]) -> str:
    return "; ".join(error.describe() for error in errors)


def _user_errors(payload: Optional[Dict[str, Any]], key: str = "userErrors") -> List[UserError]:
    if not payload:
        return []
    return [UserError.from_payload(error) for error in payload.get(key) or []]


def _first_variant(product: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    edges = ((product or {}).get("variants") or {}).get("edges") or []
    if not edges:
        return None
    return edges[0].get("node") or None


# --- Catalog query ---

class CatalogEntry(BaseModel):
    barcode: Optional[str] = None
    product_id: str
    inventory_item_id: Optional[str] = None


class ProductsPage(BaseModel):
    entries: List[CatalogEntry] = []
    has_next_page: bool = False
    end_cursor: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "ProductsPage":
        products = (data or {}).get("products") or {}
        entries = []
        for edge in products.get("edges") or []:
            node = edge.get("node") or {}
            variant = _first_variant(node)
            if variant is None:
                # Products without variants cannot be matched by barcode
                continue
            entries.append(CatalogEntry(
                barcode=variant.get("barcode"),
                product_id=node["id"],
                inventory_item_id=(variant.get("inventoryItem") or {}).get("id"),
            ))
        page_info = products.get("pageInfo") or {}
        return cls(
            entries=entries,
            has_next_page=bool(page_info.get("hasNextPage")),
            end_cursor=page_info.get("endCursor"),
        )


# --- Product create / update ---

class ProductMutationSuccess(BaseModel):
    kind: Literal["success"] = "success"
    product_id: str
    inventory_item_id: Optional[str] = None


class ProductMutationFailure(BaseModel):
    kind: Literal["failure"] = "failure"
    errors: List[UserError]

    def describe(self) -> str:
        return describe_errors(self.errors)


ProductMutationResult = Annotated[
    Union[ProductMutationSuccess, ProductMutationFailure],
    Field(discriminator="kind"),
]

_mutation_result = TypeAdapter(ProductMutationResult)


def parse_product_mutation(payload: Optional[Dict[str, Any]]) -> ProductMutationResult:
    """Turn one productCreate/productUpdate payload into a success or a failure"""
    errors = _user_errors(payload)
    if errors:
        return _mutation_result.validate_python({"kind": "failure", "errors": errors})

    product = (payload or {}).get("product")
    if not product or not product.get("id"):
        return _mutation_result.validate_python({
            "kind": "failure",
            "errors": [UserError(message="No product returned by Shopify")],
        })

    variant = _first_variant(product) or {}
    return _mutation_result.validate_python({
        "kind": "success",
        "product_id": product["id"],
        "inventory_item_id": (variant.get("inventoryItem") or {}).get("id"),
    })


# --- Inventory ---

class InventoryChange(BaseModel):
    model_config = ConfigDict(frozen=True)

    inventory_item_id: str
    delta: int
    location_id: str

    def to_input(self) -> Dict[str, Any]:
        return {
            "inventoryItemId": self.inventory_item_id,
            "delta": self.delta,
            "locationId": self.location_id,
        }


class InventoryAdjustResult(BaseModel):
    errors: List[UserError] = []

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]]) -> "InventoryAdjustResult":
        return cls(errors=_user_errors(payload))

    @property
    def ok(self) -> bool:
        return not self.errors

    def errors_for(self, index: int) -> List[UserError]:
        """
        Errors that apply to the change at ``index``.

        Errors whose field path names another change are excluded; errors
        that name no change at all apply to every change in the call.
        """
        return [
            error for error in self.errors
            if error.change_index() is None or error.change_index() == index
        ]


# --- Delete ---

class ProductDeleteResult(BaseModel):
    deleted_product_id: Optional[str] = None
    errors: List[UserError] = []

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]]) -> "ProductDeleteResult":
        errors = _user_errors(payload)
        deleted = (payload or {}).get("deletedProductId")
        if not errors and not deleted:
            errors = [UserError(message="Product was not deleted")]
        return cls(deleted_product_id=deleted, errors=errors)

    @property
    def ok(self) -> bool:
        return not self.errors


# --- Media ---

class MediaAttachResult(BaseModel):
    errors: List[UserError] = []

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]]) -> "MediaAttachResult":
        if payload is None:
            return cls(errors=[UserError(message="No media payload returned")])
        # mediaUserErrors mirrors userErrors with media specific codes
        return cls(errors=_user_errors(payload, "mediaUserErrors") or _user_errors(payload))

    @property
    def ok(self) -> bool:
        return not self.errors


class ProductMutation(BaseModel):
    """One aliased sub-operation of a combined create-or-update request"""
    kind: MutationKind
    input: Dict[str, Any]
