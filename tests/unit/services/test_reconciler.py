# tests/unit/services/test_reconciler.py
import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from catalog_sync.core.enums import MutationKind
from catalog_sync.core.exceptions import ShopifyAPIError
from catalog_sync.schemas.shopify import RemoteProductRef
from catalog_sync.services.inventory import InventoryAdjuster
from catalog_sync.services.reconciler import BatchReconciler, build_product_input, format_price
from catalog_sync.services.shopify.catalog_index import CatalogIndex, build_catalog_index

LOCATION_GID = "gid://shopify/Location/105222275414"


def make_reconciler(client, ctx, index=None, batch_size=50):
    adjuster = InventoryAdjuster(client, ctx, location_id=LOCATION_GID)
    return BatchReconciler(client, index or CatalogIndex(), ctx, adjuster, batch_size=batch_size)


"""
1. Product input
"""

def test_build_product_input_for_create(product_factory):
    mutation = build_product_input(product_factory(subcategory="Sub", brand="", category=""))

    assert mutation.kind is MutationKind.CREATE
    assert mutation.input["title"] == "Widget"
    assert mutation.input["vendor"] == "Unknown"
    assert mutation.input["productType"] == "Unknown"
    assert mutation.input["tags"] == ["Sub"]
    assert mutation.input["variants"] == [{"barcode": "1234567890123", "price": "19.99"}]
    assert "id" not in mutation.input


def test_build_product_input_for_update(product_factory):
    ref = RemoteProductRef(product_id="gid://shopify/Product/7", inventory_item_id="gid://shopify/InventoryItem/7")

    mutation = build_product_input(product_factory(), ref)

    assert mutation.kind is MutationKind.UPDATE
    assert mutation.input["id"] == "gid://shopify/Product/7"


def test_build_product_input_truncates_title(product_factory):
    mutation = build_product_input(product_factory(title="x" * 300))
    assert len(mutation.input["title"]) == 255


@pytest.mark.parametrize("value, expected", [
    (Decimal("19.99"), "19.99"),
    (Decimal("5"), "5.00"),
    (0, "0.00"),
    ("oops", "0.00"),
])
def test_format_price(value, expected):
    assert format_price(value) == expected


"""
2. Batching
"""

@pytest.mark.asyncio
async def test_reconcile_sends_one_mutation_per_batch(fake_client, fake_shopify, ctx, product_factory):
    products = [product_factory(barcode=f"{n:013d}", title=f"P{n}") for n in range(120)]
    reconciler = make_reconciler(fake_client, ctx)

    report = await reconciler.reconcile(products)

    assert len(fake_shopify.mutation_calls) == 3
    assert [len(call["operations"]) for call in fake_shopify.mutation_calls] == [50, 50, 20]
    assert report.created == 120
    assert len(fake_shopify.calls_of("inventoryAdjustQuantities")) == 3
    assert ctx.progress.value == 80
    assert not ctx.ledger


@pytest.mark.asyncio
async def test_reconcile_updates_existing_products(fake_client, fake_shopify, ctx, product_factory):
    existing = fake_shopify.add_product("111", title="Old title", quantity=2)
    index = await build_catalog_index(fake_client, ["111", "222"])
    reconciler = make_reconciler(fake_client, ctx, index)

    report = await reconciler.reconcile([
        product_factory(barcode="111", title="New title", stock=3),
        product_factory(barcode="222", title="Brand new", stock=5),
    ])

    assert (report.created, report.updated) == (1, 1)
    assert fake_shopify.mutation_calls[0]["operations"] == ["productUpdate", "productCreate"]
    assert fake_shopify.products[existing]["title"] == "New title"
    assert fake_shopify.inventory[fake_shopify.products[existing]["inventory_item_id"]] == 5


@pytest.mark.asyncio
async def test_reconcile_dedupes_barcodes(fake_client, fake_shopify, ctx, product_factory):
    reconciler = make_reconciler(fake_client, ctx)

    report = await reconciler.reconcile([
        product_factory(barcode="111", title="First"),
        product_factory(barcode="111 ", title="Second"),
    ])

    assert report.created == 1
    assert fake_shopify.products[fake_shopify.product_by_barcode("111")]["title"] == "First"
    assert len(ctx.warnings) == 1
    assert not ctx.ledger


@pytest.mark.asyncio
async def test_reconcile_without_products_completes_phase(fake_client, fake_shopify, ctx):
    report = await make_reconciler(fake_client, ctx).reconcile([])

    assert report.mutation_calls == 0
    assert fake_shopify.calls == []
    assert ctx.progress.value == 80


"""
3. Per-item failures
"""

@pytest.mark.asyncio
async def test_user_error_excludes_item_from_inventory(fake_client, fake_shopify, ctx, product_factory):
    fake_shopify.fail_barcodes.add("222")
    reconciler = make_reconciler(fake_client, ctx)

    report = await reconciler.reconcile([
        product_factory(barcode="111", title="Good"),
        product_factory(barcode="222", title="Bad"),
    ])

    assert (report.created, report.failed) == (1, 1)
    assert ctx.ledger.entries == ["Failed to create product Bad: variants.0.barcode: Barcode is invalid"]
    assert len(fake_shopify.inventory_changes) == 1


@pytest.mark.asyncio
async def test_throttled_batch_recovers_without_failures(fake_shopify, ctx, product_factory, client, mocker):
    """Two throttled responses followed by success leave the ledger empty"""
    mocker.patch("catalog_sync.services.shopify.client.asyncio.sleep", new_callable=AsyncMock)
    throttled = {"errors": [{"message": "Throttled", "extensions": {"code": "THROTTLED"}}]}
    responses = {"count": 0}

    async def post(url, headers=None, json=None):
        responses["count"] += 1
        response = MagicMock()
        response.status_code = 200
        if responses["count"] <= 2:
            response.json.return_value = throttled
        else:
            response.json.return_value = await fake_shopify.send(json["query"], json.get("variables"))
        return response

    mock_client = mocker.patch("httpx.AsyncClient")
    http = AsyncMock()
    http.post.side_effect = post
    mock_client.return_value.__aenter__.return_value = http

    report = await make_reconciler(client, ctx).reconcile([product_factory()])

    assert report.created == 1
    assert not ctx.ledger
    assert len(fake_shopify.mutation_calls) == 1


"""
4. Images
"""

@pytest.mark.asyncio
async def test_images_only_for_created_products(fake_client, fake_shopify, ctx, product_factory):
    fake_shopify.add_product("111")
    index = await build_catalog_index(fake_client, ["111"])
    reconciler = make_reconciler(fake_client, ctx, index)

    await reconciler.reconcile([
        product_factory(barcode="111", image_url="http://img/1.jpg"),
        product_factory(barcode="222", image_url="http://img/2.jpg"),
        product_factory(barcode="333", image_url=""),
    ])

    media_calls = fake_shopify.calls_of("productCreateMedia")
    assert len(media_calls) == 1
    assert media_calls[0]["variables"]["media"][0]["originalSource"] == "http://img/2.jpg"


@pytest.mark.asyncio
async def test_image_failure_only_reaches_ledger(fake_client, fake_shopify, ctx, product_factory):
    fake_shopify.fail_images = True
    reconciler = make_reconciler(fake_client, ctx)

    report = await reconciler.reconcile([product_factory(image_url="http://img/bad.jpg")])

    assert report.created == 1
    assert len(fake_shopify.inventory_changes) == 1
    assert ctx.ledger.entries == ["Image upload failed for Widget: media.0.originalSource: Image URL is invalid"]


@pytest.mark.asyncio
async def test_image_transport_error_is_not_fatal(fake_client, fake_shopify, ctx, product_factory, mocker):
    mocker.patch.object(fake_client, "attach_image", new_callable=AsyncMock,
                        side_effect=ShopifyAPIError("Network error: reset"))
    reconciler = make_reconciler(fake_client, ctx)

    report = await reconciler.reconcile([product_factory(image_url="http://img/1.jpg")])

    assert report.created == 1
    assert ctx.ledger.entries == ["Image upload failed for Widget: Network error: reset"]
