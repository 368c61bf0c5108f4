# tests/conftest.py
import pytest
from decimal import Decimal

from catalog_sync.core.config import Settings, SyncConfig, clear_settings_cache
from catalog_sync.core.enums import DelistedPolicy
from catalog_sync.schemas.feed import DelistedProduct, IncomingProduct
from catalog_sync.services.progress import RunContext
from catalog_sync.services.shopify.client import ShopifyGraphQLClient
from tests.mocks.fake_shopify import FakeShopify

LOCATION_GID = "gid://shopify/Location/105222275414"


@pytest.fixture(autouse=True)
def _fresh_settings():
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def settings():
    """Provide test settings"""
    return Settings(
        SHOPIFY_SHOP_URL="test-shop.myshopify.com",
        SHOPIFY_ADMIN_API_ACCESS_TOKEN="shpat_test",
        SHOPIFY_LOCATION_GID=LOCATION_GID,
    )


@pytest.fixture
def sync_config():
    return SyncConfig(
        shop_url="test-shop.myshopify.com",
        access_token="shpat_test",
        location_id=LOCATION_GID,
        policy=DelistedPolicy.ZERO_STOCK,
        retry_base_delay=0.0,
    )


@pytest.fixture
def client():
    return ShopifyGraphQLClient(shop_url="test-shop.myshopify.com", access_token="shpat_test")


@pytest.fixture
def fake_shopify():
    return FakeShopify()


@pytest.fixture
def fake_client(client, fake_shopify):
    """Real client whose transport is the in-memory fake"""
    client.send = fake_shopify.send
    return client


@pytest.fixture
def ctx():
    return RunContext.create()


def make_product(barcode="1234567890123", **overrides):
    fields = dict(
        code="001",
        title="Widget",
        description="desc",
        brand="BrandX",
        category="Cat",
        subcategory="Sub",
        barcode=barcode,
        price=Decimal("19.99"),
        stock=10,
        bec="BEC1",
        image_url="",
    )
    fields.update(overrides)
    return IncomingProduct(**fields)


@pytest.fixture
def product_factory():
    return make_product


@pytest.fixture
def delisted_factory():
    return lambda code: DelistedProduct(code=code)
