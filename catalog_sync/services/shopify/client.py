# catalog_sync.services.shopify.client

import json
import logging
import httpx
import asyncio
from typing import Any, Dict, List, Optional, Sequence

from catalog_sync.core.config import SyncConfig
from catalog_sync.core.exceptions import ShopifyAPIError, ShopifyGraphQLError, ShopifyRateLimitError
from catalog_sync.schemas.shopify import (
    InventoryAdjustResult,
    InventoryChange,
    MediaAttachResult,
    ProductDeleteResult,
    ProductMutation,
    ProductMutationResult,
    ProductsPage,
    parse_product_mutation,
)
from catalog_sync.services.shopify import queries

logger = logging.getLogger(__name__)

THROTTLED_CODE = "THROTTLED"


class ShopifyGraphQLClient:
    """
    Asynchronous client for the Shopify Admin GraphQL API.

    Every call goes through ``send``, which retries throttled requests with a
    linearly increasing wait (``retry_base_delay * attempt``) and raises on
    anything else. Backoff state lives in the call, so calls must not be
    issued concurrently against the same shop.

    Operations used by the sync engine:
      - fetch_products_page()   products lookup by barcode search, one page
      - sync_products()         combined productCreate / productUpdate
      - adjust_inventory()      inventoryAdjustQuantities
      - delete_products()       combined productDelete
      - attach_image()          productCreateMedia

    Documentation: https://shopify.dev/docs/api/admin-graphql
    """

    def __init__(
        self,
        shop_url: str,
        access_token: str,
        api_version: str = "2024-04",
        max_retries: int = 3,
        retry_base_delay: float = 0.5,
        timeout: float = 30.0,
    ):
        if not shop_url or not access_token:
            raise ValueError("Shop URL and Admin API access token are required")

        self.store_domain = shop_url.replace("https://", "").replace("http://", "").strip("/")
        self.access_token = access_token
        self.api_version = api_version
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.timeout = timeout
        self.graphql_url = f"https://{self.store_domain}/admin/api/{self.api_version}/graphql.json"
        logger.info(f"ShopifyGraphQLClient initialized for {self.store_domain} (API version {self.api_version})")

    @classmethod
    def from_config(cls, config: SyncConfig) -> "ShopifyGraphQLClient":
        return cls(
            shop_url=config.shop_url,
            access_token=config.access_token,
            api_version=config.api_version,
            max_retries=config.max_retries,
            retry_base_delay=config.retry_base_delay,
            timeout=config.request_timeout,
        )

    def _get_headers(self) -> Dict[str, str]:
        return {
            "X-Shopify-Access-Token": self.access_token,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    # --- Meta/Infrastructure ---

    @staticmethod
    def _is_throttled(status_code: int, body: Optional[Dict[str, Any]]) -> bool:
        if status_code == 429:
            return True
        for error in (body or {}).get("errors") or []:
            if not isinstance(error, dict):
                continue
            if (error.get("extensions") or {}).get("code") == THROTTLED_CODE:
                return True
            if "Throttled" in str(error.get("message", "")):
                return True
        return False

    async def _post(self, payload: Dict[str, Any]):
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await client.post(self.graphql_url, headers=self._get_headers(), json=payload)
        except httpx.TimeoutException as e:
            logger.error(f"Timeout error: {str(e)}")
            raise ShopifyAPIError(f"Request timed out: {str(e)}") from e
        except httpx.RequestError as e:
            logger.error(f"Network error: {str(e)}")
            raise ShopifyAPIError(f"Network error: {str(e)}") from e

    async def send(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Send a GraphQL request, retrying while Shopify reports throttling.

        Args:
            query: GraphQL document
            variables: Values for the document's variables

        Returns:
            Dict: The decoded response body, unchanged

        Raises:
            ShopifyRateLimitError: If every attempt was throttled
            ShopifyGraphQLError: If the response carries non-throttling errors
            ShopifyAPIError: On transport errors or non-2xx responses
        """
        payload: Dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables

        attempts = self.max_retries + 1
        for attempt in range(1, attempts + 1):
            response = await self._post(payload)

            try:
                body = response.json()
            except (ValueError, json.JSONDecodeError):
                body = None

            if self._is_throttled(response.status_code, body):
                if attempt == attempts:
                    break
                wait_time = self.retry_base_delay * attempt
                logger.warning(f"GraphQL rate limit hit (attempt {attempt}/{attempts}), retrying in {wait_time:.2f}s...")
                await asyncio.sleep(wait_time)
                continue

            if not 200 <= response.status_code < 300:
                logger.error(f"Shopify API error {response.status_code}: {response.text}")
                raise ShopifyAPIError(f"Request failed with status {response.status_code}: {response.text}")

            if body is None:
                raise ShopifyAPIError(f"Failed to decode JSON response: {response.text}")

            if body.get("errors"):
                raise ShopifyGraphQLError(body["errors"])

            return body

        logger.error(f"GraphQL request still throttled after {attempts} attempts")
        raise ShopifyRateLimitError(attempts)

    async def _data(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        body = await self.send(query, variables)
        return body.get("data") or {}

    # --- Read operations ---

    async def fetch_products_page(self, search: str, first: int = 250, after: Optional[str] = None) -> ProductsPage:
        variables = {"first": first, "query": search, "after": after}
        data = await self._data(queries.PRODUCTS_BY_BARCODE_QUERY, variables)
        return ProductsPage.from_payload(data)

    # --- Product management ---

    async def sync_products(self, mutations: Sequence[ProductMutation]) -> List[ProductMutationResult]:
        """
        Create or update several products in one request.

        Returns one result per mutation, in the same order.
        """
        if not mutations:
            return []

        document = queries.build_product_sync_mutation([mutation.kind for mutation in mutations])
        variables = {queries.input_variable(i): mutation.input for i, mutation in enumerate(mutations)}
        data = await self._data(document, variables)
        return [parse_product_mutation(data.get(queries.alias(i))) for i in range(len(mutations))]

    async def delete_products(self, product_ids: Sequence[str]) -> List[ProductDeleteResult]:
        if not product_ids:
            return []

        document = queries.build_product_delete_mutation(len(product_ids))
        variables = {queries.input_variable(i): {"id": product_id} for i, product_id in enumerate(product_ids)}
        data = await self._data(document, variables)
        return [ProductDeleteResult.from_payload(data.get(queries.alias(i))) for i in range(len(product_ids))]

    # --- Inventory ---

    async def adjust_inventory(self, changes: Sequence[InventoryChange], reason: str = "correction") -> InventoryAdjustResult:
        if not changes:
            return InventoryAdjustResult()

        variables = {
            "input": {
                "reason": reason,
                "name": "available",
                "changes": [change.to_input() for change in changes],
            }
        }
        data = await self._data(queries.INVENTORY_ADJUST_MUTATION, variables)
        return InventoryAdjustResult.from_payload(data.get("inventoryAdjustQuantities"))

    # --- Media ---

    async def attach_image(self, product_id: str, image_url: str, alt: Optional[str] = None) -> MediaAttachResult:
        media_input = {"originalSource": image_url, "mediaContentType": "IMAGE"}
        if alt:
            media_input["alt"] = alt
        variables = {"productId": product_id, "media": [media_input]}
        data = await self._data(queries.PRODUCT_CREATE_MEDIA_MUTATION, variables)
        return MediaAttachResult.from_payload(data.get("productCreateMedia"))
