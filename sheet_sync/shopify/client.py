"""
Shopify Admin REST API client.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from ..pricing import PriceLike, format_price
from ..ratelimit import RateLimitedQueue

logger = logging.getLogger(__name__)


class ShopifyClientError(Exception):
    """Base exception for Shopify client errors."""
    pass


class ShopifyApiError(ShopifyClientError):
    """Non-success HTTP response from Shopify."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"Shopify API error: {status_code} {body}")
        self.status_code = status_code
        self.body = body


class ShopifyAuthError(ShopifyApiError):
    """Authentication error."""
    pass


@dataclass
class ShopifyVariant:
    """A product variant as returned by Shopify."""

    id: str
    sku: Optional[str]
    price: Optional[str]
    compare_at_price: Optional[str]
    product_id: str

    @classmethod
    def from_api(cls, variant: Dict[str, Any], product_id: Any = None) -> "ShopifyVariant":
        return cls(
            id=str(variant["id"]),
            sku=variant.get("sku"),
            price=variant.get("price"),
            compare_at_price=variant.get("compare_at_price"),
            product_id=str(variant.get("product_id", product_id)),
        )


class ShopifyClient:
    """
    Async HTTP client for the Shopify Admin REST API.

    Every request goes through a per-instance rate-limited queue. The product
    catalog is loaded once, on the first SKU lookup, and kept for the life of
    the instance.
    """

    API_VERSION = "2025-01"
    PAGE_SIZE = 250

    def __init__(
        self,
        shop_url: str,
        access_token: str,
        request_delay: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Shopify client.

        Args:
            shop_url: Store domain (e.g., "mystore.myshopify.com"), scheme optional
            access_token: Admin API access token
            request_delay: Seconds between requests (defaults to settings)
            transport: Optional httpx transport, used by tests
        """
        # Clean domain
        domain = shop_url
        if domain.startswith("https://"):
            domain = domain[8:]
        elif domain.startswith("http://"):
            domain = domain[7:]
        domain = domain.rstrip("/")

        self.shop_domain = domain
        self.access_token = access_token
        self.base_url = f"https://{domain}/admin/api/{self.API_VERSION}/"

        if request_delay is None:
            request_delay = settings.shopify_request_delay
        self.queue = RateLimitedQueue(request_delay, name=f"shopify:{domain}")

        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

        self._products: List[Dict[str, Any]] = []
        self._products_loaded = False
        self._load_lock = asyncio.Lock()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(60.0, connect=10.0),
                headers={
                    "Content-Type": "application/json",
                    "X-Shopify-Access-Token": self.access_token,
                },
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _execute(
        self,
        endpoint: str,
        method: str = "GET",
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Perform one HTTP request and decode the JSON body."""
        client = await self._get_client()

        try:
            response = await client.request(method, endpoint, params=params, json=body)
        except httpx.RequestError as e:
            raise ShopifyClientError(f"Request error: {e}") from e

        if response.status_code == 401:
            raise ShopifyAuthError(response.status_code, response.text)

        if not response.is_success:
            raise ShopifyApiError(response.status_code, response.text)

        return response.json()

    async def request(
        self,
        endpoint: str,
        method: str = "GET",
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Queue a REST call and wait for its result.

        Args:
            endpoint: Path relative to the Admin API root (e.g., "shop.json")
            method: HTTP method
            params: Query string parameters
            body: JSON payload

        Returns:
            Decoded JSON response

        Raises:
            ShopifyApiError: On any non-success HTTP status
            ShopifyClientError: On transport failures
        """
        return await self.queue.enqueue(
            lambda: self._execute(endpoint, method, params=params, body=body)
        )

    async def test_connection(self) -> bool:
        """Check that the store is reachable with this token."""
        try:
            await self.request("shop.json")
            return True
        except Exception as e:
            logger.error(f"Shopify connection test failed for {self.shop_domain}: {e}")
            return False

    async def _load_all_products(self) -> None:
        """Page through the whole catalog once and cache it."""
        async with self._load_lock:
            if self._products_loaded:
                return

            products: List[Dict[str, Any]] = []
            since_id = 0

            while True:
                data = await self.request(
                    "products.json",
                    params={"limit": self.PAGE_SIZE, "since_id": since_id},
                )
                page = data.get("products") or []
                products.extend(page)

                if len(page) < self.PAGE_SIZE:
                    break
                since_id = page[-1]["id"]

            self._products = products
            self._products_loaded = True
            logger.info(f"Loaded {len(products)} products from {self.shop_domain}")

    async def find_variant_by_sku(self, sku: str) -> Optional[ShopifyVariant]:
        """
        Find the first variant with exactly this SKU.

        Args:
            sku: SKU to match (case-sensitive)

        Returns:
            The matching variant, or None if no variant carries the SKU
        """
        if not self._products_loaded:
            await self._load_all_products()

        for product in self._products:
            for variant in product.get("variants") or []:
                if variant.get("sku") == sku:
                    return ShopifyVariant.from_api(variant, product_id=product.get("id"))

        return None

    async def update_variant_price(
        self,
        variant_id: str,
        price: PriceLike,
        compare_at_price: Optional[PriceLike] = None,
    ) -> ShopifyVariant:
        """
        Update a variant's price and, optionally, its compare-at price.

        Args:
            variant_id: Shopify variant id
            price: New price
            compare_at_price: New compare-at price; left untouched when None

        Returns:
            The variant as confirmed by Shopify
        """
        variant: Dict[str, Any] = {
            "id": variant_id,
            "price": format_price(price),
        }
        if compare_at_price is not None:
            variant["compare_at_price"] = format_price(compare_at_price)

        data = await self.request(
            f"variants/{variant_id}.json", method="PUT", body={"variant": variant}
        )
        return ShopifyVariant.from_api(data["variant"])

    async def get_variant(self, variant_id: str) -> ShopifyVariant:
        """Fetch a single variant by id."""
        data = await self.request(f"variants/{variant_id}.json")
        return ShopifyVariant.from_api(data["variant"])

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
