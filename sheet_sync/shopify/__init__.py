"""
Shopify API module.
"""

from sheet_sync.shopify.client import (
    ShopifyClient,
    ShopifyClientError,
    ShopifyApiError,
    ShopifyAuthError,
    ShopifyVariant,
)

__all__ = [
    "ShopifyClient",
    "ShopifyClientError",
    "ShopifyApiError",
    "ShopifyAuthError",
    "ShopifyVariant",
]
