import os
import logging
import httpx

logger = logging.getLogger(__name__)

# =====================================================
# SHOPIFY ADMIN API CONFIGURATION (ENV-BASED ONLY)
# =====================================================

SHOPIFY_API_VERSION = os.getenv("SHOPIFY_API_VERSION", "2025-10")
SHOPIFY_HTTP_TIMEOUT = float(os.getenv("SHOPIFY_HTTP_TIMEOUT", "10"))

PRODUCTS_QUERY = """
query getProducts($first: Int!, $cursor: String) {
  products(first: $first, after: $cursor) {
    edges {
      cursor
      node {
        id
        title
        handle
        status
        featuredImage {
          url
        }
      }
    }
    pageInfo {
      hasNextPage
    }
  }
}
"""


class ShopifyCatalogClient:
    """
    Thin GraphQL client for one shop's catalog.
    One call = one page; the caller owns the pagination loop.
    """

    def __init__(
        self,
        shop: str,
        access_token: str,
        api_version: str = SHOPIFY_API_VERSION,
        timeout: float = SHOPIFY_HTTP_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        self.shop = shop
        self.access_token = access_token
        self.api_version = api_version
        self.timeout = timeout
        self.transport = transport

    @property
    def endpoint(self) -> str:
        return f"https://{self.shop}/admin/api/{self.api_version}/graphql.json"

    def graphql(self, query: str, variables: dict | None = None) -> dict:
        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            response = client.post(
                self.endpoint,
                json={"query": query, "variables": variables or {}},
                headers={
                    "X-Shopify-Access-Token": self.access_token,
                    "Content-Type": "application/json",
                },
            )

        response.raise_for_status()
        body = response.json()

        if body.get("errors"):
            logger.warning(
                "Shopify GraphQL errors | shop=%s | errors=%s",
                self.shop,
                body["errors"],
            )

        return body

    def fetch_products_page(self, cursor: str | None = None, first: int = 50):
        """
        Returns the `products` connection ({edges, pageInfo}),
        or None when the response carries no product data.
        """
        body = self.graphql(PRODUCTS_QUERY, {"first": first, "cursor": cursor})
        return (body.get("data") or {}).get("products")
