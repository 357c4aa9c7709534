"""Open Food Facts product API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from food_search.adapters.food_search_client import error_from_response
from food_search.errors import UpstreamFailureError


class OpenFoodFactsClient(Protocol):
    """Interface for barcode product lookups."""

    async def get_product(self, barcode: str) -> dict[str, object]:
        """Fetch a product by barcode and return raw API data."""


@dataclass
class HttpxOpenFoodFactsClient(OpenFoodFactsClient):
    """HTTPX-backed Open Food Facts client."""

    base_url: str
    user_agent: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 10.0

    @classmethod
    def create(
        cls, base_url: str, user_agent: str, timeout_seconds: float = 10.0
    ) -> "HttpxOpenFoodFactsClient":
        """Create a product client with a managed httpx session."""
        return cls(
            base_url=base_url,
            user_agent=user_agent,
            http_client=httpx.AsyncClient(),
            timeout_seconds=timeout_seconds,
        )

    async def get_product(self, barcode: str) -> dict[str, object]:
        """Fetch a product by barcode.

        A 404 is reported as ``{"status": 0}`` so callers see a missing product
        rather than a transport failure.
        """
        url = f"{self.base_url.rstrip('/')}/api/v0/product/{barcode}.json"
        try:
            response = await self.http_client.get(
                url,
                headers={"Accept": "application/json", "User-Agent": self.user_agent},
                timeout=self.timeout_seconds,
            )
        except httpx.HTTPError as exc:
            raise UpstreamFailureError(
                f"Product lookup failed: {exc}", stage="network"
            ) from exc
        if response.status_code == httpx.codes.NOT_FOUND:
            return {"status": 0}
        if response.is_error:
            raise error_from_response(response)
        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamFailureError(
                "Product lookup returned malformed JSON",
                stage="response-validation",
                status_code=response.status_code,
            ) from exc
        if not isinstance(payload, dict):
            raise UpstreamFailureError(
                "Product lookup returned an unexpected payload",
                stage="response-validation",
                status_code=response.status_code,
            )
        return payload

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
