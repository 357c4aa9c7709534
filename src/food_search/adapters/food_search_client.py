"""Text food search endpoint client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from food_search.errors import (
    FoodSearchError,
    RateLimitedError,
    UpstreamFailureError,
)

_RATE_LIMIT_STAGE = "rate-limiting"


class FoodSearchClient(Protocol):
    """Interface for the ranked text search endpoint."""

    async def search_foods(
        self, query: str, limit: int = 20, page: int = 1
    ) -> dict[str, object]:
        """Search foods by query and return the raw response payload."""


@dataclass
class HttpxFoodSearchClient(FoodSearchClient):
    """HTTPX-backed client for ``POST /food-search``."""

    base_url: str
    http_client: httpx.AsyncClient
    api_key: str | None = None
    timeout_seconds: float = 10.0

    @classmethod
    def create(
        cls, base_url: str, api_key: str | None = None, timeout_seconds: float = 10.0
    ) -> "HttpxFoodSearchClient":
        """Create a search client with a managed httpx session."""
        return cls(
            base_url=base_url,
            http_client=httpx.AsyncClient(),
            api_key=api_key,
            timeout_seconds=timeout_seconds,
        )

    async def search_foods(
        self, query: str, limit: int = 20, page: int = 1
    ) -> dict[str, object]:
        """Search foods by query."""
        url = f"{self.base_url.rstrip('/')}/food-search"
        headers: dict[str, str] = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        try:
            response = await self.http_client.post(
                url,
                json={"query": query, "limit": limit, "page": page},
                headers=headers,
                timeout=self.timeout_seconds,
            )
        except httpx.HTTPError as exc:
            raise UpstreamFailureError(
                f"Food search request failed: {exc}", stage="network"
            ) from exc
        if response.is_error:
            raise error_from_response(response)
        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamFailureError(
                "Food search returned malformed JSON",
                stage="response-validation",
                status_code=response.status_code,
            ) from exc
        if not isinstance(payload, dict):
            raise UpstreamFailureError(
                "Food search returned an unexpected payload",
                stage="response-validation",
                status_code=response.status_code,
            )
        return payload

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def error_from_response(response: httpx.Response) -> FoodSearchError:
    """Translate a non-2xx response into the error taxonomy."""
    stage, message, request_id = _parse_error_envelope(response)
    throttled = response.status_code == httpx.codes.TOO_MANY_REQUESTS
    if throttled or stage == _RATE_LIMIT_STAGE:
        return RateLimitedError(
            message or "Upstream rate limit exceeded",
            retry_after_seconds=_retry_after(response),
        )
    return UpstreamFailureError(
        message or f"Upstream returned HTTP {response.status_code}",
        stage=stage or "upstream",
        status_code=response.status_code,
        request_id=request_id,
    )


def _parse_error_envelope(
    response: httpx.Response,
) -> tuple[str | None, str | None, str | None]:
    try:
        payload = response.json()
    except ValueError:
        return None, None, None
    if not isinstance(payload, dict):
        return None, None, None
    details = payload.get("details")
    if isinstance(details, dict):
        return (
            _str_or_none(details.get("stage")),
            _str_or_none(details.get("message")) or _str_or_none(payload.get("error")),
            _str_or_none(details.get("requestId")),
        )
    return (
        _str_or_none(payload.get("stage")),
        _str_or_none(payload.get("error")),
        _str_or_none(payload.get("requestId")),
    )


def _retry_after(response: httpx.Response) -> float | None:
    header = response.headers.get("Retry-After")
    if header is None:
        return None
    try:
        return float(header)
    except ValueError:
        return None


def _str_or_none(value: object) -> str | None:
    return value if isinstance(value, str) and value else None
