"""Text food search with caching, retry and progressive disclosure."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from food_search.adapters.food_search_client import FoodSearchClient
from food_search.domain.search import AggregatedSearchResult, GroupPage, SearchMeta
from food_search.errors import (
    InvalidInputError,
    RateLimitedError,
    UpstreamFailureError,
)
from food_search.services.aggregator import ResultAggregator, decode_cursor
from food_search.services.cache import Cache
from food_search.services.classifier import ResultClassifier, detect_brand_intent
from food_search.services.suggestions import SuggestionEngine

QUERY_MAX_LENGTH = 100
LIMIT_MIN = 1
LIMIT_MAX = 50

_logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable


@dataclass
class FoodSearchService:
    """Entry point for text searches."""

    client: FoodSearchClient
    cache: Cache
    aggregator: ResultAggregator
    classifier: ResultClassifier = field(default_factory=ResultClassifier)
    suggestion_engine: SuggestionEngine = field(default_factory=SuggestionEngine)
    default_limit: int = 20
    search_ttl_seconds: int = 300
    debug: bool = False
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.5
    retry_max_delay_seconds: float = 10.0

    async def search(
        self, query: str, limit: int | None = None, page: int = 1
    ) -> AggregatedSearchResult:
        """Search foods and return grouped, capped results."""
        started = time.perf_counter()
        cleaned = validate_query(query)
        resolved_limit = self.default_limit if limit is None else limit
        if not LIMIT_MIN <= resolved_limit <= LIMIT_MAX:
            raise InvalidInputError(
                f"Limit must be between {LIMIT_MIN} and {LIMIT_MAX}"
            )
        if page < 1:
            raise InvalidInputError("Page must be 1 or greater")

        payload, from_cache = await self._fetch(cleaned, resolved_limit, page)
        hits = payload["foods"]
        candidates = self.classifier.classify(hits, cleaned)
        suggestions = (
            self.suggestion_engine.suggest(cleaned)
            if self.suggestion_engine.needs_suggestions(candidates)
            else []
        )
        snapshot = self.aggregator.build_snapshot(
            cleaned, candidates, limit=resolved_limit, page=page
        )
        meta = SearchMeta(
            query=cleaned,
            total_results=_as_int(payload.get("total"), default=len(hits)),
            processing_time_ms=int((time.perf_counter() - started) * 1000),
            page=_as_int(payload.get("page"), default=page),
            has_more_upstream=payload.get("hasMore") is True,
            from_cache=from_cache,
        )
        result = self.aggregator.aggregate(
            snapshot,
            meta,
            suggestions,
            brand_intent=detect_brand_intent(cleaned),
        )
        if self.debug:
            _logger.info(
                "Food search: query=%s hits=%s shown=%s remaining=%s cached=%s",
                cleaned,
                len(candidates),
                result.items_shown,
                result.total_remaining,
                from_cache,
            )
        return result

    async def load_more(self, cursor: str, page_size: int | None = None) -> GroupPage:
        """Return the next page of one group.

        The snapshot behind the cursor is re-sliced; if it has expired the same
        upstream request (query, limit and page) is run again and sliced at the
        same offset.
        """
        position = decode_cursor(cursor)
        snapshot = self.aggregator.get_snapshot(position.snapshot_id)
        if snapshot is None:
            if self.debug:
                _logger.info(
                    "Snapshot expired, re-querying: snapshot=%s query=%s page=%s",
                    position.snapshot_id,
                    position.query,
                    position.page,
                )
            limit = position.limit or self.default_limit
            payload, _ = await self._fetch(position.query, limit, position.page)
            candidates = self.classifier.classify(payload["foods"], position.query)
            snapshot = self.aggregator.build_snapshot(
                position.query,
                candidates,
                snapshot_id=position.snapshot_id,
                limit=limit,
                page=position.page,
            )
        return self.aggregator.page(
            snapshot, position.data_type, position.offset, page_size
        )

    async def _fetch(
        self, query: str, limit: int, page: int
    ) -> tuple[dict[str, object], bool]:
        cache_key = f"food-search:{query}:{limit}:{page}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, dict):
            return cached, True

        payload = await self._call_with_retry(
            lambda: self.client.search_foods(query, limit=limit, page=page),
            action=f"search:{query}",
        )
        foods = payload.get("foods")
        if not isinstance(foods, list) or not all(
            isinstance(hit, dict) for hit in foods
        ):
            raise UpstreamFailureError(
                "Invalid response format from search API",
                stage="response-validation",
            )
        self.cache.set(cache_key, payload, ttl_seconds=self.search_ttl_seconds)
        return payload, False

    async def _call_with_retry(
        self, func: "Callable[[], Awaitable[dict[str, object]]]", *, action: str
    ) -> dict[str, object]:
        """Call an async function, retrying transient upstream failures.

        A rate-limit response is never retried sooner than its ``Retry-After``.
        When that exceeds ``retry_max_delay_seconds`` the error is raised.
        """
        attempt = 0
        while True:
            try:
                return await func()
            except (RateLimitedError, UpstreamFailureError) as exc:
                attempt += 1
                _logger.warning(
                    "Food search %s failed (attempt %s/%s, stage=%s): %s",
                    action,
                    attempt,
                    self.retry_attempts + 1,
                    exc.stage,
                    exc,
                )
                if attempt > self.retry_attempts:
                    raise
                delay = self.retry_delay_seconds * 2 ** (attempt - 1)
                if isinstance(exc, RateLimitedError) and exc.retry_after_seconds:
                    if exc.retry_after_seconds > self.retry_max_delay_seconds:
                        raise
                    delay = max(delay, exc.retry_after_seconds)
                await asyncio.sleep(delay)


def validate_query(query: str) -> str:
    """Trim a query and enforce length limits."""
    if not isinstance(query, str):
        raise InvalidInputError("Search query is required")
    cleaned = query.strip()
    if not cleaned:
        raise InvalidInputError("Search query is required")
    if len(cleaned) > QUERY_MAX_LENGTH:
        raise InvalidInputError(
            f"Query must be no more than {QUERY_MAX_LENGTH} characters"
        )
    return cleaned


def _as_int(value: object, *, default: int) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return default
