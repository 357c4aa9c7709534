"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from food_search.adapters.food_search_client import (
    FoodSearchClient,
    HttpxFoodSearchClient,
)
from food_search.adapters.open_food_facts_client import (
    HttpxOpenFoodFactsClient,
    OpenFoodFactsClient,
)
from food_search.config import Settings
from food_search.services.aggregator import ResultAggregator
from food_search.services.barcode import BarcodeService
from food_search.services.cache import InMemoryCache
from food_search.services.classifier import ResultClassifier
from food_search.services.pipeline import SearchSession, SessionUpdate
from food_search.services.search import FoodSearchService
from food_search.services.suggestions import SuggestionEngine


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    food_search_client: FoodSearchClient
    open_food_facts_client: OpenFoodFactsClient
    aggregator: ResultAggregator
    search_service: FoodSearchService
    barcode_service: BarcodeService
    close_resources: Callable[[], Awaitable[None]]

    def open_session(
        self, listener: Callable[[SessionUpdate], None] | None = None
    ) -> SearchSession:
        """Start a debounced search session bound to the shared search service."""
        return SearchSession(
            search_service=self.search_service,
            debounce_seconds=self.settings.debounce_ms / 1000,
            min_query_length=self.settings.min_query_length,
            listener=listener,
            debug=self.settings.debug,
        )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    food_search_client = HttpxFoodSearchClient.create(
        base_url=resolved_settings.food_search_base_url,
        api_key=resolved_settings.food_search_api_key,
        timeout_seconds=resolved_settings.http_timeout_seconds,
    )
    open_food_facts_client = HttpxOpenFoodFactsClient.create(
        base_url=resolved_settings.open_food_facts_base_url,
        user_agent=resolved_settings.open_food_facts_user_agent,
        timeout_seconds=resolved_settings.http_timeout_seconds,
    )
    aggregator = ResultAggregator(
        cache=InMemoryCache(max_entries=resolved_settings.search_cache_max_entries),
        cap_per_group=resolved_settings.cap_per_group,
        initial_result_limit=resolved_settings.initial_result_limit,
        page_size=resolved_settings.load_more_page_size,
        snapshot_ttl_seconds=resolved_settings.snapshot_ttl_seconds,
    )
    search_service = FoodSearchService(
        client=food_search_client,
        cache=InMemoryCache(max_entries=resolved_settings.search_cache_max_entries),
        aggregator=aggregator,
        classifier=ResultClassifier(debug=resolved_settings.debug),
        suggestion_engine=SuggestionEngine(
            low_relevance_threshold=resolved_settings.low_relevance_threshold
        ),
        default_limit=resolved_settings.search_limit,
        search_ttl_seconds=resolved_settings.search_cache_ttl_seconds,
        debug=resolved_settings.debug,
        retry_attempts=resolved_settings.retry_attempts,
        retry_delay_seconds=resolved_settings.retry_delay_seconds,
        retry_max_delay_seconds=resolved_settings.retry_max_delay_seconds,
    )
    barcode_service = BarcodeService(
        client=open_food_facts_client,
        cache=InMemoryCache(max_entries=resolved_settings.search_cache_max_entries),
        product_ttl_seconds=resolved_settings.product_cache_ttl_seconds,
        debug=resolved_settings.debug,
    )

    async def close_resources() -> None:
        await food_search_client.close()
        await open_food_facts_client.close()

    return AppContainer(
        settings=resolved_settings,
        food_search_client=food_search_client,
        open_food_facts_client=open_food_facts_client,
        aggregator=aggregator,
        search_service=search_service,
        barcode_service=barcode_service,
        close_resources=close_resources,
    )
