"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field

import pytest

from food_search.adapters.food_search_client import FoodSearchClient
from food_search.adapters.open_food_facts_client import OpenFoodFactsClient
from food_search.config import Settings
from food_search.containers import AppContainer
from food_search.services.aggregator import ResultAggregator
from food_search.services.barcode import BarcodeService
from food_search.services.cache import InMemoryCache
from food_search.services.search import FoodSearchService


def food_hit(  # noqa: PLR0913
    name: str,
    *,
    fdc_id: int,
    data_type: str = "SR Legacy",
    brand: str | None = None,
    calories: float | None = 100.0,
    protein: float | None = 5.0,
    carbs: float | None = 10.0,
    fat: float | None = 2.0,
    **extra: object,
) -> dict[str, object]:
    """Build an upstream search hit."""
    hit: dict[str, object] = {
        "fdcId": fdc_id,
        "description": name,
        "dataType": data_type,
        "calories": calories,
        "protein": protein,
        "carbs": carbs,
        "fat": fat,
    }
    if brand is not None:
        hit["brandOwner"] = brand
    hit.update(extra)
    return hit


def apple_hits() -> list[dict[str, object]]:
    return [
        food_hit("Apple, raw", fdc_id=1, calories=52, protein=0.3, carbs=14, fat=0.2),
        food_hit("Apples, dried", fdc_id=2, calories=243, carbs=66, fat=0.3),
        food_hit(
            "Apple Juice",
            fdc_id=3,
            data_type="Branded",
            brand="Mott's",
            calories=46,
            protein=0.1,
            carbs=11,
            fat=0.1,
            servingSize=240,
            servingUnit="ml",
        ),
        food_hit("Apple pie", fdc_id=4, data_type="Survey (FNDDS)", calories=237),
        food_hit("Apple sauce", fdc_id=5, calories=68),
        food_hit("Apple chips", fdc_id=6, data_type="Branded", brand="Bare"),
        food_hit("Apple cider", fdc_id=7, data_type="Branded", brand="Martinelli's"),
        food_hit("Apple butter", fdc_id=8, calories=173),
        food_hit("Apple crumble", fdc_id=9, calories=200),
        food_hit("Apple muffin", fdc_id=10, data_type="Branded", brand="Otis"),
        food_hit("Apple pectin powder", fdc_id=11, calories=325),
        food_hit("Apple strudel", fdc_id=12, calories=274),
    ]


@dataclass
class FakeFoodSearchClient(FoodSearchClient):
    """Fake search client with canned responses per query."""

    responses: dict[str, list[dict[str, object]]] = field(default_factory=dict)
    errors: list[Exception] = field(default_factory=list)
    delay_seconds: float = 0.0
    calls: list[tuple[str, int, int]] = field(default_factory=list)

    async def search_foods(
        self, query: str, limit: int = 20, page: int = 1
    ) -> dict[str, object]:
        self.calls.append((query, limit, page))
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.errors:
            raise self.errors.pop(0)
        foods = self.responses.get(query, [])
        return {
            "foods": foods,
            "total": len(foods),
            "page": page,
            "hasMore": False,
        }


@dataclass
class FakeOpenFoodFactsClient(OpenFoodFactsClient):
    """Fake product client keyed by barcode."""

    products: dict[str, dict[str, object]] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)

    async def get_product(self, barcode: str) -> dict[str, object]:
        self.calls.append(barcode)
        product = self.products.get(barcode)
        if product is None:
            return {"status": 0, "status_verbose": "product not found"}
        return {"status": 1, "code": barcode, "product": product}


def nutella_product() -> dict[str, object]:
    return {
        "product_name": "Nutella",
        "brands": "Ferrero, Nutella",
        "serving_size": "15 g",
        "serving_quantity": 15,
        "nutriscore_grade": "e",
        "nova_group": 4,
        "image_url": "https://images.example/nutella.jpg",
        "categories": "Spreads",
        "nutriments": {
            "energy_100g": 2252,
            "energy_unit": "kJ",
            "proteins_100g": 6.3,
            "carbohydrates_100g": 57.5,
            "fat_100g": 30.9,
            "sugars_100g": 56.3,
            "salt_100g": 0.107,
        },
    }


@pytest.fixture
def settings() -> Settings:
    return Settings(
        food_search_base_url="https://search.example/functions/v1",
        food_search_api_key="search-key",
        open_food_facts_base_url="https://off.example",
        retry_delay_seconds=0.0,
        debounce_ms=20,
    )


@pytest.fixture
def search_client() -> FakeFoodSearchClient:
    return FakeFoodSearchClient(responses={"apple": apple_hits()})


@pytest.fixture
def product_client() -> FakeOpenFoodFactsClient:
    return FakeOpenFoodFactsClient(products={"3017620422003": nutella_product()})


@pytest.fixture
def aggregator() -> ResultAggregator:
    return ResultAggregator(cache=InMemoryCache())


@pytest.fixture
def search_service(
    search_client: FakeFoodSearchClient, aggregator: ResultAggregator
) -> FoodSearchService:
    return FoodSearchService(
        client=search_client,
        cache=InMemoryCache(),
        aggregator=aggregator,
        retry_delay_seconds=0.0,
    )


@pytest.fixture
def barcode_service(product_client: FakeOpenFoodFactsClient) -> BarcodeService:
    return BarcodeService(client=product_client, cache=InMemoryCache())


@pytest.fixture
def container(
    settings: Settings,
    search_client: FakeFoodSearchClient,
    product_client: FakeOpenFoodFactsClient,
    aggregator: ResultAggregator,
    search_service: FoodSearchService,
    barcode_service: BarcodeService,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        food_search_client=search_client,
        open_food_facts_client=product_client,
        aggregator=aggregator,
        search_service=search_service,
        barcode_service=barcode_service,
        close_resources=close_resources,
    )
