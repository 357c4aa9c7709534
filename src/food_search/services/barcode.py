"""Barcode lookups mapped to food candidates."""

import logging
import math
from dataclasses import dataclass

from food_search.adapters.open_food_facts_client import OpenFoodFactsClient
from food_search.domain.nutrition import BarcodeProduct, DataType, FoodCandidate
from food_search.errors import InvalidInputError, NotFoundError
from food_search.services.cache import Cache
from food_search.services.servings import (
    SUPPORTED_UNITS,
    portion_multiplier,
    resolve_serving,
)
from food_search.services.units import normalize_nutriments, scale_profile, to_quantity

BARCODE_MIN_LENGTH = 8
BARCODE_MAX_LENGTH = 14
PHOTO_RECOVERY = "photo"
UNKNOWN_PRODUCT_NAME = "Unknown Product"

_logger = logging.getLogger(__name__)


def validate_barcode(code: str) -> str:
    """Return the cleaned barcode or raise before any network call."""
    cleaned = (code or "").strip()
    if not cleaned.isdigit():
        raise InvalidInputError("Barcode must contain only digits")
    if not BARCODE_MIN_LENGTH <= len(cleaned) <= BARCODE_MAX_LENGTH:
        raise InvalidInputError(
            f"Barcode must be {BARCODE_MIN_LENGTH}-{BARCODE_MAX_LENGTH} digits"
        )
    return cleaned


def parse_product(code: str, payload: dict[str, object]) -> BarcodeProduct:
    """Normalize a raw product payload."""
    product = payload.get("product")
    if payload.get("status") == 0 or not isinstance(product, dict):
        raise NotFoundError(
            "Product not found in Open Food Facts database",
            recovery=PHOTO_RECOVERY,
        )
    nutriments = product.get("nutriments")
    if not isinstance(nutriments, dict):
        nutriments = {}
    normalized = normalize_nutriments(nutriments)
    grade = product.get("nutriscore_grade")
    nova_group = product.get("nova_group")
    return BarcodeProduct(
        code=code,
        name=_text(product.get("product_name")) or UNKNOWN_PRODUCT_NAME,
        brand=_first_brand(product.get("brands")),
        nutrients=normalized.profile,
        serving_size=_text(product.get("serving_size")),
        serving_quantity=to_quantity(product.get("serving_quantity")),
        nutrition_grade=grade.upper() if isinstance(grade, str) and grade else None,
        nova_group=int(nova_group) if isinstance(nova_group, int | float) else None,
        image_url=_text(product.get("image_url")),
        categories=_text(product.get("categories")),
        notes=normalized.notes,
    )


def map_product(
    product: BarcodeProduct, quantity: float = 1.0, unit: str = "serving"
) -> list[FoodCandidate]:
    """Scale a product to the requested quantity.

    One scan always yields one candidate; it is an exact product match, so it is
    verified and carries the maximal relevance score.
    """
    serving = resolve_serving(product.serving_size, product.serving_quantity)
    multiplier, serving_notes = portion_multiplier(serving, quantity, unit)
    display_name = f"{product.brand} {product.name}" if product.brand else product.name
    summary = f"Scanned product: {display_name} (Barcode: {product.code})"
    notes = [summary]
    if product.nutrition_grade:
        notes.append(f"Nutri-Score: {product.nutrition_grade}")
    notes.extend(product.notes)
    notes.extend(serving_notes)
    return [
        FoodCandidate(
            id=product.code,
            name=display_name,
            brand=product.brand,
            data_type=DataType.SCANNED,
            nutrient_profile=product.nutrients,
            serving_spec=serving.to_spec(),
            portion=scale_profile(product.nutrients, multiplier),
            requested_quantity=quantity,
            requested_unit=unit,
            verified=True,
            relevance_score=1.0,
            notes=tuple(notes),
        )
    ]


@dataclass
class BarcodeService:
    """Entry point for barcode scans."""

    client: OpenFoodFactsClient
    cache: Cache
    product_ttl_seconds: int = 86400
    debug: bool = False

    async def lookup_barcode(
        self, code: str, quantity: float = 1.0, unit: str = "serving"
    ) -> list[FoodCandidate]:
        """Look up a barcode and return candidates for the requested amount."""
        cleaned = validate_barcode(code)
        if not math.isfinite(quantity) or quantity <= 0:
            raise InvalidInputError("Quantity must be a positive finite number")
        if unit.strip().lower() not in SUPPORTED_UNITS:
            raise InvalidInputError(f"Unsupported unit: {unit}")
        product = await self.get_product(cleaned)
        candidates = map_product(product, quantity=quantity, unit=unit)
        if self.debug:
            _logger.info(
                "Barcode lookup: code=%s name=%s quantity=%s unit=%s",
                cleaned,
                product.name,
                quantity,
                unit,
            )
        return candidates

    async def get_product(self, code: str) -> BarcodeProduct:
        """Fetch and normalize a product, with caching."""
        cache_key = f"off:product:{code}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, BarcodeProduct):
            return cached
        payload = await self.client.get_product(code)
        try:
            product = parse_product(code, payload)
        except NotFoundError:
            _logger.warning("Barcode not found: code=%s", code)
            raise
        self.cache.set(cache_key, product, ttl_seconds=self.product_ttl_seconds)
        return product


def _first_brand(value: object) -> str | None:
    text = _text(value)
    if text is None:
        return None
    first = text.split(",")[0].strip()
    return first or None


def _text(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None
