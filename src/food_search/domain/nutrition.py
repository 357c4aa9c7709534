"""Nutrition domain models."""

from dataclasses import dataclass
from enum import StrEnum


class DataType(StrEnum):
    """Normalized provenance of a food candidate."""

    COMMON = "common"
    BRANDED = "branded"
    INGREDIENT = "ingredient"
    SCANNED = "scanned"


@dataclass(frozen=True)
class NutrientProfile:
    """Nutrient values on a per-100g (or ml) basis.

    Any field is ``None`` when the source does not report it, which is distinct
    from an explicit ``0.0``.
    """

    calories_kcal: float | None
    protein_g: float | None
    carbs_g: float | None
    fat_g: float | None
    fiber_g: float | None = None
    sugar_g: float | None = None
    sodium_mg: float | None = None

    def known_macro_count(self) -> int:
        """Count energy and macro fields the source reported."""
        values = (self.calories_kcal, self.protein_g, self.carbs_g, self.fat_g)
        return sum(1 for value in values if value is not None)


@dataclass(frozen=True)
class ServingSpec:
    """Serving size as reported upstream and as resolved to grams."""

    raw_text: str | None
    quantity_grams: float | None


@dataclass(frozen=True)
class FoodCandidate:
    """A normalized food ready to be shown to the user."""

    id: str
    name: str
    brand: str | None
    data_type: DataType
    nutrient_profile: NutrientProfile
    serving_spec: ServingSpec
    portion: NutrientProfile
    requested_quantity: float = 1.0
    requested_unit: str = "serving"
    verified: bool = False
    relevance_score: float | None = None
    notes: tuple[str, ...] = ()


@dataclass(frozen=True)
class BarcodeProduct:
    """Product record from the barcode database, already normalized."""

    code: str
    name: str
    brand: str | None
    nutrients: NutrientProfile
    serving_size: str | None
    serving_quantity: float | None
    nutrition_grade: str | None = None
    nova_group: int | None = None
    image_url: str | None = None
    categories: str | None = None
    notes: tuple[str, ...] = ()
