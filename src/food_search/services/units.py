"""Energy and macro normalization to a per-100g kcal basis."""

import math
from collections.abc import Mapping
from dataclasses import dataclass

from food_search.domain.nutrition import NutrientProfile

KJ_PER_KCAL = 4.184
# kcal per 100g rarely exceeds ~900 for real foods; oils sit close to it.
KJ_MAGNITUDE_THRESHOLD = 1000.0
SALT_TO_SODIUM_RATIO = 2.5

ENERGY_INFERRED_NOTE = "Energy unit inferred from magnitude"
ENERGY_MISSING_NOTE = "Energy not reported"
SODIUM_FROM_SALT_NOTE = "Sodium derived from salt"
MACROS_MISSING_NOTE = "Not reported: {fields}"


@dataclass(frozen=True)
class EnergyReading:
    """Normalized energy value with its confidence."""

    kcal: float | None
    inferred: bool = False


@dataclass(frozen=True)
class NormalizedNutrients:
    """Per-100g profile plus data-quality notes from normalization."""

    profile: NutrientProfile
    notes: tuple[str, ...] = ()

    @property
    def energy_inferred(self) -> bool:
        """Whether the kcal value came from the magnitude heuristic."""
        return ENERGY_INFERRED_NOTE in self.notes


def to_quantity(value: object) -> float | None:
    """Parse a non-negative number; anything else is unknown."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().replace(",", "."))
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number) or number < 0:
        return None
    return number


def looks_like_kilojoules(value: float) -> bool:
    """Guess that an untagged energy value is in kJ.

    This is an approximation: very energy-dense foods reported in kcal near the
    threshold can be misread. Callers get ``inferred=True`` for these values.
    """
    return value > KJ_MAGNITUDE_THRESHOLD


def normalize_energy(value: object, unit: str | None = None) -> EnergyReading:
    """Return energy in whole kcal, converting from kJ when needed."""
    amount = to_quantity(value)
    if amount is None:
        return EnergyReading(kcal=None)
    tag = (unit or "").strip().lower()
    if tag == "kj":
        return EnergyReading(kcal=float(round(amount / KJ_PER_KCAL)))
    if tag == "kcal":
        return EnergyReading(kcal=float(round(amount)))
    if looks_like_kilojoules(amount):
        return EnergyReading(kcal=float(round(amount / KJ_PER_KCAL)), inferred=True)
    return EnergyReading(kcal=float(round(amount)))


def round_macro(value: object) -> float | None:
    """Round a gram value to one decimal, keeping unknown as ``None``."""
    amount = to_quantity(value)
    if amount is None:
        return None
    return round(amount, 1)


def grams_to_milligrams(value: object) -> float | None:
    """Convert a gram value to mg rounded to one decimal."""
    amount = to_quantity(value)
    if amount is None:
        return None
    return round(amount * 1000, 1)


def normalize_nutriments(nutriments: Mapping[str, object]) -> NormalizedNutrients:
    """Normalize an Open Food Facts ``nutriments`` mapping."""
    notes: list[str] = []
    explicit_kcal = to_quantity(nutriments.get("energy-kcal_100g"))
    if explicit_kcal is not None:
        energy = normalize_energy(explicit_kcal, "kcal")
    else:
        energy = normalize_energy(
            nutriments.get("energy_100g"), _as_str(nutriments.get("energy_unit"))
        )
    if energy.kcal is None:
        notes.append(ENERGY_MISSING_NOTE)
    elif energy.inferred:
        notes.append(ENERGY_INFERRED_NOTE)

    sodium_mg = grams_to_milligrams(nutriments.get("sodium_100g"))
    if sodium_mg is None:
        salt = to_quantity(nutriments.get("salt_100g"))
        if salt is not None:
            sodium_mg = round(salt / SALT_TO_SODIUM_RATIO * 1000, 1)
            notes.append(SODIUM_FROM_SALT_NOTE)

    profile = NutrientProfile(
        calories_kcal=energy.kcal,
        protein_g=round_macro(nutriments.get("proteins_100g")),
        carbs_g=round_macro(nutriments.get("carbohydrates_100g")),
        fat_g=round_macro(nutriments.get("fat_100g")),
        fiber_g=round_macro(nutriments.get("fiber_100g")),
        sugar_g=round_macro(nutriments.get("sugars_100g")),
        sodium_mg=sodium_mg,
    )
    missing = missing_macros_note(profile)
    if missing:
        notes.append(missing)
    return NormalizedNutrients(profile=profile, notes=tuple(notes))


def missing_macros_note(profile: NutrientProfile) -> str | None:
    """Name the macros the source left out, or ``None`` when all are known."""
    labels = (
        ("protein", profile.protein_g),
        ("carbs", profile.carbs_g),
        ("fat", profile.fat_g),
    )
    missing = [label for label, value in labels if value is None]
    if not missing:
        return None
    return MACROS_MISSING_NOTE.format(fields=", ".join(missing))


def scale_profile(profile: NutrientProfile, multiplier: float) -> NutrientProfile:
    """Scale every field, rounding each independently.

    Unknown values stay unknown.
    """
    calories = profile.calories_kcal
    if calories is not None:
        calories = float(round(calories * multiplier))
    return NutrientProfile(
        calories_kcal=calories,
        protein_g=_scale_optional(profile.protein_g, multiplier),
        carbs_g=_scale_optional(profile.carbs_g, multiplier),
        fat_g=_scale_optional(profile.fat_g, multiplier),
        fiber_g=_scale_optional(profile.fiber_g, multiplier),
        sugar_g=_scale_optional(profile.sugar_g, multiplier),
        sodium_mg=_scale_optional(profile.sodium_mg, multiplier),
    )


def _scale_optional(value: float | None, multiplier: float) -> float | None:
    if value is None:
        return None
    return round(value * multiplier, 1)


def _as_str(value: object) -> str | None:
    return value if isinstance(value, str) else None
