"""Tests for unit normalization."""

import math

import pytest

from food_search.domain.nutrition import NutrientProfile
from food_search.services.units import (
    ENERGY_INFERRED_NOTE,
    ENERGY_MISSING_NOTE,
    SODIUM_FROM_SALT_NOTE,
    normalize_energy,
    normalize_nutriments,
    scale_profile,
    to_quantity,
)


def test_normalize_energy_converts_tagged_kilojoules() -> None:
    reading = normalize_energy(2000, "kJ")

    assert reading.kcal == 478.0
    assert reading.inferred is False


def test_normalize_energy_keeps_tagged_kcal_even_when_large() -> None:
    reading = normalize_energy(1200, "kcal")

    assert reading.kcal == 1200.0
    assert reading.inferred is False


def test_normalize_energy_infers_kilojoules_from_magnitude() -> None:
    reading = normalize_energy(2000)

    assert reading.kcal == 478.0
    assert reading.inferred is True


def test_normalize_energy_keeps_small_untagged_values() -> None:
    reading = normalize_energy(250)

    assert reading.kcal == 250.0
    assert reading.inferred is False


def test_normalize_energy_unknown_value() -> None:
    assert normalize_energy(None).kcal is None
    assert normalize_energy("n/a").kcal is None


@pytest.mark.parametrize(
    "value",
    [None, True, -1, math.nan, math.inf, "abc", [1]],
)
def test_to_quantity_rejects_invalid_values(value: object) -> None:
    assert to_quantity(value) is None


def test_to_quantity_parses_comma_decimal_strings() -> None:
    assert to_quantity("12,5") == 12.5
    assert to_quantity(0) == 0.0


def test_normalize_nutriments_prefers_explicit_kcal() -> None:
    normalized = normalize_nutriments(
        {"energy-kcal_100g": 539, "energy_100g": 2252, "energy_unit": "kJ"}
    )

    assert normalized.profile.calories_kcal == 539.0
    assert normalized.energy_inferred is False


def test_normalize_nutriments_flags_inferred_energy() -> None:
    normalized = normalize_nutriments({"energy_100g": 1500})

    assert normalized.profile.calories_kcal == 359.0
    assert ENERGY_INFERRED_NOTE in normalized.notes


def test_normalize_nutriments_keeps_unknown_distinct_from_zero() -> None:
    normalized = normalize_nutriments(
        {"energy-kcal_100g": 40, "proteins_100g": 1, "fiber_100g": 0}
    )

    assert normalized.profile.fiber_g == 0.0
    assert normalized.profile.sugar_g is None
    assert normalized.profile.sodium_mg is None
    assert normalized.profile.fat_g is None
    assert normalized.profile.carbs_g is None
    assert "Not reported: carbs, fat" in normalized.notes


def test_normalize_nutriments_derives_sodium_from_salt() -> None:
    normalized = normalize_nutriments({"energy-kcal_100g": 100, "salt_100g": 1.0})

    assert normalized.profile.sodium_mg == 400.0
    assert SODIUM_FROM_SALT_NOTE in normalized.notes


def test_normalize_nutriments_converts_sodium_grams_to_mg() -> None:
    normalized = normalize_nutriments(
        {"energy-kcal_100g": 100, "sodium_100g": 0.25, "salt_100g": 5}
    )

    assert normalized.profile.sodium_mg == 250.0
    assert SODIUM_FROM_SALT_NOTE not in normalized.notes


def test_normalize_nutriments_notes_missing_energy() -> None:
    normalized = normalize_nutriments({"proteins_100g": 3})

    assert normalized.profile.calories_kcal is None
    assert ENERGY_MISSING_NOTE in normalized.notes


def test_scale_profile_rounds_each_field_and_keeps_unknowns() -> None:
    profile = NutrientProfile(
        calories_kcal=250, protein_g=10, carbs_g=30, fat_g=12, fiber_g=None
    )

    scaled = scale_profile(profile, 2)

    assert scaled.calories_kcal == 500.0
    assert scaled.protein_g == 20.0
    assert scaled.carbs_g == 60.0
    assert scaled.fat_g == 24.0
    assert scaled.fiber_g is None


def test_scale_profile_keeps_unknown_energy_and_macros() -> None:
    profile = NutrientProfile(
        calories_kcal=None, protein_g=None, carbs_g=12.5, fat_g=None
    )

    scaled = scale_profile(profile, 2)

    assert scaled.calories_kcal is None
    assert scaled.protein_g is None
    assert scaled.carbs_g == 25.0
    assert scaled.fat_g is None
    assert scaled.known_macro_count() == 1
