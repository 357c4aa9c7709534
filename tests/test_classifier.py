"""Tests for result classification and scoring."""

from food_search.domain.nutrition import DataType
from food_search.services.classifier import (
    ResultClassifier,
    canonical_food_name,
    classify_data_type,
    detect_brand_intent,
    match_quality,
)
from food_search.services.servings import PER_100G_NOTE
from food_search.services.units import ENERGY_MISSING_NOTE
from tests.conftest import apple_hits, food_hit


def test_classify_orders_by_descending_relevance() -> None:
    candidates = ResultClassifier().classify(apple_hits(), "apple")

    scores = [candidate.relevance_score for candidate in candidates]
    assert scores == sorted(scores, reverse=True)
    assert all(0.0 <= score <= 1.0 for score in scores)
    assert candidates[0].name == "Apple, raw"


def test_classify_maps_data_types() -> None:
    hits = [
        food_hit("Chicken breast", fdc_id=1, data_type="Foundation"),
        food_hit("Chicken nuggets", fdc_id=2, data_type="Branded", brand="Tyson"),
        food_hit("Chicken broth", fdc_id=3, data_type="SR Legacy"),
    ]

    candidates = ResultClassifier().classify(hits, "chicken")

    by_id = {candidate.id: candidate.data_type for candidate in candidates}
    assert by_id == {
        "1": DataType.COMMON,
        "2": DataType.BRANDED,
        "3": DataType.INGREDIENT,
    }


def test_classify_keeps_branded_copy_below_common_food() -> None:
    hits = [
        food_hit(
            "Chicken Breast",
            fdc_id=1,
            data_type="Branded",
            brand="Tyson",
            relevanceScore=100,
        ),
        food_hit("Chicken, breast, raw", fdc_id=2, relevanceScore=10),
    ]

    candidates = ResultClassifier().classify(hits, "chicken breast")

    assert [candidate.id for candidate in candidates] == ["2", "1"]
    assert candidates[1].relevance_score < candidates[0].relevance_score


def test_classify_collapses_duplicates_keeping_richest_record() -> None:
    hits = [
        food_hit("Apple, raw", fdc_id=1, protein=None, carbs=None, fat=None),
        food_hit("Apple, raw (with skin)", fdc_id=2),
    ]

    candidates = ResultClassifier().classify(hits, "apple")

    assert [candidate.id for candidate in candidates] == ["2"]


def test_classify_keeps_same_name_from_different_brands() -> None:
    hits = [
        food_hit("Greek yogurt", fdc_id=1, data_type="Branded", brand="Fage"),
        food_hit("Greek yogurt", fdc_id=2, data_type="Branded", brand="Chobani"),
    ]

    candidates = ResultClassifier().classify(hits, "greek yogurt")

    assert len(candidates) == 2


def test_classify_penalizes_undesirable_parts() -> None:
    hits = [
        food_hit("Chicken feet", fdc_id=1, relevanceScore=5),
        food_hit("Chicken thigh", fdc_id=2, relevanceScore=5),
    ]

    candidates = ResultClassifier().classify(hits, "chicken")

    assert [candidate.id for candidate in candidates] == ["2", "1"]


def test_classify_penalizes_back_cuts_by_whole_word() -> None:
    hits = [
        food_hit("Chicken, back, raw", fdc_id=1, relevanceScore=5),
        food_hit("Chicken wing", fdc_id=2, relevanceScore=5),
        food_hit("Chicken backed pie", fdc_id=3, relevanceScore=5),
    ]

    candidates = ResultClassifier().classify(hits, "chicken")

    scores = {candidate.id: candidate.relevance_score for candidate in candidates}
    assert scores["1"] < scores["2"]
    assert scores["3"] == scores["2"]


def test_classify_drops_hits_without_calories() -> None:
    hits = [
        food_hit("Chicken broth", fdc_id=1, calories=0),
        food_hit("Chicken seasoning", fdc_id=2, calories=None),
        food_hit("Chicken breast", fdc_id=3, calories=165),
    ]

    candidates = ResultClassifier().classify(hits, "chicken")

    assert [candidate.id for candidate in candidates] == ["3"]


def test_classify_keeps_calorie_free_hits_when_nothing_else_remains() -> None:
    hits = [
        food_hit("Water, tap", fdc_id=1, calories=0),
        food_hit("Water, mineral", fdc_id=2, calories=None),
    ]

    candidates = ResultClassifier().classify(hits, "water")

    assert {candidate.id for candidate in candidates} == {"1", "2"}
    unknown = next(candidate for candidate in candidates if candidate.id == "2")
    assert unknown.nutrient_profile.calories_kcal is None
    assert unknown.portion.calories_kcal is None
    assert ENERGY_MISSING_NOTE in unknown.notes


def test_classify_keeps_unreported_macros_unknown() -> None:
    hit = food_hit("Pear", fdc_id=1, protein=None, fat=None, carbs=0)

    candidate = ResultClassifier().classify([hit], "pear")[0]

    assert candidate.nutrient_profile.protein_g is None
    assert candidate.nutrient_profile.fat_g is None
    assert candidate.nutrient_profile.carbs_g == 0.0
    assert candidate.portion.protein_g is None
    assert "Not reported: protein, fat" in candidate.notes


    assert [candidate.id for candidate in candidates] == ["2", "1"]


def test_classify_keeps_upstream_order_on_ties() -> None:
    hits = [
        food_hit("Apple gala", fdc_id=1, relevanceScore=3),
        food_hit("Apple fuji", fdc_id=2, relevanceScore=3),
    ]

    candidates = ResultClassifier().classify(hits, "apple")

    assert candidates[0].relevance_score == candidates[1].relevance_score
    assert [candidate.id for candidate in candidates] == ["1", "2"]


def test_classify_resolves_serving_portion() -> None:
    candidates = ResultClassifier().classify(apple_hits(), "apple juice")

    juice = next(candidate for candidate in candidates if candidate.id == "3")
    assert juice.serving_spec.quantity_grams == 240.0
    assert juice.portion.calories_kcal == 110.0
    assert juice.nutrient_profile.calories_kcal == 46.0


def test_classify_notes_unresolved_serving() -> None:
    candidates = ResultClassifier().classify([food_hit("Rice", fdc_id=1)], "rice")

    assert PER_100G_NOTE in candidates[0].notes
    assert candidates[0].portion == candidates[0].nutrient_profile


def test_classify_converts_kilojoule_hits() -> None:
    hit = food_hit("Oat bar", fdc_id=1, calories=1674, energyUnit="kJ")

    candidates = ResultClassifier().classify([hit], "oat bar")

    assert candidates[0].nutrient_profile.calories_kcal == 400.0


def test_classify_skips_hits_without_name() -> None:
    hits = [{"fdcId": 1, "calories": 10}, food_hit("Pear", fdc_id=2)]

    candidates = ResultClassifier().classify(hits, "pear")

    assert [candidate.id for candidate in candidates] == ["2"]


def test_classify_empty_hits() -> None:
    assert ResultClassifier().classify([], "apple") == []


def test_detect_brand_intent() -> None:
    assert detect_brand_intent("coca cola zero")
    assert detect_brand_intent("KFC wings")
    assert not detect_brand_intent("apple")
    assert not detect_brand_intent("Ok")


def test_canonical_food_name() -> None:
    assert canonical_food_name("Chicken, breast, raw") == "chicken breast"
    assert canonical_food_name("CHICKEN, BREAST (skinless)") == "chicken breast"
    assert canonical_food_name("Greek yogurt, plain") == "greek yogurt"


def test_classify_data_type_prefers_ingredient_keywords() -> None:
    assert classify_data_type("Onion powder", "Branded") is DataType.INGREDIENT
    assert classify_data_type("Cola", "Branded") is DataType.BRANDED
    assert classify_data_type("Cola", "Survey (FNDDS)") is DataType.COMMON


def test_match_quality_levels() -> None:
    assert match_quality("Apple pie", "apple") == 1.0
    assert match_quality("Green apple", "apple") == 0.8
    assert match_quality("Pie, apple", "apple pie") == 0.6
    assert match_quality("Banana", "apple") == 0.0
