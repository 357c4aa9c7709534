"""Classification and relevance scoring for text search hits."""

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, replace

from food_search.domain.nutrition import DataType, FoodCandidate, NutrientProfile
from food_search.services.servings import portion_multiplier, resolve_serving
from food_search.services.units import (
    ENERGY_INFERRED_NOTE,
    ENERGY_MISSING_NOTE,
    missing_macros_note,
    normalize_energy,
    round_macro,
    scale_profile,
    to_quantity,
)

BRAND_KEYWORDS = (
    "mcdonald", "mcdonalds", "burger king", "kfc", "taco bell", "subway",
    "starbucks", "dunkin", "pizza hut", "dominos", "papa johns",
    "tyson", "perdue", "foster farms", "oscar mayer", "hebrew national",
    "kraft", "heinz", "campbells", "progresso", "hunts",
    "lays", "doritos", "cheetos", "pringles", "ruffles",
    "coca cola", "pepsi", "sprite", "fanta", "dr pepper",
    "nestle", "hershey", "mars", "snickers", "kit kat",
    "kellogg", "general mills", "quaker", "nabisco",
)  # fmt: skip

INGREDIENT_KEYWORDS = (
    "broth", "stock", "bouillon", "base", "seasoning",
    "powder", "mix", "extract", "flavoring",
)  # fmt: skip

PENALTY_KEYWORDS = ("feet", "giblets", "neck", "back", "gizzard", "offal")

UPSTREAM_WEIGHT = 0.3
MATCH_WEIGHT = 0.7
PREFIX_MATCH = 1.0
SUBSTRING_MATCH = 0.8
TOKEN_MATCH = 0.6
COMMON_WEIGHT = 1.0
BRANDED_WEIGHT = 0.9
INGREDIENT_WEIGHT = 0.85
PENALTY_FACTOR = 0.8
DUPLICATE_GAP = 0.0001

_BRANDED_LABELS = {"branded", "branded food", "branded_food"}
_VERIFIED_LABELS = {"foundation", "sr legacy"}
_WORD = re.compile(r"[a-z0-9]+")
_PARENTHETICAL = re.compile(r"\([^)]*\)")

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _ScoredHit:
    position: int
    canonical_name: str
    candidate: FoodCandidate


def normalize_query(query: str) -> str:
    """Lowercase and collapse whitespace."""
    return " ".join(query.lower().split())


def detect_brand_intent(query: str) -> bool:
    """Return whether the query names a brand."""
    lowered = normalize_query(query)
    if any(brand in lowered for brand in BRAND_KEYWORDS):
        return True
    return any(
        len(word) > 2 and word.isalpha() and word.isupper() for word in query.split()
    )


def canonical_food_name(name: str) -> str:
    """Collapse visually similar descriptions to one key.

    "Chicken, breast, raw" and "CHICKEN, BREAST (skinless)" both become
    "chicken breast".
    """
    cleaned = _PARENTHETICAL.sub("", name.lower())
    parts = [part.strip() for part in cleaned.split(",") if part.strip()]
    if not parts:
        return ""
    key = parts[0]
    if len(parts) > 1 and len(key.split()) == 1:
        key = f"{key} {parts[1]}"
    return " ".join(_WORD.findall(key))


def classify_data_type(name: str, upstream_type: str | None) -> DataType:
    """Map an upstream provenance label and name to a data type."""
    words = set(_WORD.findall(name.lower()))
    if any(keyword in words for keyword in INGREDIENT_KEYWORDS):
        return DataType.INGREDIENT
    if (upstream_type or "").strip().lower() in _BRANDED_LABELS:
        return DataType.BRANDED
    return DataType.COMMON


def match_quality(name: str, query: str) -> float:
    """Score how well a food name matches the query text."""
    lowered_name = normalize_query(name)
    lowered_query = normalize_query(query)
    if not lowered_query:
        return 0.0
    if lowered_name.startswith(lowered_query):
        return PREFIX_MATCH
    if lowered_query in lowered_name:
        return SUBSTRING_MATCH
    query_tokens = {_stem(token) for token in _WORD.findall(lowered_query)}
    if not query_tokens:
        return 0.0
    name_tokens = {_stem(token) for token in _WORD.findall(lowered_name)}
    overlap = len(query_tokens & name_tokens) / len(query_tokens)
    return TOKEN_MATCH * overlap


@dataclass
class ResultClassifier:
    """Turn raw upstream hits into scored, de-duplicated candidates."""

    debug: bool = False

    def classify(
        self, hits: Sequence[dict[str, object]], query: str
    ) -> list[FoodCandidate]:
        """Classify hits and return them ordered by relevance.

        Hits without a positive calorie value are dropped unless that would
        leave nothing. Equal scores keep their upstream order.
        """
        brand_intent = detect_brand_intent(query)
        upstream_scores = _upstream_scores(hits)
        scored: list[_ScoredHit] = []
        for position, hit in enumerate(hits):
            candidate = self._to_candidate(hit, position)
            if candidate is None:
                continue
            score = _relevance(
                candidate,
                query,
                upstream_scores[position],
                brand_intent,
            )
            scored.append(
                _ScoredHit(
                    position=position,
                    canonical_name=canonical_food_name(candidate.name),
                    candidate=replace(candidate, relevance_score=score),
                )
            )

        scored = self._drop_calorie_free(scored, query)
        scored = _cap_branded_duplicates(scored)
        deduplicated = _deduplicate(scored)
        deduplicated.sort(
            key=lambda item: (-(item.candidate.relevance_score or 0.0), item.position)
        )
        if self.debug:
            _logger.info(
                "Classified hits: query=%s raw=%s kept=%s brand_intent=%s",
                query,
                len(hits),
                len(deduplicated),
                brand_intent,
            )
        return [item.candidate for item in deduplicated]

    @staticmethod
    def _to_candidate(hit: dict[str, object], position: int) -> FoodCandidate | None:
        name = hit.get("name") or hit.get("description")
        if not isinstance(name, str) or not name.strip():
            _logger.warning("Skipping search hit without a name: position=%s", position)
            return None
        raw_id = hit.get("id") or hit.get("fdcId")
        brand = hit.get("brand") or hit.get("brandOwner") or hit.get("brandName")
        upstream_type = hit.get("dataType")
        data_type = classify_data_type(
            name, upstream_type if isinstance(upstream_type, str) else None
        )

        energy_unit = hit.get("energyUnit")
        if not isinstance(energy_unit, str):
            energy_unit = "kcal"
        energy = normalize_energy(hit.get("calories"), energy_unit)
        notes: list[str] = []
        if energy.kcal is None:
            notes.append(ENERGY_MISSING_NOTE)
        elif energy.inferred:
            notes.append(ENERGY_INFERRED_NOTE)
        profile = NutrientProfile(
            calories_kcal=energy.kcal,
            protein_g=round_macro(hit.get("protein")),
            carbs_g=round_macro(hit.get("carbs")),
            fat_g=round_macro(hit.get("fat")),
            fiber_g=round_macro(hit.get("fiber")),
            sugar_g=round_macro(hit.get("sugar")),
            sodium_mg=round_macro(hit.get("sodium")),
        )
        missing = missing_macros_note(profile)
        if missing:
            notes.append(missing)

        serving_text = _serving_text(hit)
        serving = resolve_serving(serving_text)
        multiplier, serving_notes = portion_multiplier(serving, 1.0, "serving")
        notes.extend(serving_notes)

        verified = hit.get("verified")
        if not isinstance(verified, bool):
            verified = str(upstream_type or "").strip().lower() in _VERIFIED_LABELS

        return FoodCandidate(
            id=str(raw_id) if raw_id is not None else f"hit-{position}",
            name=name.strip(),
            brand=brand.strip() if isinstance(brand, str) and brand.strip() else None,
            data_type=data_type,
            nutrient_profile=profile,
            serving_spec=serving.to_spec(),
            portion=scale_profile(profile, multiplier),
            verified=verified,
            notes=tuple(notes),
        )

    @staticmethod
    def _drop_calorie_free(scored: list[_ScoredHit], query: str) -> list[_ScoredHit]:
        meaningful = [
            item
            for item in scored
            if (item.candidate.nutrient_profile.calories_kcal or 0.0) > 0
        ]
        if not meaningful:
            return scored
        if len(meaningful) < len(scored):
            _logger.info(
                "Dropped hits without calories: query=%s dropped=%s",
                query,
                len(scored) - len(meaningful),
            )
        return meaningful


def _upstream_scores(hits: Sequence[dict[str, object]]) -> list[float]:
    """Normalize upstream match scores to 0..1.

    Explicit scores are divided by the batch maximum; otherwise the upstream
    order is used.
    """
    total = len(hits)
    explicit = [to_quantity(hit.get("relevanceScore")) for hit in hits]
    known = [score for score in explicit if score is not None]
    if known and max(known) > 0:
        top = max(known)
        return [(score or 0.0) / top for score in explicit]
    return [1.0 - index / (2 * total) for index in range(total)]


def _relevance(
    candidate: FoodCandidate, query: str, upstream: float, brand_intent: bool
) -> float:
    if candidate.data_type is DataType.INGREDIENT:
        type_weight = INGREDIENT_WEIGHT
    elif candidate.data_type is DataType.BRANDED or candidate.brand:
        type_weight = COMMON_WEIGHT if brand_intent else BRANDED_WEIGHT
    else:
        type_weight = COMMON_WEIGHT
    words = set(_WORD.findall(candidate.name.lower()))
    penalized = any(keyword in words for keyword in PENALTY_KEYWORDS)
    penalty = PENALTY_FACTOR if penalized else 1.0
    match = match_quality(candidate.name, query)
    score = (UPSTREAM_WEIGHT * upstream + MATCH_WEIGHT * match) * type_weight * penalty
    return round(min(max(score, 0.0), 1.0), 4)


def _cap_branded_duplicates(scored: list[_ScoredHit]) -> list[_ScoredHit]:
    """Keep branded copies of a common food ranked below it."""
    common_scores: dict[str, float] = {}
    for item in scored:
        if item.candidate.data_type is DataType.COMMON and not item.candidate.brand:
            current = item.candidate.relevance_score or 0.0
            previous = common_scores.get(item.canonical_name)
            if previous is None or current > previous:
                common_scores[item.canonical_name] = current

    capped: list[_ScoredHit] = []
    for item in scored:
        ceiling = common_scores.get(item.canonical_name)
        score = item.candidate.relevance_score or 0.0
        is_branded = item.candidate.data_type is DataType.BRANDED or bool(
            item.candidate.brand
        )
        if ceiling is not None and is_branded and score >= ceiling:
            capped_score = round(max(ceiling - DUPLICATE_GAP, 0.0), 4)
            item = replace(
                item, candidate=replace(item.candidate, relevance_score=capped_score)
            )
        capped.append(item)
    return capped


def _deduplicate(scored: list[_ScoredHit]) -> list[_ScoredHit]:
    """Collapse hits with the same canonical name and brand."""
    kept: dict[tuple[str, str], _ScoredHit] = {}
    for item in scored:
        brand = (item.candidate.brand or "").lower()
        key = (item.canonical_name or item.candidate.id, brand)
        existing = kept.get(key)
        if existing is None or _quality(item) > _quality(existing):
            kept[key] = item
    return list(kept.values())


def _quality(item: _ScoredHit) -> tuple[int, int, float]:
    candidate = item.candidate
    return (
        1 if candidate.data_type is DataType.COMMON else 0,
        candidate.nutrient_profile.known_macro_count(),
        candidate.relevance_score or 0.0,
    )


def _serving_text(hit: dict[str, object]) -> str | None:
    size = to_quantity(hit.get("servingSize"))
    unit = hit.get("servingUnit")
    if size is None or size <= 0:
        return None
    unit_text = unit.strip().lower() if isinstance(unit, str) else "g"
    if "gram" in unit_text or unit_text == "grm":
        unit_text = "g"
    elif "ounce" in unit_text:
        unit_text = "oz"
    elif unit_text in {"mlt", "milliliter", "millilitre"}:
        unit_text = "ml"
    return f"{size:g} {unit_text}"


def _stem(token: str) -> str:
    if len(token) > 4 and token.endswith("ies"):
        return token[:-3] + "y"
    if len(token) > 3 and token.endswith("s") and not token.endswith("ss"):
        return token[:-1]
    return token
