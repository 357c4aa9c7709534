"""Alternate query suggestions for empty or weak searches."""

from collections.abc import Sequence
from dataclasses import dataclass

from food_search.domain.nutrition import FoodCandidate
from food_search.domain.search import Suggestion

MAX_SUGGESTIONS = 3

SYNONYMS = {
    "aubergine": "eggplant",
    "eggplant": "aubergine",
    "courgette": "zucchini",
    "zucchini": "courgette",
    "coriander": "cilantro",
    "cilantro": "coriander",
    "prawn": "shrimp",
    "prawns": "shrimp",
    "shrimp": "prawns",
    "crisps": "chips",
    "chips": "crisps",
    "soda": "soft drink",
    "pop": "soft drink",
    "yoghurt": "yogurt",
    "mince": "ground beef",
    "oj": "orange juice",
    "pb": "peanut butter",
    "garbanzo": "chickpeas",
    "chickpea": "garbanzo beans",
    "scallion": "green onion",
    "rocket": "arugula",
    "porridge": "oatmeal",
}

QUALIFIERS = {
    "raw", "cooked", "fresh", "frozen", "organic", "homemade", "grilled",
    "fried", "baked", "boiled", "roasted", "steamed", "large", "small",
    "medium", "low", "fat", "free", "reduced", "light", "lite", "diet",
    "plain", "whole", "sliced", "chopped", "unsweetened", "sweetened",
}  # fmt: skip

SPECIFIC_VARIANTS = {
    "chicken": ("chicken breast", "grilled chicken", "chicken thigh"),
    "beef": ("ground beef", "beef steak", "roast beef"),
    "fish": ("salmon", "tuna", "cod"),
    "rice": ("brown rice", "white rice", "rice pilaf"),
    "bread": ("whole wheat bread", "white bread", "sourdough"),
    "milk": ("whole milk", "skim milk", "almond milk"),
    "cheese": ("cheddar cheese", "mozzarella", "cottage cheese"),
}

_IRREGULAR_PLURALS = {
    "potatoes": "potato",
    "tomatoes": "tomato",
    "leaves": "leaf",
    "loaves": "loaf",
    "knives": "knife",
}


@dataclass
class SuggestionEngine:
    """Derive advisory alternate queries; never applied automatically."""

    low_relevance_threshold: float = 0.4
    max_suggestions: int = MAX_SUGGESTIONS

    def needs_suggestions(self, candidates: Sequence[FoodCandidate]) -> bool:
        """Return whether results are empty or uniformly weak."""
        if not candidates:
            return True
        best = max(candidate.relevance_score or 0.0 for candidate in candidates)
        return best < self.low_relevance_threshold

    def suggest(self, query: str) -> list[Suggestion]:
        """Return up to ``max_suggestions`` alternatives to ``query``."""
        words = query.lower().split()
        if not words:
            return []
        original = " ".join(words)
        suggestions: list[Suggestion] = []
        seen = {original}

        def add(alternative: str, display_text: str, reasoning: str) -> None:
            cleaned = " ".join(alternative.split())
            if not cleaned or cleaned in seen:
                return
            seen.add(cleaned)
            suggestions.append(
                Suggestion(
                    display_text=display_text, query=cleaned, reasoning=reasoning
                )
            )

        number_variant = _toggle_number(words[-1])
        if number_variant:
            alternative = " ".join([*words[:-1], number_variant])
            add(alternative, f'Try "{alternative}"', "Singular/plural form")

        for index, word in enumerate(words):
            synonym = SYNONYMS.get(word)
            if synonym:
                alternative = " ".join([*words[:index], synonym, *words[index + 1 :]])
                add(alternative, f'Try "{alternative}"', f'"{synonym}" means "{word}"')

        stripped = [word for word in words if word not in QUALIFIERS]
        if stripped and len(stripped) < len(words):
            alternative = " ".join(stripped)
            add(alternative, f'Search for "{alternative}"', "Without qualifier words")

        for base, variants in SPECIFIC_VARIANTS.items():
            if base in words:
                for variant in variants:
                    add(variant, f'Try "{variant}" instead', f"More specific {base}")
                break

        return suggestions[: self.max_suggestions]


def _toggle_number(word: str) -> str | None:
    """Return the singular of a plural word, or the plural of a singular one."""
    if len(word) < 3 or not word.isalpha():
        return None
    if word in _IRREGULAR_PLURALS:
        return _IRREGULAR_PLURALS[word]
    if word.endswith("ies") and len(word) > 4:
        return word[:-3] + "y"
    if word.endswith(("ches", "shes", "xes", "sses")):
        return word[:-2]
    if word.endswith("s") and not word.endswith("ss"):
        return word[:-1]
    if word.endswith("y") and word[-2] not in "aeiou":
        return word[:-1] + "ies"
    if word.endswith(("ch", "sh", "x", "ss")):
        return word + "es"
    return word + "s"
