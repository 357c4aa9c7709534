"""Serving size parsing and portion multipliers."""

import logging
import math
import re
from dataclasses import dataclass

from food_search.domain.nutrition import ServingSpec
from food_search.errors import InvalidInputError
from food_search.services.units import to_quantity

GRAMS_PER_OUNCE = 28.35
DEFAULT_SERVING_TEXT = "100g"
DEFAULT_BASIS_GRAMS = 100.0
SUPPORTED_UNITS = frozenset({"serving", "g", "ml", "oz"})
PER_100G_NOTE = "Nutrition shown per 100g"

_SERVING_TOKEN = re.compile(
    r"(\d+(?:[.,]\d+)?)\s*"
    r"(grams?|gr|g|millilit(?:er|re)s?|ml|ounces?|oz)\b",
    re.IGNORECASE,
)

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServingResolution:
    """Result of resolving a serving to grams.

    When ``resolved`` is false, ``grams`` holds the 100g default basis and any
    values derived from it must carry :data:`PER_100G_NOTE`.
    """

    grams: float
    resolved: bool
    source: str
    raw_text: str | None = None

    def to_spec(self) -> ServingSpec:
        """Return the serving spec exposed on candidates."""
        return ServingSpec(
            raw_text=self.raw_text,
            quantity_grams=self.grams if self.resolved else None,
        )


def resolve_serving(
    raw_text: str | None, quantity_hint: object = None
) -> ServingResolution:
    """Resolve a serving string (and optional numeric hint) to grams.

    The numeric hint wins when positive. Otherwise the first ``<number><unit>``
    token for g, ml or oz is used; ml is treated as grams.
    """
    hint = to_quantity(quantity_hint)
    if hint is not None and hint > 0:
        return ServingResolution(
            grams=hint, resolved=True, source="quantity", raw_text=raw_text
        )

    text = (raw_text or "").strip()
    if not text or text.lower() == DEFAULT_SERVING_TEXT:
        return _unresolved(raw_text)

    for match in _SERVING_TOKEN.finditer(text):
        value = float(match.group(1).replace(",", "."))
        if value <= 0:
            continue
        unit = match.group(2).lower()
        if unit.startswith("o"):
            value *= GRAMS_PER_OUNCE
        return ServingResolution(
            grams=round(value, 2), resolved=True, source="text", raw_text=raw_text
        )

    _logger.debug("Could not parse serving size: %s", raw_text)
    return _unresolved(raw_text)


def portion_multiplier(
    serving: ServingResolution, quantity: float, unit: str
) -> tuple[float, tuple[str, ...]]:
    """Return the factor applied to per-100g values and any notes."""
    if not math.isfinite(quantity) or quantity <= 0:
        raise InvalidInputError("Quantity must be a positive finite number")
    normalized_unit = unit.strip().lower()
    if normalized_unit == "serving":
        if serving.resolved:
            return serving.grams / 100.0 * quantity, ()
        return quantity, (PER_100G_NOTE,)
    if normalized_unit in {"g", "ml"}:
        return quantity / 100.0, ()
    if normalized_unit == "oz":
        return quantity * GRAMS_PER_OUNCE / 100.0, ()
    raise InvalidInputError(f"Unsupported unit: {unit}")


def _unresolved(raw_text: str | None) -> ServingResolution:
    return ServingResolution(
        grams=DEFAULT_BASIS_GRAMS,
        resolved=False,
        source="default",
        raw_text=raw_text,
    )
