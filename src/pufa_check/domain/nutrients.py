"""Normalized per-100g nutrient values."""

import math
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field

def finite_float(value: object) -> float | None:
    """Return a real finite number as float; bools, NaN and infinities give None."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    result = float(value)
    return result if math.isfinite(result) else None


NUTRIENT_KEYS: tuple[str, ...] = (
    "energy",
    "fat",
    "saturated_fat",
    "monounsaturated_fat",
    "polyunsaturated_fat",
    "trans_fat",
    "carbohydrates",
    "sugars",
    "fiber",
    "protein",
    "salt",
    "sodium",
)


@dataclass(frozen=True)
class NutrientValue:
    """A single nutrient amount with an optional unit."""

    value: float | None = None
    unit: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Serialize to a JSON-compatible dict."""
        return {"value": self.value, "unit": self.unit}


@dataclass(frozen=True)
class NutrientProfile:
    """Per-100g nutrients keyed by NUTRIENT_KEYS; absent keys mean unknown."""

    values: Mapping[str, NutrientValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        unknown = set(self.values) - set(NUTRIENT_KEYS)
        if unknown:
            raise ValueError(f"Unknown nutrient keys: {sorted(unknown)}")

    def get(self, key: str) -> NutrientValue | None:
        """Return the value for a nutrient key, if present."""
        return self.values.get(key)

    def is_empty(self) -> bool:
        """Return True when no nutrient is present."""
        return not self.values

    def __iter__(self) -> Iterator[tuple[str, NutrientValue]]:
        for key in NUTRIENT_KEYS:
            if key in self.values:
                yield key, self.values[key]

    def to_dict(self) -> dict[str, dict[str, object]]:
        """Serialize present nutrients in canonical key order."""
        return {key: value.to_dict() for key, value in self}

    @classmethod
    def from_dict(cls, raw: object) -> "NutrientProfile | None":
        """Parse a stored profile, ignoring unknown keys and bad entries."""
        if not isinstance(raw, dict):
            return None
        values: dict[str, NutrientValue] = {}
        for key in NUTRIENT_KEYS:
            entry = raw.get(key)
            if not isinstance(entry, dict):
                continue
            value = entry.get("value")
            unit = entry.get("unit")
            parsed_value = finite_float(value)
            parsed_unit = unit if isinstance(unit, str) else None
            if parsed_value is None and parsed_unit is None:
                continue
            values[key] = NutrientValue(value=parsed_value, unit=parsed_unit)
        return cls(values=values)
