"""Parsers for Open Food Facts product responses."""

from pufa_check.domain.lookup import ParsedProduct
from pufa_check.domain.nutrients import NutrientProfile, NutrientValue, finite_float

KJ_PER_KCAL = 4.184

# Our nutrient key -> Open Food Facts nutriment prefix.
_OFF_NUTRIENT_KEYS = {
    "fat": "fat",
    "saturated_fat": "saturated-fat",
    "monounsaturated_fat": "monounsaturated-fat",
    "polyunsaturated_fat": "polyunsaturated-fat",
    "trans_fat": "trans-fat",
    "carbohydrates": "carbohydrates",
    "sugars": "sugars",
    "fiber": "fiber",
    "protein": "proteins",
    "salt": "salt",
    "sodium": "sodium",
}


def parse_off_v2(payload: object) -> ParsedProduct | None:
    """Parse the v2 shape, where status 0 or a missing product means absent."""
    if not isinstance(payload, dict):
        return None
    if payload.get("status") == 0:
        return None
    return _parse_product(payload.get("product"))


def parse_off_v0(payload: object) -> ParsedProduct | None:
    """Parse the v0 shape, which requires status 1 and a product object."""
    if not isinstance(payload, dict):
        return None
    if payload.get("status") != 1:
        return None
    return _parse_product(payload.get("product"))


def map_nutriments(nutriments: object) -> NutrientProfile | None:
    """Map an OFF nutriments object into a NutrientProfile."""
    if not isinstance(nutriments, dict):
        return None
    values: dict[str, NutrientValue] = {}
    energy = _energy_kcal(nutriments)
    if energy is not None:
        values["energy"] = NutrientValue(value=energy, unit="kcal")
    for key, off_key in _OFF_NUTRIENT_KEYS.items():
        value = _to_number(nutriments.get(f"{off_key}_100g"))
        unit = nutriments.get(f"{off_key}_unit")
        unit = unit if isinstance(unit, str) else None
        if value is None and unit is None:
            continue
        values[key] = NutrientValue(value=value, unit=unit)
    return NutrientProfile(values=values)


def _parse_product(product: object) -> ParsedProduct | None:
    if not isinstance(product, dict) or not product:
        return None
    nutriments = product.get("nutriments")
    parsed = ParsedProduct(
        name=_non_empty_str(product.get("product_name")),
        ingredients_text=(
            _non_empty_str(product.get("ingredients_text_en"))
            or _non_empty_str(product.get("ingredients_text"))
        ),
        polyunsaturated_fat_per_100g=(
            _to_number(nutriments.get("polyunsaturated-fat_100g"))
            if isinstance(nutriments, dict)
            else None
        ),
        nutrients=map_nutriments(nutriments),
    )
    if not parsed.has_usable_data():
        return None
    return parsed


def _energy_kcal(nutriments: dict[str, object]) -> float | None:
    kcal = _to_number(nutriments.get("energy-kcal_100g"))
    if kcal is not None:
        return kcal
    kj = _to_number(nutriments.get("energy-kj_100g"))
    if kj is not None:
        return kj / KJ_PER_KCAL
    return None


def _to_number(value: object) -> float | None:
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    return finite_float(value)


def _non_empty_str(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None
