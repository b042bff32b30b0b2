"""PUFA risk classification from ingredients and nutrition data."""

from dataclasses import dataclass

from pufa_check.domain.nutrients import finite_float
from pufa_check.domain.records import RiskTier

SEED_OIL_KEYWORDS: tuple[str, ...] = (
    "canola oil",
    "rapeseed oil",
    "soybean oil",
    "soy oil",
    "corn oil",
    "sunflower oil",
    "safflower oil",
    "cottonseed oil",
    "grapeseed oil",
    "rice bran oil",
    "vegetable oil",
    "mixed vegetable oils",
)

LOW_PUFA_KEYWORDS: tuple[str, ...] = ("olive oil", "butter", "avocado oil")

HIGH_PUFA_THRESHOLD_G = 10.0
MEDIUM_PUFA_THRESHOLD_G = 4.0


@dataclass(frozen=True)
class PufaAssessment:
    """Risk tier plus the seed-oil keywords that matched."""

    tier: RiskTier
    matched_terms: tuple[str, ...]


def classify_pufa(
    ingredients_text: str | None, poly_fat_per_100g: float | None
) -> PufaAssessment:
    """Classify a product by polyunsaturated fat and seed-oil ingredients.

    A finite PUFA value takes precedence; without one the ingredient text
    decides. Thresholds are inclusive.
    """
    normalized = (ingredients_text or "").lower()
    poly_fat_per_100g = finite_float(poly_fat_per_100g)
    matched = tuple(keyword for keyword in SEED_OIL_KEYWORDS if keyword in normalized)

    if poly_fat_per_100g is not None:
        if poly_fat_per_100g >= HIGH_PUFA_THRESHOLD_G:
            tier = RiskTier.HIGH
        elif poly_fat_per_100g >= MEDIUM_PUFA_THRESHOLD_G:
            tier = RiskTier.MEDIUM
        else:
            tier = RiskTier.HIGH if matched else RiskTier.LOW
    elif matched:
        tier = RiskTier.HIGH
    elif any(keyword in normalized for keyword in LOW_PUFA_KEYWORDS):
        tier = RiskTier.LOW
    else:
        tier = RiskTier.UNKNOWN
    return PufaAssessment(tier=tier, matched_terms=matched)
