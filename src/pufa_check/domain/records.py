"""Domain models for scanned product records."""

from dataclasses import dataclass, field
from enum import StrEnum

from pufa_check.domain.nutrients import NutrientProfile, finite_float


class RiskTier(StrEnum):
    """PUFA risk tier assigned by the classifier."""

    UNKNOWN = "unknown"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class LookupStatus(StrEnum):
    """Progress of the remote product lookup for a record."""

    PENDING = "pending"
    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        """Return True once an enrichment attempt has resolved."""
        return self is not LookupStatus.PENDING


@dataclass(frozen=True)
class Record:
    """A scanned or manually created product entry."""

    id: str
    scanned_at_ms: int
    barcode_value: str | None = None
    symbology: str | None = None
    display_name: str | None = None
    is_favorite: bool = False
    risk_tier: RiskTier = RiskTier.UNKNOWN
    ingredients_text: str | None = None
    polyunsaturated_fat_per_100g: float | None = None
    matched_seed_oil_terms: tuple[str, ...] = field(default_factory=tuple)
    nutrients: NutrientProfile | None = None
    lookup_status: LookupStatus = LookupStatus.PENDING
    lookup_source_id: str | None = None

    @property
    def is_manual(self) -> bool:
        """Return True for entries created without a barcode."""
        return not self.barcode_value


def record_to_dict(record: Record) -> dict[str, object]:
    """Serialize a record to its persisted JSON form."""
    return {
        "id": record.id,
        "barcode_value": record.barcode_value,
        "symbology": record.symbology,
        "display_name": record.display_name,
        "scanned_at_ms": record.scanned_at_ms,
        "is_favorite": record.is_favorite,
        "risk_tier": record.risk_tier.value,
        "ingredients_text": record.ingredients_text,
        "polyunsaturated_fat_per_100g": record.polyunsaturated_fat_per_100g,
        "matched_seed_oil_terms": list(record.matched_seed_oil_terms),
        "nutrients": record.nutrients.to_dict() if record.nutrients else None,
        "lookup_status": record.lookup_status.value,
        "lookup_source_id": record.lookup_source_id,
    }


def record_from_dict(raw: dict[str, object]) -> Record:
    """Parse a persisted record, tolerating missing and unknown fields.

    Raises ValueError when the entry has no usable id.
    """
    record_id = raw.get("id")
    if not isinstance(record_id, str) or not record_id:
        raise ValueError("Record entry is missing an id")
    scanned_at = raw.get("scanned_at_ms")
    terms = raw.get("matched_seed_oil_terms")
    poly_fat = raw.get("polyunsaturated_fat_per_100g")
    return Record(
        id=record_id,
        scanned_at_ms=(
            int(scanned_at) if finite_float(scanned_at) is not None else 0
        ),
        barcode_value=_optional_str(raw.get("barcode_value")),
        symbology=_optional_str(raw.get("symbology")),
        display_name=_optional_str(raw.get("display_name")),
        is_favorite=raw.get("is_favorite") is True,
        risk_tier=_parse_enum(RiskTier, raw.get("risk_tier"), RiskTier.UNKNOWN),
        ingredients_text=_optional_str(raw.get("ingredients_text")),
        polyunsaturated_fat_per_100g=finite_float(poly_fat),
        matched_seed_oil_terms=(
            tuple(term for term in terms if isinstance(term, str))
            if isinstance(terms, list)
            else ()
        ),
        nutrients=NutrientProfile.from_dict(raw.get("nutrients")),
        lookup_status=_parse_enum(
            LookupStatus, raw.get("lookup_status"), LookupStatus.PENDING
        ),
        lookup_source_id=_optional_str(raw.get("lookup_source_id")),
    )


def _optional_str(value: object) -> str | None:
    return value if isinstance(value, str) else None


def _parse_enum(enum_cls: type[StrEnum], value: object, default: StrEnum) -> StrEnum:
    if isinstance(value, str):
        try:
            return enum_cls(value)
        except ValueError:
            return default
    return default
