"""Pydantic request and response models for the HTTP API."""

from pydantic import BaseModel, Field

from pufa_check.domain.records import LookupStatus, Record, RiskTier


class ScanRequest(BaseModel):
    """A confirmed barcode capture."""

    value: str
    symbology: str = ""
    wait: bool = True


class ManualEntryRequest(BaseModel):
    """A product entered by hand instead of scanned."""

    name: str | None = None
    ingredients_text: str | None = None
    polyunsaturated_fat_per_100g: float | None = Field(
        default=None, ge=0, allow_inf_nan=False
    )


class NutrientPayload(BaseModel):
    """Nutrient amount per 100 g."""

    value: float | None = None
    unit: str | None = None


class RecordPayload(BaseModel):
    """Record representation returned to the presentation layer."""

    id: str
    barcode_value: str | None
    symbology: str | None
    display_name: str | None
    scanned_at_ms: int
    is_favorite: bool
    risk_tier: RiskTier
    ingredients_text: str | None
    polyunsaturated_fat_per_100g: float | None
    matched_seed_oil_terms: list[str]
    nutrients: dict[str, NutrientPayload] | None
    lookup_status: LookupStatus
    lookup_source_id: str | None

    @classmethod
    def from_record(cls, record: Record) -> "RecordPayload":
        """Build a payload from a domain record."""
        nutrients = (
            {
                key: NutrientPayload(value=value.value, unit=value.unit)
                for key, value in record.nutrients
            }
            if record.nutrients is not None
            else None
        )
        return cls(
            id=record.id,
            barcode_value=record.barcode_value,
            symbology=record.symbology,
            display_name=record.display_name,
            scanned_at_ms=record.scanned_at_ms,
            is_favorite=record.is_favorite,
            risk_tier=record.risk_tier,
            ingredients_text=record.ingredients_text,
            polyunsaturated_fat_per_100g=record.polyunsaturated_fat_per_100g,
            matched_seed_oil_terms=list(record.matched_seed_oil_terms),
            nutrients=nutrients,
            lookup_status=record.lookup_status,
            lookup_source_id=record.lookup_source_id,
        )


class RecordListPayload(BaseModel):
    """Records ordered most recent first."""

    records: list[RecordPayload]
