"""Domain models for remote product lookups."""

from collections.abc import Callable
from dataclasses import dataclass, field

from pufa_check.domain.errors import LookupFailureKind
from pufa_check.domain.nutrients import NutrientProfile


@dataclass(frozen=True)
class ParsedProduct:
    """Product fields extracted from one endpoint response."""

    name: str | None = None
    ingredients_text: str | None = None
    polyunsaturated_fat_per_100g: float | None = None
    nutrients: NutrientProfile | None = None

    def has_usable_data(self) -> bool:
        """Return True when any of name, ingredients or nutrients is present."""
        return bool(
            self.name
            or self.ingredients_text
            or (self.nutrients is not None and not self.nutrients.is_empty())
        )


ResponseParser = Callable[[object], ParsedProduct | None]


@dataclass(frozen=True)
class EndpointDescriptor:
    """A remote endpoint to query, in priority order."""

    url_template: str
    parser: ResponseParser
    source_id: str

    def url_for(self, encoded_barcode: str) -> str:
        """Render the endpoint URL for an already URL-encoded barcode."""
        return self.url_template.format(barcode=encoded_barcode)


@dataclass(frozen=True)
class EndpointOk:
    """The endpoint returned usable product data."""

    source_id: str
    product: ParsedProduct


@dataclass(frozen=True)
class EndpointSkip:
    """The endpoint answered but had no usable data for the barcode."""

    source_id: str
    reason: str

    @property
    def kind(self) -> LookupFailureKind:
        return LookupFailureKind.NOT_FOUND_REMOTE


@dataclass(frozen=True)
class EndpointFail:
    """The endpoint did not answer usefully (timeout, transport, bad payload)."""

    source_id: str
    kind: LookupFailureKind
    detail: str


EndpointOutcome = EndpointOk | EndpointSkip | EndpointFail


@dataclass(frozen=True)
class ProductFound:
    """Lookup succeeded on the endpoint identified by source_id."""

    product: ParsedProduct
    source_id: str


@dataclass(frozen=True)
class ProductNotFound:
    """Every endpoint was exhausted without usable data."""

    outcomes: tuple[EndpointSkip | EndpointFail, ...] = field(default_factory=tuple)

    @property
    def all_failed(self) -> bool:
        """Return True when no endpoint positively reported absence."""
        return bool(self.outcomes) and all(
            isinstance(outcome, EndpointFail) for outcome in self.outcomes
        )


LookupResult = ProductFound | ProductNotFound
