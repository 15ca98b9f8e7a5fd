import datetime as dt
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel


class TravelClass(str, Enum):
    FIRST = "KLASSE_1"
    SECOND = "KLASSE_2"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ------- Search configuration -------
class StationRef(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    name: str


class SearchOptions(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    travel_class: TravelClass = TravelClass.SECOND
    max_transfers: int = Field(0, ge=0)
    prefer_fast_connections: bool = False
    germany_ticket_only: bool = False
    window_start: dt.date = Field(default_factory=dt.date.today)
    day_count: int = 3  # clamped by the driver, not here


# ------- Per-day results -------
class ConnectionLeg(_CamelModel):
    price: float
    departure_timestamp: str
    arrival_timestamp: str
    departure_station: str
    arrival_station: str
    description: str
    booking_link: str = ""


class DayResult(_CamelModel):
    date: str
    best_price: float = 0.0
    status_or_info: str
    best_departure: str = ""
    best_arrival: str = ""
    all_connections: List[ConnectionLeg] = Field(default_factory=list)

    @classmethod
    def unavailable(cls, day: str, reason: str) -> "DayResult":
        """Zero-price sentinel carrying the reason no price could be reported."""
        return cls(date=day, best_price=0.0, status_or_info=reason)

    @property
    def has_price(self) -> bool:
        return self.best_price > 0


# ------- Aggregated response -------
class PriceSummary(_CamelModel):
    priced_days: int = 0
    min_price: float = 0.0
    max_price: float = 0.0
    avg_price: float = 0.0


class ResultMeta(_CamelModel):
    start: StationRef
    destination: StationRef
    options: SearchOptions
    summary: PriceSummary = Field(default_factory=PriceSummary)


class AggregationResult(_CamelModel):
    by_date: Dict[str, DayResult] = Field(default_factory=dict)
    meta: ResultMeta

    def to_payload(self) -> Dict[str, Any]:
        """Flatten into ``{date: day, ..., "meta": {...}}`` for the presentation layer."""
        payload: Dict[str, Any] = {
            day: result.model_dump(mode="json", by_alias=True)
            for day, result in self.by_date.items()
        }
        payload["meta"] = self.meta.model_dump(mode="json", by_alias=True)
        return payload


# ------- Request models -------
class SearchPricesRequest(BaseModel):
    """Request body of ``POST /api/search-prices`` (field names as the search form sends them)."""

    model_config = ConfigDict(extra="ignore")

    start: Optional[str] = None
    ziel: Optional[str] = None
    abfahrtab: Optional[dt.date] = None
    klasse: TravelClass = TravelClass.SECOND
    schnelleVerbindungen: bool = False
    nurDeutschlandTicketVerbindungen: bool = False
    maximaleUmstiege: int = Field(0, ge=0)
    dayLimit: int = 3

    @field_validator("abfahrtab", "klasse", "maximaleUmstiege", "dayLimit", mode="before")
    @classmethod
    def _blank_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        # The form posts "" for untouched inputs
        if value is None or (isinstance(value, str) and not value.strip()):
            return cls.model_fields[info.field_name].default
        return value

    @field_validator("abfahrtab", mode="before")
    @classmethod
    def _date_part_only(cls, value: Any) -> Any:
        if isinstance(value, str) and "T" in value:
            return value.split("T", 1)[0]
        return value

    def has_stations(self) -> bool:
        return bool((self.start or "").strip() and (self.ziel or "").strip())

    def to_options(self) -> SearchOptions:
        return SearchOptions(
            travel_class=self.klasse,
            max_transfers=self.maximaleUmstiege,
            prefer_fast_connections=self.schnelleVerbindungen,
            germany_ticket_only=self.nurDeutschlandTicketVerbindungen,
            window_start=self.abfahrtab or dt.date.today(),
            day_count=self.dayLimit,
        )
