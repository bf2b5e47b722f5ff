from __future__ import annotations

import datetime as dt
from datetime import date, datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError as PydanticValidationError,
    confloat,
    conint,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from errors import ValidationError

MAX_TRIP_SPAN_DAYS = 30

# -----------------------------
# Shared atoms
# -----------------------------

class TripType(str, Enum):
    BUDGET = "budget"
    MID_RANGE = "mid-range"
    LUXURY = "luxury"

class ActivityCategory(str, Enum):
    SIGHTSEEING = "sightseeing"
    DINING = "dining"
    SHOPPING = "shopping"
    ENTERTAINMENT = "entertainment"
    TRANSPORT = "transport"
    ACCOMMODATION = "accommodation"
    OTHER = "other"

class CamelModel(BaseModel):
    """snake_case attributes, camelCase on the wire; accepts either on input."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


def _summarize_validation_error(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "request"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)

# -----------------------------
# Request
# -----------------------------

class GenerationRequest(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    destination: str
    start_date: date
    end_date: date
    number_of_travelers: conint(ge=1, le=50)
    preferences: List[str] = Field(default_factory=list)
    trip_type: TripType = TripType.MID_RANGE
    budget: Optional[str] = None
    special_requests: Optional[str] = None
    # Model identifier override; None means the configured default
    model: Optional[str] = None

    @field_validator("destination")
    @classmethod
    def _validate_destination(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("destination cannot be empty")
        return v

    @field_validator("preferences", mode="before")
    @classmethod
    def _none_to_list(cls, v):
        return [] if v is None else v

    @model_validator(mode="after")
    def _validate_dates(self) -> "GenerationRequest":
        if self.end_date <= self.start_date:
            raise ValueError("endDate must be after startDate.")
        if (self.end_date - self.start_date).days > MAX_TRIP_SPAN_DAYS:
            raise ValueError(f"Maximum trip duration is {MAX_TRIP_SPAN_DAYS} days.")
        return self

    @classmethod
    def from_payload(cls, payload: dict) -> "GenerationRequest":
        """Validate caller input, surfacing failures as the service's ValidationError."""
        try:
            return cls.model_validate(payload)
        except PydanticValidationError as exc:
            raise ValidationError(_summarize_validation_error(exc)) from exc

    @property
    def day_count(self) -> int:
        return (self.end_date - self.start_date).days + 1


class RegenerateOptions(CamelModel):
    change_preferences: Optional[List[str]] = None
    change_trip_type: Optional[TripType] = None
    special_requests: Optional[str] = None


class QuickGenerateRequest(CamelModel):
    destination: str
    days: conint(ge=2, le=MAX_TRIP_SPAN_DAYS)
    trip_type: TripType = TripType.MID_RANGE
    preferences: List[str] = Field(default_factory=list)

# -----------------------------
# Generated plan (parsed model output)
# -----------------------------

class WeatherInfo(CamelModel):
    summary: str
    chance_of_rain: confloat(ge=0, le=100)
    temperature_min: float
    temperature_max: float

class ActivityPlan(CamelModel):
    title: str
    description: str
    location: str
    start_time: Optional[str] = Field(default=None, description="Day-local wall clock, 'HH:MM'")
    end_time: Optional[str] = Field(default=None, description="Day-local wall clock, 'HH:MM'")
    category: ActivityCategory
    estimated_cost: confloat(ge=0)
    priority: conint(ge=1, le=5)
    tags: List[str]
    notes: Optional[str] = None
    booking_url: Optional[str] = None
    contact_info: Optional[str] = None

class DayPlan(CamelModel):
    day_number: conint(ge=1)
    date: Optional[dt.date] = None
    weather_summary: str
    temperature_min: float
    temperature_max: float
    chance_of_rain: confloat(ge=0, le=100)
    activities: List[ActivityPlan]

class GeneratedPlan(CamelModel):
    summary: str
    suggestions: List[str]
    weather_info: WeatherInfo
    days: List[DayPlan]
    total_estimated_cost: Optional[confloat(ge=0)] = None

    @model_validator(mode="after")
    def _days_contiguous(self) -> "GeneratedPlan":
        if not self.days:
            raise ValueError("days must not be empty")
        for expected, day in enumerate(self.days, start=1):
            if day.day_number != expected:
                raise ValueError(f"dayNumber sequence broken: expected {expected}, got {day.day_number}")
        return self

# -----------------------------
# Persisted records
# -----------------------------

class ItineraryRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    owner_id: str
    destination: str
    start_date: date
    end_date: date
    number_of_travelers: int
    preferences: List[str] = Field(default_factory=list)
    trip_type: TripType = TripType.MID_RANGE
    ai_summary: str = ""
    ai_suggestions: List[str] = Field(default_factory=list)
    weather_summary: str = ""
    chance_of_rain: float = 0
    temperature_min: float = 20
    temperature_max: float = 30
    created_at: datetime
    updated_at: datetime

class ItineraryDayRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    itinerary_id: str
    day_number: int
    date: dt.date
    weather_summary: str = ""
    temperature_min: float = 20
    temperature_max: float = 30
    chance_of_rain: float = 0
    created_at: datetime
    updated_at: datetime

class ActivityRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    day_id: str
    title: str
    description: str = ""
    location: str = ""
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    category: ActivityCategory = ActivityCategory.OTHER
    estimated_cost: float = 0
    priority: int = 3
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    booking_url: Optional[str] = None
    contact_info: Optional[str] = None
    created_at: datetime
    updated_at: datetime

# -----------------------------
# Response views
# -----------------------------

class ActivityView(CamelModel):
    title: str
    description: str
    location: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    category: ActivityCategory
    estimated_cost: float
    priority: int
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    booking_url: Optional[str] = None
    contact_info: Optional[str] = None

class ItineraryDayView(CamelModel):
    day_number: int
    date: dt.date
    weather_summary: str
    temperature_min: float
    temperature_max: float
    chance_of_rain: float
    activities: List[ActivityView] = Field(default_factory=list)

class ItineraryView(CamelModel):
    itinerary_id: str
    destination: str
    start_date: date
    end_date: date
    number_of_travelers: int
    preferences: List[str] = Field(default_factory=list)
    trip_type: TripType
    ai_summary: str
    ai_suggestions: List[str] = Field(default_factory=list)
    weather_summary: str
    chance_of_rain: float
    temperature_min: float
    temperature_max: float
    days: List[ItineraryDayView] = Field(default_factory=list)
    total_estimated_cost: float = 0
    created_at: datetime
    updated_at: datetime

# -----------------------------
# Completion provider wire types
# -----------------------------

class ImageUrl(BaseModel):
    url: str

class ContentPart(BaseModel):
    type: Literal["text", "image_url"]
    text: Optional[str] = None
    image_url: Optional[ImageUrl] = None

class ChatMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: List[ContentPart]

    @classmethod
    def user_text(cls, text: str) -> "ChatMessage":
        return cls(role="user", content=[ContentPart(type="text", text=text)])

class TokenUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

class CompletionResult(BaseModel):
    id: str
    model: str
    content: str
    usage: TokenUsage
    finish_reason: Optional[str] = None
    created_at: datetime
