import math
import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.config import settings

_INT_STRING_RE = re.compile(r"^[+-]?\d+$")

ExtractionStatus = Literal["clean", "repaired", "extracted", "salvaged", "failed"]
TimelineKind = Literal["dated", "numbered"]


def coerce_optional_int(value: Any) -> int | None:
    """Loosely coerce LLM output to an int; anything unusable becomes None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        stripped = value.strip()
        if _INT_STRING_RE.match(stripped):
            try:
                return int(stripped)
            except ValueError:
                # Past the interpreter's int conversion limit
                return None
    return None


# ---------------------------------------------------------------------------
# JSON extraction
# ---------------------------------------------------------------------------


class ExtractionDiagnostic(BaseModel):
    """Where and why a JSON document could not be recovered."""

    offset: int | None = Field(
        None, description="UTF-8 byte offset of the parser error in the cleaned text"
    )
    snippet: str | None = Field(
        None, description="Text window around the parser error"
    )
    open_braces: int | None = Field(
        None, description="Number of '{' outside strings in the candidate span"
    )
    close_braces: int | None = Field(
        None, description="Number of '}' outside strings in the candidate span"
    )
    message: str | None = Field(None, description="Underlying parser message")


class JsonExtractionResult(BaseModel):
    """
    Outcome of recovering JSON from raw LLM output.

    `value` is set for clean, repaired and extracted results;
    `salvaged_elements` and `discarded_count` for salvaged ones;
    `diagnostic` for failures.
    """

    status: ExtractionStatus
    value: Any | None = None
    salvaged_elements: list[Any] | None = None
    discarded_count: int | None = None
    truncated: bool = False
    diagnostic: ExtractionDiagnostic | None = None

    @property
    def is_success(self) -> bool:
        return self.status != "failed"

    @property
    def is_partial(self) -> bool:
        return self.status == "salvaged"

    def array_items(self, array_key: str = "events") -> list[Any] | None:
        """
        Return the event array carried by this result.

        A full value may be the wrapping object or the array itself. Returns
        None when the value has no such array.
        """
        if self.status == "salvaged":
            return list(self.salvaged_elements or [])
        if self.status == "failed":
            return None
        if isinstance(self.value, list):
            return self.value
        if isinstance(self.value, dict):
            items = self.value.get(array_key)
            if isinstance(items, list):
                return items
        return None


# ---------------------------------------------------------------------------
# Event records
# ---------------------------------------------------------------------------


class RawEventRecord(BaseModel):
    """A single event as emitted by the LLM, before year resolution."""

    model_config = ConfigDict(extra="ignore")

    year: str | int | float | None = None
    month: int | None = None
    day: int | None = None
    title: str = ""
    description: str | None = None
    number: int | None = None

    @field_validator("year", mode="before")
    @classmethod
    def keep_scalar_year(cls, v: Any) -> Any:
        """Years stay raw for the resolver; non-scalar values are dropped."""
        if isinstance(v, bool) or not isinstance(v, str | int | float):
            return None
        return v

    @field_validator("month", "day", "number", mode="before")
    @classmethod
    def coerce_int_fields(cls, v: Any) -> int | None:
        return coerce_optional_int(v)

    @field_validator("title", mode="before")
    @classmethod
    def coerce_title(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v).strip()

    @field_validator("description", mode="before")
    @classmethod
    def coerce_description(cls, v: Any) -> str | None:
        if v is None:
            return None
        text = str(v).strip()
        return text or None


class ResolvedYear(BaseModel):
    resolved_year: int | None = Field(
        None, description="Signed year, negative for BC/BCE; None if undetermined"
    )
    had_year_provided: bool = Field(
        ..., description="Whether the source record supplied a usable year"
    )
    rule: str | None = Field(
        None, description="Parse or inference step that decided the year's era"
    )


class ResolvedEventRecord(BaseModel):
    title: str = ""
    description: str | None = None
    resolved_year: int | None = None
    had_year_provided: bool = False
    rule: str | None = None
    month: int | None = None
    day: int | None = None
    number: int | None = None


class TimelineEvent(BaseModel):
    """Event as returned to API callers, either dated or numbered."""

    title: str
    description: str | None = None
    year: int | None = None
    month: int | None = None
    day: int | None = None
    number: int | None = None
    number_label: str | None = None
    date_iso: str | None = Field(
        None, description="ISO date with signed year, e.g. '-9500-01-01'"
    )
    display_date: str | None = Field(
        None, description="Human-readable date, e.g. '9500 BC'"
    )


# ---------------------------------------------------------------------------
# API requests / responses
# ---------------------------------------------------------------------------


class GenerateEventsRequest(BaseModel):
    timeline_name: str = Field(..., min_length=1, description="Timeline title")
    timeline_description: str = Field(
        ..., min_length=1, description="What the timeline is about"
    )
    max_events: int = Field(
        default_factory=lambda: settings.default_max_events,
        ge=1,
        description="Maximum number of events to generate",
    )
    is_factual: bool = Field(
        default=True,
        description="True for historical events, False for fictional timelines",
    )

    @field_validator("timeline_name", "timeline_description")
    @classmethod
    def reject_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @field_validator("max_events")
    @classmethod
    def cap_max_events(cls, v: int) -> int:
        if v > settings.max_events_limit:
            raise ValueError(f"must be at most {settings.max_events_limit}")
        return v


class ParseEventsRequest(BaseModel):
    raw_text: str = Field(..., description="LLM output that should contain JSON")
    array_key: str | None = Field(
        None, description="Key of the event array; defaults to the configured key"
    )
    max_events: int | None = Field(None, ge=1, description="Optional event cap")
    length_limited: bool = Field(
        False, description="Whether the completion stopped on its token limit"
    )


class TimelineEventsResponse(BaseModel):
    status: Literal["success", "partial"]
    timeline_kind: TimelineKind
    events: list[TimelineEvent]
    requested_count: int | None = None
    recovered_count: int
    discarded_count: int = 0
    is_chronological: bool = True
    extraction_statuses: list[ExtractionStatus] = Field(default_factory=list)
    warning: str | None = None


class ResolveYearsRequest(BaseModel):
    records: list[dict[str, Any]] = Field(
        ..., description="Records carrying an optional 'year' field"
    )


class ResolveYearsResponse(BaseModel):
    results: list[ResolvedYear]


class ErrorResponse(BaseModel):
    error: str
    diagnostic: ExtractionDiagnostic | None = None
    suggested_max_events: int | None = None


class MessageResponse(BaseModel):
    message: str = Field(..., description="Response message")
