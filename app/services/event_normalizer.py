"""
Event normalization - turns resolved records into the events the API returns.

Holds the caller-side policies that sit on top of year resolution:
record validation, the numbered-sequence fallback for mostly dateless sets,
the event cap, and date presentation (signed ISO dates and BC/AD labels).
"""

import calendar
from collections.abc import Iterable, Sequence
from typing import Any

from pydantic import ValidationError

from app.schemas import (
    RawEventRecord,
    ResolvedEventRecord,
    TimelineEvent,
    TimelineKind,
)
from app.utils.logger import setup_logger

logger = setup_logger("event_normalizer")

UNTITLED_EVENT = "Untitled Event"


def coerce_raw_records(items: Iterable[Any]) -> tuple[list[RawEventRecord], int]:
    """
    Convert extracted JSON elements into RawEventRecords.

    Returns the records and the number of elements that were not objects or
    did not validate.
    """
    records: list[RawEventRecord] = []
    skipped = 0
    for item in items:
        if not isinstance(item, dict):
            skipped += 1
            continue
        try:
            records.append(RawEventRecord.model_validate(item))
        except ValidationError as e:
            logger.debug(f"Skipping event element that failed validation: {e}")
            skipped += 1
    if skipped:
        logger.info(
            f"Skipped {skipped} extracted elements that were not usable events"
        )
    return records, skipped


def validate_records(
    records: Sequence[ResolvedEventRecord],
) -> list[ResolvedEventRecord]:
    """
    Drop records that have neither a title nor a usable year/number.

    A record with a date but no title is kept under a placeholder title.
    """
    valid = []
    for record in records:
        has_anchor = record.resolved_year is not None or record.number is not None
        if not record.title:
            if not has_anchor:
                continue
            record = record.model_copy(update={"title": UNTITLED_EVENT})
        valid.append(record)

    dropped = len(records) - len(valid)
    if dropped:
        logger.info(f"Dropped {dropped} events with neither a title nor a date")
    return valid


def dated_share(records: Sequence[ResolvedEventRecord]) -> float:
    if not records:
        return 0.0
    return sum(1 for r in records if r.had_year_provided) / len(records)


def choose_timeline_kind(
    records: Sequence[ResolvedEventRecord], threshold: float
) -> TimelineKind:
    """Dated when at least `threshold` of the records supplied a year."""
    if not records or dated_share(records) >= threshold:
        return "dated"
    return "numbered"


def format_iso_date(
    year: int | None, month: int | None = None, day: int | None = None
) -> str | None:
    """
    Format a signed year as an ISO-style date.

    BC years keep their minus sign ("-9500-01-01"); year-only dates use
    January 1st.
    """
    if year is None:
        return None
    sign = "-" if year < 0 else ""
    return f"{sign}{abs(year):04d}-{month or 1:02d}-{day or 1:02d}"


def format_display_date(
    year: int | None, month: int | None = None, day: int | None = None
) -> str | None:
    """Human-readable date: '9500 BC', '1066', 'March 15, 1944'."""
    if year is None:
        return None
    year_text = f"{abs(year)} BC" if year < 0 else str(year)
    if month is None or not 1 <= month <= 12:
        return year_text
    month_name = calendar.month_name[month]
    if day is None:
        return f"{month_name} {year_text}"
    return f"{month_name} {day}, {year_text}"


def is_chronological(events: Sequence[TimelineEvent]) -> bool:
    """Whether the dated events are in non-decreasing year order."""
    years = [e.year for e in events if e.year is not None]
    return all(a <= b for a, b in zip(years, years[1:], strict=False))


def _to_dated_event(record: ResolvedEventRecord) -> TimelineEvent:
    return TimelineEvent(
        title=record.title,
        description=record.description,
        year=record.resolved_year,
        month=record.month,
        day=record.day,
        date_iso=format_iso_date(record.resolved_year, record.month, record.day),
        display_date=format_display_date(
            record.resolved_year, record.month, record.day
        ),
    )


def _to_numbered_events(
    records: Sequence[ResolvedEventRecord], number_label: str
) -> list[TimelineEvent]:
    events = []
    for position, record in enumerate(records, start=1):
        number = record.number if record.number is not None else position
        events.append(
            TimelineEvent(
                title=record.title,
                description=record.description,
                number=number,
                number_label=number_label,
            )
        )
    return events


def normalize_timeline_events(
    records: Sequence[ResolvedEventRecord],
    *,
    numbered_threshold: float,
    number_label: str,
    max_events: int | None = None,
) -> tuple[TimelineKind, list[TimelineEvent]]:
    """
    Apply validation, the dated/numbered decision and the event cap.

    The dated/numbered decision is made on the validated set before capping
    so that a cap does not flip it.
    """
    valid = validate_records(records)
    kind = choose_timeline_kind(valid, numbered_threshold)
    if kind == "numbered":
        logger.info(
            f"Only {dated_share(valid):.0%} of {len(valid)} events have a year; "
            f"presenting them as a numbered sequence"
        )

    if max_events is not None:
        valid = valid[:max_events]

    if kind == "dated":
        events = [_to_dated_event(r) for r in valid]
    else:
        events = _to_numbered_events(valid, number_label)
    return kind, events
