"""
Year/Era Resolver - BC/AD disambiguation for LLM-generated event years.

Models write the same year as 750, "750", "750 BC" or -750, and often mark
only the first year of an ancient sequence as BC. This module turns each raw
year into a signed integer (negative = BC/BCE) using the explicit era marker
when there is one and the neighboring events when there is not.

The context rules are an ordered list of (name, predicate, era) entries
evaluated with early exit, so the precedence can be read and tested rule by
rule. They are heuristics: the permissive ancient-era rules favour recall over
precision and can misplace an isolated ambiguous year in a mixed-era
timeline.

All functions are pure and never raise; a year that cannot be determined is
returned as None with `had_year_provided=False`.
"""

import math
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel

from app.schemas import RawEventRecord, ResolvedEventRecord, ResolvedYear

ANCIENT_THRESHOLD = 1000
LARGE_ANCIENT_LIMIT = 10000
EARLIER_AD_LIMIT = 2000

# Month/day pairs models use as "no real date" filler
PLACEHOLDER_MONTH_DAYS = frozenset({(1, 1), (12, 31)})

_BC_RE = re.compile(r"^(\d+)\s*(?:B\.?\s*C\.?(?:\s*E\.?)?)$", re.IGNORECASE)
_AD_RE = re.compile(r"^(\d+)\s*(?:A\.?\s*D\.?|C\.?\s*E\.?)$", re.IGNORECASE)
_DIGITS_RE = re.compile(r"^\d+$")
_INT_PREFIX_RE = re.compile(r"^\s*([+-]?\d+)")


class Era(str, Enum):
    BC = "bc"
    AD = "ad"


@dataclass(frozen=True)
class ParsedYear:
    """A raw year after parsing but before any context inference."""

    value: int | None
    provided: bool
    # True for bare digit strings whose era must be inferred
    ambiguous: bool = False
    # Era stated by the model: a BC/AD marker or a sign
    explicit_era: Era | None = None
    source: str | None = None


NOT_PROVIDED = ParsedYear(value=None, provided=False)


def parse_year_value(raw: Any) -> ParsedYear:
    """
    Parse one raw year without looking at neighbors.

    Numbers pass through unchanged. Strings may carry a BC/BCE or AD/CE
    suffix; bare digits are flagged ambiguous; anything else falls back to
    leading-integer parsing.
    """
    if raw is None or isinstance(raw, bool):
        return NOT_PROVIDED

    if isinstance(raw, int):
        return ParsedYear(
            value=raw,
            provided=True,
            explicit_era=Era.BC if raw < 0 else None,
            source="numeric",
        )

    if isinstance(raw, float):
        if not math.isfinite(raw):
            return NOT_PROVIDED
        value = int(raw)
        return ParsedYear(
            value=value,
            provided=True,
            explicit_era=Era.BC if value < 0 else None,
            source="numeric",
        )

    if not isinstance(raw, str):
        return NOT_PROVIDED

    text = raw.strip()
    if not text:
        return NOT_PROVIDED

    try:
        return _parse_year_text(text)
    except ValueError:
        # Digit strings longer than the interpreter's int conversion limit
        return NOT_PROVIDED


def _parse_year_text(text: str) -> ParsedYear:
    match = _BC_RE.match(text)
    if match:
        return ParsedYear(
            value=-int(match.group(1)),
            provided=True,
            explicit_era=Era.BC,
            source="explicit_bc",
        )

    match = _AD_RE.match(text)
    if match:
        return ParsedYear(
            value=int(match.group(1)),
            provided=True,
            explicit_era=Era.AD,
            source="explicit_ad",
        )

    if _DIGITS_RE.match(text):
        return ParsedYear(
            value=int(text), provided=True, ambiguous=True, source="ambiguous"
        )

    match = _INT_PREFIX_RE.match(text)
    if match:
        value = int(match.group(1))
        return ParsedYear(
            value=value,
            provided=True,
            explicit_era=Era.BC if value < 0 else None,
            source="integer_prefix",
        )

    return NOT_PROVIDED


# ---------------------------------------------------------------------------
# Context inference rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class YearContext:
    """Magnitude of an ambiguous year and its neighbors' parsed values."""

    value: int
    preceding: int | None
    following: int | None


def _is_bc(year: int | None) -> bool:
    return year is not None and year < 0


def _is_ad(year: int | None) -> bool:
    return year is not None and year > 0


def _in_large_ancient_band(magnitude: int) -> bool:
    return ANCIENT_THRESHOLD <= magnitude < LARGE_ANCIENT_LIMIT


def _descending_large_ancient(ctx: YearContext) -> bool:
    if ctx.preceding is None or ctx.following is None:
        return False
    before, after = abs(ctx.preceding), abs(ctx.following)
    if not all(_in_large_ancient_band(m) for m in (before, ctx.value, after)):
        return False
    return before >= ctx.value >= after and before > after


ContextRule = tuple[str, Callable[[YearContext], bool], Era]

CONTEXT_RULES: tuple[ContextRule, ...] = (
    (
        "preceding_bc_not_later",
        lambda c: _is_bc(c.preceding) and c.value <= abs(c.preceding),
        Era.BC,
    ),
    (
        "preceding_bc_ancient",
        lambda c: _is_bc(c.preceding) and c.value < ANCIENT_THRESHOLD,
        Era.BC,
    ),
    (
        "preceding_bc_large_ancient",
        lambda c: _is_bc(c.preceding) and _in_large_ancient_band(c.value),
        Era.BC,
    ),
    (
        "following_bc_not_earlier",
        lambda c: _is_bc(c.following) and c.value >= abs(c.following),
        Era.BC,
    ),
    (
        "following_bc_ancient",
        lambda c: _is_bc(c.following) and c.value < ANCIENT_THRESHOLD,
        Era.BC,
    ),
    (
        "following_bc_large_ancient",
        lambda c: _is_bc(c.following) and _in_large_ancient_band(c.value),
        Era.BC,
    ),
    (
        "sandwiched_by_bc",
        lambda c: _is_bc(c.preceding) and _is_bc(c.following),
        Era.BC,
    ),
    ("descending_large_ancient", _descending_large_ancient, Era.BC),
    (
        "preceding_ad_forward",
        lambda c: _is_ad(c.preceding) and c.value >= c.preceding,
        Era.AD,
    ),
    (
        "preceding_ad_earlier",
        lambda c: _is_ad(c.preceding)
        and c.value < c.preceding
        and c.value < EARLIER_AD_LIMIT,
        Era.AD,
    ),
    (
        "following_ad_not_later",
        lambda c: _is_ad(c.following) and c.value <= c.following,
        Era.AD,
    ),
    ("default_common_era", lambda c: True, Era.AD),
)


def infer_era(ctx: YearContext) -> tuple[Era, str]:
    """Return the era chosen by the first matching rule and that rule's name."""
    for name, predicate, era in CONTEXT_RULES:
        if predicate(ctx):
            return era, name
    return Era.AD, "default_common_era"


def is_whole_sequence_bc(parsed: Sequence[ParsedYear]) -> bool:
    """
    Detect a BC-only timeline where the model marked only some years.

    Requires at least two supplied years whose magnitudes never increase and
    decrease at least once. With an explicit BC signal in the sequence the
    leading year must be at least 1000; with no era signal at all every year
    must be.
    """
    supplied = [p for p in parsed if p.provided and p.value is not None]
    if len(supplied) < 2:
        return False

    magnitudes = [abs(p.value) for p in supplied]
    if any(a < b for a, b in zip(magnitudes, magnitudes[1:], strict=False)):
        return False
    if magnitudes[0] == magnitudes[-1]:
        return False

    has_bc = any(p.explicit_era is Era.BC for p in supplied)
    has_any_era = any(p.explicit_era is not None for p in supplied)

    if has_bc:
        return magnitudes[0] >= ANCIENT_THRESHOLD
    if not has_any_era:
        return all(m >= ANCIENT_THRESHOLD for m in magnitudes)
    return False


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def _raw_year(record: Any) -> Any:
    if isinstance(record, Mapping):
        return record.get("year")
    if isinstance(record, BaseModel):
        return getattr(record, "year", None)
    return None


def _resolve_parsed(parsed: Sequence[ParsedYear]) -> list[ResolvedYear]:
    whole_sequence_bc = is_whole_sequence_bc(parsed)
    results: list[ResolvedYear] = []

    for index, current in enumerate(parsed):
        if not current.provided or current.value is None:
            results.append(ResolvedYear(resolved_year=None, had_year_provided=False))
            continue

        if not current.ambiguous:
            results.append(
                ResolvedYear(
                    resolved_year=current.value,
                    had_year_provided=True,
                    rule=current.source,
                )
            )
            continue

        if whole_sequence_bc:
            results.append(
                ResolvedYear(
                    resolved_year=-current.value,
                    had_year_provided=True,
                    rule="whole_sequence_bc",
                )
            )
            continue

        # Neighbors come from the unresolved sequence so results do not depend on order
        ctx = YearContext(
            value=current.value,
            preceding=parsed[index - 1].value if index > 0 else None,
            following=parsed[index + 1].value if index + 1 < len(parsed) else None,
        )
        era, rule = infer_era(ctx)
        results.append(
            ResolvedYear(
                resolved_year=-current.value if era is Era.BC else current.value,
                had_year_provided=True,
                rule=rule,
            )
        )

    return results


def resolve_event_years(records: Sequence[Any]) -> list[ResolvedYear]:
    """
    Resolve the `year` of every record to a signed integer.

    Records may be mappings or RawEventRecord models. The output is
    positionally aligned with the input.
    """
    return _resolve_parsed([parse_year_value(_raw_year(r)) for r in records])


def normalize_month_day(month: Any, day: Any) -> tuple[int | None, int | None]:
    """
    Keep a month/day pair only when it looks like a real date.

    Both must be present and in range, and (1, 1) / (12, 31) are treated as
    placeholder filler.
    """
    if (
        not isinstance(month, int)
        or not isinstance(day, int)
        or isinstance(month, bool)
        or isinstance(day, bool)
    ):
        return None, None
    if not (1 <= month <= 12 and 1 <= day <= 31):
        return None, None
    if (month, day) in PLACEHOLDER_MONTH_DAYS:
        return None, None
    return month, day


def resolve_years(records: Sequence[RawEventRecord]) -> list[ResolvedEventRecord]:
    """Resolve years and normalize month/day for a sequence of raw events."""
    years = resolve_event_years(records)
    resolved = []
    for record, year in zip(records, years, strict=True):
        month, day = normalize_month_day(record.month, record.day)
        resolved.append(
            ResolvedEventRecord(
                title=record.title,
                description=record.description,
                resolved_year=year.resolved_year,
                had_year_provided=year.had_year_provided,
                rule=year.rule,
                month=month,
                day=day,
                number=record.number,
            )
        )
    return resolved
