"""
JSON parsing utilities for extracting structured data from LLM responses.

Handles JSON embedded in markdown code blocks or mixed with other text,
repairs small syntax defects, and salvages complete array elements from
documents cut off by an output-token limit. Every outcome, including total
failure, is returned as a `JsonExtractionResult`; nothing here raises.
"""

import json
import re
from typing import Any

from app.schemas import ExtractionDiagnostic, JsonExtractionResult
from app.utils.json_scanner import (
    BraceScanner,
    count_braces,
    find_array_end,
    find_object_end,
    repair_json_text,
)

DIAGNOSTIC_WINDOW = 50

_FENCE_OPEN_RE = re.compile(r"^```[A-Za-z0-9_-]*[ \t]*\r?\n?")
_FENCE_CLOSE_RE = re.compile(r"\r?\n?[ \t]*```$")

_NOT_PARSED = object()


def strip_code_fence(text: str) -> str:
    """Remove a leading ``` / ```json fence and its closing fence."""
    if not text.startswith("```"):
        return text
    text = _FENCE_OPEN_RE.sub("", text, count=1)
    text = _FENCE_CLOSE_RE.sub("", text.rstrip(), count=1)
    return text.strip()


def _try_parse(text: str) -> tuple[Any, json.JSONDecodeError | None]:
    """Strict parse; returns (_NOT_PARSED, error) on failure."""
    try:
        return json.loads(text), None
    except json.JSONDecodeError as e:
        return _NOT_PARSED, e
    except (ValueError, RecursionError):
        return _NOT_PARSED, None


def _parse_with_repair(text: str) -> Any:
    """Parse `text`, retrying once on its repaired form."""
    value, _ = _try_parse(text)
    if value is _NOT_PARSED:
        repaired = repair_json_text(text)
        if repaired != text:
            value, _ = _try_parse(repaired)
    return value


def looks_truncated(trimmed_text: str) -> bool:
    """True when a JSON start is present but the text does not end like a document."""
    if "{" not in trimmed_text:
        return False
    return not trimmed_text.endswith(("}", "]", "```"))


def _extract_balanced_span(text: str) -> Any:
    """Parse the first balanced top-level array or object embedded in `text`."""
    first_brace = text.find("{")
    if first_brace == -1:
        return _NOT_PARSED

    # An array that encloses the first object is the document itself;
    # brackets closed before the first object are prose such as "[1]"
    first_square = text.find("[")
    if first_square != -1 and first_square < first_brace:
        end = find_array_end(text, first_square)
        if end is None:
            # Unclosed top-level array; its elements are left to salvage
            return _NOT_PARSED
        if end > first_brace:
            value = _parse_with_repair(text[first_square:end])
            if value is not _NOT_PARSED:
                return value

    end = find_object_end(text, first_brace)
    if end is None:
        return _NOT_PARSED
    return _parse_with_repair(text[first_brace:end])


def _find_array_start(text: str, array_key: str) -> int | None:
    """Offset just after the `[` that opens the event array."""
    match = re.search(rf'"{re.escape(array_key)}"\s*:\s*\[', text)
    if match:
        return match.end()

    first_brace = text.find("{")
    first_square = text.find("[")
    if first_square != -1 and (first_brace == -1 or first_square < first_brace):
        return first_square + 1
    return None


def salvage_array_elements(
    text: str, array_key: str = "events"
) -> tuple[list[Any], int]:
    """
    Recover every complete object element of the event array.

    Each `{...}` element is parsed on its own; elements that fail to parse,
    and an element left open at the end of the text, are counted as
    discarded. Returns (recovered elements, discarded count).
    """
    start = _find_array_start(text, array_key)
    if start is None:
        return [], 0

    recovered: list[Any] = []
    discarded = 0
    scanner = BraceScanner()
    for span_start, span_end in scanner.object_spans(
        text, start, stop_at_array_close=True
    ):
        value = _parse_with_repair(text[span_start:span_end])
        if isinstance(value, dict):
            recovered.append(value)
        else:
            discarded += 1

    if scanner.unclosed_start is not None:
        discarded += 1

    return recovered, discarded


def _build_diagnostic(
    text: str, error: json.JSONDecodeError | None
) -> ExtractionDiagnostic:
    first_brace = text.find("{")
    candidate = text[first_brace:] if first_brace != -1 else text
    open_braces, close_braces = count_braces(candidate)

    offset = None
    snippet = None
    if error is not None:
        # Reported in UTF-8 bytes; the snippet window stays in characters
        offset = len(text[: error.pos].encode("utf-8"))
        snippet = text[
            max(0, error.pos - DIAGNOSTIC_WINDOW) : error.pos + DIAGNOSTIC_WINDOW
        ]
    elif text:
        snippet = text[: DIAGNOSTIC_WINDOW * 2]

    message = error.msg if error is not None else None
    if first_brace == -1:
        message = "No JSON object found in text" + (f" ({message})" if message else "")

    return ExtractionDiagnostic(
        offset=offset,
        snippet=snippet,
        open_braces=open_braces,
        close_braces=close_braces,
        message=message,
    )


def extract_json(
    raw_text: str,
    array_key: str = "events",
    length_limited: bool = False,
) -> JsonExtractionResult:
    """
    Recover JSON from text that should contain one JSON document.

    Tries, in order: a direct parse of the (unfenced) text, a parse after
    structural repairs, a parse of the first balanced `{...}` span, and
    finally salvage of the individual elements of the `array_key` array.
    `length_limited` marks the result as truncated, for completions that
    stopped on their token limit.
    """
    if not isinstance(raw_text, str):
        raw_text = ""

    trimmed = raw_text.strip()
    text = strip_code_fence(trimmed)

    value, parse_error = _try_parse(text)
    if value is not _NOT_PARSED:
        return JsonExtractionResult(status="clean", value=value)

    repaired = repair_json_text(text)
    if repaired != text:
        value, _ = _try_parse(repaired)
        if value is not _NOT_PARSED:
            return JsonExtractionResult(status="repaired", value=value)

    value = _extract_balanced_span(text)
    if value is not _NOT_PARSED:
        return JsonExtractionResult(status="extracted", value=value)

    truncated = length_limited or looks_truncated(trimmed)

    recovered, discarded = salvage_array_elements(text, array_key)
    if recovered:
        return JsonExtractionResult(
            status="salvaged",
            salvaged_elements=recovered,
            discarded_count=discarded,
            truncated=truncated,
        )

    return JsonExtractionResult(
        status="failed",
        discarded_count=discarded,
        truncated=truncated,
        diagnostic=_build_diagnostic(text, parse_error),
    )
