"""
Event Generation Service - LLM-generated timeline events with recovery.

Asks the configured LLM for dated events describing a timeline, recovers
JSON from each completion (including truncated ones), resolves BC/AD years
across the whole generated sequence, and shapes the result for the API.

Large requests are split into batches that run concurrently; each batch is
extracted on its own and the batches are concatenated in order before year
resolution, so context inference sees one sequence.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

from app.config import Settings, settings
from app.prompts import build_event_generation_messages
from app.schemas import (
    ExtractionDiagnostic,
    ExtractionStatus,
    GenerateEventsRequest,
    JsonExtractionResult,
    TimelineEventsResponse,
)
from app.services.event_normalizer import (
    coerce_raw_records,
    is_chronological,
    normalize_timeline_events,
)
from app.services.llm_interface import (
    FINISH_REASON_LENGTH,
    LLMInterface,
    completion_content,
    completion_finish_reason,
)
from app.services.year_resolver import resolve_years
from app.utils.json_parser import extract_json
from app.utils.logger import setup_logger

logger = setup_logger("event_generator")


class EventGenerationError(Exception):
    """
    No usable events could be recovered.

    Carries what the API needs for a structured error response: the
    extraction diagnostic and a smaller event count to retry with.
    """

    def __init__(
        self,
        message: str,
        diagnostic: ExtractionDiagnostic | None = None,
        suggested_max_events: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.diagnostic = diagnostic
        self.suggested_max_events = suggested_max_events


@dataclass
class BatchOutcome:
    """Result of one generation batch (or of one caller-supplied text)."""

    batch_number: int
    requested: int | None
    extraction: JsonExtractionResult | None = None
    items: list[Any] = field(default_factory=list)
    error: str | None = None

    @property
    def usable(self) -> bool:
        return self.error is None

    @property
    def status(self) -> ExtractionStatus:
        if self.extraction is None or self.error is not None:
            return "failed"
        return self.extraction.status


def plan_batches(max_events: int, batch_size: int) -> list[int]:
    """Split `max_events` into batch sizes of at most `batch_size`."""
    batch_size = max(1, batch_size)
    sizes = [batch_size] * (max_events // batch_size)
    if max_events % batch_size:
        sizes.append(max_events % batch_size)
    return sizes


def token_budget(event_count: int, config: Settings = settings) -> int:
    """max_tokens for a call asking for `event_count` events."""
    return min(
        config.llm_event_generation_max_tokens,
        event_count * config.llm_tokens_per_event + config.llm_token_overhead,
    )


def suggest_smaller_request(requested: int | None) -> int | None:
    if not requested:
        return None
    return max(1, requested // 2)


def outcome_from_text(
    raw_text: str,
    array_key: str,
    length_limited: bool = False,
    batch_number: int = 1,
    requested: int | None = None,
) -> BatchOutcome:
    """Run the extractor over one completion and pull out the event array."""
    extraction = extract_json(raw_text, array_key=array_key, length_limited=length_limited)
    outcome = BatchOutcome(
        batch_number=batch_number, requested=requested, extraction=extraction
    )

    if not extraction.is_success:
        outcome.error = (
            extraction.diagnostic.message
            if extraction.diagnostic and extraction.diagnostic.message
            else "No JSON could be recovered from the model output"
        )
        return outcome

    items = extraction.array_items(array_key)
    if items is None:
        outcome.error = f"Model output has no '{array_key}' array"
        return outcome

    outcome.items = items
    if extraction.status in ("repaired", "extracted"):
        logger.info(
            f"Batch {batch_number}: JSON recovered with status '{extraction.status}'"
        )
    elif extraction.status == "salvaged":
        logger.warning(
            f"Batch {batch_number}: salvaged {len(items)} events "
            f"({extraction.discarded_count} fragments discarded, truncated={extraction.truncated})"
        )
    return outcome


def _first_diagnostic(outcomes: list[BatchOutcome]) -> ExtractionDiagnostic | None:
    for outcome in outcomes:
        if outcome.extraction is not None and outcome.extraction.diagnostic:
            return outcome.extraction.diagnostic
    return None


def build_timeline_response(
    outcomes: list[BatchOutcome],
    array_key: str,
    requested_count: int | None = None,
    max_events: int | None = None,
    config: Settings = settings,
) -> TimelineEventsResponse:
    """
    Combine batch outcomes into one API response.

    Raises EventGenerationError when no batch produced an event array.
    """
    usable = [o for o in outcomes if o.usable]
    if not usable:
        errors = "; ".join(o.error for o in outcomes if o.error)
        logger.error(f"Event recovery failed for every batch: {errors}")
        raise EventGenerationError(
            f"Failed to recover events from the model output: {errors}",
            diagnostic=_first_diagnostic(outcomes),
            suggested_max_events=suggest_smaller_request(requested_count),
        )

    items: list[Any] = []
    discarded = 0
    for outcome in usable:
        items.extend(outcome.items)
        discarded += outcome.extraction.discarded_count or 0

    raw_records, skipped = coerce_raw_records(items)
    discarded += skipped

    resolved = resolve_years(raw_records)
    kind, events = normalize_timeline_events(
        resolved,
        numbered_threshold=config.numbered_fallback_threshold,
        number_label=config.default_number_label,
        max_events=max_events,
    )

    salvaged = [o for o in usable if o.status == "salvaged"]
    failed = [o for o in outcomes if not o.usable]
    warnings = []
    if salvaged:
        requested_text = f" of {requested_count} requested" if requested_count else ""
        warnings.append(
            f"The model response was incomplete: recovered {len(events)}{requested_text} events "
            f"({discarded} fragments discarded). Try requesting fewer events."
        )
    if failed:
        warnings.append(f"{len(failed)} of {len(outcomes)} generation batches failed.")
    if not events:
        warnings.append("The model returned no usable events.")

    return TimelineEventsResponse(
        status="partial" if salvaged or failed else "success",
        timeline_kind=kind,
        events=events,
        requested_count=requested_count,
        recovered_count=len(events),
        discarded_count=discarded,
        is_chronological=is_chronological(events),
        extraction_statuses=[o.status for o in outcomes],
        warning=" ".join(warnings) or None,
    )


def parse_events_text(
    raw_text: str,
    array_key: str | None = None,
    max_events: int | None = None,
    length_limited: bool = False,
    config: Settings = settings,
) -> TimelineEventsResponse:
    """Run extraction, year resolution and normalization on caller-supplied text."""
    key = array_key or config.events_array_key
    outcome = outcome_from_text(raw_text, key, length_limited=length_limited)
    return build_timeline_response(
        [outcome],
        array_key=key,
        requested_count=max_events,
        max_events=max_events,
        config=config,
    )


class EventGenerationService:
    """Generates timeline events with an LLM client."""

    def __init__(self, llm_client: LLMInterface, config: Settings = settings):
        self.llm_client = llm_client
        self.config = config

    async def generate(self, request: GenerateEventsRequest) -> TimelineEventsResponse:
        batch_sizes = plan_batches(request.max_events, self.config.event_batch_size)
        logger.info(
            f"Generating up to {request.max_events} events for '{request.timeline_name}' "
            f"in {len(batch_sizes)} batch(es), factual={request.is_factual}"
        )

        tasks = []
        first_event = 1
        for batch_number, size in enumerate(batch_sizes, start=1):
            tasks.append(
                self._run_batch(
                    request,
                    batch_number=batch_number,
                    batch_count=len(batch_sizes),
                    count=size,
                    first_event=first_event,
                )
            )
            first_event += size

        results = await asyncio.gather(*tasks, return_exceptions=True)

        outcomes: list[BatchOutcome] = []
        for batch_number, (size, result) in enumerate(
            zip(batch_sizes, results, strict=True), start=1
        ):
            if isinstance(result, Exception):
                logger.error(
                    f"Batch {batch_number} failed with exception: {type(result).__name__}: {result}"
                )
                outcomes.append(
                    BatchOutcome(
                        batch_number=batch_number,
                        requested=size,
                        error=f"LLM request failed: {result}",
                    )
                )
            else:
                outcomes.append(result)

        response = build_timeline_response(
            outcomes,
            array_key=self.config.events_array_key,
            requested_count=request.max_events,
            max_events=request.max_events,
            config=self.config,
        )
        logger.info(
            f"Generated {response.recovered_count} events for '{request.timeline_name}' "
            f"(status={response.status}, kind={response.timeline_kind})"
        )
        return response

    async def _run_batch(
        self,
        request: GenerateEventsRequest,
        batch_number: int,
        batch_count: int,
        count: int,
        first_event: int,
    ) -> BatchOutcome:
        messages = build_event_generation_messages(
            request.timeline_name,
            request.timeline_description,
            count=count,
            is_factual=request.is_factual,
            batch_number=batch_number,
            batch_count=batch_count,
            first_event=first_event,
            total=request.max_events,
        )
        max_tokens = token_budget(count, self.config)
        logger.debug(
            f"Batch {batch_number}/{batch_count}: requesting {count} events, max_tokens={max_tokens}"
        )

        completion = await asyncio.wait_for(
            self.llm_client.generate_chat_completion(
                messages=messages,
                temperature=0.3 if request.is_factual else 0.8,
                max_tokens=max_tokens,
                response_format={"type": "json_object"},
            ),
            timeout=self.config.llm_timeout_generate,
        )

        raw_content = completion_content(completion)
        length_limited = completion_finish_reason(completion) == FINISH_REASON_LENGTH
        if length_limited:
            logger.warning(
                f"Batch {batch_number}: completion hit max_tokens={max_tokens}, output may be truncated"
            )
        if not raw_content:
            logger.warning(f"Batch {batch_number}: empty content in LLM response")

        return outcome_from_text(
            raw_content,
            self.config.events_array_key,
            length_limited=length_limited,
            batch_number=batch_number,
            requested=count,
        )
