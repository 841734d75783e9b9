"""
HTTP API Routes - REST endpoints for timeline event generation.

Exposes LLM event generation, recovery of events from raw model output,
and standalone BC/AD year resolution.
"""

from fastapi import APIRouter, Depends

from app.dependencies import get_llm_client
from app.schemas import (
    ErrorResponse,
    GenerateEventsRequest,
    MessageResponse,
    ParseEventsRequest,
    ResolveYearsRequest,
    ResolveYearsResponse,
    TimelineEventsResponse,
)
from app.services.event_generator import EventGenerationService, parse_events_text
from app.services.llm_interface import LLMInterface
from app.services.year_resolver import resolve_event_years
from app.utils.logger import setup_logger

logger = setup_logger("api")

router = APIRouter(prefix="/api")


@router.get("/", response_model=MessageResponse)
async def read_root():
    """API health check endpoint."""
    return MessageResponse(message="Timeline Events API is running!")


@router.post(
    "/events/generate",
    response_model=TimelineEventsResponse,
    responses={502: {"model": ErrorResponse}},
)
async def generate_events(
    request: GenerateEventsRequest,
    llm_client: LLMInterface = Depends(get_llm_client),
):
    """
    Generate timeline events with the configured LLM.

    Truncated model output still yields the events that could be recovered,
    with `status="partial"` and a warning.
    """
    logger.info(
        f"Event generation requested for '{request.timeline_name}' "
        f"(max_events={request.max_events}, factual={request.is_factual})"
    )
    service = EventGenerationService(llm_client)
    return await service.generate(request)


@router.post(
    "/events/parse",
    response_model=TimelineEventsResponse,
    responses={502: {"model": ErrorResponse}},
)
async def parse_events(request: ParseEventsRequest):
    """Recover and normalize events from raw LLM output supplied by the caller."""
    logger.info(
        f"Parsing {len(request.raw_text)} characters of model output "
        f"(length_limited={request.length_limited})"
    )
    return parse_events_text(
        request.raw_text,
        array_key=request.array_key,
        max_events=request.max_events,
        length_limited=request.length_limited,
    )


@router.post("/events/resolve-years", response_model=ResolveYearsResponse)
async def resolve_years_endpoint(request: ResolveYearsRequest):
    """Resolve the `year` of each record to a signed integer (negative = BC)."""
    results = resolve_event_years(request.records)
    unresolved = sum(1 for r in results if not r.had_year_provided)
    logger.debug(
        f"Resolved {len(results)} years ({unresolved} without a usable year)"
    )
    return ResolveYearsResponse(results=results)
