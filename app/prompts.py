# ===========================================
# COMMON COMPONENTS
# ===========================================

# Common JSON formatting rules - used across the event prompts
JSON_FORMATTING_RULES = """
**IMPORTANT: JSON Formatting Rules**
- The entire output must be a single, valid JSON object of the form {{"events": [...]}}.
- All string values must be enclosed in double quotes.
- Any double quotes (`"`) that are part of a string's content must be escaped with a backslash.
- Do not add comments, trailing commas, or text outside the JSON object.
"""

EVENT_FIELDS_DESCRIPTION = """Each event must have: "year" and "title". "year" is a number; for years before the Common Era write a string with the era, e.g. "750 BC", and keep the era on every BC year. Optionally include "month" (1-12), "day" (1-31) and a one-sentence "description"."""

# ===========================================
# EVENT GENERATION PROMPTS
# ===========================================

FACTUAL_EVENTS_SYSTEM_PROMPT = (
    """
You are a factual timeline event generator. Generate up to {count} accurate historical events based on the provided timeline description. Return events as a JSON object with an "events" array. """
    + EVENT_FIELDS_DESCRIPTION
    + """

CRITICAL ACCURACY REQUIREMENTS:
- Only generate events that are well-documented
- Do NOT invent or speculate about events you are not certain about
- If you are unsure about specific dates, omit them rather than guessing
- If the topic is recent or obscure, generate fewer events rather than inaccurate ones

Only include month and day if the exact date is historically known and significant (e.g. September 11, 2001). Do not default to January 1 or December 31.

Events should be chronologically ordered and relevant to the timeline description.
"""
    + JSON_FORMATTING_RULES
)

CREATIVE_EVENTS_SYSTEM_PROMPT = (
    """
You are a creative timeline event generator for fictional narratives. Generate up to {count} engaging fictional events based on the provided timeline description. Return events as a JSON object with an "events" array. """
    + EVENT_FIELDS_DESCRIPTION
    + """

CREATIVE GUIDELINES:
- Create events that build upon each other to tell a coherent story
- Events should be chronologically ordered and relevant to the timeline description
- Include month and day only when they add narrative significance
"""
    + JSON_FORMATTING_RULES
)

EVENTS_USER_PROMPT = """Timeline Name: "{timeline_name}"

Description: {timeline_description}

Generate up to {count} {kind} events.{batch_instruction} Return as JSON: {{"events": [{{"year": 1944, "month": 6, "day": 6, "title": "D-Day landings"}}, {{"year": 1945, "title": "End of World War II"}}]}}"""

BATCH_INSTRUCTION = """ This is part {batch_number} of {batch_count} of a {total} event timeline: cover events {first_event} to {last_event} in chronological order and do not repeat events from other parts."""


def build_event_generation_messages(
    timeline_name: str,
    timeline_description: str,
    count: int,
    is_factual: bool,
    batch_number: int = 1,
    batch_count: int = 1,
    first_event: int = 1,
    total: int | None = None,
) -> list[dict[str, str]]:
    """Chat messages asking for `count` events, optionally as one batch of several."""
    system_template = (
        FACTUAL_EVENTS_SYSTEM_PROMPT if is_factual else CREATIVE_EVENTS_SYSTEM_PROMPT
    )
    batch_instruction = ""
    if batch_count > 1:
        batch_instruction = BATCH_INSTRUCTION.format(
            batch_number=batch_number,
            batch_count=batch_count,
            total=total or count,
            first_event=first_event,
            last_event=first_event + count - 1,
        )
    return [
        {"role": "system", "content": system_template.format(count=count).strip()},
        {
            "role": "user",
            "content": EVENTS_USER_PROMPT.format(
                timeline_name=timeline_name,
                timeline_description=timeline_description,
                count=count,
                kind="factually accurate" if is_factual else "creative fictional",
                batch_instruction=batch_instruction,
            ),
        },
    ]
