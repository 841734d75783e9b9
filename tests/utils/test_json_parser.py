import json

import pytest

from app.utils.json_parser import (
    extract_json,
    looks_truncated,
    salvage_array_elements,
    strip_code_fence,
)

CLEAN_EVENTS = '{"events": [{"year": 1969, "title": "Moon landing"}]}'

TRUNCATED_EVENTS = (
    '{"events": [{"year": "500 BC", "title": "A"}, '
    '{"year": "400 BC", "title": "B"}, '
    '{"year": "300 BC", "tit'
)


def test_clean_parse_returns_value_unchanged():
    result = extract_json(CLEAN_EVENTS)
    assert result.status == "clean"
    assert result.value == json.loads(CLEAN_EVENTS)
    assert result.diagnostic is None
    assert result.truncated is False


@pytest.mark.parametrize(
    "fenced",
    [
        f"```json\n{CLEAN_EVENTS}\n```",
        f"```\n{CLEAN_EVENTS}\n```",
        f"  ```JSON\n{CLEAN_EVENTS}```  ",
    ],
)
def test_fenced_input_matches_unfenced(fenced):
    result = extract_json(fenced)
    assert result.status == "clean"
    assert result.value == extract_json(CLEAN_EVENTS).value


def test_strip_code_fence_leaves_plain_text():
    assert strip_code_fence(CLEAN_EVENTS) == CLEAN_EVENTS


def test_trailing_commas_are_repaired():
    result = extract_json('{"events": [{"year": 1, "title": "A"},],}')
    assert result.status == "repaired"
    assert result.value == {"events": [{"year": 1, "title": "A"}]}


def test_invalid_backslash_is_repaired():
    result = extract_json('{"events": [{"title": "C:\\dir\\x"}]}')
    assert result.status == "repaired"
    assert result.value["events"][0]["title"] == "C:\\dir\\x"


def test_repaired_output_reserializes_clean():
    result = extract_json('{"events": [{"title": "a\\qb"},]}')
    assert result.status == "repaired"
    again = extract_json(json.dumps(result.value))
    assert again.status == "clean"
    assert again.value == result.value


def test_object_wrapped_in_prose_is_extracted():
    text = 'Sure! Here are the events:\n{"events": [{"title": "x } y"}]}\nHope this helps {:'
    result = extract_json(text)
    assert result.status == "extracted"
    assert result.value == {"events": [{"title": "x } y"}]}


def test_string_internal_brace_does_not_end_object():
    text = 'Result: {"title": "ends with }", "year": 1900} trailing'
    result = extract_json(text)
    assert result.status == "extracted"
    assert result.value == {"title": "ends with }", "year": 1900}


def test_top_level_array_in_prose_is_extracted_whole():
    text = 'Events: [{"title": "A"}, {"title": "B"}] done.'
    result = extract_json(text)
    assert result.status == "extracted"
    assert result.array_items() == [{"title": "A"}, {"title": "B"}]


def test_truncated_array_salvages_complete_elements():
    result = extract_json(TRUNCATED_EVENTS)
    assert result.status == "salvaged"
    assert result.salvaged_elements == [
        {"year": "500 BC", "title": "A"},
        {"year": "400 BC", "title": "B"},
    ]
    assert result.discarded_count >= 1
    assert result.truncated is True
    assert result.is_partial


def test_length_limited_marks_result_truncated():
    # Ends on a complete element, so only the finish reason reveals the cut
    text = '{"events": [{"title": "A"}, {"title": "B"}'
    assert extract_json(text).truncated is False

    result = extract_json(text, length_limited=True)
    assert result.status == "salvaged"
    assert result.salvaged_elements == [{"title": "A"}, {"title": "B"}]
    assert result.discarded_count == 0
    assert result.truncated is True


def test_salvage_counts_unparseable_elements():
    text = '{"events": [{"title": "A"}, {"title": oops}, {"title": "C"}, {"ti'
    recovered, discarded = salvage_array_elements(text, "events")
    assert recovered == [{"title": "A"}, {"title": "C"}]
    assert discarded == 2


def test_salvage_uses_custom_array_key():
    text = '{"items": [{"title": "A"}, {"title": "B"'
    result = extract_json(text, array_key="items")
    assert result.status == "salvaged"
    assert result.array_items("items") == [{"title": "A"}]


def test_salvage_falls_back_to_leading_array():
    text = '[{"title": "A"}, {"title": "B"}, {"title'
    result = extract_json(text, array_key="events")
    assert result.status == "salvaged"
    assert result.salvaged_elements == [{"title": "A"}, {"title": "B"}]


def test_truncated_before_first_element_fails_with_diagnostic():
    result = extract_json('{"events": [{"year": 1')
    assert result.status == "failed"
    assert result.truncated is True
    diagnostic = result.diagnostic
    assert diagnostic is not None
    assert diagnostic.open_braces == 2
    assert diagnostic.close_braces == 0
    assert diagnostic.offset is not None
    assert diagnostic.snippet


def test_text_without_json_fails_with_diagnostic():
    result = extract_json("I could not produce any events for this topic.")
    assert result.status == "failed"
    assert result.truncated is False
    assert result.diagnostic.open_braces == 0
    assert "No JSON object found" in result.diagnostic.message
    assert not result.is_success


@pytest.mark.parametrize("raw", ["", "   ", None])
def test_empty_input_fails_without_raising(raw):
    result = extract_json(raw)
    assert result.status == "failed"
    assert result.diagnostic is not None


def test_diagnostic_snippet_is_bounded():
    text = "{" + '"k": 1, ' * 40 + "oops" + '"x": 2, ' * 40 + "}"
    result = extract_json(text)
    assert result.status == "failed"
    assert len(result.diagnostic.snippet) <= 100


def test_looks_truncated():
    assert looks_truncated('{"events": [{"a": 1')
    assert looks_truncated('{"events": [{"a": "x",')
    # Ending on a complete element looks finished; only the finish reason can tell
    assert not looks_truncated('{"events": [{"a": 1}')
    assert not looks_truncated('{"events": []}')
    assert not looks_truncated("no json here")


def test_array_items_missing_key_returns_none():
    result = extract_json('{"items": []}')
    assert result.status == "clean"
    assert result.array_items("events") is None


def test_bracketed_prose_before_object_is_ignored():
    text = 'Sources [1] consulted. {"events": [{"year": 1969, "title": "Moon"}]}'
    result = extract_json(text)
    assert result.status == "extracted"
    assert result.value == {"events": [{"year": 1969, "title": "Moon"}]}


def test_bracketed_prose_before_truncated_object_still_salvages():
    text = 'See [2]: {"events": [{"year": 1969, "title": "Moon"}, {"year": 19'
    result = extract_json(text)
    assert result.status == "salvaged"
    assert result.salvaged_elements == [{"year": 1969, "title": "Moon"}]


def test_diagnostic_offset_counts_utf8_bytes():
    text = '{"title": "Göbekli", "year": oops}'
    result = extract_json(text)
    assert result.status == "failed"
    char_pos = text.index("oops")
    assert result.diagnostic.offset == char_pos + 1
    assert result.diagnostic.snippet.startswith(text[: char_pos][-50:])
