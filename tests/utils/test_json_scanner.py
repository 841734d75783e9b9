from app.utils.json_scanner import (
    BraceScanner,
    count_braces,
    find_array_end,
    find_object_end,
    repair_json_text,
)


def test_find_object_end_ignores_braces_inside_strings():
    text = 'prefix {"title": "a } b { c", "n": {"x": 1}} suffix'
    start = text.index("{")
    end = find_object_end(text, start)
    assert text[start:end] == '{"title": "a } b { c", "n": {"x": 1}}'


def test_find_object_end_handles_escaped_quotes():
    text = '{"title": "say \\"}\\" now"} tail'
    end = find_object_end(text, 0)
    assert text[:end] == '{"title": "say \\"}\\" now"}'


def test_find_object_end_returns_none_for_unclosed_object():
    assert find_object_end('{"events": [{"a": 1}', 0) is None


def test_find_array_end_skips_nested_arrays():
    text = 'x [[1], {"a": [2, "]"]}, 3] y'
    start = text.index("[")
    end = find_array_end(text, start)
    assert text[start:end] == '[[1], {"a": [2, "]"]}, 3]'


def test_object_spans_reports_unclosed_tail():
    text = '[{"a": 1}, {"b": 2}, {"c": '
    scanner = BraceScanner()
    spans = list(scanner.object_spans(text, 1, stop_at_array_close=True))
    assert [text[s:e] for s, e in spans] == ['{"a": 1}', '{"b": 2}']
    assert scanner.unclosed_start == text.index('{"c"')
    assert scanner.array_close_index is None


def test_object_spans_stops_at_array_close():
    text = '[{"a": 1}] {"b": 2}'
    scanner = BraceScanner()
    spans = list(scanner.object_spans(text, 1, stop_at_array_close=True))
    assert len(spans) == 1
    assert scanner.array_close_index == text.index("]")


def test_count_braces_outside_strings():
    assert count_braces('{"a": "{{", "b": {}}') == (2, 2)
    assert count_braces('{"a": {"b": 1}') == (2, 1)


def test_repair_removes_trailing_commas():
    assert repair_json_text('{"a": [1, 2,], "b": 3,}') == '{"a": [1, 2], "b": 3}'
    assert repair_json_text('{"a": 1 ,\n }') == '{"a": 1 \n }'


def test_repair_keeps_commas_inside_strings():
    text = '{"a": "x,}"}'
    assert repair_json_text(text) == text


def test_repair_doubles_invalid_backslashes_only():
    assert repair_json_text('{"p": "C:\\dir"}') == '{"p": "C:\\\\dir"}'
    valid = '{"p": "line\\nnext \\"q\\" \\u00e9 \\\\"}'
    assert repair_json_text(valid) == valid


def test_repair_escapes_raw_control_characters():
    assert repair_json_text('{"a": "x\ny\tz"}') == '{"a": "x\\ny\\tz"}'


def test_repair_is_idempotent():
    text = '{"p": "C:\\dir", "items": [1, 2,], "t": "a\nb",}'
    once = repair_json_text(text)
    assert repair_json_text(once) == once
