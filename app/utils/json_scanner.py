"""
String-aware scanning primitives for JSON-like text produced by LLMs.

`BraceScanner` is the single brace-balance state machine used both to find
the end of a whole top-level object and to cut individual array elements out
of a truncated document. `repair_json_text` applies the small set of
idempotent textual repairs that make near-JSON parseable.
"""

from collections.abc import Iterator

# Characters that may follow a backslash inside a JSON string
VALID_ESCAPE_CHARS = frozenset('"\\/bfnrtu')

_CONTROL_CHAR_ESCAPES = {
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


class BraceScanner:
    """
    Tracks brace depth while walking text, ignoring braces inside strings.

    State is kept on the instance so callers can inspect it after a scan:
    `depth`, `in_string`, `escape_pending`, and the number of `{`/`}` seen
    outside strings.
    """

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.depth = 0
        self.in_string = False
        self.escape_pending = False
        self.open_braces = 0
        self.close_braces = 0
        # Start offset of an object that was still open when the text ended
        self.unclosed_start: int | None = None
        # Offset of the `]` that ended a scan run with stop_at_array_close
        self.array_close_index: int | None = None

    def step(self, ch: str) -> None:
        """Advance the state machine by one character."""
        if self.in_string:
            if self.escape_pending:
                self.escape_pending = False
            elif ch == "\\":
                self.escape_pending = True
            elif ch == '"':
                self.in_string = False
            return

        if ch == '"':
            self.in_string = True
        elif ch == "{":
            self.depth += 1
            self.open_braces += 1
        elif ch == "}":
            self.close_braces += 1
            if self.depth > 0:
                self.depth -= 1

    def object_spans(
        self,
        text: str,
        start: int = 0,
        stop_at_array_close: bool = False,
    ) -> Iterator[tuple[int, int]]:
        """
        Yield `(start, end)` slices of each complete top-level `{...}` in `text`.

        A span is emitted each time depth returns to zero after having gone
        positive. With `stop_at_array_close`, scanning ends at the first `]`
        met at depth zero outside a string (the close of the enclosing array)
        and `array_close_index` records its offset. If the text ends inside an
        object, `unclosed_start` records where it began.
        """
        self.reset()
        object_start: int | None = None
        # Square bracket nesting between objects, so nested arrays do not end the scan
        bracket_depth = 0

        for index in range(start, len(text)):
            ch = text[index]
            was_in_string = self.in_string
            depth_before = self.depth
            self.step(ch)

            if was_in_string or self.in_string:
                continue

            if depth_before == 0:
                if self.depth == 1:
                    object_start = index
                elif ch == "[":
                    bracket_depth += 1
                elif ch == "]":
                    if bracket_depth == 0 and stop_at_array_close:
                        self.array_close_index = index
                        return
                    bracket_depth = max(0, bracket_depth - 1)
            elif self.depth == 0 and object_start is not None:
                yield object_start, index + 1
                object_start = None

        if object_start is not None:
            self.unclosed_start = object_start


def find_object_end(text: str, start: int) -> int | None:
    """Return the end offset (exclusive) of the object opening at or after `start`."""
    scanner = BraceScanner()
    for _, end in scanner.object_spans(text, start):
        return end
    return None


def find_array_end(text: str, open_index: int) -> int | None:
    """Return the end offset (exclusive) of the array whose `[` is at `open_index`."""
    scanner = BraceScanner()
    for _ in scanner.object_spans(text, open_index + 1, stop_at_array_close=True):
        pass
    if scanner.array_close_index is None:
        return None
    return scanner.array_close_index + 1


def count_braces(text: str) -> tuple[int, int]:
    """Count `{` and `}` outside of string literals."""
    scanner = BraceScanner()
    for ch in text:
        scanner.step(ch)
    return scanner.open_braces, scanner.close_braces


def _next_significant_char(text: str, index: int) -> str | None:
    while index < len(text):
        if not text[index].isspace():
            return text[index]
        index += 1
    return None


def repair_json_text(text: str) -> str:
    """
    Repair common LLM JSON defects without touching valid structure.

    - trailing commas before `}` or `]` (outside strings) are removed;
    - a backslash inside a string that does not start a valid escape is doubled;
    - raw control characters inside strings are escaped.

    Running the function on its own output returns the output unchanged.
    """
    out: list[str] = []
    in_string = False
    index = 0
    length = len(text)

    while index < length:
        ch = text[index]

        if in_string:
            if ch == "\\":
                following = text[index + 1] if index + 1 < length else ""
                if following and following in VALID_ESCAPE_CHARS:
                    out.append(ch)
                    out.append(following)
                    index += 2
                    continue
                out.append("\\\\")
            elif ch == '"':
                in_string = False
                out.append(ch)
            elif ord(ch) < 0x20:
                out.append(_CONTROL_CHAR_ESCAPES.get(ch, f"\\u{ord(ch):04x}"))
            else:
                out.append(ch)
            index += 1
            continue

        if ch == '"':
            in_string = True
        elif ch == "," and _next_significant_char(text, index + 1) in ("}", "]"):
            index += 1
            continue
        out.append(ch)
        index += 1

    return "".join(out)
