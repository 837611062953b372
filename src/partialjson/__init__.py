"""
Partial JSON parsing library for truncated and streaming text.

Parses JSON that may be cut off mid-stream into a best-effort Python value,
distinguishing input that is merely incomplete from input that is malformed.
An Allow mask controls which constructs may be returned in truncated form.
"""

import logging
import math
import os
import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import IO
from typing import Any
from typing import Final
from typing import TypeAlias

from partialjson._allow import Allow
from partialjson._allow import normalize_mask

__version__ = "0.1.0"

logger = logging.getLogger(__name__)

# Type aliases for domain concepts - recursive definition
JsonValue = (
    str | int | float | bool | None | dict[str, "JsonValue"] | list["JsonValue"]
)
Position: TypeAlias = int

# Union type for values that might be transformed by hooks
JsonValueOrTransformed = JsonValue | Any

# Hook type definitions - hooks can return custom types
ObjectHook = Callable[[dict[str, JsonValue]], Any] | None
ObjectPairsHook = (
    Callable[[list[tuple[str, JsonValueOrTransformed]]], Any] | None
)
ParseFloatHook = Callable[[str], Any] | None
ParseIntHook = Callable[[str], Any] | None
ParseConstantHook = Callable[[str], Any] | None

# Module-level aliases for the Allow members
STR: Final = Allow.STR
NUM: Final = Allow.NUM
ARR: Final = Allow.ARR
OBJ: Final = Allow.OBJ
NULL: Final = Allow.NULL
BOOL: Final = Allow.BOOL
NAN: Final = Allow.NAN
INFINITY: Final = Allow.INFINITY
NEG_INFINITY: Final = Allow.NEG_INFINITY
_INFINITY: Final = Allow.NEG_INFINITY
OUTERMOST_OBJ: Final = Allow.OUTERMOST_OBJ
OUTERMOST_ARR: Final = Allow.OUTERMOST_ARR
INF: Final = Allow.INF
SPECIAL: Final = Allow.SPECIAL
ATOM: Final = Allow.ATOM
COLLECTION: Final = Allow.COLLECTION
ALL: Final = Allow.ALL

WHITESPACE: Final = " \t\n\r"

# Objects use three interpreter frames per level, arrays two
DEFAULT_MAX_DEPTH: Final = 256

# Profiling infrastructure - zero-cost when disabled
PROFILE_HOT_PATHS = __debug__ and "PARTIALJSON_PROFILE" in os.environ


@dataclass
class HotPathStats:
    """Statistics for profiling hot paths during parsing."""

    function_name: str
    call_count: int = 0
    total_time_ns: int = 0
    chars_processed: int = 0

    def record_call(self, duration_ns: int, chars: int = 0) -> None:
        """Records a function call with timing and character processing info."""
        self.call_count += 1
        self.total_time_ns += duration_ns
        self.chars_processed += chars


if PROFILE_HOT_PATHS:
    _hot_path_stats: dict[str, HotPathStats] = {}

    class ProfileContext:
        """Context manager for profiling hot paths."""

        def __init__(self, func_name: str, chars_to_process: int = 0):
            self.func_name = func_name
            self.chars = chars_to_process
            self.start_time = 0

        def __enter__(self) -> "ProfileContext":
            self.start_time = time.perf_counter_ns()
            return self

        def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
            duration = time.perf_counter_ns() - self.start_time
            if self.func_name not in _hot_path_stats:
                _hot_path_stats[self.func_name] = HotPathStats(self.func_name)
            _hot_path_stats[self.func_name].record_call(duration, self.chars)

    def get_hot_path_stats() -> dict[str, HotPathStats]:
        """Returns current profiling statistics."""
        return _hot_path_stats.copy()

    def clear_hot_path_stats() -> None:
        """Clears profiling statistics."""
        _hot_path_stats.clear()

else:
    # Zero-cost in production - ignore arguments
    class ProfileContext:  # type: ignore[no-redef]
        def __init__(self, func_name: str, chars: int = 0) -> None:
            pass

        def __enter__(self) -> "ProfileContext":
            return self

        def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
            pass

    def get_hot_path_stats() -> dict[str, HotPathStats]:
        return {}

    def clear_hot_path_stats() -> None:
        pass


class JSONDecodeError(ValueError):
    """
    Base class for partial JSON parsing failures.

    Carries the character offset of the failure along with its UTF-8 byte
    offset, line and column so callers can point at the offending input.
    """

    def __init__(self, msg: str, doc: str = "", pos: Position = 0) -> None:
        if not isinstance(msg, str):
            raise TypeError("msg must be a string")
        if not isinstance(pos, int) or pos < 0:
            raise ValueError("pos must be a non-negative integer")

        self.msg = msg
        self.doc = doc
        self.pos = pos

        # Compute line and column numbers from position
        self.lineno = doc.count("\n", 0, pos) + 1 if doc else 1
        self.colno = pos - doc.rfind("\n", 0, pos) if doc else pos + 1
        self.byte_pos = (
            len(doc[:pos].encode("utf-8", "surrogatepass")) if doc else pos
        )

        super().__init__(f"{msg} at line {self.lineno}, column {self.colno}")


class IncompleteJSONError(JSONDecodeError):
    """
    The input is a valid prefix of some JSON document but ended early.

    Raised only when the Allow mask forbids returning the open construct in
    partial form. Appending more input and parsing again may succeed.
    """


class MalformedJSONError(JSONDecodeError):
    """The input cannot be completed into valid JSON by appending text."""


class EmptyInputError(JSONDecodeError):
    """The input holds nothing but whitespace."""


# Names kept for callers used to the JavaScript partial-json package
PartialJSON = IncompleteJSONError
MalformedJSON = MalformedJSONError


@dataclass(frozen=True)
class ParseConfig:
    """
    Configures partial parsing behavior with immutable settings.

    The allow mask is normalized to the defined Allow bits, so negated
    plain integers such as ``~8`` are accepted.
    """

    allow: int = Allow.ALL
    max_depth: int = DEFAULT_MAX_DEPTH
    parse_float: ParseFloatHook = None
    parse_int: ParseIntHook = None
    parse_constant: ParseConstantHook = None
    object_pairs_hook: ObjectPairsHook = None
    object_hook: ObjectHook = None

    def __post_init__(self) -> None:
        if isinstance(self.max_depth, bool) or not isinstance(
            self.max_depth, int
        ):
            raise TypeError("max_depth must be an integer")
        if self.max_depth < 1:
            raise ValueError("max_depth must be at least 1")
        object.__setattr__(self, "allow", normalize_mask(self.allow))


class FailureKind(Enum):
    """Classification of a failed sub-parse."""

    INCOMPLETE = "incomplete"
    MALFORMED = "malformed"


@dataclass(frozen=True, slots=True)
class Ok:
    """Successful sub-parse carrying its value."""

    value: JsonValueOrTransformed


@dataclass(frozen=True, slots=True)
class Failure:
    """
    Failed sub-parse.

    Fatal failures are never replaced by a partial collection.
    """

    kind: FailureKind
    msg: str
    pos: Position
    fatal: bool = False


Outcome: TypeAlias = Ok | Failure


def _incomplete(msg: str, pos: Position) -> Failure:
    return Failure(FailureKind.INCOMPLETE, msg, pos)


def _malformed(msg: str, pos: Position) -> Failure:
    return Failure(FailureKind.MALFORMED, msg, pos)


# Literal text, the Allow bit for its truncated form, and whether it is a
# non-standard constant routed through parse_constant
_LITERALS: Final = (
    ("null", Allow.NULL, False),
    ("true", Allow.BOOL, False),
    ("false", Allow.BOOL, False),
    ("Infinity", Allow.INFINITY, True),
    ("-Infinity", Allow.NEG_INFINITY, True),
    ("NaN", Allow.NAN, True),
)

_LITERAL_VALUES: Final[dict[str, JsonValue]] = {
    "null": None,
    "true": True,
    "false": False,
    "Infinity": math.inf,
    "-Infinity": -math.inf,
    "NaN": math.nan,
}

_NUMBER_RE: Final = re.compile(
    r"-?(?:0|[1-9][0-9]*)(\.[0-9]+)?([eE][-+]?[0-9]+)?"
)
# Longest numeric prefix tried when partial numbers are allowed
_NUMBER_PREFIX_RE: Final = re.compile(
    r"-?[0-9]+(?:\.[0-9]+)?(?:[eE][-+]?[0-9]+)?"
)
# Text that more digits could still turn into a valid number
_NUMBER_STEM_RE: Final = re.compile(
    r"-?(?:0|[1-9][0-9]*)(?:\.[0-9]*|(?:\.[0-9]+)?[eE][-+]?[0-9]*)?"
)
_HEX4_RE: Final = re.compile(r"[0-9a-fA-F]{4}")

_ESCAPE_MAP: Final = {
    '"': '"',
    "\\": "\\",
    "/": "/",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
}


class _StringLiteralError(ValueError):
    """Strict string decoding failure at an offset within the literal."""

    def __init__(self, msg: str, offset: int) -> None:
        super().__init__(msg)
        self.msg = msg
        self.offset = offset


def _read_hex4(inner: str, i: int) -> int:
    if not _HEX4_RE.fullmatch(inner, i, i + 4):
        raise _StringLiteralError("Invalid \\uXXXX escape", i - 1)
    return int(inner[i : i + 4], 16)


def _process_escape_sequence(inner: str, i: int) -> tuple[str, int]:
    """Process a single escape sequence and return the character and new position."""
    if i + 1 >= len(inner):
        raise _StringLiteralError("Unterminated escape sequence", i + 1)

    next_char = inner[i + 1]
    if next_char in _ESCAPE_MAP:
        return _ESCAPE_MAP[next_char], i + 2
    if next_char != "u":
        raise _StringLiteralError(
            f"Invalid escape sequence: \\{next_char}", i + 1
        )

    code_point = _read_hex4(inner, i + 2)
    # Combine a UTF-16 surrogate pair into one character
    if 0xD800 <= code_point <= 0xDBFF and inner.startswith("\\u", i + 6):
        low = _read_hex4(inner, i + 8)
        if 0xDC00 <= low <= 0xDFFF:
            high_bits = (code_point - 0xD800) << 10
            return chr(0x10000 + high_bits + (low - 0xDC00)), i + 12
    return chr(code_point), i + 6


def _decode_string_literal(literal: str) -> str:
    """
    Strictly decodes a double-quoted JSON string literal, quotes included.

    Raises _StringLiteralError with an offset relative to the literal.
    """
    with ProfileContext("decode_string", len(literal)):
        inner = literal[1:-1]
        result = []
        i = 0
        while i < len(inner):
            char = inner[i]
            if char == "\\":
                decoded, i = _process_escape_sequence(inner, i)
                result.append(decoded)
            elif char < " ":
                raise _StringLiteralError("Invalid control character", i + 1)
            else:
                result.append(char)
                i += 1

        return "".join(result)


class PartialParser:
    """
    Recursive descent parser that tolerates truncated input.

    Every parse routine returns an Outcome instead of raising, so object and
    array loops decide between returning a partial collection and
    propagating the failure by inspecting the child's result. The cursor and
    key cache are the only mutable state and belong to one parse call.
    """

    def __init__(self, text: str, config: ParseConfig) -> None:
        self.text: Final = text
        self.config: Final = config
        self.allow: Final = Allow(config.allow)
        # Trailing whitespace is never part of a token
        self.end: Final = len(text.rstrip(WHITESPACE))
        self.pos = 0
        self._keys: dict[str, str] = {}

    def peek(self) -> str:
        """Returns current character without advancing, or '' at the end."""
        return self.text[self.pos] if self.pos < self.end else ""

    def at_end(self) -> bool:
        return self.pos >= self.end

    def skip_whitespace(self) -> None:
        """Skips whitespace characters according to JSON spec."""
        while self.pos < self.end and self.text[self.pos] in WHITESPACE:
            self.pos += 1

    def parse_document(self) -> Outcome:
        """Parses one value and rejects anything after it."""
        with ProfileContext("parse_document", self.end):
            outcome = self.parse_any(0)
            if isinstance(outcome, Failure):
                return outcome

            self.skip_whitespace()
            if not self.at_end():
                return _malformed("Extra data", self.pos)
            return outcome

    def parse_any(self, depth: int) -> Outcome:
        """
        Parses any JSON value at the cursor.

        ``depth`` counts the collections enclosing this value; zero means
        the value is the top-level one.
        """
        self.skip_whitespace()
        if self.at_end():
            return _incomplete("Unexpected end of input", self.pos)

        char = self.peek()
        if char == '"':
            return self.parse_string()
        if char == "{":
            return self.parse_object(depth)
        if char == "[":
            return self.parse_array(depth)

        literal = self._match_literal()
        if literal is not None:
            return literal
        if char == "-" or "0" <= char <= "9":
            return self.parse_number(depth)
        return _malformed("Expecting value", self.pos)

    def _match_literal(self) -> Outcome | None:
        """Matches null, booleans and special floats, complete or truncated."""
        with ProfileContext("match_literal"):
            start = self.pos
            remaining = self.end - start
            truncated = False

            for literal, bit, is_constant in _LITERALS:
                if self.text.startswith(literal, start, self.end):
                    self.pos = start + len(literal)
                    return Ok(self._literal_value(literal, is_constant))

                min_remaining = 2 if literal == "-Infinity" else 1
                if (
                    min_remaining <= remaining < len(literal)
                    and literal.startswith(self.text[start : self.end])
                ):
                    if self.allow & bit:
                        logger.debug(
                            "Completed truncated literal %r at %d",
                            literal,
                            start,
                        )
                        self.pos = self.end
                        return Ok(self._literal_value(literal, is_constant))
                    truncated = True

            if truncated:
                self.pos = self.end
                return _incomplete("Unterminated literal", start)
            return None

    def _literal_value(
        self, literal: str, is_constant: bool
    ) -> JsonValueOrTransformed:
        if is_constant and self.config.parse_constant:
            return self.config.parse_constant(literal)
        return _LITERAL_VALUES[literal]

    def parse_string(self) -> Outcome:
        """Parses a string token, completing it when STR allows."""
        with ProfileContext("parse_string"):
            text = self.text
            start = self.pos
            i = start + 1
            escaped = False

            while i < self.end:
                char = text[i]
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    break
                i += 1
            else:
                self.pos = self.end
                return self._recover_string(start, escaped)

            self.pos = i + 1
            try:
                return Ok(_decode_string_literal(text[start : i + 1]))
            except _StringLiteralError as e:
                return _malformed(e.msg, start + e.offset)

    def _recover_string(self, start: Position, escaped: bool) -> Outcome:
        """Closes an unterminated string, dropping a dangling escape."""
        if not self.allow & Allow.STR:
            return _incomplete("Unterminated string starting at", start)

        body = self.text[start : self.end - 1 if escaped else self.end]
        try:
            return Ok(_decode_string_literal(body + '"'))
        except _StringLiteralError:
            pass

        # A half-written escape such as \u12 is dropped entirely
        cut = body.rfind("\\")
        if cut > 0:
            try:
                value = _decode_string_literal(body[:cut] + '"')
            except _StringLiteralError:
                pass
            else:
                logger.debug("Dropped partial escape in string at %d", start)
                return Ok(value)

        return _malformed("Unterminated string", start)

    def parse_number(self, depth: int) -> Outcome:
        """Parses the longest number-like run at the cursor."""
        with ProfileContext("parse_number"):
            text = self.text
            start = self.pos
            i = start
            if text[i] == "-":
                i += 1
            i = self._skip_digits(i)
            if i < self.end and text[i] == ".":
                i = self._skip_digits(i + 1)
            if i < self.end and text[i] in ("e", "E"):
                i += 1
                if i < self.end and text[i] in ("+", "-"):
                    i += 1
                i = self._skip_digits(i)

            self.pos = i
            candidate = text[start:i]
            if candidate == "-":
                return _malformed("Invalid number", start)

            allow_partial = bool(self.allow & Allow.NUM)
            can_grow = i >= self.end and bool(
                _NUMBER_STEM_RE.fullmatch(candidate)
            )
            # More digits may still arrive for a number inside a collection
            if can_grow and depth > 0 and not allow_partial:
                return _incomplete("Unterminated number", start)

            if _NUMBER_RE.fullmatch(candidate):
                return self._convert_number(candidate, start)

            if allow_partial:
                match = _NUMBER_PREFIX_RE.match(candidate)
                if match and _NUMBER_RE.fullmatch(match.group()):
                    logger.debug(
                        "Cut number %r to %r at %d",
                        candidate,
                        match.group(),
                        start,
                    )
                    return self._convert_number(match.group(), start)
            elif can_grow:
                return _incomplete("Unterminated number", start)
            return _malformed("Invalid number", start)

    def _skip_digits(self, i: int) -> int:
        while i < self.end and "0" <= self.text[i] <= "9":
            i += 1
        return i

    def _convert_number(self, literal: str, start: Position) -> Outcome:
        is_float = "." in literal or "e" in literal or "E" in literal
        try:
            if is_float:
                if self.config.parse_float:
                    return Ok(self.config.parse_float(literal))
                return Ok(float(literal))
            if self.config.parse_int:
                return Ok(self.config.parse_int(literal))
            return Ok(int(literal))
        except ValueError as e:
            # Python's int conversion limit
            if "Exceeds the limit" in str(e):
                return _malformed("Number too large", start)
            raise

    def _too_deep(self, depth: int) -> Failure | None:
        if depth >= self.config.max_depth:
            return Failure(
                FailureKind.MALFORMED, "Nesting too deep", self.pos, fatal=True
            )
        return None

    def _swallows(
        self,
        failure: Failure,
        may_be_partial: bool,
        container: str,
        start: Position,
    ) -> bool:
        """Decides whether a collection swallows a child failure."""
        if failure.fatal or not may_be_partial:
            return False
        logger.debug(
            "Returning partial %s opened at %d: %s at %d",
            container,
            start,
            failure.msg,
            failure.pos,
        )
        return True

    def parse_object(self, depth: int) -> Outcome:
        """Parses an object, returning the pairs read so far when allowed."""
        with ProfileContext("parse_object"):
            too_deep = self._too_deep(depth)
            if too_deep:
                return too_deep

            start = self.pos
            may_be_partial = bool(self.allow & Allow.OBJ) or (
                depth == 0 and bool(self.allow & Allow.OUTERMOST_OBJ)
            )
            pairs: list[tuple[str, JsonValueOrTransformed]] = []
            failure: Failure | None = None

            self.pos += 1
            self.skip_whitespace()
            while self.peek() != "}":
                self.skip_whitespace()
                if self.at_end():
                    failure = _incomplete("Expecting '}'", self.pos)
                    break

                failure = self._parse_member(pairs, depth)
                if failure is not None:
                    break

                self.skip_whitespace()
                if self.peek() == ",":
                    self.pos += 1
                    # A following '}' ends the loop, tolerating the comma
                    self.skip_whitespace()
                elif self.peek() != "}" and not self.at_end():
                    failure = _malformed("Expecting ',' delimiter", self.pos)
                    break

            if failure is None:
                self.pos += 1
            elif not self._swallows(failure, may_be_partial, "object", start):
                return failure

            return Ok(self._apply_object_hooks(pairs))

    def _parse_member(
        self, pairs: list[tuple[str, JsonValueOrTransformed]], depth: int
    ) -> Failure | None:
        """Parses one key/value pair into ``pairs``."""
        if self.peek() != '"':
            return _malformed(
                "Expecting property name enclosed in double quotes", self.pos
            )

        key = self.parse_string()
        if isinstance(key, Failure):
            return key

        self.skip_whitespace()
        if self.at_end():
            return _incomplete("Expecting ':' delimiter", self.pos)
        if self.peek() != ":":
            return _malformed("Expecting ':' delimiter", self.pos)
        self.pos += 1

        value = self.parse_any(depth + 1)
        if isinstance(value, Failure):
            return value

        # Repeated keys share one string object
        name = self._keys.setdefault(key.value, key.value)
        pairs.append((name, value.value))
        return None

    def _apply_object_hooks(
        self, pairs: list[tuple[str, JsonValueOrTransformed]]
    ) -> JsonValueOrTransformed:
        """Applies object hooks to parsed pairs."""
        if self.config.object_pairs_hook:
            return self.config.object_pairs_hook(pairs)
        else:
            obj = dict(pairs)
            if self.config.object_hook:
                return self.config.object_hook(obj)
            return obj

    def parse_array(self, depth: int) -> Outcome:
        """Parses an array, returning the elements read so far when allowed."""
        with ProfileContext("parse_array"):
            too_deep = self._too_deep(depth)
            if too_deep:
                return too_deep

            start = self.pos
            may_be_partial = bool(self.allow & Allow.ARR) or (
                depth == 0 and bool(self.allow & Allow.OUTERMOST_ARR)
            )
            values: list[JsonValueOrTransformed] = []
            failure: Failure | None = None

            self.pos += 1
            self.skip_whitespace()
            while self.peek() != "]":
                self.skip_whitespace()
                if self.at_end():
                    failure = _incomplete("Expecting ']'", self.pos)
                    break

                value = self.parse_any(depth + 1)
                if isinstance(value, Failure):
                    failure = value
                    break
                values.append(value.value)

                self.skip_whitespace()
                if self.peek() == ",":
                    self.pos += 1
                    self.skip_whitespace()
                elif self.peek() != "]" and not self.at_end():
                    failure = _malformed("Expecting ',' delimiter", self.pos)
                    break

            if failure is None:
                self.pos += 1
            elif not self._swallows(failure, may_be_partial, "array", start):
                return failure

            return Ok(values)


def _error_for(failure: Failure, doc: str) -> JSONDecodeError:
    if failure.kind is FailureKind.INCOMPLETE:
        return IncompleteJSONError(failure.msg, doc, failure.pos)
    return MalformedJSONError(failure.msg, doc, failure.pos)


def _parse_value(s: str, config: ParseConfig) -> JsonValueOrTransformed:
    """
    Runs one parse over ``s`` and converts a failed outcome to an exception.
    """
    with ProfileContext("parse_value", len(s)):
        if not s.strip(WHITESPACE):
            raise EmptyInputError("Expecting value", s, len(s))

        # Reject a UTF-8 BOM per JSON specification
        if s.startswith("\ufeff"):
            raise MalformedJSONError(
                "JSON input should not contain BOM (Byte Order Mark)", s, 0
            )

        parser = PartialParser(s, config)
        try:
            outcome = parser.parse_document()
        except RecursionError:
            # max_depth was set beyond what the interpreter stack holds
            raise MalformedJSONError(
                "Nesting too deep", s, min(parser.pos, len(s))
            ) from None
        if isinstance(outcome, Failure):
            raise _error_for(outcome, s)
        return outcome.value


def parse(
    s: str, allow: int = Allow.ALL, **kwargs: Any
) -> JsonValueOrTransformed:
    """
    Parses possibly truncated JSON text into Python objects.

    ``allow`` selects which constructs may be returned in partial form;
    complete documents parse the same under every mask. Raises
    IncompleteJSONError when the text ends before an open construct may be
    cut off, MalformedJSONError when no continuation could make it valid,
    and EmptyInputError for blank input.
    """
    if not isinstance(s, str):
        raise TypeError(
            f"the JSON object must be str, not {type(s).__name__}"
        )

    config = ParseConfig(allow=allow, **kwargs)
    return _parse_value(s, config)


loads = parse


def load(
    fp: IO[str], allow: int = Allow.ALL, **kwargs: Any
) -> JsonValueOrTransformed:
    """
    Parses possibly truncated JSON read from a file-like object.
    """
    if not hasattr(fp, "read"):
        raise TypeError("fp must have a read() method")

    return parse(fp.read(), allow, **kwargs)


__all__ = [
    "ALL",
    "ARR",
    "ATOM",
    "BOOL",
    "COLLECTION",
    "INF",
    "INFINITY",
    "NAN",
    "NEG_INFINITY",
    "NULL",
    "NUM",
    "OBJ",
    "OUTERMOST_ARR",
    "OUTERMOST_OBJ",
    "SPECIAL",
    "STR",
    "Allow",
    "EmptyInputError",
    "Failure",
    "FailureKind",
    "HotPathStats",
    "IncompleteJSONError",
    "JSONDecodeError",
    "MalformedJSON",
    "MalformedJSONError",
    "Ok",
    "ParseConfig",
    "PartialJSON",
    "PartialParser",
    "clear_hot_path_stats",
    "get_hot_path_stats",
    "load",
    "loads",
    "parse",
]
