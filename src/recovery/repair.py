# src/recovery/repair.py — v2
"""Text-level JSON repair heuristics.

Pure functions, no I/O. ``syntactic_cleanup`` only removes noise around
otherwise valid JSON; ``structural_repair`` rewrites the token stream
(missing commas, unterminated strings, unbalanced brackets, bare values).
Members cut off before their value are dropped, never filled in.
Both are string-aware: nothing inside a JSON string literal is touched
except raw control characters and invalid escapes.
"""

from __future__ import annotations

import json
import logging
import re

_FENCE_RE = re.compile(r"```[a-zA-Z]*[ \t]*")
_NUMBER_RE = re.compile(r"-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][+-]?\d+)?")
_LITERALS = frozenset({"true", "false", "null"})
_CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}
_VALID_ESCAPES = frozenset('"\\/bfnrtu')
_CLOSERS = {"{": "}", "[": "]"}

logger = logging.getLogger(__name__)


class RepairError(ValueError):
    """The damage cannot be repaired without inventing content."""


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences (```json ... ```)."""
    return _FENCE_RE.sub("", text).strip()


def trim_to_outermost(text: str) -> str:
    """Drop prose before the first opening bracket and after its match.

    An array is used only when the text starts with '['; otherwise the
    outermost object wins. Brackets inside string literals are ignored.
    Without a matching closer the whole tail is kept for repair.
    """
    stripped = text.strip()
    opener = "[" if stripped.startswith("[") else "{"
    start = stripped.find(opener)
    if start == -1:
        opener = "[" if opener == "{" else "{"
        start = stripped.find(opener)
        if start == -1:
            return stripped

    depth = 0
    in_str = False
    escaped = False
    for i in range(start, len(stripped)):
        ch = stripped[i]
        if in_str:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_str = False
        elif ch == '"':
            in_str = True
        elif ch in "{[":
            depth += 1
        elif ch in "}]":
            depth -= 1
            if depth == 0:
                return stripped[start : i + 1]
    return stripped[start:]


def normalize_string_escapes(text: str) -> str:
    """Escape raw newlines/tabs inside strings and double invalid backslashes."""
    out: list[str] = []
    in_str = False
    escaped = False
    for ch in text:
        if not in_str:
            if ch == '"':
                in_str = True
            out.append(ch)
            continue
        if escaped:
            escaped = False
            if ch not in _VALID_ESCAPES:
                out.append("\\")
            out.append(_CONTROL_ESCAPES.get(ch, ch))
            continue
        if ch == "\\":
            escaped = True
            out.append(ch)
        elif ch == '"':
            in_str = False
            out.append(ch)
        else:
            out.append(_CONTROL_ESCAPES.get(ch, ch))
    return "".join(out)


def remove_trailing_commas(text: str) -> str:
    """Remove commas directly followed by a closing bracket (outside strings)."""
    out: list[str] = []
    in_str = False
    escaped = False
    n = len(text)
    for i, ch in enumerate(text):
        if in_str:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_str = False
            out.append(ch)
            continue
        if ch == '"':
            in_str = True
        elif ch == ",":
            j = i + 1
            while j < n and text[j].isspace():
                j += 1
            if j < n and text[j] in "}]":
                continue
        out.append(ch)
    return "".join(out)


def syntactic_cleanup(text: str) -> str:
    """Fences, surrounding prose, control characters and trailing commas."""
    cleaned = trim_to_outermost(strip_code_fences(text))
    cleaned = normalize_string_escapes(cleaned)
    return remove_trailing_commas(cleaned)


def extract_json_from_response(response: str) -> str:
    """Isolate the JSON payload of a model reply that may contain prose."""
    return trim_to_outermost(strip_code_fences(response))


def structural_repair(text: str) -> str:
    """Rebuild a plausible JSON document from a damaged one.

    Raises:
        RepairError: a bare word sits where a key belongs, or a colon has
            no key.
    """
    return _StructuralRepairer(trim_to_outermost(strip_code_fences(text))).run()


class _StructuralRepairer:
    """Single pass over the text tracking the bracket stack.

    ``prev`` is the last significant token emitted outside strings:
    open, comma, colon, key or value. ``_member_start`` marks where the
    current object member begins in the output so an incomplete one can be
    cut off.
    """

    def __init__(self, text: str) -> None:
        self._text = text
        self._out: list[str] = []
        self._stack: list[str] = []
        self._prev: str | None = None
        self._scalar: list[str] = []
        self._in_str = False
        self._escaped = False
        self._str_is_key = False
        self._member_start: int | None = None
        self._member_prev: str | None = None
        self._bare_key: str | None = None

    def run(self) -> str:
        for ch in self._text:
            if self._in_str:
                self._string_char(ch)
            else:
                self._structural_char(ch)
        self._finish()
        return "".join(self._out).strip()

    # --- inside a string ---

    def _string_char(self, ch: str) -> None:
        if self._escaped:
            self._escaped = False
            if ch not in _VALID_ESCAPES:
                self._out.append("\\")
            self._out.append(_CONTROL_ESCAPES.get(ch, ch))
        elif ch == "\\":
            self._escaped = True
            self._out.append(ch)
        elif ch == '"':
            self._in_str = False
            self._out.append(ch)
            self._prev = "key" if self._str_is_key else "value"
        else:
            self._out.append(_CONTROL_ESCAPES.get(ch, ch))

    # --- outside strings ---

    def _structural_char(self, ch: str) -> None:
        if ch.isspace():
            if self._scalar and not _is_complete_scalar("".join(self._scalar).strip()):
                self._scalar.append(ch)
                return
            self._flush_scalar()
            self._out.append(ch)
        elif ch == '"':
            self._flush_scalar()
            self._separate_value()
            self._str_is_key = self._at_key_position()
            if self._str_is_key:
                self._start_member(bare_key=None)
            self._in_str = True
            self._out.append(ch)
        elif ch in "{[":
            self._flush_scalar()
            self._separate_value()
            self._stack.append(ch)
            self._out.append(ch)
            self._prev = "open"
        elif ch in "}]":
            self._flush_scalar()
            self._close(ch)
        elif ch == ",":
            self._flush_scalar()
            if self._prev in (None, "open", "comma"):
                return
            if self._prev in ("key", "colon"):
                self._drop_incomplete_member()
                return
            self._out.append(",")
            self._prev = "comma"
        elif ch == ":":
            self._flush_scalar()
            if self._prev != "key":
                raise RepairError("':' without a preceding key")
            self._out.append(ch)
            self._prev = "colon"
        else:
            if not self._scalar:
                self._separate_value()
            self._scalar.append(ch)

    def _separate_value(self) -> None:
        """Insert the comma a model forgot between two values."""
        if self._prev == "value" and self._stack:
            self._out.append(",")
            self._prev = "comma"

    def _at_key_position(self) -> bool:
        return bool(self._stack) and self._stack[-1] == "{" and self._prev in ("open", "comma")

    def _flush_scalar(self) -> None:
        if not self._scalar:
            return
        token = "".join(self._scalar).strip()
        self._scalar = []
        if not token:
            return
        is_key = self._at_key_position()
        if is_key:
            self._start_member(bare_key=token)
            self._out.append(json.dumps(token))
            self._prev = "key"
            return
        if token in _LITERALS or _NUMBER_RE.fullmatch(token):
            self._out.append(token)
        else:
            trimmed = token.rstrip(".eE+-")
            if trimmed and _NUMBER_RE.fullmatch(trimmed):
                self._out.append(trimmed)
            else:
                self._out.append(json.dumps(token))
        self._prev = "value"

    def _start_member(self, bare_key: str | None) -> None:
        self._member_start = len(self._out)
        self._member_prev = self._prev
        self._bare_key = bare_key

    def _drop_incomplete_member(self) -> None:
        """Cut a key that never got a value, back to the previous member."""
        if self._member_start is None or not self._stack or self._stack[-1] != "{":
            raise RepairError("dangling key outside an object")
        if self._prev == "key" and self._bare_key is not None:
            raise RepairError(f"bare word {self._bare_key!r} where a key was expected")
        logger.debug("Dropping incomplete member: %s", "".join(self._out[self._member_start:]))
        del self._out[self._member_start:]
        self._prev = self._member_prev
        self._member_start = None

    def _close(self, closer: str) -> None:
        wanted = [_CLOSERS[o] for o in self._stack]
        if closer not in wanted:
            return
        while self._stack:
            expected = _CLOSERS[self._stack[-1]]
            self._close_top()
            if expected == closer:
                break

    def _close_top(self) -> None:
        self._complete_dangling()
        self._out.append(_CLOSERS[self._stack.pop()])
        self._prev = "value"

    def _complete_dangling(self) -> None:
        if self._prev in ("key", "colon"):
            self._drop_incomplete_member()
        if self._prev == "comma":
            self._drop_trailing_comma()

    def _drop_trailing_comma(self) -> None:
        for i in range(len(self._out) - 1, -1, -1):
            if self._out[i].isspace():
                continue
            if self._out[i] == ",":
                del self._out[i]
            return

    def _finish(self) -> None:
        if self._in_str:
            if self._escaped:
                self._out.pop()
                self._escaped = False
            self._out.append('"')
            self._in_str = False
            self._prev = "key" if self._str_is_key else "value"
        self._flush_scalar()
        while self._stack:
            self._close_top()
        if self._prev == "comma":
            self._drop_trailing_comma()


def _is_complete_scalar(token: str) -> bool:
    return token in _LITERALS or bool(_NUMBER_RE.fullmatch(token))
