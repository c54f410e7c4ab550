"""Permissive rewriting of almost-JSON model output into strict JSON.

`repair_json` walks the text once with a small tokenizer instead of applying
regex substitutions, so colons, commas and quotes that live inside string
values are never rewritten. It accepts:

- single quotes and curly quotes as string delimiters
- unquoted object keys and unquoted scalar values
- trailing and doubled commas, and missing commas between values
- raw control characters inside strings (collapsed to one space)
- Python literals (``True``/``False``/``None``) and ``//`` / ``/* */`` comments
- unterminated strings and containers at end of text (output was cut off)

The output of a successful repair is itself a fixed point of `repair_json`.
"""

import json
import re
from typing import List, Optional

from contentgen.exceptions import JSONRepairError

# Opening delimiter -> characters allowed to close the string.
STRING_CLOSERS = {
    '"': '"',
    "'": "'",
    "“": '"“”',
    "”": '"“”',
    "„": '"“”',
    "‘": "'‘’",
    "’": "'‘’",
}
_VALID_ESCAPES = set('"\\/bfnrt')
_AFTER_STRING = set(",:}]")
_BARE_STOP = set(",}]\n\r")
_LITERALS = {
    "true": "true",
    "false": "false",
    "null": "null",
    "True": "true",
    "False": "false",
    "None": "null",
    "NaN": "null",
    "undefined": "null",
}
_PAIRS = {"}": "{", "]": "["}
_CLOSERS = {"{": "}", "[": "]"}

_IDENT_RE = re.compile(r"(?:[^\W\d]|\$)[\w$-]*")
_NUMBER_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
_HEX4_RE = re.compile(r"[0-9a-fA-F]{4}")


def _next_significant(text: str, pos: int) -> str:
    while pos < len(text) and text[pos] in " \t\n\r":
        pos += 1
    return text[pos] if pos < len(text) else ""


def closes_string(text: str, pos: int) -> bool:
    """A quote at `pos` ends a string only before a separator or end of text."""
    following = _next_significant(text, pos + 1)
    return following == "" or following in _AFTER_STRING


class _Rewriter:
    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.out: List[str] = []
        self.stack: List[str] = []
        self.pending_comma = False
        self.pending_ws: List[str] = []
        # open | comma | colon | value
        self.last: Optional[str] = None

    def run(self) -> str:
        text = self.text
        while self.pos < len(text):
            ch = text[self.pos]
            if ch in " \t\n\r":
                self._whitespace(ch)
                self.pos += 1
            elif ch < " ":
                self._whitespace(" ")
                self.pos += 1
            elif ch == ",":
                if self.last not in (None, "open", "comma"):
                    self.pending_comma = True
                    self.last = "comma"
                self.pos += 1
            elif ch == ":":
                self._flush(closing=False)
                self.out.append(":")
                self.last = "colon"
                self.pos += 1
            elif ch in _CLOSERS:
                self._begin_value()
                self.out.append(ch)
                self.stack.append(ch)
                self.last = "open"
                self.pos += 1
            elif ch in _PAIRS:
                if not self.stack:
                    break
                self._close(ch)
                self.pos += 1
                if not self.stack:
                    break
            elif ch == "/" and text.startswith(("//", "/*"), self.pos):
                self._skip_comment()
            elif ch in STRING_CLOSERS:
                self._string(ch)
            else:
                self._scalar()

        self._finish()
        return "".join(self.out)

    # -- emission helpers -------------------------------------------------

    def _whitespace(self, ch: str) -> None:
        if self.pending_comma:
            self.pending_ws.append(ch)
        else:
            self.out.append(ch)

    def _flush(self, closing: bool) -> None:
        """Emit a deferred comma unless the next token closes a container."""
        if self.pending_comma and not closing:
            self.out.append(",")
        self.out.extend(self.pending_ws)
        self.pending_comma = False
        self.pending_ws = []

    def _begin_value(self) -> None:
        if self.last == "value" and not self.pending_comma:
            self.out.append(",")
        self._flush(closing=False)

    def _close(self, ch: str) -> None:
        self._flush(closing=True)
        if self.last == "colon":
            self.out.append("null")
        expected = _PAIRS[ch]
        if expected not in self.stack:
            # Mismatched bracket: treat it as closing the innermost container.
            expected = self.stack[-1]
            ch = _CLOSERS[expected]
        # Close anything left open inside the container being closed.
        while self.stack and self.stack[-1] != expected:
            self.out.append(_CLOSERS[self.stack.pop()])
        if self.stack:
            self.stack.pop()
        self.out.append(ch)
        self.last = "value"

    def _finish(self) -> None:
        self.pending_comma = False
        self._flush(closing=True)
        if self.last == "colon":
            self.out.append("null")
        while self.stack:
            self.out.append(_CLOSERS[self.stack.pop()])
        if not "".join(self.out).strip():
            raise JSONRepairError("No JSON content to repair")

    # -- tokens -----------------------------------------------------------

    def _skip_comment(self) -> None:
        text = self.text
        if text.startswith("//", self.pos):
            end = text.find("\n", self.pos)
            self.pos = len(text) if end == -1 else end
        else:
            end = text.find("*/", self.pos + 2)
            self.pos = len(text) if end == -1 else end + 2

    def _string(self, opener: str) -> None:
        self._begin_value()
        text = self.text
        closers = STRING_CLOSERS[opener]
        pos = self.pos + 1
        chars: List[str] = []
        last_was_control = False

        while pos < len(text):
            ch = text[pos]
            if ch in closers and closes_string(text, pos):
                pos += 1
                break
            if ch == "\\":
                chars.append(self._escape(pos))
                pos += 6 if text.startswith("u", pos + 1) and _HEX4_RE.match(text, pos + 2) else 2
                last_was_control = False
                continue
            if ch < " ":
                if not last_was_control:
                    chars.append(" ")
                last_was_control = True
                pos += 1
                continue
            last_was_control = False
            chars.append('\\"' if ch == '"' else ch)
            pos += 1

        self.out.append('"' + "".join(chars) + '"')
        self.pos = pos
        self.last = "value"

    def _escape(self, pos: int) -> str:
        text = self.text
        if pos + 1 >= len(text):
            return "\\\\"
        nxt = text[pos + 1]
        if nxt == "u" and _HEX4_RE.match(text, pos + 2):
            return text[pos : pos + 6]
        if nxt in _VALID_ESCAPES:
            return "\\" + nxt
        if nxt == "'":
            return "'"
        if nxt in "\n\r":
            return " "
        return "\\\\" + ("\\u%04x" % ord(nxt) if nxt < " " else nxt)

    def _scalar(self) -> None:
        text = self.text
        in_object = bool(self.stack) and self.stack[-1] == "{"

        ident = _IDENT_RE.match(text, self.pos)
        number = None if ident else _NUMBER_RE.match(text, self.pos)
        token = ident or number
        if token is not None:
            after = _next_significant(text, token.end())
            if after == ":" and in_object and self.last != "colon":
                self._begin_value()
                self.out.append(json.dumps(token.group(0), ensure_ascii=False))
                self.pos = token.end()
                self.last = "value"
                return
            if ident and token.group(0) in _LITERALS and (after == "" or after in _AFTER_STRING):
                self._begin_value()
                self.out.append(_LITERALS[token.group(0)])
                self.pos = token.end()
                self.last = "value"
                return
            if number and (after == "" or after in _AFTER_STRING):
                self._begin_value()
                self.out.append(_canonical_number(token.group(0)))
                self.pos = token.end()
                self.last = "value"
                return

        # Anything else is an unquoted text value running to the next separator.
        end = self.pos
        while end < len(text) and text[end] not in _BARE_STOP:
            end += 1
        raw = re.sub(r"[\x00-\x1f]+", " ", text[self.pos : end]).strip()
        self.pos = end
        if not raw:
            return
        self._begin_value()
        self.out.append(json.dumps(raw, ensure_ascii=False))
        self.last = "value"


def _canonical_number(raw: str) -> str:
    value = raw.lstrip("+")
    sign = ""
    if value.startswith("-"):
        sign, value = "-", value[1:]
    if value.startswith("."):
        value = "0" + value
    mantissa, exp_mark, exponent = value.partition("e") if "e" in value else value.partition("E")
    if mantissa.endswith("."):
        mantissa = mantissa[:-1]
    digits = mantissa.lstrip("0")
    if not digits or digits.startswith("."):
        digits = "0" + digits
    return sign + digits + exp_mark + exponent


def repair_json(text: str) -> str:
    """Rewrite loosely formatted JSON into a strict JSON string.

    Raises:
        JSONRepairError: if the text holds nothing that can be rewritten.
    """
    if text is None or not text.strip():
        raise JSONRepairError("No JSON content to repair")
    return _Rewriter(text.strip()).run().strip()

