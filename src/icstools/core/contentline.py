"""
Content-line parsing and formatting.

A content line is ``name *(";" param-name "=" param-value *("," param-value))
":" value``. Values are stored exactly as received: text values are only
unescaped when read through :attr:`ContentLine.value`, so structured values
such as recurrence rules keep their ``;`` and ``,`` separators intact.
Parameter values use RFC 6868 caret encoding for quotes and newlines.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .exceptions import MalformedContentLine

_NAME_RE = re.compile(r"[A-Za-z0-9-]+")
_PARAM_SPECIALS = (":", ";", ",")

# RFC 6868 caret encoding of parameter values
_CARET_DECODE = {"^": "^", "n": "\n", "N": "\n", "'": '"'}
_CARET_ENCODE = {"^": "^^", "\n": "^n", '"': "^'"}

_UNESCAPES = {
    "\\": "\\",
    ";": ";",
    ",": ",",
    "n": "\n",
    "N": "\n",
}


def unescape_text(raw: str) -> str:
    """
    Resolve backslash escapes in a TEXT value.

    Unknown escapes and a trailing lone backslash are kept literally so that
    sloppy upstream feeds still parse.
    """
    if "\\" not in raw:
        return raw

    out: List[str] = []
    index = 0
    length = len(raw)
    while index < length:
        char = raw[index]
        if char == "\\" and index + 1 < length:
            nxt = raw[index + 1]
            if nxt in _UNESCAPES:
                out.append(_UNESCAPES[nxt])
            else:
                out.append(char + nxt)
            index += 2
            continue
        out.append(char)
        index += 1
    return "".join(out)


def escape_text(text: str) -> str:
    """Escape a TEXT value for output."""
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )



def decode_param_value(raw: str) -> str:
    """Resolve ``^^``, ``^n`` and ``^'`` in a parameter value."""
    if "^" not in raw:
        return raw

    out: List[str] = []
    index = 0
    length = len(raw)
    while index < length:
        char = raw[index]
        if char == "^" and index + 1 < length and raw[index + 1] in _CARET_DECODE:
            out.append(_CARET_DECODE[raw[index + 1]])
            index += 2
            continue
        out.append(char)
        index += 1
    return "".join(out)


def encode_param_value(value: str) -> str:
    return "".join(_CARET_ENCODE.get(char, char) for char in value.replace("\r\n", "\n"))


@dataclass
class ContentLine:
    """One property line: name, ordered parameters and raw value."""

    name: str
    parameters: Dict[str, List[str]] = field(default_factory=dict)
    raw_value: str = ""

    @classmethod
    def text(
        cls,
        name: str,
        value: str,
        parameters: Optional[Dict[str, List[str]]] = None,
    ) -> "ContentLine":
        """Build a line holding a TEXT value, escaping it."""
        return cls(
            name=name.upper(),
            parameters=dict(parameters or {}),
            raw_value=escape_text(value),
        )

    @property
    def value(self) -> str:
        """The value with TEXT escapes resolved."""
        return unescape_text(self.raw_value)

    def with_value(self, value: str, keep_parameters: bool = False) -> "ContentLine":
        """Return a copy of this line carrying a new TEXT value."""
        params = {k: list(v) for k, v in self.parameters.items()} if keep_parameters else {}
        return ContentLine(name=self.name, parameters=params, raw_value=escape_text(value))

    def copy(self) -> "ContentLine":
        return ContentLine(
            name=self.name,
            parameters={k: list(v) for k, v in self.parameters.items()},
            raw_value=self.raw_value,
        )


class _Cursor:
    """Position tracking over one logical line."""

    def __init__(self, text: str, line_number: int) -> None:
        self.text = text
        self.pos = 0
        self.line_number = line_number

    def fail(self, reason: str) -> MalformedContentLine:
        return MalformedContentLine(self.line_number, reason)

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def name(self, what: str) -> str:
        match = _NAME_RE.match(self.text, self.pos)
        if match is None:
            raise self.fail(f"invalid {what} at column {self.pos + 1}")
        self.pos = match.end()
        return match.group(0).upper()

    def param_value(self) -> str:
        if self.peek() == '"':
            end = self.text.find('"', self.pos + 1)
            if end == -1:
                raise self.fail("unterminated quoted parameter value")
            value = self.text[self.pos + 1:end]
            self.pos = end + 1
            if self.peek() not in _PARAM_SPECIALS:
                raise self.fail(f"unexpected character after quoted value at column {self.pos + 1}")
            return decode_param_value(value)

        start = self.pos
        while self.pos < len(self.text) and self.text[self.pos] not in _PARAM_SPECIALS:
            if self.text[self.pos] == '"':
                raise self.fail(f"stray quote in parameter value at column {self.pos + 1}")
            self.pos += 1
        return decode_param_value(self.text[start:self.pos])


def parse_content_line(text: str, line_number: int = 0) -> ContentLine:
    """
    Parse one logical line.

    Raises:
        MalformedContentLine: the line does not follow the grammar
    """
    cursor = _Cursor(text, line_number)
    name = cursor.name("property name")
    parameters: Dict[str, List[str]] = {}

    while cursor.peek() == ";":
        cursor.pos += 1
        param_name = cursor.name("parameter name")
        if cursor.peek() != "=":
            raise cursor.fail(f"parameter {param_name} has no '='")
        cursor.pos += 1

        values = parameters.setdefault(param_name, [])
        values.append(cursor.param_value())
        while cursor.peek() == ",":
            cursor.pos += 1
            values.append(cursor.param_value())

    if cursor.peek() != ":":
        raise cursor.fail("missing ':' between name and value")

    return ContentLine(name=name, parameters=parameters, raw_value=text[cursor.pos + 1:])


def _format_param_value(value: str) -> str:
    value = encode_param_value(value)
    if any(char in value for char in _PARAM_SPECIALS):
        return f'"{value}"'
    return value


def format_content_line(line: ContentLine) -> str:
    """Render a content line as one logical (unfolded) line."""
    parts = [line.name]
    for param_name, values in line.parameters.items():
        rendered = ",".join(_format_param_value(v) for v in values)
        parts.append(f";{param_name}={rendered}")
    parts.append(":")
    parts.append(line.raw_value)
    return "".join(parts)
