"""
Component tree serializer.
"""

from typing import Iterator, List

from .contentline import format_content_line
from .document import Component
from .lines import MAX_LINE_OCTETS, fold

CRLF = "\r\n"


def _logical_lines(component: Component) -> Iterator[str]:
    if not component.is_root:
        yield f"BEGIN:{component.kind}"
    for prop in component.properties:
        yield format_content_line(prop)
    for child in component.children:
        yield from _logical_lines(child)
    if not component.is_root:
        yield f"END:{component.kind}"


def serialize(component: Component, limit: int = MAX_LINE_OCTETS) -> bytes:
    """
    Render a tree as folded, CRLF-terminated UTF-8 bytes.

    Parsing the output again gives an equal tree.
    """
    physical: List[str] = []
    for line in _logical_lines(component):
        physical.extend(fold(line, limit))
    if not physical:
        return b""
    return (CRLF.join(physical) + CRLF).encode("utf-8")

