"""
Component tree and the BEGIN/END document builder.
"""

from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Tuple

from .contentline import ContentLine
from .exceptions import MalformedContentLine, UnbalancedBlock, UnterminatedBlock
from .properties import ComponentKind

ROOT_KIND = ""


@dataclass
class Component:
    """A BEGIN/END block with its properties and nested blocks, in order."""

    kind: str
    properties: List[ContentLine] = field(default_factory=list)
    children: List["Component"] = field(default_factory=list)

    @property
    def is_root(self) -> bool:
        return self.kind == ROOT_KIND

    def get(self, name: str) -> Optional[ContentLine]:
        """First property called ``name``, if any."""
        name = name.upper()
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    def get_all(self, name: str) -> List[ContentLine]:
        name = name.upper()
        return [prop for prop in self.properties if prop.name == name]

    def value_of(self, name: str) -> Optional[str]:
        """Unescaped value of the first ``name`` property."""
        prop = self.get(name)
        return prop.value if prop is not None else None

    def calendars(self) -> List["Component"]:
        """Top-level VCALENDAR containers of a document root."""
        return [child for child in self.children if child.kind == ComponentKind.VCALENDAR.value]

    def copy(self) -> "Component":
        """Deep copy of the block and everything inside it."""
        return Component(
            kind=self.kind,
            properties=[prop.copy() for prop in self.properties],
            children=[child.copy() for child in self.children],
        )

    def walk(self) -> Iterator["Component"]:
        """This component and all its descendants, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()


def build_document(lines: Iterable[Tuple[int, ContentLine]]) -> Component:
    """
    Assemble numbered content lines into a component tree.

    ``lines`` holds ``(line_number, content_line)`` pairs; the numbers end
    up in structure errors. The returned root is implicit (kind ``""``):
    its children are the top-level blocks of the document.

    Raises:
        MalformedContentLine: BEGIN without a component name
        UnbalancedBlock: an END does not match the open BEGIN
        UnterminatedBlock: input ended with blocks still open
    """
    root = Component(kind=ROOT_KIND)
    stack = [root]

    for line_number, line in lines:
        if line.name == "BEGIN":
            kind = line.raw_value.strip().upper()
            if not kind:
                raise MalformedContentLine(line_number, "BEGIN without a component name")
            block = Component(kind=kind)
            stack[-1].children.append(block)
            stack.append(block)
        elif line.name == "END":
            kind = line.raw_value.strip().upper()
            if len(stack) == 1:
                raise UnbalancedBlock(None, kind, line_number)
            if stack[-1].kind != kind:
                raise UnbalancedBlock(stack[-1].kind, kind, line_number)
            stack.pop()
        else:
            stack[-1].properties.append(line)

    if len(stack) > 1:
        raise UnterminatedBlock(stack[-1].kind)

    return root
