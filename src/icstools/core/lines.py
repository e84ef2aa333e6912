"""
Line folding and unfolding for the iCalendar text format.

RFC 5545 keeps physical lines under 75 octets: a long logical line is split
and each continuation starts with a single SPACE or HTAB. Unfolding joins
them back; folding does the inverse on output.
"""

from typing import Iterator, List, Tuple

from .exceptions import MalformedFold

MAX_LINE_OCTETS = 75

_CONTINUATION = (" ", "\t")


class LogicalLines:
    """
    Lazy, restartable sequence of unfolded lines.

    Every iteration decodes and walks the document from the start and
    yields ``(line_number, text)`` pairs, where ``line_number`` is the
    1-based physical line the logical line starts on.
    """

    def __init__(self, data: bytes) -> None:
        self.data = data

    def __iter__(self) -> Iterator[Tuple[int, str]]:
        return unfold(self.data)


def unfold(data: bytes) -> Iterator[Tuple[int, str]]:
    """
    Yield the logical lines of a raw document.

    CRLF and bare LF both end a physical line. Empty physical lines are
    skipped.

    Raises:
        MalformedFold: a continuation line appears before any logical line
    """
    text = data.decode("utf-8-sig", errors="replace")

    current: List[str] = []
    start = 0

    for number, physical in enumerate(text.split("\n"), start=1):
        if physical.endswith("\r"):
            physical = physical[:-1]

        if not physical:
            if current:
                yield start, "".join(current)
                current = []
            continue

        if physical[0] in _CONTINUATION:
            if not current:
                raise MalformedFold(number)
            current.append(physical[1:])
            continue

        if current:
            yield start, "".join(current)
        current = [physical]
        start = number

    if current:
        yield start, "".join(current)


def _atoms(line: str) -> Iterator[str]:
    """Split a line into units that folding must keep together."""
    index = 0
    length = len(line)
    while index < length:
        # keep backslash escapes on one physical line
        if line[index] == "\\" and index + 1 < length:
            yield line[index:index + 2]
            index += 2
        else:
            yield line[index]
            index += 1


def fold(line: str, limit: int = MAX_LINE_OCTETS) -> List[str]:
    """
    Fold a logical line into physical lines of at most ``limit`` octets.

    Continuation lines carry a leading space which counts toward the limit.
    Splits only fall between characters, and never inside an escape pair,
    so unfolding the result gives back ``line`` unchanged.
    """
    if len(line.encode("utf-8")) <= limit:
        return [line]

    physical: List[str] = []
    chunk: List[str] = []
    size = 0
    budget = limit

    for atom in _atoms(line):
        atom_size = len(atom.encode("utf-8"))
        if chunk and size + atom_size > budget:
            physical.append("".join(chunk))
            chunk = []
            size = 0
            budget = limit - 1
        chunk.append(atom)
        size += atom_size

    if chunk:
        physical.append("".join(chunk))

    return [physical[0]] + [" " + part for part in physical[1:]]
