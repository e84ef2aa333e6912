"""
Calendar processing pipeline.

Entry points used by the HTTP and CLI layers:
1. Unfold the raw document into logical lines
2. Parse each line into a content line
3. Build the component tree
4. Apply the anonymize or filter transform
5. Serialize back to folded bytes

Every call works on its own tree, nothing is shared between calls.
"""

import time
from dataclasses import dataclass
from typing import Callable, Iterator, Tuple

import structlog

from .anonymize import AnonymizeConfig, anonymize_tree
from .contentline import ContentLine, parse_content_line
from .document import Component, build_document
from .exceptions import NoCalendar
from .filtering import FilterConfig, filter_tree
from .lines import LogicalLines
from .properties import is_event_like
from .serializer import serialize

logger = structlog.get_logger(__name__)


@dataclass
class TransformResult:
    """Result of running one transform over a document."""
    body: bytes
    events_in: int
    events_out: int
    processing_time_ms: float


def _content_lines(raw: bytes) -> Iterator[Tuple[int, ContentLine]]:
    for line_number, text in LogicalLines(raw):
        yield line_number, parse_content_line(text, line_number)


def parse(raw: bytes) -> Component:
    """Parse raw document bytes into a component tree."""
    return build_document(_content_lines(raw))


def count_events(root: Component) -> int:
    return sum(
        1
        for calendar in root.calendars()
        for child in calendar.children
        if is_event_like(child.kind)
    )


def _run(raw: bytes, transform: Callable[[Component], Component], mode: str) -> TransformResult:
    start = time.perf_counter()

    root = parse(raw)
    if not root.calendars():
        raise NoCalendar()

    result = transform(root)
    body = serialize(result)

    outcome = TransformResult(
        body=body,
        events_in=count_events(root),
        events_out=count_events(result),
        processing_time_ms=(time.perf_counter() - start) * 1000,
    )
    logger.debug(
        "Calendar transformed",
        mode=mode,
        bytes_in=len(raw),
        bytes_out=len(body),
        events_in=outcome.events_in,
        events_out=outcome.events_out,
        processing_time_ms=round(outcome.processing_time_ms, 3),
    )
    return outcome


def run_anonymize(raw: bytes, config: AnonymizeConfig) -> TransformResult:
    return _run(raw, lambda root: anonymize_tree(root, config), "anonymize")


def run_filter(raw: bytes, config: FilterConfig) -> TransformResult:
    return _run(raw, lambda root: filter_tree(root, config), "filter")


def anonymize(raw: bytes, config: AnonymizeConfig) -> bytes:
    """
    Anonymize a calendar document.

    Args:
        raw: complete upstream document body
        config: redaction policy for this call

    Returns:
        The anonymized document, folded and CRLF-terminated

    Raises:
        CalendarDataError: the document cannot be parsed, holds no
            calendar, or contains a property the policy rejects
    """
    return run_anonymize(raw, config).body


def filter(raw: bytes, config: FilterConfig) -> bytes:
    """
    Drop the events whose summary equals ``config.match_value``.

    Raises:
        CalendarDataError: the document cannot be parsed or holds no calendar
    """
    return run_filter(raw, config).body
