"""
Filtering transform: drop events by summary.
"""

from dataclasses import dataclass

import structlog

from .document import Component
from .properties import ComponentKind, classify_component, is_event_like

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class FilterConfig:
    """Events whose SUMMARY equals ``match_value`` exactly are removed."""
    match_value: str


def _matches(component: Component, config: FilterConfig) -> bool:
    if not is_event_like(component.kind):
        return False
    return any(prop.value == config.match_value for prop in component.get_all("SUMMARY"))


def filter_tree(root: Component, config: FilterConfig) -> Component:
    """Return a copy of ``root`` without the matching events."""
    out = root.copy()
    for calendar in out.children:
        if classify_component(calendar.kind) is not ComponentKind.VCALENDAR:
            continue
        kept = [child for child in calendar.children if not _matches(child, config)]
        removed = len(calendar.children) - len(kept)
        if removed:
            logger.debug("Filtered events", removed=removed, kept=len(kept))
        calendar.children = kept
    return out
