"""
Anonymizing transform.

Keeps the time slots of every event while removing what identifies them:
summaries become a fixed message, UIDs become a keyed digest, free text,
people and places are dropped, and alarms go away. Properties the engine
does not recognize either stop the transform or are dropped, depending on
``ignore_unknown_properties``, so unfamiliar feeds never leak data silently.
"""

import hashlib
import hmac
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

import structlog

from .contentline import ContentLine
from .document import Component
from .exceptions import UnknownProperty
from .properties import ComponentKind, PropertyKind, classify_component, classify_property, is_event_like

logger = structlog.get_logger(__name__)

UID_DIGEST_LENGTH = 32
UID_DOMAIN = "icstools"


@dataclass(frozen=True)
class AnonymizeConfig:
    """Policy for one anonymize call."""
    calendar_name: str
    redaction_message: str
    seed: str
    ignore_unknown_properties: bool = False


class Action(Enum):
    KEEP = "keep"
    REDACT = "redact"
    DIGEST = "digest"
    RENAME = "rename"
    DROP = "drop"
    GATE = "gate"


_SCHEDULE = (
    PropertyKind.DTSTAMP,
    PropertyKind.DTSTART,
    PropertyKind.DTEND,
    PropertyKind.DURATION,
    PropertyKind.DUE,
    PropertyKind.RRULE,
    PropertyKind.RDATE,
    PropertyKind.EXDATE,
    PropertyKind.EXRULE,
    PropertyKind.RECURRENCE_ID,
    PropertyKind.STATUS,
    PropertyKind.TRANSP,
    PropertyKind.SEQUENCE,
    PropertyKind.X_MICROSOFT_CDO_BUSYSTATUS,
    PropertyKind.X_MICROSOFT_CDO_INTENDEDSTATUS,
    PropertyKind.X_MICROSOFT_CDO_ALLDAYEVENT,
)

_IDENTIFYING = (
    PropertyKind.DESCRIPTION,
    PropertyKind.LOCATION,
    PropertyKind.ATTENDEE,
    PropertyKind.ORGANIZER,
    PropertyKind.COMMENT,
    PropertyKind.CATEGORIES,
    PropertyKind.CONTACT,
    PropertyKind.URL,
    PropertyKind.GEO,
    PropertyKind.ATTACH,
    PropertyKind.RESOURCES,
    PropertyKind.RELATED_TO,
    PropertyKind.CLASS,
    PropertyKind.PRIORITY,
    PropertyKind.CREATED,
    PropertyKind.LAST_MODIFIED,
    PropertyKind.REQUEST_STATUS,
    PropertyKind.PERCENT_COMPLETE,
    PropertyKind.COMPLETED,
    PropertyKind.X_ALT_DESC,
    PropertyKind.X_APPLE_STRUCTURED_LOCATION,
    PropertyKind.X_GOOGLE_CONFERENCE,
    PropertyKind.X_MICROSOFT_SKYPETEAMSMEETINGURL,
    PropertyKind.X_MICROSOFT_ONLINEMEETINGINFORMATION,
)

# Known kinds that have no business inside an event
_MISPLACED = (
    PropertyKind.PRODID,
    PropertyKind.VERSION,
    PropertyKind.CALSCALE,
    PropertyKind.METHOD,
    PropertyKind.NAME,
    PropertyKind.COLOR,
    PropertyKind.REFRESH_INTERVAL,
    PropertyKind.SOURCE,
    PropertyKind.X_WR_CALNAME,
    PropertyKind.X_WR_CALDESC,
    PropertyKind.X_WR_TIMEZONE,
    PropertyKind.X_PUBLISHED_TTL,
    PropertyKind.FREEBUSY,
    PropertyKind.ACTION,
    PropertyKind.TRIGGER,
    PropertyKind.REPEAT,
    PropertyKind.TZID,
    PropertyKind.TZNAME,
    PropertyKind.TZOFFSETFROM,
    PropertyKind.TZOFFSETTO,
    PropertyKind.TZURL,
)

EVENT_ACTIONS: Dict[PropertyKind, Action] = {
    **{kind: Action.KEEP for kind in _SCHEDULE},
    **{kind: Action.DROP for kind in _IDENTIFYING},
    **{kind: Action.DROP for kind in _MISPLACED},
    PropertyKind.SUMMARY: Action.REDACT,
    PropertyKind.UID: Action.DIGEST,
    PropertyKind.UNKNOWN: Action.GATE,
}

# Valid only inside free/busy, alarm and timezone blocks
_BLOCK_ONLY = (
    PropertyKind.FREEBUSY,
    PropertyKind.ACTION,
    PropertyKind.TRIGGER,
    PropertyKind.REPEAT,
    PropertyKind.TZID,
    PropertyKind.TZNAME,
    PropertyKind.TZOFFSETFROM,
    PropertyKind.TZOFFSETTO,
    PropertyKind.TZURL,
)

# Non-event blocks follow the event policy but keep the properties they own
BLOCK_ACTIONS: Dict[PropertyKind, Action] = {
    **EVENT_ACTIONS,
    **{kind: Action.KEEP for kind in _BLOCK_ONLY},
}

_unmapped = set(PropertyKind) - set(EVENT_ACTIONS)
if _unmapped:
    raise RuntimeError(f"Property kinds without an event action: {sorted(k.name for k in _unmapped)}")

CALENDAR_ACTIONS: Dict[PropertyKind, Action] = {
    PropertyKind.PRODID: Action.KEEP,
    PropertyKind.VERSION: Action.KEEP,
    PropertyKind.CALSCALE: Action.KEEP,
    PropertyKind.METHOD: Action.KEEP,
    PropertyKind.COLOR: Action.KEEP,
    PropertyKind.REFRESH_INTERVAL: Action.KEEP,
    PropertyKind.X_WR_TIMEZONE: Action.KEEP,
    PropertyKind.X_PUBLISHED_TTL: Action.KEEP,
    PropertyKind.NAME: Action.RENAME,
    PropertyKind.X_WR_CALNAME: Action.RENAME,
    PropertyKind.UNKNOWN: Action.GATE,
}


def digest_uid(uid: str, seed: str) -> str:
    """
    Keyed one-way digest of an event UID.

    The same ``uid`` and ``seed`` always give the same result, so clients
    see re-fetched events as updates. Different seeds give unrelated values.
    """
    mac = hmac.new(seed.encode("utf-8"), uid.encode("utf-8"), hashlib.sha256)
    return f"{mac.hexdigest()[:UID_DIGEST_LENGTH]}@{UID_DOMAIN}"


class Anonymizer:
    """Applies one :class:`AnonymizeConfig` to a document tree."""

    def __init__(self, config: AnonymizeConfig) -> None:
        self.config = config

    def _gate(self, prop: ContentLine, component: Component) -> None:
        """Reject or drop an unrecognized property."""
        if not self.config.ignore_unknown_properties:
            raise UnknownProperty(prop.name, component.kind)
        logger.debug("Dropped unknown property", property=prop.name, component=component.kind)

    def transform(self, root: Component) -> Component:
        return self._block(root)

    def _dispatch(self, component: Component) -> Component:
        """Pick the policy for a block wherever it sits in the tree."""
        kind = classify_component(component.kind)
        if kind is ComponentKind.VCALENDAR:
            return self._calendar(component)
        if is_event_like(component.kind):
            return self._event(component)
        if kind is ComponentKind.VTIMEZONE:
            return component.copy()
        return self._block(component)

    def _calendar(self, calendar: Component) -> Component:
        out = Component(kind=calendar.kind)
        renamed = False

        for prop in calendar.properties:
            action = CALENDAR_ACTIONS.get(classify_property(prop.name), Action.DROP)
            if action is Action.KEEP:
                out.properties.append(prop.copy())
            elif action is Action.RENAME:
                out.properties.append(prop.with_value(self.config.calendar_name))
                renamed = True
            elif action is Action.GATE:
                self._gate(prop, calendar)

        if not renamed:
            out.properties.append(ContentLine.text(PropertyKind.X_WR_CALNAME.value, self.config.calendar_name))

        out.children = [self._dispatch(child) for child in calendar.children]
        return out

    def _apply(
        self,
        prop: ContentLine,
        actions: Dict[PropertyKind, Action],
        component: Component,
    ) -> Optional[ContentLine]:
        """Rewritten copy of ``prop``, or None when it is dropped."""
        action = actions[classify_property(prop.name)]
        if action is Action.KEEP:
            return prop.copy()
        if action is Action.REDACT:
            return prop.with_value(self.config.redaction_message)
        if action is Action.DIGEST:
            return prop.with_value(digest_uid(prop.value, self.config.seed))
        if action is Action.GATE:
            self._gate(prop, component)
            return None
        if action is not Action.DROP:
            raise RuntimeError(f"Unhandled action {action} for {prop.name}")
        return None

    def _event(self, event: Component) -> Component:
        properties: List[ContentLine] = []
        for prop in event.properties:
            rewritten = self._apply(prop, EVENT_ACTIONS, event)
            if rewritten is not None:
                properties.append(rewritten)

        if not any(prop.name == PropertyKind.SUMMARY.value for prop in properties):
            properties.append(ContentLine.text(PropertyKind.SUMMARY.value, self.config.redaction_message))

        if event.children:
            logger.debug(
                "Removed nested components",
                component=event.kind,
                removed=len(event.children),
            )

        return Component(kind=event.kind, properties=properties)

    def _block(self, component: Component) -> Component:
        """Rewrite a non-event block and everything nested in it."""
        out = Component(kind=component.kind)
        for prop in component.properties:
            rewritten = self._apply(prop, BLOCK_ACTIONS, component)
            if rewritten is not None:
                out.properties.append(rewritten)
        out.children = [self._dispatch(child) for child in component.children]
        return out




def anonymize_tree(root: Component, config: AnonymizeConfig) -> Component:
    """
    Return an anonymized copy of a document tree.

    Raises:
        UnknownProperty: an unrecognized property was found and
            ``config.ignore_unknown_properties`` is false
    """
    return Anonymizer(config).transform(root)
