"""
Recognized iCalendar property and component kinds.

Both enumerations are closed: anything not listed classifies as
``UNKNOWN``, which the anonymizer treats explicitly instead of letting it
fall through.
"""

from enum import Enum


class PropertyKind(str, Enum):
    """Property names the transforms know how to handle."""

    # Calendar level
    PRODID = "PRODID"
    VERSION = "VERSION"
    CALSCALE = "CALSCALE"
    METHOD = "METHOD"
    NAME = "NAME"
    COLOR = "COLOR"
    REFRESH_INTERVAL = "REFRESH-INTERVAL"
    SOURCE = "SOURCE"
    X_WR_CALNAME = "X-WR-CALNAME"
    X_WR_CALDESC = "X-WR-CALDESC"
    X_WR_TIMEZONE = "X-WR-TIMEZONE"
    X_PUBLISHED_TTL = "X-PUBLISHED-TTL"

    # Scheduling
    UID = "UID"
    DTSTAMP = "DTSTAMP"
    DTSTART = "DTSTART"
    DTEND = "DTEND"
    DURATION = "DURATION"
    DUE = "DUE"
    RRULE = "RRULE"
    RDATE = "RDATE"
    EXDATE = "EXDATE"
    EXRULE = "EXRULE"
    RECURRENCE_ID = "RECURRENCE-ID"
    STATUS = "STATUS"
    TRANSP = "TRANSP"
    SEQUENCE = "SEQUENCE"
    FREEBUSY = "FREEBUSY"
    X_MICROSOFT_CDO_BUSYSTATUS = "X-MICROSOFT-CDO-BUSYSTATUS"
    X_MICROSOFT_CDO_INTENDEDSTATUS = "X-MICROSOFT-CDO-INTENDEDSTATUS"
    X_MICROSOFT_CDO_ALLDAYEVENT = "X-MICROSOFT-CDO-ALLDAYEVENT"

    # Free text and identity
    SUMMARY = "SUMMARY"
    DESCRIPTION = "DESCRIPTION"
    LOCATION = "LOCATION"
    ATTENDEE = "ATTENDEE"
    ORGANIZER = "ORGANIZER"
    COMMENT = "COMMENT"
    CATEGORIES = "CATEGORIES"
    CONTACT = "CONTACT"
    URL = "URL"
    GEO = "GEO"
    ATTACH = "ATTACH"
    RESOURCES = "RESOURCES"
    RELATED_TO = "RELATED-TO"
    CLASS = "CLASS"
    PRIORITY = "PRIORITY"
    CREATED = "CREATED"
    LAST_MODIFIED = "LAST-MODIFIED"
    REQUEST_STATUS = "REQUEST-STATUS"
    PERCENT_COMPLETE = "PERCENT-COMPLETE"
    COMPLETED = "COMPLETED"
    X_ALT_DESC = "X-ALT-DESC"
    X_APPLE_STRUCTURED_LOCATION = "X-APPLE-STRUCTURED-LOCATION"
    X_GOOGLE_CONFERENCE = "X-GOOGLE-CONFERENCE"
    X_MICROSOFT_SKYPETEAMSMEETINGURL = "X-MICROSOFT-SKYPETEAMSMEETINGURL"
    X_MICROSOFT_ONLINEMEETINGINFORMATION = "X-MICROSOFT-ONLINEMEETINGINFORMATION"

    # Alarms and timezones, only meaningful inside their own components
    ACTION = "ACTION"
    TRIGGER = "TRIGGER"
    REPEAT = "REPEAT"
    TZID = "TZID"
    TZNAME = "TZNAME"
    TZOFFSETFROM = "TZOFFSETFROM"
    TZOFFSETTO = "TZOFFSETTO"
    TZURL = "TZURL"

    UNKNOWN = ""


class ComponentKind(str, Enum):
    """Component kinds with dedicated handling."""

    VCALENDAR = "VCALENDAR"
    VEVENT = "VEVENT"
    VTODO = "VTODO"
    VJOURNAL = "VJOURNAL"
    VTIMEZONE = "VTIMEZONE"
    VALARM = "VALARM"
    VFREEBUSY = "VFREEBUSY"
    STANDARD = "STANDARD"
    DAYLIGHT = "DAYLIGHT"
    UNKNOWN = ""


EVENT_LIKE = frozenset({ComponentKind.VEVENT, ComponentKind.VTODO, ComponentKind.VJOURNAL})

_PROPERTY_KINDS = {kind.value: kind for kind in PropertyKind if kind is not PropertyKind.UNKNOWN}
_COMPONENT_KINDS = {kind.value: kind for kind in ComponentKind if kind is not ComponentKind.UNKNOWN}


def classify_property(name: str) -> PropertyKind:
    return _PROPERTY_KINDS.get(name.upper(), PropertyKind.UNKNOWN)


def classify_component(kind: str) -> ComponentKind:
    return _COMPONENT_KINDS.get(kind.upper(), ComponentKind.UNKNOWN)


def is_event_like(kind: str) -> bool:
    """True for components that carry a schedulable occurrence."""
    return classify_component(kind) in EVENT_LIKE
