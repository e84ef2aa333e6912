"""
Custom exceptions for the icstools service.

Calendar data errors are raised by the document engine (parse and
transform) and are never retried: the same upstream body always fails the
same way. Each exception carries the HTTP status code and error code the
API layer reports.
"""

from typing import Any, Dict, Optional


class IcsToolsException(Exception):
    """Base exception for icstools."""
    
    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "internal_error",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}


class CalendarDataError(IcsToolsException):
    """Base for errors caused by the content of a calendar document."""
    
    def __init__(
        self,
        message: str,
        error_code: str = "calendar_data_error",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=502,
            error_code=error_code,
            details=details,
        )


class MalformedFold(CalendarDataError):
    """Raised when a continuation line has no logical line to extend."""
    
    def __init__(self, line_number: int) -> None:
        super().__init__(
            message=f"Continuation line {line_number} has no preceding line",
            error_code="malformed_fold",
            details={"line": line_number},
        )
        self.line_number = line_number


class MalformedContentLine(CalendarDataError):
    """Raised when a logical line violates the content-line grammar."""
    
    def __init__(self, line_number: int, reason: str) -> None:
        super().__init__(
            message=f"Malformed content line {line_number}: {reason}",
            error_code="malformed_content_line",
            details={"line": line_number, "reason": reason},
        )
        self.line_number = line_number
        self.reason = reason


class UnbalancedBlock(CalendarDataError):
    """Raised when END does not close the currently open block."""
    
    def __init__(self, expected: Optional[str], found: str, line_number: int = 0) -> None:
        if expected is None:
            message = f"END:{found} without a matching BEGIN"
        else:
            message = f"END:{found} does not close BEGIN:{expected}"
        super().__init__(
            message=message,
            error_code="unbalanced_block",
            details={"expected": expected, "found": found, "line": line_number},
        )
        self.expected = expected
        self.found = found
        self.line_number = line_number


class UnterminatedBlock(CalendarDataError):
    """Raised when input ends while blocks are still open."""
    
    def __init__(self, kind: str) -> None:
        super().__init__(
            message=f"BEGIN:{kind} is never closed",
            error_code="unterminated_block",
            details={"kind": kind},
        )
        self.kind = kind


class UnknownProperty(CalendarDataError):
    """Raised when anonymizing meets a property it does not recognize."""
    
    def __init__(self, name: str, component: str = "") -> None:
        super().__init__(
            message=f"Unknown property {name} in {component or 'document'}",
            error_code="unknown_property",
            details={"property": name, "component": component},
        )
        self.name = name
        self.component = component


class NoCalendar(CalendarDataError):
    """Raised when a document holds no VCALENDAR block."""
    
    def __init__(self) -> None:
        super().__init__(
            message="Document does not contain a VCALENDAR block",
            error_code="no_calendar",
        )


class CalendarNotConfiguredError(IcsToolsException):
    """Raised when a requested path has no configured calendar."""
    
    def __init__(self, path: str) -> None:
        super().__init__(
            message=f"Path {path} is not configured",
            status_code=404,
            error_code="calendar_not_configured",
            details={"path": path},
        )


class UpstreamFetchError(IcsToolsException):
    """Raised when the upstream calendar cannot be retrieved."""
    
    def __init__(self, url: str, reason: str, status: Optional[int] = None) -> None:
        details: Dict[str, Any] = {"reason": reason}
        if status is not None:
            details["upstream_status"] = status
        super().__init__(
            message=f"Fetching upstream calendar failed: {reason}",
            status_code=502,
            error_code="upstream_fetch_error",
            details=details,
        )
        self.url = url
        self.reason = reason
        self.status = status
