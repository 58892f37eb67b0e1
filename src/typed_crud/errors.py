"""Typed failures surfaced at the service boundary."""

from __future__ import annotations

from enum import IntEnum
from typing import Any


class StatusCode(IntEnum):
    """Machine-readable failure codes.

    Numbered like gRPC status codes so a transport can map them directly.
    """

    OK = 0
    UNKNOWN = 2
    INVALID_ARGUMENT = 3
    NOT_FOUND = 5
    FAILED_PRECONDITION = 9
    UNIMPLEMENTED = 12
    UNAVAILABLE = 14


class CrudError(Exception):
    """Base class for every failure raised by a service call."""

    code: StatusCode = StatusCode.UNKNOWN
    default_message = "Unknown error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Return a transport-neutral representation of the error."""
        return {"code": int(self.code), "message": self.message}


class NotFoundError(CrudError, LookupError):
    """The requested record id does not resolve to a stored record."""

    code = StatusCode.NOT_FOUND
    default_message = "Not found"


class MalformedRequestError(CrudError, ValueError):
    """The request envelope has the wrong shape or carries an invalid id."""

    code = StatusCode.INVALID_ARGUMENT
    default_message = "Malformed request"


class MalformedFilterValueError(MalformedRequestError):
    """A where clause value could not be parsed for its matcher."""

    default_message = "Malformed filter value"


class UnknownOperationError(CrudError, AttributeError):
    """No core or synthesized operation has the requested name."""

    code = StatusCode.UNIMPLEMENTED
    default_message = "Unknown operation"


class SchemaError(CrudError, ValueError):
    """A schema cannot be turned into a consistent operation set."""

    code = StatusCode.FAILED_PRECONDITION
    default_message = "Invalid schema"


class NotConnectedError(CrudError, RuntimeError):
    """The document store failed its connection-health check."""

    code = StatusCode.UNAVAILABLE
    default_message = "document store is not connected"
