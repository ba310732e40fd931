"""
client/errors.py -- Error payload variants and the client exception hierarchy.

The server answers failures in one of two shapes:
  {"message": ..., "errors": {field: [messages]}}   -- validation (422)
  {"message": ...}                                   -- everything else

parse_error_response() turns a payload into exactly one ErrorResponse
variant, so display code dispatches on the type instead of probing keys.
error_for_status() picks the exception class from the status code.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

NETWORK_ERROR_MESSAGE = "An unexpected error occurred. Please check your network connection."


@dataclass(frozen=True)
class FieldErrors:
    """Per-field messages; message is the server's summary line, if any."""

    errors: dict[str, list[str]] = field(default_factory=dict)
    message: str = ""


@dataclass(frozen=True)
class GeneralError:
    """A non-field error rendered as a banner. Empty message = use the form's default."""

    message: str = ""


ErrorResponse = Union[FieldErrors, GeneralError]


def parse_error_response(payload: Any) -> ErrorResponse:
    """Normalize a decoded JSON body (or None) into an ErrorResponse."""
    if not isinstance(payload, dict):
        return GeneralError()
    raw_errors = payload.get("errors")
    message = payload.get("message") if isinstance(payload.get("message"), str) else ""
    if isinstance(raw_errors, dict) and raw_errors:
        errors: dict[str, list[str]] = {}
        for name, messages in raw_errors.items():
            if isinstance(messages, str):
                messages = [messages]
            errors[str(name)] = [str(m) for m in messages]
        return FieldErrors(errors=errors, message=message)
    return GeneralError(message=message)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ClientError(Exception):
    """Base class for every failure ApiClient raises."""

    def __init__(self, error: ErrorResponse, status_code: int | None = None) -> None:
        self.error = error
        self.status_code = status_code
        super().__init__(getattr(error, "message", "") or self.__class__.__name__)


class ValidationError(ClientError):
    """422 -- the user corrects the input and resubmits."""


class AuthenticationError(ClientError):
    """401 -- bad credentials, or a missing/revoked/expired token."""


class AuthorizationError(ClientError):
    """403 -- authenticated but not allowed."""


class NetworkError(ClientError):
    """The request never produced an HTTP response."""

    def __init__(self, message: str = NETWORK_ERROR_MESSAGE) -> None:
        super().__init__(GeneralError(message))


class UnexpectedError(ClientError):
    """Any other non-2xx status (404, 429, 5xx...)."""


_STATUS_ERRORS: dict[int, type[ClientError]] = {
    401: AuthenticationError,
    403: AuthorizationError,
    422: ValidationError,
}


def error_for_status(status_code: int, payload: Any) -> ClientError:
    """Build the exception matching an HTTP error status and body."""
    cls = _STATUS_ERRORS.get(status_code, UnexpectedError)
    return cls(parse_error_response(payload), status_code=status_code)
