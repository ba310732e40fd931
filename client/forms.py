"""
client/forms.py -- Login and signup form controllers.

A form holds its input fields and a FormState (per-field messages, a
general banner, a submitting flag). submit() is the only entry point:

  - While a submission is in flight, further submit() calls return None
    immediately. The in-flight guard is a non-blocking lock, so it also
    holds when submit() is called from several threads.
  - Every ClientError is caught here and turned into display state; no
    API failure escapes to the caller.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from client.api import ApiClient
from client.errors import ClientError, ErrorResponse, FieldErrors, GeneralError, NetworkError
from client.session import Session

logger = logging.getLogger("estore.client.forms")


@dataclass
class FormState:
    field_errors: dict[str, list[str]] = field(default_factory=dict)
    general_error: str | None = None
    submitting: bool = False

    def error_for(self, name: str) -> str | None:
        """First message for a field, which is what the input renders."""
        messages = self.field_errors.get(name)
        return messages[0] if messages else None

    @property
    def has_errors(self) -> bool:
        return bool(self.field_errors) or self.general_error is not None


class _AuthForm:
    fallback_message = "An unexpected error occurred."

    def __init__(self, client: ApiClient, on_success: Callable[[Any], None] | None = None) -> None:
        self.client = client
        self.on_success = on_success or (lambda result: None)
        self.state = FormState()
        self._in_flight = threading.Lock()

    def submit(self) -> Any:
        """Run one submission. Returns the result, or None on failure or when suppressed."""
        if not self._in_flight.acquire(blocking=False):
            logger.debug("%s submit suppressed: a submission is already in flight", type(self).__name__)
            return None
        self.state = FormState(submitting=True)
        try:
            local = self.validate()
            if local:
                self.state.field_errors = local
                return None
            result = self._send()
        except NetworkError as exc:
            # Network failures keep their own message, never the form fallback.
            self.state.general_error = exc.error.message
            return None
        except ClientError as exc:
            self._show(exc.error)
            return None
        finally:
            self.state.submitting = False
            self._in_flight.release()
        self.on_success(result)
        return result

    def validate(self) -> dict[str, list[str]]:
        """Client-side checks run before any request. Empty dict = valid."""
        return {}

    def _send(self) -> Any:
        raise NotImplementedError

    def _show(self, error: ErrorResponse) -> None:
        if isinstance(error, FieldErrors):
            self.state.field_errors = dict(error.errors)
        elif isinstance(error, GeneralError):
            self.state.general_error = error.message or self.fallback_message
        else:
            raise TypeError(f"Unhandled error response: {error!r}")


class LoginForm(_AuthForm):
    """Email/password login. on_success receives the new Session (go to the dashboard)."""

    fallback_message = "Invalid credentials. Please try again."

    def __init__(self, client: ApiClient, on_success: Callable[[Session], None] | None = None) -> None:
        super().__init__(client, on_success)
        self.email = ""
        self.password = ""
        self.remember = False

    def _send(self) -> Session:
        return self.client.login(self.email, self.password)


class SignupForm(_AuthForm):
    """Account creation. on_success receives the created user (switch to the login view).

    Terms acceptance is checked only here; the API does not receive it.
    """

    fallback_message = "Registration failed due to server error."

    def __init__(self, client: ApiClient, on_success: Callable[[dict], None] | None = None) -> None:
        super().__init__(client, on_success)
        self.reset()

    def reset(self) -> None:
        self.name = ""
        self.email = ""
        self.phone = ""
        self.password = ""
        self.password_confirmation = ""
        self.terms = False

    def validate(self) -> dict[str, list[str]]:
        if self.password != self.password_confirmation:
            return {"password_confirmation": ["Passwords do not match"]}
        if not self.terms:
            return {"terms": ["You must agree to the terms and conditions"]}
        return {}

    def _send(self) -> dict:
        user = self.client.signup(
            name=self.name,
            email=self.email,
            password=self.password,
            password_confirmation=self.password_confirmation,
            phone=self.phone or None,
        )
        self.reset()
        return user
