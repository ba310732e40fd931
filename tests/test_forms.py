"""
tests/test_forms.py -- Unit tests for client/forms.py.

The ApiClient is a MagicMock, so these tests only exercise the form logic.

Covers:
  - field errors and banners land in FormState, never as exceptions
  - empty general messages fall back to the form's default
  - signup checks confirmation and terms before sending anything
  - a second submit while one is in flight is suppressed
  - on_success runs with the result
"""

from __future__ import annotations

import threading
from unittest.mock import MagicMock

from client.errors import (
    NETWORK_ERROR_MESSAGE,
    AuthenticationError,
    FieldErrors,
    GeneralError,
    NetworkError,
    UnexpectedError,
    ValidationError,
)
from client.forms import FormState, LoginForm, SignupForm
from client.session import Session


def _filled_signup(client) -> SignupForm:
    form = SignupForm(client)
    form.name = "Jane"
    form.email = "jane@x.com"
    form.phone = ""
    form.password = "password1"
    form.password_confirmation = "password1"
    form.terms = True
    return form


class TestFormState:
    def test_error_for_returns_first_message(self) -> None:
        state = FormState(field_errors={"email": ["first", "second"]})
        assert state.error_for("email") == "first"
        assert state.error_for("name") is None
        assert state.has_errors

    def test_empty_state(self) -> None:
        assert not FormState().has_errors


class TestLoginForm:
    def test_success_calls_back_with_session(self) -> None:
        session = Session(token="est_x", user={"id": 1})
        client = MagicMock()
        client.login.return_value = session
        received: list = []
        form = LoginForm(client, on_success=received.append)
        form.email, form.password = "jane@x.com", "password1"

        assert form.submit() == session
        assert received == [session]
        client.login.assert_called_once_with("jane@x.com", "password1")
        assert not form.state.has_errors
        assert not form.state.submitting

    def test_invalid_credentials_banner(self) -> None:
        client = MagicMock()
        client.login.side_effect = AuthenticationError(GeneralError("Invalid credentials."), 401)
        form = LoginForm(client)
        assert form.submit() is None
        assert form.state.general_error == "Invalid credentials."
        assert form.state.field_errors == {}

    def test_blank_message_uses_fallback(self) -> None:
        client = MagicMock()
        client.login.side_effect = UnexpectedError(GeneralError(""), 500)
        form = LoginForm(client)
        form.submit()
        assert form.state.general_error == "Invalid credentials. Please try again."

    def test_field_errors_shown_per_field(self) -> None:
        client = MagicMock()
        client.login.side_effect = ValidationError(FieldErrors({"email": ["The email field is required."]}), 422)
        form = LoginForm(client)
        form.submit()
        assert form.state.error_for("email") == "The email field is required."
        assert form.state.general_error is None

    def test_network_error_message(self) -> None:
        client = MagicMock()
        client.login.side_effect = NetworkError()
        form = LoginForm(client)
        form.submit()
        assert form.state.general_error == NETWORK_ERROR_MESSAGE

    def test_previous_errors_cleared_on_resubmit(self) -> None:
        client = MagicMock()
        client.login.side_effect = [
            AuthenticationError(GeneralError("Invalid credentials."), 401),
            Session(token="est_x", user={}),
        ]
        form = LoginForm(client)
        form.submit()
        form.submit()
        assert not form.state.has_errors


class TestSignupForm:
    def test_mismatch_blocks_request(self) -> None:
        client = MagicMock()
        form = _filled_signup(client)
        form.password_confirmation = "different1"
        assert form.submit() is None
        assert form.state.error_for("password_confirmation") == "Passwords do not match"
        client.signup.assert_not_called()

    def test_terms_required(self) -> None:
        client = MagicMock()
        form = _filled_signup(client)
        form.terms = False
        assert form.submit() is None
        assert form.state.error_for("terms") == "You must agree to the terms and conditions"
        client.signup.assert_not_called()

    def test_success_resets_fields(self) -> None:
        client = MagicMock()
        client.signup.return_value = {"id": 7, "email": "jane@x.com"}
        received: list = []
        form = _filled_signup(client)
        form.on_success = received.append

        assert form.submit() == {"id": 7, "email": "jane@x.com"}
        assert received == [{"id": 7, "email": "jane@x.com"}]
        client.signup.assert_called_once_with(
            name="Jane",
            email="jane@x.com",
            password="password1",
            password_confirmation="password1",
            phone=None,
        )
        assert form.email == "" and form.password == "" and form.terms is False

    def test_server_field_errors_keep_input(self) -> None:
        client = MagicMock()
        client.signup.side_effect = ValidationError(
            FieldErrors({"email": ["The email has already been taken."]}), 422
        )
        form = _filled_signup(client)
        form.submit()
        assert form.state.error_for("email") == "The email has already been taken."
        assert form.email == "jane@x.com"

    def test_server_error_fallback(self) -> None:
        client = MagicMock()
        client.signup.side_effect = UnexpectedError(GeneralError(""), 500)
        form = _filled_signup(client)
        form.submit()
        assert form.state.general_error == "Registration failed due to server error."


class TestInFlightGuard:
    def test_second_submit_is_suppressed(self) -> None:
        started = threading.Event()
        release = threading.Event()
        session = Session(token="est_x", user={})

        def slow_login(email: str, password: str) -> Session:
            started.set()
            release.wait(timeout=5)
            return session

        client = MagicMock()
        client.login.side_effect = slow_login
        form = LoginForm(client)
        results: list = []
        worker = threading.Thread(target=lambda: results.append(form.submit()))
        worker.start()
        assert started.wait(timeout=5)

        assert form.state.submitting
        assert form.submit() is None
        release.set()
        worker.join(timeout=5)

        assert results == [session]
        assert client.login.call_count == 1
        assert not form.state.submitting
