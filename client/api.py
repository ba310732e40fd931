"""
client/api.py -- HTTP client for the E-Store REST API.

ApiClient owns the transport (a requests.Session by default) and reads the
bearer token from a SessionContext. Protected calls attach the token; a 401
on a protected call tears the session down and navigates to login through
SessionContext.reset_to_login(), the single place that reaction lives.

Anything with requests.Session's request(method, url, json=, headers=,
timeout=) signature works as the transport, which is how the tests drive
the real app through FastAPI's TestClient.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from client.errors import AuthenticationError, GeneralError, NetworkError, UnexpectedError, error_for_status
from client.session import Session, SessionContext
from core.config import get_client_settings

logger = logging.getLogger("estore.client")


def _decode(resp) -> Any:
    """Return the JSON body, or None for empty / non-JSON bodies."""
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return None


class ApiClient:
    """Client for /api/v1. All methods raise client.errors.ClientError subclasses."""

    def __init__(
        self,
        context: SessionContext,
        base_url: str | None = None,
        http: Any = None,
        timeout: float | None = None,
    ) -> None:
        settings = get_client_settings()
        self.context = context
        self.base_url = (base_url if base_url is not None else settings.api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.timeout
        if http is None:
            http = requests.Session()
            http.max_redirects = 3
        self.http = http

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict | None = None,
        protected: bool = False,
        headers: dict[str, str] | None = None,
    ) -> Any:
        all_headers = {"Accept": "application/json"}
        if protected:
            all_headers.update(self.context.authorization_header())
        if headers:
            all_headers.update(headers)
        try:
            resp = self.http.request(
                method,
                f"{self.base_url}{path}",
                json=json,
                headers=all_headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise NetworkError() from e

        if 200 <= resp.status_code < 300:
            return _decode(resp)

        error = error_for_status(resp.status_code, _decode(resp))
        if protected and isinstance(error, AuthenticationError):
            logger.info("Session rejected by server on %s %s", method, path)
            self.context.reset_to_login()
        raise error

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def signup(
        self,
        name: str,
        email: str,
        password: str,
        password_confirmation: str,
        phone: str | None = None,
    ) -> dict:
        """Create an account. Does not sign in -- call login() next."""
        return self._request(
            "POST",
            "/signup",
            json={
                "name": name,
                "email": email,
                "phone": phone,
                "password": password,
                "password_confirmation": password_confirmation,
            },
        )

    def login(self, email: str, password: str) -> Session:
        """Exchange credentials for a token and persist {token, user}.

        Not a protected call: a 401 here means bad credentials, not an
        expired session, so it must not trigger reset_to_login().
        """
        data = self._request("POST", "/login", json={"email": email, "password": password})
        if not (
            isinstance(data, dict) and isinstance(data.get("token"), str) and isinstance(data.get("user"), dict)
        ):
            logger.warning("Login answered 2xx without a token and user; ignoring body")
            raise UnexpectedError(GeneralError())
        return self.context.begin(data["token"], data["user"])

    def logout(self) -> None:
        """Revoke the token server-side and always clear the local session."""
        try:
            if self.context.is_authenticated:
                self._request("POST", "/logout", headers=self.context.authorization_header())
        except AuthenticationError:
            logger.info("Server no longer recognized the token; clearing local session")
        finally:
            self.context.reset_to_login()

    def current_user(self) -> dict:
        """Fetch the profile behind the current token and refresh the stored copy."""
        user = self._request("GET", "/user", protected=True)
        if not isinstance(user, dict):
            raise UnexpectedError(GeneralError())
        session = self.context.current
        if session is not None:
            self.context.begin(session.token, user)
        return user

    def list_users(self) -> list[dict]:
        return self._request("GET", "/users", protected=True)

    # ------------------------------------------------------------------
    # Addresses
    # ------------------------------------------------------------------

    def list_addresses(self) -> list[dict]:
        return self._request("GET", "/addresses", protected=True)

    def create_address(self, **fields: Any) -> dict:
        return self._request("POST", "/addresses", json=fields, protected=True)

    def get_address(self, address_id: int) -> dict:
        return self._request("GET", f"/addresses/{address_id}", protected=True)

    def update_address(self, address_id: int, **fields: Any) -> dict:
        return self._request("PATCH", f"/addresses/{address_id}", json=fields, protected=True)

    def delete_address(self, address_id: int) -> None:
        self._request("DELETE", f"/addresses/{address_id}", protected=True)
