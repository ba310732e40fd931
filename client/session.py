"""
client/session.py -- Durable client session storage and the session context.

SessionStore is the local-storage analogue: one JSON file holding "token"
and "user". It survives process restarts the way browser local storage
survives page reloads.

SessionContext is the only object that mutates the stored session:
  begin()  -- after a successful login
  end()    -- on logout or when the server rejects the token
Views and the CLI read from it and subscribe to changes; they never touch
the file directly.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger("estore.client.session")

Listener = Callable[["Session | None"], None]


@dataclass(frozen=True)
class Session:
    token: str
    user: dict[str, Any]


class SessionStore:
    """Reads and writes the session file.

    The file is written to a sibling temp file and moved into place, so a
    crash mid-write leaves either the old session or the new one. Permissions
    are 0600 because the file holds a live bearer token.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> Session | None:
        """Return the stored session, or None if absent or unreadable."""
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, e)
            return None
        token = data.get("token") if isinstance(data, dict) else None
        user = data.get("user") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token or not isinstance(user, dict):
            return None
        return Session(token=token, user=user)

    def save(self, session: Session) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        # A leftover temp file could carry wider permissions; O_CREAT only
        # applies the mode to a new file.
        tmp.unlink(missing_ok=True)
        fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump({"token": session.token, "user": session.user}, fh)
        os.replace(tmp, self.path)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class SessionContext:
    """Single mutation point for the client session.

    navigate_to_login is the "go to the login view" action. It runs when the
    session is torn down because of a 401 or an explicit logout.

    Usage:
        context = SessionContext(SessionStore(path), navigate_to_login=show_login)
        context.begin(token, user)
        context.authorization_header()   # {"Authorization": "Bearer ..."}
        context.reset_to_login()         # clear + navigate
    """

    def __init__(self, store: SessionStore, navigate_to_login: Callable[[], None] | None = None) -> None:
        self._store = store
        self._lock = threading.Lock()
        self._session = store.load()
        self._listeners: list[Listener] = []
        self._navigate_to_login = navigate_to_login or (lambda: None)

    @property
    def current(self) -> Session | None:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    @property
    def user(self) -> dict[str, Any] | None:
        return self._session.user if self._session else None

    def authorization_header(self) -> dict[str, str]:
        """Bearer header for the current token, or {} when signed out."""
        session = self._session
        if session is None:
            return {}
        return {"Authorization": f"Bearer {session.token}"}

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def begin(self, token: str, user: dict[str, Any]) -> Session:
        """Persist a new session (or refresh the user of the current one)."""
        session = Session(token=token, user=dict(user))
        with self._lock:
            self._store.save(session)
            self._session = session
        self._notify(session)
        return session

    def end(self) -> None:
        """Forget the session locally. Safe to call when already signed out."""
        with self._lock:
            had_session = self._session is not None
            self._store.clear()
            self._session = None
        if had_session:
            self._notify(None)

    def reset_to_login(self) -> None:
        """Clear the session and send the user to the login view."""
        self.end()
        self._navigate_to_login()

    def _notify(self, session: Session | None) -> None:
        for listener in list(self._listeners):
            listener(session)
