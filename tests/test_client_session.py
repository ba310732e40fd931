"""
tests/test_client_session.py -- Unit tests for client/session.py.

Covers:
  - SessionStore save/load/clear, unreadable files, 0600 permissions
    (including the temp file before it is moved into place)
  - SessionContext restores a stored session on construction
  - begin/end notify listeners; end on a signed-out context is silent
  - unsubscribing is idempotent
  - reset_to_login clears storage and navigates
"""

from __future__ import annotations

import json
import os
import stat

import pytest

from client.session import Session, SessionContext, SessionStore

_USER = {"id": 1, "name": "Jane", "email": "jane@x.com"}


@pytest.fixture
def session_store(tmp_path) -> SessionStore:
    return SessionStore(tmp_path / "estore" / "session.json")


class TestSessionStore:
    def test_missing_file_loads_none(self, session_store: SessionStore) -> None:
        assert session_store.load() is None

    def test_save_then_load(self, session_store: SessionStore) -> None:
        session_store.save(Session(token="est_abc", user=_USER))
        assert session_store.load() == Session(token="est_abc", user=_USER)

    def test_file_is_private(self, session_store: SessionStore) -> None:
        session_store.save(Session(token="est_abc", user=_USER))
        mode = stat.S_IMODE(session_store.path.stat().st_mode)
        assert mode == 0o600, f"session file mode is {oct(mode)}"

    def test_temp_file_private_before_rename(self, session_store: SessionStore, monkeypatch) -> None:
        session_store.path.parent.mkdir(parents=True)
        stale = session_store.path.with_suffix(".json.tmp")
        stale.write_text("old", encoding="utf-8")
        os.chmod(stale, 0o644)
        modes: list[int] = []
        real_replace = os.replace

        def spy(src, dst):
            modes.append(stat.S_IMODE(os.stat(src).st_mode))
            real_replace(src, dst)

        monkeypatch.setattr(os, "replace", spy)
        old_umask = os.umask(0)
        try:
            session_store.save(Session(token="est_abc", user=_USER))
        finally:
            os.umask(old_umask)
        assert modes == [0o600], f"temp file modes {[oct(m) for m in modes]}"

    def test_corrupt_file_loads_none(self, session_store: SessionStore) -> None:
        session_store.path.parent.mkdir(parents=True)
        session_store.path.write_text("{not json", encoding="utf-8")
        assert session_store.load() is None

    def test_missing_token_loads_none(self, session_store: SessionStore) -> None:
        session_store.path.parent.mkdir(parents=True)
        session_store.path.write_text(json.dumps({"user": _USER}), encoding="utf-8")
        assert session_store.load() is None

    def test_clear_is_idempotent(self, session_store: SessionStore) -> None:
        session_store.save(Session(token="est_abc", user=_USER))
        session_store.clear()
        session_store.clear()
        assert not session_store.path.exists()


class TestSessionContext:
    def test_restores_stored_session(self, session_store: SessionStore) -> None:
        session_store.save(Session(token="est_abc", user=_USER))
        context = SessionContext(session_store)
        assert context.is_authenticated
        assert context.user == _USER
        assert context.authorization_header() == {"Authorization": "Bearer est_abc"}

    def test_signed_out_has_no_header(self, session_store: SessionStore) -> None:
        context = SessionContext(session_store)
        assert not context.is_authenticated
        assert context.user is None
        assert context.authorization_header() == {}

    def test_begin_persists_and_notifies(self, session_store: SessionStore) -> None:
        context = SessionContext(session_store)
        seen: list = []
        context.subscribe(seen.append)
        session = context.begin("est_abc", _USER)
        assert seen == [session]
        assert session_store.load() == session

    def test_end_notifies_once(self, session_store: SessionStore) -> None:
        context = SessionContext(session_store)
        context.begin("est_abc", _USER)
        seen: list = []
        context.subscribe(seen.append)
        context.end()
        context.end()
        assert seen == [None]
        assert session_store.load() is None

    def test_unsubscribe(self, session_store: SessionStore) -> None:
        context = SessionContext(session_store)
        seen: list = []
        unsubscribe = context.subscribe(seen.append)
        unsubscribe()
        context.begin("est_abc", _USER)
        assert seen == []

    def test_unsubscribe_twice_is_harmless(self, session_store: SessionStore) -> None:
        context = SessionContext(session_store)
        seen: list = []
        unsubscribe = context.subscribe(seen.append)
        unsubscribe()
        unsubscribe()
        context.begin("est_abc", _USER)
        assert seen == []

    def test_reset_to_login_clears_and_navigates(self, session_store: SessionStore) -> None:
        navigations: list[bool] = []
        context = SessionContext(session_store, navigate_to_login=lambda: navigations.append(True))
        context.begin("est_abc", _USER)
        context.reset_to_login()
        assert not context.is_authenticated
        assert session_store.load() is None
        assert navigations == [True]
