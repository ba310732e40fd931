"""
tests/test_tokens.py -- Unit tests for auth/tokens.py.

Covers:
  - bcrypt hash/verify, including malformed hashes
  - TokenIssuer issue / resolve / revoke lifecycle
  - revoke is not_found (False) for unknown, malformed, or repeated revokes
  - only the HMAC of a token is persisted
  - optional TTL: expired tokens stop resolving and are purged
  - authenticate_user treats unknown email and wrong password alike
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlalchemy import text

from auth.models import User
from auth.store import UserStore
from auth.tokens import (
    TokenIssuer,
    authenticate_user,
    generate_token,
    hash_password,
    hash_token,
    is_well_formed,
    verify_password,
)


def _make_user(store: UserStore, email: str = "jane@x.com", password: str = "password1", **kw) -> int:
    return store.create_user(User(name="Jane", email=email, hashed_password=hash_password(password), **kw))


class TestPasswords:
    def test_hash_is_not_plaintext_and_verifies(self) -> None:
        hashed = hash_password("password1")
        assert hashed != "password1"
        assert verify_password("password1", hashed)
        assert not verify_password("password2", hashed)

    def test_verify_against_malformed_hash_is_false(self) -> None:
        assert verify_password("password1", "not-a-bcrypt-hash") is False


class TestTokenIssuer:
    def test_issue_returns_fresh_well_formed_tokens(self, store: UserStore) -> None:
        uid = _make_user(store)
        issuer = TokenIssuer(store)
        tokens = {issuer.issue(uid) for _ in range(20)}
        assert len(tokens) == 20
        assert all(is_well_formed(t) for t in tokens)

    def test_resolve_returns_owner(self, store: UserStore) -> None:
        uid = _make_user(store)
        issuer = TokenIssuer(store)
        token = issuer.issue(uid)
        assert issuer.resolve(token) == uid

    def test_issue_revoke_resolve_is_invalid(self, store: UserStore) -> None:
        uid = _make_user(store)
        issuer = TokenIssuer(store)
        token = issuer.issue(uid)
        assert issuer.revoke(token) is True
        assert issuer.resolve(token) is None

    def test_revoke_twice_reports_not_found(self, store: UserStore) -> None:
        uid = _make_user(store)
        issuer = TokenIssuer(store)
        token = issuer.issue(uid)
        assert issuer.revoke(token) is True
        assert issuer.revoke(token) is False

    def test_revoke_unknown_and_malformed_do_not_raise(self, store: UserStore) -> None:
        issuer = TokenIssuer(store)
        assert issuer.revoke(generate_token()) is False
        assert issuer.revoke("garbage") is False
        assert issuer.revoke(None) is False

    def test_resolve_rejects_malformed_and_unknown(self, store: UserStore) -> None:
        issuer = TokenIssuer(store)
        assert issuer.resolve(None) is None
        assert issuer.resolve("") is None
        assert issuer.resolve("est_not-hex") is None
        assert issuer.resolve(generate_token()) is None

    def test_revoking_one_token_leaves_others_valid(self, store: UserStore) -> None:
        uid = _make_user(store)
        issuer = TokenIssuer(store)
        first, second = issuer.issue(uid), issuer.issue(uid)
        issuer.revoke(first)
        assert issuer.resolve(first) is None
        assert issuer.resolve(second) == uid

    def test_only_hash_is_persisted(self, store: UserStore) -> None:
        uid = _make_user(store)
        token = TokenIssuer(store).issue(uid)
        record = store.get_token_by_hash(hash_token(token))
        assert record is not None
        assert record.user_id == uid
        assert record.token_hash != token
        with store.engine.connect() as conn:
            raw_hits = conn.execute(
                text("SELECT COUNT(*) FROM personal_access_tokens WHERE token_hash = :t"), {"t": token}
            ).scalar()
        assert raw_hits == 0

    def test_resolve_stamps_last_used(self, store: UserStore) -> None:
        uid = _make_user(store)
        issuer = TokenIssuer(store)
        token = issuer.issue(uid)
        assert store.get_token_by_hash(hash_token(token)).last_used_at is None
        issuer.resolve(token)
        assert store.get_token_by_hash(hash_token(token)).last_used_at is not None

    def test_default_tokens_have_no_expiry(self, store: UserStore) -> None:
        uid = _make_user(store)
        token = TokenIssuer(store, expire_seconds=0).issue(uid)
        assert store.get_token_by_hash(hash_token(token)).expires_at is None


class TestTokenExpiry:
    def _expire_all(self, store: UserStore) -> None:
        past = (datetime.now(timezone.utc) - timedelta(minutes=5)).isoformat()
        with store.engine.connect() as conn:
            conn.execute(text("UPDATE personal_access_tokens SET expires_at = :ts"), {"ts": past})
            conn.commit()

    def test_ttl_sets_expires_at(self, store: UserStore) -> None:
        uid = _make_user(store)
        token = TokenIssuer(store, expire_seconds=3600).issue(uid)
        assert store.get_token_by_hash(hash_token(token)).expires_at is not None

    def test_expired_token_does_not_resolve(self, store: UserStore) -> None:
        uid = _make_user(store)
        issuer = TokenIssuer(store, expire_seconds=3600)
        token = issuer.issue(uid)
        self._expire_all(store)
        assert issuer.resolve(token) is None

    def test_purge_removes_only_expired(self, store: UserStore) -> None:
        uid = _make_user(store)
        TokenIssuer(store, expire_seconds=3600).issue(uid)
        self._expire_all(store)
        keeper = TokenIssuer(store, expire_seconds=0).issue(uid)
        assert store.delete_expired_tokens() == 1
        assert store.count_tokens(uid) == 1
        assert TokenIssuer(store).resolve(keeper) == uid


class TestAuthenticateUser:
    def test_correct_credentials(self, store: UserStore) -> None:
        uid = _make_user(store)
        user = authenticate_user(store, "jane@x.com", "password1")
        assert user is not None and user.id == uid

    def test_email_lookup_is_case_insensitive(self, store: UserStore) -> None:
        _make_user(store)
        assert authenticate_user(store, "  Jane@X.com ", "password1") is not None

    def test_wrong_password_and_unknown_email_both_none(self, store: UserStore) -> None:
        _make_user(store)
        assert authenticate_user(store, "jane@x.com", "wrong") is None
        assert authenticate_user(store, "nobody@x.com", "password1") is None

    def test_inactive_user_rejected(self, store: UserStore) -> None:
        _make_user(store, email="off@x.com", is_active=False)
        assert authenticate_user(store, "off@x.com", "password1") is None
