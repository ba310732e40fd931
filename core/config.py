"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for E-Store happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() or
get_client_settings() instead.

Two settings classes:
  Settings        -- the API server (secret key, database, token policy).
  ClientSettings  -- the Python client and CLI (API URL, session file).
                     Prefixed with ESTORE_ so a workstation running only the
                     CLI never needs a server SECRET_KEY.

Security notes:
  SECRET_KEY shorter than 32 chars is rejected outright. Token hashes are
  HMAC-SHA256 keyed with it -- a short key weakens every stored token.

  In production mode (DEBUG not set or false), a missing SECRET_KEY is a
  hard startup failure. A random key would silently invalidate every issued
  token on restart.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, addresses/, or client/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("estore.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'estore.db'}"


class Settings(BaseSettings):
    """API server settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    production-safety rules at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    # 0 means tokens live until logout. A positive value stamps expires_at
    # on every issued token.
    token_expire_seconds: int = 0
    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce SECRET_KEY policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Tokens will not survive restart -- acceptable for local dev.

        Production mode: refuse to start if SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("Using auto-generated SECRET_KEY. Issued tokens will not survive a restart.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self


class ClientSettings(BaseSettings):
    """Settings for client/ and the CLI.

    ESTORE_API_URL      -- base URL including the /api/v1 prefix.
    ESTORE_SESSION_FILE -- where the token and user profile are persisted.
    ESTORE_TIMEOUT      -- per-request timeout in seconds.
    """

    model_config = SettingsConfigDict(
        env_prefix="ESTORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_url: str = "http://localhost:8000/api/v1"
    session_file: Path = Path.home() / ".estore" / "session.json"
    timeout: float = 10.0


@lru_cache
def get_settings() -> Settings:
    """Return the server Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()


@lru_cache
def get_client_settings() -> ClientSettings:
    """Return the ClientSettings singleton."""
    return ClientSettings()
