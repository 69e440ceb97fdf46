"""Environment-driven client configuration.

Architectural role:
    Centralizes API key, origin, version, timeout and stream read size lookup
    for `mistral_api.client.create_client`.

Resolution:
    `load_dotenv()` populates the process environment from `.env` at import
    time. `load_settings()` reads the environment once and returns an
    immutable `ClientSettings`; a constructed client never re-reads it.

Environment variables:
    - `MISTRAL_API_KEY` (fallback: key file `config/mistral.key`)
    - `MISTRAL_API_ORIGIN` (default `api.mistral.ai`)
    - `MISTRAL_API_VERSION` (default `v1`)
    - `MISTRAL_API_TIMEOUT` seconds (default 120)
    - `MISTRAL_STREAM_CHUNK_SIZE` bytes (default 1024)

Failure behavior:
    Missing key material is represented as `None`; `create_client` turns
    that into `ConfigurationError`. Non-numeric timeout/chunk values raise
    `ConfigurationError` here.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from mistral_api.core.errors import ConfigurationError
from mistral_api.transport.dispatcher import DEFAULT_CHUNK_SIZE, DEFAULT_TIMEOUT

load_dotenv()

DEFAULT_KEY_FILE = "config/mistral.key"


@dataclass(frozen=True)
class ClientSettings:
    """Snapshot of the environment taken at client construction."""

    api_key: Optional[str]
    origin: Optional[str] = None
    api_version: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __repr__(self) -> str:
        masked = "***" if self.api_key else None
        return (
            f"ClientSettings(api_key={masked!r}, origin={self.origin!r}, "
            f"api_version={self.api_version!r}, timeout={self.timeout!r}, "
            f"chunk_size={self.chunk_size!r})"
        )


def load_key(path):
    """Load API key from environment override or key file.

    Resolution order:
        1. Environment variable inferred from file stem (for example
           `config/mistral.key` -> `MISTRAL_API_KEY`).
        2. Raw file contents at `path`.

    Edge cases:
        - `None` path returns `None`.
        - Missing file returns `None`.
    """
    if not path:
        return None
    key_name = os.path.splitext(os.path.basename(path))[0].upper() + "_API_KEY"
    env_value = os.getenv(key_name)
    if env_value:
        return env_value
    if not os.path.exists(path):
        return None
    with open(path, "r") as f:
        return f.read().strip() or None


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be numeric, got {raw!r}") from None
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    return value


def load_settings(key_file: str = DEFAULT_KEY_FILE) -> ClientSettings:
    """Read client settings from the current environment."""
    return ClientSettings(
        api_key=load_key(key_file),
        origin=os.getenv("MISTRAL_API_ORIGIN") or None,
        api_version=os.getenv("MISTRAL_API_VERSION") or None,
        timeout=_env_number("MISTRAL_API_TIMEOUT", DEFAULT_TIMEOUT, float),
        chunk_size=_env_number("MISTRAL_STREAM_CHUNK_SIZE", DEFAULT_CHUNK_SIZE, int),
    )
