"""
Configuration management utilities for x_transport.
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Mapping, Sequence

from dotenv import dotenv_values

from x_transport.exceptions import ConfigurationError

ENV_VAR_MAP = {
    "api_key": "X_API_KEY",
    "api_secret": "X_API_SECRET",
    "access_token": "X_ACCESS_TOKEN",
    "access_token_secret": "X_ACCESS_TOKEN_SECRET",
    "bearer_token": "X_BEARER_TOKEN",
}

SETTINGS_ENV_VAR_MAP = {
    "timeout_ms": "X_TIMEOUT_MS",
    "read_write_timeout_ms": "X_READ_WRITE_TIMEOUT_MS",
    "user_agent": "X_USER_AGENT",
}

DEFAULT_TIMEOUT_MS = 100_000
DEFAULT_READ_WRITE_TIMEOUT_MS = 300_000


@dataclass(slots=True)
class XCredentials:
    """Credential container supporting OAuth 1.0a and OAuth 2.0 tokens."""

    api_key: str | None = None
    api_secret: str | None = None
    access_token: str | None = None
    access_token_secret: str | None = None
    bearer_token: str | None = None

    def is_empty(self) -> bool:
        return all(value in (None, "") for value in asdict(self).values())

    def has_user_context(self) -> bool:
        return all(
            (self.api_key, self.api_secret, self.access_token, self.access_token_secret)
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, str | None]) -> "XCredentials":
        return cls(
            api_key=data.get("api_key"),
            api_secret=data.get("api_secret"),
            access_token=data.get("access_token"),
            access_token_secret=data.get("access_token_secret"),
            bearer_token=data.get("bearer_token"),
        )


@dataclass(slots=True)
class ExecutorSettings:
    """
    Transport tuning for an executor.

    ``timeout_ms`` bounds a whole non-streaming call (0 keeps the transport
    default). ``read_write_timeout_ms`` bounds each socket read of a
    non-streaming call and the connect phase of a stream. ``user_agent`` is
    prepended to the authorizer's own user agent.
    """

    timeout_ms: int = DEFAULT_TIMEOUT_MS
    read_write_timeout_ms: int = DEFAULT_READ_WRITE_TIMEOUT_MS
    user_agent: str | None = None

    def __post_init__(self) -> None:
        if self.timeout_ms < 0 or self.read_write_timeout_ms < 0:
            raise ConfigurationError("Timeouts must not be negative.")


class ConfigManager:
    """Loads credentials and executor settings from environment variables or a .env file."""

    def __init__(
        self,
        *,
        env: Mapping[str, str] | None = None,
        dotenv_path: Path | None = None,
    ) -> None:
        self._env = os.environ if env is None else env
        self._dotenv_path = dotenv_path or Path(".env")

    def load_credentials(
        self,
        priority: Sequence[str] = ("env", "dotenv"),
    ) -> XCredentials:
        """
        Load credentials according to the requested priority order.

        Raises:
            ConfigurationError: when no credentials are available.
        """

        for source in priority:
            values = self._values_from(source)
            credentials = XCredentials.from_mapping(
                {field: values.get(env_name) for field, env_name in ENV_VAR_MAP.items()}
            )
            if not credentials.is_empty():
                return credentials

        raise ConfigurationError("X credentials are not configured.")

    def load_settings(self, priority: Sequence[str] = ("env", "dotenv")) -> ExecutorSettings:
        """Load executor settings; unset values keep their defaults."""

        merged: dict[str, str] = {}
        for source in reversed(priority):
            values = self._values_from(source)
            for env_name in SETTINGS_ENV_VAR_MAP.values():
                if values.get(env_name):
                    merged[env_name] = values[env_name]

        return ExecutorSettings(
            timeout_ms=self._int_setting(merged, "timeout_ms", DEFAULT_TIMEOUT_MS),
            read_write_timeout_ms=self._int_setting(
                merged, "read_write_timeout_ms", DEFAULT_READ_WRITE_TIMEOUT_MS
            ),
            user_agent=merged.get(SETTINGS_ENV_VAR_MAP["user_agent"]),
        )

    def _values_from(self, source: str) -> Mapping[str, str | None]:
        if source == "env":
            return self._env
        if source == "dotenv":
            if not self._dotenv_path.exists():
                return {}
            return dotenv_values(self._dotenv_path)
        raise ValueError(f"Unknown configuration source '{source}'.")

    @staticmethod
    def _int_setting(values: Mapping[str, str], field: str, default: int) -> int:
        raw = values.get(SETTINGS_ENV_VAR_MAP[field])
        if raw is None:
            return default
        try:
            return int(raw)
        except ValueError as exc:
            raise ConfigurationError(
                f"{SETTINGS_ENV_VAR_MAP[field]} must be an integer, got {raw!r}."
            ) from exc
