"""Runtime configuration for the authorization flow engine.

Settings are plain constructor arguments with defaults. ``from_env`` reads
them from the process environment, loading a ``.env`` file first.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

ENV_PREFIX = "MCP_AUTH_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class AuthSettings:
    """Engine-wide settings.

    Attributes:
        flow_state_ttl: Seconds a started flow stays completable. None keeps
            flows until they are completed or cleared.
        http_timeout: Timeout in seconds for token endpoint and registration
            requests.
        allow_localhost_endpoints: Accept plain HTTP endpoints on
            localhost/127.0.0.1 when publishing metadata or calling servers.
    """

    flow_state_ttl: float | None = None
    http_timeout: float = 30.0
    allow_localhost_endpoints: bool = True

    def __post_init__(self) -> None:
        if self.flow_state_ttl is not None and self.flow_state_ttl <= 0:
            raise ValueError("flow_state_ttl must be positive")
        if self.http_timeout <= 0:
            raise ValueError("http_timeout must be positive")

    @classmethod
    def from_env(cls, load_dotenv_file: bool = True) -> AuthSettings:
        """Build settings from ``MCP_AUTH_*`` environment variables.

        Unset variables keep their defaults.

        Raises:
            ValueError: If a variable is set to an unparseable value
        """
        if load_dotenv_file:
            load_dotenv()

        kwargs: dict[str, object] = {}

        ttl = os.getenv(f"{ENV_PREFIX}FLOW_STATE_TTL")
        if ttl is not None and ttl.strip():
            kwargs["flow_state_ttl"] = _parse_float("FLOW_STATE_TTL", ttl)

        timeout = os.getenv(f"{ENV_PREFIX}HTTP_TIMEOUT")
        if timeout is not None and timeout.strip():
            kwargs["http_timeout"] = _parse_float("HTTP_TIMEOUT", timeout)

        allow_localhost = os.getenv(f"{ENV_PREFIX}ALLOW_LOCALHOST")
        if allow_localhost is not None and allow_localhost.strip():
            kwargs["allow_localhost_endpoints"] = _parse_bool(
                "ALLOW_LOCALHOST", allow_localhost
            )

        return cls(**kwargs)


def _parse_float(name: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as e:
        raise ValueError(f"{ENV_PREFIX}{name} must be a number, got {value!r}") from e


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{ENV_PREFIX}{name} must be a boolean, got {value!r}")
