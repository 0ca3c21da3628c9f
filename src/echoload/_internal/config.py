"""Configuration loading for echoload."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

from echoload._internal.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Mapping

APP_URL_ENV = "MY_APP_URL"
REQUEST_TIMEOUT_ENV = "ECHOLOAD_REQUEST_TIMEOUT"

# Matches the request timeout k6 applies when a script sets none.
DEFAULT_REQUEST_TIMEOUT = 60.0


@dataclass(frozen=True)
class ScenarioConfig:
    """Configuration read once at scenario start.

    Attributes:
        app_url: Base URL the request identifier is appended to. Used
            verbatim, so it must already end with the desired separator.
        request_timeout: Total per-request timeout in seconds.
    """

    app_url: str
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT


def load_config(environ: Mapping[str, str] | None = None) -> ScenarioConfig:
    """Load configuration from environment variables.

    Environment variables:
        MY_APP_URL: Target base URL (required, no default).
        ECHOLOAD_REQUEST_TIMEOUT: Request timeout in seconds (default: 60.0).

    Args:
        environ: Mapping to read from. Defaults to ``os.environ``.

    Returns:
        Populated ScenarioConfig instance.

    Raises:
        ConfigError: If ``MY_APP_URL`` is missing or empty, or if the
            timeout has an invalid value.
    """
    env = os.environ if environ is None else environ

    app_url = env.get(APP_URL_ENV, "")
    if not app_url.strip():
        msg = f"Please provide an app url: set the {APP_URL_ENV} environment variable"
        raise ConfigError(msg)

    timeout_str = env.get(REQUEST_TIMEOUT_ENV, str(DEFAULT_REQUEST_TIMEOUT))
    try:
        timeout = float(timeout_str)
    except ValueError:
        msg = f"{REQUEST_TIMEOUT_ENV} must be a number, got: {timeout_str!r}"
        raise ConfigError(msg) from None

    if not math.isfinite(timeout) or timeout <= 0:
        msg = f"{REQUEST_TIMEOUT_ENV} must be a positive finite number, got: {timeout_str!r}"
        raise ConfigError(msg)

    return ScenarioConfig(app_url=app_url, request_timeout=timeout)
