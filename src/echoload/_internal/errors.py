"""Custom exception hierarchy for echoload."""

from __future__ import annotations


class EchoLoadError(Exception):
    """Base exception for all echoload errors.

    All custom exceptions in echoload inherit from this class, making it
    easy to catch any echoload-specific error with a single except clause.
    """


class ScenarioError(EchoLoadError):
    """Raised when a scenario definition is invalid.

    Examples:
        - A scenario declares no ramp stages.
        - The iteration callable is not a coroutine function.
    """


class ConfigError(EchoLoadError):
    """Raised when configuration is invalid or missing.

    Examples:
        - ``MY_APP_URL`` is unset or empty.
        - A stage duration such as ``"15x"`` cannot be parsed.
        - A threshold expression is malformed or names an unknown metric.
    """


class EngineError(EchoLoadError):
    """Raised when the load test engine hits an unrecoverable error."""
