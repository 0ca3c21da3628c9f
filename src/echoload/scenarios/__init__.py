"""Built-in scenarios."""

from __future__ import annotations

from echoload.scenarios.echo_id import PROFILES, build_scenario

__all__ = ["PROFILES", "build_scenario"]
