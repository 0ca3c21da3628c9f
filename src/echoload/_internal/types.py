"""Shared type aliases for echoload."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from echoload.dsl.http_client import Response

# Named boolean assertion over a response.
CheckPredicate = Callable[["Response"], Any]

# Metric name -> threshold expressions, e.g. {"http_req_duration": ["p(99) < 3000"]}.
Thresholds = Mapping[str, Sequence[str]]
