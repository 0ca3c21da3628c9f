"""echoload: load-test an HTTP service that echoes requested ids."""

from __future__ import annotations

from echoload.dsl.checks import CheckResult, check
from echoload.dsl.http_client import HttpClient, RequestMetric, Response
from echoload.dsl.options import RunOptions, Stage, parse_duration
from echoload.dsl.scenario import IterationContext, Scenario
from echoload.engine.runner import LoadTestRunner
from echoload.engine.session import TestSession

__version__ = "0.1.0"

__all__ = [
    "CheckResult",
    "HttpClient",
    "IterationContext",
    "LoadTestRunner",
    "RequestMetric",
    "Response",
    "RunOptions",
    "Scenario",
    "Stage",
    "TestSession",
    "check",
    "parse_duration",
]
