"""Integration tests for the LoadTestRunner."""

from __future__ import annotations

import pytest

from echoload._internal.errors import EngineError
from echoload.dsl.options import RunOptions, Stage
from echoload.engine.runner import LoadTestRunner
from echoload.metrics.models import MetricSnapshot
from echoload.scenarios import build_scenario


@pytest.mark.timeout(30)
class TestLoadTestRunner:
    def test_run_short_stages(self, sync_echo_server: str, server_hits: list[str]):
        scenario = build_scenario(
            {"MY_APP_URL": f"{sync_echo_server}/items/"},
            options=RunOptions(
                stages=(Stage("1s", 3), Stage("1s", 3)),
                thresholds={"http_req_duration": ["p(99) < 3000"]},
            ),
        )
        runner = LoadTestRunner(scenario, tick_interval=0.5)

        result = runner.run()

        assert result.scenario_name == "echo-id"
        assert result.duration_seconds >= 2.0
        assert len(result.snapshots) >= 1
        assert result.final_summary is not None
        assert result.final_summary.total_requests == len(server_hits) > 0
        assert result.passed is True
        assert all(path.startswith("/items/") for path in server_hits)

    def test_on_snapshot_callback(self, sync_echo_server: str):
        callbacks: list[MetricSnapshot] = []
        scenario = build_scenario(
            {"MY_APP_URL": f"{sync_echo_server}/items/"},
            options=RunOptions(stages=(Stage("1s", 2),)),
        )

        result = LoadTestRunner(scenario, tick_interval=0.5, on_snapshot=callbacks.append).run()

        assert callbacks == result.snapshots
        assert len(callbacks) == 3

    def test_json_logs(self, sync_echo_server: str):
        scenario = build_scenario(
            {"MY_APP_URL": f"{sync_echo_server}/items/"},
            options=RunOptions(stages=(Stage("1s", 1),)),
        )
        result = LoadTestRunner(scenario, tick_interval=0.5, json_logs=True).run()
        assert result.final_summary is not None

    def test_session_failure_raises_engine_error(self, sync_echo_server: str):
        def _broken_callback(snapshot: MetricSnapshot) -> None:
            msg = "dashboard crashed"
            raise ValueError(msg)

        scenario = build_scenario(
            {"MY_APP_URL": f"{sync_echo_server}/items/"},
            options=RunOptions(stages=(Stage("1s", 1),)),
        )
        runner = LoadTestRunner(scenario, tick_interval=0.5, on_snapshot=_broken_callback)

        with pytest.raises(EngineError, match="Test session failed"):
            runner.run()


@pytest.mark.timeout(90)
def test_default_profile_end_to_end(sync_echo_server: str, server_hits: list[str]):
    """300 users over 15s against an echoing server: every check passes."""
    scenario = build_scenario({"MY_APP_URL": f"{sync_echo_server}/items/"})
    assert scenario.options.stages == (Stage("15s", 300),)

    result = LoadTestRunner(scenario).run()

    assert result.final_summary is not None
    assert result.final_summary.total_requests == len(server_hits)
    assert result.final_summary.total_requests > 300
    assert result.final_summary.error_rate == 0.0
    assert all(t.fails == 0 for t in result.checks.values())
    assert result.thresholds[0].threshold.source == "p(99) < 3000"
    assert result.passed is True
