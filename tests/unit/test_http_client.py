"""Tests for the instrumented HTTP client and RequestMetric."""

from __future__ import annotations

import socket

import pytest

from echoload.dsl.http_client import HttpClient, RequestMetric, Response


def _closed_port() -> int:
    """Return a localhost port nothing is listening on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class TestRequestMetric:
    """Tests for the RequestMetric dataclass."""

    def test_fields(self):
        metric = RequestMetric(
            timestamp=1000.0,
            name="GET <id>",
            method="GET",
            url="http://localhost/items/7",
            status_code=200,
            latency_ms=42.5,
            content_length=1,
        )
        assert metric.error is None
        assert metric.failed is False

    def test_transport_error_counts_as_failed(self):
        metric = RequestMetric(
            timestamp=1000.0,
            name="GET <id>",
            method="GET",
            url="http://localhost/items/7",
            status_code=0,
            latency_ms=5.0,
            content_length=0,
            error="ClientConnectorError: refused",
        )
        assert metric.failed is True


class TestHttpClient:
    """Tests for the HttpClient class."""

    async def test_get_returns_body_and_emits_metric(
        self, echo_server: str, server_hits: list[str]
    ):
        """The body is read in full and one metric is emitted per request."""
        metrics: list[RequestMetric] = []

        async with HttpClient(metric_callback=metrics.append) as client:
            resp = await client.get(f"{echo_server}/items/1234", name="GET <id>")

        assert resp == Response(
            url=f"{echo_server}/items/1234",
            status=200,
            body="1234",
            latency_ms=resp.latency_ms,
        )
        assert resp.latency_ms > 0
        assert server_hits == ["/items/1234"]

        assert len(metrics) == 1
        assert metrics[0].name == "GET <id>"
        assert metrics[0].method == "GET"
        assert metrics[0].status_code == 200
        assert metrics[0].content_length == 4
        assert metrics[0].failed is False

    async def test_url_is_used_verbatim(self, echo_server: str, server_hits: list[str]):
        """The id is appended with no separator added."""
        async with HttpClient() as client:
            resp = await client.get(f"{echo_server}/items/" + "99")
        assert resp.body == "99"
        assert server_hits == ["/items/99"]

    async def test_name_defaults_to_url(self, echo_server: str):
        metrics: list[RequestMetric] = []
        async with HttpClient(metric_callback=metrics.append) as client:
            await client.get(f"{echo_server}/items/5")
        assert metrics[0].name == f"{echo_server}/items/5"

    async def test_error_status_is_not_raised(self, echo_server: str):
        """A 500 comes back as a normal response and a failed metric."""
        metrics: list[RequestMetric] = []
        async with HttpClient(metric_callback=metrics.append) as client:
            resp = await client.get(f"{echo_server}/error/8")

        assert resp.status == 500
        assert resp.body == "8"
        assert resp.error is None
        assert metrics[0].failed is True

    async def test_connection_refused_returns_status_zero(self):
        metrics: list[RequestMetric] = []
        url = f"http://127.0.0.1:{_closed_port()}/items/1"

        async with HttpClient(metric_callback=metrics.append, timeout=5.0) as client:
            resp = await client.get(url)

        assert resp.status == 0
        assert resp.body == ""
        assert resp.error is not None
        assert metrics[0].status_code == 0
        assert metrics[0].error == resp.error
        assert metrics[0].failed is True

    async def test_timeout_returns_status_zero(self, echo_server: str):
        async with HttpClient(timeout=0.01) as client:
            resp = await client.get(f"{echo_server}/slow/3")

        assert resp.status == 0
        assert resp.error is not None
        assert "Timeout" in resp.error

    async def test_default_headers_sent(self, echo_server: str):
        async with HttpClient(headers={"X-Test": "1"}) as client:
            assert client.headers == {"X-Test": "1"}
            resp = await client.get(f"{echo_server}/items/1")
        assert resp.status == 200

    async def test_requires_context_manager(self):
        client = HttpClient()
        with pytest.raises(RuntimeError, match="async context manager"):
            await client.get("http://127.0.0.1/items/1")
