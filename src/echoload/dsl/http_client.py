"""Instrumented HTTP client with auto-timing and metric emission."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

import aiohttp

if TYPE_CHECKING:
    from collections.abc import Callable


def _noop_callback(metric: RequestMetric) -> None:
    """Default no-op metric callback."""


@dataclass
class RequestMetric:
    """Raw metric emitted for every HTTP request.

    Attributes:
        timestamp: Monotonic timestamp when the request started.
        name: Logical name for metric grouping (e.g., "GET item by id").
        method: HTTP method.
        url: Full request URL.
        status_code: HTTP response status code (0 if the request failed).
        latency_ms: Time from sending the request to reading the full body,
            in milliseconds.
        content_length: Response body size in bytes.
        error: Error message if the request failed, None otherwise.
    """

    timestamp: float
    name: str
    method: str
    url: str
    status_code: int
    latency_ms: float
    content_length: int
    error: str | None = None

    @property
    def failed(self) -> bool:
        """Whether the request counts towards ``http_req_failed``."""
        return self.error is not None or self.status_code == 0 or self.status_code >= 400


@dataclass(frozen=True)
class Response:
    """Fully read HTTP response handed to scenario checks.

    Attributes:
        url: The requested URL.
        status: Status code, or 0 when no response was received.
        body: Response body decoded as text.
        latency_ms: Request duration in milliseconds.
        error: Transport error description, None when a response arrived.
    """

    url: str
    status: int
    body: str
    latency_ms: float
    error: str | None = None


class HttpClient:
    """Instrumented async HTTP client wrapping ``aiohttp.ClientSession``.

    Every request is timed end to end, including the body read, and emits a
    ``RequestMetric`` through ``metric_callback``. Transport failures do not
    raise: they come back as a ``Response`` with ``status == 0`` and the
    error description set, so scenario checks simply fail.
    """

    def __init__(
        self,
        metric_callback: Callable[[RequestMetric], None] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float = 60.0,
    ) -> None:
        """Initialize the HTTP client.

        Args:
            metric_callback: Callback invoked with a ``RequestMetric``
                after each request. Defaults to a no-op.
            headers: Default headers applied to every request.
            timeout: Total request timeout in seconds.
        """
        self.headers: dict[str, str] = dict(headers or {})
        self._metric_callback = metric_callback or _noop_callback
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> HttpClient:
        """Open the underlying aiohttp session."""
        self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        """Close the underlying aiohttp session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def get(
        self,
        url: str,
        *,
        name: str | None = None,
        **kwargs: object,
    ) -> Response:
        """Send a GET request.

        Args:
            url: Absolute request URL.
            name: Logical name for metric grouping. Defaults to the URL.
            **kwargs: Additional keyword arguments passed to aiohttp.

        Returns:
            The fully read response.
        """
        return await self._request("GET", url, name=name, **kwargs)

    async def _request(
        self,
        method: str,
        url: str,
        *,
        name: str | None = None,
        **kwargs: object,
    ) -> Response:
        """Send an HTTP request with auto-timing and metric emission.

        Args:
            method: HTTP method.
            url: Absolute request URL.
            name: Logical name for metric grouping. Defaults to the URL.
            **kwargs: Additional keyword arguments passed to aiohttp.

        Returns:
            The fully read response, with ``status == 0`` if the request
            failed at the transport level.

        Raises:
            RuntimeError: If the client is used outside of an async context
                manager.
        """
        if self._session is None:
            msg = "HttpClient must be used as an async context manager"
            raise RuntimeError(msg)

        status_code = 0
        body = ""
        content_length = 0
        error: str | None = None

        start = time.monotonic()
        try:
            async with self._session.request(
                method,
                url,
                headers=dict(self.headers),
                **kwargs,  # type: ignore[arg-type]
            ) as resp:
                raw = await resp.read()
                status_code = resp.status
                content_length = len(raw)
                body = await resp.text(errors="replace")
        except (aiohttp.ClientError, TimeoutError, UnicodeError, LookupError) as exc:
            error = f"{type(exc).__name__}: {exc}"
        latency_ms = (time.monotonic() - start) * 1000

        self._metric_callback(
            RequestMetric(
                timestamp=start,
                name=name or url,
                method=method,
                url=url,
                status_code=status_code if error is None else 0,
                latency_ms=latency_ms,
                content_length=content_length,
                error=error,
            )
        )

        if error is not None:
            return Response(url=url, status=0, body="", latency_ms=latency_ms, error=error)
        return Response(url=url, status=status_code, body=body, latency_ms=latency_ms)
