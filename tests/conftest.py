"""Shared test fixtures for the echoload test suite."""

from __future__ import annotations

import asyncio
import logging
import socket
import threading
from typing import TYPE_CHECKING

import pytest
from aiohttp import web

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator


# =============================================================================
# Pytest configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-apply markers based on test directory structure."""
    for item in items:
        test_path = str(item.fspath)
        if "/unit/" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
        elif "/e2e/" in test_path:
            item.add_marker(pytest.mark.e2e)


# =============================================================================
# Network utilities
# =============================================================================


def _get_free_port() -> int:
    """Find an available port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


# =============================================================================
# Id-echo HTTP server
# =============================================================================

_HITS_KEY = web.AppKey("hits", list)


async def _items_handler(request: web.Request) -> web.Response:
    """Echo the requested id back as plain text."""
    request.app[_HITS_KEY].append(request.path)
    return web.Response(text=request.match_info["item_id"])


async def _wrong_handler(request: web.Request) -> web.Response:
    """Answer 200 with a body that never matches the id."""
    request.app[_HITS_KEY].append(request.path)
    return web.Response(text="not-the-id")


async def _error_handler(request: web.Request) -> web.Response:
    """Echo the id but with a 500 status."""
    request.app[_HITS_KEY].append(request.path)
    return web.Response(text=request.match_info["item_id"], status=500)


async def _slow_handler(request: web.Request) -> web.Response:
    """Echo the id after a short delay."""
    request.app[_HITS_KEY].append(request.path)
    await asyncio.sleep(0.05)
    return web.Response(text=request.match_info["item_id"])


async def _health_handler(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


def _create_echo_app(hits: list[str]) -> web.Application:
    """Build the id-echo app. Every id request is appended to *hits*."""
    app = web.Application()
    app[_HITS_KEY] = hits
    app.router.add_get("/items/{item_id}", _items_handler)
    app.router.add_get("/wrong/{item_id}", _wrong_handler)
    app.router.add_get("/error/{item_id}", _error_handler)
    app.router.add_get("/slow/{item_id}", _slow_handler)
    app.router.add_get("/health", _health_handler)
    return app


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def _reset_echoload_logging() -> Iterator[None]:
    """Drop handlers installed by a test so none outlives its captured stream."""
    yield
    logger = logging.getLogger("echoload")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def server_hits() -> list[str]:
    """Paths requested from the echo server during the test."""
    return []


@pytest.fixture
async def echo_server(server_hits: list[str]) -> AsyncIterator[str]:
    """Aiohttp id-echo server on the test's event loop.

    Returns the base URL (e.g., 'http://127.0.0.1:54321').
    """
    app = _create_echo_app(server_hits)
    port = _get_free_port()
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    yield f"http://127.0.0.1:{port}"
    await runner.cleanup()


@pytest.fixture
def sync_echo_server(server_hits: list[str]) -> Iterator[str]:
    """Id-echo server running in a background thread.

    For tests where the code under test owns the event loop (the blocking
    runner and the CLI).
    """
    port = _get_free_port()
    started = threading.Event()
    loop_holder: list[asyncio.AbstractEventLoop] = []

    def _thread_target() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        runner = web.AppRunner(_create_echo_app(server_hits))
        loop.run_until_complete(runner.setup())
        site = web.TCPSite(runner, "127.0.0.1", port)
        loop.run_until_complete(site.start())
        loop_holder.append(loop)
        started.set()
        loop.run_forever()
        loop.run_until_complete(runner.cleanup())
        loop.close()

    thread = threading.Thread(target=_thread_target, daemon=True)
    thread.start()
    started.wait(timeout=5.0)

    yield f"http://127.0.0.1:{port}"

    if loop_holder:
        loop_holder[0].call_soon_threadsafe(loop_holder[0].stop)
    thread.join(timeout=5.0)
