"""
Integration tests for graceful shutdown against a real uvicorn listener.
"""

import asyncio
import httpx
import pytest
from fastapi import FastAPI

from shared.lifecycle import LifecycleManager, LifecycleState, UvicornListener


class RecordingCache:
    """Cache client stand-in that records when close is requested."""

    def __init__(self, events):
        self.events = events

    async def start(self):
        self.events.append("cache.start")

    async def close(self):
        self.events.append("cache.close")


async def wait_for_state(manager, state, timeout=5.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while manager.state is not state:
        if loop.time() > deadline:
            raise AssertionError(f"manager never reached {state.value}")
        await asyncio.sleep(0.01)


class TestShutdownFlow:
    """End-to-end shutdown ordering over HTTP."""

    @pytest.fixture
    def events(self):
        return []

    @pytest.fixture
    def slow_app(self, events):
        """App whose /slow request blocks until released."""
        app = FastAPI()
        app.state.entered = asyncio.Event()
        app.state.release = asyncio.Event()

        @app.get("/slow")
        async def slow():
            app.state.entered.set()
            await app.state.release.wait()
            events.append("request.completed")
            return {"success": True}

        return app

    @pytest.mark.asyncio
    async def test_in_flight_request_finishes_before_cache_close(self, events, slow_app):
        """Test uvicorn drains the in-flight request before the cache is closed."""
        listener = UvicornListener(slow_app, host="127.0.0.1", port=0, log_level="warning")
        manager = LifecycleManager(listener, RecordingCache(events), shutdown_timeout=5.0)

        run_task = asyncio.create_task(manager.run(install_signal_handlers=False))
        await wait_for_state(manager, LifecycleState.SERVING)

        async with httpx.AsyncClient(base_url=f"http://127.0.0.1:{listener.bound_port}") as client:
            request_task = asyncio.create_task(client.get("/slow"))
            await asyncio.wait_for(slow_app.state.entered.wait(), 5)

            manager.request_shutdown("SIGTERM")
            await wait_for_state(manager, LifecycleState.DRAINING)
            await asyncio.sleep(0.3)
            assert "cache.close" not in events

            slow_app.state.release.set()
            response = await asyncio.wait_for(request_task, 5)

        assert response.status_code == 200
        assert await asyncio.wait_for(run_task, 5) == 0
        assert manager.state is LifecycleState.STOPPED
        assert events.index("request.completed") < events.index("cache.close")
