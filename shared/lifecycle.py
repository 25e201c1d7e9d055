"""
Process lifecycle management for catalog services.

The lifecycle manager owns startup and graceful shutdown of a service
process:

1. ``starting``: bind the HTTP listener and kick off the cache-service
   connection (without waiting for it).
2. ``serving``: run until SIGINT or SIGTERM.
3. ``draining``: stop accepting connections, let in-flight requests finish,
   then close the cache-service connection.
4. ``stopped`` (exit status 0) or ``forced_stopped`` (exit status 1) when the
   shutdown deadline elapses before the drain completes.
"""

import asyncio
import contextlib
import signal
import time
from enum import Enum
from typing import Any, Callable, Optional, Protocol

import uvicorn

from shared.errors import ServiceError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

EXIT_OK = 0
EXIT_FORCED = 1


class LifecycleState(Enum):
    """Lifecycle manager states."""
    STARTING = "starting"
    SERVING = "serving"
    DRAINING = "draining"
    STOPPED = "stopped"
    FORCED_STOPPED = "forced_stopped"


class Listener(Protocol):
    """HTTP listener driven by the lifecycle manager."""

    async def start(self) -> None:
        """Bind and begin accepting connections."""

    async def drain(self) -> None:
        """Stop accepting connections and wait for in-flight ones to finish."""


class ManagedResource(Protocol):
    """Background dependency started after the listener and closed after it drains."""

    async def start(self) -> None:
        ...

    async def close(self) -> None:
        ...


class ShutdownDeadline:
    """One-shot timer bounding the shutdown sequence."""

    def __init__(self, timeout: float, on_expire: Callable[[], None]):
        self.timeout = timeout
        self._on_expire = on_expire
        self._handle: Optional[asyncio.TimerHandle] = None
        self.fired = False

    def start(self) -> None:
        if self._handle is not None:
            return
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.timeout, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()

    def _fire(self) -> None:
        if self.fired:
            return
        self.fired = True
        self._on_expire()


class LifecycleManager:
    """Coordinates startup and deadline-bounded graceful shutdown."""

    def __init__(self,
                 listener: Listener,
                 cache_client: ManagedResource,
                 shutdown_timeout: float = 10.0,
                 metrics: Optional[MetricsCollector] = None,
                 terminate: Optional[Callable[[int], Any]] = None,
                 name: str = "lifecycle"):
        self.listener = listener
        self.cache_client = cache_client
        self.shutdown_timeout = shutdown_timeout
        self.metrics = metrics
        self.terminate = terminate
        self.logger = get_logger(f"{name}.lifecycle")

        self._state = LifecycleState.STARTING
        self._shutdown_requested = asyncio.Event()
        self._finished = asyncio.Event()
        self._drain_task: Optional[asyncio.Task] = None
        self._deadline: Optional[ShutdownDeadline] = None
        self._shutdown_started_at = 0.0
        self._signal_count = 0
        self.exit_code: Optional[int] = None

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def deadline(self) -> Optional[ShutdownDeadline]:
        return self._deadline

    def _transition(self, new_state: LifecycleState) -> None:
        old_state = self._state
        self._state = new_state
        self.logger.info(
            "Lifecycle state changed",
            from_state=old_state.value,
            to_state=new_state.value
        )

    async def run(self, install_signal_handlers: bool = True) -> int:
        """Start the service, serve until signalled and shut down.

        Returns the process exit status.
        """
        if install_signal_handlers:
            self._install_signal_handlers()

        try:
            await self.listener.start()
            try:
                await self.cache_client.start()
            except Exception as e:
                self.logger.error("Dependency failed to start", error=str(e), exc_info=e)
                await self.listener.drain()
                raise
            self._transition(LifecycleState.SERVING)

            await self._shutdown_requested.wait()
            self._begin_shutdown()
            await self._finished.wait()
        finally:
            if install_signal_handlers:
                self._remove_signal_handlers()

        return self.exit_code

    def request_shutdown(self, reason: str = "shutdown") -> None:
        """Ask the manager to shut down; repeated requests are logged only."""
        self._signal_count += 1
        if self._shutdown_requested.is_set():
            self.logger.warning(
                "Shutdown already in progress, ignoring",
                reason=reason,
                state=self._state.value,
                signal_count=self._signal_count
            )
            return

        self.logger.info(f"{reason} received. Shutting down gracefully...")
        self._shutdown_requested.set()

    def _begin_shutdown(self) -> None:
        self._transition(LifecycleState.DRAINING)
        self._shutdown_started_at = time.monotonic()

        self._deadline = ShutdownDeadline(self.shutdown_timeout, self._force_stop)
        self._deadline.start()

        self._drain_task = asyncio.create_task(self._drain())
        self._drain_task.add_done_callback(self._on_drain_done)

    async def _drain(self) -> None:
        # The listener must be fully drained before the cache connection goes away.
        await self.listener.drain()
        self.logger.info("HTTP listener drained")
        await self.cache_client.close()
        self.logger.info("Server closed.")

    def _on_drain_done(self, task: asyncio.Task) -> None:
        if self._state != LifecycleState.DRAINING:
            return

        if task.cancelled():
            return

        exc = task.exception()
        if exc is not None:
            self.logger.error("Shutdown sequence failed", error=str(exc), exc_info=exc)
            self._finish(LifecycleState.FORCED_STOPPED, EXIT_FORCED, "failed")
            return

        self._finish(LifecycleState.STOPPED, EXIT_OK, "graceful")

    def _force_stop(self) -> None:
        if self._state != LifecycleState.DRAINING:
            return

        self.logger.error(
            "Forcing shutdown...",
            timeout_seconds=self.shutdown_timeout
        )
        if self._drain_task is not None:
            self._drain_task.cancel()
        self._finish(LifecycleState.FORCED_STOPPED, EXIT_FORCED, "forced")

    def _finish(self, state: LifecycleState, exit_code: int, outcome: str) -> None:
        if self._deadline is not None:
            self._deadline.cancel()

        self._transition(state)
        self.exit_code = exit_code

        if self.metrics:
            self.metrics.record_shutdown(outcome, time.monotonic() - self._shutdown_started_at)

        self._finished.set()

        if exit_code != EXIT_OK and self.terminate is not None:
            self.terminate(exit_code)

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, self.request_shutdown, sig.name)
            except NotImplementedError:
                self.logger.warning(
                    "Signal handling not supported on this platform",
                    signal=sig.name
                )

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            with contextlib.suppress(NotImplementedError):
                loop.remove_signal_handler(sig)


class _ManagedServer(uvicorn.Server):
    """uvicorn server whose signals belong to the lifecycle manager."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self):
        yield


class UvicornListener:
    """Runs an ASGI app on uvicorn as a lifecycle-managed listener."""

    def __init__(self, app, host: str, port: int, log_level: str = "info",
                 startup_poll_interval: float = 0.05):
        self.config = uvicorn.Config(
            app,
            host=host,
            port=port,
            log_level=log_level,
            lifespan="off",
        )
        self.server = _ManagedServer(self.config)
        self.startup_poll_interval = startup_poll_interval
        self.logger = get_logger("shared.listener")
        self._task: Optional[asyncio.Task] = None

    @property
    def bound_port(self) -> Optional[int]:
        """Port actually bound; useful when configured with port 0."""
        for server in getattr(self.server, "servers", []):
            for sock in server.sockets:
                return sock.getsockname()[1]
        return None

    async def start(self) -> None:
        self._task = asyncio.create_task(self.server.serve())

        while not self.server.started:
            if self._task.done():
                raise ServiceError(
                    "HTTP listener failed to start",
                    details={"host": self.config.host, "port": self.config.port}
                )
            await asyncio.sleep(self.startup_poll_interval)

        self.logger.info(
            f"Server running on http://{self.config.host}:{self.bound_port}",
            host=self.config.host,
            port=self.bound_port
        )

    async def drain(self) -> None:
        if self._task is None:
            return

        # uvicorn closes its sockets, then waits for open connections and tasks.
        self.server.should_exit = True
        await self._task
