"""
Redis connection client for the Catalog Service.
"""

import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional

import redis.asyncio as redis

from shared.logging import get_logger
from shared.retry import BackoffPolicy


class ConnectionState(Enum):
    """Cache service connection states."""
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"
    ERRORED = "errored"     # close requested but did not finish in time


StateListener = Callable[[ConnectionState, int], None]


class RedisConnectionClient:
    """Keeps a Redis connection alive with reconnect backoff.

    Connection errors never reach callers: they drive the state machine
    instead, and ``state`` can be read at any time without blocking.

    ``sleep`` and ``redis_factory`` are injectable so the reconnect policy
    can be exercised without real delays or a live Redis.
    """

    def __init__(self,
                 redis_url: str,
                 policy: Optional[BackoffPolicy] = None,
                 health_check_interval: float = 5.0,
                 connect_timeout: float = 5.0,
                 close_timeout: float = 2.0,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
                 redis_factory: Optional[Callable[[str], Any]] = None):
        self.redis_url = redis_url
        self.policy = policy or BackoffPolicy()
        self.health_check_interval = health_check_interval
        self.connect_timeout = connect_timeout
        self.close_timeout = close_timeout
        self.logger = get_logger("catalog.cache.redis")
        self.redis: Optional[Any] = None

        self._sleep = sleep
        self._redis_factory = redis_factory
        self._state = ConnectionState.CONNECTING
        self._attempt = 0
        self._closing = False
        self._listeners: List[StateListener] = []
        self._task: Optional[asyncio.Task] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def attempt(self) -> int:
        """Consecutive failed connection attempts since the last success."""
        return self._attempt

    def add_listener(self, listener: StateListener) -> None:
        """Register a callback invoked once per state transition."""
        self._listeners.append(listener)

    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    def _create_redis(self):
        if self._redis_factory is not None:
            return self._redis_factory(self.redis_url)
        return redis.from_url(
            self.redis_url,
            socket_connect_timeout=self.connect_timeout,
            socket_timeout=self.connect_timeout,
        )

    def _transition(self, new_state: ConnectionState) -> None:
        if new_state is self._state and new_state is not ConnectionState.RECONNECTING:
            return

        self._state = new_state

        if new_state is ConnectionState.CONNECTED:
            self.logger.info("Redis connected")
        elif new_state is ConnectionState.RECONNECTING:
            self.logger.warning(f"Redis reconnecting... attempt {self._attempt}", attempt=self._attempt)
        elif new_state is ConnectionState.CLOSED:
            self.logger.info("Redis connection closed")
        elif new_state is ConnectionState.ERRORED:
            self.logger.error("Redis connection did not close cleanly")

        for listener in list(self._listeners):
            try:
                listener(new_state, self._attempt)
            except Exception as e:
                self.logger.error("Connection state listener failed", error=str(e))

    async def start(self) -> None:
        """Begin connecting in the background; returns immediately."""
        if self._task is not None:
            return

        self._task = asyncio.create_task(self._connection_loop())
        self.logger.info("Redis connection initiated", url=self.redis_url)

    async def _connection_loop(self) -> None:
        while not self._closing:
            try:
                # A malformed URL fails here and is retried like any transport error
                if self.redis is None:
                    self.redis = self._create_redis()
                await asyncio.wait_for(self.redis.ping(), timeout=self.connect_timeout)
            except Exception as e:
                self._attempt += 1
                self.logger.error("Redis error", error=str(e))
                self._transition(ConnectionState.RECONNECTING)
                await self._sleep(self.policy.compute_delay(self._attempt))
                continue

            if self._state is not ConnectionState.CONNECTED:
                self._attempt = 0
                self._transition(ConnectionState.CONNECTED)

            await self._sleep(self.health_check_interval)

    async def close(self) -> None:
        """Close the connection; bounded by ``close_timeout``. Idempotent."""
        if self._state in (ConnectionState.CLOSED, ConnectionState.ERRORED):
            return

        self._closing = True
        if self._task is not None:
            self._task.cancel()
            await asyncio.wait({self._task})

        if self.redis is None:
            self._transition(ConnectionState.CLOSED)
            return

        try:
            await asyncio.wait_for(self.redis.aclose(), timeout=self.close_timeout)
        except asyncio.TimeoutError:
            self.logger.error("Timed out closing Redis connection", timeout=self.close_timeout)
            self._transition(ConnectionState.ERRORED)
            return
        except Exception as e:
            self.logger.error("Error closing Redis connection", error=str(e))
            self._transition(ConnectionState.ERRORED)
            return

        self._transition(ConnectionState.CLOSED)
