"""One-shot readiness gate for resources initialized in the background.

A gate is started once with an async factory. Any number of callers can
await it; they are released together when the factory finishes, with the
value or with the factory's exception.
"""

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, Generic, TypeVar

from .logging import log_error, logger

T = TypeVar("T")


class GateFailed(RuntimeError):
    """The gated resource could not be initialized."""


class ReadinessState(str, Enum):
    NOT_STARTED = "not_started"
    IN_FLIGHT = "in_flight"
    READY = "ready"
    FAILED = "failed"


class ReadinessGate(Generic[T]):
    """Owns the lifecycle of a single lazily-built resource."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._state = ReadinessState.NOT_STARTED
        self._done = asyncio.Event()
        self._value: T | None = None
        self._error: BaseException | None = None
        self._task: asyncio.Task[Any] | None = None

    @property
    def state(self) -> ReadinessState:
        return self._state

    def start(self, factory: Callable[[], Awaitable[T]]) -> None:
        """Begin initialization. Later calls are ignored."""
        if self._state != ReadinessState.NOT_STARTED:
            return
        self._state = ReadinessState.IN_FLIGHT
        logger.info(f"Initializing {self.name}...")
        self._task = asyncio.create_task(self._run(factory))

    async def _run(self, factory: Callable[[], Awaitable[T]]) -> None:
        try:
            self._value = await factory()
            self._state = ReadinessState.READY
            logger.info(f"{self.name} ready")
        except Exception as e:
            self._error = e
            self._state = ReadinessState.FAILED
            log_error(f"{self.name} failed to initialize", e)
        finally:
            self._done.set()

    async def wait(self, timeout: float | None = None) -> T:
        """Wait for the resource.

        Raises:
            RuntimeError: the gate was never started.
            TimeoutError: initialization did not finish within ``timeout``.
            GateFailed: the factory raised; the original error is the
                ``__cause__``. Each caller gets a new exception so the stored
                one never collects their tracebacks.
        """
        if self._state == ReadinessState.NOT_STARTED:
            raise RuntimeError(f"{self.name} was never started")
        await asyncio.wait_for(self._done.wait(), timeout)
        if self._error is not None:
            raise GateFailed(f"{self.name} failed to initialize") from self._error
        return self._value  # type: ignore[return-value]

    async def close(self) -> None:
        """Cancel an in-flight initialization."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
