"""Readiness gate tests."""

import asyncio

import pytest

from tirematch.core.readiness import GateFailed, ReadinessGate, ReadinessState


class TestReadinessGate:
    @pytest.mark.asyncio()
    async def test_waiters_get_the_value(self):
        release = asyncio.Event()

        async def factory():
            await release.wait()
            return "lm"

        gate: ReadinessGate[str] = ReadinessGate("test resource")
        gate.start(factory)
        assert gate.state == ReadinessState.IN_FLIGHT

        waiters = [asyncio.create_task(gate.wait(1.0)) for _ in range(3)]
        release.set()

        assert await asyncio.gather(*waiters) == ["lm", "lm", "lm"]
        assert gate.state == ReadinessState.READY

    @pytest.mark.asyncio()
    async def test_factory_runs_once(self):
        calls = []

        async def factory():
            calls.append(1)
            return 42

        gate: ReadinessGate[int] = ReadinessGate("test resource")
        gate.start(factory)
        gate.start(factory)
        assert await gate.wait(1.0) == 42
        assert calls == [1]

    @pytest.mark.asyncio()
    async def test_failure_is_reraised(self):
        async def factory():
            raise ValueError("bad api key")

        gate: ReadinessGate[int] = ReadinessGate("test resource")
        gate.start(factory)

        with pytest.raises(GateFailed, match="test resource failed") as exc_info:
            await gate.wait(1.0)
        assert isinstance(exc_info.value.__cause__, ValueError)
        assert str(exc_info.value.__cause__) == "bad api key"
        assert gate.state == ReadinessState.FAILED

    @pytest.mark.asyncio()
    async def test_repeated_waits_on_failed_gate_do_not_grow_traceback(self):
        async def factory():
            raise ValueError("bad api key")

        gate: ReadinessGate[int] = ReadinessGate("test resource")
        gate.start(factory)

        def frame_count(tb):
            count = 0
            while tb is not None:
                count += 1
                tb = tb.tb_next
            return count

        with pytest.raises(GateFailed) as first:
            await gate.wait(1.0)
        original = first.value.__cause__
        depth = frame_count(original.__traceback__)

        for _ in range(50):
            with pytest.raises(GateFailed) as exc_info:
                await gate.wait(1.0)
            assert exc_info.value is not first.value
            assert exc_info.value.__cause__ is original

        assert frame_count(original.__traceback__) == depth

    @pytest.mark.asyncio()
    async def test_timeout(self):
        async def factory():
            await asyncio.sleep(10)

        gate: ReadinessGate[None] = ReadinessGate("test resource")
        gate.start(factory)

        with pytest.raises(asyncio.TimeoutError):
            await gate.wait(0.01)
        assert gate.state == ReadinessState.IN_FLIGHT
        await gate.close()

    @pytest.mark.asyncio()
    async def test_wait_before_start(self):
        gate: ReadinessGate[int] = ReadinessGate("test resource")
        assert gate.state == ReadinessState.NOT_STARTED
        with pytest.raises(RuntimeError):
            await gate.wait(0.01)
