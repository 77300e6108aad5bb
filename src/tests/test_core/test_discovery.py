"""
Tests for DiscoveryResult and the OneShot completion cell
"""

import asyncio

import pytest

from core.discovery import DiscoveryResult, OneShot
from core.errors import BackendSpawnError, OneShotPendingError


class TestDiscoveryResult:
    def test_from_port_builds_endpoint(self):
        result = DiscoveryResult.from_port(54321)

        assert result.port == 54321
        assert result.endpoint_url == "http://localhost:54321/"

    def test_is_immutable(self):
        result = DiscoveryResult.from_port(1)

        with pytest.raises(AttributeError):
            result.port = 2

    def test_to_dict(self):
        assert DiscoveryResult.from_port(9999).to_dict() == {
            "port": 9999,
            "appUrl": "http://localhost:9999/",
        }


class TestOneShot:
    """Write-once contract"""

    @pytest.mark.asyncio
    async def test_first_set_wins(self):
        cell = OneShot()

        assert cell.set_result(1) is True
        assert cell.set_result(2) is False
        assert cell.result() == 1

    @pytest.mark.asyncio
    async def test_exception_after_result_is_ignored(self):
        cell = OneShot()
        cell.set_result("ok")

        assert cell.set_exception(RuntimeError("late")) is False
        assert cell.result() == "ok"
        assert cell.exception() is None

    @pytest.mark.asyncio
    async def test_result_before_set_raises(self):
        cell = OneShot()

        assert not cell.done()
        with pytest.raises(OneShotPendingError):
            cell.result()

    @pytest.mark.asyncio
    async def test_waiters_receive_value(self):
        cell = OneShot()

        waiters = [asyncio.create_task(cell.wait()) for _ in range(3)]
        await asyncio.sleep(0)
        cell.set_result(DiscoveryResult.from_port(9999))

        results = await asyncio.gather(*waiters)
        assert [r.port for r in results] == [9999, 9999, 9999]

    @pytest.mark.asyncio
    async def test_waiters_receive_exception(self):
        cell = OneShot()
        error = BackendSpawnError("/opt/backend", FileNotFoundError("nope"))

        cell.set_exception(error)

        with pytest.raises(BackendSpawnError, match="Error spawning /opt/backend binary"):
            await cell.wait()

    @pytest.mark.asyncio
    async def test_cancelling_a_waiter_keeps_cell_pending(self):
        cell = OneShot()
        waiter = asyncio.create_task(cell.wait())
        await asyncio.sleep(0)

        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        assert cell.set_result(5) is True
        assert await cell.wait() == 5

    def test_repr_pending_outside_loop(self):
        assert repr(OneShot()) == "OneShot(pending)"
