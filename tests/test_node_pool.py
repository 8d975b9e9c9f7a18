from __future__ import annotations

import asyncio
import time
from unittest.mock import AsyncMock, patch

import httpx
import pytest
import respx

from tzmeta.core.errors import NoNodeKnowsContract
from tzmeta.models.nodes.endpoint import NodeEndpoint, NonResponsive, Ready, Uninitialized
from tzmeta.workers.node_pool import TIMEOUT_REASON, NodePool

_HEAD = "chains/main/blocks/head/metadata"
_LEVEL_JSON = '{"level": {"level": 1234}}'


def _storage_url(prefix: str, address: str) -> str:
    return f"{prefix}/chains/main/blocks/head/context/contracts/{address}/storage"


class TestDefaults:
    def test_from_settings(self):
        pool = NodePool([])
        assert pool.interval == 10.0
        assert pool.growth == 1.4
        assert pool.max_interval == 90.0
        assert pool.probe_timeout == 5.0
        assert not pool.loop_started

    def test_nodes_start_uninitialized(self, pool):
        for node, snapshot in pool.snapshot():
            assert isinstance(snapshot.status, Uninitialized)
            assert snapshot.checked_at.timestamp() == 0


class TestProbe:
    @respx.mock
    async def test_ready_on_200(self, pool, nodes):
        respx.get(f"https://node1.example/{_HEAD}").mock(
            return_value=httpx.Response(200, text=_LEVEL_JSON)
        )
        assert await pool.probe(nodes[0]) == Ready(metadata_json=_LEVEL_JSON)

    @respx.mock
    async def test_non_responsive_on_other_status(self, pool, nodes):
        respx.get(f"https://node1.example/{_HEAD}").mock(return_value=httpx.Response(503))
        assert await pool.probe(nodes[0]) == NonResponsive(reason="Return-code: 503")

    @respx.mock
    async def test_non_responsive_on_error(self, pool, nodes):
        respx.get(f"https://node1.example/{_HEAD}").mock(
            side_effect=httpx.ConnectError("connection refused")
        )
        status = await pool.probe(nodes[0])
        assert isinstance(status, NonResponsive)
        assert status.reason.startswith("Error: ")
        assert "connection refused" in status.reason

    async def test_timeout_does_not_block(self, nodes):
        async def hanging(node):
            await asyncio.sleep(10)

        pool = NodePool(nodes, probe_timeout=0.05)
        with patch("tzmeta.workers.node_pool.ping", side_effect=hanging):
            started = time.monotonic()
            status = await pool.probe(nodes[0])
            elapsed = time.monotonic() - started
        assert status == NonResponsive(reason=TIMEOUT_REASON)
        assert "Time-out" in status.reason
        assert elapsed < 1.0
        await pool.stop()


class TestSweep:
    @respx.mock
    async def test_records_every_node_in_order(self, pool, nodes):
        respx.get(f"https://node1.example/{_HEAD}").mock(
            return_value=httpx.Response(200, text=_LEVEL_JSON)
        )
        respx.get(f"https://node2.example/{_HEAD}").mock(
            side_effect=httpx.ConnectError("down")
        )
        respx.get(f"https://node3.example/{_HEAD}").mock(return_value=httpx.Response(500))

        await pool.sweep()

        statuses = [snapshot.status for _, snapshot in pool.snapshot()]
        assert isinstance(statuses[0], Ready)
        assert isinstance(statuses[1], NonResponsive)
        assert statuses[2] == NonResponsive(reason="Return-code: 500")
        assert all(snapshot.checked_at.timestamp() > 0 for _, snapshot in pool.snapshot())

    async def test_every_probe_replaces_the_status(self, nodes):
        node = nodes[0]
        pool = NodePool([node])
        outcomes = [
            Ready(metadata_json="{}"),
            NonResponsive(reason="Return-code: 502"),
            Ready(metadata_json=_LEVEL_JSON),
        ]
        with patch("tzmeta.workers.node_pool.ping", AsyncMock(side_effect=outcomes)):
            for expected in outcomes:
                await pool.sweep()
                assert node.status.status == expected

    async def test_snapshot_is_immutable(self, nodes):
        snapshot = nodes[0].status
        with pytest.raises(Exception):
            snapshot.status = Ready(metadata_json="{}")


class TestInterval:
    @pytest.mark.parametrize("sweeps", [1, 2, 5])
    async def test_grows_geometrically(self, sweeps):
        pool = NodePool([], interval=0.001)
        for _ in range(sweeps):
            await pool.sweep()
            await pool._pause()
        assert pool.interval == pytest.approx(0.001 * 1.4**sweeps)

    async def test_is_capped(self):
        pool = NodePool([], interval=0.01, max_interval=0.02)
        for _ in range(3):
            await pool._pause()
        assert pool.interval == 0.02

    async def test_wake_up_cuts_sleep_but_keeps_growth(self):
        pool = NodePool([], interval=30.0)
        pool.wake_up()
        await asyncio.wait_for(pool._pause(), timeout=1.0)
        assert pool.interval == pytest.approx(42.0)

    async def test_wake_up_while_sleeping(self):
        pool = NodePool([], interval=30.0)
        pause = asyncio.create_task(pool._pause())
        await asyncio.sleep(0.01)
        assert not pause.done()
        pool.wake_up()
        await asyncio.wait_for(pause, timeout=1.0)


class TestLoop:
    async def test_ensure_started_is_idempotent(self):
        pool = NodePool([], interval=0.01)
        pool.ensure_started()
        task = pool._task
        pool.ensure_started()
        assert pool._task is task
        assert pool.loop_started
        await asyncio.sleep(0.05)
        assert pool.interval > 0.01
        await pool.stop()
        assert not pool.loop_started

    async def test_loop_survives_failing_nodes(self, nodes):
        pool = NodePool(nodes[:1], interval=0.01)
        with patch(
            "tzmeta.workers.node_pool.ping",
            AsyncMock(side_effect=RuntimeError("boom")),
        ) as mock_ping:
            pool.ensure_started()
            await asyncio.sleep(0.1)
            await pool.stop()
        assert mock_ping.call_count >= 2
        assert nodes[0].status.status == NonResponsive(reason="Error: RuntimeError('boom')")


class TestFindNodeWithContract:
    async def test_returns_third_after_trying_first_two(self, pool, nodes):
        address = "KT1Something"
        with respx.mock as router:
            first = router.get(_storage_url("https://node1.example", address)).mock(
                return_value=httpx.Response(404)
            )
            second = router.get(_storage_url("https://node2.example", address)).mock(
                return_value=httpx.Response(500)
            )
            third = router.get(_storage_url("https://node3.example", address)).mock(
                return_value=httpx.Response(200, json={"int": "1"})
            )
            node = await pool.find_node_with_contract(address)
        assert node is nodes[2]
        assert first.called and second.called and third.called

    @pytest.mark.parametrize(
        "error", [httpx.ConnectError("refused"), httpx.ReadTimeout("slow")]
    )
    async def test_dead_node_is_asked_once(self, pool, nodes, error):
        address = "KT1Something"
        with respx.mock as router:
            dead = router.get(_storage_url("https://node1.example", address)).mock(
                side_effect=error
            )
            router.get(_storage_url("https://node2.example", address)).mock(
                return_value=httpx.Response(200, json={"int": "1"})
            )
            node = await pool.find_node_with_contract(address)
        assert node is nodes[1]
        assert dead.call_count == 1

    async def test_stops_at_first_success(self, pool, nodes):
        address = "KT1Something"
        with respx.mock(assert_all_called=False) as router:
            router.get(_storage_url("https://node1.example", address)).mock(
                return_value=httpx.Response(200, json={"int": "1"})
            )
            later = router.get(url__regex=r"https://node[23]\.example/.*").mock(
                return_value=httpx.Response(200, json={"int": "1"})
            )
            assert await pool.find_node_with_contract(address) is nodes[0]
        assert not later.called

    async def test_does_not_touch_statuses(self, pool):
        with respx.mock as router:
            router.get(url__regex=r".*").mock(return_value=httpx.Response(200, json={}))
            await pool.find_node_with_contract("KT1Something")
        assert all(isinstance(s.status, Uninitialized) for _, s in pool.snapshot())

    async def test_all_fail(self, pool):
        with respx.mock as router:
            router.get(url__regex=r".*").mock(return_value=httpx.Response(404))
            with pytest.raises(NoNodeKnowsContract, match="KT1Nobody"):
                await pool.find_node_with_contract("KT1Nobody")


class TestNodeEndpoint:
    def test_prefix_is_normalized(self):
        node = NodeEndpoint("n", "https://node.example/")
        assert node.url("/chains/main") == "https://node.example/chains/main"
