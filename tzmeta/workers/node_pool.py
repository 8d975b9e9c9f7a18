"""Health polling and failover over a pool of chain nodes.

One background task sweeps the nodes in pool order, probing each with a
timeout, then sleeps for the current interval (or until woken up) and lets
the interval grow geometrically.  The task is the only writer of node
statuses.

Lifecycle::

    node_pool.ensure_started()   # from a running event loop, idempotent
    ...
    await node_pool.stop()       # at shutdown
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

from tzmeta.core.config import settings
from tzmeta.core.errors import FetchFailed, NoNodeKnowsContract
from tzmeta.models.nodes.endpoint import (
    NodeEndpoint,
    NodeStatus,
    NonResponsive,
    StatusSnapshot,
)
from tzmeta.workers.rpc import contract_storage_path, ping, rpc_get

logger = logging.getLogger(__name__)

TIMEOUT_REASON = "Time-out while getting status"


class NodePool:
    def __init__(
        self,
        nodes: Iterable[NodeEndpoint],
        *,
        probe_timeout: Optional[float] = None,
        interval: Optional[float] = None,
        growth: Optional[float] = None,
        max_interval: Optional[float] = None,
    ) -> None:
        self._nodes = tuple(nodes)
        self.probe_timeout = (
            settings.node_probe_timeout if probe_timeout is None else probe_timeout
        )
        self.growth = settings.node_poll_growth if growth is None else growth
        self.max_interval = (
            settings.node_poll_max_interval if max_interval is None else max_interval
        )
        self._interval = settings.node_poll_interval if interval is None else interval
        self._loop_started = False
        self._task: Optional[asyncio.Task] = None
        self._wake_up_call = asyncio.Event()
        # Probes that lost their timeout race; kept referenced until they finish.
        self._abandoned: set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls) -> NodePool:
        return cls(NodeEndpoint(node.name, node.prefix) for node in settings.tezos_nodes)

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    @property
    def nodes(self) -> tuple[NodeEndpoint, ...]:
        return self._nodes

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def loop_started(self) -> bool:
        return self._loop_started

    def snapshot(self) -> list[tuple[NodeEndpoint, StatusSnapshot]]:
        """Current status of every node, in pool order."""
        return [(node, node.status) for node in self._nodes]

    # ------------------------------------------------------------------
    # Polling loop
    # ------------------------------------------------------------------

    def ensure_started(self) -> None:
        """Start the update loop unless it already runs.  Needs a running loop."""
        if self._loop_started:
            return
        self._task = asyncio.create_task(self._update_loop(), name="node-pool-update-loop")
        self._loop_started = True

    def wake_up(self) -> None:
        """Cut the current sleep short; the interval keeps growing."""
        self._wake_up_call.set()

    async def stop(self) -> None:
        """Cancel the update loop and any abandoned probe."""
        tasks = [task for task in (self._task, *self._abandoned) if task is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._task = None
        self._loop_started = False

    async def probe(self, node: NodeEndpoint) -> NodeStatus:
        """Race a liveness probe of *node* against ``probe_timeout``.

        Never raises: every outcome is a status.  A probe that loses the
        race is abandoned, its eventual result discarded.
        """
        task = asyncio.ensure_future(ping(node))
        try:
            done, _ = await asyncio.wait({task}, timeout=self.probe_timeout)
        except asyncio.CancelledError:
            task.cancel()
            raise
        if not done:
            logger.debug("%s timeout in update loop", node.name)
            self._abandon(task)
            return NonResponsive(reason=TIMEOUT_REASON)
        exc = task.exception()
        if exc is not None:
            return NonResponsive(reason=f"Error: {exc!r}")
        return task.result()

    async def sweep(self) -> None:
        """Probe every node once, sequentially, and record the outcomes."""
        for node in self._nodes:
            status = await self.probe(node)
            node._record(status)
            logger.debug("got status for %s: %s", node.name, status.kind)

    async def _pause(self) -> None:
        try:
            await asyncio.wait_for(self._wake_up_call.wait(), timeout=self._interval)
        except asyncio.TimeoutError:
            pass
        else:
            logger.debug("update loop woken up")
        self._wake_up_call.clear()
        self._interval = min(self._interval * self.growth, self.max_interval)

    async def _update_loop(self) -> None:
        count = 0
        while True:
            logger.debug("update-loop %d (%.1f s)", count, self._interval)
            try:
                await self.sweep()
            except Exception:
                logger.exception("Node sweep %d failed", count)
            await self._pause()
            count += 1

    def _abandon(self, task: asyncio.Task) -> None:
        self._abandoned.add(task)
        task.add_done_callback(self._forget)

    def _forget(self, task: asyncio.Task) -> None:
        self._abandoned.discard(task)
        if not task.cancelled():
            task.exception()  # mark retrieved

    # ------------------------------------------------------------------
    # Failover
    # ------------------------------------------------------------------

    async def find_node_with_contract(self, address: str) -> NodeEndpoint:
        """First node, in pool order, that serves the storage of *address*.

        One request per node, no retry.  Ignores cached statuses and does
        not update them.

        Raises:
            NoNodeKnowsContract: when every node fails.
        """
        for node in self._nodes:
            try:
                await rpc_get(node, contract_storage_path(address), retry=False)
            except FetchFailed as exc:
                logger.debug("%s does not know %s: %s", node.name, address, exc)
                continue
            return node
        raise NoNodeKnowsContract(address)


#: Module-level pool built from the settings; import and use this everywhere.
node_pool: NodePool = NodePool.from_settings()
