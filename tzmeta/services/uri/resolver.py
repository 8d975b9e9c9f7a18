"""Recursive resolution of metadata locations to raw bytes.

Sub-resolutions run strictly in sequence: a hash location only hashes once
its target is fully resolved.  Nothing is cached, resolving twice fetches
twice.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Callable, Optional

from tzmeta.core.config import settings
from tzmeta.core.errors import DigestMismatch, MissingContractContext, NetworkNotImplemented
from tzmeta.models.uri.location import (
    HashLocation,
    IpfsLocation,
    MetadataLocation,
    StorageLocation,
    WebLocation,
)
from tzmeta.services.michelson.storage import locate_metadata_big_map, read_value
from tzmeta.workers.fetcher import fetch_bytes, slow_step
from tzmeta.workers.node_pool import NodePool

logger = logging.getLogger(__name__)

LogSink = Callable[[str], None]


class ContractContext:
    """The "current contract" used by storage locations without address.

    Single-writer by convention; no locking.
    """

    def __init__(self, current_contract: Optional[str] = None) -> None:
        self._current_contract = current_contract

    def current_contract(self) -> Optional[str]:
        return self._current_contract

    def set_current_contract(self, address: str) -> None:
        self._current_contract = address

    def unset_current_contract(self) -> None:
        self._current_contract = None


class MetadataResolver:
    """Resolve locations using *pool* for on-chain reads.

    Every step writes a trace line to *log* (and to the module logger).
    """

    def __init__(
        self,
        pool: NodePool,
        context: Optional[ContractContext] = None,
        log: Optional[LogSink] = None,
        ipfs_gateway: Optional[str] = None,
    ) -> None:
        self._pool = pool
        self._context = context if context is not None else ContractContext()
        self._log = log
        self._gateway = settings.ipfs_gateway if ipfs_gateway is None else ipfs_gateway

    def _logf(self, line: str) -> None:
        logger.debug("Uri.fetch: %s", line)
        if self._log is not None:
            self._log(line)

    async def resolve(self, location: MetadataLocation) -> bytes:
        """Fetch and verify the content *location* points to.

        Raises:
            ResolutionError: the first failure aborts the whole resolution.
        """
        await slow_step()
        return await self._resolve(location)

    async def _resolve(self, location: MetadataLocation) -> bytes:
        if isinstance(location, WebLocation):
            return await self._resolve_web(location.url)
        if isinstance(location, IpfsLocation):
            gatewayed = f"{self._gateway}{location.cid}{location.path}"
            self._logf(
                f"IPFS CID {location.cid!r} path {location.path!r}, "
                f"adding gateway {self._gateway!r}"
            )
            return await self._resolve(WebLocation(url=gatewayed))
        if isinstance(location, StorageLocation):
            return await self._resolve_storage(location)
        if isinstance(location, HashLocation):
            return await self._resolve_hash(location)
        raise TypeError(f"Unknown location: {location!r}")

    async def _resolve_web(self, url: str) -> bytes:
        self._logf(f"HTTP {url!r} (may fail because of origin policy)")
        content = await fetch_bytes(url)
        self._logf(f"HTTP success ({len(content)} bytes)")
        return content

    async def _resolve_storage(self, location: StorageLocation) -> bytes:
        if location.network is not None:
            self._logf(
                f"storage {location.network} {location.address!r} {location.key!r}"
            )
            raise NetworkNotImplemented(location.network)
        address = location.address
        if address is None:
            address = self._context.current_contract()
            if address is None:
                raise MissingContractContext()
        self._logf(f"Using address {address!r} (key = {location.key!r})")

        node = await self._pool.find_node_with_contract(address)
        self._logf(f"Found contract with node {node.name!r}")
        big_map_id = await locate_metadata_big_map(node, address, log=self._log)
        self._logf(f"Metadata big-map: {big_map_id}")
        return await read_value(node, big_map_id, location.key, log=self._log)

    async def _resolve_hash(self, location: HashLocation) -> bytes:
        expected = location.expected_digest
        self._logf(f"sha256: {expected.hex()}")
        content = await self._resolve(location.target)
        obtained = hashlib.sha256(content).digest()
        self._logf(f"hash of content: {obtained.hex()}")
        if obtained != expected:
            raise DigestMismatch(expected, obtained)
        return content
