"""On-chain storage introspection.

Finds the ``%metadata`` big-map of a contract and reads values from it.
"""

from __future__ import annotations

import json
import logging
from typing import Callable, Optional

from tzmeta.core.errors import (
    AmbiguousMetadataBigMap,
    BigMapKeyNotFound,
    FetchFailed,
    NoMetadataBigMap,
)
from tzmeta.core.hashes import b58_script_id_hash_of_michelson_string
from tzmeta.models.nodes.endpoint import NodeEndpoint
from tzmeta.services.michelson.micheline import (
    find_metadata_big_maps,
    get_storage_type,
    micheline_of_json,
    to_concrete,
)
from tzmeta.workers.fetcher import slow_step
from tzmeta.workers.rpc import (
    big_map_value_path,
    contract_script_path,
    contract_storage_path,
    rpc_get,
)

logger = logging.getLogger(__name__)

LogSink = Callable[[str], None]


def _sink(log: Optional[LogSink]) -> LogSink:
    def emit(line: str) -> None:
        logger.debug(line)
        if log is not None:
            log(line)

    return emit


async def locate_metadata_big_map(
    node: NodeEndpoint, address: str, log: Optional[LogSink] = None
) -> int:
    """Return the id of the unique ``%metadata`` big-map of *address*.

    Raises:
        NoMetadataBigMap: the storage has no such big-map.
        AmbiguousMetadataBigMap: the storage has more than one.
        FetchFailed: the node did not serve the storage or the script.
        MichelineError: the node's answers are not usable Micheline.
    """
    emit = _sink(log)
    storage_text = await rpc_get(node, contract_storage_path(address))
    emit(f"Got raw storage: {storage_text}")
    storage = micheline_of_json(storage_text)
    emit(f"As concrete: {to_concrete(storage)}")
    await slow_step()

    script_text = await rpc_get(node, contract_script_path(address))
    emit(f"Got raw script: {script_text[:30]}…")
    storage_type = get_storage_type(micheline_of_json(script_text))
    emit(f"Storage type: {to_concrete(storage_type)}")
    await slow_step()

    big_maps = find_metadata_big_maps(storage, storage_type)
    if not big_maps:
        raise NoMetadataBigMap(address)
    if len(big_maps) > 1:
        raise AmbiguousMetadataBigMap(address, big_maps)
    return big_maps[0]


async def read_value(
    node: NodeEndpoint, big_map_id: int, key: str, log: Optional[LogSink] = None
) -> bytes:
    """Bytes stored at the string *key* of big-map *big_map_id*.

    Raises:
        BigMapKeyNotFound: the node answers 404 or an unexpected envelope.
    """
    emit = _sink(log)
    key_hash = b58_script_id_hash_of_michelson_string(key)
    try:
        raw = await rpc_get(node, big_map_value_path(big_map_id, key_hash))
    except FetchFailed as exc:
        if exc.status == 404:
            raise BigMapKeyNotFound(big_map_id, key) from exc
        raise
    emit(f"bytes raw value: {raw}")

    try:
        envelope = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise BigMapKeyNotFound(big_map_id, key, f"cannot find bytes in {raw}") from exc
    if not (isinstance(envelope, dict) and isinstance(envelope.get("bytes"), str)):
        raise BigMapKeyNotFound(big_map_id, key, f"cannot find bytes in {raw}")
    try:
        return bytes.fromhex(envelope["bytes"])
    except ValueError as exc:
        raise BigMapKeyNotFound(big_map_id, key, f"invalid hex in {raw}") from exc
