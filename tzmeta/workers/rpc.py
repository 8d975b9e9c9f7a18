"""Chain-node RPC calls.

``rpc_get`` is used for reads that matter to a resolution (storage, script,
big-map values) and retries transient transport errors; the node-failover
check calls it with ``retry=False`` so that a dead node costs one request.
``ping`` is the liveness probe of the node pool and never retries: each
sweep is a fresh probe.
"""

from __future__ import annotations

import logging

import httpx
from tenacity import (
    RetryError,
    before_sleep_log,
    retry,
    retry_if_exception_type,
    wait_exponential,
)

from tzmeta.core.config import settings
from tzmeta.core.errors import FetchFailed
from tzmeta.models.nodes.endpoint import NodeEndpoint, NodeStatus, NonResponsive, Ready
from tzmeta.workers.fetcher import get_http_client

logger = logging.getLogger(__name__)

HEAD_METADATA_PATH = "chains/main/blocks/head/metadata"
CONTRACTS_PATH = "chains/main/blocks/head/context/contracts"
BIG_MAPS_PATH = "chains/main/blocks/head/context/big_maps"


def contract_storage_path(address: str) -> str:
    return f"{CONTRACTS_PATH}/{address}/storage"


def contract_script_path(address: str) -> str:
    return f"{CONTRACTS_PATH}/{address}/script"


def big_map_value_path(big_map_id: int, key_hash: str) -> str:
    return f"{BIG_MAPS_PATH}/{big_map_id}/{key_hash}"


@retry(
    retry=retry_if_exception_type((httpx.TimeoutException, httpx.ConnectError)),
    stop=lambda rs: rs.attempt_number >= settings.rpc_max_retries + 1,
    wait=wait_exponential(multiplier=0.5, min=0.5, max=10),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=False,
)
async def _get_with_retry(url: str) -> httpx.Response:
    """Single GET attempt; tenacity retries on transient errors."""
    return await get_http_client().get(url)


async def rpc_get(node: NodeEndpoint, path: str, retry: bool = True) -> str:
    """GET ``{node}/{path}`` and return the body text.

    The ``stop`` condition reads ``settings.rpc_max_retries`` per attempt,
    so patches in tests take effect.  With ``retry=False`` a single attempt
    is made.

    Raises:
        FetchFailed: on a non-200 answer, a permanent transport error, or
            when retries are exhausted.
    """
    url = node.url(path)
    try:
        if retry:
            response = await _get_with_retry(url)
        else:
            response = await get_http_client().get(url)
    except RetryError as exc:
        raise FetchFailed(
            url,
            f"failed after {settings.rpc_max_retries + 1} attempts: "
            f"{exc.last_attempt.exception()}",
        ) from exc
    except httpx.InvalidURL as exc:
        raise FetchFailed(url, f"invalid URL: {exc}") from exc
    except httpx.RequestError as exc:
        raise FetchFailed(url, str(exc) or type(exc).__name__) from exc

    logger.debug("%s %s code: %d", node.prefix, path, response.status_code)
    if response.status_code != 200:
        raise FetchFailed(url, status=response.status_code)
    return response.text


async def ping(node: NodeEndpoint) -> NodeStatus:
    """Liveness probe: fetch the head block metadata of *node*.

    Transport errors propagate; the pool turns them into ``NonResponsive``.
    """
    response = await get_http_client().get(node.url(HEAD_METADATA_PATH))
    logger.debug("%s metadata code: %d", node.name, response.status_code)
    if response.status_code == 200:
        return Ready(metadata_json=response.text)
    return NonResponsive(reason=f"Return-code: {response.status_code}")
