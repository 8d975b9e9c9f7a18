from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import base58
import pytest
from fastapi.testclient import TestClient

import tzmeta.workers.fetcher as fetcher_module
from tzmeta.core.hashes import CHAIN_ID_PREFIX, KT1_PREFIX
from tzmeta.main import app
from tzmeta.models.nodes.endpoint import NodeEndpoint
from tzmeta.workers.node_pool import NodePool


@pytest.fixture(autouse=True)
def fresh_http_client():
    """Each test gets its own shared AsyncClient (bound to its event loop)."""
    fetcher_module._http_client = None
    yield
    fetcher_module._http_client = None


@pytest.fixture
def client():
    """TestClient with the node-pool loop and HTTP client shutdown mocked."""
    with (
        patch("tzmeta.main.node_pool.ensure_started"),
        patch("tzmeta.main.node_pool.stop", new_callable=AsyncMock),
        patch("tzmeta.main.close_http_client", new_callable=AsyncMock),
    ):
        with TestClient(app) as c:
            yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_kt1():
    """Factory of structurally valid, distinct ``KT1`` addresses."""

    def _make(seed: int = 1) -> str:
        return base58.b58encode_check(KT1_PREFIX + bytes([seed]) * 20).decode()

    return _make


@pytest.fixture
def chain_id() -> str:
    return base58.b58encode_check(CHAIN_ID_PREFIX + b"\x7a\x06\xa7\x70").decode()


@pytest.fixture
def nodes() -> list[NodeEndpoint]:
    return [
        NodeEndpoint("first", "https://node1.example"),
        NodeEndpoint("second", "https://node2.example"),
        NodeEndpoint("third", "https://node3.example"),
    ]


@pytest.fixture
def pool(nodes) -> NodePool:
    return NodePool(nodes, probe_timeout=0.2, interval=0.01)


def metadata_script(storage_type: dict) -> str:
    """A ``/script`` answer whose storage section is *storage_type*."""
    return json.dumps(
        {
            "code": [
                {"prim": "parameter", "args": [{"prim": "unit"}]},
                {"prim": "storage", "args": [storage_type]},
                {"prim": "code", "args": [[]]},
            ],
            "storage": {"int": "0"},
        }
    )


METADATA_BIG_MAP_TYPE = {
    "prim": "big_map",
    "args": [{"prim": "string"}, {"prim": "bytes"}],
    "annots": ["%metadata"],
}


@pytest.fixture
def script_factory():
    return metadata_script


@pytest.fixture
def metadata_big_map_type() -> dict:
    return METADATA_BIG_MAP_TYPE


@pytest.fixture
def contract_script(script_factory, metadata_big_map_type) -> str:
    """Script of a contract storing ``pair (big_map %metadata string bytes) nat``."""
    return script_factory({"prim": "pair", "args": [metadata_big_map_type, {"prim": "nat"}]})
