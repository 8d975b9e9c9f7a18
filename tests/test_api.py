from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from tzmeta.api.dependencies import get_pool
from tzmeta.core.errors import DigestMismatch, FetchFailed, InvalidMetadata, NoNodeKnowsContract
from tzmeta.main import app
from tzmeta.models.metadata.classified import Tzip16Classification
from tzmeta.models.metadata.document import MetadataDocument
from tzmeta.models.metadata.exploration import Exploration, Resolution
from tzmeta.models.nodes.endpoint import NonResponsive, Ready
from tzmeta.models.uri.location import WebLocation
from tzmeta.workers.node_pool import NodePool

_URL = "https://example.com/metadata.json"
_RESOLUTION = Resolution(
    location=WebLocation(url=_URL),
    findings=[],
    content=b'{"name": "x"}',
    logs=["HTTP success (13 bytes)"],
)


class TestPostParse:
    def test_parse_web(self, client):
        resp = client.post("/uri/parse", json={"uri": _URL})
        assert resp.status_code == 200
        body = resp.json()
        assert body["location"] == {"kind": "web", "url": _URL}
        assert body["findings"] == []
        assert body["needs_context_address"] is False

    def test_parse_storage_needs_context(self, client):
        resp = client.post("/uri/parse", json={"uri": "tezos-storage:here"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["location"]["key"] == "here"
        assert body["needs_context_address"] is True

    def test_parse_reports_findings(self, client):
        resp = client.post("/uri/parse", json={"uri": "tezos-storage://KT1Bad.nowhere/k"})
        assert resp.status_code == 200
        kinds = {finding["kind"] for finding in resp.json()["findings"]}
        assert kinds == {"address", "network"}

    def test_parse_malformed_returns_400(self, client):
        resp = client.post("/uri/parse", json={"uri": "ftp://example.com"})
        assert resp.status_code == 400
        assert "ftp" in resp.json()["detail"]

    def test_parse_missing_body_returns_422(self, client):
        resp = client.post("/uri/parse", json={})
        assert resp.status_code == 422


class TestPostResolve:
    def test_resolve_success(self, client):
        with patch(
            "tzmeta.api.uri.routes.MetadataService.resolve",
            new_callable=AsyncMock,
            return_value=_RESOLUTION,
        ) as mock_resolve:
            resp = client.post("/uri/resolve", json={"uri": _URL, "contract": "KT1x"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["size"] == 13
        assert body["text"] == '{"name": "x"}'
        assert body["content_hex"] == b'{"name": "x"}'.hex()
        assert body["logs"] == ["HTTP success (13 bytes)"]
        mock_resolve.assert_called_once_with(_URL, contract="KT1x")

    def test_resolve_binary_content_has_no_text(self, client):
        binary = _RESOLUTION.model_copy(update={"content": b"\xff\xfe"})
        with patch(
            "tzmeta.api.uri.routes.MetadataService.resolve",
            new_callable=AsyncMock,
            return_value=binary,
        ):
            resp = client.post("/uri/resolve", json={"uri": _URL})
        assert resp.status_code == 200
        assert resp.json()["text"] is None

    def test_resolve_malformed_returns_400(self, client):
        resp = client.post("/uri/resolve", json={"uri": "sha256://0x12/x"})
        assert resp.status_code == 400

    @pytest.mark.parametrize(
        "error",
        [
            FetchFailed(_URL, status=404),
            DigestMismatch(bytes(32), bytes([1]) * 32),
            NoNodeKnowsContract("KT1x"),
        ],
    )
    def test_resolution_error_returns_400(self, client, error):
        with patch(
            "tzmeta.api.uri.routes.MetadataService.resolve",
            new_callable=AsyncMock,
            side_effect=error,
        ):
            resp = client.post("/uri/resolve", json={"uri": _URL})
        assert resp.status_code == 400
        assert resp.json()["detail"] == str(error)

    def test_unexpected_error_returns_500(self, client):
        with patch(
            "tzmeta.api.uri.routes.MetadataService.resolve",
            new_callable=AsyncMock,
            side_effect=RuntimeError("boom"),
        ):
            resp = client.post("/uri/resolve", json={"uri": _URL})
        assert resp.status_code == 500


class TestPostClassify:
    def test_classify_tzip16(self, client):
        resp = client.post("/metadata/classify", json={"content": '{"name": "n"}'})
        assert resp.status_code == 200
        body = resp.json()
        assert body["kind"] == "tzip-16"
        assert body["metadata"]["name"] == "n"

    def test_classify_tzip12_with_logs(self, client):
        resp = client.post(
            "/metadata/classify", json={"content": '{"interfaces": ["TZIP-12-1"]}'}
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["kind"] == "tzip-12"
        assert body["interface_claim"] == {"kind": "version", "value": "1"}
        assert body["logs"][0]["level"] == "info"

    def test_classify_invalid_returns_422(self, client):
        resp = client.post("/metadata/classify", json={"content": "not json"})
        assert resp.status_code == 422
        assert isinstance(resp.json()["detail"], str)


class TestPostExplore:
    def _exploration(self) -> Exploration:
        return Exploration(
            input=_URL,
            metadata_uri=_URL,
            location=WebLocation(url=_URL),
            findings=[],
            logs=[],
            classified=Tzip16Classification(metadata=MetadataDocument(name="x")),
        )

    def test_explore_success(self, client):
        with patch(
            "tzmeta.api.metadata.routes.MetadataService.explore",
            new_callable=AsyncMock,
            return_value=self._exploration(),
        ):
            resp = client.post("/metadata/explore", json={"input": _URL})
        assert resp.status_code == 200
        body = resp.json()
        assert body["contract"] is None
        assert body["classified"]["kind"] == "tzip-16"

    def test_explore_resolution_error_returns_400(self, client):
        with patch(
            "tzmeta.api.metadata.routes.MetadataService.explore",
            new_callable=AsyncMock,
            side_effect=FetchFailed(_URL, "refused"),
        ):
            resp = client.post("/metadata/explore", json={"input": _URL})
        assert resp.status_code == 400
        assert "refused" in resp.json()["detail"]

    def test_explore_invalid_metadata_returns_422(self, client):
        with patch(
            "tzmeta.api.metadata.routes.MetadataService.explore",
            new_callable=AsyncMock,
            side_effect=InvalidMetadata("not an object"),
        ):
            resp = client.post("/metadata/explore", json={"input": _URL})
        assert resp.status_code == 422

    def test_explore_unexpected_error_returns_500(self, client):
        with patch(
            "tzmeta.api.metadata.routes.MetadataService.explore",
            new_callable=AsyncMock,
            side_effect=RuntimeError("boom"),
        ):
            resp = client.post("/metadata/explore", json={"input": _URL})
        assert resp.status_code == 500


class TestNodes:
    @pytest.fixture
    def test_pool(self, nodes):
        pool = NodePool(nodes)
        nodes[0]._record(Ready(metadata_json='{"level_info": {"level": 99}}'))
        nodes[1]._record(NonResponsive(reason="Return-code: 502"))
        app.dependency_overrides[get_pool] = lambda: pool
        with patch.object(pool, "ensure_started") as mock_start:
            yield pool, mock_start

    def test_get_nodes(self, client, test_pool):
        _, mock_start = test_pool
        resp = client.get("/nodes")
        assert resp.status_code == 200
        rows = resp.json()
        assert [row["name"] for row in rows] == ["first", "second", "third"]
        assert rows[0]["status"] == "ready"
        assert rows[0]["summary"] == "Level: 99"
        assert rows[0]["level"] == 99
        assert rows[1]["summary"] == "Non-responsive: Return-code: 502"
        assert rows[2]["summary"] == "Uninitialized"
        mock_start.assert_called_once()

    def test_unparsable_head_metadata(self, client, test_pool, nodes):
        nodes[0]._record(Ready(metadata_json='{"hash": "B"}'))
        rows = client.get("/nodes").json()
        assert rows[0]["summary"].startswith("Failed to parse the Metadata JSON")
        assert rows[0]["level"] is None

    def test_wake_up(self, client, test_pool):
        pool, mock_start = test_pool
        with patch.object(pool, "wake_up") as mock_wake:
            resp = client.post("/nodes/wake-up")
        assert resp.status_code == 200
        assert "message" in resp.json()
        mock_start.assert_called_once()
        mock_wake.assert_called_once()


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
