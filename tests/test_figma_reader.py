"""
Figma REST 讀取測試：mock requests.Session，不打真實 API。
"""
from unittest.mock import MagicMock, patch

import pytest
import requests

from figma_bridge.figma_reader import (
    FigmaAPIClient,
    fetch_batches,
    file_to_batches,
    nodes_to_batch,
    prune_node,
    select_pages,
)
from figma_bridge.normalizer import normalize_batch


FILE_RESPONSE = {
    "name": "Design System",
    "version": "42",
    "lastModified": "2024-05-01T00:00:00Z",
    "document": {
        "id": "0:0",
        "type": "DOCUMENT",
        "children": [
            {
                "id": "0:1",
                "name": "Components",
                "type": "CANVAS",
                "children": [
                    {
                        "id": "1:1",
                        "name": "Button",
                        "type": "FRAME",
                        "absoluteBoundingBox": {"x": 0, "y": 0, "width": 120, "height": 40},
                        "fills": [{"type": "SOLID", "color": {"r": 0, "g": 0.48, "b": 1, "a": 1}}],
                        "exportSettings": [],
                        "pluginData": {"x": 1},
                        "children": [
                            {"id": "1:2", "name": "Label", "type": "TEXT", "characters": "Click me",
                             "styleOverrideTable": {}},
                        ],
                    },
                ],
            },
            {"id": "0:2", "name": "Icons", "type": "CANVAS", "children": [
                {"id": "2:1", "name": "Star", "type": "VECTOR"},
            ]},
        ],
    },
}


def _response(payload):
    resp = MagicMock()
    resp.json.return_value = payload
    resp.raise_for_status.return_value = None
    return resp


class TestClient:

    def test_token_header(self):
        client = FigmaAPIClient("tok")
        assert client.session.headers["X-Figma-Token"] == "tok"

    def test_get_file(self):
        client = FigmaAPIClient("tok")
        with patch.object(client.session, "get", return_value=_response(FILE_RESPONSE)) as mock_get:
            data = client.get_file("KEY", depth=2)
        assert data["name"] == "Design System"
        args, kwargs = mock_get.call_args
        assert args[0] == "https://api.figma.com/v1/files/KEY"
        assert kwargs["params"] == {"depth": 2}
        assert kwargs["timeout"] == 30.0

    def test_get_file_nodes(self):
        client = FigmaAPIClient("tok")
        with patch.object(client.session, "get", return_value=_response({"nodes": {}})) as mock_get:
            client.get_file_nodes("KEY", ["1:1", "1:2"])
        assert mock_get.call_args[1]["params"] == {"ids": "1:1,1:2"}

    def test_http_error_propagates(self):
        client = FigmaAPIClient("bad")
        resp = MagicMock()
        resp.raise_for_status.side_effect = requests.HTTPError("403 Forbidden")
        with patch.object(client.session, "get", return_value=resp):
            with pytest.raises(requests.HTTPError):
                client.get_file("KEY")


class TestConversion:

    def test_select_pages(self):
        doc = FILE_RESPONSE["document"]
        assert [p["name"] for p in select_pages(doc, None, None, False)] == ["Components"]
        assert [p["name"] for p in select_pages(doc, "Icons", None, False)] == ["Icons"]
        assert [p["name"] for p in select_pages(doc, None, 1, False)] == ["Icons"]
        assert select_pages(doc, None, 5, False) == []
        assert select_pages(doc, "Missing", None, False) == []
        assert len(select_pages(doc, None, None, True)) == 2

    def test_prune_keeps_known_keys(self):
        pruned = prune_node(FILE_RESPONSE["document"]["children"][0]["children"][0])
        assert "exportSettings" not in pruned
        assert "pluginData" not in pruned
        assert pruned["fills"][0]["type"] == "SOLID"
        assert pruned["children"][0] == {"id": "1:2", "name": "Label", "type": "TEXT", "characters": "Click me"}

    def test_file_to_batches(self):
        batches = file_to_batches("KEY", FILE_RESPONSE)
        assert len(batches) == 1
        meta = batches[0]["metadata"]
        assert meta["fileKey"] == "KEY"
        assert meta["fileName"] == "Design System"
        assert meta["currentPage"] == {"id": "0:1", "name": "Components"}
        roots = normalize_batch(batches[0]["components"])
        assert roots[0].children[0].characters == "Click me"

    def test_all_pages(self):
        batches = file_to_batches("KEY", FILE_RESPONSE, all_pages=True)
        assert [b["metadata"]["currentPage"]["name"] for b in batches] == ["Components", "Icons"]

    def test_nodes_to_batch_skips_missing(self):
        data = {"name": "DS", "nodes": {"1:1": {"document": {"id": "1:1", "type": "FRAME"}}, "9:9": None}}
        batch = nodes_to_batch("KEY", data)
        assert [c["id"] for c in batch["components"]] == ["1:1"]
        assert "currentPage" not in batch["metadata"]


class TestFetchBatches:

    def test_by_node_ids(self):
        client = MagicMock()
        client.get_file_nodes.return_value = {"nodes": {"1:1": {"document": {"id": "1:1", "type": "FRAME"}}}}
        batches = fetch_batches(client, "KEY", node_ids=["1:1"])
        client.get_file_nodes.assert_called_once_with("KEY", ["1:1"])
        client.get_file.assert_not_called()
        assert batches[0]["components"][0]["id"] == "1:1"

    def test_by_page(self):
        client = MagicMock()
        client.get_file.return_value = FILE_RESPONSE
        batches = fetch_batches(client, "KEY", page_name="Icons")
        assert batches[0]["components"][0]["name"] == "Star"
