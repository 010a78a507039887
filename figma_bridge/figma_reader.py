"""
Figma REST API 讀取

讀取 Figma 檔案並轉成可 ingest 的 {components, metadata} payload。
REST node dicts already use the export shape the normalizer accepts; they are
only pruned to the attributes the pipeline reads.
"""

import logging
from typing import List, Optional

import requests

from .normalizer import KNOWN_KEYS

logger = logging.getLogger(__name__)


class FigmaAPIClient:
    """Figma REST API 唯讀封裝."""

    BASE_URL = "https://api.figma.com/v1"

    def __init__(self, token: str, timeout: float = 30.0):
        self.token = token
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "X-Figma-Token": token,
            "Content-Type": "application/json",
        })

    def get_file(self, file_key: str, depth: Optional[int] = None) -> dict:
        url = f"{self.BASE_URL}/files/{file_key}"
        params = {}
        if depth is not None:
            params["depth"] = depth
        resp = self.session.get(url, params=params, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def get_file_nodes(self, file_key: str, node_ids: list) -> dict:
        url = f"{self.BASE_URL}/files/{file_key}/nodes"
        params = {"ids": ",".join(node_ids)}
        resp = self.session.get(url, params=params, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()


def select_pages(document: dict, page_name: Optional[str], page_index: Optional[int], all_pages: bool) -> list:
    pages = document.get("children", [])
    if not pages:
        return []
    if all_pages:
        return pages
    if page_name:
        for page in pages:
            if page.get("name") == page_name:
                return [page]
        return []
    if page_index is not None:
        if 0 <= page_index < len(pages):
            return [pages[page_index]]
        return []
    return [pages[0]]


def prune_node(node: dict) -> dict:
    """Copy a REST node tree keeping only the keys the normalizer reads."""
    out = {}
    stack = [(node, out)]
    while stack:
        src, dst = stack.pop()
        for key, value in src.items():
            if key in KNOWN_KEYS and key not in ("children", "pluginData"):
                dst[key] = value
        children = src.get("children") or []
        if children:
            dst["children"] = [{} for _ in children]
            for child, slot in zip(children, dst["children"]):
                stack.append((child, slot))
    return out


def _metadata(file_key: str, data: dict, page: Optional[dict]) -> dict:
    meta = {
        "fileKey": file_key,
        "fileName": data.get("name", ""),
        "version": data.get("version"),
        "lastModified": data.get("lastModified"),
    }
    if page is not None:
        meta["currentPage"] = {"id": page.get("id"), "name": page.get("name")}
    return meta


def file_to_batches(
    file_key: str,
    data: dict,
    page_name: Optional[str] = None,
    page_index: Optional[int] = None,
    all_pages: bool = False,
) -> List[dict]:
    """One ingestible payload per selected page; page children become the components."""
    pages = select_pages(data.get("document", {}), page_name, page_index, all_pages)
    batches = []
    for page in pages:
        components = [prune_node(child) for child in page.get("children", [])]
        batches.append({"metadata": _metadata(file_key, data, page), "components": components})
        logger.info("[figma] page %r: %d component(s)", page.get("name"), len(components))
    return batches


def nodes_to_batch(file_key: str, data: dict) -> dict:
    """Payload for a /files/:key/nodes response (each requested node is a component)."""
    components = []
    for node_id, entry in (data.get("nodes") or {}).items():
        document = (entry or {}).get("document")
        if document is None:
            logger.warning("[figma] node %s missing from response", node_id)
            continue
        components.append(prune_node(document))
    return {"metadata": _metadata(file_key, data, None), "components": components}


def fetch_batches(
    client: FigmaAPIClient,
    file_key: str,
    node_ids: Optional[list] = None,
    page_name: Optional[str] = None,
    page_index: Optional[int] = None,
    all_pages: bool = False,
) -> List[dict]:
    if node_ids:
        return [nodes_to_batch(file_key, client.get_file_nodes(file_key, node_ids))]
    data = client.get_file(file_key)
    return file_to_batches(file_key, data, page_name, page_index, all_pages)
