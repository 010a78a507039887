"""
Alias Index — normalized alias → (session, component) references

Two match tiers: exact (normalized equality) and partial (substring either
way round). Within a tier, most recently updated first. Aliases are never
deduplicated; a (session, component) pair is indexed at most once.
"""

import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from .errors import NotFoundError, ValidationError, ValidationIssue
from .models import SceneNode
from .normalizer import iter_nodes

logger = logging.getLogger(__name__)

Ref = Tuple[str, str]  # (session_id, component_id)


def normalize_alias(text: Optional[str]) -> str:
    return " ".join((text or "").lower().split())


def _longest_common_substring(a: str, b: str) -> int:
    best = 0
    prev = [0] * (len(b) + 1)
    for ca in a:
        cur = [0] * (len(b) + 1)
        for j, cb in enumerate(b, 1):
            if ca == cb:
                cur[j] = prev[j - 1] + 1
                best = max(best, cur[j])
        prev = cur
    return best


def similarity(query: str, alias: str) -> float:
    longest = max(len(query), len(alias))
    if not longest:
        return 0.0
    return round(_longest_common_substring(query, alias) / longest, 4)


@dataclass
class SearchHit:
    alias: str
    session_id: str
    component_id: str
    node: SceneNode
    similarity: float = 1.0
    updated: int = 0

    def to_dict(self) -> dict:
        return {
            "alias": self.alias,
            "sessionId": self.session_id,
            "componentId": self.component_id,
            "name": self.node.name,
            "customName": self.node.custom_name,
            "similarity": self.similarity,
        }


@dataclass
class SearchResult:
    query: str
    exact: List[SearchHit] = field(default_factory=list)
    partial: List[SearchHit] = field(default_factory=list)

    @property
    def best(self) -> Optional[SearchHit]:
        if self.exact:
            return self.exact[0]
        return self.partial[0] if self.partial else None

    def to_dict(self) -> dict:
        return {
            "query": self.query,
            "exactMatches": [h.to_dict() for h in self.exact],
            "partialMatches": [h.to_dict() for h in self.partial],
        }


class AliasIndex:

    def __init__(self):
        self._lock = threading.RLock()
        self._seq = itertools.count(1)
        self._entries: Dict[str, Dict[Ref, int]] = {}
        self._alias_of: Dict[Ref, str] = {}
        self._nodes: Dict[Ref, SceneNode] = {}
        self._by_session: Dict[str, set] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._alias_of)

    # ─── mutation ───

    def index_batch(self, session_id: str, roots: Iterable[SceneNode]) -> int:
        """Index every node of a batch; re-indexing a session replaces its entries."""
        with self._lock:
            self._remove_session_locked(session_id)
            count = 0
            for node, _, _ in iter_nodes(list(roots)):
                if self._insert_locked((session_id, node.id), node, node.display_name):
                    count += 1
            logger.info("[alias] indexed %d node(s) for session %s", count, session_id)
            return count

    def update_alias(self, session_id: str, component_id: str, alias: str) -> SearchHit:
        ref = (session_id, component_id)
        if not normalize_alias(alias):
            raise ValidationError([ValidationIssue("alias", "alias", "must not be empty")], "Invalid alias")
        with self._lock:
            node = self._nodes.get(ref)
            if node is None:
                raise NotFoundError(f"Component '{component_id}' not found in session '{session_id}'")
            self._drop_locked(ref)
            self._insert_locked(ref, node, alias)
            logger.info("[alias] %s/%s → %r", session_id, component_id, normalize_alias(alias))
            return self._hit_locked(ref, 1.0)

    def remove_session(self, session_id: str) -> int:
        with self._lock:
            removed = self._remove_session_locked(session_id)
        if removed:
            logger.info("[alias] removed %d entries for session %s", removed, session_id)
        return removed

    def _insert_locked(self, ref: Ref, node: SceneNode, alias: str) -> bool:
        key = normalize_alias(alias)
        self._nodes[ref] = node
        self._by_session.setdefault(ref[0], set()).add(ref)
        if not key:
            return False
        self._entries.setdefault(key, {})[ref] = next(self._seq)
        self._alias_of[ref] = key
        return True

    def _drop_locked(self, ref: Ref) -> None:
        key = self._alias_of.pop(ref, None)
        if key is None:
            return
        refs = self._entries.get(key)
        if refs is not None:
            refs.pop(ref, None)
            if not refs:
                del self._entries[key]

    def _remove_session_locked(self, session_id: str) -> int:
        refs = self._by_session.pop(session_id, set())
        for ref in refs:
            self._drop_locked(ref)
            self._nodes.pop(ref, None)
        return len(refs)

    # ─── queries ───

    def _hit_locked(self, ref: Ref, score: float) -> SearchHit:
        key = self._alias_of[ref]
        return SearchHit(
            alias=key,
            session_id=ref[0],
            component_id=ref[1],
            node=self._nodes[ref],
            similarity=score,
            updated=self._entries[key][ref],
        )

    def search(self, query: str, limit: int = 50) -> SearchResult:
        key = normalize_alias(query)
        result = SearchResult(query=query)
        if not key or limit <= 0:
            return result
        with self._lock:
            for ref in self._entries.get(key, {}):
                result.exact.append(self._hit_locked(ref, 1.0))
            for alias, refs in self._entries.items():
                if alias == key or not (key in alias or alias in key):
                    continue
                score = similarity(key, alias)
                for ref in refs:
                    result.partial.append(self._hit_locked(ref, score))

        result.exact.sort(key=lambda h: h.updated, reverse=True)
        result.partial.sort(key=lambda h: h.updated, reverse=True)
        result.exact = result.exact[:limit]
        result.partial = result.partial[:max(0, limit - len(result.exact))]
        logger.debug("[alias] search %r: %d exact, %d partial", key, len(result.exact), len(result.partial))
        return result

    def resolve(self, name: str) -> Optional[SearchHit]:
        """Best single match: most recent exact, else the most similar partial."""
        result = self.search(name, limit=1_000_000)
        if result.exact:
            return result.exact[0]
        if not result.partial:
            return None
        return max(result.partial, key=lambda h: (h.similarity, h.updated))

    def list_aliases(self) -> List[dict]:
        with self._lock:
            rows = [
                {
                    "alias": alias,
                    "count": len(refs),
                    "sessions": sorted({ref[0] for ref in refs}),
                }
                for alias, refs in self._entries.items()
            ]
        rows.sort(key=lambda r: (-r["count"], r["alias"]))
        return rows

    def alias_of(self, session_id: str, component_id: str) -> Optional[str]:
        with self._lock:
            return self._alias_of.get((session_id, component_id))
