"""
BridgeService — the boundary the request layer calls.

ingest → normalize → store batch + alias index → components-received
transform → normalize → emit per component → store results → transformation-complete
delete_session → drop batch, results and aliases → session-deleted
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Union

from .alias_index import AliasIndex, SearchHit, SearchResult
from .analyzer import analyze_components, summarize
from .emitter import check_pair, emit, transform
from .errors import NotFoundError, ValidationError, ValidationIssue
from .events import COMPONENTS_RECEIVED, SESSION_DELETED, TRANSFORMATION_COMPLETE, EventBus
from .models import (
    Batch,
    BatchMetadata,
    ComponentAnalysis,
    DesignToken,
    SceneNode,
    TransformedComponent,
    TransformOptions,
)
from .normalizer import check_tree, count_nodes, normalize_batch
from .store import SessionStore
from .styles import resolve_tree
from .tokens import extract_tokens

logger = logging.getLogger(__name__)

OptionsLike = Union[TransformOptions, dict, None]


@dataclass
class IngestResult:
    session_id: str
    batch_id: str
    stored_component_count: int
    node_count: int

    def to_dict(self) -> dict:
        return {
            "sessionId": self.session_id,
            "batchId": self.batch_id,
            "storedComponentCount": self.stored_component_count,
            "nodeCount": self.node_count,
        }


@dataclass
class TransformResult:
    session_id: Optional[str]
    components: List[TransformedComponent] = field(default_factory=list)

    @property
    def failed(self) -> List[TransformedComponent]:
        return [c for c in self.components if not c.ok]

    def to_dict(self) -> dict:
        return {
            "sessionId": self.session_id,
            "components": [c.to_dict() for c in self.components],
        }


class BridgeService:

    def __init__(
        self,
        store: Optional[SessionStore] = None,
        index: Optional[AliasIndex] = None,
        events: Optional[EventBus] = None,
        option_defaults: Optional[dict] = None,
    ):
        self.store = store or SessionStore()
        self.index = index or AliasIndex()
        self.events = events or EventBus()
        self.option_defaults = dict(option_defaults or {})

    # ─── helpers ───

    def _options(self, options: OptionsLike) -> TransformOptions:
        if isinstance(options, TransformOptions):
            return options
        return TransformOptions.from_dict(options, self.option_defaults)

    @staticmethod
    def _roots(components: Sequence[Union[dict, SceneNode]]) -> List[SceneNode]:
        if isinstance(components, (list, tuple)) and not components:
            raise ValidationError([ValidationIssue("components", "components", "at least one component is required")])
        if isinstance(components, (list, tuple)) and all(isinstance(c, SceneNode) for c in components):
            return check_tree(components)
        return normalize_batch(components)

    # ─── ingest / fetch ───

    def ingest(self, components: Sequence[dict], metadata: Optional[dict] = None,
               session_id: Optional[str] = None) -> IngestResult:
        roots = self._roots(components)
        session_id = session_id or str(uuid.uuid4())
        with self.store.locked(session_id):
            self.store.touch(session_id)
            batch = Batch(
                id=str(uuid.uuid4()),
                session_id=session_id,
                components=roots,
                metadata=BatchMetadata.from_dict(metadata),
                received_at=datetime.now(timezone.utc),
                status="completed",
            )
            self.index.index_batch(session_id, roots)
            self.store.put_batch(batch)

        result = IngestResult(
            session_id=session_id,
            batch_id=batch.id,
            stored_component_count=len(roots),
            node_count=count_nodes(roots),
        )
        logger.info("[ingest] session %s: %d component(s), %d node(s)",
                    session_id, result.stored_component_count, result.node_count)
        self.events.publish(COMPONENTS_RECEIVED, session_id,
                            componentCount=result.stored_component_count,
                            fileName=batch.metadata.file_name)
        return result

    def get_batch(self, session_id: str) -> Batch:
        return self.store.get_batch(session_id)

    def list_sessions(self) -> List[dict]:
        rows = []
        for session in self.store.list_sessions():
            row = session.to_dict()
            batch = self.store.find_batch(session.id)
            row["componentCount"] = len(batch.components) if batch else 0
            rows.append(row)
        return rows

    # ─── transform ───

    def transform(self, components: Sequence[dict], options: OptionsLike = None,
                  session_id: Optional[str] = None) -> TransformResult:
        opts = self._options(options)
        check_pair(opts)
        roots = self._roots(components)
        results = transform(roots, opts)
        if session_id is not None:
            with self.store.locked(session_id):
                self.store.touch(session_id)
                self.store.put_transform(session_id, results)
        outcome = TransformResult(session_id=session_id, components=results)
        self.events.publish(
            TRANSFORMATION_COMPLETE, session_id or "",
            framework=opts.framework.value,
            styling=opts.styling.value,
            componentCount=len(results),
            failedCount=len(outcome.failed),
        )
        return outcome

    def get_transform(self, session_id: str) -> List[TransformedComponent]:
        return self.store.get_transform(session_id)

    def generate_by_name(self, name: str, options: OptionsLike = None) -> TransformResult:
        """Emit the component best matching `name` in the alias index."""
        opts = self._options(options)
        check_pair(opts)
        hit = self.index.resolve(name)
        if hit is None:
            raise NotFoundError(f"No component matches '{name}'")
        batch = self.store.find_batch(hit.session_id)
        roots = batch.components if batch else hit.node
        component = emit(hit.node, resolve_tree(roots), opts)
        logger.info("[generate] %r → %s/%s", name, hit.session_id, hit.component_id)
        return TransformResult(session_id=hit.session_id, components=[component])

    # ─── read-only analyses ───

    def extract_tokens(self, components: Sequence[dict]) -> List[DesignToken]:
        roots = self._roots(components)
        return extract_tokens(roots, resolve_tree(roots))

    def analyze(self, components: Sequence[dict]) -> List[ComponentAnalysis]:
        roots = self._roots(components)
        return analyze_components(roots, resolve_tree(roots))

    def analyze_summary(self, components: Sequence[dict]) -> dict:
        analyses = self.analyze(components)
        return {"overview": summarize(analyses), "components": [a.to_dict() for a in analyses]}

    # ─── aliases ───

    def search(self, query: str, limit: int = 50) -> SearchResult:
        return self.index.search(query, limit)

    def list_aliases(self) -> List[dict]:
        return self.index.list_aliases()

    def update_alias(self, session_id: str, component_id: str, alias: str) -> SearchHit:
        with self.store.locked(session_id):
            self.store.get_session(session_id)
            hit = self.index.update_alias(session_id, component_id, alias)
            hit.node.custom_name = alias.strip()
            self.store.touch(session_id)
        return hit

    def delete_session(self, session_id: str) -> None:
        with self.store.locked(session_id):
            self.store.delete_session(session_id)
            self.index.remove_session(session_id)
        self.events.publish(SESSION_DELETED, session_id)
