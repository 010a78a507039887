"""
In-memory session repository.

Holds sessions, their single batch and stored transform results. Every
per-session mutation runs under that session's lock; the table itself is
guarded by a separate lock that is never held while waiting on a session.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional

from .errors import NotFoundError
from .models import Batch, Session, TransformedComponent

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class _SessionLock:
    """RLock plus the number of threads holding or waiting on it."""

    def __init__(self):
        self.lock = threading.RLock()
        self.users = 0


class SessionStore:

    def __init__(self):
        self._table_lock = threading.Lock()
        self._locks: Dict[str, _SessionLock] = {}
        self._sessions: Dict[str, Session] = {}
        self._batches: Dict[str, Batch] = {}
        self._transforms: Dict[str, List[TransformedComponent]] = {}

    @contextmanager
    def locked(self, session_id: str) -> Iterator[None]:
        """Hold the session's lock for a read-modify-write sequence.

        The lock entry lives as long as someone holds or waits on it, so a
        delete running under the lock cannot hand a fresh lock to a
        concurrent ingest of the same session.
        """
        with self._table_lock:
            entry = self._locks.get(session_id)
            if entry is None:
                entry = self._locks[session_id] = _SessionLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._table_lock:
                entry.users -= 1
                if entry.users == 0:
                    del self._locks[session_id]

    def lock_count(self) -> int:
        with self._table_lock:
            return len(self._locks)

    # ─── sessions ───

    def touch(self, session_id: str) -> Session:
        """Create the session on first use, else bump its last activity."""
        with self._table_lock:
            now = _now()
            session = self._sessions.get(session_id)
            if session is None:
                session = self._sessions[session_id] = Session(id=session_id, created_at=now, last_activity=now)
                logger.info("[store] session %s created", session_id)
            else:
                session.last_activity = now
                session.status = "active"
            return session

    def get_session(self, session_id: str) -> Session:
        with self._table_lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError(f"Session '{session_id}' not found")
        return session

    def has_session(self, session_id: str) -> bool:
        with self._table_lock:
            return session_id in self._sessions

    def list_sessions(self) -> List[Session]:
        with self._table_lock:
            return sorted(self._sessions.values(), key=lambda s: s.created_at)

    def delete_session(self, session_id: str) -> Session:
        """Drop the session together with its batch and stored transforms."""
        with self._table_lock:
            session = self._sessions.pop(session_id, None)
            if session is None:
                raise NotFoundError(f"Session '{session_id}' not found")
            self._batches.pop(session_id, None)
            self._transforms.pop(session_id, None)
        session.status = "inactive"
        logger.info("[store] session %s deleted", session_id)
        return session

    # ─── batches / transforms ───

    def put_batch(self, batch: Batch) -> None:
        with self._table_lock:
            if batch.session_id not in self._sessions:
                raise NotFoundError(f"Session '{batch.session_id}' not found")
            self._batches[batch.session_id] = batch

    def get_batch(self, session_id: str) -> Batch:
        with self._table_lock:
            batch = self._batches.get(session_id)
        if batch is None:
            raise NotFoundError(f"No batch stored for session '{session_id}'")
        return batch

    def find_batch(self, session_id: str) -> Optional[Batch]:
        with self._table_lock:
            return self._batches.get(session_id)

    def put_transform(self, session_id: str, results: List[TransformedComponent]) -> None:
        with self._table_lock:
            if session_id not in self._sessions:
                raise NotFoundError(f"Session '{session_id}' not found")
            self._transforms[session_id] = list(results)

    def get_transform(self, session_id: str) -> List[TransformedComponent]:
        with self._table_lock:
            results = self._transforms.get(session_id)
        if results is None:
            raise NotFoundError(f"No transform results stored for session '{session_id}'")
        return list(results)
