"""
Per-identity swap session store.

Exactly one Session exists per identity. Sessions are immutable values; each
change swaps in a new instance under the store lock. Timers are referenced by
scheduler tokens, and the store cancels the tokens a session owns whenever
that session is replaced or removed.
"""

import threading
from dataclasses import fields, replace
from datetime import datetime
from typing import Any, Callable, Optional

import structlog

from ..errors import InvalidRequestError, PersistenceError
from ..models.entities import EntityKind
from ..models.session import Session, SwapDetails, SwapState
from ..persistence.repository import BaseRepository
from ..scheduling.base import BaseTaskScheduler
from ..utils.time import utc_now

logger = structlog.get_logger(__name__)

_DETAIL_FIELDS = frozenset(f.name for f in fields(SwapDetails))
_SESSION_FIELDS = frozenset(f.name for f in fields(Session)) - {"identity", "details"}


class ConversationStore:
    """Owns manual swap sessions and the timers attached to them."""

    def __init__(
        self,
        scheduler: BaseTaskScheduler,
        repository: Optional[BaseRepository] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.scheduler = scheduler
        self.repository = repository
        self.clock = clock
        self._sessions: dict[str, Session] = {}
        self._lock = threading.RLock()
        self.logger = logger

    @property
    def lock(self) -> threading.RLock:
        """Held by callers that need a read-modify-write over one session."""
        return self._lock

    def start_swap_flow(self, identity: str) -> Session:
        """Create a fresh session, discarding any prior one and its timers."""
        session = Session(identity=identity, started_at=self.clock())

        with self._lock:
            prior = self._sessions.get(identity)
            self._sessions[identity] = session
            if prior is not None:
                self._cancel_tokens(prior)
                self.logger.info("Prior session replaced", owner=identity, prior_state=prior.state.value)
            self._mirror(session)

        return session

    def get_session(self, identity: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(identity)

    def update_session(self, identity: str, **updates: Any) -> Optional[Session]:
        """
        Merge updates into the current session.

        Session-level fields (state, shift_id, tokens, ...) are set as given,
        None included. Swap detail fields are merged, ignoring None values.
        Returns None when the identity has no session.
        """
        unknown = set(updates) - _DETAIL_FIELDS - _SESSION_FIELDS
        if unknown:
            raise InvalidRequestError(
                f"Unknown session fields: {sorted(unknown)}",
                field=",".join(sorted(unknown)),
            )

        session_updates = {k: v for k, v in updates.items() if k in _SESSION_FIELDS}
        detail_updates = {k: v for k, v in updates.items() if k in _DETAIL_FIELDS}

        with self._lock:
            current = self._sessions.get(identity)
            if current is None:
                return None

            updated = replace(current, **session_updates)
            if detail_updates:
                updated = updated.with_details(**detail_updates)

            self._sessions[identity] = updated
            self._mirror(updated)
            return updated

    def clear_session(self, identity: str) -> Optional[Session]:
        """Cancel the session's owned timers, then remove it."""
        with self._lock:
            session = self._sessions.pop(identity, None)
            if session is None:
                return None
            self._cancel_tokens(session)
            self._forget(identity)

        self.logger.debug("Session cleared", owner=identity, state=session.state.value)
        return session

    def has_active_session(self, identity: str) -> bool:
        session = self.get_session(identity)
        return session is not None and not session.is_terminal

    def active_swap_count(self) -> int:
        """Sessions with a live external order awaiting funds."""
        with self._lock:
            return sum(1 for s in self._sessions.values() if s.state == SwapState.AWAITING_FUNDS)

    def identities(self) -> list[str]:
        with self._lock:
            return list(self._sessions)

    def clear_all(self) -> int:
        """Drop every session and all of their timers, delayed cancels included."""
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
            for session in sessions:
                self._cancel_tokens(session)
                if session.pending_cancel_token:
                    self.scheduler.cancel(session.pending_cancel_token)
                self._forget(session.identity)

        if sessions:
            self.logger.info("All sessions cleared", count=len(sessions))
        return len(sessions)

    def _cancel_tokens(self, session: Session) -> None:
        for token in session.owned_tokens():
            self.scheduler.cancel(token)

    def _mirror(self, session: Session) -> None:
        if self.repository is None:
            return
        try:
            self.repository.save(EntityKind.SESSION, session.to_dict())
        except PersistenceError as e:
            self.logger.error("Session mirror write failed", owner=session.identity, error=str(e))

    def _forget(self, identity: str) -> None:
        if self.repository is None:
            return
        try:
            self.repository.delete(EntityKind.SESSION, identity)
        except PersistenceError as e:
            self.logger.error("Session mirror delete failed", owner=identity, error=str(e))
