from __future__ import annotations

import logging
from typing import Iterable

from ptyscribe.config import AppConfig
from ptyscribe.interpreter import SessionInterpreter
from ptyscribe.models import EventSink, SessionWriter

logger = logging.getLogger(__name__)


class SessionError(Exception):
    """Raised when a registry operation names an unknown or duplicate session."""

    pass


class SessionRegistry:
    """Own every live session's interpreter, keyed by session id.

    Sessions are registered explicitly with :meth:`open` and released with
    :meth:`evict`. A session's replay log lives here, so it outlives any
    presentation surface attached to or detached from it.
    """

    def __init__(self, config: AppConfig | None = None, emit: EventSink | None = None) -> None:
        """Initialize an empty registry.

        Args:
            config: Shared configuration for every session opened here.
            emit: Event sink handed to each session's interpreter.
        """
        self._config = config or AppConfig()
        self._emit = emit
        self._sessions: dict[str, SessionInterpreter] = {}

    def open(self, session_id: str, writer: SessionWriter) -> SessionInterpreter:
        """Register a session when it starts streaming.

        Raises:
            SessionError: If *session_id* is already registered.
        """
        if session_id in self._sessions:
            raise SessionError(f"Session {session_id!r} is already open")
        interpreter = SessionInterpreter(session_id, writer, self._config, self._emit)
        self._sessions[session_id] = interpreter
        logger.debug("Session %s opened (%d live)", session_id, len(self._sessions))
        return interpreter

    def session(self, session_id: str) -> SessionInterpreter:
        """Return the interpreter for *session_id*.

        Raises:
            SessionError: If the session is not registered.
        """
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionError(f"Unknown session {session_id!r}") from None

    def append(self, session_id: str, chunk: str) -> None:
        """Buffer a raw chunk without interpreting it."""
        self.session(session_id).replay.append(chunk)

    def get(self, session_id: str) -> list[str]:
        """Return the session's buffered chunks, oldest first."""
        return self.session(session_id).replay.chunks()

    def clear(self, session_id: str) -> None:
        """Drop the session's buffered chunks, keeping the session open."""
        self.session(session_id).replay.clear()

    def evict(self, session_id: str) -> bool:
        """Close a session and release its buffers.

        Returns:
            True if the session was registered, False otherwise.
        """
        interpreter = self._sessions.pop(session_id, None)
        if interpreter is None:
            return False
        interpreter.close()
        interpreter.replay.clear()
        logger.debug("Session %s evicted (%d live)", session_id, len(self._sessions))
        return True

    def evict_orphans(self, active_ids: Iterable[str]) -> list[str]:
        """Evict every session whose id is not in *active_ids*.

        Returns:
            The evicted session ids.
        """
        keep = set(active_ids)
        orphans = [sid for sid in self._sessions if sid not in keep]
        for sid in orphans:
            self.evict(sid)
        if orphans:
            logger.info("Evicted %d orphaned session(s): %s", len(orphans), orphans)
        return orphans

    def shutdown(self) -> None:
        """Evict every session."""
        for sid in list(self._sessions):
            self.evict(sid)

    def ids(self) -> list[str]:
        return list(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
