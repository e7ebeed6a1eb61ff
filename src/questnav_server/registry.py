"""In-memory session registry and response storage.

Sessions are independent :class:`InterviewSession` objects keyed by
``(user_id, session_id)``; the registry is the only shared mutable state.
Completed responses go to :class:`ResponseStorage`, grouped by the
questionnaire url the response refers to.  A session holds at most one
stored response: completing it again after going back replaces the earlier one.

Nothing here survives a restart.
"""

from __future__ import annotations

import logging
import threading

from questnav.engine import InterviewSession
from questnav.models.response import QuestionnaireResponse

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Thread-safe map of live interview sessions.

    Args:
        max_sessions: upper bound on live sessions; 0 means unlimited
    """

    def __init__(self, max_sessions: int = 0) -> None:
        self._max = max_sessions
        self._sessions: dict[tuple[str, str], InterviewSession] = {}
        self._lock = threading.Lock()

    def add(self, user_id: str, session: InterviewSession) -> None:
        key = (user_id, session.session_id)
        with self._lock:
            if key in self._sessions:
                raise ValueError(
                    f"Session already exists: user_id={user_id}, session_id={session.session_id}"
                )
            if self._max and len(self._sessions) >= self._max:
                raise ValueError(f"Session limit reached ({self._max})")
            self._sessions[key] = session
        logger.info("Created session %s for %s (%s)", session.session_id, user_id, session.task.task_id)

    def get(self, user_id: str, session_id: str) -> InterviewSession:
        with self._lock:
            session = self._sessions.get((user_id, session_id))
        if session is None:
            raise ValueError(f"Session not found: user_id={user_id}, session_id={session_id}")
        return session

    def remove(self, user_id: str, session_id: str) -> None:
        with self._lock:
            session = self._sessions.pop((user_id, session_id), None)
        if session is None:
            raise ValueError(f"Session not found: user_id={user_id}, session_id={session_id}")
        logger.info("Removed session %s for %s", session_id, user_id)

    def for_user(self, user_id: str) -> list[InterviewSession]:
        with self._lock:
            return [s for (uid, _), s in self._sessions.items() if uid == user_id]

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


class ResponseStorage:
    """Completed responses grouped by questionnaire url, one per session."""

    def __init__(self) -> None:
        self._responses: dict[str, dict[tuple[str, str], QuestionnaireResponse]] = {}
        self._lock = threading.Lock()

    def add(self, user_id: str, session_id: str, response: QuestionnaireResponse) -> None:
        """Store ``response`` for the session, replacing any earlier one."""
        key = response.questionnaire or ""
        with self._lock:
            by_session = self._responses.setdefault(key, {})
            replaced = (user_id, session_id) in by_session
            by_session[(user_id, session_id)] = response
        if replaced:
            logger.info("Replaced response of session %s for %s", session_id, key)
        else:
            logger.info("Stored response of session %s for %s", session_id, key)

    def for_questionnaire(self, questionnaire: str) -> list[QuestionnaireResponse]:
        with self._lock:
            return list(self._responses.get(questionnaire, {}).values())

    def clear(self) -> None:
        with self._lock:
            self._responses.clear()
