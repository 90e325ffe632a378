"""
Session store: session records keyed by a monotonically increasing id.

Ids are handed out 1, 2, 3, ... with no reuse and no gaps. Records are
never deleted. Callers only ever see copies; update() is the single
write path.
"""

from dataclasses import replace
from typing import Callable, Dict, List, Optional

from sessionpay.core.exceptions import SessionNotFound
from sessionpay.core.models import FIRST_SESSION_ID, Session


class SessionStore:

    def __init__(self, next_id: int = FIRST_SESSION_ID):
        self._sessions: Dict[int, Session] = {}
        self._next_id = next_id

    @property
    def next_id(self) -> int:
        return self._next_id

    def allocate(self, record: Session) -> int:
        """Assign the next id to `record`, store it, and return the id."""
        session_id = self._next_id
        self._sessions[session_id] = replace(record, session_id=session_id)
        self._next_id += 1
        return session_id

    def get(self, session_id: int) -> Optional[Session]:
        session = self._sessions.get(session_id)
        return replace(session) if session is not None else None

    def update(self, session_id: int, mutator: Callable[[Session], None]) -> Session:
        """
        Read-modify-write one record.

        `mutator` edits a copy; the copy replaces the stored record only if
        the mutator returns without raising.
        """
        current = self._sessions.get(session_id)
        if current is None:
            raise SessionNotFound("Session not found", {"session_id": session_id})
        working = replace(current)
        mutator(working)
        self._sessions[session_id] = working
        return replace(working)

    def all(self) -> List[Session]:
        return [replace(s) for _, s in sorted(self._sessions.items())]

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: int) -> bool:
        return session_id in self._sessions

    def to_dict(self) -> dict:
        return {
            "next_id":  self._next_id,
            "sessions": [s.to_dict() for s in self.all()],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SessionStore":
        store = cls(next_id=int(data.get("next_id", FIRST_SESSION_ID)))
        for item in data.get("sessions", []):
            session = Session.from_dict(item)
            store._sessions[session.session_id] = session
        return store
