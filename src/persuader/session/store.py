"""
Session store abstraction.

The engine never keeps session state in module globals: a ``SessionStore``
is injected into the orchestrator (and from there into the metrics
recorder and session coordinator).

Concurrency contract: each session id has a single writer at a time.
Stores read and replace whole ``Session`` records, so two pipeline runs
sharing one session id concurrently can interleave read-modify-write cycles
and the last write wins. Callers that share a session id across concurrent
runs must serialize those runs themselves. Independent session ids are
fully isolated.
"""

from typing import Optional, Protocol, runtime_checkable

from persuader.models.session import Session


@runtime_checkable
class SessionStore(Protocol):
    """
    Protocol for session stores.

    Records are immutable pydantic models; ``set`` replaces the stored
    record for ``session.id``.
    """

    async def get(self, session_id: str) -> Optional[Session]:
        ...

    async def set(self, session: Session) -> None:
        ...

    async def delete(self, session_id: str) -> None:
        ...


class InMemorySessionStore:
    """Process-local store backed by a dict. Suitable for tests and single processes."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    async def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    async def set(self, session: Session) -> None:
        self._sessions[session.id] = session

    async def delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions
