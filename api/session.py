"""Table sessions: signed ids and a TTL-bound in-memory store.

A session remembers one player's table between requests as two serialized
documents (live state and hand history), so any worker holding the store
can rebuild the table.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from uuid import uuid4

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from config import config

logger = logging.getLogger(__name__)


@dataclass
class TableSession:
    """Saved documents of one table, its unlocked achievements, and bookkeeping timestamps."""

    state: str | None = None
    history: str | None = None
    achievements: dict[str, str] = field(default_factory=dict)
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)

    def touch(self) -> None:
        self.last_activity = time.time()


class SessionSigner:
    """Sign and verify session ids with itsdangerous."""

    def __init__(self, secret_key: str | None = None) -> None:
        self._serializer = URLSafeTimedSerializer(
            secret_key or config.security.secret_key,
            salt="table-session",
        )

    def sign(self, session_id: str) -> str:
        return self._serializer.dumps(session_id)

    def unsign(self, token: str, max_age: int | None = None) -> str | None:
        """
        Verify a token and return the session id inside it.

        Args:
            token: The signed token to verify
            max_age: Maximum age in seconds (defaults to the session TTL)

        Returns:
            The session id, or None for a forged, mangled or expired token
        """
        try:
            return self._serializer.loads(token, max_age=max_age or config.session_ttl)
        except (BadSignature, SignatureExpired):
            return None


_session_signer: SessionSigner | None = None


def get_session_signer() -> SessionSigner:
    """Get or create the process-wide signer."""
    global _session_signer
    if _session_signer is None:
        _session_signer = SessionSigner()
    return _session_signer


def extract_session_id(token: str) -> str | None:
    """Raw session id behind a signed token, or None if it doesn't verify."""
    return get_session_signer().unsign(token)


class SessionStore(ABC):
    """Where table sessions live between requests."""

    @abstractmethod
    async def get(self, session_id: str) -> TableSession | None:
        ...

    @abstractmethod
    async def put(self, session_id: str, session: TableSession, ttl: int | None = None) -> None:
        ...

    @abstractmethod
    async def delete(self, session_id: str) -> None:
        ...

    async def exists(self, session_id: str) -> bool:
        return await self.get(session_id) is not None

    def new_session_id(self, signed: bool = True) -> str:
        """
        Mint a session id.

        Args:
            signed: Return a signed token rather than the bare UUID
        """
        session_id = str(uuid4())
        return get_session_signer().sign(session_id) if signed else session_id


class InMemorySessionStore(SessionStore):
    """Process-local store; a session expires ``ttl`` seconds after its last write."""

    def __init__(self) -> None:
        self._sessions: dict[str, tuple[TableSession, float]] = {}

    async def get(self, session_id: str) -> TableSession | None:
        entry = self._sessions.get(session_id)
        if entry is None:
            return None

        session, expires_at = entry
        if expires_at < time.time():
            del self._sessions[session_id]
            return None
        return session

    async def put(self, session_id: str, session: TableSession, ttl: int | None = None) -> None:
        session.touch()
        expires_at = session.last_activity + (ttl or config.session_ttl)
        self._sessions[session_id] = (session, expires_at)

    async def delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    async def cleanup_expired(self) -> int:
        """Drop every expired session; returns how many went."""
        now = time.time()
        expired = [sid for sid, (_, expires_at) in self._sessions.items() if expires_at < now]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.debug("Dropped %d expired sessions", len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)


_session_store: SessionStore | None = None


async def get_session_store() -> SessionStore:
    """Get or create the process-wide store."""
    global _session_store
    if _session_store is None:
        _session_store = InMemorySessionStore()
    return _session_store


async def open_session() -> str:
    """Start an empty session and return its signed id."""
    store = await get_session_store()
    token = store.new_session_id()
    await store.put(token, TableSession())
    logger.debug("Opened a new table session")
    return token


async def load_session(token: str) -> TableSession | None:
    """The session behind ``token``, or None if the token is bad or the session gone."""
    if extract_session_id(token) is None:
        return None
    store = await get_session_store()
    return await store.get(token)


async def save_session(token: str, session: TableSession) -> None:
    store = await get_session_store()
    await store.put(token, session)


async def close_session(token: str) -> None:
    store = await get_session_store()
    await store.delete(token)
