import secrets
import threading
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from scoregate import db
from scoregate.models import GameSession
from .errors import StorageError

DEFAULT_SESSION_TTL_SEC = 600


@dataclass(frozen=True)
class Session:
    token: str
    player_identity: str
    seed: str
    created_at: float


def new_token() -> str:
    return secrets.token_urlsafe(16)


def new_seed() -> str:
    return str(uuid.uuid4())


class SessionStore(ABC):
    """Keyed store of game sessions that expire ``ttl`` seconds after creation.

    An expired session behaves exactly like one that never existed. Sessions
    leave the store as :class:`Session` values, never as live records.
    """

    def __init__(self, ttl: float = DEFAULT_SESSION_TTL_SEC, clock: Callable[[], float] = time.time):
        self.ttl = ttl
        self._clock = clock

    def _is_live(self, created_at: float, now: float) -> bool:
        return now - created_at < self.ttl

    @abstractmethod
    def create(self, player_identity: str) -> Session:
        ...

    @abstractmethod
    def resolve(self, token: str) -> Optional[Session]:
        ...

    @abstractmethod
    def consume(self, token: str) -> bool:
        """Remove a live session; True only for the caller that removed it."""

    @abstractmethod
    def purge_expired(self) -> int:
        """Delete every expired session and return how many were removed."""


class InMemorySessionStore(SessionStore):
    def __init__(self, ttl: float = DEFAULT_SESSION_TTL_SEC, clock: Callable[[], float] = time.time):
        super().__init__(ttl, clock)
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def create(self, player_identity: str) -> Session:
        session = Session(new_token(), player_identity, new_seed(), self._clock())
        with self._lock:
            self._sessions[session.token] = session
        return session

    def resolve(self, token: str) -> Optional[Session]:
        now = self._clock()
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return None
            if not self._is_live(session.created_at, now):
                del self._sessions[token]
                return None
            return session

    def consume(self, token: str) -> bool:
        now = self._clock()
        with self._lock:
            session = self._sessions.pop(token, None)
        return session is not None and self._is_live(session.created_at, now)

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [t for t, s in self._sessions.items() if not self._is_live(s.created_at, now)]
            for token in expired:
                del self._sessions[token]
        return len(expired)

    def __len__(self):
        with self._lock:
            return len(self._sessions)


class SqlSessionStore(SessionStore):
    """Sessions in the ``game_session`` table. Needs an app context."""

    def _commit(self, action: str) -> None:
        try:
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError(f'Failed to {action} game session') from exc

    def create(self, player_identity: str) -> Session:
        session = Session(new_token(), player_identity, new_seed(), self._clock())
        db.session.add(GameSession(
            token=session.token,
            player_identity=session.player_identity,
            seed=session.seed,
            created_at=session.created_at,
        ))
        self._commit('create')
        return session

    def resolve(self, token: str) -> Optional[Session]:
        now = self._clock()
        try:
            row = GameSession.query.filter_by(token=token).first()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError('Failed to look up game session') from exc
        if row is None:
            return None
        if not self._is_live(row.created_at, now):
            db.session.delete(row)
            self._commit('evict')
            return None
        return Session(row.token, row.player_identity, row.seed, row.created_at)

    def consume(self, token: str) -> bool:
        cutoff = self._clock() - self.ttl
        try:
            # A single conditional DELETE, so only one concurrent caller sees rowcount 1.
            removed = GameSession.query.filter(
                GameSession.token == token,
                GameSession.created_at > cutoff,
            ).delete(synchronize_session=False)
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError('Failed to consume game session') from exc
        self._commit('consume')
        return removed == 1

    def purge_expired(self) -> int:
        cutoff = self._clock() - self.ttl
        try:
            removed = GameSession.query.filter(GameSession.created_at <= cutoff).delete(synchronize_session=False)
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError('Failed to purge game sessions') from exc
        self._commit('purge')
        return removed
