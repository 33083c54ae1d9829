import threading
import time
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from scoregate import db
from scoregate.models import LeaderboardEntry
from .errors import StorageError


@dataclass(frozen=True)
class LeaderboardRecord:
    player_identity: str
    highest_score: int
    last_score: int
    created_at: float
    updated_at: float
    player_device_id: Optional[str] = None


@dataclass(frozen=True)
class UpsertResult:
    is_new_high_score: bool
    record: LeaderboardRecord


def rank_key(record: LeaderboardRecord):
    # Highest first; ties go to whoever got there first, then by name.
    return (-record.highest_score, record.updated_at, record.player_identity)


class _KeyedLocks:
    """One lock per player identity, created on first use."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = defaultdict(threading.Lock)

    def __call__(self, key: str) -> threading.Lock:
        with self._guard:
            return self._locks[key]


class LeaderboardStore(ABC):
    """Per-player best/last score records.

    ``upsert`` is atomic per player identity: concurrent submissions for the
    same player never lose an update.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._key_lock = _KeyedLocks()

    @abstractmethod
    def upsert(self, player_identity: str, score: int, device_id: Optional[str] = None) -> UpsertResult:
        ...

    @abstractmethod
    def top_n(self, n: int) -> List[LeaderboardRecord]:
        ...

    @abstractmethod
    def get(self, player_identity: str) -> Optional[LeaderboardRecord]:
        ...

    def get_highest(self, player_identity: str) -> int:
        record = self.get(player_identity)
        return record.highest_score if record else 0


class InMemoryLeaderboardStore(LeaderboardStore):
    def __init__(self, clock: Callable[[], float] = time.time):
        super().__init__(clock)
        self._records: Dict[str, LeaderboardRecord] = {}
        self._records_lock = threading.Lock()

    def upsert(self, player_identity: str, score: int, device_id: Optional[str] = None) -> UpsertResult:
        with self._key_lock(player_identity):
            now = self._clock()
            with self._records_lock:
                current = self._records.get(player_identity)
            if current is None:
                record = LeaderboardRecord(player_identity, score, score, now, now, device_id)
                is_new = True
            else:
                is_new = score > current.highest_score
                record = replace(
                    current,
                    highest_score=max(current.highest_score, score),
                    last_score=score,
                    updated_at=now,
                    player_device_id=device_id,
                )
            with self._records_lock:
                self._records[player_identity] = record
        return UpsertResult(is_new, record)

    def top_n(self, n: int) -> List[LeaderboardRecord]:
        with self._records_lock:
            records = list(self._records.values())
        return sorted(records, key=rank_key)[:max(0, n)]

    def get(self, player_identity: str) -> Optional[LeaderboardRecord]:
        with self._records_lock:
            return self._records.get(player_identity)


def _to_record(entry: LeaderboardEntry) -> LeaderboardRecord:
    return LeaderboardRecord(
        player_identity=entry.player_identity,
        highest_score=entry.highest_score,
        last_score=entry.last_score,
        created_at=entry.created_at,
        updated_at=entry.updated_at,
        player_device_id=entry.player_device_id,
    )


class SqlLeaderboardStore(LeaderboardStore):
    """Records in the ``leaderboard_entry`` table. Needs an app context.

    The per-key lock serializes writers inside this process; the row lock
    (``SELECT ... FOR UPDATE``) serializes them across processes on databases
    that support it. A player's first row has nothing to lock yet, so when
    another worker wins that insert the unique index rejects ours and the
    upsert reruns once as an update. Each attempt commits as a single
    transaction.
    """

    def upsert(self, player_identity: str, score: int, device_id: Optional[str] = None) -> UpsertResult:
        with self._key_lock(player_identity):
            for attempt in range(2):
                try:
                    return self._write(player_identity, score, device_id)
                except IntegrityError as exc:
                    db.session.rollback()
                    # Another worker inserted this player's first row; the second pass locks and updates it.
                    if attempt:
                        raise StorageError('Failed to update leaderboard') from exc
                except SQLAlchemyError as exc:
                    db.session.rollback()
                    raise StorageError('Failed to update leaderboard') from exc

    def _locked_entry(self, player_identity: str) -> Optional[LeaderboardEntry]:
        return (
            LeaderboardEntry.query
            .filter_by(player_identity=player_identity)
            .with_for_update()
            .first()
        )

    def _write(self, player_identity: str, score: int, device_id: Optional[str]) -> UpsertResult:
        entry = self._locked_entry(player_identity)
        now = self._clock()
        if entry is None:
            entry = LeaderboardEntry(
                player_identity=player_identity,
                player_device_id=device_id,
                highest_score=score,
                last_score=score,
                created_at=now,
                updated_at=now,
            )
            is_new = True
        else:
            is_new = score > entry.highest_score
            entry.highest_score = max(entry.highest_score, score)
            entry.last_score = score
            entry.updated_at = now
            entry.player_device_id = device_id
        record = _to_record(entry)
        db.session.add(entry)
        db.session.commit()
        return UpsertResult(is_new, record)

    def top_n(self, n: int) -> List[LeaderboardRecord]:
        try:
            entries = (
                LeaderboardEntry.query
                .order_by(
                    LeaderboardEntry.highest_score.desc(),
                    LeaderboardEntry.updated_at.asc(),
                    LeaderboardEntry.player_identity.asc(),
                )
                .limit(max(0, n))
                .all()
            )
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError('Failed to fetch leaderboard') from exc
        return [_to_record(e) for e in entries]

    def get(self, player_identity: str) -> Optional[LeaderboardRecord]:
        try:
            entry = LeaderboardEntry.query.filter_by(player_identity=player_identity).first()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError('Failed to fetch leaderboard entry') from exc
        return _to_record(entry) if entry else None
