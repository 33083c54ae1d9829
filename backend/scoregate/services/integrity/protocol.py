import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from scoregate.models import DEVICE_ID_MAX_LENGTH, IDENTITY_MAX_LENGTH
from .errors import (
    IdentityMismatch,
    InputError,
    SeedMismatch,
    SessionInvalid,
    ValidationFailed,
)
from .leaderboard import LeaderboardRecord, LeaderboardStore, UpsertResult
from .sessions import Session, SessionStore
from .validator import PlayTrace, ValidationResult, validate

DEFAULT_LEADERBOARD_LIMIT = 100


@dataclass(frozen=True)
class SubmitResult:
    accepted: bool
    is_new_high_score: bool


def normalize_identity(player_identity) -> str:
    if not isinstance(player_identity, str) or not player_identity.strip():
        raise InputError('Player identity is required')
    identity = player_identity.strip()
    if len(identity) > IDENTITY_MAX_LENGTH:
        raise InputError(f'Player identity must be at most {IDENTITY_MAX_LENGTH} characters')
    return identity


class SessionProtocol:
    """Start and submit operations over injected session/leaderboard stores.

    A submission walks: resolve token -> identity check -> seed check ->
    anti-cheat rules -> consume token -> leaderboard upsert. Any failure
    before the upsert leaves the leaderboard untouched.
    """

    def __init__(
        self,
        sessions: SessionStore,
        leaderboard: LeaderboardStore,
        validator: Callable[[int, PlayTrace], ValidationResult] = validate,
        logger: Optional[logging.Logger] = None,
        on_accept: Optional[Callable[[UpsertResult], None]] = None,
        leaderboard_limit: int = DEFAULT_LEADERBOARD_LIMIT,
    ):
        self.sessions = sessions
        self.leaderboard = leaderboard
        self._validate = validator
        self.logger = logger or logging.getLogger(__name__)
        self._on_accept = on_accept
        self.leaderboard_limit = leaderboard_limit

    def start(self, player_identity) -> Session:
        identity = normalize_identity(player_identity)
        session = self.sessions.create(identity)
        self.logger.info(f"[session-start] player={identity}")
        return session

    def submit(
        self,
        token: str,
        claimed_score,
        trace: PlayTrace,
        player_identity: Optional[str] = None,
        device_id: Optional[str] = None,
    ) -> SubmitResult:
        if device_id is not None and len(device_id) > DEVICE_ID_MAX_LENGTH:
            raise InputError(f'Device id must be at most {DEVICE_ID_MAX_LENGTH} characters')

        session = self.sessions.resolve(token)
        if session is None:
            raise SessionInvalid()

        if player_identity is not None and normalize_identity(player_identity) != session.player_identity:
            self.logger.warning(f"[submit-reject] player={session.player_identity} identity mismatch")
            raise IdentityMismatch()

        if trace.seed_echo != session.seed:
            self.logger.warning(f"[submit-reject] player={session.player_identity} seed mismatch")
            raise SeedMismatch()

        verdict = self._validate(claimed_score, trace)
        if not verdict.accepted:
            self.logger.info(
                f"[submit-reject] player={session.player_identity} score={claimed_score} reason={verdict.reason}"
            )
            raise ValidationFailed(verdict.reason)

        # Another submission of this token may have won the race since resolve.
        if not self.sessions.consume(token):
            raise SessionInvalid()

        result = self.leaderboard.upsert(session.player_identity, claimed_score, device_id)
        self.logger.info(
            f"[submit-accept] player={session.player_identity} score={claimed_score} new_high={result.is_new_high_score}"
        )
        if self._on_accept is not None:
            # The score is already committed; a failed notification must not fail the submit.
            try:
                self._on_accept(result)
            except Exception:
                self.logger.exception(f"[notify-fail] player={session.player_identity}")
        return SubmitResult(accepted=True, is_new_high_score=result.is_new_high_score)

    def top(self, limit: Optional[int] = None) -> List[LeaderboardRecord]:
        if limit is None or limit > self.leaderboard_limit:
            limit = self.leaderboard_limit
        return self.leaderboard.top_n(limit)

    def highest_score(self, player_identity) -> int:
        return self.leaderboard.get_highest(normalize_identity(player_identity))
