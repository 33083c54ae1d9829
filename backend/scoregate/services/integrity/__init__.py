"""Score-integrity services: sessions, seeded randomness, anti-cheat, leaderboard.

This package holds the domain logic behind the game API. HTTP routes and
socket handlers import from here; nothing in this package depends on the
request context except the SQL-backed stores, which need an app context.
"""

from .errors import (
    ScoreGateError,
    InputError,
    SessionInvalid,
    IdentityMismatch,
    SeedMismatch,
    ValidationFailed,
    StorageError,
)
from .leaderboard import (
    LeaderboardRecord,
    LeaderboardStore,
    InMemoryLeaderboardStore,
    SqlLeaderboardStore,
    UpsertResult,
)
from .protocol import SessionProtocol, SubmitResult
from .seed_random import SeededRNG, derive, next_value, seeded_random
from .sessions import Session, SessionStore, InMemorySessionStore, SqlSessionStore
from .validator import PlayTrace, ValidationResult, ValidationRules, validate
