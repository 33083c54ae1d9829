import math
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple


@dataclass(frozen=True)
class PlayTrace:
    """Client-reported record of one play attempt."""

    seed_echo: str
    input_events: Tuple[float, ...] = field(default_factory=tuple)
    elapsed_millis: float = 0
    obstacles_cleared: int = 0

    @classmethod
    def build(cls, seed_echo: str, input_events: Sequence[float], elapsed_millis: float, obstacles_cleared: int) -> 'PlayTrace':
        return cls(seed_echo, tuple(input_events), elapsed_millis, obstacles_cleared)


@dataclass(frozen=True)
class ValidationRules:
    max_score: int = 300
    min_millis_per_point: int = 1500
    min_events_per_point: float = 0.8
    max_events_per_point: float = 10
    min_mean_interval_ms: float = 100
    max_mean_interval_ms: float = 5000


DEFAULT_RULES = ValidationRules()


@dataclass(frozen=True)
class ValidationResult:
    accepted: bool
    reason: Optional[str] = None

    @classmethod
    def accept(cls) -> 'ValidationResult':
        return cls(True)

    @classmethod
    def reject(cls, reason: str) -> 'ValidationResult':
        return cls(False, reason)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def is_finite(value) -> bool:
    """True for finite numbers; ints too large for a float count as infinite."""
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def validate(claimed_score, trace: PlayTrace, rules: ValidationRules = DEFAULT_RULES) -> ValidationResult:
    """Decide whether ``claimed_score`` is plausible for ``trace``.

    Rules run cheapest first and the first failing rule is reported:
    score range, minimum duration, action count bounds, timestamp ordering,
    counter agreement, and finally the mean interval between actions.
    """
    if not _is_int(claimed_score) or claimed_score < 0:
        return ValidationResult.reject('Score must be a non-negative integer')
    if claimed_score > rules.max_score:
        return ValidationResult.reject(f'Score exceeds maximum allowed ({rules.max_score})')

    min_duration = claimed_score * rules.min_millis_per_point
    if trace.elapsed_millis < min_duration:
        return ValidationResult.reject(
            f'Duration too short. Expected at least {min_duration}ms, got {trace.elapsed_millis}ms'
        )

    events = trace.input_events
    min_events = math.floor(claimed_score * rules.min_events_per_point)
    max_events = math.floor(claimed_score * rules.max_events_per_point)
    if len(events) < min_events:
        return ValidationResult.reject(f'Too few jumps. Expected at least {min_events}, got {len(events)}')
    if len(events) > max_events:
        return ValidationResult.reject(f'Too many jumps. Expected at most {max_events}, got {len(events)}')

    if not all(is_finite(t) for t in events):
        return ValidationResult.reject('Jump timestamps must be finite')
    for prev, cur in zip(events, events[1:]):
        if cur <= prev:
            return ValidationResult.reject('Jump timestamps must be strictly increasing')

    if trace.obstacles_cleared != claimed_score:
        return ValidationResult.reject(
            f'Pipes passed ({trace.obstacles_cleared}) does not match score ({claimed_score})'
        )

    if len(events) > 1:
        # Diffs telescope, so the mean interval is the span over the gap count.
        mean_interval = (events[-1] - events[0]) / (len(events) - 1)
        if mean_interval < rules.min_mean_interval_ms:
            return ValidationResult.reject('Jumps are too frequent (possible automation)')
        if mean_interval > rules.max_mean_interval_ms:
            return ValidationResult.reject('Jumps are too infrequent (unusual pattern)')

    return ValidationResult.accept()
