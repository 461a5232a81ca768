"""Pure spaced-repetition rules for vocabulary review.

Nothing in this module touches the database or HTTP layer: the grader works on
immutable :class:`ProgressRecord` values and the session helpers only merge
already-fetched tiers. Persistence lives in :mod:`vocab_srs.crud`.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, List, Optional, Sequence, Tuple


DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
MAX_EASE_FACTOR = 2.5
EASE_PENALTY = 0.2
EASE_BONUS = 0.1

# Learning items graduate to REVIEW once their interval reaches this many days.
GRADUATION_INTERVAL_DAYS = 3
# Review items whose interval exceeds this many days are MASTERED.
MASTERY_INTERVAL_DAYS = 30

ALL_UNITS = "ALL"


class WordStatus(str, enum.Enum):
    NEW = "NEW"
    LEARNING = "LEARNING"
    REVIEW = "REVIEW"
    MASTERED = "MASTERED"


class Quality(int, enum.Enum):
    """Binary answer signal, a restriction of the classical 0-5 SM-2 scale."""

    FORGOT = 0
    KNEW = 5


@dataclass(frozen=True)
class ProgressRecord:
    user_id: str
    vocabulary_id: str
    status: WordStatus = WordStatus.NEW
    interval: int = 0
    ease_factor: float = DEFAULT_EASE_FACTOR
    streak: int = 0
    mistake_count: int = 0
    next_review_at: Optional[datetime] = None
    last_reviewed_at: Optional[datetime] = None
    # 0 means "never persisted"; the store bumps it on every write.
    version: int = 0

    @classmethod
    def virtual(cls, user_id: str, vocabulary_id: str) -> "ProgressRecord":
        """Return the record a never-graded pair behaves as."""

        return cls(user_id=user_id, vocabulary_id=vocabulary_id)

    @property
    def is_persisted(self) -> bool:
        return self.version > 0


@dataclass(frozen=True)
class SessionScope:
    course_id: str
    unit_id: Optional[int] = None

    @property
    def all_units(self) -> bool:
        return self.unit_id is None


@dataclass(frozen=True)
class SessionItem:
    vocabulary: Any
    progress: Optional[ProgressRecord]


@dataclass(frozen=True)
class StudySession:
    items: Tuple[SessionItem, ...]
    due_reviews: int

    @property
    def total(self) -> int:
        return len(self.items)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert to UTC; naive values (SQLite hands those back) are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero (SM-2 convention).

    ``round()`` is banker's rounding, which would turn ``12.5`` into ``12``.
    """

    return int(math.floor(value + 0.5))


def clamp_ease_factor(value: float) -> float:
    return max(MIN_EASE_FACTOR, min(MAX_EASE_FACTOR, value))


def parse_quality(raw: Any) -> Quality:
    """Coerce an incoming quality value, raising ``ValueError`` when out of domain."""

    if isinstance(raw, bool):
        raise ValueError(f"quality must be 0 or 5, got {raw!r}")
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw.lstrip("-").isdigit():
            raise ValueError(f"quality must be 0 or 5, got {raw!r}")
        raw = int(raw)
    if isinstance(raw, float):
        if not raw.is_integer():
            raise ValueError(f"quality must be 0 or 5, got {raw!r}")
        raw = int(raw)
    try:
        return Quality(raw)
    except ValueError:
        raise ValueError(f"quality must be 0 or 5, got {raw!r}") from None


def apply_review(record: ProgressRecord, quality: Quality, now: datetime) -> ProgressRecord:
    """Compute the record that follows ``record`` after one graded answer.

    Failure always routes back to LEARNING with a one-day interval. Success
    walks NEW -> LEARNING -> REVIEW -> MASTERED.
    """

    status = record.status
    interval = record.interval
    ease = record.ease_factor
    streak = record.streak
    mistakes = record.mistake_count

    if quality is Quality.FORGOT:
        status = WordStatus.LEARNING
        interval = 1
        ease = ease - EASE_PENALTY
        streak = 0
        mistakes += 1
    elif status is WordStatus.NEW:
        status = WordStatus.LEARNING
        interval = 1
        streak = 1
    elif status is WordStatus.LEARNING:
        interval += 1
        streak += 1
        if interval >= GRADUATION_INTERVAL_DAYS:
            status = WordStatus.REVIEW
    elif status in (WordStatus.REVIEW, WordStatus.MASTERED):
        interval = round_half_up(interval * ease)
        streak += 1
        ease = ease + EASE_BONUS
        status = WordStatus.MASTERED if interval > MASTERY_INTERVAL_DAYS else WordStatus.REVIEW
    else:  # pragma: no cover - WordStatus is closed
        raise ValueError(f"unknown status {status!r}")

    return replace(
        record,
        status=status,
        interval=interval,
        ease_factor=clamp_ease_factor(ease),
        streak=streak,
        mistake_count=mistakes,
        next_review_at=now + timedelta(days=interval),
        last_reviewed_at=now,
    )


def due_sort_key(pair: Tuple[Any, ProgressRecord]) -> Tuple[datetime, str]:
    """Most overdue first; equal timestamps fall back to the vocabulary id."""

    _, progress = pair
    return progress.next_review_at, progress.vocabulary_id


def merge_session_tiers(
    due: Iterable[Tuple[Any, ProgressRecord]],
    learning: Iterable[Tuple[Any, ProgressRecord]],
    new: Iterable[Any],
    limit: int,
) -> StudySession:
    """Concatenate the three tiers in priority order without duplicates.

    Repositories already exclude selected ids from lower tiers; this keeps the
    guarantee even when a store returns overlapping rows.
    """

    items: List[SessionItem] = []
    seen: set[str] = set()
    due_count = 0

    def _push(vocabulary: Any, progress: Optional[ProgressRecord]) -> bool:
        if len(items) >= limit:
            return False
        if vocabulary.id in seen:
            return True
        seen.add(vocabulary.id)
        items.append(SessionItem(vocabulary=vocabulary, progress=progress))
        return True

    for vocabulary, progress in due:
        if not _push(vocabulary, progress):
            break
        due_count = len(items)

    for vocabulary, progress in learning:
        if not _push(vocabulary, progress):
            break

    for vocabulary in new:
        if not _push(vocabulary, None):
            break

    return StudySession(items=tuple(items), due_reviews=due_count)


def selected_ids(items: Sequence[SessionItem]) -> List[str]:
    return [item.vocabulary.id for item in items]


__all__ = [
    "ALL_UNITS",
    "DEFAULT_EASE_FACTOR",
    "MAX_EASE_FACTOR",
    "MIN_EASE_FACTOR",
    "ProgressRecord",
    "Quality",
    "SessionItem",
    "SessionScope",
    "StudySession",
    "WordStatus",
    "apply_review",
    "as_utc",
    "clamp_ease_factor",
    "due_sort_key",
    "merge_session_tiers",
    "parse_quality",
    "round_half_up",
    "selected_ids",
    "utcnow",
]
