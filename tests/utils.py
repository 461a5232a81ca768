"""Utility helpers for test factories."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable, List

from vocab_srs.models.progress.user_word_progress_model import UserWordProgress
from vocab_srs.models.vocabulary_model import PartOfSpeech, Vocabulary
from vocab_srs.srs.scheduler import ProgressRecord, WordStatus

NOW = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


def build_vocabulary(index: int, **kwargs) -> Vocabulary:
    defaults = {
        "id": f"v{index:03d}",
        "course_id": "course-1",
        "unit_id": 1,
        "word": f"단어{index:03d}",
        "meaning": f"word {index}",
        "part_of_speech": PartOfSpeech.NOUN,
    }
    defaults.update(kwargs)
    return Vocabulary(**defaults)


def build_vocabulary_range(start: int, count: int, **kwargs) -> List[Vocabulary]:
    return [build_vocabulary(index, **kwargs) for index in range(start, start + count)]


def create_vocabulary(db, entries: Iterable[Vocabulary]) -> List[Vocabulary]:
    entries = list(entries)
    db.add_all(entries)
    db.commit()
    return entries


def progress_record(
    vocabulary_id: str,
    *,
    user_id: str = "user-1",
    status: WordStatus = WordStatus.LEARNING,
    interval: int = 1,
    ease_factor: float = 2.5,
    streak: int = 1,
    mistake_count: int = 0,
    next_review_at: datetime | None = None,
    last_reviewed_at: datetime | None = None,
    version: int = 1,
) -> ProgressRecord:
    if last_reviewed_at is None and next_review_at is not None:
        last_reviewed_at = next_review_at - timedelta(days=interval)
    return ProgressRecord(
        user_id=user_id,
        vocabulary_id=vocabulary_id,
        status=status,
        interval=interval,
        ease_factor=ease_factor,
        streak=streak,
        mistake_count=mistake_count,
        next_review_at=next_review_at,
        last_reviewed_at=last_reviewed_at,
        version=version,
    )


def create_progress(db, record: ProgressRecord) -> UserWordProgress:
    row = UserWordProgress(
        user_id=record.user_id,
        vocabulary_id=record.vocabulary_id,
        status=record.status,
        interval=record.interval,
        ease_factor=record.ease_factor,
        streak=record.streak,
        mistake_count=record.mistake_count,
        next_review_at=record.next_review_at,
        last_reviewed_at=record.last_reviewed_at,
        version=max(record.version, 1),
    )
    db.add(row)
    db.commit()
    return row
