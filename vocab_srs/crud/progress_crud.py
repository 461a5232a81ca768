# Fichier: vocab_srs/crud/progress_crud.py
"""Progress store: repository protocol and its SQLAlchemy implementation."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from typing import Iterator, List, Optional, Protocol, Sequence, Tuple

from sqlalchemy import and_, exists, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session

from vocab_srs.core.exceptions import ProgressConflictError, StoreError
from vocab_srs.models.progress.user_word_progress_model import UserWordProgress
from vocab_srs.models.vocabulary_model import Vocabulary
from vocab_srs.srs.scheduler import ProgressRecord, SessionScope, WordStatus, as_utc

logger = logging.getLogger(__name__)

DueRow = Tuple[Vocabulary, ProgressRecord]


class ProgressRepository(Protocol):
    """Narrow store interface the scheduler depends on."""

    def get_vocabulary(self, vocabulary_id: str) -> Optional[Vocabulary]: ...

    def list_vocabulary(self, scope: SessionScope) -> List[Vocabulary]: ...

    def get_progress(self, user_id: str, vocabulary_id: str) -> Optional[ProgressRecord]: ...

    def upsert_progress(self, record: ProgressRecord) -> ProgressRecord:
        """Persist ``record`` if the stored version still equals ``record.version``."""
        ...

    def query_due(
        self, user_id: str, scope: SessionScope, now: datetime, limit: int
    ) -> List[DueRow]: ...

    def query_learning(
        self, user_id: str, scope: SessionScope, exclude_ids: Sequence[str], limit: int
    ) -> List[DueRow]: ...

    def query_new(
        self, user_id: str, scope: SessionScope, exclude_ids: Sequence[str], limit: int
    ) -> List[Vocabulary]: ...


def to_record(row: UserWordProgress) -> ProgressRecord:
    return ProgressRecord(
        user_id=row.user_id,
        vocabulary_id=row.vocabulary_id,
        status=WordStatus(row.status),
        interval=row.interval,
        ease_factor=row.ease_factor,
        streak=row.streak,
        mistake_count=row.mistake_count,
        next_review_at=as_utc(row.next_review_at),
        last_reviewed_at=as_utc(row.last_reviewed_at),
        version=row.version,
    )


class SQLProgressRepository:
    """Progress store backed by the ``user_word_progress`` table.

    Writes are flushed, never committed: the request owns the transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Catalogue
    # ------------------------------------------------------------------
    def get_vocabulary(self, vocabulary_id: str) -> Optional[Vocabulary]:
        with self._store_errors():
            return self.db.get(Vocabulary, vocabulary_id)

    def list_vocabulary(self, scope: SessionScope) -> List[Vocabulary]:
        stmt = (
            select(Vocabulary)
            .where(*self._scope_filters(scope))
            .order_by(Vocabulary.unit_id.asc(), Vocabulary.word.asc(), Vocabulary.id.asc())
        )
        with self._store_errors():
            return list(self.db.scalars(stmt).all())

    # ------------------------------------------------------------------
    # Progression
    # ------------------------------------------------------------------
    def get_progress(self, user_id: str, vocabulary_id: str) -> Optional[ProgressRecord]:
        stmt = select(UserWordProgress).where(
            UserWordProgress.user_id == user_id,
            UserWordProgress.vocabulary_id == vocabulary_id,
        ).execution_options(populate_existing=True)
        with self._store_errors():
            row = self.db.scalars(stmt).first()
        return to_record(row) if row is not None else None

    def upsert_progress(self, record: ProgressRecord) -> ProgressRecord:
        if not record.is_persisted:
            return self._insert(record)
        return self._compare_and_swap(record)

    def query_due(
        self, user_id: str, scope: SessionScope, now: datetime, limit: int
    ) -> List[DueRow]:
        if limit <= 0:
            return []
        stmt = (
            select(Vocabulary, UserWordProgress)
            .join(UserWordProgress, UserWordProgress.vocabulary_id == Vocabulary.id)
            .where(
                UserWordProgress.user_id == user_id,
                UserWordProgress.next_review_at.is_not(None),
                UserWordProgress.next_review_at <= as_utc(now),
                *self._scope_filters(scope),
            )
            .order_by(UserWordProgress.next_review_at.asc(), UserWordProgress.vocabulary_id.asc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        with self._store_errors():
            rows = self.db.execute(stmt).all()
        return [(vocabulary, to_record(progress)) for vocabulary, progress in rows]

    def query_learning(
        self, user_id: str, scope: SessionScope, exclude_ids: Sequence[str], limit: int
    ) -> List[DueRow]:
        if limit <= 0:
            return []
        filters = [
            UserWordProgress.user_id == user_id,
            UserWordProgress.status == WordStatus.LEARNING,
            *self._scope_filters(scope),
        ]
        if exclude_ids:
            filters.append(UserWordProgress.vocabulary_id.not_in(list(exclude_ids)))
        stmt = (
            select(Vocabulary, UserWordProgress)
            .join(UserWordProgress, UserWordProgress.vocabulary_id == Vocabulary.id)
            .where(*filters)
            .order_by(UserWordProgress.vocabulary_id.asc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        with self._store_errors():
            rows = self.db.execute(stmt).all()
        return [(vocabulary, to_record(progress)) for vocabulary, progress in rows]

    def query_new(
        self, user_id: str, scope: SessionScope, exclude_ids: Sequence[str], limit: int
    ) -> List[Vocabulary]:
        if limit <= 0:
            return []
        already_studied = exists().where(
            and_(
                UserWordProgress.vocabulary_id == Vocabulary.id,
                UserWordProgress.user_id == user_id,
            )
        )
        filters = [~already_studied, *self._scope_filters(scope)]
        if exclude_ids:
            filters.append(Vocabulary.id.not_in(list(exclude_ids)))
        stmt = (
            select(Vocabulary)
            .where(*filters)
            .order_by(Vocabulary.unit_id.asc(), Vocabulary.word.asc(), Vocabulary.id.asc())
            .limit(limit)
        )
        with self._store_errors():
            return list(self.db.scalars(stmt).all())

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _scope_filters(scope: SessionScope) -> list:
        filters = [Vocabulary.course_id == scope.course_id]
        if not scope.all_units:
            filters.append(Vocabulary.unit_id == scope.unit_id)
        return filters

    def _insert(self, record: ProgressRecord) -> ProgressRecord:
        row = UserWordProgress(
            user_id=record.user_id,
            vocabulary_id=record.vocabulary_id,
            status=record.status,
            interval=record.interval,
            ease_factor=record.ease_factor,
            streak=record.streak,
            mistake_count=record.mistake_count,
            next_review_at=as_utc(record.next_review_at),
            last_reviewed_at=as_utc(record.last_reviewed_at),
            version=1,
        )
        self.db.add(row)
        try:
            with self._store_errors():
                self.db.flush([row])
        except IntegrityError as exc:
            self.db.rollback()
            logger.warning(
                "SRS conflict: progress for user %s / vocabulary %s was created concurrently",
                record.user_id,
                record.vocabulary_id,
            )
            raise ProgressConflictError("progress created concurrently") from exc
        return to_record(row)

    def _compare_and_swap(self, record: ProgressRecord) -> ProgressRecord:
        next_version = record.version + 1
        stmt = (
            update(UserWordProgress)
            .where(
                UserWordProgress.user_id == record.user_id,
                UserWordProgress.vocabulary_id == record.vocabulary_id,
                UserWordProgress.version == record.version,
            )
            .values(
                status=record.status,
                interval=record.interval,
                ease_factor=record.ease_factor,
                streak=record.streak,
                mistake_count=record.mistake_count,
                next_review_at=as_utc(record.next_review_at),
                last_reviewed_at=as_utc(record.last_reviewed_at),
                version=next_version,
            )
            .execution_options(synchronize_session=False)
        )
        with self._store_errors():
            result = self.db.execute(stmt)
        if result.rowcount != 1:
            logger.warning(
                "SRS conflict: progress for user %s / vocabulary %s changed since version %s",
                record.user_id,
                record.vocabulary_id,
                record.version,
            )
            raise ProgressConflictError("progress changed concurrently")
        return replace(
            record,
            next_review_at=as_utc(record.next_review_at),
            last_reviewed_at=as_utc(record.last_reviewed_at),
            version=next_version,
        )

    @contextmanager
    def _store_errors(self) -> Iterator[None]:
        """Wrap driver failures as :class:`StoreError`; integrity errors pass through."""

        try:
            yield
        except IntegrityError:
            raise
        except DBAPIError as exc:
            self.db.rollback()
            logger.error("Progress store failure: %s", exc)
            raise StoreError("progress store unavailable") from exc


__all__ = ["ProgressRepository", "SQLProgressRepository", "to_record"]
