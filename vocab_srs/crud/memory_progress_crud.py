"""Dictionary-backed progress store.

Same contract as :class:`~vocab_srs.crud.progress_crud.SQLProgressRepository`,
including the compare-and-swap on ``version``. Used to exercise the scheduler
without a database.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from vocab_srs.core.exceptions import ProgressConflictError
from vocab_srs.db.base import Vocabulary
from vocab_srs.srs.scheduler import ProgressRecord, SessionScope, WordStatus, due_sort_key

PairKey = Tuple[str, str]


class InMemoryProgressRepository:
    def __init__(self, vocabulary: Iterable[Vocabulary] = ()):
        self._lock = threading.Lock()
        self._vocabulary: Dict[str, Vocabulary] = {}
        self._progress: Dict[PairKey, ProgressRecord] = {}
        self.add_vocabulary(*vocabulary)

    # --- Seeding helpers ---
    def add_vocabulary(self, *entries: Vocabulary) -> None:
        with self._lock:
            for entry in entries:
                self._vocabulary[entry.id] = entry

    def put_progress(self, record: ProgressRecord) -> ProgressRecord:
        """Store ``record`` unconditionally, as if it had been graded before."""

        stored = replace(record, version=max(record.version, 1))
        with self._lock:
            self._progress[(stored.user_id, stored.vocabulary_id)] = stored
        return stored

    def progress_count(self) -> int:
        return len(self._progress)

    # --- ProgressRepository ---
    def get_vocabulary(self, vocabulary_id: str) -> Optional[Vocabulary]:
        return self._vocabulary.get(vocabulary_id)

    def list_vocabulary(self, scope: SessionScope) -> List[Vocabulary]:
        entries = [v for v in self._vocabulary.values() if self._in_scope(v, scope)]
        return sorted(entries, key=lambda v: (v.unit_id, v.word, v.id))

    def get_progress(self, user_id: str, vocabulary_id: str) -> Optional[ProgressRecord]:
        return self._progress.get((user_id, vocabulary_id))

    def upsert_progress(self, record: ProgressRecord) -> ProgressRecord:
        key = (record.user_id, record.vocabulary_id)
        with self._lock:
            current = self._progress.get(key)
            current_version = current.version if current is not None else 0
            if current_version != record.version:
                raise ProgressConflictError("progress changed concurrently")
            stored = replace(record, version=record.version + 1)
            self._progress[key] = stored
        return stored

    def query_due(
        self, user_id: str, scope: SessionScope, now: datetime, limit: int
    ) -> List[Tuple[Vocabulary, ProgressRecord]]:
        if limit <= 0:
            return []
        rows = [
            (vocabulary, progress)
            for vocabulary, progress in self._user_rows(user_id, scope)
            if progress.next_review_at is not None and progress.next_review_at <= now
        ]
        rows.sort(key=due_sort_key)
        return rows[:limit]

    def query_learning(
        self, user_id: str, scope: SessionScope, exclude_ids: Sequence[str], limit: int
    ) -> List[Tuple[Vocabulary, ProgressRecord]]:
        if limit <= 0:
            return []
        excluded = set(exclude_ids)
        rows = [
            (vocabulary, progress)
            for vocabulary, progress in self._user_rows(user_id, scope)
            if progress.status is WordStatus.LEARNING and vocabulary.id not in excluded
        ]
        rows.sort(key=lambda row: row[1].vocabulary_id)
        return rows[:limit]

    def query_new(
        self, user_id: str, scope: SessionScope, exclude_ids: Sequence[str], limit: int
    ) -> List[Vocabulary]:
        if limit <= 0:
            return []
        excluded = set(exclude_ids)
        fresh = [
            vocabulary
            for vocabulary in self.list_vocabulary(scope)
            if vocabulary.id not in excluded and (user_id, vocabulary.id) not in self._progress
        ]
        return fresh[:limit]

    # --- Internal helpers ---
    @staticmethod
    def _in_scope(vocabulary: Vocabulary, scope: SessionScope) -> bool:
        if vocabulary.course_id != scope.course_id:
            return False
        return scope.all_units or vocabulary.unit_id == scope.unit_id

    def _user_rows(self, user_id: str, scope: SessionScope):
        for (owner, vocabulary_id), progress in list(self._progress.items()):
            if owner != user_id:
                continue
            vocabulary = self._vocabulary.get(vocabulary_id)
            if vocabulary is not None and self._in_scope(vocabulary, scope):
                yield vocabulary, progress


__all__ = ["InMemoryProgressRepository"]
