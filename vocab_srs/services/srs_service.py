"""Vocabulary study sessions and review grading on top of a progress store."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, List, Optional, Union

from vocab_srs.core.config import settings
from vocab_srs.core.exceptions import NotFoundError, ValidationError
from vocab_srs.crud.progress_crud import ProgressRepository
from vocab_srs.models.vocabulary_model import Vocabulary
from vocab_srs.srs.scheduler import (
    ALL_UNITS,
    ProgressRecord,
    SessionScope,
    StudySession,
    apply_review,
    as_utc,
    merge_session_tiers,
    parse_quality,
    selected_ids,
    utcnow,
)

logger = logging.getLogger(__name__)


class SRSService:
    """Session Selector and Review Grader for one request.

    The service holds no state besides its repository, so a fresh instance is
    built per request.
    """

    def __init__(
        self,
        repository: ProgressRepository,
        *,
        default_limit: Optional[int] = None,
        max_limit: Optional[int] = None,
    ):
        self.repository = repository
        self.default_limit = default_limit or settings.SRS_DEFAULT_SESSION_LIMIT
        self.max_limit = max_limit or settings.SRS_MAX_SESSION_LIMIT

    # ------------------------------------------------------------------
    # Session Selector
    # ------------------------------------------------------------------
    def build_session(
        self,
        user_id: str,
        course_id: str,
        unit_id: Union[int, str, None] = None,
        limit: Optional[int] = None,
        *,
        now: Optional[datetime] = None,
    ) -> StudySession:
        """Return due reviews, then learning words, then unseen words.

        Read-only. Calling it twice without grading in between yields the
        same ordered batch.
        """

        user_id = _require_identifier(user_id, "user_id")
        scope = self.resolve_scope(course_id, unit_id)
        limit = self._resolve_limit(limit)
        now = as_utc(now) if now else utcnow()

        due = self.repository.query_due(user_id, scope, now, limit)
        picked: List[str] = [vocabulary.id for vocabulary, _ in due]

        learning = self.repository.query_learning(user_id, scope, picked, limit - len(picked))
        picked.extend(vocabulary.id for vocabulary, _ in learning)

        new = self.repository.query_new(user_id, scope, picked, limit - len(picked))

        session = merge_session_tiers(due, learning, new, limit)
        logger.debug(
            "SRS session for user %s (course %s, unit %s): %s items, %s due -> %s",
            user_id,
            scope.course_id,
            scope.unit_id if scope.unit_id is not None else ALL_UNITS,
            session.total,
            session.due_reviews,
            selected_ids(session.items),
        )
        return session

    def list_words(self, course_id: str, unit_id: Union[int, str, None] = None) -> List[Vocabulary]:
        """Return the whole catalogue of a course (or unit), ordered by unit then word."""

        return self.repository.list_vocabulary(self.resolve_scope(course_id, unit_id))

    # ------------------------------------------------------------------
    # Review Grader
    # ------------------------------------------------------------------
    def grade_review(
        self,
        user_id: str,
        vocabulary_id: str,
        quality: Any,
        *,
        now: Optional[datetime] = None,
    ) -> ProgressRecord:
        """Apply one answer to the ``(user, word)`` record and persist it.

        Input is validated and the word looked up before anything is written,
        so a rejected call leaves the store untouched. A concurrent grading
        of the same pair surfaces as
        :class:`~vocab_srs.core.exceptions.ProgressConflictError`.
        """

        user_id = _require_identifier(user_id, "user_id")
        vocabulary_id = _require_identifier(vocabulary_id, "vocabulary_id")
        try:
            parsed_quality = parse_quality(quality)
        except ValueError as exc:
            raise ValidationError(str(exc), code="invalid_quality") from exc

        if self.repository.get_vocabulary(vocabulary_id) is None:
            raise NotFoundError(f"vocabulary {vocabulary_id} does not exist", code="vocabulary_not_found")

        now = as_utc(now) if now else utcnow()
        current = self.repository.get_progress(user_id, vocabulary_id)
        if current is None:
            current = ProgressRecord.virtual(user_id, vocabulary_id)

        updated = self.repository.upsert_progress(apply_review(current, parsed_quality, now))

        logger.info(
            "SRS update: user %s, vocabulary %s, quality %s: %s/%sd -> %s/%sd (ease %.2f)",
            user_id,
            vocabulary_id,
            parsed_quality.value,
            current.status.value,
            current.interval,
            updated.status.value,
            updated.interval,
            updated.ease_factor,
        )
        return updated

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def resolve_scope(course_id: str, unit_id: Union[int, str, None]) -> SessionScope:
        course_id = _require_identifier(course_id, "course_id")

        if unit_id is None:
            return SessionScope(course_id=course_id)
        if isinstance(unit_id, int):
            return SessionScope(course_id=course_id, unit_id=unit_id)

        raw = str(unit_id).strip()
        if not raw or raw.upper() == ALL_UNITS:
            return SessionScope(course_id=course_id)
        try:
            return SessionScope(course_id=course_id, unit_id=int(raw))
        except ValueError:
            raise ValidationError(f"unit_id must be an integer or {ALL_UNITS!r}", code="invalid_unit_id") from None

    def _resolve_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            return min(self.default_limit, self.max_limit)
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValidationError("limit must be a positive integer", code="invalid_limit")
        return min(limit, self.max_limit)


def _require_identifier(value: Any, name: str) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{name} is required", code=f"{name}_required")
    return str(value).strip()


__all__ = ["SRSService"]
