"""Endpoints de révision du vocabulaire (sessions SRS et notation)."""

import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vocab_srs.api.v2.dependencies import get_db, get_srs_service
from vocab_srs.core.exceptions import (
    NotFoundError,
    ProgressConflictError,
    SRSError,
    StoreError,
    ValidationError,
)
from vocab_srs.schemas.progress_schema import (
    ProgressOut,
    ReviewResponse,
    ReviewSubmission,
    SessionItemOut,
    SessionStats,
    StudySessionResponse,
)
from vocab_srs.schemas.vocabulary_schema import VocabularyListResponse, VocabularyOut
from vocab_srs.services.srs_service import SRSService

logger = logging.getLogger(__name__)

router = APIRouter()

_STATUS_BY_ERROR = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ProgressConflictError, status.HTTP_409_CONFLICT),
    (StoreError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def _raise_http(exc: SRSError) -> NoReturn:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            raise HTTPException(status_code=status_code, detail=exc.code) from exc
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.code) from exc


@router.get("/session", response_model=StudySessionResponse, summary="Construire une session de révision")
def get_study_session(
    user_id: str,
    course_id: str,
    unit_id: Optional[str] = None,
    limit: Optional[int] = None,
    service: SRSService = Depends(get_srs_service),
) -> StudySessionResponse:
    """Mots dus d'abord (les plus en retard en tête), puis en apprentissage, puis nouveaux."""
    try:
        session = service.build_session(user_id, course_id, unit_id, limit)
    except SRSError as exc:
        _raise_http(exc)

    return StudySessionResponse(
        items=[
            SessionItemOut(
                vocabulary=VocabularyOut.model_validate(item.vocabulary),
                progress=ProgressOut.model_validate(item.progress) if item.progress else None,
            )
            for item in session.items
        ],
        stats=SessionStats(total=session.total, due_reviews=session.due_reviews),
    )


@router.post("/progress", response_model=ReviewResponse, summary="Noter une réponse (0 = oublié, 5 = connu)")
def submit_review(
    payload: ReviewSubmission,
    db: Session = Depends(get_db),
    service: SRSService = Depends(get_srs_service),
) -> ReviewResponse:
    """Met à jour la progression SRS du mot puis valide la transaction."""
    try:
        progress = service.grade_review(payload.user_id, payload.vocabulary_id, payload.quality)
        db.commit()
    except SRSError as exc:
        db.rollback()
        _raise_http(exc)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Commit failed for user %s / vocabulary %s: %s", payload.user_id, payload.vocabulary_id, exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=StoreError.code
        ) from exc

    return ReviewResponse(progress=ProgressOut.model_validate(progress))


@router.get("/words", response_model=VocabularyListResponse, summary="Lister le vocabulaire d'un cours")
def list_course_words(
    course_id: str,
    unit_id: Optional[str] = None,
    service: SRSService = Depends(get_srs_service),
) -> VocabularyListResponse:
    try:
        words = service.list_words(course_id, unit_id)
    except SRSError as exc:
        _raise_http(exc)
    return VocabularyListResponse(words=[VocabularyOut.model_validate(word) for word in words])
