"""Schémas Pydantic pour les sessions de révision et la notation des mots."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from vocab_srs.schemas.vocabulary_schema import VocabularyOut
from vocab_srs.srs.scheduler import WordStatus


class ProgressOut(BaseModel):
    """État SRS d'un couple (utilisateur, mot)."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str
    vocabulary_id: str
    status: WordStatus
    interval: int
    ease_factor: float
    streak: int
    mistake_count: int
    next_review_at: Optional[datetime] = None
    last_reviewed_at: Optional[datetime] = None


class SessionItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    vocabulary: VocabularyOut
    # ``None`` : mot jamais étudié
    progress: Optional[ProgressOut] = None


class SessionStats(BaseModel):
    total: int = 0
    due_reviews: int = 0


class StudySessionResponse(BaseModel):
    items: List[SessionItemOut] = Field(default_factory=list)
    stats: SessionStats = Field(default_factory=SessionStats)


class ReviewSubmission(BaseModel):
    """Réponse de l'apprenant : 0 = oublié, 5 = connu.

    ``quality`` is validated by the grader so the error code stays the same
    whether the service is called over HTTP or directly.
    """

    user_id: str
    vocabulary_id: str
    quality: int


class ReviewResponse(BaseModel):
    progress: ProgressOut
