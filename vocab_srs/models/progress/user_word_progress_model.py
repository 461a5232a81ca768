# Fichier: vocab_srs/models/progress/user_word_progress_model.py
from datetime import datetime
from typing import Optional, TYPE_CHECKING

from sqlalchemy import DateTime, Enum, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vocab_srs.db.base_class import Base
from vocab_srs.srs.scheduler import DEFAULT_EASE_FACTOR, WordStatus

if TYPE_CHECKING:
    from ..vocabulary_model import Vocabulary


class UserWordProgress(Base):
    """
    Suit la force de mémorisation d'un utilisateur sur un mot de vocabulaire (SRS).
    La ligne n'existe qu'après la première réponse notée.
    """
    __tablename__ = "user_word_progress"

    # --- Clé Primaire Composite ---
    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    vocabulary_id: Mapped[str] = mapped_column(String(36), ForeignKey("vocabularies.id"), primary_key=True)

    # --- Métriques de Mémorisation (SRS) ---
    status: Mapped[WordStatus] = mapped_column(
        Enum(WordStatus, name="wordstatus", values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=WordStatus.NEW,
        index=True,
    )
    interval: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ease_factor: Mapped[float] = mapped_column(Float, nullable=False, default=DEFAULT_EASE_FACTOR)
    streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    mistake_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    next_review_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), index=True)
    last_reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # Compteur pour le compare-and-swap des mises à jour concurrentes
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # --- Relations ---
    vocabulary: Mapped["Vocabulary"] = relationship(back_populates="progress_entries")

    def __repr__(self):
        return (
            f"<UserWordProgress(user_id={self.user_id}, vocabulary_id={self.vocabulary_id}, "
            f"status={self.status.value})>"
        )
