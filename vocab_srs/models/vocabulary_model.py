# Fichier: vocab_srs/models/vocabulary_model.py
import enum
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from sqlalchemy import JSON, DateTime, Enum, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vocab_srs.db.base_class import Base

if TYPE_CHECKING:
    from .progress.user_word_progress_model import UserWordProgress


class PartOfSpeech(str, enum.Enum):
    NOUN = "NOUN"
    VERB_T = "VERB_T"
    VERB_I = "VERB_I"
    ADJ = "ADJ"
    ADV = "ADV"
    PARTICLE = "PARTICLE"


def _new_id() -> str:
    return str(uuid.uuid4())


class Vocabulary(Base):
    """
    Entrée du catalogue de vocabulaire d'un cours. En lecture seule pour le SRS.
    """
    __tablename__ = "vocabularies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    course_id: Mapped[str] = mapped_column(String(64), nullable=False)
    unit_id: Mapped[int] = mapped_column(Integer, nullable=False)

    word: Mapped[str] = mapped_column(String(255), nullable=False)  # Le mot coréen (ex: "학교")
    meaning: Mapped[str] = mapped_column(String(255), nullable=False)
    pronunciation: Mapped[Optional[str]] = mapped_column(String(255))
    audio_url: Mapped[Optional[str]] = mapped_column(String(1024))
    hanja: Mapped[Optional[str]] = mapped_column(String(64))  # ex: "學校"
    part_of_speech: Mapped[Optional[PartOfSpeech]] = mapped_column(
        Enum(PartOfSpeech, name="partofspeech", values_callable=lambda obj: [e.value for e in obj]),
        nullable=True,
    )
    # synonyms / antonyms / nuance
    tips: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON)
    example_sentence: Mapped[Optional[str]] = mapped_column(Text)
    example_meaning: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # --- Relations ---
    progress_entries: Mapped[List["UserWordProgress"]] = relationship(back_populates="vocabulary")

    __table_args__ = (Index("ix_vocabularies_course_unit", "course_id", "unit_id"),)

    def __repr__(self):
        return f"<Vocabulary(id={self.id}, word='{self.word}')>"
