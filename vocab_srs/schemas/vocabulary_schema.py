"""Schémas Pydantic du catalogue de vocabulaire."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from vocab_srs.models.vocabulary_model import PartOfSpeech


class VocabularyOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    course_id: str
    unit_id: int
    word: str
    meaning: str
    pronunciation: Optional[str] = None
    audio_url: Optional[str] = None
    hanja: Optional[str] = None
    part_of_speech: Optional[PartOfSpeech] = None
    # Contenu libre saisi par l'admin (synonymes, nuances, ...)
    tips: Optional[Dict[str, Any]] = None
    example_sentence: Optional[str] = None
    example_meaning: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class VocabularyListResponse(BaseModel):
    words: List[VocabularyOut] = Field(default_factory=list)
