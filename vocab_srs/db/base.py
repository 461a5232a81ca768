"""Déclare l'ensemble des modèles SQLAlchemy pour la création du schéma."""

from vocab_srs.db.base_class import Base

# Catalogue de vocabulaire
from vocab_srs.models.vocabulary_model import Vocabulary

# Progression SRS
from vocab_srs.models.progress.user_word_progress_model import UserWordProgress

__all__ = (
    "Base",
    "Vocabulary",
    "UserWordProgress",
)
