"""Déclare l'ensemble des modèles SQLAlchemy pour la création des tables."""

from app.db.base_class import Base

# Utilisateurs
from app.models.user.user_model import User

# Univers & contenu
from app.models.universe.universe_model import Universe
from app.models.universe.content_model import Content
from app.models.universe.content_relationship_model import ContentRelationship

# Progression
from app.models.progress.user_progress_model import UserProgress

__all__ = (
    "Base",
    "User",
    "Universe",
    "Content",
    "ContentRelationship",
    "UserProgress",
)
