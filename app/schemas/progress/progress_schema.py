"""Schémas Pydantic pour la progression par contenu et ses agrégats."""
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class ProgressUpdate(BaseModel):
    """Progression déclarée par l'utilisateur; bornée à [0, 100] par le service."""

    content_id: str = Field(..., min_length=1)
    universe_id: str = Field(..., min_length=1)
    progress: int


class ProgressSet(BaseModel):
    """Corps de ``PUT /progress/content/{content_id}``."""

    universe_id: str = Field(..., min_length=1)
    progress: int


class BulkProgressUpdate(BaseModel):
    updates: List[ProgressUpdate] = Field(default_factory=list)


class UserProgressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    content_id: str
    universe_id: str
    progress: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ContentProgressOut(BaseModel):
    content_id: str
    progress: int = 0


class ProgressSummary(BaseModel):
    total_content: int = 0
    completed_content: int = 0
    total_universes: int = 0
    completed_universes: int = 0


class UniverseProgressStats(BaseModel):
    total_viewable_content: int = 0
    users_with_progress: int = 0
    average_completion: int = 0


class ProgressCalculation(BaseModel):
    total_items: int = 0
    completed_items: int = 0
    percentage: float = 0.0
