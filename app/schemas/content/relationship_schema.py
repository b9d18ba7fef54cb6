"""Schémas Pydantic pour les relations parent/enfant et l'arbre hiérarchique."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from app.services.relationship_service import HierarchicalOption, HierarchyNode


class RelationshipCreate(BaseModel):
    parent_id: str = Field(..., min_length=1)
    child_id: str = Field(..., min_length=1)
    universe_id: str = Field(..., min_length=1)


class RelationshipEdgeOut(BaseModel):
    """Paire (parent, enfant) telle qu'exposée aux écrans de listing."""

    model_config = ConfigDict(from_attributes=True)

    parent_id: str
    child_id: str
    display_order: int = 0


class RelationshipOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    parent_id: str
    child_id: str
    universe_id: str
    user_id: str
    display_order: int = 0
    created_at: Optional[datetime] = None


class HierarchyNodeOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    is_viewable: bool
    media_type: Optional[str] = None
    depth: int = 0
    children: List["HierarchyNodeOut"] = Field(default_factory=list)

    @classmethod
    def from_node(cls, node: "HierarchyNode") -> "HierarchyNodeOut":
        content = node.content
        return cls(
            id=content.id,
            name=content.name,
            description=getattr(content, "description", None),
            is_viewable=bool(content.is_viewable),
            media_type=getattr(content, "media_type", None),
            depth=node.depth,
            children=[cls.from_node(child) for child in node.children],
        )


class HierarchicalOptionOut(BaseModel):
    """Entrée indentée d'un sélecteur de parent."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    depth: int
    display_name: str
    is_viewable: bool
    disabled: bool


class ContentPathOut(BaseModel):
    content_id: str
    path: List[str] = Field(default_factory=list)


class OrphanedContentOut(BaseModel):
    universe_id: str
    orphaned_content_ids: List[str] = Field(default_factory=list)
    dangling_relationships: List[RelationshipEdgeOut] = Field(default_factory=list)
