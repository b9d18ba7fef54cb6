from sqlalchemy import String, Text, Boolean, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import Optional, TYPE_CHECKING
from datetime import datetime, timezone
import uuid

from app.db.base_class import Base

if TYPE_CHECKING:
    from .universe_model import Universe


class Content(Base):
    """Noeud du graphe: visionnable (feuille suivie) ou organisationnel (conteneur).

    ``is_viewable`` is an explicit stored flag; it never depends on the
    position of the item in the hierarchy.
    """
    __tablename__ = "content"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    universe_id: Mapped[str] = mapped_column(String(36), ForeignKey("universes.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True)
    is_viewable: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    # 'video', 'audio', 'text', 'character', 'location', 'item', 'event', 'collection'
    media_type: Mapped[str] = mapped_column(String(50), default="collection", nullable=False)
    source_link: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    source_link_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )

    # --- Relations ---
    universe: Mapped["Universe"] = relationship(back_populates="contents")

    def __repr__(self):
        kind = "viewable" if self.is_viewable else "organisational"
        return f"<Content(id={self.id}, name='{self.name}', {kind})>"
