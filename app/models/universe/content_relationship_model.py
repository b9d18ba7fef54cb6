from sqlalchemy import String, Integer, DateTime, ForeignKey, CheckConstraint, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
import uuid

from app.db.base_class import Base


class ContentRelationship(Base):
    """Arête orientée parent -> enfant entre deux contenus d'un même univers."""
    __tablename__ = "content_relationships"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    parent_id: Mapped[str] = mapped_column(String(36), ForeignKey("content.id", ondelete="CASCADE"), index=True)
    child_id: Mapped[str] = mapped_column(String(36), ForeignKey("content.id", ondelete="CASCADE"), index=True)
    universe_id: Mapped[str] = mapped_column(String(36), ForeignKey("universes.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True)
    display_order: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("parent_id", "child_id", name="_content_relationship_parent_child_uc"),
        CheckConstraint("parent_id <> child_id", name="_content_relationship_no_self_loop"),
    )

    def __repr__(self):
        return f"<ContentRelationship({self.parent_id} -> {self.child_id})>"
