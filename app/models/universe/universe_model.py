from sqlalchemy import String, Text, Boolean, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import List, Optional, TYPE_CHECKING
from datetime import datetime, timezone
import uuid

from app.db.base_class import Base

if TYPE_CHECKING:
    from app.models.user.user_model import User
    from .content_model import Content


class Universe(Base):
    """Conteneur de franchise regroupant contenus et relations d'un propriétaire."""
    __tablename__ = "universes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
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
    owner: Mapped["User"] = relationship(back_populates="universes")
    contents: Mapped[List["Content"]] = relationship(back_populates="universe")

    def __repr__(self):
        return f"<Universe(id={self.id}, name='{self.name}')>"
