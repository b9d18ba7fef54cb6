from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.crud import content_crud
from app.services.progress_service import ProgressService
from app.services.relationship_service import RelationshipService

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ContentError(Exception):
    code: str
    status_code: int = 400

    def __str__(self) -> str:  # pragma: no cover - human readable message
        return self.code


class ContentService:
    """Content lifecycle operations that span several tables."""

    def __init__(self, db: Session):
        self.db = db

    def delete_content(self, content_id: str, user_id: str) -> None:
        """Delete a content item after its edges and progress rows.

        Only the owner of the content's universe may delete it.

        Each step commits on its own; a failure part-way leaves the earlier
        cleanups in place, which is harmless since they only remove references
        to the item being deleted.
        """
        content = content_crud.get_content(self.db, content_id)
        if content is None:
            raise ContentError("content_not_found", status_code=404)

        universe = content_crud.get_universe(self.db, content.universe_id)
        if universe is None or universe.user_id != user_id:
            logger.warning("Suppression du contenu %s refusée pour %s.", content_id, user_id)
            raise ContentError("universe_forbidden", status_code=403)

        RelationshipService(self.db).delete_all_for_content(content_id)
        ProgressService(self.db).delete_progress_for_content(content_id)

        try:
            content_crud.delete_content(self.db, content)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Suppression du contenu %s échouée: %s", content_id, exc)
            raise ContentError("content_delete_failed", status_code=500) from exc
