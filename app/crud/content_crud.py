# Fichier: backend/app/crud/content_crud.py
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.universe.content_model import Content
from app.models.universe.universe_model import Universe

logger = logging.getLogger(__name__)


def get_universe(db: Session, universe_id: str) -> Optional[Universe]:
    return db.get(Universe, universe_id)


def get_content(db: Session, content_id: str) -> Optional[Content]:
    return db.get(Content, content_id)


def list_universe_content(db: Session, universe_id: str) -> List[Content]:
    """Tous les contenus d'un univers, dans leur ordre de création."""
    return (
        db.query(Content)
        .filter(Content.universe_id == universe_id)
        .order_by(Content.created_at.asc(), Content.id.asc())
        .all()
    )


def list_viewable_content_ids(db: Session, universe_id: str) -> List[str]:
    rows = (
        db.query(Content.id)
        .filter(Content.universe_id == universe_id, Content.is_viewable.is_(True))
        .all()
    )
    return [row.id for row in rows]


def delete_content(db: Session, content: Content) -> None:
    """Supprime la ligne du contenu. Les relations et progressions doivent déjà être nettoyées."""
    content_id = content.id
    db.delete(content)
    db.commit()
    logger.info("Contenu %s supprimé.", content_id)
