"""Endpoints de cycle de vie des contenus."""
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from app.api.v2.dependencies import get_db, get_current_user
from app.models.user.user_model import User
from app.services.content_service import ContentError, ContentService
from app.services.progress_service import ProgressError
from app.services.relationship_service import RelationshipError

router = APIRouter()


@router.delete("/{content_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Supprimer un contenu et ses relations")
def delete_content(
    content_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Response:
    try:
        ContentService(db).delete_content(content_id, current_user.id)
    except (ContentError, RelationshipError, ProgressError) as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.code) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
