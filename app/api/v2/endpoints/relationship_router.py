"""Endpoints du graphe de relations entre contenus."""
from typing import List, NoReturn

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from app.api.v2.dependencies import get_db, get_current_user
from app.models.user.user_model import User
from app.schemas.content.relationship_schema import (
    ContentPathOut,
    HierarchicalOptionOut,
    HierarchyNodeOut,
    OrphanedContentOut,
    RelationshipCreate,
    RelationshipEdgeOut,
    RelationshipOut,
)
from app.services.relationship_service import RelationshipError, RelationshipService

router = APIRouter()


def _raise_http(exc: RelationshipError) -> NoReturn:
    raise HTTPException(status_code=exc.status_code, detail=exc.code) from exc


@router.get("/universe/{universe_id}", response_model=List[RelationshipEdgeOut], summary="Lister les relations d'un univers")
def list_universe_relationships(
    universe_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list:
    try:
        return RelationshipService(db).get_by_universe(universe_id)
    except RelationshipError as exc:
        _raise_http(exc)


@router.get("/universe/{universe_id}/hierarchy", response_model=List[HierarchyNodeOut], summary="Arbre hiérarchique d'un univers")
def get_universe_hierarchy(
    universe_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> List[HierarchyNodeOut]:
    roots = RelationshipService(db).get_universe_hierarchy(universe_id)
    return [HierarchyNodeOut.from_node(root) for root in roots]


@router.get(
    "/universe/{universe_id}/parent-options",
    response_model=List[HierarchicalOptionOut],
    summary="Parents possibles pour un contenu",
)
def get_parent_options(
    universe_id: str,
    exclude_id: str | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list:
    return RelationshipService(db).get_parent_options(universe_id, exclude_id=exclude_id)


@router.get("/universe/{universe_id}/orphans", response_model=OrphanedContentOut, summary="Contenus inaccessibles dans l'arbre")
def get_orphaned_content(
    universe_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> OrphanedContentOut:
    report = RelationshipService(db).get_integrity_report(universe_id)
    return OrphanedContentOut(
        universe_id=universe_id,
        orphaned_content_ids=[item.id for item in report["orphaned_content"]],
        dangling_relationships=[
            RelationshipEdgeOut.model_validate(edge) for edge in report["dangling_relationships"]
        ],
    )


@router.get("/content/{content_id}/parents", response_model=List[RelationshipEdgeOut])
def list_parents(
    content_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list:
    try:
        return RelationshipService(db).get_parents(content_id)
    except RelationshipError as exc:
        _raise_http(exc)


@router.get("/content/{content_id}/children", response_model=List[RelationshipEdgeOut])
def list_children(
    content_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list:
    try:
        return RelationshipService(db).get_children(content_id)
    except RelationshipError as exc:
        _raise_http(exc)


@router.get("/content/{content_id}/path", response_model=ContentPathOut, summary="Chemin racine -> contenu")
def get_content_path(
    content_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ContentPathOut:
    return ContentPathOut(content_id=content_id, path=RelationshipService(db).get_content_path(content_id))


@router.post("/", response_model=RelationshipOut, status_code=status.HTTP_201_CREATED, summary="Relier deux contenus")
def create_relationship(
    payload: RelationshipCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Vérifie l'absence de cycle puis crée l'arête parent -> enfant."""
    try:
        return RelationshipService(db).link(
            payload.parent_id,
            payload.child_id,
            payload.universe_id,
            current_user.id,
        )
    except RelationshipError as exc:
        _raise_http(exc)


@router.delete("/{parent_id}/{child_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Supprimer une relation")
def delete_relationship(
    parent_id: str,
    child_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Response:
    try:
        RelationshipService(db).delete(parent_id, child_id, current_user.id)
    except RelationshipError as exc:
        _raise_http(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
