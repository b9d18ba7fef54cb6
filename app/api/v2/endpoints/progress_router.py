"""Endpoints de progression par contenu et par univers."""
from typing import Dict, List, NoReturn, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.v2.dependencies import get_db, get_current_user
from app.models.user.user_model import User
from app.schemas.progress.progress_schema import (
    BulkProgressUpdate,
    ContentProgressOut,
    ProgressCalculation,
    ProgressSet,
    ProgressSummary,
    ProgressUpdate,
    UniverseProgressStats,
    UserProgressOut,
)
from app.services.progress_service import ProgressError, ProgressService

router = APIRouter()


def _raise_http(exc: ProgressError) -> NoReturn:
    raise HTTPException(status_code=exc.status_code, detail=exc.code) from exc


@router.get("/content/{content_id}", response_model=ContentProgressOut, summary="Progression d'un contenu")
def get_content_progress(
    content_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ContentProgressOut:
    """Progression stockée (visionnable) ou calculée (organisationnel)."""
    service = ProgressService(db)
    return ContentProgressOut(content_id=content_id, progress=service.get_content_progress(current_user.id, content_id))


@router.put("/content/{content_id}", response_model=UserProgressOut, summary="Enregistrer la progression d'un contenu")
def set_content_progress(
    content_id: str,
    payload: ProgressSet,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    update = ProgressUpdate(content_id=content_id, universe_id=payload.universe_id, progress=payload.progress)
    try:
        return ProgressService(db).set_user_progress(current_user.id, update)
    except ProgressError as exc:
        _raise_http(exc)


@router.post("/bulk", response_model=dict, summary="Mise à jour groupée")
def bulk_update_progress(
    payload: BulkProgressUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    try:
        ProgressService(db).bulk_update_progress(current_user.id, payload.updates)
    except ProgressError as exc:
        _raise_http(exc)
    return {"status": "success", "updated": len(payload.updates)}


@router.get("/universe/{universe_id}", response_model=Dict[str, int], summary="Progression stockée d'un univers")
def get_universe_progress(
    universe_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Dict[str, int]:
    return ProgressService(db).get_user_progress_by_universe(current_user.id, universe_id)


@router.get("/universe/{universe_id}/overview", response_model=Dict[str, int], summary="Progression résolue de chaque contenu")
def get_universe_overview(
    universe_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Dict[str, int]:
    return ProgressService(db).get_universe_progress_overview(current_user.id, universe_id)


@router.get("/universe/{universe_id}/completion", response_model=ProgressCalculation)
def get_universe_completion(
    universe_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ProgressCalculation:
    return ProgressService(db).calculate_universe_progress(current_user.id, universe_id)


@router.get("/universe/{universe_id}/stats", response_model=UniverseProgressStats, summary="Statistiques d'un univers")
def get_universe_stats(
    universe_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> UniverseProgressStats:
    return ProgressService(db).get_universe_progress_stats(universe_id)


@router.get("/summary", response_model=ProgressSummary, summary="Résumé de progression de l'utilisateur")
def get_progress_summary(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ProgressSummary:
    return ProgressService(db).get_progress_summary(current_user.id)


@router.get("/recent", response_model=List[UserProgressOut], summary="Dernières progressions")
def get_recent_progress(
    limit: Optional[int] = Query(None, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list:
    return ProgressService(db).get_recent_progress(current_user.id, limit=limit)
