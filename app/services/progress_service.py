import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.crud import content_crud
from app.models.progress.user_progress_model import UserProgress
from app.schemas.progress.progress_schema import (
    ProgressCalculation,
    ProgressSummary,
    ProgressUpdate,
    UniverseProgressStats,
)
from app.services.relationship_service import RelationshipService, index_children

logger = logging.getLogger(__name__)

MIN_PROGRESS = 0
MAX_PROGRESS = 100


@dataclass(slots=True)
class ProgressError(Exception):
    """Domain-specific exception raised when a progress write fails."""

    code: str
    status_code: int = 400

    def __str__(self) -> str:  # pragma: no cover - human readable message
        return self.code


def clamp_progress(value: float) -> int:
    return max(MIN_PROGRESS, min(MAX_PROGRESS, int(value)))


def round_half_up(value: float) -> int:
    """Nearest integer, halves rounded up (``70.5`` -> ``71``)."""
    return int(math.floor(value + 0.5))


class ProgressService:
    """Stored progress for viewable content and derived progress for the rest.

    Read paths never raise: they log and return ``0`` / empty results so a data
    glitch never breaks a page. Write paths raise :class:`ProgressError`.
    """

    def __init__(self, db: Session, max_depth: Optional[int] = None):
        self.db = db
        self.max_depth = max_depth or settings.HIERARCHY_MAX_DEPTH

    # -----------------------------
    # Direct progress
    # -----------------------------

    def get_user_progress(self, user_id: str, content_id: str) -> int:
        try:
            value = (
                self.db.query(UserProgress.progress)
                .filter(UserProgress.user_id == user_id, UserProgress.content_id == content_id)
                .limit(1)
                .scalar()
            )
        except Exception:
            logger.exception("Lecture de la progression %s/%s impossible.", user_id, content_id)
            return 0
        return value or 0

    def get_user_progress_by_universe(self, user_id: str, universe_id: str) -> Dict[str, int]:
        try:
            rows = (
                self.db.query(UserProgress.content_id, UserProgress.progress)
                .filter(UserProgress.user_id == user_id, UserProgress.universe_id == universe_id)
                .all()
            )
        except Exception:
            logger.exception("Progression de l'univers %s indisponible pour %s.", universe_id, user_id)
            return {}
        return {row.content_id: row.progress or 0 for row in rows}

    def get_all_user_progress(self, user_id: str) -> Dict[str, int]:
        try:
            rows = (
                self.db.query(UserProgress.content_id, UserProgress.progress)
                .filter(UserProgress.user_id == user_id)
                .all()
            )
        except Exception:
            logger.exception("Progression globale indisponible pour %s.", user_id)
            return {}
        return {row.content_id: row.progress or 0 for row in rows}

    def set_user_progress(self, user_id: str, update: ProgressUpdate) -> UserProgress:
        """Upsert the progress row of ``user_id`` for a viewable content item."""
        clamped = clamp_progress(update.progress)

        try:
            content = content_crud.get_content(self.db, update.content_id)
        except SQLAlchemyError as exc:
            logger.error("Lecture du contenu %s impossible: %s", update.content_id, exc)
            raise ProgressError("progress_update_failed", status_code=500) from exc

        if content is None:
            raise ProgressError("content_not_found", status_code=404)
        if not content.is_viewable:
            raise ProgressError("content_not_viewable")
        if content.universe_id != update.universe_id:
            raise ProgressError("universe_mismatch")

        now = datetime.now(timezone.utc)
        try:
            entry = (
                self.db.query(UserProgress)
                .filter_by(user_id=user_id, content_id=update.content_id)
                .first()
            )
            if entry is None:
                entry = UserProgress(
                    user_id=user_id,
                    content_id=update.content_id,
                    universe_id=update.universe_id,
                    progress=clamped,
                    created_at=now,
                    updated_at=now,
                )
                self.db.add(entry)
            else:
                entry.universe_id = update.universe_id
                entry.progress = clamped
                entry.updated_at = now
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Mise à jour de la progression %s/%s échouée: %s", user_id, update.content_id, exc)
            raise ProgressError("progress_update_failed", status_code=500) from exc

        self.db.refresh(entry)
        logger.info("Progression %s/%s = %s%%.", user_id, update.content_id, clamped)
        return entry

    def bulk_update_progress(self, user_id: str, updates: Sequence[ProgressUpdate]) -> None:
        """Apply updates one by one. Not transactional: earlier rows stay written on failure."""
        if not updates:
            return

        try:
            for update in updates:
                self.set_user_progress(user_id, update)
        except Exception as exc:
            logger.error("Mise à jour groupée de la progression échouée pour %s: %s", user_id, exc)
            status_code = exc.status_code if isinstance(exc, ProgressError) else 500
            raise ProgressError("bulk_update_failed", status_code=status_code) from exc

    def delete_progress_for_content(self, content_id: str) -> int:
        try:
            deleted = (
                self.db.query(UserProgress)
                .filter(UserProgress.content_id == content_id)
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Suppression de la progression du contenu %s échouée: %s", content_id, exc)
            raise ProgressError("progress_delete_failed", status_code=500) from exc
        return deleted

    def delete_progress_for_universe(self, universe_id: str) -> int:
        try:
            deleted = (
                self.db.query(UserProgress)
                .filter(UserProgress.universe_id == universe_id)
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Suppression de la progression de l'univers %s échouée: %s", universe_id, exc)
            raise ProgressError("progress_delete_failed", status_code=500) from exc
        return deleted

    # -----------------------------
    # Derived progress
    # -----------------------------

    def calculate_organisational_progress(
        self,
        parent_id: str,
        user_id: str,
        all_content: Iterable[Any],
        relationships: Iterable[Any],
    ) -> int:
        """Mean of the resolved progress of ``parent_id``'s children.

        Viewable children contribute their stored progress, organisational
        children their own recursively computed mean. Unknown children are
        ignored, and so is a child already on the current branch (cyclic
        data). Each node is resolved once per call, so shared children do not
        multiply the work. Returns 0 when nothing can be resolved or on any
        failure.
        """
        try:
            content_by_id = {item.id: item for item in all_content}
            children_index = index_children(relationships)
            value = self._resolve_organisational_progress(
                parent_id,
                user_id,
                content_by_id,
                children_index,
                resolved={},
                branch=frozenset((parent_id,)),
                depth=0,
            )
        except Exception:
            logger.exception("Calcul de la progression organisationnelle de %s échoué.", parent_id)
            return 0
        return clamp_progress(value)

    def _resolve_organisational_progress(
        self,
        node_id: str,
        user_id: str,
        content_by_id: Dict[str, Any],
        children_index: Dict[str, List[str]],
        *,
        resolved: Dict[str, int],
        branch: frozenset,
        depth: int,
    ) -> int:
        if node_id in resolved:
            return resolved[node_id]
        if depth > self.max_depth:
            raise ProgressError("hierarchy_too_deep")

        child_ids = children_index.get(node_id, [])
        if not child_ids:
            resolved[node_id] = 0
            return 0

        total = 0
        count = 0
        for child_id in child_ids:
            child = content_by_id.get(child_id)
            if child is None:
                continue
            if child_id in branch:
                logger.warning("Cycle ignoré dans le calcul de progression: %s -> %s.", node_id, child_id)
                continue

            if child.is_viewable:
                total += self.get_user_progress(user_id, child_id)
            else:
                total += self._resolve_organisational_progress(
                    child_id,
                    user_id,
                    content_by_id,
                    children_index,
                    resolved=resolved,
                    branch=branch | {child_id},
                    depth=depth + 1,
                )
            count += 1

        value = clamp_progress(round_half_up(total / count)) if count else 0
        resolved[node_id] = value
        return value

    def get_content_progress(self, user_id: str, content_id: str) -> int:
        """Progress of any content item: stored when viewable, derived otherwise."""
        try:
            content = content_crud.get_content(self.db, content_id)
            if content is None:
                return 0
            if content.is_viewable:
                return self.get_user_progress(user_id, content_id)

            all_content = content_crud.list_universe_content(self.db, content.universe_id)
            relationships = RelationshipService(self.db, max_depth=self.max_depth).get_by_universe(content.universe_id)
        except Exception:
            logger.exception("Progression du contenu %s indisponible.", content_id)
            return 0
        return self.calculate_organisational_progress(content_id, user_id, all_content, relationships)

    def get_universe_progress_overview(self, user_id: str, universe_id: str) -> Dict[str, int]:
        """Resolved progress for every content item of a universe."""
        try:
            all_content = content_crud.list_universe_content(self.db, universe_id)
            relationships = RelationshipService(self.db, max_depth=self.max_depth).get_by_universe(universe_id)
        except Exception:
            logger.exception("Vue d'ensemble de l'univers %s indisponible.", universe_id)
            return {}

        stored = self.get_user_progress_by_universe(user_id, universe_id)
        overview: Dict[str, int] = {}
        for item in all_content:
            if item.is_viewable:
                overview[item.id] = stored.get(item.id, 0)
            else:
                overview[item.id] = self.calculate_organisational_progress(
                    item.id, user_id, all_content, relationships
                )
        return overview

    def calculate_universe_progress(self, user_id: str, universe_id: str) -> ProgressCalculation:
        """Average over every viewable item of the universe, missing rows counting as 0."""
        try:
            viewable_ids = content_crud.list_viewable_content_ids(self.db, universe_id)
        except Exception:
            logger.exception("Contenus visionnables de l'univers %s indisponibles.", universe_id)
            return ProgressCalculation()

        if not viewable_ids:
            return ProgressCalculation()

        progress_map = self.get_user_progress_by_universe(user_id, universe_id)
        values = [progress_map.get(content_id, 0) for content_id in viewable_ids]
        return ProgressCalculation(
            total_items=len(values),
            completed_items=sum(1 for value in values if value >= MAX_PROGRESS),
            percentage=sum(values) / len(values),
        )

    # -----------------------------
    # Summaries & statistics
    # -----------------------------

    def get_progress_summary(self, user_id: str) -> ProgressSummary:
        try:
            total_content = (
                self.db.query(func.count(UserProgress.id))
                .filter(UserProgress.user_id == user_id)
                .scalar()
            ) or 0
            completed_content = (
                self.db.query(func.count(UserProgress.id))
                .filter(UserProgress.user_id == user_id, UserProgress.progress == MAX_PROGRESS)
                .scalar()
            ) or 0
            universe_ids = [
                row.universe_id
                for row in (
                    self.db.query(UserProgress.universe_id)
                    .filter(UserProgress.user_id == user_id)
                    .distinct()
                    .all()
                )
            ]

            completed_universes = 0
            for universe_id in universe_ids:
                viewable_ids = set(content_crud.list_viewable_content_ids(self.db, universe_id))
                if not viewable_ids:
                    continue

                completed_ids = {
                    row.content_id
                    for row in (
                        self.db.query(UserProgress.content_id)
                        .filter(
                            UserProgress.user_id == user_id,
                            UserProgress.content_id.in_(viewable_ids),
                            UserProgress.progress == MAX_PROGRESS,
                        )
                        .all()
                    )
                }
                if completed_ids == viewable_ids:
                    completed_universes += 1
        except Exception:
            logger.exception("Résumé de progression indisponible pour %s.", user_id)
            return ProgressSummary()

        return ProgressSummary(
            total_content=total_content,
            completed_content=completed_content,
            total_universes=len(universe_ids),
            completed_universes=completed_universes,
        )

    def get_recent_progress(self, user_id: str, limit: Optional[int] = None) -> List[UserProgress]:
        limit = limit or settings.PROGRESS_RECENT_LIMIT
        try:
            return (
                self.db.query(UserProgress)
                .filter(UserProgress.user_id == user_id)
                .order_by(UserProgress.updated_at.desc(), UserProgress.id.asc())
                .limit(limit)
                .all()
            )
        except Exception:
            logger.exception("Progression récente indisponible pour %s.", user_id)
            return []

    def get_universe_progress_stats(self, universe_id: str) -> UniverseProgressStats:
        try:
            total_viewable = len(content_crud.list_viewable_content_ids(self.db, universe_id))
            users_with_progress = (
                self.db.query(func.count(func.distinct(UserProgress.user_id)))
                .filter(UserProgress.universe_id == universe_id)
                .scalar()
            ) or 0
            average = (
                self.db.query(func.avg(UserProgress.progress))
                .filter(UserProgress.universe_id == universe_id)
                .scalar()
            )
        except Exception:
            logger.exception("Statistiques de l'univers %s indisponibles.", universe_id)
            return UniverseProgressStats()

        return UniverseProgressStats(
            total_viewable_content=total_viewable,
            users_with_progress=users_with_progress,
            average_completion=round_half_up(float(average or 0)),
        )
