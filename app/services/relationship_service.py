"""Parent/child relationship graph over the content of a universe.

Edges are stored in ``content_relationships``. The service keeps the graph
well formed (no self-loops, no duplicate pairs, no cycles, no cross-universe
edges) and derives the display structures built from it: the hierarchy tree,
root-first content paths and orphan reports.

Mutations raise :class:`RelationshipError`. Derivations (paths, ancestor
checks, hierarchy builds) log and degrade to a safe default because they run
on read-heavy display paths.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.crud import content_crud
from app.models.universe.content_model import Content
from app.models.universe.content_relationship_model import ContentRelationship

logger = logging.getLogger(__name__)

INDENT_UNIT = "\u00a0" * 4


@dataclass(slots=True)
class RelationshipError(Exception):
    """Domain-specific exception raised when a relationship operation fails."""

    code: str
    status_code: int = 400

    def __str__(self) -> str:  # pragma: no cover - human readable message
        return self.code


@dataclass(frozen=True, slots=True)
class RelationshipEdge:
    parent_id: str
    child_id: str
    display_order: int = 0


@dataclass(slots=True)
class HierarchyNode:
    """A content item with its resolved children, rebuilt on every request."""

    content: Any
    children: List["HierarchyNode"] = field(default_factory=list)
    depth: int = 0

    @property
    def id(self) -> str:
        return self.content.id


@dataclass(frozen=True, slots=True)
class HierarchicalOption:
    id: str
    name: str
    depth: int
    display_name: str
    is_viewable: bool
    disabled: bool


# ----------------------------------------------------------------------
# Pure helpers
# ----------------------------------------------------------------------
def index_children(edges: Iterable[Any]) -> Dict[str, List[str]]:
    """Map each parent id to its child ids, preserving edge order."""
    children: Dict[str, List[str]] = {}
    for edge in edges:
        children.setdefault(edge.parent_id, []).append(edge.child_id)
    return children


def build_hierarchy_tree(
    content_items: Iterable[Any],
    edges: Iterable[Any],
    *,
    max_depth: Optional[int] = None,
) -> List[HierarchyNode]:
    """Materialise content and edges into a rooted forest.

    A node is a root when no edge lists it as a child. Children follow the
    order of ``edges``; roots follow the order of ``content_items``. Edges
    whose child has no content item are skipped. A child that is already on
    the current branch is not entered again, so corrupted cyclic data still
    yields a finite tree.

    A shared child is expanded under its first parent only; later parents get
    a childless node for it. The result stays linear in items plus edges.
    """
    items = list(content_items)
    edges = list(edges)
    limit = settings.HIERARCHY_MAX_DEPTH if max_depth is None else max_depth

    content_by_id = {item.id: item for item in items}
    children_index = index_children(edges)
    child_ids = {edge.child_id for edge in edges}

    expanded: set = set()

    def build(item: Any, depth: int, branch: frozenset) -> HierarchyNode:
        node = HierarchyNode(content=item, depth=depth)
        if item.id in expanded:
            return node
        if depth >= limit:
            logger.warning("Profondeur maximale (%s) atteinte sous le contenu %s.", limit, item.id)
            return node
        expanded.add(item.id)

        for child_id in children_index.get(item.id, ()):
            child = content_by_id.get(child_id)
            if child is None:
                continue
            if child_id in branch:
                logger.warning("Cycle ignoré: %s est déjà un ancêtre de %s.", child_id, item.id)
                continue
            node.children.append(build(child, depth + 1, branch | {child_id}))
        return node

    return [build(item, 0, frozenset((item.id,))) for item in items if item.id not in child_ids]


def find_dangling_relationships(content_items: Iterable[Any], edges: Iterable[Any]) -> List[Any]:
    """Edges pointing at a parent or child absent from ``content_items``."""
    known_ids = {item.id for item in content_items}
    return [edge for edge in edges if edge.parent_id not in known_ids or edge.child_id not in known_ids]


def find_orphaned_content(content_items: Iterable[Any], edges: Iterable[Any]) -> List[Any]:
    """Content hidden from the tree: every parent edge targets missing content.

    Such items are not roots (an edge names them as a child) yet no existing
    node can reach them.
    """
    items = list(content_items)
    known_ids = {item.id for item in items}

    parents_by_child: Dict[str, List[str]] = {}
    for edge in edges:
        parents_by_child.setdefault(edge.child_id, []).append(edge.parent_id)

    return [
        item
        for item in items
        if item.id in parents_by_child
        and not any(parent_id in known_ids for parent_id in parents_by_child[item.id])
    ]


def flatten_hierarchy(roots: Sequence[HierarchyNode], exclude_id: Optional[str] = None) -> List[HierarchicalOption]:
    """Depth-first list of indented options for parent pickers.

    Viewable content is listed but disabled since only organisational content
    can hold children. ``exclude_id`` drops that item and its whole subtree,
    which keeps an item from being offered one of its own descendants.
    """
    options: List[HierarchicalOption] = []

    def visit(node: HierarchyNode) -> None:
        if exclude_id is not None and node.id == exclude_id:
            return
        content = node.content
        options.append(
            HierarchicalOption(
                id=content.id,
                name=content.name,
                depth=node.depth,
                display_name=f"{INDENT_UNIT * node.depth}{content.name}",
                is_viewable=bool(content.is_viewable),
                disabled=bool(content.is_viewable),
            )
        )
        for child in node.children:
            visit(child)

    for root in roots:
        visit(root)
    return options


class RelationshipService:
    """Graph manager for the content relationships of a universe."""

    def __init__(self, db: Session, max_depth: Optional[int] = None):
        self.db = db
        self.max_depth = max_depth or settings.HIERARCHY_MAX_DEPTH

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def get_by_universe(self, universe_id: str) -> List[RelationshipEdge]:
        try:
            rows = (
                self.db.query(
                    ContentRelationship.parent_id,
                    ContentRelationship.child_id,
                    ContentRelationship.display_order,
                )
                .filter(ContentRelationship.universe_id == universe_id)
                .order_by(
                    ContentRelationship.display_order.asc(),
                    ContentRelationship.created_at.asc(),
                    ContentRelationship.id.asc(),
                )
                .all()
            )
        except SQLAlchemyError as exc:
            logger.error("Lecture des relations de l'univers %s impossible: %s", universe_id, exc)
            raise RelationshipError("relationships_fetch_failed", status_code=500) from exc
        return [_to_edge(row) for row in rows]

    def get_parents(self, content_id: str) -> List[RelationshipEdge]:
        """Edges naming ``content_id`` as child, earliest link first.

        The ordering (creation time, then parent id) is the canonical
        tie-break whenever a single parent must be chosen.
        """
        try:
            rows = (
                self.db.query(
                    ContentRelationship.parent_id,
                    ContentRelationship.child_id,
                    ContentRelationship.display_order,
                )
                .filter(ContentRelationship.child_id == content_id)
                .order_by(ContentRelationship.created_at.asc(), ContentRelationship.parent_id.asc())
                .all()
            )
        except SQLAlchemyError as exc:
            logger.error("Lecture des parents du contenu %s impossible: %s", content_id, exc)
            raise RelationshipError("relationships_fetch_failed", status_code=500) from exc
        return [_to_edge(row) for row in rows]

    def get_children(self, content_id: str) -> List[RelationshipEdge]:
        try:
            rows = (
                self.db.query(
                    ContentRelationship.parent_id,
                    ContentRelationship.child_id,
                    ContentRelationship.display_order,
                )
                .filter(ContentRelationship.parent_id == content_id)
                .order_by(
                    ContentRelationship.display_order.asc(),
                    ContentRelationship.created_at.asc(),
                    ContentRelationship.child_id.asc(),
                )
                .all()
            )
        except SQLAlchemyError as exc:
            logger.error("Lecture des enfants du contenu %s impossible: %s", content_id, exc)
            raise RelationshipError("relationships_fetch_failed", status_code=500) from exc
        return [_to_edge(row) for row in rows]

    def exists(self, parent_id: str, child_id: str) -> bool:
        return (
            self.db.query(ContentRelationship.id)
            .filter(
                ContentRelationship.parent_id == parent_id,
                ContentRelationship.child_id == child_id,
            )
            .first()
            is not None
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def create(self, parent_id: str, child_id: str, universe_id: str, user_id: str) -> ContentRelationship:
        """Insert an edge. Cycle detection is the caller's job (see :meth:`link`)."""
        if parent_id == child_id:
            raise RelationshipError("self_relationship")

        self._ensure_same_universe(parent_id, child_id, universe_id)

        relationship = ContentRelationship(
            parent_id=parent_id,
            child_id=child_id,
            universe_id=universe_id,
            user_id=user_id,
        )
        self.db.add(relationship)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            logger.error("Création de la relation %s -> %s refusée: %s", parent_id, child_id, exc)
            raise RelationshipError("relationship_create_failed", status_code=409) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Création de la relation %s -> %s échouée: %s", parent_id, child_id, exc)
            raise RelationshipError("relationship_create_failed", status_code=500) from exc

        self.db.refresh(relationship)
        logger.info("Relation %s -> %s créée dans l'univers %s.", parent_id, child_id, universe_id)
        return relationship

    def link(self, parent_id: str, child_id: str, universe_id: str, user_id: str) -> ContentRelationship:
        """Validated edge creation used by the API."""
        self._ensure_universe_owner(universe_id, user_id)

        parent = content_crud.get_content(self.db, parent_id)
        if parent is not None and parent.is_viewable:
            raise RelationshipError("viewable_parent")

        if self.exists(parent_id, child_id):
            raise RelationshipError("relationship_exists", status_code=409)

        if self.would_create_circular_dependency(parent_id, child_id):
            raise RelationshipError("circular_dependency", status_code=409)

        return self.create(parent_id, child_id, universe_id, user_id)

    def delete(self, parent_id: str, child_id: str, user_id: str) -> None:
        """Remove one edge from a universe owned by ``user_id``."""
        relationship = (
            self.db.query(ContentRelationship)
            .filter(
                ContentRelationship.parent_id == parent_id,
                ContentRelationship.child_id == child_id,
            )
            .first()
        )
        if relationship is None:
            raise RelationshipError("relationship_not_found", status_code=404)

        self._ensure_universe_owner(relationship.universe_id, user_id)

        try:
            self.db.delete(relationship)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Suppression de la relation %s -> %s échouée: %s", parent_id, child_id, exc)
            raise RelationshipError("relationship_delete_failed", status_code=500) from exc

        logger.info("Relation %s -> %s supprimée.", parent_id, child_id)

    def delete_all_for_content(self, content_id: str) -> int:
        """Remove every edge where ``content_id`` is parent or child."""
        try:
            deleted = (
                self.db.query(ContentRelationship)
                .filter(
                    or_(
                        ContentRelationship.parent_id == content_id,
                        ContentRelationship.child_id == content_id,
                    )
                )
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Suppression des relations du contenu %s échouée: %s", content_id, exc)
            raise RelationshipError("relationship_delete_failed", status_code=500) from exc

        logger.info("%s relation(s) supprimée(s) pour le contenu %s.", deleted, content_id)
        return deleted

    # ------------------------------------------------------------------
    # Derivations
    # ------------------------------------------------------------------
    def would_create_circular_dependency(self, parent_id: str, child_id: str) -> bool:
        """True when adding ``parent_id -> child_id`` would close a cycle."""
        if parent_id == child_id:
            return True

        try:
            return self._is_ancestor(child_id, parent_id, visited=set(), branch=frozenset(), depth=0)
        except Exception:
            logger.exception("Vérification de dépendance circulaire impossible (%s -> %s).", parent_id, child_id)
            return True

    def _is_ancestor(
        self,
        potential_ancestor: str,
        descendant: str,
        *,
        visited: set,
        branch: frozenset,
        depth: int,
    ) -> bool:
        if depth > self.max_depth:
            raise RelationshipError("hierarchy_too_deep")

        if descendant in branch:
            logger.warning("Cycle existant détecté autour du contenu %s.", descendant)
            return False
        # Already explored through another parent.
        if descendant in visited:
            return False
        visited.add(descendant)

        try:
            parents = self.get_parents(descendant)
        except RelationshipError:
            logger.error("Ancêtres de %s illisibles, considéré comme non-ancêtre.", descendant)
            return False

        for edge in parents:
            if edge.parent_id == potential_ancestor:
                return True
            if self._is_ancestor(
                potential_ancestor,
                edge.parent_id,
                visited=visited,
                branch=branch | {descendant},
                depth=depth + 1,
            ):
                return True
        return False

    def build_hierarchy_tree(self, content_items: Iterable[Any], edges: Iterable[Any]) -> List[HierarchyNode]:
        try:
            return build_hierarchy_tree(content_items, edges, max_depth=self.max_depth)
        except Exception:
            logger.exception("Construction de l'arbre hiérarchique échouée.")
            return []

    def get_universe_hierarchy(self, universe_id: str) -> List[HierarchyNode]:
        try:
            content_items = content_crud.list_universe_content(self.db, universe_id)
            edges = self.get_by_universe(universe_id)
        except Exception:
            logger.exception("Hiérarchie de l'univers %s indisponible.", universe_id)
            return []

        dangling = find_dangling_relationships(content_items, edges)
        if dangling:
            logger.warning("%s relation(s) orpheline(s) ignorée(s) dans l'univers %s.", len(dangling), universe_id)
        return self.build_hierarchy_tree(content_items, edges)

    def get_parent_options(self, universe_id: str, exclude_id: Optional[str] = None) -> List[HierarchicalOption]:
        return flatten_hierarchy(self.get_universe_hierarchy(universe_id), exclude_id=exclude_id)

    def get_content_path(self, content_id: str) -> List[str]:
        """Ids from the root down to ``content_id``, following the first parent."""
        try:
            path = [content_id]
            seen = {content_id}
            current_id = content_id

            while len(path) <= self.max_depth:
                parents = self.get_parents(current_id)
                if not parents:
                    break

                parent_id = parents[0].parent_id
                if parent_id in seen:
                    logger.warning("Cycle détecté dans le chemin du contenu %s.", content_id)
                    break

                path.insert(0, parent_id)
                seen.add(parent_id)
                current_id = parent_id

            return path
        except Exception:
            logger.exception("Chemin du contenu %s indisponible.", content_id)
            return [content_id]

    def get_integrity_report(self, universe_id: str) -> Dict[str, List[Any]]:
        """Orphaned content and dangling edges of a universe."""
        try:
            content_items = content_crud.list_universe_content(self.db, universe_id)
            edges = self.get_by_universe(universe_id)
        except Exception:
            logger.exception("Rapport d'intégrité de l'univers %s indisponible.", universe_id)
            return {"orphaned_content": [], "dangling_relationships": []}

        return {
            "orphaned_content": find_orphaned_content(content_items, edges),
            "dangling_relationships": find_dangling_relationships(content_items, edges),
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _ensure_universe_owner(self, universe_id: str, user_id: str) -> None:
        universe = content_crud.get_universe(self.db, universe_id)
        if universe is None:
            raise RelationshipError("universe_not_found", status_code=404)
        if universe.user_id != user_id:
            logger.warning("Utilisateur %s sans droit d'écriture sur l'univers %s.", user_id, universe_id)
            raise RelationshipError("universe_forbidden", status_code=403)

    def _ensure_same_universe(self, parent_id: str, child_id: str, universe_id: str) -> None:
        try:
            rows = (
                self.db.query(Content.id, Content.universe_id)
                .filter(Content.id.in_((parent_id, child_id)))
                .all()
            )
        except SQLAlchemyError as exc:
            logger.error("Lecture des contenus %s / %s impossible: %s", parent_id, child_id, exc)
            raise RelationshipError("relationship_create_failed", status_code=500) from exc

        universes = {row.id: row.universe_id for row in rows}
        if parent_id not in universes or child_id not in universes:
            raise RelationshipError("content_not_found", status_code=404)

        if universes[parent_id] != universe_id or universes[child_id] != universe_id:
            logger.warning(
                "Relation inter-univers refusée: %s (%s) -> %s (%s) pour l'univers %s.",
                parent_id,
                universes[parent_id],
                child_id,
                universes[child_id],
                universe_id,
            )
            raise RelationshipError("cross_universe_relationship")


def _to_edge(row: Any) -> RelationshipEdge:
    return RelationshipEdge(
        parent_id=row.parent_id,
        child_id=row.child_id,
        display_order=row.display_order or 0,
    )
