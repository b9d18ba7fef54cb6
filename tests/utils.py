"""Utility helpers for test factories."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from app.models.progress.user_progress_model import UserProgress
from app.models.universe.content_model import Content
from app.models.universe.content_relationship_model import ContentRelationship
from app.models.universe.universe_model import Universe
from app.models.user.user_model import User


def create_user(db, **kwargs) -> User:
    defaults = {
        "email": "user@example.com",
        "name": "User",
        "is_active": True,
    }
    defaults.update(kwargs)
    user = User(**defaults)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_universe(db, user: User, **kwargs) -> Universe:
    defaults = {
        "name": "Star Wars",
        "description": "A galaxy far, far away",
        "user_id": user.id,
    }
    defaults.update(kwargs)
    universe = Universe(**defaults)
    db.add(universe)
    db.commit()
    db.refresh(universe)
    return universe


def create_content(db, universe: Universe, name: str, *, viewable: bool, **kwargs) -> Content:
    defaults = {
        "name": name,
        "universe_id": universe.id,
        "user_id": universe.user_id,
        "is_viewable": viewable,
        "media_type": "video" if viewable else "collection",
    }
    defaults.update(kwargs)
    content = Content(**defaults)
    db.add(content)
    db.commit()
    db.refresh(content)
    return content


def create_edge(db, parent: Content, child: Content, **kwargs) -> ContentRelationship:
    """Insert an edge directly, bypassing service validation."""
    defaults = {
        "parent_id": parent.id,
        "child_id": child.id,
        "universe_id": kwargs.pop("universe_id", parent.universe_id),
        "user_id": parent.user_id,
    }
    defaults.update(kwargs)
    edge = ContentRelationship(**defaults)
    db.add(edge)
    db.commit()
    db.refresh(edge)
    return edge


def create_progress(db, user: User, content: Content, progress: int, **kwargs) -> UserProgress:
    defaults = {
        "user_id": user.id,
        "content_id": content.id,
        "universe_id": content.universe_id,
        "progress": progress,
    }
    defaults.update(kwargs)
    entry = UserProgress(**defaults)
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def minutes_ago(minutes: int) -> datetime:
    return datetime.now(timezone.utc) - timedelta(minutes=minutes)


def create_saga(db, user: User):
    """Universe with a two-level hierarchy.

    saga (org)
      trilogy (org)
        episode_iv (viewable)
        episode_v (viewable)
      rogue_one (viewable)
    """
    universe = create_universe(db, user)
    saga = create_content(db, universe, "Skywalker Saga", viewable=False)
    trilogy = create_content(db, universe, "Original Trilogy", viewable=False)
    episode_iv = create_content(db, universe, "A New Hope", viewable=True)
    episode_v = create_content(db, universe, "The Empire Strikes Back", viewable=True)
    rogue_one = create_content(db, universe, "Rogue One", viewable=True)

    create_edge(db, saga, trilogy, created_at=minutes_ago(50))
    create_edge(db, trilogy, episode_iv, created_at=minutes_ago(40))
    create_edge(db, trilogy, episode_v, created_at=minutes_ago(30))
    create_edge(db, saga, rogue_one, created_at=minutes_ago(20))

    return universe, {
        "saga": saga,
        "trilogy": trilogy,
        "episode_iv": episode_iv,
        "episode_v": episode_v,
        "rogue_one": rogue_one,
    }
