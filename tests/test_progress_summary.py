from __future__ import annotations

import pytest

from app.services.progress_service import ProgressService
from tests.utils import create_content, create_progress, create_saga, create_universe, create_user


@pytest.fixture()
def user(db_session):
    return create_user(db_session, email="binge@example.com")


def test_summary_for_new_user_is_empty(db_session, user):
    summary = ProgressService(db_session).get_progress_summary(user.id)

    assert summary.total_content == 0
    assert summary.completed_content == 0
    assert summary.total_universes == 0
    assert summary.completed_universes == 0


def test_summary_with_zero_progress_rows(db_session, user):
    universe, items = create_saga(db_session, user)
    for key in ("episode_iv", "episode_v", "rogue_one"):
        create_progress(db_session, user, items[key], 0)

    summary = ProgressService(db_session).get_progress_summary(user.id)

    assert summary.total_content == 3
    assert summary.completed_content == 0
    assert summary.total_universes == 1
    assert summary.completed_universes == 0


def test_single_completed_item_completes_its_universe(db_session, user):
    universe = create_universe(db_session, user, name="Short Film")
    create_content(db_session, universe, "Collection", viewable=False)
    short = create_content(db_session, universe, "The Short", viewable=True)
    create_progress(db_session, user, short, 100)

    summary = ProgressService(db_session).get_progress_summary(user.id)

    assert summary.completed_content == 1
    assert summary.total_universes == 1
    assert summary.completed_universes == 1


def test_universe_requires_every_viewable_item(db_session, user):
    universe, items = create_saga(db_session, user)
    create_progress(db_session, user, items["episode_iv"], 100)
    create_progress(db_session, user, items["episode_v"], 100)

    service = ProgressService(db_session)
    assert service.get_progress_summary(user.id).completed_universes == 0

    create_progress(db_session, user, items["rogue_one"], 100)
    assert service.get_progress_summary(user.id).completed_universes == 1


def test_universe_without_viewable_content_is_never_completed(db_session, user):
    empty = create_universe(db_session, user, name="Announced")
    shelf = create_content(db_session, empty, "Shelf", viewable=False)
    # Row left behind from before the item was reclassified.
    create_progress(db_session, user, shelf, 100)

    summary = ProgressService(db_session).get_progress_summary(user.id)

    assert summary.total_universes == 1
    assert summary.completed_universes == 0


def test_summary_degrades_to_zeroes_on_failure(db_session, user, monkeypatch):
    service = ProgressService(db_session)

    def broken_query(*args, **kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(db_session, "query", broken_query)

    summary = service.get_progress_summary(user.id)

    assert summary.total_content == 0
    assert summary.completed_universes == 0
