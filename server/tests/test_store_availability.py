# pyright: reportMissingImports=false
# pyright: reportUnusedParameter=false

from __future__ import annotations

import logging

import pytest

from rpstudio.core.config import get_settings
from rpstudio.core.errors import StoreUnavailable
from rpstudio.db import session
from rpstudio.repositories.api_keys import get_api_key, list_api_keys
from rpstudio.repositories.characters import (
    CharacterCreate,
    CharacterUpdate,
    create_character,
    delete_character,
    get_character,
    list_characters,
    update_character,
)
from rpstudio.repositories.chat import (
    ChatSessionCreate,
    create_chat_session,
    get_chat_session,
    list_chat_messages,
    list_chat_sessions,
)
from rpstudio.repositories.images import get_generated_image, list_generated_images
from rpstudio.repositories.scenarios import (
    delete_scenario,
    get_scenario,
    list_public_scenarios,
    list_scenario_characters,
    list_scenario_interactions,
    list_scenarios,
)
from rpstudio.repositories.stories import get_story, list_stories, list_story_characters
from rpstudio.repositories.users import UserUpsert, get_user, get_user_by_open_id, upsert_user
from rpstudio.services.api_keys import reveal_api_key
from rpstudio.services.chat import get_chat_session_detail
from rpstudio.services.scenarios import copy_scenario, get_scenario_detail
from rpstudio.services.stories import get_story_detail


def test_acquire_returns_shared_handle() -> None:
    first = session.acquire()
    second = session.acquire()
    assert first is not None
    assert first is second


def test_acquire_without_database_url_is_unavailable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(session, "_handle", None)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    get_settings.cache_clear()
    try:
        assert session.acquire() is None
        with pytest.raises(StoreUnavailable) as excinfo:
            _ = session.open_session("list characters")
        assert "list characters" in str(excinfo.value)
    finally:
        get_settings.cache_clear()


def test_failed_connection_is_logged_and_retried(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    monkeypatch.setattr(session, "_handle", None)
    monkeypatch.setenv("DATABASE_URL", "sqlite+pysqlite:////nonexistent-dir/rpstudio/test.db")
    get_settings.cache_clear()

    attempts: list[str] = []
    real_connect = session._connect  # pyright: ignore[reportPrivateUsage]

    def counting_connect(url: str):
        attempts.append(url)
        return real_connect(url)

    monkeypatch.setattr(session, "_connect", counting_connect)
    caplog.set_level(logging.WARNING, logger="rpstudio.db.session")
    try:
        assert session.acquire() is None
        assert session.acquire() is None
    finally:
        get_settings.cache_clear()

    assert len(attempts) == 2
    assert "Failed to connect to database" in caplog.text


def test_reads_degrade_to_empty_values(unavailable_store: None) -> None:
    assert list_characters(1) == []
    assert list_chat_sessions(1) == []
    assert list_generated_images(1) == []
    assert list_public_scenarios() == []
    assert get_character(1, 1) is None
    assert get_user_by_open_id("someone") is None
    assert get_user(1) is None
    assert list_api_keys(1) == []
    assert get_api_key(1, 1) is None
    assert list_scenarios(1) == []
    assert get_scenario(1) is None
    assert list_scenario_characters(1) == []
    assert list_scenario_interactions(1) == []
    assert get_scenario_detail(1) is None
    assert get_chat_session(1, 1) is None
    assert list_chat_messages(1, 1) == []
    assert get_chat_session_detail(1, 1) is None
    assert list_stories(1) == []
    assert get_story(1, 1) is None
    assert list_story_characters(1, 1) == []
    assert get_story_detail(1, 1) is None
    assert get_generated_image(1, 1) is None
    assert reveal_api_key(1, 1) is None


def test_creates_raise_store_unavailable(unavailable_store: None) -> None:
    with pytest.raises(StoreUnavailable):
        _ = create_character(1, CharacterCreate(name="Aria", label="aria"))
    with pytest.raises(StoreUnavailable):
        _ = create_chat_session(1, ChatSessionCreate(title="Night talk"))
    with pytest.raises(StoreUnavailable):
        _ = copy_scenario(1, 1)


def test_updates_and_deletes_are_noops(
    unavailable_store: None, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.WARNING)
    update_character(1, 1, CharacterUpdate(name="Renamed"))
    delete_character(1, 1)
    delete_scenario(1, 1)
    assert "database not available" in caplog.text


def test_upsert_without_store_is_logged_noop(
    unavailable_store: None, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.WARNING, logger="rpstudio.repositories.users")
    upsert_user(UserUpsert(open_id="abc"))
    assert "Cannot upsert user" in caplog.text
