# pyright: reportMissingImports=false

from __future__ import annotations

import pytest

from rpstudio.core.errors import NotFound
from rpstudio.repositories.characters import CharacterCreate, create_character
from rpstudio.repositories.scenarios import (
    ScenarioCharacterCreate,
    ScenarioCreate,
    ScenarioInteractionCreate,
    add_scenario_character,
    add_scenario_interaction,
    create_scenario,
    get_scenario,
    list_scenario_characters,
    list_scenario_interactions,
    list_scenarios,
)
from rpstudio.services.scenarios import COPY_TITLE_SUFFIX, copy_scenario


def _public_source(owner: int) -> int:
    character_id = create_character(owner, CharacterCreate(name="Bard", label="bard"))
    sid = create_scenario(
        owner,
        ScenarioCreate(
            title="Tavern",
            prompt_description="dim light",
            display_description="A quiet tavern",
            image_url="https://img.example/tavern.png",
            is_public=True,
        ),
    )
    _ = add_scenario_character(
        owner,
        ScenarioCharacterCreate(
            scenario_id=sid,
            character_id=character_id,
            name="Bard",
            label="bard",
            prompt_description="sings",
            order_index=2,
        ),
    )
    _ = add_scenario_character(
        owner,
        ScenarioCharacterCreate(
            scenario_id=sid, name="You", label="you", is_user_character=True, order_index=0
        ),
    )
    _ = add_scenario_interaction(
        owner,
        ScenarioInteractionCreate(
            scenario_id=sid,
            interaction_type="instruction",
            content="Keep it cozy.",
            is_sticky=True,
            order_index=5,
        ),
    )
    _ = add_scenario_interaction(
        owner,
        ScenarioInteractionCreate(
            scenario_id=sid,
            interaction_type="message",
            character_label="bard",
            content="Welcome!",
            order_index=1,
        ),
    )
    return sid


def test_copy_creates_private_clone_for_caller() -> None:
    source_id = _public_source(owner=1)

    new_id = copy_scenario(source_id, 2)

    assert new_id != source_id
    clone = get_scenario(new_id)
    source = get_scenario(source_id)
    assert clone is not None and source is not None
    assert clone.user_id == 2
    assert clone.title == "Tavern" + COPY_TITLE_SUFFIX
    assert clone.title == "Tavern (Copy)"
    assert clone.is_public is False
    assert clone.prompt_description == source.prompt_description
    assert clone.display_description == source.display_description
    assert clone.image_url == source.image_url
    assert [s.id for s in list_scenarios(2)] == [new_id]


def test_copy_preserves_children_and_their_order() -> None:
    source_id = _public_source(owner=1)

    new_id = copy_scenario(source_id, 2)

    def char_shape(scenario_id: int) -> list[tuple[object, ...]]:
        return [
            (c.character_id, c.name, c.label, c.prompt_description, c.is_user_character, c.order_index)
            for c in list_scenario_characters(scenario_id)
        ]

    def interaction_shape(scenario_id: int) -> list[tuple[object, ...]]:
        return [
            (i.interaction_type, i.character_label, i.content, i.is_sticky, i.order_index)
            for i in list_scenario_interactions(scenario_id)
        ]

    assert char_shape(new_id) == char_shape(source_id)
    assert interaction_shape(new_id) == interaction_shape(source_id)
    assert [c.scenario_id for c in list_scenario_characters(new_id)] == [new_id, new_id]


def test_copy_leaves_source_untouched() -> None:
    source_id = _public_source(owner=1)
    before = (
        get_scenario(source_id),
        list_scenario_characters(source_id),
        list_scenario_interactions(source_id),
    )

    _ = copy_scenario(source_id, 1)

    after = (
        get_scenario(source_id),
        list_scenario_characters(source_id),
        list_scenario_interactions(source_id),
    )
    assert after == before


def test_copy_of_copy_appends_suffix_again() -> None:
    source_id = _public_source(owner=1)
    first = copy_scenario(source_id, 2)
    second = copy_scenario(first, 2)

    clone = get_scenario(second)
    assert clone is not None
    assert clone.title == "Tavern (Copy) (Copy)"


def test_copy_missing_scenario_raises_not_found() -> None:
    with pytest.raises(NotFound) as excinfo:
        _ = copy_scenario(424242, 1)
    assert excinfo.value.entity == "Scenario"
    assert list_scenarios(1) == []
