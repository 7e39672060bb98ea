# pyright: reportMissingImports=false

from __future__ import annotations

import pytest
from pydantic import ValidationError
from sqlalchemy import func, select

from rpstudio.core.errors import NotFound
from rpstudio.db.models import ScenarioCharacter, ScenarioInteraction
from rpstudio.db.session import acquire
from rpstudio.repositories.scenarios import (
    ScenarioCharacterCreate,
    ScenarioCreate,
    ScenarioInteractionCreate,
    ScenarioInteractionUpdate,
    ScenarioUpdate,
    add_scenario_character,
    add_scenario_interaction,
    create_scenario,
    delete_scenario,
    delete_scenario_character,
    delete_scenario_interaction,
    get_scenario,
    list_public_scenarios,
    list_scenario_characters,
    list_scenario_interactions,
    list_scenarios,
    update_scenario,
    update_scenario_interaction,
)
from rpstudio.services.scenarios import get_scenario_detail


def _count(model: type[ScenarioCharacter] | type[ScenarioInteraction], scenario_id: int) -> int:
    handle = acquire()
    assert handle is not None
    with handle.sessions() as db:
        return int(
            db.execute(
                select(func.count()).select_from(model).where(model.scenario_id == scenario_id)
            ).scalar_one()
        )


def _scenario_with_children(user_id: int = 1) -> int:
    sid = create_scenario(user_id, ScenarioCreate(title="Tavern", prompt_description="dim light"))
    _ = add_scenario_character(
        user_id, ScenarioCharacterCreate(scenario_id=sid, name="Bard", label="bard", order_index=1)
    )
    _ = add_scenario_character(
        user_id,
        ScenarioCharacterCreate(scenario_id=sid, name="Keeper", label="keeper", order_index=0),
    )
    _ = add_scenario_interaction(
        user_id,
        ScenarioInteractionCreate(
            scenario_id=sid, interaction_type="text", content="The door creaks.", order_index=0
        ),
    )
    _ = add_scenario_interaction(
        user_id,
        ScenarioInteractionCreate(
            scenario_id=sid,
            interaction_type="message",
            character_label="bard",
            content="Welcome!",
            order_index=1,
        ),
    )
    return sid


def test_children_are_listed_by_order_index() -> None:
    sid = _scenario_with_children()

    assert [c.label for c in list_scenario_characters(sid)] == ["keeper", "bard"]
    assert [i.content for i in list_scenario_interactions(sid)] == ["The door creaks.", "Welcome!"]


def test_children_with_equal_order_index_keep_insertion_order() -> None:
    sid = create_scenario(1, ScenarioCreate(title="Tie"))
    ids = [
        add_scenario_character(
            1, ScenarioCharacterCreate(scenario_id=sid, name=f"N{i}", label=f"n{i}")
        )
        for i in range(3)
    ]
    assert [c.id for c in list_scenario_characters(sid)] == ids


def test_scenario_detail_bundles_children() -> None:
    sid = _scenario_with_children()

    detail = get_scenario_detail(sid)
    assert detail is not None
    assert detail.title == "Tavern"
    assert [c.name for c in detail.characters] == ["Keeper", "Bard"]
    assert len(detail.interactions) == 2
    assert get_scenario_detail(9999) is None


def test_delete_scenario_cascades_to_children() -> None:
    sid = _scenario_with_children()
    other = _scenario_with_children()

    delete_scenario(sid, 1)

    assert get_scenario(sid) is None
    assert _count(ScenarioCharacter, sid) == 0
    assert _count(ScenarioInteraction, sid) == 0
    assert _count(ScenarioCharacter, other) == 2
    assert _count(ScenarioInteraction, other) == 2


def test_delete_by_non_owner_touches_nothing() -> None:
    sid = _scenario_with_children(user_id=1)

    delete_scenario(sid, 2)

    assert get_scenario(sid) is not None
    assert _count(ScenarioCharacter, sid) == 2
    assert _count(ScenarioInteraction, sid) == 2


def test_children_cannot_be_added_to_foreign_scenario() -> None:
    sid = create_scenario(1, ScenarioCreate(title="Mine"))

    with pytest.raises(NotFound) as excinfo:
        _ = add_scenario_character(
            2, ScenarioCharacterCreate(scenario_id=sid, name="Intruder", label="intruder")
        )
    assert str(excinfo.value) == f"Scenario not found (id: {sid})"

    with pytest.raises(NotFound):
        _ = add_scenario_interaction(
            2, ScenarioInteractionCreate(scenario_id=sid, interaction_type="text", content="hi")
        )
    assert _count(ScenarioCharacter, sid) == 0


def test_child_mutations_require_owned_parent() -> None:
    sid = _scenario_with_children(user_id=1)
    interaction = list_scenario_interactions(sid)[0]
    character = list_scenario_characters(sid)[0]

    update_scenario_interaction(interaction.id, 2, ScenarioInteractionUpdate(content="hijacked"))
    delete_scenario_interaction(interaction.id, 2)
    delete_scenario_character(character.id, 2)

    assert list_scenario_interactions(sid)[0].content == interaction.content
    assert _count(ScenarioCharacter, sid) == 2

    update_scenario_interaction(
        interaction.id, 1, ScenarioInteractionUpdate(content="edited", is_sticky=True)
    )
    edited = list_scenario_interactions(sid)[0]
    assert edited.content == "edited"
    assert edited.is_sticky is True

    delete_scenario_character(character.id, 1)
    assert _count(ScenarioCharacter, sid) == 1


def test_update_scenario_is_owner_scoped() -> None:
    sid = create_scenario(1, ScenarioCreate(title="Original"))

    update_scenario(sid, 2, ScenarioUpdate(title="Hijacked"))
    scenario = get_scenario(sid)
    assert scenario is not None
    assert scenario.title == "Original"

    update_scenario(sid, 1, ScenarioUpdate(title="Renamed", is_public=True))
    scenario = get_scenario(sid)
    assert scenario is not None
    assert scenario.title == "Renamed"
    assert scenario.is_public is True


def test_scenario_title_cannot_be_cleared() -> None:
    with pytest.raises(ValidationError):
        _ = ScenarioUpdate(title=None)
    with pytest.raises(ValidationError):
        _ = ScenarioUpdate(title="")


def test_list_scenarios_only_returns_own() -> None:
    mine = create_scenario(1, ScenarioCreate(title="Mine"))
    _ = create_scenario(2, ScenarioCreate(title="Theirs"))

    assert [s.id for s in list_scenarios(1)] == [mine]


def test_public_scenarios_are_visible_and_searchable() -> None:
    tavern = create_scenario(1, ScenarioCreate(title="Moonlit Tavern", is_public=True))
    castle = create_scenario(2, ScenarioCreate(title="Castle Siege", is_public=True))
    _ = create_scenario(1, ScenarioCreate(title="Private Tavern"))

    assert [s.id for s in list_public_scenarios()] == [castle, tavern]
    assert [s.id for s in list_public_scenarios("Tavern")] == [tavern]
    assert list_public_scenarios("dragon") == []


def test_public_search_treats_wildcards_literally() -> None:
    _ = create_scenario(1, ScenarioCreate(title="Plain title", is_public=True))
    pct = create_scenario(1, ScenarioCreate(title="100% fun", is_public=True))

    assert [s.id for s in list_public_scenarios("%")] == [pct]
    assert list_public_scenarios("_") == []


def test_interaction_type_is_validated() -> None:
    with pytest.raises(ValidationError):
        _ = ScenarioInteractionCreate.model_validate(
            {"scenario_id": 1, "interaction_type": "shout", "content": "hey"}
        )
