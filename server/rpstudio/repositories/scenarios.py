from __future__ import annotations

from datetime import datetime
from typing import ClassVar, Final, Literal

from pydantic import BaseModel, Field
from sqlalchemy import Select, delete, select, update

from rpstudio.core.errors import NotFound
from rpstudio.db.models import Scenario, ScenarioCharacter, ScenarioInteraction
from rpstudio.repositories._common import (
    ChildTable,
    Label,
    Name,
    PatchModel,
    RowModel,
    Title,
    cascade_delete,
    degrades_to,
    insert_row,
    is_owned,
    read_session,
    skipped_when_unavailable,
    write_session,
)


InteractionType = Literal["message", "text", "instruction"]

# Children removed before a scenario row, in this order.
SCENARIO_CASCADE: Final[tuple[ChildTable, ...]] = (
    ChildTable(ScenarioInteraction, ScenarioInteraction.scenario_id),
    ChildTable(ScenarioCharacter, ScenarioCharacter.scenario_id),
)


class ScenarioCreate(BaseModel):
    title: Title
    prompt_description: str | None = None
    display_description: str | None = None
    image_url: str | None = None
    is_public: bool = False


class ScenarioUpdate(PatchModel):
    non_nullable: ClassVar[frozenset[str]] = frozenset({"title"})

    title: Title | None = None
    prompt_description: str | None = None
    display_description: str | None = None
    image_url: str | None = None
    is_public: bool | None = None


class ScenarioOut(RowModel):
    id: int
    user_id: int
    title: str
    prompt_description: str | None
    display_description: str | None
    image_url: str | None
    is_public: bool | None
    created_at: datetime
    updated_at: datetime


class ScenarioCharacterCreate(BaseModel):
    scenario_id: int
    character_id: int | None = None
    name: Name
    label: Label
    prompt_description: str | None = None
    is_user_character: bool = False
    order_index: int = 0


class ScenarioCharacterOut(RowModel):
    id: int
    scenario_id: int
    character_id: int | None
    name: str
    label: str
    prompt_description: str | None
    is_user_character: bool | None
    order_index: int | None


class ScenarioInteractionCreate(BaseModel):
    scenario_id: int
    interaction_type: InteractionType
    character_label: str | None = Field(default=None, max_length=100)
    content: str = Field(..., min_length=1)
    is_sticky: bool = False
    order_index: int = 0


class ScenarioInteractionUpdate(PatchModel):
    non_nullable: ClassVar[frozenset[str]] = frozenset({"content"})

    content: str | None = None
    is_sticky: bool | None = None


class ScenarioInteractionOut(RowModel):
    id: int
    scenario_id: int
    interaction_type: InteractionType
    character_label: str | None
    content: str
    is_sticky: bool | None
    order_index: int | None


def _owned_scenario_ids(user_id: int) -> Select[tuple[int]]:
    return select(Scenario.id).where(Scenario.user_id == user_id)


def create_scenario(user_id: int, data: ScenarioCreate) -> int:
    with write_session("create scenario") as db:
        return insert_row(db, Scenario(user_id=user_id, **data.model_dump()))


@degrades_to(list)
def list_scenarios(user_id: int) -> list[ScenarioOut]:
    with read_session("list scenarios") as db:
        rows = db.execute(
            select(Scenario)
            .where(Scenario.user_id == user_id)
            .order_by(Scenario.updated_at.desc(), Scenario.id.desc())
        ).scalars()
        return [ScenarioOut.model_validate(r) for r in rows]


@degrades_to(list)
def list_public_scenarios(search: str | None = None) -> list[ScenarioOut]:
    stmt = select(Scenario).where(Scenario.is_public.is_(True))
    if search:
        stmt = stmt.where(Scenario.title.contains(search, autoescape=True))
    stmt = stmt.order_by(Scenario.created_at.desc(), Scenario.id.desc())
    with read_session("list public scenarios") as db:
        return [ScenarioOut.model_validate(r) for r in db.execute(stmt).scalars()]


@degrades_to(lambda: None)
def get_scenario(scenario_id: int) -> ScenarioOut | None:
    """Fetch by id alone: scenarios may be public, so no owner filter here."""
    with read_session("get scenario") as db:
        row = db.get(Scenario, scenario_id)
        return ScenarioOut.model_validate(row) if row is not None else None


@skipped_when_unavailable
def update_scenario(scenario_id: int, user_id: int, data: ScenarioUpdate) -> None:
    changes = data.changes()
    if not changes:
        return
    with write_session("update scenario") as db:
        _ = db.execute(
            update(Scenario)
            .where(Scenario.id == scenario_id, Scenario.user_id == user_id)
            .values(**changes)
        )


@skipped_when_unavailable
def delete_scenario(scenario_id: int, user_id: int) -> None:
    with write_session("delete scenario") as db:
        _ = cascade_delete(
            db,
            parent=Scenario,
            parent_id=scenario_id,
            user_id=user_id,
            children=SCENARIO_CASCADE,
        )


def add_scenario_character(user_id: int, data: ScenarioCharacterCreate) -> int:
    with write_session("add scenario character") as db:
        if not is_owned(db, Scenario, data.scenario_id, user_id):
            raise NotFound("Scenario", data.scenario_id)
        return insert_row(db, ScenarioCharacter(**data.model_dump()))


@degrades_to(list)
def list_scenario_characters(scenario_id: int) -> list[ScenarioCharacterOut]:
    with read_session("list scenario characters") as db:
        rows = db.execute(
            select(ScenarioCharacter)
            .where(ScenarioCharacter.scenario_id == scenario_id)
            .order_by(ScenarioCharacter.order_index.asc(), ScenarioCharacter.id.asc())
        ).scalars()
        return [ScenarioCharacterOut.model_validate(r) for r in rows]


@skipped_when_unavailable
def delete_scenario_character(character_id: int, user_id: int) -> None:
    with write_session("delete scenario character") as db:
        _ = db.execute(
            delete(ScenarioCharacter).where(
                ScenarioCharacter.id == character_id,
                ScenarioCharacter.scenario_id.in_(_owned_scenario_ids(user_id)),
            ).execution_options(synchronize_session=False)
        )


def add_scenario_interaction(user_id: int, data: ScenarioInteractionCreate) -> int:
    with write_session("add scenario interaction") as db:
        if not is_owned(db, Scenario, data.scenario_id, user_id):
            raise NotFound("Scenario", data.scenario_id)
        return insert_row(db, ScenarioInteraction(**data.model_dump()))


@degrades_to(list)
def list_scenario_interactions(scenario_id: int) -> list[ScenarioInteractionOut]:
    with read_session("list scenario interactions") as db:
        rows = db.execute(
            select(ScenarioInteraction)
            .where(ScenarioInteraction.scenario_id == scenario_id)
            .order_by(ScenarioInteraction.order_index.asc(), ScenarioInteraction.id.asc())
        ).scalars()
        return [ScenarioInteractionOut.model_validate(r) for r in rows]


@skipped_when_unavailable
def update_scenario_interaction(
    interaction_id: int, user_id: int, data: ScenarioInteractionUpdate
) -> None:
    changes = data.changes()
    if not changes:
        return
    with write_session("update scenario interaction") as db:
        _ = db.execute(
            update(ScenarioInteraction)
            .where(
                ScenarioInteraction.id == interaction_id,
                ScenarioInteraction.scenario_id.in_(_owned_scenario_ids(user_id)),
            )
            .values(**changes)
            .execution_options(synchronize_session=False)
        )


@skipped_when_unavailable
def delete_scenario_interaction(interaction_id: int, user_id: int) -> None:
    with write_session("delete scenario interaction") as db:
        _ = db.execute(
            delete(ScenarioInteraction).where(
                ScenarioInteraction.id == interaction_id,
                ScenarioInteraction.scenario_id.in_(_owned_scenario_ids(user_id)),
            ).execution_options(synchronize_session=False)
        )
