from __future__ import annotations

from datetime import datetime
from typing import ClassVar, Final

from pydantic import BaseModel, Field
from sqlalchemy import Select, delete, select, update

from rpstudio.core.catalog import DEFAULT_MODEL_ID, SamplingParams, default_sampling_params
from rpstudio.core.errors import NotFound
from rpstudio.db.models import Story, StoryCharacter
from rpstudio.repositories._common import (
    ChildTable,
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


STORY_CASCADE: Final[tuple[ChildTable, ...]] = (
    ChildTable(StoryCharacter, StoryCharacter.story_id),
)


class StoryCreate(BaseModel):
    title: Title
    plot_description: str | None = None
    style_description: str | None = None
    model_id: str = Field(default=DEFAULT_MODEL_ID, max_length=100)
    sampling_params: SamplingParams = Field(default_factory=default_sampling_params)


class StoryUpdate(PatchModel):
    non_nullable: ClassVar[frozenset[str]] = frozenset({"title"})

    title: str | None = Field(default=None, max_length=300)
    plot_description: str | None = None
    style_description: str | None = None
    content: str | None = None
    model_id: str | None = Field(default=None, max_length=100)
    sampling_params: SamplingParams | None = None


class StoryOut(RowModel):
    id: int
    user_id: int
    title: str
    plot_description: str | None
    style_description: str | None
    content: str | None
    model_id: str | None
    sampling_params: dict[str, object] | None
    created_at: datetime
    updated_at: datetime


class StoryCharacterCreate(BaseModel):
    story_id: int
    name: Name
    description: str | None = None
    order_index: int = 0


class StoryCharacterUpdate(PatchModel):
    non_nullable: ClassVar[frozenset[str]] = frozenset({"name"})

    name: str | None = Field(default=None, max_length=200)
    description: str | None = None


class StoryCharacterOut(RowModel):
    id: int
    story_id: int
    name: str
    description: str | None
    order_index: int | None


def _owned_story_ids(user_id: int) -> Select[tuple[int]]:
    return select(Story.id).where(Story.user_id == user_id)


def create_story(user_id: int, data: StoryCreate) -> int:
    row = Story(
        user_id=user_id,
        title=data.title,
        plot_description=data.plot_description,
        style_description=data.style_description,
        model_id=data.model_id,
        sampling_params=data.sampling_params.to_json(),
    )
    with write_session("create story") as db:
        return insert_row(db, row)


@degrades_to(list)
def list_stories(user_id: int) -> list[StoryOut]:
    with read_session("list stories") as db:
        rows = db.execute(
            select(Story)
            .where(Story.user_id == user_id)
            .order_by(Story.updated_at.desc(), Story.id.desc())
        ).scalars()
        return [StoryOut.model_validate(r) for r in rows]


@degrades_to(lambda: None)
def get_story(story_id: int, user_id: int) -> StoryOut | None:
    with read_session("get story") as db:
        row = db.execute(
            select(Story).where(Story.id == story_id, Story.user_id == user_id).limit(1)
        ).scalar_one_or_none()
        return StoryOut.model_validate(row) if row is not None else None


@skipped_when_unavailable
def update_story(story_id: int, user_id: int, data: StoryUpdate) -> None:
    changes = data.changes()
    if "sampling_params" in changes and data.sampling_params is not None:
        changes["sampling_params"] = data.sampling_params.to_json()
    if not changes:
        return
    with write_session("update story") as db:
        _ = db.execute(
            update(Story).where(Story.id == story_id, Story.user_id == user_id).values(**changes)
        )


@skipped_when_unavailable
def delete_story(story_id: int, user_id: int) -> None:
    with write_session("delete story") as db:
        _ = cascade_delete(
            db,
            parent=Story,
            parent_id=story_id,
            user_id=user_id,
            children=STORY_CASCADE,
        )


def add_story_character(user_id: int, data: StoryCharacterCreate) -> int:
    with write_session("add story character") as db:
        if not is_owned(db, Story, data.story_id, user_id):
            raise NotFound("Story", data.story_id)
        return insert_row(db, StoryCharacter(**data.model_dump()))


@degrades_to(list)
def list_story_characters(story_id: int, user_id: int) -> list[StoryCharacterOut]:
    with read_session("list story characters") as db:
        rows = db.execute(
            select(StoryCharacter)
            .where(
                StoryCharacter.story_id == story_id,
                StoryCharacter.story_id.in_(_owned_story_ids(user_id)),
            )
            .order_by(StoryCharacter.order_index.asc(), StoryCharacter.id.asc())
        ).scalars()
        return [StoryCharacterOut.model_validate(r) for r in rows]


@skipped_when_unavailable
def update_story_character(character_id: int, user_id: int, data: StoryCharacterUpdate) -> None:
    changes = data.changes()
    if not changes:
        return
    with write_session("update story character") as db:
        _ = db.execute(
            update(StoryCharacter)
            .where(
                StoryCharacter.id == character_id,
                StoryCharacter.story_id.in_(_owned_story_ids(user_id)),
            )
            .values(**changes)
            .execution_options(synchronize_session=False)
        )


@skipped_when_unavailable
def delete_story_character(character_id: int, user_id: int) -> None:
    with write_session("delete story character") as db:
        _ = db.execute(
            delete(StoryCharacter)
            .where(
                StoryCharacter.id == character_id,
                StoryCharacter.story_id.in_(_owned_story_ids(user_id)),
            )
            .execution_options(synchronize_session=False)
        )
