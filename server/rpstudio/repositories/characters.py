from __future__ import annotations

from datetime import datetime
from typing import ClassVar

from pydantic import BaseModel
from sqlalchemy import delete, select, update

from rpstudio.db.models import Character
from rpstudio.repositories._common import (
    Label,
    Name,
    PatchModel,
    RowModel,
    degrades_to,
    insert_row,
    read_session,
    skipped_when_unavailable,
    write_session,
)


class CharacterCreate(BaseModel):
    name: Name
    label: Label
    prompt_description: str | None = None
    display_description: str | None = None
    image_url: str | None = None
    is_user_character: bool = False


class CharacterUpdate(PatchModel):
    non_nullable: ClassVar[frozenset[str]] = frozenset({"name", "label"})

    name: Name | None = None
    label: Label | None = None
    prompt_description: str | None = None
    display_description: str | None = None
    image_url: str | None = None
    is_user_character: bool | None = None


class CharacterOut(RowModel):
    id: int
    user_id: int
    name: str
    label: str
    prompt_description: str | None
    display_description: str | None
    image_url: str | None
    is_user_character: bool | None
    created_at: datetime
    updated_at: datetime


def create_character(user_id: int, data: CharacterCreate) -> int:
    with write_session("create character") as db:
        return insert_row(db, Character(user_id=user_id, **data.model_dump()))


@degrades_to(list)
def list_characters(user_id: int) -> list[CharacterOut]:
    with read_session("list characters") as db:
        rows = db.execute(
            select(Character)
            .where(Character.user_id == user_id)
            .order_by(Character.updated_at.desc(), Character.id.desc())
        ).scalars()
        return [CharacterOut.model_validate(r) for r in rows]


@degrades_to(lambda: None)
def get_character(character_id: int, user_id: int) -> CharacterOut | None:
    with read_session("get character") as db:
        row = db.execute(
            select(Character)
            .where(Character.id == character_id, Character.user_id == user_id)
            .limit(1)
        ).scalar_one_or_none()
        return CharacterOut.model_validate(row) if row is not None else None


@skipped_when_unavailable
def update_character(character_id: int, user_id: int, data: CharacterUpdate) -> None:
    changes = data.changes()
    if not changes:
        return
    with write_session("update character") as db:
        _ = db.execute(
            update(Character)
            .where(Character.id == character_id, Character.user_id == user_id)
            .values(**changes)
        )


@skipped_when_unavailable
def delete_character(character_id: int, user_id: int) -> None:
    with write_session("delete character") as db:
        _ = db.execute(
            delete(Character).where(Character.id == character_id, Character.user_id == user_id)
        )
