from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field
from sqlalchemy import delete, select, update

from rpstudio.db.models import ApiKey, now_utc
from rpstudio.repositories._common import (
    RowModel,
    degrades_to,
    insert_row,
    read_session,
    skipped_when_unavailable,
    write_session,
)


class ApiKeyCreate(BaseModel):
    key_name: str = Field(..., min_length=1, max_length=100)
    # Ciphertext only; encryption happens before this layer.
    encrypted_key: str = Field(..., min_length=1)


class ApiKeyListItem(RowModel):
    id: int
    key_name: str
    last_used: datetime | None
    created_at: datetime


class ApiKeyOut(ApiKeyListItem):
    user_id: int
    encrypted_key: str


def create_api_key(user_id: int, data: ApiKeyCreate) -> int:
    with write_session("create api key") as db:
        return insert_row(db, ApiKey(user_id=user_id, **data.model_dump()))


@degrades_to(list)
def list_api_keys(user_id: int) -> list[ApiKeyListItem]:
    with read_session("list api keys") as db:
        rows = db.execute(
            select(ApiKey).where(ApiKey.user_id == user_id).order_by(ApiKey.id.asc())
        ).scalars()
        return [ApiKeyListItem.model_validate(r) for r in rows]


@degrades_to(lambda: None)
def get_api_key(key_id: int, user_id: int) -> ApiKeyOut | None:
    with read_session("get api key") as db:
        row = db.execute(
            select(ApiKey).where(ApiKey.id == key_id, ApiKey.user_id == user_id).limit(1)
        ).scalar_one_or_none()
        return ApiKeyOut.model_validate(row) if row is not None else None


@skipped_when_unavailable
def touch_api_key(key_id: int, user_id: int) -> None:
    with write_session("touch api key") as db:
        _ = db.execute(
            update(ApiKey)
            .where(ApiKey.id == key_id, ApiKey.user_id == user_id)
            .values(last_used=now_utc())
        )


@skipped_when_unavailable
def delete_api_key(key_id: int, user_id: int) -> None:
    with write_session("delete api key") as db:
        _ = db.execute(delete(ApiKey).where(ApiKey.id == key_id, ApiKey.user_id == user_id))
