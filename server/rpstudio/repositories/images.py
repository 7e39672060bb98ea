from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field
from sqlalchemy import delete, select

from rpstudio.core.config import get_settings
from rpstudio.db.models import GeneratedImage
from rpstudio.repositories._common import (
    RowModel,
    degrades_to,
    insert_row,
    read_session,
    skipped_when_unavailable,
    write_session,
)


class GeneratedImageCreate(BaseModel):
    include_prompt: str = Field(..., min_length=1)
    exclude_prompt: str | None = None
    cfg_scale: int = 7
    fidelity: int = 30
    aspect_ratio: str = Field(default="square", max_length=20)
    style: str | None = Field(default=None, max_length=100)
    seed: int | None = None
    image_url: str | None = None


class GeneratedImageOut(RowModel):
    id: int
    user_id: int
    include_prompt: str
    exclude_prompt: str | None
    cfg_scale: int | None
    fidelity: int | None
    aspect_ratio: str | None
    style: str | None
    seed: int | None
    image_url: str | None
    created_at: datetime


def create_generated_image(user_id: int, data: GeneratedImageCreate) -> int:
    with write_session("create generated image") as db:
        return insert_row(db, GeneratedImage(user_id=user_id, **data.model_dump()))


@degrades_to(list)
def list_generated_images(user_id: int, limit: int | None = None) -> list[GeneratedImageOut]:
    if limit is None:
        limit = get_settings().images_list_default_limit
    with read_session("list generated images") as db:
        rows = db.execute(
            select(GeneratedImage)
            .where(GeneratedImage.user_id == user_id)
            .order_by(GeneratedImage.created_at.desc(), GeneratedImage.id.desc())
            .limit(max(0, limit))
        ).scalars()
        return [GeneratedImageOut.model_validate(r) for r in rows]


@degrades_to(lambda: None)
def get_generated_image(image_id: int, user_id: int) -> GeneratedImageOut | None:
    with read_session("get generated image") as db:
        row = db.execute(
            select(GeneratedImage)
            .where(GeneratedImage.id == image_id, GeneratedImage.user_id == user_id)
            .limit(1)
        ).scalar_one_or_none()
        return GeneratedImageOut.model_validate(row) if row is not None else None


@skipped_when_unavailable
def delete_generated_image(image_id: int, user_id: int) -> None:
    with write_session("delete generated image") as db:
        _ = db.execute(
            delete(GeneratedImage).where(
                GeneratedImage.id == image_id, GeneratedImage.user_id == user_id
            )
        )
