from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field
from sqlalchemy import Insert, select
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.orm import Session

from rpstudio.core.config import get_settings
from rpstudio.core.errors import MissingRequiredField, StoreUnavailable
from rpstudio.db.models import User, now_utc
from rpstudio.repositories._common import RowModel, degrades_to, read_session, write_session


logger = logging.getLogger(__name__)

Role = Literal["user", "admin"]

_NULLABLE_TEXT_FIELDS = ("name", "email", "login_method")


class UserUpsert(BaseModel):
    """Identity handed over by the auth collaborator on login.

    Fields left out are not touched on an existing row; see ``upsert_user``.
    """

    open_id: str | None = Field(default=None, max_length=64)
    name: str | None = None
    email: str | None = Field(default=None, max_length=320)
    login_method: str | None = Field(default=None, max_length=64)
    role: Role | None = None
    last_signed_in: datetime | None = None


class UserOut(RowModel):
    id: int
    open_id: str
    name: str | None
    email: str | None
    login_method: str | None
    role: Role
    created_at: datetime
    updated_at: datetime
    last_signed_in: datetime


def _build_upsert(
    db: Session, values: dict[str, Any], update_set: dict[str, Any]
) -> Insert:
    dialect = db.get_bind().dialect.name
    if dialect == "mysql":
        stmt = mysql.insert(User).values(**values)
        return stmt.on_duplicate_key_update(**update_set)
    if dialect == "postgresql":
        stmt_pg = postgresql.insert(User).values(**values)
        return stmt_pg.on_conflict_do_update(index_elements=[User.open_id], set_=update_set)
    if dialect == "sqlite":
        stmt_lite = sqlite.insert(User).values(**values)
        return stmt_lite.on_conflict_do_update(index_elements=[User.open_id], set_=update_set)
    raise NotImplementedError(f"upsert is not supported on dialect {dialect!r}")


def upsert_user(identity: UserUpsert) -> None:
    """Insert the user or merge the supplied fields into the existing row.

    - Only fields the caller actually set end up in the update; any falsy
      text value among them is stored as NULL.
    - Without an explicit role, the configured owner identity becomes admin.
      Everyone else keeps the column default on insert and their role on update.
    - ``last_signed_in`` defaults to now on insert; if nothing else would be
      updated, the update still touches ``last_signed_in``.
    """
    if not identity.open_id:
        raise MissingRequiredField("open_id", "user upsert")

    supplied = identity.model_fields_set
    values: dict[str, Any] = {"open_id": identity.open_id}
    update_set: dict[str, Any] = {}

    for field in _NULLABLE_TEXT_FIELDS:
        if field not in supplied:
            continue
        normalized = getattr(identity, field) or None
        values[field] = normalized
        update_set[field] = normalized

    if "last_signed_in" in supplied and identity.last_signed_in is not None:
        values["last_signed_in"] = identity.last_signed_in
        update_set["last_signed_in"] = identity.last_signed_in

    if "role" in supplied and identity.role is not None:
        values["role"] = identity.role
        update_set["role"] = identity.role
    elif identity.open_id == get_settings().owner_open_id:
        values["role"] = "admin"
        update_set["role"] = "admin"

    now = now_utc()
    values.setdefault("last_signed_in", now)
    values.setdefault("created_at", now)
    values["updated_at"] = now

    if not update_set:
        update_set["last_signed_in"] = now
    # ON CONFLICT updates bypass Python-side onupdate hooks.
    update_set["updated_at"] = now

    try:
        with write_session("user upsert") as db:
            _ = db.execute(_build_upsert(db, values, update_set))
    except StoreUnavailable:
        logger.warning("Cannot upsert user: database not available")
        return
    except Exception:
        logger.exception("Failed to upsert user open_id=%s", identity.open_id)
        raise


@degrades_to(lambda: None)
def get_user_by_open_id(open_id: str) -> UserOut | None:
    with read_session("get user") as db:
        row = db.execute(select(User).where(User.open_id == open_id).limit(1)).scalar_one_or_none()
        return UserOut.model_validate(row) if row is not None else None


@degrades_to(lambda: None)
def get_user(user_id: int) -> UserOut | None:
    with read_session("get user") as db:
        row = db.get(User, user_id)
        return UserOut.model_validate(row) if row is not None else None
