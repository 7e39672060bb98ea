from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Annotated, Any, ClassVar, ParamSpec, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import InstrumentedAttribute, Session

from rpstudio.core.errors import StoreUnavailable
from rpstudio.db.base import Base
from rpstudio.db.session import open_session


logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

LABEL_PATTERN = r"^[a-z0-9_]+$"

Label = Annotated[str, Field(min_length=1, max_length=100, pattern=LABEL_PATTERN)]
Name = Annotated[str, Field(min_length=1, max_length=200)]
Title = Annotated[str, Field(min_length=1, max_length=300)]


class RowModel(BaseModel):
    """Read model built straight from an ORM row."""

    model_config: ClassVar[ConfigDict] = ConfigDict(from_attributes=True)


class PatchModel(BaseModel):
    """Partial update: only fields present in ``model_fields_set`` are written.

    An explicitly supplied ``None`` is written as NULL, so columns that cannot
    hold NULL are listed in ``non_nullable`` and rejected here.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    non_nullable: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode="after")
    def _reject_null_for_required_columns(self) -> "PatchModel":
        for name in self.model_fields_set & self.non_nullable:
            if getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


@contextmanager
def write_session(operation: str) -> Iterator[Session]:
    """Yield a session inside a transaction; raises ``StoreUnavailable`` without a store."""
    db = open_session(operation)
    try:
        with db.begin():
            yield db
    finally:
        db.close()


@contextmanager
def read_session(operation: str) -> Iterator[Session]:
    db = open_session(operation)
    try:
        yield db
    finally:
        db.close()


def degrades_to(default: Callable[[], T]) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Reads never fail: an unavailable store or a query error yields ``default()``."""

    def decorator(fn: Callable[P, T]) -> Callable[P, T]:
        @functools.wraps(fn)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            try:
                return fn(*args, **kwargs)
            except StoreUnavailable:
                logger.warning("Cannot %s: database not available", fn.__name__)
            except SQLAlchemyError as exc:
                logger.warning("Failed to %s: %s: %s", fn.__name__, type(exc).__name__, exc)
            return default()

        return wrapper

    return decorator


def skipped_when_unavailable(fn: Callable[P, None]) -> Callable[P, None]:
    """Updates and deletes are silent no-ops without a store; query errors still propagate."""

    @functools.wraps(fn)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> None:
        try:
            fn(*args, **kwargs)
        except StoreUnavailable:
            logger.warning("Skipping %s: database not available", fn.__name__)

    return wrapper


def insert_row(db: Session, row: Base) -> int:
    db.add(row)
    db.flush()
    row_id = getattr(row, "id")
    if not isinstance(row_id, int):
        raise RuntimeError(f"{type(row).__name__} insert did not return an id")
    return row_id


def is_owned(db: Session, model: type[Base], row_id: int, user_id: int) -> bool:
    id_col: InstrumentedAttribute[int] = getattr(model, "id")
    owner_col: InstrumentedAttribute[int] = getattr(model, "user_id")
    found = db.execute(
        select(id_col).where(id_col == row_id, owner_col == user_id)
    ).scalar_one_or_none()
    return found is not None


@dataclass(frozen=True)
class ChildTable:
    """A dependent table removed before its parent, matched on ``parent_column``."""

    model: type[Base]
    parent_column: InstrumentedAttribute[int]


def cascade_delete(
    db: Session,
    *,
    parent: type[Base],
    parent_id: int,
    user_id: int,
    children: Sequence[ChildTable],
) -> bool:
    """Delete an owned parent after its children, in the declared order.

    Returns ``False`` (and deletes nothing) when the parent is missing or
    belongs to someone else.
    """
    if not is_owned(db, parent, parent_id, user_id):
        return False

    for child in children:
        _ = db.execute(delete(child.model).where(child.parent_column == parent_id))

    id_col: InstrumentedAttribute[int] = getattr(parent, "id")
    owner_col: InstrumentedAttribute[int] = getattr(parent, "user_id")
    _ = db.execute(delete(parent).where(id_col == parent_id, owner_col == user_id))
    return True
