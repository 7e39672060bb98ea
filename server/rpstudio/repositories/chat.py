from __future__ import annotations

from datetime import datetime
from typing import ClassVar, Final, Literal

from pydantic import BaseModel, Field
from sqlalchemy import Select, delete, select, update

from rpstudio.core.catalog import DEFAULT_MODEL_ID, SamplingParams, default_sampling_params
from rpstudio.core.errors import NotFound
from rpstudio.db.models import ChatMessage, ChatSession
from rpstudio.repositories._common import (
    ChildTable,
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


MessageType = Literal["message", "text", "instruction", "user", "system"]

CHAT_SESSION_CASCADE: Final[tuple[ChildTable, ...]] = (
    ChildTable(ChatMessage, ChatMessage.session_id),
)


class ChatSessionCreate(BaseModel):
    title: Title
    scenario_id: int | None = None
    system_prompt: str | None = None
    model_id: str = Field(default=DEFAULT_MODEL_ID, max_length=100)
    sampling_params: SamplingParams = Field(default_factory=default_sampling_params)


class ChatSessionUpdate(PatchModel):
    non_nullable: ClassVar[frozenset[str]] = frozenset({"title"})

    title: str | None = Field(default=None, max_length=300)
    system_prompt: str | None = None
    model_id: str | None = Field(default=None, max_length=100)
    sampling_params: SamplingParams | None = None


class ChatSessionOut(RowModel):
    id: int
    user_id: int
    scenario_id: int | None
    title: str
    system_prompt: str | None
    model_id: str | None
    sampling_params: dict[str, object] | None
    created_at: datetime
    updated_at: datetime


class ChatMessageCreate(BaseModel):
    session_id: int
    message_type: MessageType
    character_label: str | None = Field(default=None, max_length=100)
    character_name: str | None = Field(default=None, max_length=200)
    content: str = Field(..., min_length=1)
    is_sticky: bool = False


class ChatMessageOut(RowModel):
    id: int
    session_id: int
    message_type: MessageType
    character_label: str | None
    character_name: str | None
    content: str
    is_sticky: bool | None
    created_at: datetime


def _owned_session_ids(user_id: int) -> Select[tuple[int]]:
    return select(ChatSession.id).where(ChatSession.user_id == user_id)


def create_chat_session(user_id: int, data: ChatSessionCreate) -> int:
    row = ChatSession(
        user_id=user_id,
        title=data.title,
        scenario_id=data.scenario_id,
        system_prompt=data.system_prompt,
        model_id=data.model_id,
        sampling_params=data.sampling_params.to_json(),
    )
    with write_session("create chat session") as db:
        return insert_row(db, row)


@degrades_to(list)
def list_chat_sessions(user_id: int) -> list[ChatSessionOut]:
    with read_session("list chat sessions") as db:
        rows = db.execute(
            select(ChatSession)
            .where(ChatSession.user_id == user_id)
            .order_by(ChatSession.updated_at.desc(), ChatSession.id.desc())
        ).scalars()
        return [ChatSessionOut.model_validate(r) for r in rows]


@degrades_to(lambda: None)
def get_chat_session(session_id: int, user_id: int) -> ChatSessionOut | None:
    with read_session("get chat session") as db:
        row = db.execute(
            select(ChatSession)
            .where(ChatSession.id == session_id, ChatSession.user_id == user_id)
            .limit(1)
        ).scalar_one_or_none()
        return ChatSessionOut.model_validate(row) if row is not None else None


@skipped_when_unavailable
def update_chat_session(session_id: int, user_id: int, data: ChatSessionUpdate) -> None:
    changes = data.changes()
    if "sampling_params" in changes and data.sampling_params is not None:
        changes["sampling_params"] = data.sampling_params.to_json()
    if not changes:
        return
    with write_session("update chat session") as db:
        _ = db.execute(
            update(ChatSession)
            .where(ChatSession.id == session_id, ChatSession.user_id == user_id)
            .values(**changes)
        )


@skipped_when_unavailable
def delete_chat_session(session_id: int, user_id: int) -> None:
    with write_session("delete chat session") as db:
        _ = cascade_delete(
            db,
            parent=ChatSession,
            parent_id=session_id,
            user_id=user_id,
            children=CHAT_SESSION_CASCADE,
        )


def add_chat_message(user_id: int, data: ChatMessageCreate) -> int:
    with write_session("add chat message") as db:
        if not is_owned(db, ChatSession, data.session_id, user_id):
            raise NotFound("Chat session", data.session_id)
        return insert_row(db, ChatMessage(**data.model_dump()))


@degrades_to(list)
def list_chat_messages(session_id: int, user_id: int) -> list[ChatMessageOut]:
    with read_session("list chat messages") as db:
        rows = db.execute(
            select(ChatMessage)
            .where(
                ChatMessage.session_id == session_id,
                ChatMessage.session_id.in_(_owned_session_ids(user_id)),
            )
            .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
        ).scalars()
        return [ChatMessageOut.model_validate(r) for r in rows]


@skipped_when_unavailable
def delete_chat_message(message_id: int, user_id: int) -> None:
    with write_session("delete chat message") as db:
        _ = db.execute(
            delete(ChatMessage)
            .where(
                ChatMessage.id == message_id,
                ChatMessage.session_id.in_(_owned_session_ids(user_id)),
            )
            .execution_options(synchronize_session=False)
        )
