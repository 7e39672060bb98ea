# pyright: reportMissingImports=false
# pyright: reportImplicitOverride=false
# pyright: reportIncompatibleVariableOverride=false
from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from rpstudio.core.catalog import DEFAULT_MODEL_ID
from rpstudio.db.base import Base


def now_utc() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class User(Base):
    __tablename__: str = "users"
    __table_args__ = (CheckConstraint("role IN ('user', 'admin')", name="ck_users_role"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    open_id: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    name: Mapped[str | None] = mapped_column(Text(), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    login_method: Mapped[str | None] = mapped_column(String(64), nullable=True)
    role: Mapped[str] = mapped_column(
        String(16), default="user", server_default="user", nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=now_utc, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(), default=now_utc, onupdate=now_utc, nullable=False
    )
    last_signed_in: Mapped[datetime] = mapped_column(DateTime(), default=now_utc, nullable=False)


class ApiKey(Base):
    __tablename__: str = "api_keys"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    key_name: Mapped[str] = mapped_column(String(100), nullable=False)
    encrypted_key: Mapped[str] = mapped_column(Text(), nullable=False)
    last_used: Mapped[datetime | None] = mapped_column(DateTime(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=now_utc, nullable=False)


class Character(Base):
    __tablename__: str = "characters"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    label: Mapped[str] = mapped_column(String(100), nullable=False)
    prompt_description: Mapped[str | None] = mapped_column(Text(), nullable=True)
    display_description: Mapped[str | None] = mapped_column(Text(), nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text(), nullable=True)
    is_user_character: Mapped[bool | None] = mapped_column(Boolean(), default=False, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=now_utc, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(), default=now_utc, onupdate=now_utc, nullable=False
    )


class Scenario(Base):
    __tablename__: str = "scenarios"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    prompt_description: Mapped[str | None] = mapped_column(Text(), nullable=True)
    display_description: Mapped[str | None] = mapped_column(Text(), nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text(), nullable=True)
    is_public: Mapped[bool | None] = mapped_column(
        Boolean(), default=False, index=True, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=now_utc, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(), default=now_utc, onupdate=now_utc, nullable=False
    )


class ScenarioCharacter(Base):
    __tablename__: str = "scenario_characters"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    scenario_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    character_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    label: Mapped[str] = mapped_column(String(100), nullable=False)
    prompt_description: Mapped[str | None] = mapped_column(Text(), nullable=True)
    is_user_character: Mapped[bool | None] = mapped_column(Boolean(), default=False, nullable=True)
    order_index: Mapped[int | None] = mapped_column(Integer, default=0, nullable=True)


class ScenarioInteraction(Base):
    __tablename__: str = "scenario_interactions"
    __table_args__ = (
        CheckConstraint(
            "interaction_type IN ('message', 'text', 'instruction')",
            name="ck_scenario_interactions_type",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    scenario_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    interaction_type: Mapped[str] = mapped_column(String(16), nullable=False)
    character_label: Mapped[str | None] = mapped_column(String(100), nullable=True)
    content: Mapped[str] = mapped_column(Text(), nullable=False)
    is_sticky: Mapped[bool | None] = mapped_column(Boolean(), default=False, nullable=True)
    order_index: Mapped[int | None] = mapped_column(Integer, default=0, nullable=True)


class ChatSession(Base):
    __tablename__: str = "chat_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    scenario_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    system_prompt: Mapped[str | None] = mapped_column(Text(), nullable=True)
    model_id: Mapped[str | None] = mapped_column(
        String(100), default=DEFAULT_MODEL_ID, nullable=True
    )
    sampling_params: Mapped[dict[str, object] | None] = mapped_column(JSONDocument, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=now_utc, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(), default=now_utc, onupdate=now_utc, nullable=False
    )


class ChatMessage(Base):
    __tablename__: str = "chat_messages"
    __table_args__ = (
        CheckConstraint(
            "message_type IN ('message', 'text', 'instruction', 'user', 'system')",
            name="ck_chat_messages_type",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    message_type: Mapped[str] = mapped_column(String(16), nullable=False)
    character_label: Mapped[str | None] = mapped_column(String(100), nullable=True)
    character_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    content: Mapped[str] = mapped_column(Text(), nullable=False)
    is_sticky: Mapped[bool | None] = mapped_column(Boolean(), default=False, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=now_utc, nullable=False)


class Story(Base):
    __tablename__: str = "stories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    plot_description: Mapped[str | None] = mapped_column(Text(), nullable=True)
    style_description: Mapped[str | None] = mapped_column(Text(), nullable=True)
    content: Mapped[str | None] = mapped_column(Text(), nullable=True)
    model_id: Mapped[str | None] = mapped_column(
        String(100), default=DEFAULT_MODEL_ID, nullable=True
    )
    sampling_params: Mapped[dict[str, object] | None] = mapped_column(JSONDocument, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=now_utc, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(), default=now_utc, onupdate=now_utc, nullable=False
    )


class StoryCharacter(Base):
    __tablename__: str = "story_characters"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    story_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text(), nullable=True)
    order_index: Mapped[int | None] = mapped_column(Integer, default=0, nullable=True)


class GeneratedImage(Base):
    __tablename__: str = "generated_images"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    include_prompt: Mapped[str] = mapped_column(Text(), nullable=False)
    exclude_prompt: Mapped[str | None] = mapped_column(Text(), nullable=True)
    cfg_scale: Mapped[int | None] = mapped_column(Integer, default=7, nullable=True)
    fidelity: Mapped[int | None] = mapped_column(Integer, default=30, nullable=True)
    aspect_ratio: Mapped[str | None] = mapped_column(String(20), default="square", nullable=True)
    style: Mapped[str | None] = mapped_column(String(100), nullable=True)
    seed: Mapped[int | None] = mapped_column(Integer, nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=now_utc, nullable=False)
