from __future__ import annotations

from rpstudio.repositories.chat import (
    ChatMessageOut,
    ChatSessionOut,
    get_chat_session,
    list_chat_messages,
)


class ChatSessionDetail(ChatSessionOut):
    messages: list[ChatMessageOut]


def get_chat_session_detail(session_id: int, user_id: int) -> ChatSessionDetail | None:
    session = get_chat_session(session_id, user_id)
    if session is None:
        return None
    return ChatSessionDetail(
        **session.model_dump(), messages=list_chat_messages(session_id, user_id)
    )
