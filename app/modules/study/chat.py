"""Persistent chat transcripts for source chat and the subject assistant.

A transcript starts with an AI greeting that is never stored on its own;
it is saved once the conversation has more than that single message.
"""

from __future__ import annotations

from typing import Sequence
from uuid import uuid4

from app.core.db_services import HistoryService
from app.core.logging import get_logger
from app.modules.ai.models import ChatMessage, Subject
from app.modules.ai.service import StudyAssistant
from app.modules.library.models import Source


logger = get_logger(__name__)


def source_chat_key(source_id: str) -> str:
    return f"sourceChatHistory_{source_id}"


def subject_chat_key(subject: Subject) -> str:
    return f"assistantChatHistory_{subject.value}"


def _message_id() -> str:
    return uuid4().hex


def source_greeting(source: Source) -> ChatMessage:
    return ChatMessage(
        id="initial",
        sender="ai",
        text=f'I\'m ready to answer questions about "{source.name}". What would you like to know?',
    )


def subject_greeting(subject: Subject) -> ChatMessage:
    if subject == Subject.OTHER:
        text = "Great! What problem can I help you with?"
    else:
        text = f"I'm ready to help you with {subject.value}. Ask me anything!"
    return ChatMessage(id="initial", sender="ai", text=text)


class ChatService:
    def __init__(self, history: HistoryService, assistant: StudyAssistant):
        self.history = history
        self.assistant = assistant

    async def _load(self, key: str, greeting: ChatMessage) -> list[ChatMessage]:
        saved = await self.history.get(key)
        if not saved:
            return [greeting]
        return [ChatMessage.model_validate(m) for m in saved]

    async def _save(self, key: str, messages: Sequence[ChatMessage]) -> None:
        if len(messages) > 1:
            await self.history.set(key, [m.model_dump() for m in messages])

    # Source chat --------------------------------------------------------
    async def load_source_chat(self, source: Source) -> list[ChatMessage]:
        return await self._load(source_chat_key(source.id), source_greeting(source))

    async def send_source_message(self, source: Source, text: str) -> list[ChatMessage]:
        messages = await self.load_source_chat(source)
        prior = list(messages)
        messages.append(ChatMessage(id=_message_id(), sender="user", text=text))
        reply = await self.assistant.generate_chat_response(
            prior, text, source.content, source.name
        )
        messages.append(ChatMessage(id=_message_id(), sender="ai", text=reply))
        await self._save(source_chat_key(source.id), messages)
        return messages

    async def clear_source_chat(self, source: Source) -> list[ChatMessage]:
        await self.history.remove(source_chat_key(source.id))
        return [source_greeting(source)]

    # Subject assistant --------------------------------------------------
    async def load_subject_chat(self, subject: Subject) -> list[ChatMessage]:
        return await self._load(subject_chat_key(subject), subject_greeting(subject))

    async def send_subject_message(self, subject: Subject, text: str) -> list[ChatMessage]:
        messages = await self.load_subject_chat(subject)
        prior = list(messages)
        messages.append(ChatMessage(id=_message_id(), sender="user", text=text))
        reply = await self.assistant.generate_assistant_response(prior, text, subject)
        messages.append(ChatMessage(id=_message_id(), sender="ai", text=reply))
        await self._save(subject_chat_key(subject), messages)
        return messages

    async def clear_subject_chat(self, subject: Subject) -> list[ChatMessage]:
        await self.history.remove(subject_chat_key(subject))
        return [subject_greeting(subject)]
