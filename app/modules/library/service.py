"""Source library backed by the ``sources`` field of the user document.

Every mutation rewrites the whole list; new sources are prepended so the
list stays newest first.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db_services import UserDataNotFound, UserDataService
from app.core.logging import get_logger
from app.modules.ai.service import StudyAssistant
from app.modules.library.extract import EMPTY_TEXT, InvalidSourceError, extract_content
from app.modules.library.models import Source, SourceType


logger = get_logger(__name__)

RECENT_LIMIT = 3


class SourceNotFound(LookupError):
    """Raised when a source id is not in the user's library."""


def new_source_id() -> str:
    return f"source-{uuid4().hex[:12]}"


def pasted_text_name(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"Pasted Text - {now:%m/%d/%Y, %I:%M:%S %p}"


class LibraryService:
    def __init__(self, session: AsyncSession, user_id: int, assistant: StudyAssistant):
        self.users = UserDataService(session)
        self.user_id = user_id
        self.assistant = assistant

    async def list_sources(self) -> list[Source]:
        data = await self.users.get_user_data(self.user_id)
        if data is None:
            raise UserDataNotFound(f"No user document for user {self.user_id}")
        return list(data.sources)

    async def get_source(self, source_id: str) -> Source:
        for source in await self.list_sources():
            if source.id == source_id:
                return source
        raise SourceNotFound(source_id)

    async def recent_sources(self, limit: int = RECENT_LIMIT) -> list[Source]:
        sources = await self.list_sources()
        return sorted(sources, key=lambda s: s.created_at, reverse=True)[:limit]

    async def add_source(self, name: str, source_type: SourceType, content: str) -> Source:
        summary = await self.assistant.summarize_for_source(content, source_type, name)
        source = Source(
            id=new_source_id(),
            name=name,
            type=source_type,
            content=content,
            summary=summary,
            created_at=datetime.now(timezone.utc),
        )
        current = await self.list_sources()
        await self.users.update_user_sources(self.user_id, [source, *current])
        logger.info(
            "Added %s source %s", source_type.value, source.id,
            extra={"user_id": self.user_id},
        )
        return source

    async def add_file(
        self, filename: str, content_type: Optional[str], data: bytes
    ) -> Source:
        source_type, content = extract_content(data, content_type)
        return await self.add_source(filename, source_type, content)

    async def add_pasted_text(self, text: str) -> Source:
        if not text or not text.strip():
            raise InvalidSourceError(EMPTY_TEXT)
        return await self.add_source(pasted_text_name(), SourceType.TEXT, text)

    async def delete_source(self, source_id: str) -> None:
        current = await self.list_sources()
        remaining = [s for s in current if s.id != source_id]
        if len(remaining) == len(current):
            raise SourceNotFound(source_id)
        await self.users.update_user_sources(self.user_id, remaining)
        logger.info("Deleted source %s", source_id, extra={"user_id": self.user_id})
