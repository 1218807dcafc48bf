"""Database service classes for the per-user document and history lists."""

from __future__ import annotations

import copy
from typing import Any, Iterable, Mapping, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db.schemas.user_data import HistoryEntry, UserDocument
from app.core.logging import get_logger
from app.modules.library.models import Source
from app.modules.progress.models import UserData, UserProgress


logger = get_logger(__name__)

# Top-level fields of the user document that may be addressed by a dot path
DOCUMENT_FIELDS = ("name", "email", "progress", "sources")


class UserDataNotFound(LookupError):
    """Raised when a user document is missing."""


def to_dot_paths(prefix: str, updates: Mapping[str, Any]) -> dict[str, Any]:
    """Prefix each key, e.g. ``{"points": 5}`` -> ``{"progress.points": 5}``."""
    return {f"{prefix}.{key}": value for key, value in updates.items()}


def apply_dot_path_updates(
    document: Mapping[str, Any], updates: Mapping[str, Any]
) -> dict[str, Any]:
    """Return a copy of ``document`` with every dotted path in ``updates`` set.

    Intermediate maps are created when missing. Sibling keys that are not
    named by a path keep their value.
    """
    result = copy.deepcopy(dict(document))
    for path, value in updates.items():
        parts = path.split(".")
        if not all(parts):
            raise ValueError(f"Invalid field path: {path!r}")
        target = result
        for part in parts[:-1]:
            child = target.get(part)
            if not isinstance(child, dict):
                child = {}
                target[part] = child
            target = child
        target[parts[-1]] = copy.deepcopy(value)
    return result


def _document_of(row: UserDocument) -> dict[str, Any]:
    return {field: getattr(row, field) for field in DOCUMENT_FIELDS}


def _to_user_data(row: UserDocument) -> UserData:
    return UserData.model_validate({"id": row.user_id, **_document_of(row)})


class UserDataService:
    """CRUD for the per-user document (profile, progress and sources)."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _require(self, user_id: int) -> UserDocument:
        row = await self.session.get(UserDocument, user_id)
        if row is None:
            raise UserDataNotFound(f"No user document for user {user_id}")
        return row

    async def create_user_data(
        self, user_id: int, name: str, email: Optional[str]
    ) -> UserData:
        data = UserData(id=user_id, name=name, email=email or "")
        row = UserDocument(
            user_id=user_id,
            name=data.name,
            email=data.email,
            progress=UserProgress().model_dump(mode="json", by_alias=True),
            sources=[],
        )
        self.session.add(row)
        await self.session.commit()
        logger.info("Created user document", extra={"user_id": user_id})
        return data

    async def get_user_data(self, user_id: int) -> Optional[UserData]:
        row = await self.session.get(UserDocument, user_id)
        if row is None:
            return None
        return _to_user_data(row)

    async def update_fields(self, user_id: int, updates: Mapping[str, Any]) -> None:
        """Apply dot-path updates to the document and persist touched fields."""
        row = await self._require(user_id)
        touched = set()
        for path in updates:
            top = path.split(".", 1)[0]
            if top not in DOCUMENT_FIELDS:
                raise ValueError(f"Unknown document field: {top!r}")
            touched.add(top)

        updated = apply_dot_path_updates(_document_of(row), updates)
        for field in touched:
            # Reassign so the JSON column is flagged dirty
            setattr(row, field, updated[field])
        await self.session.commit()

    async def update_user_progress(
        self, user_id: int, progress_update: Mapping[str, Any]
    ) -> None:
        """Partial update of ``progress`` keyed by camelCase field names."""
        await self.update_fields(user_id, to_dot_paths("progress", progress_update))

    async def update_user_sources(self, user_id: int, sources: Iterable[Source]) -> None:
        """Overwrite the whole source list."""
        payload = [s.model_dump(mode="json", by_alias=True) for s in sources]
        await self.update_fields(user_id, {"sources": payload})

    async def get_all_users(self) -> list[UserData]:
        rows = await self.session.execute(select(UserDocument))
        return [_to_user_data(r) for r in rows.scalars().all()]

    async def delete_user_data(self, user_id: int) -> None:
        await self.session.execute(
            delete(UserDocument).where(UserDocument.user_id == user_id)
        )
        await self.session.commit()
        logger.info("Deleted user document", extra={"user_id": user_id})


class HistoryService:
    """Keyed JSON lists per user: chat transcripts and generation history."""

    def __init__(self, session: AsyncSession, user_id: int):
        self.session = session
        self.user_id = user_id

    async def _row(self, key: str) -> Optional[HistoryEntry]:
        result = await self.session.execute(
            select(HistoryEntry).where(
                HistoryEntry.user_id == self.user_id, HistoryEntry.key == key
            )
        )
        return result.scalar_one_or_none()

    async def get(self, key: str) -> Optional[list[Any]]:
        """Stored list, or ``None`` when nothing was saved under ``key``."""
        row = await self._row(key)
        if row is None:
            return None
        return list(row.items or [])

    async def set(self, key: str, items: list[Any]) -> None:
        row = await self._row(key)
        if row is None:
            self.session.add(HistoryEntry(user_id=self.user_id, key=key, items=list(items)))
        else:
            row.items = list(items)
        await self.session.commit()

    async def append(self, key: str, items: Iterable[Any]) -> list[Any]:
        current = await self.get(key) or []
        updated = current + list(items)
        await self.set(key, updated)
        return updated

    async def remove(self, key: str) -> None:
        await self.session.execute(
            delete(HistoryEntry).where(
                HistoryEntry.user_id == self.user_id, HistoryEntry.key == key
            )
        )
        await self.session.commit()
