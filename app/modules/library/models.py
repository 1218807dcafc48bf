"""Pydantic models for library sources.

Stored inside the user document with camelCase keys (``createdAt``); the
same aliases are used on the wire.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class SourceType(str, Enum):
    PDF = "pdf"
    TEXT = "text"
    YOUTUBE = "youtube"


class Source(BaseModel):
    """A user-uploaded document plus its AI summary. Immutable once created."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    id: str
    name: str
    type: SourceType
    content: str
    summary: str
    created_at: datetime
