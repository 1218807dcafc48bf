from __future__ import annotations

from pydantic import BaseModel, Field


class PastedTextRequest(BaseModel):
    text: str = Field(..., description="Raw text to store as a source")
