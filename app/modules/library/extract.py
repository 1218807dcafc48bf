from __future__ import annotations

import io
from typing import Optional

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from app.core.logging import get_logger
from app.modules.library.models import SourceType


logger = get_logger(__name__)

UNSUPPORTED_FILE = "Please upload a PDF or TXT file."
EMPTY_TEXT = "Pasted text is empty."
UNREADABLE_FILE = "Could not read the uploaded file."

CONTENT_TYPES: dict[str, SourceType] = {
    "application/pdf": SourceType.PDF,
    "text/plain": SourceType.TEXT,
}


class InvalidSourceError(ValueError):
    """Upload or pasted text that cannot become a source."""


def source_type_for(content_type: Optional[str]) -> SourceType:
    base = (content_type or "").split(";", 1)[0].strip().lower()
    try:
        return CONTENT_TYPES[base]
    except KeyError:
        raise InvalidSourceError(UNSUPPORTED_FILE) from None


def extract_pdf_text(data: bytes) -> str:
    """Concatenate the text of every page, one page per line block."""
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [(page.extract_text() or "") for page in reader.pages]
    except PyPdfError as e:
        logger.warning("Unreadable PDF upload: %s", e)
        raise InvalidSourceError(UNREADABLE_FILE) from e
    logger.debug("Extracted %d PDF pages", len(pages))
    return "\n".join(pages)


def decode_text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def extract_content(data: bytes, content_type: Optional[str]) -> tuple[SourceType, str]:
    source_type = source_type_for(content_type)
    if source_type is SourceType.PDF:
        return source_type, extract_pdf_text(data)
    return source_type, decode_text(data)


def read_any(data: bytes, filename: str, content_type: Optional[str]) -> str:
    """Best-effort text for the assignment analyzer: PDF or anything text-like."""
    is_pdf = (content_type or "").startswith("application/pdf") or filename.lower().endswith(
        ".pdf"
    )
    if is_pdf:
        return extract_pdf_text(data)
    return decode_text(data)
