from __future__ import annotations

from fastapi import APIRouter, File, HTTPException, Response, UploadFile, status

from app.apis.deps import Assistant, CurrentUserData, Session
from app.core.config import settings
from app.modules.library.extract import InvalidSourceError
from app.modules.library.models import Source
from app.modules.library.service import LibraryService, SourceNotFound
from app.modules.navigation.state import View, navigation_manager
from .schemas import PastedTextRequest


router = APIRouter()

PREFIX = f"/{settings.app.version}/library"


def get_source_or_404(sources: list[Source], source_id: str) -> Source:
    for s in sources:
        if s.id == source_id:
            return s
    raise HTTPException(status_code=404, detail="Source not found")


@router.get(f"{PREFIX}/sources", response_model=list[Source], tags=["library"])
async def list_sources(data: CurrentUserData) -> list[Source]:
    return data.sources


@router.get(f"{PREFIX}/sources/recent", response_model=list[Source], tags=["library"])
async def recent_sources(
    data: CurrentUserData, session: Session, assistant: Assistant
) -> list[Source]:
    return await LibraryService(session, data.id, assistant).recent_sources()


@router.get(f"{PREFIX}/sources/{{source_id}}", response_model=Source, tags=["library"])
async def get_source(source_id: str, data: CurrentUserData) -> Source:
    source = get_source_or_404(data.sources, source_id)
    navigation_manager.get(data.id).open_source(source.id)
    return source


@router.post(
    f"{PREFIX}/sources/upload",
    response_model=Source,
    status_code=status.HTTP_201_CREATED,
    tags=["library"],
)
async def upload_source(
    data: CurrentUserData,
    session: Session,
    assistant: Assistant,
    file: UploadFile = File(...),
) -> Source:
    payload = await file.read()
    service = LibraryService(session, data.id, assistant)
    try:
        source = await service.add_file(
            file.filename or "Untitled", file.content_type, payload
        )
    except InvalidSourceError as e:
        raise HTTPException(status_code=400, detail=str(e))
    navigation_manager.get(data.id).set_view(View.LIBRARY)
    return source


@router.post(
    f"{PREFIX}/sources/text",
    response_model=Source,
    status_code=status.HTTP_201_CREATED,
    tags=["library"],
)
async def add_pasted_text(
    req: PastedTextRequest,
    data: CurrentUserData,
    session: Session,
    assistant: Assistant,
) -> Source:
    service = LibraryService(session, data.id, assistant)
    try:
        source = await service.add_pasted_text(req.text)
    except InvalidSourceError as e:
        raise HTTPException(status_code=400, detail=str(e))
    navigation_manager.get(data.id).set_view(View.LIBRARY)
    return source


@router.delete(
    f"{PREFIX}/sources/{{source_id}}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["library"],
)
async def delete_source(
    source_id: str, data: CurrentUserData, session: Session, assistant: Assistant
) -> Response:
    try:
        await LibraryService(session, data.id, assistant).delete_source(source_id)
    except SourceNotFound:
        raise HTTPException(status_code=404, detail="Source not found")
    nav = navigation_manager.get(data.id)
    if nav.active_source_id == source_id:
        nav.close_source()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
