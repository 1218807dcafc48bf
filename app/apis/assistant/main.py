"""Subject assistant: tutoring chat, topic quizzes and flashcards, assignment
feedback and live voice transcription."""

from __future__ import annotations

from typing import Optional

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    UploadFile,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from starlette.websockets import WebSocketState

from app.apis.deps import Assistant, CurrentUser, Session, user_from_token
from app.core.config import settings
from app.core.db_services import HistoryService
from app.core.logging import get_logger
from app.modules.ai.models import Flashcard, Subject
from app.modules.ai.transcription import AudioTranscriber
from app.modules.library.extract import read_any
from app.modules.study.chat import ChatService
from app.modules.study.quiz import QuizState
from app.modules.study.service import StudyError, StudyService
from app.apis.study.schemas import (
    AssignmentFeedback,
    ChatResponse,
    SubjectChatRequest,
    SubjectFlashcardsRequest,
    SubjectQuizRequest,
)


logger = get_logger(__name__)

router = APIRouter()

PREFIX = f"/{settings.app.version}/assistant"

NO_FILE = "Please upload a file first."


@router.get(f"{PREFIX}/chat", response_model=ChatResponse, tags=["assistant"])
async def get_subject_chat(
    subject: Subject, user: CurrentUser, session: Session, assistant: Assistant
) -> ChatResponse:
    chat = ChatService(HistoryService(session, user.id), assistant)
    return ChatResponse(messages=await chat.load_subject_chat(subject))


@router.post(f"{PREFIX}/chat", response_model=ChatResponse, tags=["assistant"])
async def send_subject_chat(
    req: SubjectChatRequest, user: CurrentUser, session: Session, assistant: Assistant
) -> ChatResponse:
    chat = ChatService(HistoryService(session, user.id), assistant)
    return ChatResponse(messages=await chat.send_subject_message(req.subject, req.message))


@router.delete(f"{PREFIX}/chat", response_model=ChatResponse, tags=["assistant"])
async def clear_subject_chat(
    subject: Subject, user: CurrentUser, session: Session, assistant: Assistant
) -> ChatResponse:
    chat = ChatService(HistoryService(session, user.id), assistant)
    return ChatResponse(messages=await chat.clear_subject_chat(subject))


@router.post(
    f"{PREFIX}/quiz",
    response_model=QuizState,
    status_code=status.HTTP_201_CREATED,
    tags=["assistant"],
)
async def start_subject_quiz(
    req: SubjectQuizRequest, user: CurrentUser, session: Session, assistant: Assistant
) -> QuizState:
    service = StudyService(session, user.id, assistant)
    try:
        quiz = await service.start_subject_quiz(
            req.subject, req.topic, req.difficulty, req.num_questions
        )
    except StudyError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return quiz.to_state()


@router.post(f"{PREFIX}/flashcards", response_model=list[Flashcard], tags=["assistant"])
async def generate_subject_flashcards(
    req: SubjectFlashcardsRequest, user: CurrentUser, session: Session, assistant: Assistant
) -> list[Flashcard]:
    service = StudyService(session, user.id, assistant)
    try:
        return await service.generate_subject_flashcards(
            req.subject, req.topic, req.difficulty, req.num_cards
        )
    except StudyError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post(f"{PREFIX}/analyze", response_model=AssignmentFeedback, tags=["assistant"])
async def analyze_assignment(
    user: CurrentUser,
    assistant: Assistant,
    subject: Subject = Form(...),
    file: Optional[UploadFile] = File(default=None),
) -> AssignmentFeedback:
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail=NO_FILE)
    payload = await file.read()
    try:
        content = read_any(payload, file.filename, file.content_type)
    except Exception:
        logger.exception("Could not read assignment file", extra={"user_id": user.id})
        raise HTTPException(status_code=400, detail="Could not read the uploaded file.")
    feedback = await assistant.analyze_assignment(content, subject, file.filename)
    return AssignmentFeedback(file_name=file.filename, subject=subject, feedback=feedback)


def get_transcriber_factory():
    return AudioTranscriber


@router.websocket(f"{PREFIX}/transcribe")
async def transcribe(
    websocket: WebSocket,
    factory=Depends(get_transcriber_factory),
) -> None:
    """Binary frames in (float32 mono, 16 kHz), transcription JSON out.

    Send the text frame ``stop`` to end the session.
    """
    user = await user_from_token(websocket.query_params.get("access_token"))
    if user is None:
        await websocket.close(code=4401)
        return
    await websocket.accept()

    async def forward(text: str) -> None:
        await websocket.send_json({"type": "transcription", "text": text})

    transcriber = factory(forward)
    try:
        await transcriber.start()
    except Exception:
        await websocket.send_json(
            {"type": "error", "detail": "Could not start transcription."}
        )
        await websocket.close(code=1011)
        return

    await websocket.send_json({"type": "started"})
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            if message.get("bytes"):
                await transcriber.send_audio(message["bytes"])
            elif message.get("text") == "stop":
                await websocket.send_json({"type": "stopped"})
                break
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("Transcription relay failed", extra={"user_id": user.id})
        await websocket.send_json({"type": "error", "detail": "Transcription failed."})
    finally:
        await transcriber.stop()
    if websocket.client_state != WebSocketState.DISCONNECTED:
        await websocket.close()
