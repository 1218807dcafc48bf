"""Document-grounded chat, quizzes and flashcards for a single source."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from app.apis.deps import Assistant, CurrentUser, CurrentUserData, Session, missing_user_data
from app.core.config import settings
from app.core.db_services import HistoryService, UserDataNotFound
from app.modules.library.models import Source
from app.modules.study.chat import ChatService
from app.modules.study.quiz import QuizState
from app.modules.study.service import QuizNotFound, StudyError, StudyService
from .schemas import (
    AnswerRequest,
    AnswerResponse,
    ChatRequest,
    ChatResponse,
    FlashcardsResponse,
    SourceFlashcardsRequest,
    SourceQuizRequest,
)


router = APIRouter()

PREFIX = f"/{settings.app.version}"


def _source(data, source_id: str) -> Source:
    for s in data.sources:
        if s.id == source_id:
            return s
    raise HTTPException(status_code=404, detail="Source not found")


@router.get(
    f"{PREFIX}/sources/{{source_id}}/chat", response_model=ChatResponse, tags=["study"]
)
async def get_source_chat(
    source_id: str, data: CurrentUserData, session: Session, assistant: Assistant
) -> ChatResponse:
    chat = ChatService(HistoryService(session, data.id), assistant)
    return ChatResponse(messages=await chat.load_source_chat(_source(data, source_id)))


@router.post(
    f"{PREFIX}/sources/{{source_id}}/chat", response_model=ChatResponse, tags=["study"]
)
async def send_source_chat(
    source_id: str,
    req: ChatRequest,
    data: CurrentUserData,
    session: Session,
    assistant: Assistant,
) -> ChatResponse:
    chat = ChatService(HistoryService(session, data.id), assistant)
    messages = await chat.send_source_message(_source(data, source_id), req.message)
    return ChatResponse(messages=messages)


@router.delete(
    f"{PREFIX}/sources/{{source_id}}/chat", response_model=ChatResponse, tags=["study"]
)
async def clear_source_chat(
    source_id: str, data: CurrentUserData, session: Session, assistant: Assistant
) -> ChatResponse:
    chat = ChatService(HistoryService(session, data.id), assistant)
    return ChatResponse(messages=await chat.clear_source_chat(_source(data, source_id)))


@router.post(
    f"{PREFIX}/sources/{{source_id}}/quiz",
    response_model=QuizState,
    status_code=status.HTTP_201_CREATED,
    tags=["study"],
)
async def start_source_quiz(
    source_id: str,
    req: SourceQuizRequest,
    data: CurrentUserData,
    session: Session,
    assistant: Assistant,
) -> QuizState:
    service = StudyService(session, data.id, assistant)
    try:
        quiz = await service.start_source_quiz(_source(data, source_id), req.num_questions)
    except StudyError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return quiz.to_state()


@router.post(
    f"{PREFIX}/sources/{{source_id}}/flashcards",
    response_model=FlashcardsResponse,
    tags=["study"],
)
async def generate_source_flashcards(
    source_id: str,
    req: SourceFlashcardsRequest,
    data: CurrentUserData,
    session: Session,
    assistant: Assistant,
) -> FlashcardsResponse:
    service = StudyService(session, data.id, assistant)
    try:
        cards = await service.generate_source_flashcards(
            _source(data, source_id), req.num_cards
        )
    except StudyError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return FlashcardsResponse(
        flashcards=cards, points_awarded=len(cards) * settings.study.flashcard_points
    )


@router.get(f"{PREFIX}/quizzes/{{quiz_id}}", response_model=QuizState, tags=["study"])
async def get_quiz(
    quiz_id: str, user: CurrentUser, session: Session, assistant: Assistant
) -> QuizState:
    try:
        return StudyService(session, user.id, assistant).get_quiz(quiz_id).to_state()
    except QuizNotFound:
        raise HTTPException(status_code=404, detail="Quiz not found")


@router.post(
    f"{PREFIX}/quizzes/{{quiz_id}}/answer", response_model=AnswerResponse, tags=["study"]
)
async def answer_quiz(
    quiz_id: str,
    req: AnswerRequest,
    data: CurrentUserData,
    session: Session,
    assistant: Assistant,
) -> AnswerResponse:
    service = StudyService(session, data.id, assistant)
    try:
        quiz, result = await service.answer(quiz_id, req.option)
    except QuizNotFound:
        raise HTTPException(status_code=404, detail="Quiz not found")
    except UserDataNotFound:
        raise missing_user_data(data.id)
    except StudyError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return AnswerResponse(state=quiz.to_state(), result=result)
