from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from app.modules.ai.models import ChatMessage, Difficulty, Flashcard, Subject
from app.modules.study.quiz import QuizResult, QuizState


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)


class SubjectChatRequest(ChatRequest):
    subject: Subject


class ChatResponse(BaseModel):
    messages: list[ChatMessage]


class SourceQuizRequest(BaseModel):
    num_questions: int = Field(default=5)


class SourceFlashcardsRequest(BaseModel):
    num_cards: int = Field(default=5)


class SubjectQuizRequest(BaseModel):
    subject: Subject
    topic: str = ""
    difficulty: Difficulty = Difficulty.MEDIUM
    num_questions: int = Field(default=10)


class SubjectFlashcardsRequest(BaseModel):
    subject: Subject
    topic: str = ""
    difficulty: Difficulty = Difficulty.MEDIUM
    num_cards: int = Field(default=10)


class FlashcardsResponse(BaseModel):
    flashcards: list[Flashcard]
    points_awarded: int = 0


class AnswerRequest(BaseModel):
    option: str


class AnswerResponse(BaseModel):
    state: QuizState
    result: Optional[QuizResult] = None


class AssignmentFeedback(BaseModel):
    file_name: str
    subject: Subject
    feedback: str
