"""Pydantic models shared by the AI service and the study workflows.

Structured outputs are kept to plain strings and lists so the provider's
JSON-schema mode accepts them; normalization happens after generation.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Subject(str, Enum):
    RESEARCH_METHODOLOGY = "Research Methodology and IPR"
    DATA_STRUCTURES = "Data Structures and Applications"
    DISCRETE_MATH = "Discrete Mathematical Structures"
    OTHER = "Other"


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class ChatMessage(BaseModel):
    id: str
    sender: Literal["user", "ai"]
    text: str


class QuizQuestion(BaseModel):
    """A single multiple-choice question; the answer is one of the options."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    question: str
    options: list[str] = Field(default_factory=list)
    correct_answer: str


class QuizQuestionSet(BaseModel):
    """Structured output for MCQ generation."""

    questions: list[QuizQuestion] = Field(default_factory=list)


class UserAnswer(QuizQuestion):
    user_answer: str
    is_correct: bool


class Flashcard(BaseModel):
    """Key term and its concise definition."""

    term: str
    definition: str


class FlashcardDeck(BaseModel):
    """Structured output for flashcard generation."""

    flashcards: list[Flashcard] = Field(default_factory=list)
