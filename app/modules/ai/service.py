"""Study assistant backed by pydantic-ai agents.

Every public call is single-flight request/response. Failures are logged and
degraded: text calls return an apology string, structured calls return an
empty list.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel
from pydantic_ai import Agent
from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelResponse,
    TextPart,
    UserPromptPart,
)

from app.core.config import settings
from app.core.logging import get_logger
from app.modules.ai import prompts
from app.modules.ai.models import (
    ChatMessage,
    Flashcard,
    FlashcardDeck,
    QuizQuestion,
    QuizQuestionSet,
    Subject,
    UserAnswer,
)
from app.modules.ai.providers import build_model_by_settings
from app.modules.library.models import SourceType


logger = get_logger(__name__)

OutputT = TypeVar("OutputT", bound=BaseModel)

SUMMARY_FAILED = "Could not generate a summary for this source."
CHAT_FAILED = "I'm sorry, I encountered an error. Please try again."
FEEDBACK_FAILED = "I'm sorry, I couldn't analyze your results due to an error."
ASSIGNMENT_FAILED = (
    "I'm sorry, I encountered an error while analyzing your assignment. "
    "Please try again."
)
PERFECT_SCORE = (
    "Excellent work! You got all the questions right. Keep up the great momentum!"
)

STRUCTURED_SYSTEM_PROMPT = (
    "You generate study material as JSON that validates against the provided "
    "schema. Use plain text, no markdown and no code fences."
)

MAX_OPTIONS = 4


def to_message_history(history: Sequence[ChatMessage]) -> list[ModelMessage]:
    """Map stored chat messages to pydantic-ai messages.

    AI messages before the first user turn (the greeting) are dropped so the
    conversation always opens with a user request.
    """
    messages: list[ModelMessage] = []
    for msg in history:
        if msg.sender == "user":
            messages.append(ModelRequest(parts=[UserPromptPart(content=msg.text)]))
        elif messages:
            messages.append(ModelResponse(parts=[TextPart(content=msg.text)]))
    return messages


def normalize_questions(
    questions: Sequence[QuizQuestion], limit: int
) -> list[QuizQuestion]:
    """Trim options, keep at most four, and drop questions whose answer is not an option."""
    out: list[QuizQuestion] = []
    for q in questions:
        text = (q.question or "").strip()
        answer = (q.correct_answer or "").strip()
        options: list[str] = []
        for o in q.options or []:
            s = str(o).strip()
            if s and s not in options:
                options.append(s)
        if not text or answer not in options:
            continue
        if len(options) > MAX_OPTIONS:
            others = [o for o in options if o != answer][: MAX_OPTIONS - 1]
            options = [o for o in options if o == answer or o in others]
        out.append(QuizQuestion(question=text, options=options, correct_answer=answer))
    return out[:limit]


def normalize_flashcards(cards: Sequence[Flashcard], limit: int) -> list[Flashcard]:
    out: list[Flashcard] = []
    for c in cards:
        term = (c.term or "").strip()
        definition = (c.definition or "").strip()
        if term and definition:
            out.append(Flashcard(term=term, definition=definition))
    return out[:limit]


class StudyAssistant:
    """Thin wrapper over the hosted completion model.

    ``model`` may be any pydantic-ai model (tests pass ``TestModel`` or
    ``FunctionModel``); by default it is built from settings on first use.
    """

    def __init__(self, model: Any = None) -> None:
        self._model = model

    @property
    def model(self):
        if self._model is None:
            self._model = build_model_by_settings()
        return self._model

    async def _complete(
        self,
        prompt: str,
        *,
        instructions: Optional[str] = None,
        history: Optional[list[ModelMessage]] = None,
    ) -> str:
        agent: Agent[None, str] = Agent(model=self.model, instructions=instructions)
        res = await agent.run(prompt, message_history=history or None)
        return res.output

    async def _structured(self, prompt: str, output_type: Type[OutputT]) -> OutputT:
        agent: Agent[None, OutputT] = Agent[None, output_type](  # type: ignore[valid-type]
            model=self.model,
            output_type=output_type,
            system_prompt=STRUCTURED_SYSTEM_PROMPT,
            retries=2,
        )
        res = await agent.run(prompt)
        return res.output

    # Free-text completions ----------------------------------------------
    async def summarize_for_source(
        self, content: str, source_type: SourceType, name: str
    ) -> str:
        try:
            prompt = prompts.SUMMARY_PROMPT.format(
                name=name, content=content[: settings.ai.summary_max_chars]
            )
            return await self._complete(prompt)
        except Exception:
            logger.exception("Error generating source summary (%s)", source_type.value)
            return SUMMARY_FAILED

    async def generate_chat_response(
        self,
        history: Sequence[ChatMessage],
        new_message: str,
        source_content: str,
        source_name: str,
    ) -> str:
        try:
            instructions = prompts.SOURCE_CHAT_INSTRUCTIONS.format(
                name=source_name, content=source_content
            )
            return await self._complete(
                new_message,
                instructions=instructions,
                history=to_message_history(history),
            )
        except Exception:
            logger.exception("Error generating chat response")
            return CHAT_FAILED

    async def generate_assistant_response(
        self, history: Sequence[ChatMessage], new_message: str, subject: Subject
    ) -> str:
        try:
            return await self._complete(
                new_message,
                instructions=prompts.SUBJECT_PERSONAS[subject],
                history=to_message_history(history),
            )
        except Exception:
            logger.exception("Error generating assistant response")
            return CHAT_FAILED

    async def analyze_quiz_results(
        self, incorrect_answers: Sequence[UserAnswer], analysis_context: str
    ) -> str:
        if not incorrect_answers:
            return PERFECT_SCORE
        try:
            prompt = prompts.build_quiz_feedback_prompt(incorrect_answers, analysis_context)
            return await self._complete(prompt)
        except Exception:
            logger.exception("Error analyzing quiz results")
            return FEEDBACK_FAILED

    async def analyze_assignment(
        self, content: str, subject: Subject, file_name: str
    ) -> str:
        try:
            prompt = prompts.build_assignment_prompt(content, subject, file_name)
            return await self._complete(prompt)
        except Exception:
            logger.exception("Error analyzing assignment")
            return ASSIGNMENT_FAILED

    # Schema-constrained completions --------------------------------------
    async def generate_quiz(
        self,
        source_content: str,
        source_name: str,
        num_questions: int,
        history: Sequence[str] = (),
    ) -> list[QuizQuestion]:
        try:
            prompt = prompts.build_source_quiz_prompt(
                source_content, source_name, num_questions, history
            )
            result = await self._structured(prompt, QuizQuestionSet)
            return normalize_questions(result.questions, num_questions)
        except Exception:
            logger.exception("Error generating quiz")
            return []

    async def generate_flashcards(
        self,
        source_content: str,
        source_name: str,
        num_cards: int,
        history: Sequence[str] = (),
    ) -> list[Flashcard]:
        try:
            prompt = prompts.build_source_flashcards_prompt(
                source_content, source_name, num_cards, history
            )
            result = await self._structured(prompt, FlashcardDeck)
            return normalize_flashcards(result.flashcards, num_cards)
        except Exception:
            logger.exception("Error generating flashcards")
            return []

    async def generate_subject_quiz(
        self, subject: Subject, topic: str, difficulty: str, count: int
    ) -> list[QuizQuestion]:
        try:
            prompt = prompts.build_subject_quiz_prompt(subject, topic, difficulty, count)
            result = await self._structured(prompt, QuizQuestionSet)
            return normalize_questions(result.questions, count)
        except Exception:
            logger.exception("Error generating subject quiz")
            return []

    async def generate_subject_flashcards(
        self, subject: Subject, topic: str, difficulty: str, count: int
    ) -> list[Flashcard]:
        try:
            prompt = prompts.build_subject_flashcards_prompt(
                subject, topic, difficulty, count
            )
            result = await self._structured(prompt, FlashcardDeck)
            return normalize_flashcards(result.flashcards, count)
        except Exception:
            logger.exception("Error generating subject flashcards")
            return []


_assistant: Optional[StudyAssistant] = None


def get_study_assistant() -> StudyAssistant:
    """FastAPI dependency returning the process-wide assistant."""
    global _assistant
    if _assistant is None:
        _assistant = StudyAssistant()
    return _assistant
