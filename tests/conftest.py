"""Shared fixtures. Environment is set before any ``app`` import."""

import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="study-companion-tests-")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["MODE"] = "test"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP}/test.db"
os.environ["JWT_KEY_FILE"] = os.path.join(_TMP, "jwt_rsa_key.pem")
os.environ["POMODORO_TICK_SECONDS"] = "0.01"

import pytest
from pydantic_ai.messages import ModelResponse, TextPart, ToolCallPart, UserPromptPart
from pydantic_ai.models.function import AgentInfo, FunctionModel

from app.core.db import schemas  # noqa: F401
from app.core.db.base import Base, async_session_maker, engine
from app.core.db.schemas.auth import User
from app.core.db_services import UserDataService


def last_prompt(messages) -> str:
    """Text of the newest user prompt sent to the model."""
    for part in reversed(messages[-1].parts):
        if isinstance(part, UserPromptPart):
            return part.content if isinstance(part.content, str) else str(part.content)
    return ""


def text_model(reply: str = "ok", calls: list | None = None) -> FunctionModel:
    def fn(messages, info: AgentInfo) -> ModelResponse:
        if calls is not None:
            calls.append(messages)
        return ModelResponse(parts=[TextPart(reply)])

    return FunctionModel(fn)


def structured_model(args: dict, calls: list | None = None) -> FunctionModel:
    def fn(messages, info: AgentInfo) -> ModelResponse:
        if calls is not None:
            calls.append(messages)
        return ModelResponse(parts=[ToolCallPart(info.output_tools[0].name, args)])

    return FunctionModel(fn)


def failing_model() -> FunctionModel:
    def fn(messages, info: AgentInfo) -> ModelResponse:
        raise RuntimeError("model unavailable")

    return FunctionModel(fn)


def quiz_payload(*questions: str) -> dict:
    return {
        "questions": [
            {
                "question": q,
                "options": ["A", "B", "C", "D"],
                "correctAnswer": "A",
            }
            for q in questions
        ]
    }


def deck_payload(*terms: str) -> dict:
    return {"flashcards": [{"term": t, "definition": f"{t} defined"} for t in terms]}


@pytest.fixture
async def db_session():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    async with async_session_maker() as session:
        yield session


async def make_user(session, email: str = "ada@example.com", name: str = "Ada") -> int:
    user = User(email=email, hashed_password="not-a-real-hash", name=name)
    session.add(user)
    await session.commit()
    await UserDataService(session).create_user_data(user.id, name, email)
    return user.id


@pytest.fixture
async def user_id(db_session) -> int:
    return await make_user(db_session)
