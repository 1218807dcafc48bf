from __future__ import annotations

from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi_users_db_sqlalchemy import SQLAlchemyUserDatabase
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db.base import async_session_maker, get_session
from app.core.db.schemas.auth import User
from app.core.db_services import UserDataService
from app.core.logging import get_logger
from app.modules.ai.service import StudyAssistant, get_study_assistant
from app.modules.auth import auth_notifier, current_active_user
from app.modules.auth.users import UserManager, get_user_manager, get_jwt_strategy
from app.modules.progress.models import UserData


logger = get_logger(__name__)

CurrentUser = Annotated[User, Depends(current_active_user)]
Session = Annotated[AsyncSession, Depends(get_session)]
Assistant = Annotated[StudyAssistant, Depends(get_study_assistant)]

USER_DATA_MISSING = "User data not found. You have been signed out."


async def current_user_or_query_token(
    access_token: Optional[str] = None,
    authorization: Optional[str] = Header(default=None),
    user_manager=Depends(get_user_manager),
) -> User:
    """Resolve current user from Authorization header or `access_token` query param.

    Useful for SSE, where setting custom headers is inconvenient. Falls back to
    query param token when header is missing.
    """
    token: Optional[str] = None
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
    elif access_token:
        token = access_token

    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    strategy = get_jwt_strategy()
    user = await strategy.read_token(token, user_manager)
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return user


async def user_from_token(token: Optional[str]) -> Optional[User]:
    """Resolve a user outside the request dependency graph (websockets)."""
    if not token:
        return None
    async with async_session_maker() as session:
        manager = UserManager(SQLAlchemyUserDatabase(session, User))
        user = await get_jwt_strategy().read_token(token, manager)
    if user is None or not user.is_active:
        return None
    return user


def missing_user_data(user_id: int) -> HTTPException:
    """Sign the user out and build the 401 for a user without a document."""
    logger.error("Signed-in user has no user document", extra={"user_id": user_id})
    auth_notifier.signed_out(user_id)
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=USER_DATA_MISSING)


async def require_user_data(user: CurrentUser, session: Session) -> UserData:
    """The signed-in user's document; a missing document signs the user out."""
    data = await UserDataService(session).get_user_data(user.id)
    if data is None:
        raise missing_user_data(user.id)
    return data


CurrentUserData = Annotated[UserData, Depends(require_user_data)]
