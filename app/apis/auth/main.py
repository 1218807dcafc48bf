from fastapi import APIRouter, HTTPException, Response, status, Depends
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordRequestForm

from app.apis.deps import CurrentUser, CurrentUserData, Session
from app.core.config import settings
from app.core.db_services import UserDataService
from app.core.logging import get_logger
from app.modules.auth import (
    auth_notifier,
    fastapi_users,
    get_jwt_strategy,
    get_user_manager,
    UserRead,
    UserCreate,
    UserUpdate,
    UserManager,
)
from app.modules.navigation.state import navigation_manager
from app.modules.pomodoro.timer import pomodoro_manager
from app.modules.study.quiz import quiz_sessions
from .schemas import LoginRequest, SessionResponse, TokenResponse


logger = get_logger(__name__)

router = APIRouter()

ACCOUNT_DELETE_FAILED = (
    "There was an error deleting your account. "
    "Please log out and log in again before retrying."
)


@router.post(
    f"/{settings.app.version}/auth/login",
    response_model=TokenResponse,
    response_model_by_alias=True,
    tags=["auth"],
)
async def login(
    request: LoginRequest,
    user_manager: UserManager = Depends(get_user_manager),
) -> TokenResponse:
    """Login endpoint that returns an RS256 JWT"""
    credentials = OAuth2PasswordRequestForm(
        username=str(request.email), password=request.password
    )
    user = await user_manager.authenticate(credentials)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials"
        )

    token = await get_jwt_strategy().write_token(user)
    await user_manager.on_after_login(user)
    return TokenResponse(id_token=token)


@router.post(
    f"/{settings.app.version}/auth/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["auth"],
)
async def logout(user: CurrentUser) -> Response:
    auth_notifier.signed_out(user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    f"/{settings.app.version}/auth/session",
    response_model=SessionResponse,
    response_model_by_alias=True,
    tags=["auth"],
)
async def session_state(data: CurrentUserData) -> SessionResponse:
    nav = navigation_manager.get(data.id)
    return SessionResponse(user=data, current_view=nav.current_view)


@router.delete(
    f"/{settings.app.version}/auth/account",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["auth"],
)
async def delete_account(
    user: CurrentUser,
    session: Session,
    user_manager: UserManager = Depends(get_user_manager),
) -> Response:
    """Delete the user document, then the auth user."""
    user_id = user.id
    try:
        await UserDataService(session).delete_user_data(user_id)
        await user_manager.delete(user)
    except Exception:
        logger.exception("Error deleting user account", extra={"user_id": user_id})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=ACCOUNT_DELETE_FAILED,
        )

    auth_notifier.signed_out(user_id)
    navigation_manager.forget(user_id)
    quiz_sessions.discard_user(user_id)
    pomodoro_manager.forget(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/.well-known/jwks.json", tags=["auth"])
async def jwks():
    """JWKS endpoint for public key distribution"""
    return JSONResponse(content=get_jwt_strategy().get_jwks())


router.include_router(
    fastapi_users.get_register_router(UserRead, UserCreate),
    prefix=f"/{settings.app.version}/auth",
    tags=["auth"],
)

router.include_router(
    fastapi_users.get_users_router(UserRead, UserUpdate),
    prefix=f"/{settings.app.version}/users",
    tags=["users"],
)
