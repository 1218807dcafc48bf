from app.core.db.schemas.auth import User
from .events import AuthEvent, AuthStateChange, AuthStateNotifier, auth_notifier
from .users import (
    UserCreate,
    UserRead,
    UserUpdate,
    UserManager,
    get_user_db,
    get_user_manager,
    get_jwt_strategy,
    auth_backend,
    fastapi_users,
    current_active_user,
)

__all__ = [
    "User",
    "AuthEvent",
    "AuthStateChange",
    "AuthStateNotifier",
    "auth_notifier",
    "UserCreate",
    "UserRead",
    "UserUpdate",
    "UserManager",
    "get_user_db",
    "get_user_manager",
    "get_jwt_strategy",
    "auth_backend",
    "fastapi_users",
    "current_active_user",
]
