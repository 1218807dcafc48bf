from __future__ import annotations

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.modules.navigation.state import View
from app.modules.progress.models import UserData


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id_token: str = Field(alias="idToken")
    token_type: str = Field(default="bearer", alias="tokenType")


class SessionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user: UserData
    current_view: View = Field(alias="currentView")
