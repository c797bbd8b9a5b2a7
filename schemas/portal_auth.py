from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime


class SendCodeRequest(BaseModel):
    email: Optional[str] = None


class VerifyCodeRequest(BaseModel):
    email: Optional[str] = None
    code: Optional[str] = None


class CheckSessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[str] = Field(default=None, alias="sessionId")


class SendCodeResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    warning: Optional[str] = None


class VerifyCodeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    session_id: str = Field(alias="sessionId")
    expires_at: datetime = Field(alias="expiresAt")


class CheckSessionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    valid: bool
    email: Optional[str] = None
    expires_at: Optional[datetime] = Field(default=None, alias="expiresAt")
    reason: Optional[str] = None
