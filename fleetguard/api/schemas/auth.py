from pydantic import BaseModel
from typing import Optional


class UserLogin(BaseModel):
    email: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = None


class LoginUser(BaseModel):
    id: str
    email: str
    name: str
    role: Optional[str] = None


class LoginResponse(BaseModel):
    token: str
    user: LoginUser


class ForgotPasswordRequest(BaseModel):
    email: Optional[str] = None
    phone: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    token: Optional[str] = None
    password: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


class ResetTokenStatus(BaseModel):
    valid: bool
