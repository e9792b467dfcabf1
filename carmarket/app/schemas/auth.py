from pydantic import BaseModel
from typing import List, Optional

from .profile import ProfileOut


class SignUpIn(BaseModel):
    email: str
    password: str
    full_name: str
    phone_number: str


class LoginIn(BaseModel):
    email: str
    password: str


class SessionOut(BaseModel):
    authenticated: bool
    profile: Optional[ProfileOut] = None
    expires_at: Optional[str] = None


class PasswordStrengthIn(BaseModel):
    password: str = ""


class PasswordRequirementOut(BaseModel):
    text: str
    met: bool


class PasswordStrengthOut(BaseModel):
    score: int
    label: str
    ratio: float
    requirements: List[PasswordRequirementOut]
