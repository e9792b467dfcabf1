from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional

from ..models.enums import UserRole


class ProfileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    role: str
    created_at: datetime
    updated_at: datetime


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None


class UserWithStatsOut(ProfileOut):
    total_ads: int = 0


class RoleChangeIn(BaseModel):
    role: UserRole
