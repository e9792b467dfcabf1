from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional

from ..models.enums import CarStatus


class StatusChangeIn(BaseModel):
    status: CarStatus


class AdminCarEditIn(BaseModel):
    price: Optional[int] = Field(default=None, ge=0)
    mileage: Optional[int] = Field(default=None, ge=0)
    description: Optional[str] = None
    status: Optional[CarStatus] = None


class BrandCount(BaseModel):
    brand: str
    count: int


class ActivityOut(BaseModel):
    timestamp: datetime
    action: str
    details: str


class AnalyticsOut(BaseModel):
    total_cars: int
    pending_cars: int
    approved_cars: int
    rejected_cars: int
    sold_cars: int
    total_users: int
    cars_by_brand: List[BrandCount]
    recent_activity: List[ActivityOut]
