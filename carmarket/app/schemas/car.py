from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional, List


class BrandOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    logo_url: Optional[str] = None


class ModelOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    brand_id: int
    name: str


class ImageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    is_primary: bool = False
    position: int = 0


class OwnerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None


class CarOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    id: int
    user_id: str
    brand_id: int
    model_id: int
    brand: Optional[BrandOut] = None
    model: Optional[ModelOut] = None
    year: int
    mileage: int
    price: int
    description: Optional[str] = None
    fuel_type: str
    gearbox_type: str
    body_type: str
    condition: str
    color: Optional[str] = None
    cylinders: Optional[int] = None
    status: str
    created_at: datetime
    updated_at: datetime
    images: List[ImageOut] = []
    is_favorite: bool = False


class CarAdminOut(CarOut):
    owner: Optional[OwnerOut] = None


class CarDetailOut(CarOut):
    owner: Optional[OwnerOut] = None
    similar: List[CarOut] = []


def car_out(car, favorite_ids=()) -> CarOut:
    out = CarOut.model_validate(car)
    out.is_favorite = car.id in favorite_ids
    return out
