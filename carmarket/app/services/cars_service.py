from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Iterable, List, Optional

from sqlalchemy import and_, select
from sqlalchemy.orm import Session, selectinload

from ..errors import NotFoundError
from ..models import Brand, Car, CarModel, CarStatus

SIMILAR_LIMIT = 4


@dataclass
class ListingFilters:
    brand_id: Optional[int] = None
    min_price: Optional[int] = None
    max_price: Optional[int] = None
    min_year: Optional[int] = None
    max_year: Optional[int] = None
    condition: Optional[str] = None
    fuel_type: Optional[str] = None
    body_type: Optional[str] = None
    gearbox_type: Optional[str] = None
    search: Optional[str] = None

    def active(self) -> dict:
        out = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, str):
                value = value.strip() or None
            if value is not None:
                out[f.name] = value
        return out


def _with_relations(stmt):
    return stmt.options(
        selectinload(Car.brand),
        selectinload(Car.model),
        selectinload(Car.images),
    )


def apply_search(cars: Iterable[Car], term: Optional[str]) -> List[Car]:
    """Case-insensitive substring match over brand, model and description."""
    cars = list(cars)
    needle = (term or "").strip().lower()
    if not needle:
        return cars
    out = []
    for car in cars:
        haystack = (
            car.brand.name if car.brand else "",
            car.model.name if car.model else "",
            car.description or "",
        )
        if any(needle in part.lower() for part in haystack):
            out.append(car)
    return out


class CarsService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def browse(self, filters: ListingFilters | None = None) -> List[Car]:
        filters = filters or ListingFilters()
        conditions = [Car.status == CarStatus.APPROVED.value]
        if filters.brand_id is not None:
            conditions.append(Car.brand_id == filters.brand_id)
        if filters.min_price is not None:
            conditions.append(Car.price >= filters.min_price)
        if filters.max_price is not None:
            conditions.append(Car.price <= filters.max_price)
        if filters.min_year is not None:
            conditions.append(Car.year >= filters.min_year)
        if filters.max_year is not None:
            conditions.append(Car.year <= filters.max_year)
        if filters.condition:
            conditions.append(Car.condition == filters.condition)
        if filters.fuel_type:
            conditions.append(Car.fuel_type == filters.fuel_type)
        if filters.body_type:
            conditions.append(Car.body_type == filters.body_type)
        if filters.gearbox_type:
            conditions.append(Car.gearbox_type == filters.gearbox_type)

        stmt = _with_relations(
            select(Car).where(and_(*conditions)).order_by(Car.created_at.desc(), Car.id.desc())
        )
        items = list(self.db.execute(stmt).scalars().all())
        return apply_search(items, filters.search)

    def get_car(self, car_id: int) -> Car:
        stmt = _with_relations(select(Car).where(Car.id == car_id)).options(selectinload(Car.owner))
        car = self.db.execute(stmt).scalar_one_or_none()
        if car is None:
            raise NotFoundError(f"Car {car_id} not found")
        return car

    def similar(self, car: Car, limit: int = SIMILAR_LIMIT) -> List[Car]:
        stmt = _with_relations(
            select(Car)
            .where(
                Car.brand_id == car.brand_id,
                Car.id != car.id,
                Car.status == CarStatus.APPROVED.value,
            )
            .order_by(Car.created_at.desc(), Car.id.desc())
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all())

    def brands(self) -> List[Brand]:
        return list(self.db.execute(select(Brand).order_by(Brand.name.asc())).scalars().all())

    def get_brand(self, brand_id: int) -> Brand:
        brand = self.db.get(Brand, brand_id)
        if brand is None:
            raise NotFoundError(f"Brand {brand_id} not found")
        return brand

    def models_for_brand(self, brand_id: int) -> List[CarModel]:
        stmt = select(CarModel).where(CarModel.brand_id == brand_id).order_by(CarModel.name.asc())
        return list(self.db.execute(stmt).scalars().all())
