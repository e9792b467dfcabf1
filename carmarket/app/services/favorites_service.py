from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ..errors import NotFoundError
from ..models import Favorite, Car

logger = logging.getLogger(__name__)


class FavoritesService:
    def __init__(self, db: Session):
        self.db = db

    def list_ids(self, user_id: str) -> list[int]:
        stmt = select(Favorite.car_id).where(Favorite.user_id == user_id)
        return list(self.db.scalars(stmt))

    def is_favorite(self, user_id: str, car_id: int) -> bool:
        stmt = select(Favorite.id).where(Favorite.user_id == user_id, Favorite.car_id == car_id)
        return self.db.scalar(stmt) is not None

    def add(self, user_id: str, car_id: int) -> None:
        if self.db.get(Car, car_id) is None:
            raise NotFoundError(f"Car {car_id} not found")
        if self.is_favorite(user_id, car_id):
            return
        try:
            with self.db.begin_nested():
                self.db.add(Favorite(user_id=user_id, car_id=car_id))
        except IntegrityError:
            # a concurrent request inserted the same pair
            logger.info("favorite_exists user=%s car=%s", user_id, car_id)
        self.db.commit()

    def remove(self, user_id: str, car_id: int) -> None:
        self.db.execute(delete(Favorite).where(Favorite.user_id == user_id, Favorite.car_id == car_id))
        self.db.commit()

    def list_cars(self, user_id: str) -> list[Car]:
        stmt = (
            select(Car)
            .join(Favorite, Favorite.car_id == Car.id)
            .where(Favorite.user_id == user_id)
            .options(selectinload(Car.brand), selectinload(Car.model), selectinload(Car.images))
            .order_by(Favorite.created_at.desc(), Favorite.id.desc())
        )
        return list(self.db.scalars(stmt))


class FavoriteSet:
    """Favorite ids as displayed to one user.

    ``toggle`` flips the local state first and persists afterwards; when
    persisting fails the flip is reverted and the error re-raised.
    """

    def __init__(self, service: FavoritesService, user_id: str, ids: Iterable[int] = ()) -> None:
        self.service = service
        self.user_id = user_id
        self.ids: set[int] = set(ids)

    @classmethod
    def load(cls, service: FavoritesService, user_id: str) -> "FavoriteSet":
        return cls(service, user_id, service.list_ids(user_id))

    def __contains__(self, car_id: int) -> bool:
        return car_id in self.ids

    def toggle(self, car_id: int) -> bool:
        was_favorite = car_id in self.ids
        if was_favorite:
            self.ids.discard(car_id)
        else:
            self.ids.add(car_id)
        try:
            if was_favorite:
                self.service.remove(self.user_id, car_id)
            else:
                self.service.add(self.user_id, car_id)
        except Exception:
            logger.exception("favorite_toggle_failed user=%s car=%s", self.user_id, car_id)
            if was_favorite:
                self.ids.add(car_id)
            else:
                self.ids.discard(car_id)
            raise
        return not was_favorite
