from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from ..backend_client import BackendClient
from ..errors import NotFoundError, StatusTransitionError, WizardValidationError
from ..models import AdminLog, Car, CarStatus, Notification, Profile, UserRole
from ..models.base import utcnow
from .listing_service import delete_car_with_images

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_LIMIT = 10


class AdminService:
    def __init__(self, client: BackendClient) -> None:
        self.client = client
        self.db = client.db

    # audit trail

    def _log(self, admin: Profile, action_type: str, table_name: str, record_id: Any, changes: Optional[dict]) -> None:
        self.db.add(
            AdminLog(
                admin_id=admin.id,
                action_type=action_type,
                table_name=table_name,
                record_id=str(record_id),
                changes=changes,
            )
        )

    # listings

    def _get_car(self, car_id: int) -> Car:
        stmt = (
            select(Car)
            .where(Car.id == car_id)
            .options(selectinload(Car.brand), selectinload(Car.model), selectinload(Car.images), selectinload(Car.owner))
        )
        car = self.db.execute(stmt).scalar_one_or_none()
        if car is None:
            raise NotFoundError(f"Car {car_id} not found")
        return car

    def list_by_status(self, status: Optional[str] = None) -> List[Car]:
        stmt = (
            select(Car)
            .options(selectinload(Car.brand), selectinload(Car.model), selectinload(Car.owner), selectinload(Car.images))
            .order_by(Car.created_at.desc(), Car.id.desc())
        )
        if status:
            stmt = stmt.where(Car.status == CarStatus(status).value)
        return list(self.db.execute(stmt).scalars().all())

    def change_status(self, admin: Profile, car_id: int, new_status: str) -> Car:
        target = CarStatus(new_status).value
        car = self._get_car(car_id)
        old = car.status
        if old == target:
            raise StatusTransitionError(f"Car {car_id} is already {target}")
        car.status = target
        car.updated_at = utcnow()
        self._log(admin, "update_car_status", "cars", car.id, {"status": {"old": old, "new": target}})
        self.db.commit()
        logger.info("car_status_changed car=%s old=%s new=%s admin=%s", car.id, old, target, admin.id)
        self._notify_owner(car, target)
        return car

    def _notify_owner(self, car: Car, status: str) -> None:
        try:
            with self.db.begin_nested():
                self.db.add(
                    Notification(
                        user_id=car.user_id,
                        type="car_status_update",
                        title=f"Car Listing {status}",
                        message=f"Your car listing ({car.title}) has been {status.lower()}.",
                    )
                )
            self.db.commit()
        except SQLAlchemyError:
            logger.warning("notification_failed car=%s user=%s", car.id, car.user_id, exc_info=True)
            self.db.rollback()

    def edit_car(
        self,
        admin: Profile,
        car_id: int,
        *,
        price: Optional[int] = None,
        mileage: Optional[int] = None,
        description: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Car:
        car = self._get_car(car_id)
        changes: Dict[str, dict] = {}
        for name, value in (("price", price), ("mileage", mileage), ("description", description)):
            if value is None or getattr(car, name) == value:
                continue
            if name in ("price", "mileage") and value < 0:
                raise WizardValidationError(f"{name} must not be negative", fields=[name])
            changes[name] = {"old": getattr(car, name), "new": value}
            setattr(car, name, value)
        if changes:
            car.updated_at = utcnow()
            self._log(admin, "update_car", "cars", car.id, changes)
            self.db.commit()
        if status is not None and CarStatus(status).value != car.status:
            car = self.change_status(admin, car.id, status)
        return car

    def delete_car(self, admin: Profile, car_id: int) -> None:
        car = self._get_car(car_id)
        self._log(
            admin,
            "delete_car",
            "cars",
            car.id,
            {"status": car.status, "user_id": car.user_id, "title": car.title},
        )
        delete_car_with_images(self.client, car)

    # users

    def list_users(self) -> List[dict]:
        counts = dict(
            self.db.execute(select(Car.user_id, func.count(Car.id)).group_by(Car.user_id)).all()
        )
        profiles = self.db.execute(select(Profile).order_by(Profile.created_at.desc())).scalars().all()
        return [{"profile": p, "total_ads": int(counts.get(p.id, 0))} for p in profiles]

    def change_role(self, admin: Profile, user_id: str, role: str) -> Profile:
        target = UserRole(role).value
        profile = self.db.get(Profile, user_id)
        if profile is None:
            raise NotFoundError(f"User {user_id} not found")
        old = profile.role
        profile.role = target
        profile.updated_at = utcnow()
        self._log(admin, "update_user_role", "profiles", profile.id, {"role": {"old": old, "new": target}})
        self.db.commit()
        logger.info("user_role_changed user=%s old=%s new=%s admin=%s", profile.id, old, target, admin.id)
        return profile

    # analytics

    def analytics(self) -> dict:
        cars = self.list_by_status()
        profiles = self.db.execute(select(Profile).order_by(Profile.created_at.desc())).scalars().all()
        by_status = Counter(car.status for car in cars)
        by_brand = Counter(car.brand.name if car.brand else "Unknown" for car in cars)

        recent = [
            {
                "timestamp": car.created_at,
                "action": "New Car Listed",
                "details": f"{car.title} ({car.year})",
            }
            for car in cars[:5]
        ]
        recent += [
            {
                "timestamp": p.created_at,
                "action": "New User Joined",
                "details": p.full_name or p.email or "Anonymous",
            }
            for p in profiles[:5]
        ]
        recent.sort(key=lambda item: item["timestamp"], reverse=True)

        return {
            "total_cars": len(cars),
            "pending_cars": by_status.get(CarStatus.PENDING.value, 0),
            "approved_cars": by_status.get(CarStatus.APPROVED.value, 0),
            "rejected_cars": by_status.get(CarStatus.REJECTED.value, 0),
            "sold_cars": by_status.get(CarStatus.SOLD.value, 0),
            "total_users": len(profiles),
            "cars_by_brand": [
                {"brand": brand, "count": count}
                for brand, count in sorted(by_brand.items(), key=lambda kv: (-kv[1], kv[0]))
            ],
            "recent_activity": recent[:RECENT_ACTIVITY_LIMIT],
        }
