"""Owner-side listing operations: submit/edit, my listings, delete, mark sold.

Submission runs as a saga: the car row, its image rows and the deletions of
removed images share one database transaction, and every object uploaded
before a failure is removed again, so a failed submission leaves neither an
orphaned listing nor stray files.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import selectinload

from ..backend_client import BackendClient
from ..config import settings
from ..errors import (
    AuthorizationError,
    MarketplaceError,
    NotFoundError,
    StatusTransitionError,
    StorageError,
    SubmissionError,
    WizardValidationError,
)
from ..models import Car, CarImage, CarStatus
from ..models.base import utcnow
from ..utils.images import InvalidImageError, inspect_image
from .cars_service import CarsService
from .listing_wizard import ListingWizard, Step
from .storage_service import CAR_IMAGES_BUCKET, build_car_image_path

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


class ListingService:
    def __init__(self, client: BackendClient) -> None:
        self.client = client
        self.db = client.db
        self.storage = client.storage

    def new_wizard(self) -> ListingWizard:
        return ListingWizard(
            models_loader=CarsService(self.db).models_for_brand,
            max_images=settings.MAX_IMAGES_PER_LISTING,
        )

    def _get_car(self, car_id: int) -> Car:
        stmt = (
            select(Car)
            .where(Car.id == car_id)
            .options(selectinload(Car.brand), selectinload(Car.model), selectinload(Car.images))
        )
        car = self.db.execute(stmt).scalar_one_or_none()
        if car is None:
            raise NotFoundError(f"Car {car_id} not found")
        return car

    def _owned_car(self, user_id: str, car_id: int) -> Car:
        car = self._get_car(car_id)
        if car.user_id != user_id:
            logger.warning("listing_access_denied user=%s car=%s owner=%s", user_id, car_id, car.user_id)
            raise AuthorizationError("You do not have permission to edit this car", redirect_to="/my-ads")
        return car

    def load_for_edit(self, user_id: str, car_id: int) -> ListingWizard:
        car = self._owned_car(user_id, car_id)
        return ListingWizard.for_edit(
            car,
            models_loader=CarsService(self.db).models_for_brand,
            max_images=settings.MAX_IMAGES_PER_LISTING,
        )

    def _check_references(self, values: dict) -> None:
        cars = CarsService(self.db)
        cars.get_brand(values["brand_id"])
        model_ids = {m.id for m in cars.models_for_brand(values["brand_id"])}
        if values["model_id"] not in model_ids:
            raise WizardValidationError(
                "Selected model does not belong to the selected brand",
                step=int(Step.BASIC_INFO),
                fields=["model_id"],
            )

    def submit(
        self,
        user_id: str,
        wizard: ListingWizard,
        progress: Optional[ProgressCallback] = None,
    ) -> Car:
        values = wizard.to_car_values()
        self._check_references(values)

        # validate every file before anything is written
        prepared = []
        for image in wizard.images.new:
            try:
                info = inspect_image(image.data, max_bytes=settings.MAX_IMAGE_BYTES, filename=image.filename)
            except InvalidImageError as exc:
                raise WizardValidationError(str(exc), step=int(Step.IMAGES), fields=["images"]) from exc
            prepared.append((image, info))

        uploaded: List[str] = []
        removed_paths: List[str] = []
        try:
            if wizard.is_editing:
                car = self._owned_car(user_id, wizard.car_id)
                for key, value in values.items():
                    setattr(car, key, value)
                # edits go back through moderation
                car.status = CarStatus.PENDING.value
                car.updated_at = utcnow()
            else:
                car = Car(user_id=user_id, **values)
                self.db.add(car)
            self.db.flush()

            if wizard.images.pending_deletion:
                doomed = [img for img in car.images if img.id in wizard.images.pending_deletion]
                removed_paths = [img.storage_path for img in doomed if img.storage_path]
                for img in doomed:
                    car.images.remove(img)
                self.db.flush()

            position = max((img.position for img in car.images), default=-1) + 1
            total = len(prepared)
            for done, (image, info) in enumerate(prepared, start=1):
                path = build_car_image_path(user_id, car.id, info.extension)
                self.storage.upload(CAR_IMAGES_BUCKET, path, image.data)
                uploaded.append(path)
                car.images.append(
                    CarImage(
                        url=self.storage.get_public_url(CAR_IMAGES_BUCKET, path),
                        storage_path=path,
                        position=position,
                    )
                )
                position += 1
                logger.info("listing_image_uploaded car=%s done=%s total=%s", car.id, done, total)
                if progress is not None:
                    progress(done / total)

            _ensure_primary(car)
            self.db.commit()
        except Exception as exc:
            self.db.rollback()
            self._compensate(uploaded)
            logger.exception("listing_submit_failed user=%s car=%s uploaded=%s", user_id, wizard.car_id, len(uploaded))
            if isinstance(exc, MarketplaceError) and not isinstance(exc, StorageError):
                raise
            raise SubmissionError("Failed to submit listing. Please try again.") from exc

        self._remove_objects(removed_paths)
        logger.info(
            "listing_submitted car=%s user=%s editing=%s images=%s",
            car.id,
            user_id,
            wizard.is_editing,
            len(car.images),
        )
        return car

    def _compensate(self, paths: List[str]) -> None:
        if not paths:
            return
        try:
            self.storage.remove(CAR_IMAGES_BUCKET, paths)
        except StorageError:
            logger.exception("listing_compensation_failed paths=%s", paths)

    def _remove_objects(self, paths: List[str]) -> None:
        if not paths:
            return
        try:
            self.storage.remove(CAR_IMAGES_BUCKET, paths)
        except StorageError:
            logger.warning("listing_object_cleanup_failed paths=%s", paths)

    def list_own(self, user_id: str, status: Optional[str] = None) -> List[Car]:
        stmt = (
            select(Car)
            .where(Car.user_id == user_id)
            .options(selectinload(Car.brand), selectinload(Car.model), selectinload(Car.images))
            .order_by(Car.created_at.desc(), Car.id.desc())
        )
        if status:
            stmt = stmt.where(Car.status == status)
        return list(self.db.execute(stmt).scalars().all())

    def delete(self, user_id: str, car_id: int) -> None:
        car = self._owned_car(user_id, car_id)
        delete_car_with_images(self.client, car)

    def mark_sold(self, user_id: str, car_id: int) -> Car:
        car = self._owned_car(user_id, car_id)
        if car.status != CarStatus.APPROVED.value:
            raise StatusTransitionError(f"Only approved listings can be marked as sold (status is {car.status})")
        car.status = CarStatus.SOLD.value
        car.updated_at = utcnow()
        self.db.commit()
        logger.info("listing_marked_sold car=%s user=%s", car.id, user_id)
        return car


def _ensure_primary(car: Car) -> None:
    if not car.images or any(img.is_primary for img in car.images):
        return
    first = min(car.images, key=lambda img: (img.position, img.id or 0))
    first.is_primary = True


def delete_car_with_images(client: BackendClient, car: Car) -> None:
    """Delete image rows first, then the car; stored files are removed afterwards."""
    db = client.db
    paths = [img.storage_path for img in car.images if img.storage_path]
    car_id = car.id
    db.execute(delete(CarImage).where(CarImage.car_id == car_id))
    db.expire(car, ["images"])
    db.delete(car)
    db.commit()
    if paths:
        try:
            client.storage.remove(CAR_IMAGES_BUCKET, paths)
        except StorageError:
            logger.warning("car_object_cleanup_failed car=%s paths=%s", car_id, paths)
    logger.info("car_deleted car=%s images=%s", car_id, len(paths))
