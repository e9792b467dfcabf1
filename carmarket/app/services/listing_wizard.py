"""Multi-step listing form: Basic Info -> Details -> Images -> Preview.

Each step has its own structure with a declared set of required fields and a
pure validation function. Moving forward is gated on the current step being
valid; moving back never is.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import IntEnum
from typing import Any, Callable, ClassVar, Iterable, List, Mapping, Optional, Sequence

from ..errors import WizardValidationError
from ..models.enums import (
    COLORS,
    CYLINDER_OPTIONS,
    BodyType,
    CarCondition,
    CarStatus,
    FuelType,
    GearboxType,
    values,
)
from ..utils.price_utils import display_price, format_price_input, parse_price

DEFAULT_MAX_IMAGES = 10
MIN_YEAR = 1900
# integer columns are int4
MAX_INTEGER = 2_147_483_647

ModelsLoader = Callable[[int], Sequence[Any]]


class Step(IntEnum):
    BASIC_INFO = 1
    DETAILS = 2
    IMAGES = 3
    PREVIEW = 4


STEP_TITLES = {
    Step.BASIC_INFO: ("Basic Information", "Brand, model, year, and price"),
    Step.DETAILS: ("Car Details", "Specifications and features"),
    Step.IMAGES: ("Images", "Upload car photos"),
    Step.PREVIEW: ("Preview", "Review and submit"),
}


def _blank(value: Any) -> bool:
    return value is None or not str(value).strip()


def missing_fields(data: Any, required: Iterable[str]) -> List[str]:
    return [name for name in required if _blank(getattr(data, name))]


@dataclass
class BasicInfo:
    REQUIRED: ClassVar[tuple[str, ...]] = ("brand_id", "model_id", "year", "price")

    brand_id: str = ""
    model_id: str = ""
    year: str = ""
    price: str = ""


@dataclass
class Details:
    REQUIRED: ClassVar[tuple[str, ...]] = ("mileage", "fuel_type", "gearbox_type", "body_type", "condition")

    mileage: str = ""
    fuel_type: str = ""
    gearbox_type: str = ""
    body_type: str = ""
    condition: str = CarCondition.NEW.value
    color: str = "Other"
    cylinders: str = ""
    description: str = ""


@dataclass
class ExistingImage:
    id: int
    url: str
    is_primary: bool = False


@dataclass
class NewImage:
    filename: str
    data: bytes
    content_type: Optional[str] = None


@dataclass
class ImageSet:
    existing: List[ExistingImage] = field(default_factory=list)
    pending_deletion: set[int] = field(default_factory=set)
    new: List[NewImage] = field(default_factory=list)

    def kept(self) -> List[ExistingImage]:
        return [img for img in self.existing if img.id not in self.pending_deletion]

    def total(self) -> int:
        return len(self.kept()) + len(self.new)


def validate_basic_info(info: BasicInfo) -> List[str]:
    return missing_fields(info, BasicInfo.REQUIRED)


def validate_details(details: Details) -> List[str]:
    return missing_fields(details, Details.REQUIRED)


def validate_images(images: ImageSet, max_images: int = DEFAULT_MAX_IMAGES) -> List[str]:
    total = images.total()
    if total < 1 or total > max_images:
        return ["images"]
    return []


def year_bounds(today: date | None = None) -> tuple[int, int]:
    current = (today or date.today()).year
    return MIN_YEAR, current + 1


class ListingWizard:
    def __init__(
        self,
        *,
        models_loader: ModelsLoader | None = None,
        max_images: int = DEFAULT_MAX_IMAGES,
        car_id: int | None = None,
    ) -> None:
        self.step = Step.BASIC_INFO
        self.basic = BasicInfo()
        self.details = Details()
        self.images = ImageSet()
        self.car_id = car_id
        self.models: List[Any] = []
        self.max_images = max_images
        self._models_loader = models_loader

    @classmethod
    def for_edit(
        cls,
        car: Any,
        *,
        models_loader: ModelsLoader | None = None,
        max_images: int = DEFAULT_MAX_IMAGES,
    ) -> "ListingWizard":
        wizard = cls(models_loader=models_loader, max_images=max_images, car_id=car.id)
        wizard.basic = BasicInfo(
            brand_id=str(car.brand_id),
            model_id=str(car.model_id),
            year=str(car.year),
            price=format_price_input(str(car.price)),
        )
        wizard.details = Details(
            mileage=str(car.mileage),
            fuel_type=car.fuel_type or "",
            gearbox_type=car.gearbox_type or "",
            body_type=car.body_type or "",
            condition=car.condition or "",
            color=car.color or "Other",
            cylinders=str(car.cylinders) if car.cylinders else "",
            description=car.description or "",
        )
        wizard.images = ImageSet(
            existing=[ExistingImage(id=img.id, url=img.url, is_primary=img.is_primary) for img in car.images]
        )
        if models_loader is not None:
            wizard.models = list(models_loader(car.brand_id))
        return wizard

    @property
    def is_editing(self) -> bool:
        return self.car_id is not None

    # validation

    def step_problems(self, step: Step | int | None = None) -> List[str]:
        target = Step(step or self.step)
        if target == Step.BASIC_INFO:
            return validate_basic_info(self.basic)
        if target == Step.DETAILS:
            return validate_details(self.details)
        if target == Step.IMAGES:
            return validate_images(self.images, self.max_images)
        return []

    def is_step_valid(self, step: Step | int | None = None) -> bool:
        return not self.step_problems(step)

    def _raise_for(self, step: Step) -> None:
        problems = self.step_problems(step)
        if not problems:
            return
        if step == Step.IMAGES:
            message = f"Add between 1 and {self.max_images} images"
        else:
            message = "Please fill in all required fields"
        raise WizardValidationError(message, step=int(step), fields=problems)

    def validate_all(self) -> None:
        for step in (Step.BASIC_INFO, Step.DETAILS, Step.IMAGES):
            self._raise_for(step)

    # navigation

    def next_step(self) -> Step:
        self._raise_for(self.step)
        self.step = Step(min(self.step + 1, Step.PREVIEW))
        return self.step

    def previous_step(self) -> Step:
        self.step = Step(max(self.step - 1, Step.BASIC_INFO))
        return self.step

    # field updates

    def select_brand(self, brand_id: Any) -> None:
        self.basic.brand_id = "" if _blank(brand_id) else str(brand_id).strip()
        self.basic.model_id = ""
        if not self.basic.brand_id:
            self.models = []
            return
        if not self.basic.brand_id.isdigit():
            raise WizardValidationError("brand_id must be a whole number", step=int(Step.BASIC_INFO), fields=["brand_id"])
        if self._models_loader is not None:
            self.models = list(self._models_loader(int(self.basic.brand_id)))

    def set_price(self, raw: Any) -> str:
        self.basic.price = format_price_input(raw)
        return self.basic.price

    def update(self, data: Mapping[str, Any]) -> None:
        """Apply form input; unknown keys are ignored."""
        if "brand_id" in data and str(data["brand_id"] or "").strip() != self.basic.brand_id:
            self.select_brand(data["brand_id"])
        for name in ("model_id", "year"):
            if name in data:
                setattr(self.basic, name, "" if data[name] is None else str(data[name]).strip())
        if "price" in data:
            self.set_price(data["price"])
        for name in ("mileage", "fuel_type", "gearbox_type", "body_type", "condition", "color", "cylinders", "description"):
            if name in data:
                setattr(self.details, name, "" if data[name] is None else str(data[name]))

    # images

    def add_images(self, files: Sequence[NewImage]) -> None:
        if self.images.total() + len(files) > self.max_images:
            raise WizardValidationError(
                f"Maximum {self.max_images} images allowed",
                step=int(Step.IMAGES),
                fields=["images"],
            )
        self.images.new.extend(files)

    def remove_new_image(self, index: int) -> NewImage:
        return self.images.new.pop(index)

    def mark_for_deletion(self, image_id: int) -> None:
        if image_id not in {img.id for img in self.images.existing}:
            raise WizardValidationError(
                f"Image {image_id} does not belong to this listing",
                step=int(Step.IMAGES),
                fields=["delete_image_ids"],
            )
        self.images.pending_deletion.add(image_id)

    # output

    def _int_field(self, name: str, value: str, *, step: Step, minimum: int = 0, maximum: int | None = None) -> int:
        try:
            number = int(str(value).strip())
        except ValueError:
            raise WizardValidationError(f"{name} must be a whole number", step=int(step), fields=[name]) from None
        if number < minimum or (maximum is not None and number > maximum):
            raise WizardValidationError(f"{name} is out of range", step=int(step), fields=[name])
        return number

    def _choice(self, name: str, value: str, choices: Sequence[str]) -> str:
        if value not in choices:
            raise WizardValidationError(
                f"{name} must be one of: {', '.join(choices)}",
                step=int(Step.DETAILS),
                fields=[name],
            )
        return value

    def to_car_values(self) -> dict[str, Any]:
        self.validate_all()
        year_min, year_max = year_bounds()
        price = parse_price(self.basic.price)
        if price is None:
            raise WizardValidationError("price must be a number", step=int(Step.BASIC_INFO), fields=["price"])
        if price > MAX_INTEGER:
            raise WizardValidationError("price is out of range", step=int(Step.BASIC_INFO), fields=["price"])
        cylinders = None
        if not _blank(self.details.cylinders):
            cylinders = int(self._choice("cylinders", self.details.cylinders.strip(), CYLINDER_OPTIONS))
        color = self.details.color or None
        if color is not None:
            color = self._choice("color", color, COLORS)
        return {
            "brand_id": self._int_field("brand_id", self.basic.brand_id, step=Step.BASIC_INFO, minimum=1),
            "model_id": self._int_field("model_id", self.basic.model_id, step=Step.BASIC_INFO, minimum=1),
            "year": self._int_field("year", self.basic.year, step=Step.BASIC_INFO, minimum=year_min, maximum=year_max),
            "price": price,
            "mileage": self._int_field("mileage", self.details.mileage, step=Step.DETAILS, maximum=MAX_INTEGER),
            "fuel_type": self._choice("fuel_type", self.details.fuel_type, values(FuelType)),
            "gearbox_type": self._choice("gearbox_type", self.details.gearbox_type, values(GearboxType)),
            "body_type": self._choice("body_type", self.details.body_type, values(BodyType)),
            "condition": self._choice("condition", self.details.condition, values(CarCondition)),
            "color": color,
            "cylinders": cylinders,
            "description": self.details.description.strip() or None,
            "status": CarStatus.PENDING.value,
        }

    def preview(self, brand_name: str | None = None) -> List[dict[str, str]]:
        model_name = next((m.name for m in self.models if str(m.id) == self.basic.model_id), None)
        price = parse_price(self.basic.price)
        mileage = parse_price(self.details.mileage)
        return [
            {"label": "Brand", "value": brand_name or "Not specified"},
            {"label": "Model", "value": model_name or "Not specified"},
            {"label": "Year", "value": self.basic.year or "Not specified"},
            {"label": "Price", "value": display_price(price) or "Not specified"},
            {"label": "Mileage", "value": f"{mileage:,} km" if mileage is not None else "Not specified"},
            {"label": "Fuel Type", "value": self.details.fuel_type or "Not specified"},
            {"label": "Transmission", "value": self.details.gearbox_type or "Not specified"},
            {"label": "Body Type", "value": self.details.body_type or "Not specified"},
            {"label": "Condition", "value": self.details.condition or "Not specified"},
            {"label": "Color", "value": self.details.color or "Not specified"},
            {
                "label": "Cylinders",
                "value": f"{self.details.cylinders} Cylinders" if self.details.cylinders else "Not specified",
            },
            {"label": "Description", "value": self.details.description or "No description provided"},
            {"label": "Images", "value": str(self.images.total())},
        ]

    def to_state(self) -> dict[str, Any]:
        return {
            "car_id": self.car_id,
            "is_editing": self.is_editing,
            "step": int(self.step),
            "basic_info": {name: getattr(self.basic, name) for name in ("brand_id", "model_id", "year", "price")},
            "details": {
                name: getattr(self.details, name)
                for name in ("mileage", "fuel_type", "gearbox_type", "body_type", "condition", "color", "cylinders", "description")
            },
            "images": {
                "existing": [{"id": img.id, "url": img.url, "is_primary": img.is_primary} for img in self.images.existing],
                "pending_deletion": sorted(self.images.pending_deletion),
                "new": [img.filename for img in self.images.new],
                "total": self.images.total(),
            },
            "models": [{"id": m.id, "name": m.name} for m in self.models],
        }
