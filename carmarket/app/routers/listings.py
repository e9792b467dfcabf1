from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from ..auth import require_user
from ..backend_client import BackendClient, get_backend_client
from ..errors import WizardValidationError
from ..models import Profile
from ..models.enums import CarStatus
from ..schemas import CarOut, StepValidationIn, StepValidationOut, car_out
from ..services.listing_service import ListingService
from ..services.listing_wizard import ExistingImage, ImageSet, NewImage, Step

router = APIRouter(prefix="/api", tags=["listings"])


def listing_form(
    brand_id: Optional[str] = Form(None),
    model_id: Optional[str] = Form(None),
    year: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    mileage: Optional[str] = Form(None),
    fuel_type: Optional[str] = Form(None),
    gearbox_type: Optional[str] = Form(None),
    body_type: Optional[str] = Form(None),
    condition: Optional[str] = Form(None),
    color: Optional[str] = Form(None),
    cylinders: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
) -> dict:
    """Submitted wizard fields only; omitted fields keep the wizard's current values."""
    fields = {
        "brand_id": brand_id,
        "model_id": model_id,
        "year": year,
        "price": price,
        "mileage": mileage,
        "fuel_type": fuel_type,
        "gearbox_type": gearbox_type,
        "body_type": body_type,
        "condition": condition,
        "color": color,
        "cylinders": cylinders,
        "description": description,
    }
    return {name: value for name, value in fields.items() if value is not None}


def _read_uploads(files: List[UploadFile]) -> List[NewImage]:
    out = []
    for upload in files:
        if not upload.filename:
            continue
        out.append(NewImage(filename=upload.filename, data=upload.file.read(), content_type=upload.content_type))
    return out


def _placeholder_images(payload: StepValidationIn) -> ImageSet:
    existing = [ExistingImage(id=i, url="") for i in range(1, payload.existing_images + 1)]
    doomed = {img.id for img in existing[: payload.pending_deletion]}
    new = [NewImage(filename=f"new-{i}", data=b"") for i in range(payload.new_images)]
    return ImageSet(existing=existing, pending_deletion=doomed, new=new)


@router.post("/listings/steps/{step}/validate", response_model=StepValidationOut)
def validate_step(step: int, payload: StepValidationIn, client: BackendClient = Depends(get_backend_client)):
    try:
        target = Step(step)
    except ValueError:
        raise WizardValidationError(f"Unknown step {step}", step=step) from None
    wizard = ListingService(client).new_wizard()
    wizard.update(payload.form)
    wizard.images = _placeholder_images(payload)
    problems = wizard.step_problems(target)
    next_step = target if problems else Step(min(target + 1, Step.PREVIEW))
    return StepValidationOut(step=int(target), valid=not problems, missing=problems, next_step=int(next_step))


@router.post("/listings", response_model=CarOut, status_code=201)
def create_listing(
    form: dict = Depends(listing_form),
    images: List[UploadFile] = File(default=[]),
    user: Profile = Depends(require_user),
    client: BackendClient = Depends(get_backend_client),
):
    service = ListingService(client)
    wizard = service.new_wizard()
    wizard.update(form)
    wizard.add_images(_read_uploads(images))
    car = service.submit(user.id, wizard)
    return car_out(car)


@router.get("/listings/{car_id}/edit")
def edit_listing_state(
    car_id: int,
    user: Profile = Depends(require_user),
    client: BackendClient = Depends(get_backend_client),
):
    wizard = ListingService(client).load_for_edit(user.id, car_id)
    return wizard.to_state()


@router.put("/listings/{car_id}", response_model=CarOut)
def update_listing(
    car_id: int,
    form: dict = Depends(listing_form),
    images: List[UploadFile] = File(default=[]),
    delete_image_ids: List[int] = Form(default=[]),
    user: Profile = Depends(require_user),
    client: BackendClient = Depends(get_backend_client),
):
    service = ListingService(client)
    wizard = service.load_for_edit(user.id, car_id)
    wizard.update(form)
    for image_id in delete_image_ids:
        wizard.mark_for_deletion(image_id)
    wizard.add_images(_read_uploads(images))
    car = service.submit(user.id, wizard)
    return car_out(car)


@router.get("/my-ads", response_model=list[CarOut])
def my_ads(
    status: Optional[CarStatus] = Query(default=None),
    user: Profile = Depends(require_user),
    client: BackendClient = Depends(get_backend_client),
):
    cars = ListingService(client).list_own(user.id, status.value if status else None)
    return [car_out(car) for car in cars]


@router.post("/my-ads/{car_id}/sold", response_model=CarOut)
def mark_sold(
    car_id: int,
    user: Profile = Depends(require_user),
    client: BackendClient = Depends(get_backend_client),
):
    return car_out(ListingService(client).mark_sold(user.id, car_id))


@router.delete("/my-ads/{car_id}")
def delete_listing(
    car_id: int,
    user: Profile = Depends(require_user),
    client: BackendClient = Depends(get_backend_client),
):
    ListingService(client).delete(user.id, car_id)
    return {"ok": True}
