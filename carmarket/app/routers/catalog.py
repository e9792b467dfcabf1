import logging
import time
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from ..auth import get_current_user
from ..backend_client import BackendClient, get_backend_client
from ..models import Profile
from ..schemas import BrandOut, CarDetailOut, ModelOut, OwnerOut, car_out
from ..services.cars_service import CarsService, ListingFilters
from ..services.favorites_service import FavoritesService

router = APIRouter()
logger = logging.getLogger(__name__)


def _favorite_ids(client: BackendClient, user: Optional[Profile]) -> set[int]:
    if user is None:
        return set()
    return set(FavoritesService(client.db).list_ids(user.id))


@router.get("/cars")
def list_cars(
    request: Request,
    brand_id: Optional[int] = Query(default=None),
    min_price: Optional[int] = Query(default=None, ge=0),
    max_price: Optional[int] = Query(default=None, ge=0),
    min_year: Optional[int] = Query(default=None),
    max_year: Optional[int] = Query(default=None),
    condition: Optional[str] = Query(default=None),
    fuel_type: Optional[str] = Query(default=None),
    body_type: Optional[str] = Query(default=None),
    gearbox_type: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    user: Optional[Profile] = Depends(get_current_user),
    client: BackendClient = Depends(get_backend_client),
):
    t0 = time.perf_counter()
    filters = ListingFilters(
        brand_id=brand_id,
        min_price=min_price,
        max_price=max_price,
        min_year=min_year,
        max_year=max_year,
        condition=condition or None,
        fuel_type=fuel_type or None,
        body_type=body_type or None,
        gearbox_type=gearbox_type or None,
        search=search,
    )
    cars = CarsService(client.db).browse(filters)
    t_list = time.perf_counter()
    favorites = _favorite_ids(client, user)
    items = [car_out(car, favorites) for car in cars]
    request.state.api_parts = {
        "list": t_list - t0,
        "serialize": time.perf_counter() - t_list,
        "items": len(items),
    }
    return {"items": items, "total": len(items), "filters": filters.active()}


@router.get("/cars/{car_id}", response_model=CarDetailOut)
def car_detail(
    car_id: int,
    user: Optional[Profile] = Depends(get_current_user),
    client: BackendClient = Depends(get_backend_client),
):
    service = CarsService(client.db)
    car = service.get_car(car_id)
    favorites = _favorite_ids(client, user)
    detail = CarDetailOut.model_validate(car)
    detail.is_favorite = car.id in favorites
    detail.owner = OwnerOut.model_validate(car.owner) if car.owner is not None else None
    detail.similar = [car_out(other, favorites) for other in service.similar(car)]
    return detail


@router.get("/brands", response_model=list[BrandOut])
def list_brands(client: BackendClient = Depends(get_backend_client)):
    return CarsService(client.db).brands()


@router.get("/brands/{brand_id}/models", response_model=list[ModelOut])
def list_models(brand_id: int, client: BackendClient = Depends(get_backend_client)):
    service = CarsService(client.db)
    service.get_brand(brand_id)
    return service.models_for_brand(brand_id)
