from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..auth import require_admin
from ..backend_client import BackendClient, get_backend_client
from ..models import Profile
from ..models.enums import CarStatus
from ..schemas import (
    AdminCarEditIn,
    AnalyticsOut,
    CarAdminOut,
    ProfileOut,
    RoleChangeIn,
    StatusChangeIn,
    UserWithStatsOut,
)
from ..services.admin_service import AdminService


router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/analytics", response_model=AnalyticsOut)
def analytics(
    admin: Profile = Depends(require_admin),
    client: BackendClient = Depends(get_backend_client),
):
    return AdminService(client).analytics()


@router.get("/listings", response_model=list[CarAdminOut])
def listings(
    status: Optional[CarStatus] = Query(default=CarStatus.PENDING),
    admin: Profile = Depends(require_admin),
    client: BackendClient = Depends(get_backend_client),
):
    return AdminService(client).list_by_status(status.value if status else None)


@router.post("/listings/{car_id}/status", response_model=CarAdminOut)
def change_status(
    car_id: int,
    payload: StatusChangeIn,
    admin: Profile = Depends(require_admin),
    client: BackendClient = Depends(get_backend_client),
):
    return AdminService(client).change_status(admin, car_id, payload.status.value)


@router.put("/listings/{car_id}", response_model=CarAdminOut)
def edit_listing(
    car_id: int,
    payload: AdminCarEditIn,
    admin: Profile = Depends(require_admin),
    client: BackendClient = Depends(get_backend_client),
):
    return AdminService(client).edit_car(
        admin,
        car_id,
        price=payload.price,
        mileage=payload.mileage,
        description=payload.description,
        status=payload.status.value if payload.status else None,
    )


@router.delete("/listings/{car_id}")
def delete_listing(
    car_id: int,
    admin: Profile = Depends(require_admin),
    client: BackendClient = Depends(get_backend_client),
):
    AdminService(client).delete_car(admin, car_id)
    return {"ok": True}


@router.get("/users", response_model=list[UserWithStatsOut])
def users(
    admin: Profile = Depends(require_admin),
    client: BackendClient = Depends(get_backend_client),
):
    return [
        UserWithStatsOut(**ProfileOut.model_validate(row["profile"]).model_dump(), total_ads=row["total_ads"])
        for row in AdminService(client).list_users()
    ]


@router.post("/users/{user_id}/role", response_model=ProfileOut)
def change_role(
    user_id: str,
    payload: RoleChangeIn,
    admin: Profile = Depends(require_admin),
    client: BackendClient = Depends(get_backend_client),
):
    return AdminService(client).change_role(admin, user_id, payload.role.value)
