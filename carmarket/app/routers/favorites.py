from fastapi import APIRouter, Depends

from ..auth import require_user, get_current_user
from ..backend_client import BackendClient, get_backend_client
from ..models import Profile
from ..schemas import car_out
from ..services.favorites_service import FavoriteSet, FavoritesService

router = APIRouter(prefix="/api/favorites", tags=["favorites"])


@router.get("")
def get_favorites(
    user: Profile | None = Depends(get_current_user),
    client: BackendClient = Depends(get_backend_client),
):
    if not user:
        return {"ids": [], "items": []}
    service = FavoritesService(client.db)
    ids = service.list_ids(user.id)
    return {"ids": ids, "items": [car_out(car, set(ids)) for car in service.list_cars(user.id)]}


@router.post("/{car_id}")
def add_favorite(
    car_id: int,
    user: Profile = Depends(require_user),
    client: BackendClient = Depends(get_backend_client),
):
    FavoritesService(client.db).add(user.id, car_id)
    return {"ok": True, "is_favorite": True}


@router.delete("/{car_id}")
def remove_favorite(
    car_id: int,
    user: Profile = Depends(require_user),
    client: BackendClient = Depends(get_backend_client),
):
    FavoritesService(client.db).remove(user.id, car_id)
    return {"ok": True, "is_favorite": False}


@router.post("/{car_id}/toggle")
def toggle_favorite(
    car_id: int,
    user: Profile = Depends(require_user),
    client: BackendClient = Depends(get_backend_client),
):
    favorites = FavoriteSet.load(FavoritesService(client.db), user.id)
    is_favorite = favorites.toggle(car_id)
    return {"ok": True, "is_favorite": is_favorite, "ids": sorted(favorites.ids)}
