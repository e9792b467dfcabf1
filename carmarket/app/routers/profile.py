from fastapi import APIRouter, Depends

from ..auth import get_session_context, require_user
from ..backend_client import BackendClient, get_backend_client
from ..models import Profile
from ..schemas import ProfileOut, ProfileUpdate
from ..services.profile_service import ProfileService
from ..services.session_context import SessionContext


router = APIRouter(prefix="/api/profile", tags=["profile"])


@router.get("", response_model=ProfileOut)
def get_profile(user: Profile = Depends(require_user)):
    return user


@router.put("", response_model=ProfileOut)
def update_profile(
    payload: ProfileUpdate,
    user: Profile = Depends(require_user),
    ctx: SessionContext = Depends(get_session_context),
    client: BackendClient = Depends(get_backend_client),
):
    return ProfileService(client).update(
        ctx.access_token,
        user.id,
        full_name=payload.full_name,
        phone_number=payload.phone_number,
        email=payload.email,
    )
