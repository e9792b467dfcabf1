from __future__ import annotations

from typing import Iterator

from fastapi import Depends, Request

from .backend_client import BackendClient, get_backend_client
from .errors import AuthenticationError, AuthorizationError
from .models import Profile
from .services.session_context import SessionContext

SESSION_TOKEN_KEY = "access_token"


def get_session_context(
    request: Request, client: BackendClient = Depends(get_backend_client)
) -> Iterator[SessionContext]:
    ctx = SessionContext(client, access_token=request.session.get(SESSION_TOKEN_KEY))
    ctx.start()
    if request.session.get(SESSION_TOKEN_KEY) and not ctx.is_authenticated:
        # expired or revoked token
        request.session.pop(SESSION_TOKEN_KEY, None)
    try:
        yield ctx
    finally:
        ctx.close()


def get_current_user(request: Request, ctx: SessionContext = Depends(get_session_context)) -> Profile | None:
    request.state.user = ctx.profile
    return ctx.profile


def require_user(ctx: SessionContext = Depends(get_session_context)) -> Profile:
    if not ctx.is_authenticated or ctx.profile is None:
        raise AuthenticationError("Authentication required")
    return ctx.profile


def require_admin(user: Profile = Depends(require_user)) -> Profile:
    if not user.is_admin:
        raise AuthorizationError("Admin access required", redirect_to="/")
    return user
