"""Current-user state for one request, kept in sync with the identity provider.

``start()`` fetches the session once and subscribes to auth-state changes; each
change (sign-in, sign-out, refresh, user update) goes through the same handler,
which stores the user and reconciles the profile row.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..backend_client import BackendClient
from ..config import settings
from ..models import AuthSession, AuthUser, Profile, UserRole
from ..models.base import utcnow
from .identity_provider import SIGNED_OUT, Subscription

logger = logging.getLogger(__name__)


def reconcile_profile(client: BackendClient, user: AuthUser) -> Profile | None:
    """Create the profile row if absent, otherwise sync it from auth metadata.

    Role is only set on creation. Failures are logged and swallowed so that a
    sign-in never fails because of profile sync.
    """
    db = client.db
    metadata = user.user_metadata or {}
    try:
        with db.begin_nested():
            profile = db.get(Profile, user.id)
            if profile is None:
                profile = Profile(
                    id=user.id,
                    email=user.email,
                    full_name=metadata.get("full_name") or (user.email or "").split("@")[0] or None,
                    phone_number=metadata.get("phone_number") or None,
                    role=UserRole.NORMAL_USER.value,
                )
                db.add(profile)
                logger.info("profile_created user=%s", user.id)
            else:
                profile.email = user.email
                profile.full_name = metadata.get("full_name") or profile.full_name
                profile.phone_number = metadata.get("phone_number") or profile.phone_number
                profile.updated_at = utcnow()
        db.commit()
        return profile
    except SQLAlchemyError:
        logger.exception("profile_reconcile_failed user=%s", user.id)
        db.rollback()
        return None


class SessionContext:
    def __init__(self, client: BackendClient, access_token: str | None = None) -> None:
        self.client = client
        self.access_token = access_token
        self.session: AuthSession | None = None
        self.user: AuthUser | None = None
        self.profile: Profile | None = None
        self.is_loading = True
        self._subscription: Subscription | None = None

    def start(self) -> "SessionContext":
        try:
            session = self.client.auth.get_session(self.access_token)
            if session is not None:
                self._apply(session)
                if self._needs_refresh(session):
                    # the refresh event re-enters _on_change
                    self._subscribe()
                    self.client.auth.refresh_session(session.access_token)
            else:
                self._clear()
        finally:
            self.is_loading = False
        self._subscribe()
        return self

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def __enter__(self) -> "SessionContext":
        return self.start()

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _subscribe(self) -> None:
        if self._subscription is None:
            self._subscription = self.client.auth.on_auth_state_change(self._on_change)

    def _needs_refresh(self, session: AuthSession) -> bool:
        margin = timedelta(seconds=settings.AUTH_REFRESH_MARGIN_SECONDS)
        return session.expires_at - utcnow() <= margin

    def _on_change(self, event: str, session: Optional[AuthSession]) -> None:
        if event == SIGNED_OUT or session is None:
            self._clear()
        else:
            self._apply(session)
        self.is_loading = False

    def _apply(self, session: AuthSession) -> None:
        self.session = session
        self.access_token = session.access_token
        self.user = session.user
        self.profile = reconcile_profile(self.client, session.user)

    def _clear(self) -> None:
        self.session = None
        self.access_token = None
        self.user = None
        self.profile = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def is_admin(self) -> bool:
        return self.profile is not None and self.profile.is_admin

    def sign_in(self, email: str, password: str) -> AuthSession:
        self.is_loading = True
        try:
            return self.client.auth.sign_in_with_password(email, password)
        finally:
            self.is_loading = False

    def sign_up(self, email: str, password: str, full_name: str, phone_number: str | None = None) -> AuthSession:
        self.is_loading = True
        try:
            metadata = {"full_name": full_name}
            if phone_number:
                metadata["phone_number"] = phone_number
            return self.client.auth.sign_up(email, password, metadata)
        finally:
            self.is_loading = False

    def sign_out(self) -> None:
        self.is_loading = True
        try:
            self.client.auth.sign_out(self.access_token)
        finally:
            self.is_loading = False
