"""Identity provider: credential sign-up/sign-in, sessions and auth-state events.

Listeners registered with ``on_auth_state_change`` are called synchronously with
``(event, session)`` after every state change; ``session`` is ``None`` for
``SIGNED_OUT``.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import os
import secrets
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..config import settings
from ..errors import AuthenticationError
from ..models import AuthSession, AuthUser
from ..models.base import utcnow

logger = logging.getLogger(__name__)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
TOKEN_REFRESHED = "TOKEN_REFRESHED"
USER_UPDATED = "USER_UPDATED"

AuthListener = Callable[[str, Optional[AuthSession]], None]


@dataclass
class Subscription:
    provider: "IdentityProvider"
    callback: AuthListener

    def unsubscribe(self) -> None:
        self.provider._remove_listener(self.callback)


class IdentityProvider:
    def __init__(self, db: Session, *, session_ttl_seconds: int | None = None) -> None:
        self.db = db
        self.session_ttl = timedelta(seconds=session_ttl_seconds or settings.AUTH_SESSION_TTL_SECONDS)
        self._listeners: list[AuthListener] = []

    # password hashing

    def _hash(self, password: str, salt: bytes | None = None, iterations: int = 390000) -> str:
        if salt is None:
            salt = os.urandom(16)
        derived = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
        return f"pbkdf2_sha256${iterations}${salt.hex()}${derived.hex()}"

    def verify_password(self, stored: str, password: str) -> bool:
        try:
            _, iter_str, salt_hex, _ = stored.split("$", 3)
            iterations = int(iter_str)
            salt = bytes.fromhex(salt_hex)
        except ValueError:
            return False
        candidate = self._hash(password, salt=salt, iterations=iterations)
        return hmac.compare_digest(candidate, stored)

    # subscriptions

    def on_auth_state_change(self, callback: AuthListener) -> Subscription:
        self._listeners.append(callback)
        return Subscription(self, callback)

    def _remove_listener(self, callback: AuthListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _emit(self, event: str, session: AuthSession | None) -> None:
        logger.info("auth_event event=%s user=%s", event, session.user_id if session else None)
        for listener in list(self._listeners):
            listener(event, session)

    # sessions

    def _open_session(self, user: AuthUser) -> AuthSession:
        now = utcnow()
        session = AuthSession(
            access_token=secrets.token_urlsafe(32),
            user_id=user.id,
            created_at=now,
            expires_at=now + self.session_ttl,
        )
        session.user = user
        user.last_sign_in_at = now
        self.db.add(session)
        self.db.commit()
        return session

    def get_session(self, access_token: str | None) -> AuthSession | None:
        if not access_token:
            return None
        session = self.db.get(AuthSession, access_token)
        if session is None:
            return None
        if session.expires_at <= utcnow():
            self.db.delete(session)
            self.db.commit()
            return None
        return session

    def refresh_session(self, access_token: str) -> AuthSession:
        session = self.get_session(access_token)
        if session is None:
            raise AuthenticationError("Session expired")
        session.expires_at = utcnow() + self.session_ttl
        self.db.commit()
        self._emit(TOKEN_REFRESHED, session)
        return session

    # credentials

    def sign_up(self, email: str, password: str, metadata: dict[str, Any] | None = None) -> AuthSession:
        email_norm = email.strip().lower()
        existing = self.db.execute(select(AuthUser).where(AuthUser.email == email_norm)).scalar_one_or_none()
        if existing:
            raise AuthenticationError("User already registered")
        user = AuthUser(
            id=str(uuid.uuid4()),
            email=email_norm,
            password_hash=self._hash(password),
            user_metadata=dict(metadata or {}),
        )
        self.db.add(user)
        self.db.flush()
        session = self._open_session(user)
        self._emit(SIGNED_IN, session)
        return session

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        email_norm = email.strip().lower()
        user = self.db.execute(select(AuthUser).where(AuthUser.email == email_norm)).scalar_one_or_none()
        if not user or not self.verify_password(user.password_hash, password):
            raise AuthenticationError("Invalid login credentials")
        session = self._open_session(user)
        self._emit(SIGNED_IN, session)
        return session

    def sign_out(self, access_token: str | None) -> None:
        if access_token:
            self.db.execute(delete(AuthSession).where(AuthSession.access_token == access_token))
            self.db.commit()
        self._emit(SIGNED_OUT, None)

    def update_user(
        self,
        access_token: str,
        *,
        email: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> AuthUser:
        session = self.get_session(access_token)
        if session is None:
            raise AuthenticationError("Auth session missing")
        user = session.user
        if email and email.strip().lower() != user.email:
            email_norm = email.strip().lower()
            taken = self.db.execute(
                select(AuthUser).where(AuthUser.email == email_norm, AuthUser.id != user.id)
            ).scalar_one_or_none()
            if taken:
                raise AuthenticationError("Email address already registered")
            user.email = email_norm
        if metadata:
            merged = dict(user.user_metadata or {})
            merged.update(metadata)
            # reassign so the JSON column is flagged dirty
            user.user_metadata = merged
        self.db.commit()
        self._emit(USER_UPDATED, session)
        return user
