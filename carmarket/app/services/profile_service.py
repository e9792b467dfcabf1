from __future__ import annotations

import logging
from typing import Optional

from ..backend_client import BackendClient
from ..errors import NotFoundError, WizardValidationError
from ..models import Profile
from ..models.base import utcnow
from ..utils.credentials import PHONE_RE

logger = logging.getLogger(__name__)


class ProfileService:
    def __init__(self, client: BackendClient) -> None:
        self.client = client
        self.db = client.db

    def get(self, user_id: str) -> Profile:
        profile = self.db.get(Profile, user_id)
        if profile is None:
            raise NotFoundError("Profile not found")
        return profile

    def update(
        self,
        access_token: str,
        user_id: str,
        *,
        full_name: Optional[str] = None,
        phone_number: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Profile:
        """Update the profile and push the same values into the auth record.

        Auth metadata is the source the next reconciliation reads from, so it
        has to carry the edited values too.
        """
        profile = self.get(user_id)
        if phone_number and not PHONE_RE.match(phone_number.strip()):
            raise WizardValidationError("Please enter a valid phone number", fields=["phone_number"])

        metadata = {}
        if full_name is not None:
            metadata["full_name"] = full_name.strip() or None
        if phone_number is not None:
            metadata["phone_number"] = phone_number.strip() or None
        new_email = email.strip().lower() if email else None

        # auth first: a taken email must not leave the profile half-updated
        if metadata or (new_email and new_email != self._auth_email(access_token)):
            self.client.auth.update_user(access_token, email=new_email, metadata=metadata or None)

        profile = self.get(user_id)
        for name, value in metadata.items():
            setattr(profile, name, value)
        if new_email:
            profile.email = new_email
        profile.updated_at = utcnow()
        self.db.commit()
        logger.info("profile_updated user=%s", user_id)
        return self.get(user_id)

    def _auth_email(self, access_token: str) -> Optional[str]:
        session = self.client.auth.get_session(access_token)
        return session.user.email if session else None
