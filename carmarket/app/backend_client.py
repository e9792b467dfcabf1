from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends
from sqlalchemy.orm import Session

from .config import settings
from .db import get_db
from .services.identity_provider import IdentityProvider
from .services.storage_service import ObjectStorage


@dataclass
class BackendClient:
    """Handle on the data store, the identity provider and object storage."""

    db: Session
    auth: IdentityProvider
    storage: ObjectStorage

    @classmethod
    def create(cls, db: Session, storage: ObjectStorage | None = None) -> "BackendClient":
        return cls(
            db=db,
            auth=IdentityProvider(db),
            storage=storage or default_storage(),
        )


def default_storage() -> ObjectStorage:
    return ObjectStorage(settings.storage_root, settings.STORAGE_PUBLIC_PATH)


def get_backend_client(db: Session = Depends(get_db)) -> BackendClient:
    return BackendClient.create(db)
