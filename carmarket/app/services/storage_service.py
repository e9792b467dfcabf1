"""Path-addressed object storage kept on the local filesystem.

Objects live under ``<root>/<bucket>/<path>`` and are served publicly under
``<public_path>/<bucket>/<path>``.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path, PurePosixPath
from typing import Iterable

from ..errors import StorageError

logger = logging.getLogger(__name__)

CAR_IMAGES_BUCKET = "car-images"


def build_car_image_path(user_id: str, car_id: int, extension: str) -> str:
    ext = (extension or "jpg").lstrip(".").lower()
    return f"{user_id}/{car_id}/{uuid.uuid4().hex}.{ext}"


class ObjectStorage:
    def __init__(self, root: Path | str, public_path: str = "/storage") -> None:
        self.root = Path(root)
        self.public_path = "/" + public_path.strip("/")

    def _resolve(self, bucket: str, path: str) -> Path:
        rel = PurePosixPath(path)
        if rel.is_absolute() or ".." in rel.parts or not rel.parts:
            raise StorageError(f"Invalid object path: {path}")
        return self.root / bucket / Path(*rel.parts)

    def upload(self, bucket: str, path: str, data: bytes, *, upsert: bool = False) -> str:
        target = self._resolve(bucket, path)
        if target.exists() and not upsert:
            raise StorageError(f"Object already exists: {bucket}/{path}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            logger.exception("storage_upload_failed bucket=%s path=%s", bucket, path)
            raise StorageError(f"Upload failed for {bucket}/{path}") from exc
        logger.info("storage_upload_ok bucket=%s path=%s bytes=%s", bucket, path, len(data))
        return path

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_path}/{bucket}/{path}"

    def exists(self, bucket: str, path: str) -> bool:
        return self._resolve(bucket, path).exists()

    def remove(self, bucket: str, paths: Iterable[str]) -> list[str]:
        removed: list[str] = []
        for path in paths:
            target = self._resolve(bucket, path)
            try:
                target.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.exception("storage_remove_failed bucket=%s path=%s", bucket, path)
                raise StorageError(f"Remove failed for {bucket}/{path}") from exc
            removed.append(path)
        return removed
