import pytest

from carmarket.app.errors import StorageError
from carmarket.app.services.storage_service import CAR_IMAGES_BUCKET, build_car_image_path


def test_car_image_path_layout():
    path = build_car_image_path("user-1", 42, ".PNG")
    user, car, name = path.split("/")
    assert (user, car) == ("user-1", "42")
    assert name.endswith(".png")
    assert build_car_image_path("user-1", 42, "png") != path


def test_upload_public_url_and_remove(storage):
    path = "u/1/a.png"
    storage.upload(CAR_IMAGES_BUCKET, path, b"data")
    assert storage.exists(CAR_IMAGES_BUCKET, path)
    assert storage.get_public_url(CAR_IMAGES_BUCKET, path) == "/storage/car-images/u/1/a.png"
    assert storage.remove(CAR_IMAGES_BUCKET, [path, "u/1/missing.png"]) == [path]
    assert not storage.exists(CAR_IMAGES_BUCKET, path)


def test_upload_refuses_overwrite_without_upsert(storage):
    storage.upload(CAR_IMAGES_BUCKET, "x.png", b"one")
    with pytest.raises(StorageError):
        storage.upload(CAR_IMAGES_BUCKET, "x.png", b"two")
    storage.upload(CAR_IMAGES_BUCKET, "x.png", b"two", upsert=True)
    assert (storage.root / CAR_IMAGES_BUCKET / "x.png").read_bytes() == b"two"


@pytest.mark.parametrize("path", ["../escape.png", "/abs.png", ""])
def test_paths_outside_bucket_are_rejected(storage, path):
    with pytest.raises(StorageError):
        storage.upload(CAR_IMAGES_BUCKET, path, b"data")
