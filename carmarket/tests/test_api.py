import pytest
from fastapi.testclient import TestClient

from carmarket.app.backend_client import BackendClient, get_backend_client
from carmarket.app.config import Settings
from carmarket.app.db import get_db
from carmarket.app.main import create_app
from carmarket.app.models import Profile


@pytest.fixture
def app(db, storage, tmp_path):
    settings = Settings(
        BACKEND_URL="sqlite://",
        BACKEND_KEY="test-key",
        STORAGE_DIR=str(storage.root),
    )
    application = create_app(settings)

    def override_db():
        yield db

    application.dependency_overrides[get_db] = override_db
    application.dependency_overrides[get_backend_client] = lambda: BackendClient.create(db, storage=storage)
    return application


@pytest.fixture
def http(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def other_http(app):
    with TestClient(app) as c:
        yield c


def _signup(http, email="seller@example.com", full_name="Sam Seller"):
    resp = http.post(
        "/api/auth/signup",
        json={"email": email, "password": "Secret123!", "full_name": full_name, "phone_number": "+97455512345"},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


def _listing_form(catalog):
    return {
        "brand_id": str(catalog["toyota"].id),
        "model_id": str(catalog["camry"].id),
        "year": "2020",
        "price": "85,000",
        "mileage": "50000",
        "fuel_type": "Petrol",
        "gearbox_type": "Automatic",
        "body_type": "Sedan",
        "condition": "Good",
    }


def _files(image_factory, count):
    return [("images", (f"p{i}.png", image_factory(color=(i * 30, 0, 0)), "image/png")) for i in range(count)]


def test_diagnostic_app_when_unconfigured():
    app = create_app(Settings(BACKEND_URL=None, BACKEND_KEY=None))
    with TestClient(app) as c:
        page = c.get("/")
        assert page.status_code == 503
        assert "Configuration Error" in page.text
        assert "BACKEND_URL" in page.text

        api = c.get("/api/cars")
        assert api.status_code == 503
        assert api.json()["code"] == "CONFIGURATION_ERROR"
        assert api.json()["missing"] == ["BACKEND_URL", "BACKEND_KEY"]


def test_health_and_connection_test(http):
    assert http.get("/health").json() == {"status": "ok"}
    resp = http.get("/test-connection")
    assert resp.status_code == 200
    assert "Connection OK" in resp.text
    assert "0 profiles" in resp.text


def test_read_routes_go_through_backend_client(db, storage, catalog):
    application = create_app(Settings(BACKEND_URL="sqlite://", BACKEND_KEY="test-key", STORAGE_DIR=str(storage.root)))
    seen = []

    def client_override():
        seen.append(1)
        return BackendClient.create(db, storage=storage)

    def no_raw_sessions():
        raise AssertionError("routes must use the backend client")
        yield

    application.dependency_overrides[get_db] = no_raw_sessions
    application.dependency_overrides[get_backend_client] = client_override
    with TestClient(application) as c:
        assert c.get("/api/cars").json()["total"] == 0
        assert [b["name"] for b in c.get("/api/brands").json()] == ["Honda", "Toyota"]
        assert len(c.get(f"/api/brands/{catalog['toyota'].id}/models").json()) == 2
        assert c.get("/api/cars/999").status_code == 404
        assert c.get("/api/favorites").json() == {"ids": [], "items": []}
        assert "Connection OK" in c.get("/test-connection").text
    assert len(seen) == 6


def test_signup_session_and_logout(http):
    body = _signup(http)
    assert body["authenticated"] is True
    assert body["profile"]["role"] == "normal_user"
    assert body["profile"]["full_name"] == "Sam Seller"

    assert http.get("/api/auth/session").json()["authenticated"] is True
    assert http.get("/api/profile").json()["email"] == "seller@example.com"

    assert http.post("/api/auth/logout").json()["authenticated"] is False
    assert http.get("/api/auth/session").json()["authenticated"] is False
    assert http.get("/api/profile").status_code == 401


def test_signup_and_login_errors(http):
    resp = http.post(
        "/api/auth/signup",
        json={"email": "x@example.com", "password": "short", "full_name": "X", "phone_number": "+97455512345"},
    )
    assert resp.status_code == 422
    assert resp.json()["fields"] == ["password"]

    _signup(http, email="x@example.com")
    http.post("/api/auth/logout")
    resp = http.post("/api/auth/login", json={"email": "x@example.com", "password": "wrong"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid login credentials"
    resp = http.post("/api/auth/login", json={"email": "X@example.com", "password": "Secret123!"})
    assert resp.json()["authenticated"] is True


def test_password_strength_endpoint(http):
    body = http.post("/api/auth/password-strength", json={"password": "Abcdef1!"}).json()
    assert body["label"] == "Strong"
    assert all(req["met"] for req in body["requirements"])


def test_step_validation_endpoint(http, catalog):
    resp = http.post("/api/listings/steps/1/validate", json={"form": {"brand_id": str(catalog["toyota"].id)}})
    body = resp.json()
    assert body["valid"] is False
    assert body["next_step"] == 1
    assert set(body["missing"]) == {"model_id", "year", "price"}

    resp = http.post("/api/listings/steps/3/validate", json={"existing_images": 2, "pending_deletion": 2})
    assert resp.json()["valid"] is False
    resp = http.post("/api/listings/steps/3/validate", json={"new_images": 10})
    assert resp.json() == {"step": 3, "valid": True, "missing": [], "next_step": 4}
    resp = http.post("/api/listings/steps/3/validate", json={"new_images": 11})
    assert resp.json()["valid"] is False
    assert http.post("/api/listings/steps/9/validate", json={}).status_code == 422


def test_listing_lifecycle_over_http(http, other_http, db, catalog, image_factory):
    assert http.post("/api/listings", data=_listing_form(catalog), files=_files(image_factory, 1)).status_code == 401

    seller = _signup(http)["profile"]
    resp = http.post("/api/listings", data=_listing_form(catalog), files=_files(image_factory, 3))
    assert resp.status_code == 201, resp.text
    car = resp.json()
    assert car["status"] == "Pending"
    assert car["price"] == 85000
    assert len(car["images"]) == 3
    assert car["images"][0]["is_primary"] is True
    assert http.get(car["images"][0]["url"]).status_code == 200

    # pending listings are not browsable
    assert http.get("/api/cars").json()["total"] == 0
    assert [c["id"] for c in http.get("/api/my-ads").json()] == [car["id"]]

    admin = _signup(other_http, email="admin@example.com", full_name="Ada Admin")["profile"]
    assert other_http.get("/api/admin/listings").status_code == 403
    assert other_http.get("/api/admin/listings").json()["redirect_to"] == "/"
    db.get(Profile, admin["id"]).role = "admin"
    db.commit()

    pending = other_http.get("/api/admin/listings").json()
    assert [c["id"] for c in pending] == [car["id"]]
    assert pending[0]["owner"]["id"] == seller["id"]
    resp = other_http.post(f"/api/admin/listings/{car['id']}/status", json={"status": "Approved"})
    assert resp.status_code == 200, resp.text
    assert other_http.get("/api/admin/listings").json() == []
    again = other_http.post(f"/api/admin/listings/{car['id']}/status", json={"status": "Approved"})
    assert again.status_code == 409

    listed = http.get("/api/cars", params={"brand_id": catalog["toyota"].id, "max_price": 90000}).json()
    assert [c["id"] for c in listed["items"]] == [car["id"]]
    assert http.get("/api/cars", params={"fuel_type": "Diesel"}).json()["total"] == 0

    # favorites from a buyer's point of view
    toggled = other_http.post(f"/api/favorites/{car['id']}/toggle").json()
    assert toggled["is_favorite"] is True
    assert other_http.get("/api/cars").json()["items"][0]["is_favorite"] is True
    assert other_http.get(f"/api/cars/{car['id']}").json()["is_favorite"] is True
    assert other_http.post(f"/api/favorites/{car['id']}/toggle").json()["is_favorite"] is False
    assert other_http.get("/api/favorites").json()["ids"] == []

    detail = http.get(f"/api/cars/{car['id']}").json()
    assert detail["owner"]["full_name"] == "Sam Seller"
    assert detail["similar"] == []

    # owner-only edit, back to Pending
    assert other_http.get(f"/api/listings/{car['id']}/edit").status_code == 403
    state = http.get(f"/api/listings/{car['id']}/edit").json()
    assert state["is_editing"] is True
    assert state["basic_info"]["price"] == "85,000"
    doomed = state["images"]["existing"][0]["id"]
    form = dict(_listing_form(catalog), price="80000", delete_image_ids=str(doomed))
    resp = http.put(f"/api/listings/{car['id']}", data=form, files=_files(image_factory, 1))
    assert resp.status_code == 200, resp.text
    edited = resp.json()
    assert edited["status"] == "Pending"
    assert edited["price"] == 80000
    assert doomed not in [img["id"] for img in edited["images"]]
    assert len(edited["images"]) == 3

    resp = http.delete(f"/api/my-ads/{car['id']}")
    assert resp.json() == {"ok": True}
    assert http.get(f"/api/cars/{car['id']}").status_code == 404


def test_partial_edit_keeps_unsent_fields(http, catalog, image_factory):
    _signup(http)
    form = dict(_listing_form(catalog), color="White", cylinders="4", description="One owner, full service history")
    car = http.post("/api/listings", data=form, files=_files(image_factory, 1)).json()

    resp = http.put(f"/api/listings/{car['id']}", data={"price": "79,500"})
    assert resp.status_code == 200, resp.text
    edited = resp.json()
    assert edited["price"] == 79500
    assert edited["condition"] == "Good"
    assert edited["color"] == "White"
    assert edited["cylinders"] == 4
    assert edited["mileage"] == 50000
    assert edited["description"] == "One owner, full service history"
    assert len(edited["images"]) == 1


def test_oversized_price_rejected_over_http(http, catalog, image_factory):
    _signup(http)
    form = dict(_listing_form(catalog), price="99999999999999999999")
    resp = http.post("/api/listings", data=form, files=_files(image_factory, 1))
    assert resp.status_code == 422
    assert resp.json()["fields"] == ["price"]
    assert http.get("/api/my-ads").json() == []


def test_admin_users_and_analytics(http, db):
    admin = _signup(http, email="root@example.com", full_name="Root")["profile"]
    db.get(Profile, admin["id"]).role = "admin"
    db.commit()

    users = http.get("/api/admin/users").json()
    assert users[0]["total_ads"] == 0
    stats = http.get("/api/admin/analytics").json()
    assert stats["total_users"] == 1
    assert stats["recent_activity"][0]["action"] == "New User Joined"

    resp = http.post(f"/api/admin/users/{admin['id']}/role", json={"role": "normal_user"})
    assert resp.json()["role"] == "normal_user"
    assert http.get("/api/admin/analytics").status_code == 403


def test_profile_update_over_http(http):
    _signup(http, email="pp@example.com", full_name="P P")
    resp = http.put("/api/profile", json={"full_name": "Pia Park"})
    assert resp.status_code == 200, resp.text
    assert resp.json()["full_name"] == "Pia Park"
    assert http.get("/api/auth/session").json()["profile"]["full_name"] == "Pia Park"
