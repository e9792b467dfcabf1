from datetime import timedelta

from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from carmarket.app.config import settings
from carmarket.app.models import Profile
from carmarket.app.models.base import utcnow
from carmarket.app.services.session_context import SessionContext, reconcile_profile


def _profile_count(db):
    return db.execute(select(func.count()).select_from(Profile)).scalar_one()


def test_first_sign_in_creates_one_normal_user_profile(client):
    ctx = SessionContext(client).start()
    assert not ctx.is_authenticated
    assert not ctx.is_loading

    ctx.sign_up("new@example.com", "Secret123!", "Nora New", "+97455511111")
    assert ctx.is_authenticated
    assert ctx.profile.role == "normal_user"
    assert ctx.profile.full_name == "Nora New"
    assert ctx.profile.phone_number == "+97455511111"
    assert _profile_count(client.db) == 1

    ctx.sign_out()
    ctx.sign_in("new@example.com", "Secret123!")
    assert _profile_count(client.db) == 1
    ctx.close()


def test_full_name_defaults_to_email_local_part(client):
    session = client.auth.sign_up("plain.user@example.com", "Secret123!")
    profile = reconcile_profile(client, session.user)
    assert profile.full_name == "plain.user"
    assert profile.phone_number is None


def test_metadata_change_updates_name_and_keeps_role(client):
    session = client.auth.sign_up("m@example.com", "Secret123!", {"full_name": "Old Name"})
    profile = reconcile_profile(client, session.user)
    profile.role = "admin"
    client.db.commit()

    ctx = SessionContext(client, access_token=session.access_token).start()
    assert ctx.is_admin
    client.auth.update_user(session.access_token, metadata={"full_name": "New Name"})
    assert ctx.profile.full_name == "New Name"
    assert ctx.profile.role == "admin"
    ctx.close()


def test_sign_out_clears_user(client):
    session = client.auth.sign_up("o@example.com", "Secret123!")
    with SessionContext(client, access_token=session.access_token) as ctx:
        assert ctx.is_authenticated
        ctx.sign_out()
        assert ctx.user is None
        assert ctx.profile is None
        assert ctx.access_token is None


def test_close_stops_listening(client):
    session = client.auth.sign_up("p@example.com", "Secret123!")
    ctx = SessionContext(client, access_token=session.access_token).start()
    ctx.close()
    client.auth.sign_out(session.access_token)
    # no longer subscribed, so the state is stale but untouched
    assert ctx.user is not None


def test_session_near_expiry_is_refreshed(client, monkeypatch):
    monkeypatch.setattr(settings, "AUTH_REFRESH_MARGIN_SECONDS", 3600)
    session = client.auth.sign_up("q@example.com", "Secret123!")
    session.expires_at = utcnow() + timedelta(seconds=60)
    client.db.commit()

    ctx = SessionContext(client, access_token=session.access_token).start()
    assert ctx.is_authenticated
    assert ctx.session.expires_at > utcnow() + timedelta(hours=1)
    ctx.close()


def test_reconcile_failure_is_swallowed(client, monkeypatch):
    session = client.auth.sign_up("r@example.com", "Secret123!")

    def broken_commit():
        raise OperationalError("INSERT", {}, Exception("db down"))

    monkeypatch.setattr(client.db, "commit", broken_commit)
    assert reconcile_profile(client, session.user) is None
