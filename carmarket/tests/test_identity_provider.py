from datetime import timedelta

import pytest

from carmarket.app.errors import AuthenticationError
from carmarket.app.models import AuthSession
from carmarket.app.models.base import utcnow
from carmarket.app.services.identity_provider import (
    SIGNED_IN,
    SIGNED_OUT,
    TOKEN_REFRESHED,
    USER_UPDATED,
    IdentityProvider,
)


def test_sign_up_and_sign_in_emit_signed_in(db):
    auth = IdentityProvider(db)
    events = []
    auth.on_auth_state_change(lambda event, session: events.append((event, session)))

    session = auth.sign_up("Seller@Example.com", "Secret123!", {"full_name": "Sam Seller"})
    assert session.user.email == "seller@example.com"
    assert session.user.user_metadata == {"full_name": "Sam Seller"}
    assert events[-1][0] == SIGNED_IN

    again = auth.sign_in_with_password("seller@example.com", "Secret123!")
    assert again.access_token != session.access_token
    assert [e for e, _ in events] == [SIGNED_IN, SIGNED_IN]


def test_duplicate_sign_up_and_bad_password(db):
    auth = IdentityProvider(db)
    auth.sign_up("a@example.com", "Secret123!")
    with pytest.raises(AuthenticationError, match="User already registered"):
        auth.sign_up("A@example.com", "Other123!")
    with pytest.raises(AuthenticationError, match="Invalid login credentials"):
        auth.sign_in_with_password("a@example.com", "wrong-password")
    with pytest.raises(AuthenticationError, match="Invalid login credentials"):
        auth.sign_in_with_password("nobody@example.com", "Secret123!")


def test_password_hash_format(db):
    auth = IdentityProvider(db)
    stored = auth._hash("Secret123!")
    assert stored.startswith("pbkdf2_sha256$")
    assert auth.verify_password(stored, "Secret123!")
    assert not auth.verify_password(stored, "secret123!")
    assert not auth.verify_password("garbage", "Secret123!")


def test_expired_session_is_dropped(db):
    auth = IdentityProvider(db)
    session = auth.sign_up("b@example.com", "Secret123!")
    token = session.access_token
    session.expires_at = utcnow() - timedelta(seconds=1)
    db.commit()
    assert auth.get_session(token) is None
    assert db.get(AuthSession, token) is None


def test_refresh_extends_expiry(db):
    auth = IdentityProvider(db, session_ttl_seconds=60)
    session = auth.sign_up("c@example.com", "Secret123!")
    events = []
    auth.on_auth_state_change(lambda event, s: events.append(event))
    before = session.expires_at
    refreshed = auth.refresh_session(session.access_token)
    assert refreshed.access_token == session.access_token
    assert refreshed.expires_at >= before
    assert events == [TOKEN_REFRESHED]


def test_sign_out_and_unsubscribe(db):
    auth = IdentityProvider(db)
    events = []
    subscription = auth.on_auth_state_change(lambda event, s: events.append((event, s)))
    session = auth.sign_up("d@example.com", "Secret123!")
    auth.sign_out(session.access_token)
    assert events[-1] == (SIGNED_OUT, None)
    assert auth.get_session(session.access_token) is None

    subscription.unsubscribe()
    auth.sign_in_with_password("d@example.com", "Secret123!")
    assert len(events) == 2


def test_update_user_merges_metadata_and_checks_email(db):
    auth = IdentityProvider(db)
    auth.sign_up("taken@example.com", "Secret123!")
    session = auth.sign_up("e@example.com", "Secret123!", {"full_name": "Eve", "phone_number": "+97450000000"})
    events = []
    auth.on_auth_state_change(lambda event, s: events.append(event))

    user = auth.update_user(session.access_token, metadata={"full_name": "Eve Adams"})
    assert user.user_metadata == {"full_name": "Eve Adams", "phone_number": "+97450000000"}
    assert events == [USER_UPDATED]

    with pytest.raises(AuthenticationError):
        auth.update_user(session.access_token, email="taken@example.com")
    with pytest.raises(AuthenticationError):
        auth.update_user("no-such-token", metadata={"full_name": "x"})
