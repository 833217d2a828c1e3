"""Tests for the auth service: session tokens, password hashing, credentials.

Pure functions need no database:
  - create_session_token / decode_session_token
  - hash_password / verify_password
  - credentials_are_well_formed

authenticate_user and create_user run against the per-test SQLite database.
"""
import pytest
from datetime import datetime, timedelta, timezone

from jose import jwt

from app.core.config import Settings, settings
from app.core.roles import Role
from app.services.auth import (
    ALGORITHM,
    SessionIdentity,
    authenticate_user,
    create_session_token,
    create_user,
    credentials_are_well_formed,
    decode_session_token,
    get_user_by_email,
    hash_password,
    verify_password,
)


# === Session Token Tests ===

class TestSessionTokens:

    def test_create_and_decode_token(self):
        """Token decodes back to the same id and role."""
        token = create_session_token("user-42", Role.CLIENT)
        assert decode_session_token(token) == SessionIdentity(id="user-42", role=Role.CLIENT)

    def test_claims(self):
        token = create_session_token("user-1", Role.FREELANCER)
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
        assert payload["sub"] == "user-1"
        assert payload["role"] == "FREELANCER"
        assert "iat" in payload

    def test_default_expiry_is_thirty_days(self):
        token = create_session_token("user-1", Role.FREELANCER)
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
        assert payload["exp"] - payload["iat"] == 30 * 24 * 60 * 60

    def test_expired_token_returns_none(self):
        token = create_session_token("user-1", Role.FREELANCER, expires_delta=timedelta(seconds=-10))
        assert decode_session_token(token) is None

    def test_invalid_token_returns_none(self):
        assert decode_session_token("not.a.real.token") is None

    def test_empty_token_returns_none(self):
        assert decode_session_token("") is None
        assert decode_session_token(None) is None

    def test_wrong_signature_returns_none(self):
        """A token signed with another key is rejected, not merely detected."""
        token = jwt.encode(
            {"sub": "user-1", "role": "CLIENT", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
            "some-other-key",
            algorithm=ALGORITHM,
        )
        assert decode_session_token(token) is None

    def test_unknown_role_claim_returns_none(self):
        token = jwt.encode(
            {"sub": "user-1", "role": "ADMIN", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
            settings.secret_key,
            algorithm=ALGORITHM,
        )
        assert decode_session_token(token) is None

    def test_missing_subject_returns_none(self):
        token = jwt.encode(
            {"role": "CLIENT", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
            settings.secret_key,
            algorithm=ALGORITHM,
        )
        assert decode_session_token(token) is None


# === Password Hashing Tests ===

class TestPasswordHashing:

    def test_hash_and_verify(self):
        hashed = hash_password("Secret123")
        assert verify_password("Secret123", hashed) is True

    def test_wrong_password_fails(self):
        hashed = hash_password("Secret123")
        assert verify_password("Secret124", hashed) is False

    def test_hash_is_salted(self):
        """Same password hashes differently each time."""
        assert hash_password("Secret123") != hash_password("Secret123")

    def test_hash_is_not_plaintext(self):
        assert "Secret123" not in hash_password("Secret123")

    def test_malformed_hash_fails_closed(self):
        assert verify_password("Secret123", "not-a-bcrypt-hash") is False


# === Credential Shape Tests ===

class TestCredentialShape:

    def test_well_formed(self):
        assert credentials_are_well_formed("a@example.com", "abcdef") is True

    def test_bad_email(self):
        assert credentials_are_well_formed("not-an-email", "abcdef") is False

    def test_short_password(self):
        assert credentials_are_well_formed("a@example.com", "abc12") is False

    def test_missing_values(self):
        assert credentials_are_well_formed(None, "abcdef") is False
        assert credentials_are_well_formed("a@example.com", None) is False


# === Settings Tests ===

class TestSessionCookieSettings:

    def test_development_cookie(self):
        dev = Settings(secret_key="k", environment="development")
        assert dev.session_cookie_name == "next-auth.session-token"
        assert dev.session_cookie_secure is False

    def test_production_cookie(self):
        prod = Settings(secret_key="k", environment="production")
        assert prod.session_cookie_name == "__Secure-next-auth.session-token"
        assert prod.session_cookie_secure is True

    def test_max_age(self):
        assert Settings(secret_key="k").session_max_age_seconds == 2592000

    def test_secret_key_required_outside_debug(self, monkeypatch):
        monkeypatch.delenv("SECRET_KEY", raising=False)
        with pytest.raises(ValueError):
            Settings(secret_key="", debug=False)


# === Authentication against the store ===

class TestAuthenticateUser:

    async def test_valid_credentials(self, db_session):
        created = await create_user(db_session, "Ada", "ada@example.com", "Secret123", Role.CLIENT)
        user = await authenticate_user(db_session, "ada@example.com", "Secret123")
        assert user is not None
        assert user.id == created.id
        assert user.role is Role.CLIENT

    async def test_email_is_case_insensitive(self, db_session):
        await create_user(db_session, "Ada", "Ada@Example.com", "Secret123", Role.CLIENT)
        assert await get_user_by_email(db_session, "ADA@example.com") is not None
        assert await authenticate_user(db_session, "ada@EXAMPLE.com", "Secret123") is not None

    async def test_wrong_password(self, db_session):
        await create_user(db_session, "Ada", "ada@example.com", "Secret123", Role.CLIENT)
        assert await authenticate_user(db_session, "ada@example.com", "Wrong1234") is None

    async def test_unknown_email(self, db_session):
        assert await authenticate_user(db_session, "nobody@example.com", "Secret123") is None

    async def test_malformed_input(self, db_session):
        assert await authenticate_user(db_session, "not-an-email", "Secret123") is None
        assert await authenticate_user(db_session, "ada@example.com", "abc") is None
        assert await authenticate_user(db_session, None, None) is None

    async def test_password_hash_stored(self, db_session):
        user = await create_user(db_session, "Ada", "ada@example.com", "Secret123", Role.CLIENT)
        assert user.hashed_password != "Secret123"
        assert verify_password("Secret123", user.hashed_password)
