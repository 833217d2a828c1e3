import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from email_validator import EmailNotValidError, validate_email
from fastapi import Response
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, settings as default_settings
from app.core.password import MIN_PASSWORD_LENGTH
from app.core.roles import Role, parse_role
from app.models.user import User

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# JWT configuration
ALGORITHM = "HS256"


@dataclass(frozen=True)
class SessionIdentity:
    """Identity carried inside a session token; no database lookup needed."""

    id: str
    role: Role


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        # Unrecognised or corrupt stored hash
        return False


def hash_password(password: str) -> str:
    """Hash a password for storage."""
    return pwd_context.hash(password)


def create_session_token(
    user_id: str,
    role: Role,
    expires_delta: timedelta | None = None,
    settings: Settings | None = None,
) -> str:
    """Create a signed session token carrying the user's id and role."""
    settings = settings or default_settings
    now = datetime.now(timezone.utc)
    if expires_delta is not None:
        expire = now + expires_delta
    else:
        expire = now + timedelta(days=settings.session_max_age_days)

    to_encode = {
        "sub": str(user_id),
        "role": Role(role).value,
        "exp": expire,
        "iat": now,
    }

    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def decode_session_token(
    token: str | None,
    settings: Settings | None = None,
) -> SessionIdentity | None:
    """Decode a session token; None if it is missing, forged, expired or incomplete."""
    if not token:
        return None
    settings = settings or default_settings
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return None

    user_id = payload.get("sub")
    role = parse_role(payload.get("role"))
    if not user_id or role is None:
        return None
    return SessionIdentity(id=str(user_id), role=role)


def session_from_cookies(
    cookies: Mapping[str, str],
    settings: Settings | None = None,
) -> SessionIdentity | None:
    """Validate the session cookie named for the configured environment."""
    settings = settings or default_settings
    return decode_session_token(cookies.get(settings.session_cookie_name), settings)


def set_session_cookie(response: Response, token: str, settings: Settings | None = None) -> None:
    """Attach the session cookie (HttpOnly, SameSite=Lax, Secure in production)."""
    settings = settings or default_settings
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_max_age_seconds,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )


def clear_session_cookie(response: Response, settings: Settings | None = None) -> None:
    settings = settings or default_settings
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )


def normalize_email(email: str) -> str:
    return email.strip().lower()


def credentials_are_well_formed(email: str | None, password: str | None) -> bool:
    """Email must be well formed and the password at least MIN_PASSWORD_LENGTH long."""
    if not isinstance(email, str) or not isinstance(password, str):
        return False
    if len(password) < MIN_PASSWORD_LENGTH:
        return False
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Get a user by their email address."""
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def get_user_by_id(db: AsyncSession, user_id: str) -> User | None:
    """Get a user (with profile and showcase achievements) by their ID."""
    result = await db.execute(
        select(User)
        .where(User.id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    name: str,
    email: str,
    password: str,
    role: Role,
) -> User:
    """Create a new user."""
    user = User(
        name=name,
        email=normalize_email(email),
        hashed_password=hash_password(password),
        role=role,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def authenticate_user(
    db: AsyncSession,
    email: str | None,
    password: str | None,
) -> User | None:
    """Authenticate a user by email and password.

    Returns None for malformed input, unknown email and wrong password alike.
    """
    if not credentials_are_well_formed(email, password):
        return None
    user = await get_user_by_email(db, email)
    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user
