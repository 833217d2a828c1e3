import logging
from collections.abc import Collection
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request, Response, status
from pydantic import (
    AliasChoices,
    BaseModel,
    EmailStr,
    Field,
    StrictBool,
    ValidationError,
    ValidationInfo,
    field_validator,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.core.database import get_db
from app.core.errors import (
    AuthenticationFailure,
    AuthorizationFailure,
    ConflictError,
    NotFoundError,
    ValidationFailed,
    validation_details,
)
from app.core.password import validate_password_strength
from app.core.roles import Role, is_role_allowed, parse_role
from app.models.user import User
from app.services.auth import (
    SessionIdentity,
    authenticate_user,
    clear_session_cookie,
    create_session_token,
    create_user,
    get_user_by_email,
    get_user_by_id,
    session_from_cookies,
    set_session_cookie,
)
from app.services.gamification import GamificationService
from app.services.profile import update_profile, user_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

PASSWORD_MISMATCH = "Passwords don't match"


def clean_name(value: str | None) -> str | None:
    """Strip surrounding whitespace; what remains must be at least 2 characters."""
    if value is None:
        return None
    value = value.strip()
    if len(value) < 2:
        raise ValueError("Name must be at least 2 characters")
    return value


# Request/Response schemas
class SignupRequest(BaseModel):
    """Request body for account creation. Every failing field is reported."""

    name: str
    email: EmailStr
    password: str
    confirm_password: str = Field(alias="confirmPassword")
    role: str
    terms: StrictBool | None = Field(default=None, validate_default=True)

    @field_validator("name")
    @classmethod
    def name_long_enough(cls, value: str) -> str:
        return clean_name(value)

    @field_validator("password")
    @classmethod
    def password_strong_enough(cls, value: str) -> str:
        return validate_password_strength(value)

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, value: str, info: ValidationInfo) -> str:
        # A password that failed its own rules is compared in ``parse``
        password = info.data.get("password")
        if password is not None and value != password:
            raise ValueError(PASSWORD_MISMATCH)
        return value

    @field_validator("role")
    @classmethod
    def known_role(cls, value: str) -> str:
        if parse_role(value) is None:
            raise ValueError("Please select a valid role")
        return value

    @field_validator("terms")
    @classmethod
    def terms_accepted(cls, value: bool | None) -> bool:
        if value is not True:
            raise ValueError("You must accept the terms and conditions")
        return value

    @classmethod
    def parse(cls, data: Any) -> "SignupRequest":
        """Validate a raw body, raising ValidationFailed with every failing field.

        The confirmation is checked against the raw password too, so a
        mismatch is reported even when the password broke its own rules.
        """
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            details = validation_details(exc.errors())
            paths = {d["path"] for d in details}
            if "confirmPassword" not in paths and _raw_passwords_differ(data):
                details.append({"path": "confirmPassword", "message": PASSWORD_MISMATCH})
            raise ValidationFailed(details=details) from exc


def _raw_passwords_differ(data: Any) -> bool:
    if not isinstance(data, dict):
        return False
    password = data.get("password")
    confirm = data.get("confirmPassword")
    return isinstance(password, str) and isinstance(confirm, str) and password != confirm


class LoginRequest(BaseModel):
    """Request body for login. Shape problems surface as failed authentication."""

    email: str | None = None
    password: str | None = None


class UserSummary(BaseModel):
    """Public-safe subset of a user record."""

    id: str
    name: str
    email: str
    role: Role


class SignupResponse(BaseModel):
    success: bool = True
    user: UserSummary


class LoginResponse(BaseModel):
    success: bool = True
    message: str = "Login successful"
    user: UserSummary


class ShowcaseAchievementIn(BaseModel):
    title: str = Field(min_length=1)
    description: str | None = None
    icon_url: str | None = Field(default=None, validation_alias=AliasChoices("iconUrl", "icon_url"))
    achieved_at: datetime | None = Field(
        default=None, validation_alias=AliasChoices("achievedAt", "achieved_at")
    )


class ShowcaseAchievementResponse(BaseModel):
    id: str
    title: str
    description: str | None
    icon_url: str | None = Field(serialization_alias="iconUrl")
    achieved_at: datetime | None = Field(serialization_alias="achievedAt")


class ProfileResponse(BaseModel):
    id: str
    bio: str
    title: str | None
    location: str | None
    skills: list[Any]
    portfolio: list[Any]
    endorsements: list[Any]
    xp: int
    level: int
    streak: int
    achievements: list[ShowcaseAchievementResponse]


class MeResponse(BaseModel):
    """Composite user + profile record."""

    id: str
    name: str
    email: str
    role: Role
    avatar: str | None
    profile: ProfileResponse | None


class ProfileUpdateRequest(BaseModel):
    """Partial update of user and profile fields.

    ``level`` is not accepted: it is derived from ``xp``.
    """

    name: str | None = None
    avatar: str | None = None
    bio: str | None = None
    title: str | None = None
    location: str | None = None
    skills: list[Any] | None = None
    portfolio: list[Any] | None = None
    endorsements: list[Any] | None = None
    xp: int | None = Field(default=None, ge=0)
    streak: int | None = Field(default=None, ge=0)
    achievements: list[ShowcaseAchievementIn] | None = None

    @field_validator("name")
    @classmethod
    def name_long_enough(cls, value: str | None) -> str | None:
        return clean_name(value)


def _summary(user: User) -> UserSummary:
    return UserSummary(id=user.id, name=user.name, email=user.email, role=user.role)


# Dependencies
def get_settings(request: Request) -> Settings:
    """Settings the running app was built with."""
    return request.app.state.settings


def get_session_identity(request: Request) -> SessionIdentity:
    """Dependency that validates the session cookie without touching the database."""
    identity = session_from_cookies(request.cookies, get_settings(request))
    if identity is None:
        raise AuthenticationFailure("Authentication required")
    return identity


def get_optional_identity(request: Request) -> SessionIdentity | None:
    """Optional dependency for endpoints that work with or without a session."""
    return session_from_cookies(request.cookies, get_settings(request))


async def get_current_user(
    identity: SessionIdentity = Depends(get_session_identity),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Dependency that loads the user named by the session."""
    user = await get_user_by_id(db, identity.id)
    if user is None:
        raise NotFoundError("User not found")
    return user


class RoleGate:
    """Dependency allowing only sessions whose role is in ``allowed``.

    API routes get a 403. With ``redirect=True`` (pages) other roles are sent
    to the default landing page instead. A UX-level check layered on top of
    session validation.
    """

    def __init__(self, allowed: Role | Collection[Role], redirect: bool = False):
        self.allowed = allowed
        self.redirect = redirect

    def __call__(
        self,
        request: Request,
        identity: SessionIdentity = Depends(get_session_identity),
    ) -> SessionIdentity:
        if is_role_allowed(identity.role, self.allowed):
            return identity
        if self.redirect:
            landing = get_settings(request).default_landing_path
            logger.info(f"Role {identity.role.value} not allowed on {request.url.path}, redirecting")
            raise HTTPException(
                status_code=status.HTTP_307_TEMPORARY_REDIRECT,
                headers={"Location": landing},
            )
        raise AuthorizationFailure("Your role does not have access to this resource")


# Routes
@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": SignupRequest.model_json_schema()}},
        }
    },
)
async def signup(
    response: Response,
    body: dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Create a new account and start a session for it."""
    request = SignupRequest.parse(body)
    logger.info(f"Signup attempt for email: {request.email}")

    existing_user = await get_user_by_email(db, request.email)
    if existing_user:
        logger.info(f"Email already registered: {request.email}")
        raise ConflictError("User with this email already exists")

    try:
        user = await create_user(
            db,
            name=request.name,
            email=request.email,
            password=request.password,
            role=Role(request.role),
        )
    except IntegrityError:
        # Lost a race with a concurrent signup for the same email
        await db.rollback()
        raise ConflictError("User with this email already exists")

    logger.info(f"User created successfully: {user.id}")
    set_session_cookie(response, create_session_token(user.id, user.role, settings=settings), settings)
    return SignupResponse(user=_summary(user))


@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Check credentials and issue the session cookie."""
    if not request.email or not request.password:
        raise ValidationFailed("Email and password are required")

    user = await authenticate_user(db, request.email, request.password)
    if not user:
        logger.info("Failed login attempt")
        raise AuthenticationFailure("Invalid credentials")

    await GamificationService(db).record_visit(user.id)
    await db.commit()

    set_session_cookie(response, create_session_token(user.id, user.role, settings=settings), settings)
    logger.info(f"User logged in: {user.id}")
    return LoginResponse(user=_summary(user))


@router.post("/logout")
async def logout(response: Response, settings: Settings = Depends(get_settings)) -> dict[str, Any]:
    """Drop the session cookie."""
    clear_session_cookie(response, settings)
    return {"success": True, "message": "Logout successful"}


@router.get("/me", response_model=MeResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Get the current user with profile and showcase achievements."""
    return user_to_dict(current_user)


@router.put("/me", response_model=MeResponse)
async def update_me(
    request: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Partially update the current user and profile."""
    user_id = current_user.id
    await update_profile(db, current_user, request.model_dump(exclude_unset=True))

    user = await get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User not found after update")
    return user_to_dict(user)
