"""Page endpoints standing in for the rendered views.

Anonymous access to protected pages and signed-in access to login/signup are
handled by ``RouteGuardMiddleware`` before these run. Role restrictions are
applied here, per page, with ``RoleGate(..., redirect=True)``.
"""

from fastapi import APIRouter, Depends

from app.api.auth import RoleGate, get_optional_identity, get_session_identity
from app.api.schemas import PageResponse
from app.core.roles import Role
from app.services.auth import SessionIdentity

router = APIRouter(tags=["pages"])


def _page(name: str, identity: SessionIdentity | None) -> PageResponse:
    return PageResponse(
        page=name,
        user_id=identity.id if identity else None,
        role=identity.role.value if identity else None,
    )


@router.get("/dashboard", response_model=PageResponse)
async def dashboard(identity: SessionIdentity = Depends(get_session_identity)):
    return _page("dashboard", identity)


@router.get("/profile", response_model=PageResponse)
async def profile(identity: SessionIdentity = Depends(get_session_identity)):
    return _page("profile", identity)


@router.get("/achievements", response_model=PageResponse)
async def achievements(identity: SessionIdentity = Depends(get_session_identity)):
    return _page("achievements", identity)


@router.get("/contests/create", response_model=PageResponse)
async def create_contest(
    identity: SessionIdentity = Depends(RoleGate(Role.CLIENT, redirect=True)),
):
    """Only clients post contests."""
    return _page("contests/create", identity)


@router.get("/login", response_model=PageResponse)
async def login_page(identity: SessionIdentity | None = Depends(get_optional_identity)):
    return _page("login", identity)


@router.get("/signup", response_model=PageResponse)
async def signup_page(identity: SessionIdentity | None = Depends(get_optional_identity)):
    return _page("signup", identity)
