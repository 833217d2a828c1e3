"""Page route guard: login redirects for protected pages, bounce-back for login/signup.

Runs before routing, so it covers every page path whether or not a handler
exists. The session is validated (signature and expiry), not just detected.
"""

import logging

from fastapi import Request
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from app.core.config import Settings
from app.core.routes import RouteKind, classify_path, login_redirect_url
from app.services.auth import session_from_cookies

logger = logging.getLogger(__name__)


class RouteGuardMiddleware(BaseHTTPMiddleware):
    """Redirects page requests according to their route kind and the session."""

    def __init__(self, app: ASGIApp, settings: Settings):
        super().__init__(app)
        self.settings = settings

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        kind = classify_path(path)
        if kind is RouteKind.PUBLIC:
            return await call_next(request)

        identity = session_from_cookies(request.cookies, self.settings)

        if kind is RouteKind.PROTECTED and identity is None:
            logger.debug("Redirecting anonymous request for %s to login", path)
            return RedirectResponse(
                login_redirect_url(self.settings.login_path, path),
                status_code=307,
            )

        if kind is RouteKind.AUTH_ONLY and identity is not None:
            landing = self.settings.default_landing_path
            logger.debug("Already signed in, redirecting %s to %s", path, landing)
            return RedirectResponse(landing, status_code=307)

        return await call_next(request)
