"""Path classification for the page-level route guard."""

from enum import Enum
from urllib.parse import urlencode


class RouteKind(str, Enum):
    PROTECTED = "protected"  # requires a session
    AUTH_ONLY = "auth_only"  # login/signup, bounced when already signed in
    PUBLIC = "public"


PROTECTED_PREFIXES = (
    "/dashboard",
    "/profile",
    "/contests/create",
    "/achievements",
)

AUTH_ONLY_PATHS = ("/login", "/signup")


def _matches_prefix(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def classify_path(path: str) -> RouteKind:
    """Partition every path into protected, auth-only or public."""
    normalized = path.rstrip("/") or "/"
    if normalized in AUTH_ONLY_PATHS:
        return RouteKind.AUTH_ONLY
    if any(_matches_prefix(normalized, prefix) for prefix in PROTECTED_PREFIXES):
        return RouteKind.PROTECTED
    return RouteKind.PUBLIC


def login_redirect_url(login_path: str, callback_path: str) -> str:
    """Login URL carrying the original path as ``callbackUrl``."""
    return f"{login_path}?{urlencode({'callbackUrl': callback_path}, safe='/')}"
