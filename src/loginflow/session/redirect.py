"""Login-URL computation for unauthorized responses.

When any authenticated call answers 401, the client is sent back to the
login route. :class:`RedirectGuard` computes that route so that the user
lands where they were after logging in again:

* the application base path is stripped from the current path;
* special single-segment routes such as ``/_invite123`` are preserved as a
  path suffix (``/login/_invite123``);
* any other non-root path (with its query string) becomes the ``redirect``
  query parameter;
* targets that already point into the login flow produce a bare ``/login``.

:func:`sanitize_redirect_target` is the inverse guard applied when the
login flow *reads* a ``redirect`` parameter.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Optional
from urllib.parse import quote, urlsplit

if TYPE_CHECKING:
    from loginflow.session.state import SessionState

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"
LOGIN_ROUTES = ("/login/signup", "/login")

_SPECIAL_ROUTE = re.compile(r"/_\w+")


def is_login_route(target: str) -> bool:
    """Return ``True`` if *target* points into the login flow."""
    return any(target.startswith(route) for route in LOGIN_ROUTES)


def login_url(redirect_target: str = "") -> str:
    """Build ``/login?redirect=<target>``, or bare ``/login`` when there is nothing to carry."""
    if not redirect_target or redirect_target == "/" or is_login_route(redirect_target):
        return LOGIN_PATH
    return f"{LOGIN_PATH}?redirect={quote(redirect_target, safe='')}"


def strip_base_path(path: str, base_path: str) -> str:
    """Remove the application base href from the front of *path*."""
    if not base_path or base_path == "/":
        return path
    prefix = base_path.rstrip("/")
    if path == prefix:
        return "/"
    if path.startswith(prefix + "/"):
        return path[len(prefix):]
    return path


def sanitize_redirect_target(target: Optional[str]) -> str:
    """Reduce *target* to a safe relative path, or ``""``.

    Absolute URLs, scheme-relative URLs (``//host``) and backslash variants
    are rejected outright, as are targets inside the login flow.
    """
    if not target:
        return ""
    target = target.strip()
    if "\\" in target or target.startswith("//"):
        return ""
    parts = urlsplit(target)
    if parts.scheme or parts.netloc:
        return ""
    if not target.startswith("/"):
        target = "/" + target
    if is_login_route(target):
        return ""
    return target


class RedirectGuard:
    """Computes the login URL to use after an unauthorized response.

    Args:
        base_path: Application base href to strip from incoming paths.
        session: When given, the session is marked unauthenticated each
            time :meth:`handle_unauthorized` runs.
    """

    def __init__(self, base_path: str = "/", session: Optional[SessionState] = None) -> None:
        self._base_path = base_path
        self._session = session

    def handle_unauthorized(self, current_path: str) -> str:
        """Return the login URL for a user who was on *current_path*.

        Args:
            current_path: Path with optional query string, e.g.
                ``/projects/42?tab=info``.

        Example::

            >>> RedirectGuard().handle_unauthorized("/projects/42?tab=info")
            '/login?redirect=%2Fprojects%2F42%3Ftab%3Dinfo'
        """
        if self._session is not None:
            self._session.mark_unauthenticated()

        path, sep, query = current_path.partition("?")
        path = strip_base_path(path or "/", self._base_path)

        if _SPECIAL_ROUTE.fullmatch(path):
            logger.debug("Preserving special route %s", path)
            return f"{LOGIN_PATH}{path}"

        redirect_url = f"{path}{sep}{query}"
        return login_url(redirect_url)
