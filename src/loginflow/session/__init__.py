"""Session state, post-login bootstrap, preferences, and login redirects.

- :class:`StateCell` / :class:`SessionState` -- observable session status
  and login mode.
- :class:`SessionBootstrapper` -- preferences, current user, login notice,
  and the post-login navigation target.
- :class:`UserPreferences` -- remote preferences with write-through.
- :class:`RedirectGuard` -- login URL computation for unauthorized
  responses.
"""

from loginflow.session.bootstrap import SessionBootstrapper
from loginflow.session.preferences import UserPreferences
from loginflow.session.redirect import RedirectGuard, login_url, sanitize_redirect_target
from loginflow.session.state import SessionState, StateCell

__all__ = [
    "RedirectGuard",
    "SessionBootstrapper",
    "SessionState",
    "StateCell",
    "UserPreferences",
    "login_url",
    "sanitize_redirect_target",
]
