"""
User Session

Holds the currently authenticated user, if any. A UserSession is created
by the composition root and handed to the flows; there is no module-level
instance. One session serves one caller at a time.
"""

from typing import Optional

import structlog

from expense_tracker.errors import SessionRequiredError
from expense_tracker.models.user import User


logger = structlog.get_logger(__name__)


class UserSession:
    """At most one logged-in user. Empty on creation."""

    def __init__(self):
        self._user: Optional[User] = None

    @property
    def user(self) -> Optional[User]:
        """The logged-in user, or None."""
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    def start(self, user: User) -> None:
        """Record a successful login. Replaces any previous user."""
        if user.id is None:
            raise ValueError("Only persisted users can be logged in")
        self._user = user
        logger.debug("session_started", user_id=user.id)

    def replace(self, user: User) -> None:
        """Swap in an updated copy of the logged-in user."""
        current = self.require_user()
        if user.id != current.id:
            raise ValueError("Cannot replace the session user with a different user")
        self._user = user

    def clear(self) -> None:
        """Log out. Safe to call on an empty session."""
        if self._user is not None:
            logger.debug("session_cleared", user_id=self._user.id)
        self._user = None

    def require_user(self) -> User:
        """
        Return the logged-in user.

        Raises:
            SessionRequiredError: If nobody is logged in
        """
        if self._user is None:
            raise SessionRequiredError()
        return self._user

    @property
    def user_id(self) -> int:
        """Id of the logged-in user. Raises SessionRequiredError if none."""
        return self.require_user().id
