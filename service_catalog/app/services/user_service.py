"""
User lookups for the Catalog Service.
"""

from typing import Callable, Optional, Sequence

from ..data import USERS, User


class UserService:
    """Read-only queries over the user dataset."""

    def __init__(self, users: Sequence[User] = USERS):
        self._users = users

    def get_all_users(self) -> Sequence[User]:
        """Return every user in dataset order."""
        return self._users

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        """Return the user with ``user_id``, or None when absent."""
        return next((user for user in self._users if user.id == user_id), None)

    def filter(self, predicate: Callable[[User], bool]) -> Sequence[User]:
        return tuple(user for user in self._users if predicate(user))

    def get_users_by_role(self, role: str) -> Sequence[User]:
        """Return users whose role equals ``role``; empty when none match."""
        return self.filter(lambda user: user.role == role)
