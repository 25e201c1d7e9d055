"""
User dataset.
"""

from typing import Tuple

from .models import User

USERS: Tuple[User, ...] = (
    User(id=1, name="Anurag", email="anurag@example.com", role="admin"),
    User(id=2, name="Rahul", email="rahul@example.com", role="user"),
    User(id=3, name="Priya", email="priya@example.com", role="user"),
    User(id=4, name="Amit", email="amit@example.com", role="admin"),
)
