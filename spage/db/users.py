"""User repository."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import Select, func, select

from spage.constants import Role
from spage.db.models import User

if TYPE_CHECKING:
    from spage.db.connection import Database

logger = logging.getLogger(__name__)


def _first_admin_query() -> Select:
    """The system administrator is the oldest user with the admin role."""
    return select(User).where(User.role == Role.ADMIN.value).order_by(User.id).limit(1)


class UserRepository:
    """Database operations for users."""

    def __init__(self, db: Database):
        self.db = db

    def create(self, user: User) -> User:
        with self.db.session() as session:
            session.add(user)
            session.flush()
            return user

    def get_by_id(self, user_id: int) -> User | None:
        with self.db.session() as session:
            return session.get(User, user_id)

    def get_by_name(self, name: str) -> User | None:
        with self.db.session() as session:
            return session.scalars(select(User).where(User.name == name)).first()

    def get_first_admin(self) -> User | None:
        """The system administrator: the oldest user with the admin role."""
        with self.db.session() as session:
            return session.scalars(_first_admin_query()).first()

    def count(self, role: Role | None = None) -> int:
        stmt = select(func.count()).select_from(User)
        if role is not None:
            stmt = stmt.where(User.role == role.value)
        with self.db.session() as session:
            return session.scalar(stmt) or 0

    def update_system_admin(self, user: User) -> User:
        """Create the system administrator, or overwrite the existing one.

        The existing admin keeps its id; only name, password and role are
        replaced, so repeated calls never add a second admin row.
        """
        with self.db.session() as session:
            admin = session.scalars(_first_admin_query()).first()
            if admin is None:
                user.role = Role.ADMIN.value
                session.add(user)
                session.flush()
                logger.info("Created system admin %r (id=%d)", user.name, user.id)
                return user

            admin.name = user.name
            admin.password = user.password
            admin.role = Role.ADMIN.value
            session.flush()
            logger.info("Updated system admin %r (id=%d)", admin.name, admin.id)
            return admin
