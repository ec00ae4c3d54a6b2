"""Repository for users."""

from __future__ import annotations

from typing import TYPE_CHECKING

from reminder_service.core.database import BaseRepository
from reminder_service.features.users.models import User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


class UserRepository(BaseRepository[User]):
    """Repository for User rows."""

    def __init__(self) -> None:
        """Initialize with User model."""
        super().__init__(User)

    async def get_by_email(self, session: AsyncSession, email: str) -> User | None:
        """Find a user by address.

        The bound value is normalized by ``EmailType`` like stored addresses.
        """
        return await self.get_by(session, User.email, email.strip())


_user_repository: UserRepository | None = None


def get_user_repository() -> UserRepository:
    """Get the shared UserRepository instance."""
    global _user_repository
    if _user_repository is None:
        _user_repository = UserRepository()
    return _user_repository
