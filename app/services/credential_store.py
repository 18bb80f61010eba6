"""
Credential store: lookup and creation of user credential rows
"""
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.models.user import User


def normalize_email(email: str) -> str:
    """Emails are matched case-insensitively"""
    return email.strip().lower()


class CredentialStore:
    """Thin async repository over the users table.

    Store errors (including IntegrityError on a duplicate email) propagate
    unchanged; the auth service decides what they mean.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.email == normalize_email(email))
        )
        return result.scalar_one_or_none()

    async def find_by_id(self, user_id: int) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    async def create(
        self,
        email: str,
        password_hash: str,
        name: str,
        role: str = "user",
    ) -> User:
        user = User(
            email=normalize_email(email),
            password_hash=password_hash,
            name=name,
            role=role,
            is_active=True,
        )
        self.db.add(user)
        # Flush so the unique constraint on email is checked and the id assigned
        await self.db.flush()
        return user
