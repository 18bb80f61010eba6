"""
Session ledger: authoritative record of which refresh tokens may be honored

A row is usable iff it is not revoked and has not expired. Expiry is checked at
read time; expired rows are kept, as are revoked ones.
"""
from datetime import datetime, timezone
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, and_, func
import logging

from app.models.user import RefreshSession

logger = logging.getLogger(__name__)


class SessionLedger:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record_session(
        self,
        user_id: int,
        refresh_token: str,
        expires_at: datetime,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> RefreshSession:
        session = RefreshSession(
            user_id=user_id,
            refresh_token=refresh_token,
            expires_at=expires_at,
            is_revoked=False,
            ip_address=ip_address,
            user_agent=user_agent[:500] if user_agent else None,
        )
        self.db.add(session)
        await self.db.flush()
        return session

    async def is_session_valid(
        self,
        user_id: int,
        refresh_token: str,
        now: Optional[datetime] = None,
    ) -> bool:
        now = now or datetime.now(timezone.utc)
        result = await self.db.execute(
            select(func.count(RefreshSession.id)).where(
                and_(
                    RefreshSession.user_id == user_id,
                    RefreshSession.refresh_token == refresh_token,
                    RefreshSession.is_revoked == False,  # noqa: E712
                    RefreshSession.expires_at > now,
                )
            )
        )
        return (result.scalar() or 0) > 0

    async def revoke_all_for_user(self, user_id: int) -> int:
        """Revoke every active session of a user; returns the number of rows changed"""
        result = await self.db.execute(
            update(RefreshSession)
            .where(
                and_(
                    RefreshSession.user_id == user_id,
                    RefreshSession.is_revoked == False,  # noqa: E712
                )
            )
            .values(is_revoked=True, revoked_at=datetime.now(timezone.utc))
        )
        return result.rowcount or 0

    async def revoke_session(self, user_id: int, refresh_token: str) -> int:
        """Revoke the rows for one refresh token (used by rotation)"""
        result = await self.db.execute(
            update(RefreshSession)
            .where(
                and_(
                    RefreshSession.user_id == user_id,
                    RefreshSession.refresh_token == refresh_token,
                    RefreshSession.is_revoked == False,  # noqa: E712
                )
            )
            .values(is_revoked=True, revoked_at=datetime.now(timezone.utc))
        )
        return result.rowcount or 0

    async def list_active_sessions(
        self,
        user_id: int,
        now: Optional[datetime] = None,
    ) -> List[RefreshSession]:
        now = now or datetime.now(timezone.utc)
        result = await self.db.execute(
            select(RefreshSession)
            .where(
                and_(
                    RefreshSession.user_id == user_id,
                    RefreshSession.is_revoked == False,  # noqa: E712
                    RefreshSession.expires_at > now,
                )
            )
            .order_by(RefreshSession.created_at.desc())
        )
        return list(result.scalars().all())
