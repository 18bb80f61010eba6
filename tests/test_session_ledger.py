"""Tests for the refresh-session ledger against a real (SQLite) store."""

from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from app.models.user import RefreshSession
from app.services.credential_store import CredentialStore
from app.services.session_ledger import SessionLedger


async def _make_user(db, email="ledger@example.com"):
    user = await CredentialStore(db).create(email=email, password_hash="x", name="Ledger")
    await db.commit()
    return user


def _in(days):
    return datetime.now(timezone.utc) + timedelta(days=days)


async def test_recorded_session_is_valid(session_factory):
    async with session_factory() as db:
        user = await _make_user(db)
        ledger = SessionLedger(db)
        row = await ledger.record_session(user.id, "token-a", _in(30), ip_address="10.0.0.1", user_agent="pytest")
        await db.commit()

        assert row.is_revoked is False
        assert row.ip_address == "10.0.0.1"
        assert await ledger.is_session_valid(user.id, "token-a") is True


async def test_unknown_token_or_wrong_owner_is_invalid(session_factory):
    async with session_factory() as db:
        user = await _make_user(db)
        other = await _make_user(db, email="other@example.com")
        ledger = SessionLedger(db)
        await ledger.record_session(user.id, "token-a", _in(30))
        await db.commit()

        assert await ledger.is_session_valid(user.id, "token-b") is False
        assert await ledger.is_session_valid(other.id, "token-a") is False


async def test_expired_row_is_invalid_but_kept(session_factory):
    async with session_factory() as db:
        user = await _make_user(db)
        ledger = SessionLedger(db)
        await ledger.record_session(user.id, "old-token", _in(-1))
        await db.commit()

        assert await ledger.is_session_valid(user.id, "old-token") is False

        rows = (await db.execute(select(RefreshSession))).scalars().all()
        assert len(rows) == 1


async def test_revoke_all_for_user_invalidates_every_session(session_factory):
    async with session_factory() as db:
        user = await _make_user(db)
        other = await _make_user(db, email="bystander@example.com")
        ledger = SessionLedger(db)
        await ledger.record_session(user.id, "t1", _in(30))
        await ledger.record_session(user.id, "t2", _in(30))
        await ledger.record_session(other.id, "t3", _in(30))
        await db.commit()

        revoked = await ledger.revoke_all_for_user(user.id)
        await db.commit()

        assert revoked == 2
        assert await ledger.is_session_valid(user.id, "t1") is False
        assert await ledger.is_session_valid(user.id, "t2") is False
        assert await ledger.is_session_valid(other.id, "t3") is True


async def test_revocation_is_idempotent_and_rows_are_retained(session_factory):
    async with session_factory() as db:
        user = await _make_user(db)
        ledger = SessionLedger(db)
        await ledger.record_session(user.id, "t1", _in(30))
        await db.commit()

        assert await ledger.revoke_all_for_user(user.id) == 1
        await db.commit()
        assert await ledger.revoke_all_for_user(user.id) == 0
        await db.commit()

        rows = (await db.execute(select(RefreshSession))).scalars().all()
        assert len(rows) == 1
        assert rows[0].is_revoked is True
        assert rows[0].revoked_at is not None


async def test_revoke_session_only_touches_one_token(session_factory):
    async with session_factory() as db:
        user = await _make_user(db)
        ledger = SessionLedger(db)
        await ledger.record_session(user.id, "keep", _in(30))
        await ledger.record_session(user.id, "drop", _in(30))
        await db.commit()

        await ledger.revoke_session(user.id, "drop")
        await db.commit()

        assert await ledger.is_session_valid(user.id, "keep") is True
        assert await ledger.is_session_valid(user.id, "drop") is False


async def test_list_active_sessions_skips_revoked_and_expired(session_factory):
    async with session_factory() as db:
        user = await _make_user(db)
        ledger = SessionLedger(db)
        await ledger.record_session(user.id, "live", _in(30))
        await ledger.record_session(user.id, "expired", _in(-1))
        await ledger.record_session(user.id, "revoked", _in(30))
        await db.commit()
        await ledger.revoke_session(user.id, "revoked")
        await db.commit()

        active = await ledger.list_active_sessions(user.id)

        assert [s.refresh_token for s in active] == ["live"]
