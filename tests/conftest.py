import asyncio
import inspect
import os
import sys
import tempfile
from datetime import timedelta
from pathlib import Path

# Settings are read at import time, so the environment must be set first
_test_tmp_dir = tempfile.mkdtemp(prefix="sessionkeep_test_")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-only-do-not-use-in-production")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_test_tmp_dir}/app.db")
# Cheap argon2 parameters keep the suite fast
os.environ.setdefault("ARGON2_TIME_COST", "1")
os.environ.setdefault("ARGON2_MEMORY_COST", "1024")
os.environ.setdefault("ARGON2_PARALLELISM", "1")

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.core.database import build_session_factory, init_db  # noqa: E402
from app.core.jwt import TokenAuthority  # noqa: E402
from app.core.password import PasswordHasher  # noqa: E402
from app.services.auth_service import AuthService  # noqa: E402

TEST_SECRET = "unit-test-signing-secret-0123456789abcdef"


@pytest.fixture
def db_engine(tmp_path):
    # NullPool: every asyncio.run() gets fresh connections bound to its own loop
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'auth.db'}", poolclass=NullPool)
    asyncio.run(init_db(engine))
    yield engine
    asyncio.run(engine.dispose())


@pytest.fixture
def session_factory(db_engine):
    return build_session_factory(db_engine)


@pytest.fixture
def token_authority():
    return TokenAuthority(
        secret=TEST_SECRET,
        access_token_ttl=timedelta(minutes=5),
        refresh_token_ttl=timedelta(days=30),
    )


@pytest.fixture
def password_hasher():
    return PasswordHasher(time_cost=1, memory_cost=1024, parallelism=1)


@pytest.fixture
def auth(token_authority, password_hasher):
    return AuthService(
        token_authority=token_authority,
        password_hasher=password_hasher,
        rotate_refresh_tokens=False,
    )


@pytest.fixture
def client(session_factory, auth):
    from fastapi.testclient import TestClient

    from main import app
    from app.api.auth import get_auth_service
    from app.core.database import get_db

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_auth_service] = lambda: auth
    yield TestClient(app)
    app.dependency_overrides.clear()


def pytest_pyfunc_call(pyfuncitem):
    if inspect.iscoroutinefunction(pyfuncitem.obj):
        call_kwargs = {
            name: pyfuncitem.funcargs[name]
            for name in pyfuncitem._fixtureinfo.argnames
            if name in pyfuncitem.funcargs
        }
        asyncio.run(pyfuncitem.obj(**call_kwargs))
        return True
    return None


def pytest_configure(config):
    config.addinivalue_line("markers", "asyncio: mark test as async")
