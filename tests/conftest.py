# tests/conftest.py
import os
import tempfile

# Must be set before any application module reads settings
os.environ.update(
    {
        "SQLITE_MODE": "true",
        "ENVIRONMENT": "testing",
        "RATE_LIMIT_ENABLED": "false",
        "SEND_EMAILS": "false",
        "UPLOAD_DIR": tempfile.mkdtemp(prefix="surgihistory-uploads-"),
        "WHATSAPP_ACCESS_TOKEN": "",
        "WHATSAPP_PHONE_NUMBER_ID": "",
        "SECRET_KEY": "test-secret-key",
        "LOG_FILE": "",
    }
)

import uuid
from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from core.policy import Actor
from db.database import Base, enable_sqlite_foreign_keys, get_db
from main import app
from models.patient import Patient
from models.user import User, UserRole
from utils.datetime_utils import utcnow
from utils.security import create_access_token, hash_password

TEST_PASSWORD = "Password123!"
# Hashing once keeps bcrypt out of every factory call
PASSWORD_HASH = hash_password(TEST_PASSWORD)


@pytest.fixture
async def engine():
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(test_engine)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    async def _make_user(role: UserRole = UserRole.DOCTOR, **overrides) -> User:
        suffix = uuid.uuid4().hex[:8]
        data = {
            "email": f"{role.value.lower()}-{suffix}@example.com",
            "hashed_password": PASSWORD_HASH,
            "full_name": f"{role.value.title()} {suffix}",
            "role": role,
            "is_active": True,
        }
        data.update(overrides)
        user = User(**data)
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_patient(db, make_user):
    counter = {"n": 0}

    async def _make_patient(creator: User, **overrides) -> Patient:
        counter["n"] += 1
        n = counter["n"]
        account = await make_user(UserRole.PATIENT)
        data = {
            "user_id": account.id,
            "patient_number": f"PAT-{utcnow().year}-{n:04d}",
            "cnic": f"35202{n:07d}1",
            "full_name": f"Patient {n}",
            "email": account.email,
            "contact_number": "03001234567",
            "whatsapp_number": "03001234567",
            "created_by": creator.id,
        }
        data.update(overrides)
        patient = Patient(**data)
        db.add(patient)
        await db.commit()
        await db.refresh(patient)
        return patient

    return _make_patient


def actor_for(user: User, patient_id=None) -> Actor:
    return Actor(
        id=user.id,
        role=UserRole(user.role),
        email=user.email,
        name=user.full_name,
        patient_id=patient_id,
    )


def auth_headers(user: User, expires_delta: timedelta = None) -> dict:
    token = create_access_token(
        {"sub": str(user.id), "role": UserRole(user.role).value}, expires_delta
    )
    return {"Authorization": f"Bearer {token}"}
