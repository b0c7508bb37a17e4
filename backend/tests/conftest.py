"""
MyTeacher - Test Configuration and Fixtures
"""
import os
import tempfile
from typing import AsyncGenerator, Callable, Dict

import pytest
import pytest_asyncio
from faker import Faker
from httpx import AsyncClient, ASGITransport
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

# Set testing environment before the app reads its settings
_tmp_dir = tempfile.mkdtemp(prefix="myteacher-tests-")
os.environ['TESTING'] = 'true'
os.environ['DATABASE_URL'] = f"sqlite+aiosqlite:///{os.path.join(_tmp_dir, 'test.db')}"
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['ANTHROPIC_API_KEY'] = ''
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['UPLOAD_PATH'] = os.path.join(_tmp_dir, 'uploads')
os.environ['EXPORT_PATH'] = os.path.join(_tmp_dir, 'exports')

from myteacher.main import app
from myteacher.core.database import Base, close_db, get_db, get_engine, session_factory
from myteacher.core.security import get_password_hash
from myteacher.models.user import AppUser, Jurisdiction, UserRole
from myteacher.services.catalog_service import seed_reference_data
from factories import auth_headers_for, student_payload

fake = Faker()

TEST_PASSWORD = 'testpassword123'


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh schema and seeded catalog for each test"""
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with session_factory()() as session:
        await seed_reference_data(session)
        await session.commit()
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await close_db()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Test client; every request gets its own session like in production"""
    async def override_get_db():
        async with session_factory()() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def jurisdiction(db_session: AsyncSession) -> Jurisdiction:
    result = await db_session.execute(select(Jurisdiction).where(Jurisdiction.district_code == 'HCPSS'))
    return result.scalar_one()


@pytest_asyncio.fixture
async def user_factory(db_session: AsyncSession, jurisdiction: Jurisdiction) -> Callable:
    """Create users of any role; onboarded users belong to the HCPSS jurisdiction"""
    async def create(role: UserRole = UserRole.TEACHER, onboarded: bool = True) -> AppUser:
        user = AppUser(
            username=fake.unique.user_name(),
            email=fake.unique.email(),
            password_hash=get_password_hash(TEST_PASSWORD),
            display_name=fake.name(),
            role=role,
            is_active=True,
            is_onboarded=onboarded,
            state_code='MD' if onboarded else None,
            district_name=jurisdiction.district_name if onboarded else None,
            jurisdiction_id=jurisdiction.id if onboarded else None,
            permission=None,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return create


@pytest_asyncio.fixture
async def admin_user(user_factory) -> AppUser:
    return await user_factory(UserRole.ADMIN)


@pytest_asyncio.fixture
async def case_manager(user_factory) -> AppUser:
    return await user_factory(UserRole.CASE_MANAGER)


@pytest_asyncio.fixture
async def teacher(user_factory) -> AppUser:
    return await user_factory(UserRole.TEACHER)


@pytest.fixture
def admin_headers(admin_user: AppUser) -> Dict[str, str]:
    return auth_headers_for(admin_user)


@pytest.fixture
def cm_headers(case_manager: AppUser) -> Dict[str, str]:
    return auth_headers_for(case_manager)


@pytest.fixture
def teacher_headers(teacher: AppUser) -> Dict[str, str]:
    return auth_headers_for(teacher)


@pytest_asyncio.fixture
async def student(client: AsyncClient, cm_headers: Dict[str, str]) -> dict:
    """Student on the case manager's caseload"""
    response = await client.post('/api/v1/students', headers=cm_headers, json=student_payload())
    assert response.status_code == 201
    return response.json()


@pytest_asyncio.fixture
async def iep_plan(client: AsyncClient, cm_headers: Dict[str, str], student: dict) -> dict:
    response = await client.post(f"/api/v1/students/{student['id']}/plans/IEP", headers=cm_headers)
    assert response.status_code == 201
    return response.json()
