from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from apps.helpdesk.identity import Actor, ReferenceDataProvider, ReferenceRepository
from apps.helpdesk.tickets import TicketRepository, TicketService
from apps.helpdesk.users import PasswordHasher, UserRepository, UserService
from packages.db.models import CategoryTable, DepartmentTable, UserTable
from packages.db.session import create_session_factory, ensure_schema

IT, HR, FACILITIES = 1, 2, 3
NETWORK, PAYROLL, HARDWARE, LEGACY = 5, 6, 7, 9


@dataclass(slots=True)
class Staff:
    admin: Actor
    manager: Actor
    other_manager: Actor
    worker: Actor
    other_worker: Actor
    inactive_worker_id: int


@pytest_asyncio.fixture
async def engine() -> AsyncEngine:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    await ensure_schema(engine)
    factory = create_session_factory(engine)
    await ReferenceRepository(factory).seed_roles()
    return factory


@pytest_asyncio.fixture
async def staff(session_factory: async_sessionmaker) -> Staff:
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def user(user_id: int, email: str, role_id: int, department_id: int | None, *, active: bool = True):
        created = base + timedelta(minutes=user_id)
        return UserTable(
            id=user_id,
            email=email,
            password_hash="not-a-real-hash",
            first_name=email.split("@")[0].title(),
            last_name="Tester",
            role_id=role_id,
            department_id=department_id,
            is_active=active,
            created_at=created,
            updated_at=created,
        )

    async with session_factory() as session:
        async with session.begin():
            session.add_all(
                [
                    DepartmentTable(id=IT, name="IT", description="Information technology"),
                    DepartmentTable(id=HR, name="HR"),
                    DepartmentTable(id=FACILITIES, name="Facilities"),
                ]
            )
            await session.flush()
            session.add_all(
                [
                    CategoryTable(id=NETWORK, name="Network", department_id=IT, is_active=True),
                    CategoryTable(id=PAYROLL, name="Payroll", department_id=HR, is_active=True),
                    CategoryTable(id=HARDWARE, name="Hardware", department_id=FACILITIES, is_active=True),
                    CategoryTable(id=LEGACY, name="Legacy", department_id=FACILITIES, is_active=False),
                ]
            )
            await session.flush()
            session.add_all(
                [
                    user(1, "admin@example.com", 1, None),
                    user(2, "manager@example.com", 2, FACILITIES),
                    user(3, "it.manager@example.com", 2, IT),
                    user(4, "worker@example.com", 3, FACILITIES),
                    user(5, "helper@example.com", 3, FACILITIES),
                    user(6, "gone@example.com", 3, FACILITIES, active=False),
                ]
            )

    return Staff(
        admin=Actor(id=1, role="admin", department_id=None),
        manager=Actor(id=2, role="manager", department_id=FACILITIES),
        other_manager=Actor(id=3, role="manager", department_id=IT),
        worker=Actor(id=4, role="worker", department_id=FACILITIES),
        other_worker=Actor(id=5, role="worker", department_id=FACILITIES),
        inactive_worker_id=6,
    )


@pytest.fixture
def reference_provider(session_factory: async_sessionmaker) -> ReferenceDataProvider:
    return ReferenceDataProvider(ReferenceRepository(session_factory))


@pytest.fixture
def user_repository(session_factory: async_sessionmaker) -> UserRepository:
    return UserRepository(session_factory)


@pytest.fixture
def ticket_repository(session_factory: async_sessionmaker) -> TicketRepository:
    return TicketRepository(session_factory)


@pytest.fixture
def ticket_service(
    ticket_repository: TicketRepository,
    reference_provider: ReferenceDataProvider,
    user_repository: UserRepository,
) -> TicketService:
    return TicketService(ticket_repository, reference_provider, user_repository)


@pytest.fixture
def user_service(user_repository: UserRepository, reference_provider: ReferenceDataProvider) -> UserService:
    return UserService(user_repository, reference_provider, hasher=PasswordHasher(rounds=1))
