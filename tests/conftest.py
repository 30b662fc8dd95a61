import os
import uuid

# Settings читаются при импорте docspace.core.config
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./docspace_test.db"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["DB_AUTO_CREATE"] = "false"

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

import docspace.db.models  # noqa: F401
from docspace.core.db import Base
from docspace.domains.workspace.access import ScopeRole
from docspace.domains.workspace.entities import Scope, ScopeKind
from docspace.domains.workspace.locks import DocumentLocks


class StaticAccessResolver:
    """Роли задаются тестом напрямую"""

    def __init__(self):
        self.roles = {}

    def grant(self, scope: Scope, user_id: uuid.UUID, role: ScopeRole) -> None:
        self.roles[(scope, user_id)] = role

    async def resolve_role(self, actor_id: uuid.UUID, scope: Scope) -> ScopeRole:
        if scope.kind == ScopeKind.USER:
            return ScopeRole.OWNER if actor_id == scope.owner_id else ScopeRole.NONE
        return self.roles.get((scope, actor_id), ScopeRole.NONE)


class RecordingNotifier:
    def __init__(self):
        self.events = []

    async def send(self, event):
        self.events.append(event)


class FailingNotifier:
    async def send(self, event):
        raise RuntimeError("mail server is down")


def database_url(path) -> str:
    return f"sqlite+aiosqlite:///{path / 'docspace.db'}"


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    # Отдельный файл БД на тест; NullPool - новое соединение на каждую сессию
    engine = create_async_engine(database_url(tmp_path), poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def resolver():
    return StaticAccessResolver()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def locks():
    return DocumentLocks()


@pytest.fixture
def owner_id():
    return uuid.uuid4()


@pytest.fixture
def user_scope(owner_id):
    return Scope(ScopeKind.USER, owner_id)


@pytest.fixture
def team_scope():
    return Scope(ScopeKind.TEAM, uuid.uuid4())


@pytest.fixture
def team_admin(resolver, team_scope):
    user_id = uuid.uuid4()
    resolver.grant(team_scope, user_id, ScopeRole.ADMIN)
    return user_id


@pytest.fixture
def team_member(resolver, team_scope):
    user_id = uuid.uuid4()
    resolver.grant(team_scope, user_id, ScopeRole.MEMBER)
    return user_id
