"""Test configuration and fixtures.

Test setup:
1. `.env.test` is loaded before any application module reads settings
2. Services and HTTP routes run against an in-memory credential store and a
   scripted SMS verifier, injected through FastAPI dependency overrides
3. SQL-backed tests (store, chat persistence) use their own SQLite engine
4. WebSocket tests share one TestClient portal so every connection runs on the same loop
"""

import asyncio
from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from itertools import count
from pathlib import Path

from dotenv import load_dotenv

# Load test environment variables
test_env_path = Path(__file__).parent.parent / ".env.test"
load_dotenv(test_env_path, override=True)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from src.config.settings import settings  # noqa: E402
from src.database.base import Base  # noqa: E402
from src.database.dependencies import get_db_session  # noqa: E402
from src.features.auth.dependencies import get_credential_store  # noqa: E402
from src.features.auth.models import RefreshSession  # noqa: E402
from src.features.auth.recovery import PasswordRecoveryService  # noqa: E402
from src.features.auth.registration import UserRegistrationService  # noqa: E402
from src.features.auth.rotation import RefreshRotationService  # noqa: E402
from src.features.auth.service import AuthService  # noqa: E402
from src.features.auth.store import DuplicatePhoneNumber, StorageError  # noqa: E402
from src.features.auth.token_factory import TokenFactory  # noqa: E402
from src.features.chat.connections import ConnectionManager  # noqa: E402
from src.features.chat.dependencies import get_chat_service, get_connection_manager  # noqa: E402
from src.features.chat.exceptions import ChatStorageError, MessageNotFound  # noqa: E402
from src.features.chat.schemas import MessageResponse  # noqa: E402
from src.features.user.models import User, UserRole, UserStatus  # noqa: E402
from src.features.verification.dependencies import get_recovery_verifier, get_register_verifier  # noqa: E402
from src.features.verification.exceptions import VerificationProviderError  # noqa: E402
from src.main import app  # noqa: E402

DEFAULT_PASSWORD = "TestPass123!"
SMS_CODE = "482913"


# Test Doubles


class InMemoryCredentialStore:
    """CredentialStore kept in dictionaries.

    Reads yield to the event loop once, like a database round trip, so
    concurrent rotations really interleave. Deletes are atomic: only one
    caller can remove a given record.
    """

    def __init__(self):
        self.users: dict[int, User] = {}
        self.sessions: dict[int, RefreshSession] = {}
        self._user_ids = count(1)
        self._session_ids = count(1)
        self.fail_reads = False
        self.fail_writes = False

    async def _roundtrip(self) -> None:
        await asyncio.sleep(0)
        if self.fail_reads:
            raise StorageError("store unavailable")

    async def find_by_id(self, user_id: int) -> User | None:
        await self._roundtrip()
        return self.users.get(user_id)

    async def find_by_phone(self, phone_number: str) -> User | None:
        await self._roundtrip()
        return next((u for u in self.users.values() if u.phone_number == phone_number), None)

    async def find_by_id_with_secret(self, user_id: int) -> User | None:
        return await self.find_by_id(user_id)

    async def find_by_phone_with_secret(self, phone_number: str) -> User | None:
        return await self.find_by_phone(phone_number)

    def add(self, user: User) -> User:
        if any(u.phone_number == user.phone_number for u in self.users.values()):
            raise DuplicatePhoneNumber(user.phone_number)
        user.id = next(self._user_ids)
        if user.created_at is None:
            user.created_at = datetime.now(UTC)
        self.users[user.id] = user
        return user

    async def create_user(self, user: User) -> User:
        return self.add(user)

    async def save(self, user: User) -> User:
        if self.fail_writes:
            raise StorageError("write failed")
        self.users[user.id] = user
        return user

    async def create_refresh_session(self, user: User, token: str, expires_at: datetime) -> RefreshSession:
        record = RefreshSession(
            id=next(self._session_ids),
            user_id=user.id,
            token=token,
            expires_at=expires_at,
            created_at=datetime.now(UTC),
        )
        self.sessions[record.id] = record
        return record

    async def find_refresh_session(self, token: str, user_id: int) -> RefreshSession | None:
        await self._roundtrip()
        return next((s for s in self.sessions.values() if s.token == token and s.user_id == user_id), None)

    async def delete_refresh_session(self, session_id: int) -> bool:
        await asyncio.sleep(0)
        return self.sessions.pop(session_id, None) is not None

    async def delete_refresh_session_by_token(self, token: str, user_id: int) -> bool:
        record = next((s for s in self.sessions.values() if s.token == token and s.user_id == user_id), None)
        return record is not None and self.sessions.pop(record.id, None) is not None

    async def delete_refresh_sessions_for_user(self, user_id: int) -> int:
        doomed = [s.id for s in self.sessions.values() if s.user_id == user_id]
        for session_id in doomed:
            del self.sessions[session_id]
        return len(doomed)

    def sessions_for(self, user_id: int) -> list[RefreshSession]:
        return [s for s in self.sessions.values() if s.user_id == user_id]


class FakeSmsVerifier:
    """SMS verifier that accepts one fixed code for numbers it has texted."""

    def __init__(self, code: str = SMS_CODE):
        self.code = code
        self.sent: list[str] = []
        self.checked: list[tuple[str, str]] = []
        self.fail_send = False
        self.fail_check = False

    async def send_code(self, phone_number: str) -> None:
        if self.fail_send:
            raise VerificationProviderError("provider down")
        self.sent.append(phone_number)

    async def check_code(self, phone_number: str, code: str) -> bool:
        self.checked.append((phone_number, code))
        if self.fail_check:
            raise VerificationProviderError("provider down")
        return phone_number in self.sent and code == self.code


class FakeChatService:
    """ChatService stand-in keeping messages in memory."""

    def __init__(self):
        self.messages: dict[int, MessageResponse] = {}
        self.fail_writes = False

    async def create_message(self, sender_id: int, content: str) -> MessageResponse:
        if self.fail_writes:
            raise ChatStorageError()
        message = MessageResponse(
            id=len(self.messages) + 1,
            content=content,
            sender_id=sender_id,
            author_name="Test",
            author_last_name="User",
            pinned=False,
            created_at=datetime.now(UTC),
        )
        self.messages[message.id] = message
        return message

    async def pin_message(self, message_id: int, pinned: bool) -> MessageResponse:
        if message_id not in self.messages:
            raise MessageNotFound()
        message = self.messages[message_id].model_copy(update={"pinned": pinned})
        self.messages[message_id] = message
        return message

    async def list_messages(self, limit: int = 20, before: datetime | None = None) -> list[MessageResponse]:
        messages = [m for m in self.messages.values() if before is None or m.created_at < before]
        return messages[-limit:]


class StubSession:
    """Session stand-in for routes that only commit."""

    def __init__(self):
        self.commits = 0

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        pass


# Collaborators


@pytest.fixture
def store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def verifier() -> FakeSmsVerifier:
    return FakeSmsVerifier()


@pytest.fixture
def tokens() -> TokenFactory:
    return TokenFactory.from_settings(settings)


@pytest.fixture
def stub_session() -> StubSession:
    return StubSession()


@pytest.fixture
def chat_service() -> FakeChatService:
    return FakeChatService()


@pytest.fixture
def connection_manager() -> ConnectionManager:
    return ConnectionManager()


@pytest.fixture
def rotation(store, tokens) -> RefreshRotationService:
    return RefreshRotationService(store, tokens)


@pytest.fixture
def auth_service(store, rotation, tokens) -> AuthService:
    return AuthService(store, rotation, tokens)


@pytest.fixture
def recovery_service(store, verifier, tokens) -> PasswordRecoveryService:
    return PasswordRecoveryService(store, verifier, tokens)


@pytest.fixture
def registration_service(store, verifier) -> UserRegistrationService:
    return UserRegistrationService(store, verifier)


# SQL Session


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Fresh in-memory SQLite schema per test."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def db_session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(db_session_factory) -> AsyncGenerator[AsyncSession]:
    async with db_session_factory() as session:
        yield session


# Mock Database Initialization


@pytest.fixture(autouse=True)
def mock_db_initialization(monkeypatch):
    """Mock init_db and close_db so lifespan doesn't interfere with tests."""
    from src.database import client as db_module

    async def mock_init_db():
        pass

    async def mock_close_db():
        pass

    monkeypatch.setattr(db_module, "init_db", mock_init_db)
    monkeypatch.setattr(db_module, "close_db", mock_close_db)


# FastAPI Client & Dependency Overrides


@pytest.fixture(autouse=True)
def override_dependencies(store, verifier, chat_service, connection_manager, stub_session):
    """Route every request through the in-memory collaborators of the current test."""

    async def _get_test_session():
        yield stub_session

    app.dependency_overrides[get_db_session] = _get_test_session
    app.dependency_overrides[get_credential_store] = lambda: store
    app.dependency_overrides[get_register_verifier] = lambda: verifier
    app.dependency_overrides[get_recovery_verifier] = lambda: verifier
    app.dependency_overrides[get_chat_service] = lambda: chat_service
    app.dependency_overrides[get_connection_manager] = lambda: connection_manager
    yield
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient]:
    """Create an async HTTP test client (unauthenticated)."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def ws_client():
    """Sync client for WebSocket tests; one portal, so one event loop for all sockets."""
    with TestClient(app) as test_client:
        yield test_client


# Test User Factories


def new_user(
    phone_number: str,
    password: str = DEFAULT_PASSWORD,
    name: str = "Test",
    last_name: str = "User",
    role: UserRole = UserRole.NEIGHBOR,
    status: UserStatus = UserStatus.ACTIVE,
    **kwargs,
) -> User:
    """Unsaved user with a hashed password."""
    return User(
        phone_number=phone_number,
        hashed_password=User.hash_password(password),
        name=name,
        last_name=last_name,
        role=role,
        status=status,
        created_at=datetime.now(UTC),
        **kwargs,
    )


@pytest_asyncio.fixture
async def make_user(store: InMemoryCredentialStore):
    """Factory fixture to create test users with custom fields.

    Usage:
        user = await make_user()                                   # ACTIVE neighbor
        admin = await make_user(role=UserRole.ADMIN)               # admin
        pending = await make_user(status=UserStatus.PENDING_APPROVAL)
    """
    counter = count(1)

    async def _factory(
        phone_number=None,
        password=DEFAULT_PASSWORD,
        name="Test",
        last_name="User",
        role=UserRole.NEIGHBOR,
        status=UserStatus.ACTIVE,
        **kwargs,
    ) -> User:
        if phone_number is None:
            phone_number = f"+5690000{next(counter):04d}"
        user = new_user(phone_number, password, name, last_name, role, status, **kwargs)
        return await store.create_user(user)

    return _factory


@pytest.fixture
def auth_headers(tokens):
    """Build a Bearer header carrying a real access token for a user."""

    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {tokens.issue_access_token(user)}"}

    return _headers
