"""Pytest fixtures for testing."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./reviewgate_test.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256")

from datetime import datetime
from typing import AsyncGenerator
from uuid import UUID

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from reviewgate.main import app
from reviewgate.common.clock import utc_now
from reviewgate.common.database import Base, get_db
from reviewgate.common.rate_limit import limiter
from reviewgate.domain.auth_service import hash_password
from reviewgate.domain.token_codec import create_secret_info
from reviewgate.domain.token_policy import calculate_expiry
from reviewgate.integrations.blob_store import LocalBlobStore, get_blob_store
from reviewgate.integrations.notifier import Notifier, get_notifier
from reviewgate.models.access_token import AccessToken
from reviewgate.models.client_folder import ClientFolder, ClientUpload
from reviewgate.models.enums import TokenKind, UserRole
from reviewgate.models.project import Project, ProjectVersion
from reviewgate.models.user import User


PASSWORD = "password123"


class RecordingNotifier(Notifier):
    """Notifier double that records every message; can be told to fail."""

    def __init__(self):
        self.sent: list[tuple[str, dict]] = []
        self.fail = False

    async def _record(self, name: str, **payload) -> None:
        self.sent.append((name, payload))
        if self.fail:
            raise RuntimeError("mail relay unavailable")

    def of_type(self, name: str) -> list[dict]:
        return [payload for sent_name, payload in self.sent if sent_name == name]

    async def send_approval_notification(self, project_id, project_title, version_number, approved_by):
        await self._record(
            "approval",
            project_id=project_id,
            project_title=project_title,
            version_number=version_number,
            approved_by=approved_by,
        )

    async def send_reminder(self, to, project_id, project_title, review_url, stage):
        await self._record(
            "reminder", to=to, project_id=project_id, review_url=review_url, stage=stage
        )

    async def send_password_reset(self, to, reset_url):
        await self._record("password_reset", to=to, reset_url=reset_url)

    async def send_client_upload_notification(self, folder_id, folder_name, filename):
        await self._record(
            "client_upload", folder_id=folder_id, folder_name=folder_name, filename=filename
        )


class FailingBlobStore(LocalBlobStore):
    """Blob store whose deletes always fail."""

    async def delete(self, key: str) -> bool:
        raise OSError("blob backend unavailable")


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def blob_store(tmp_path) -> LocalBlobStore:
    return LocalBlobStore(str(tmp_path / "blobs"))


@pytest.fixture(scope="function")
async def test_db(tmp_path, notifier, blob_store):
    """Create a fresh SQLite database and wire the app to it."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with async_session_maker() as session:
            yield session

    # Override dependencies
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_blob_store] = lambda: blob_store

    # Disable rate limiting in tests
    limiter.enabled = False

    yield async_session_maker

    # Cleanup
    app.dependency_overrides.clear()
    limiter.enabled = False
    limiter.reset()

    await engine.dispose()


@pytest.fixture
def failing_blob_store(test_db, tmp_path) -> FailingBlobStore:
    """Swap in a blob store whose deletes always fail."""
    store = FailingBlobStore(str(tmp_path / "blobs"))
    app.dependency_overrides[get_blob_store] = lambda: store
    return store


@pytest.fixture
async def client(test_db) -> AsyncGenerator[AsyncClient, None]:
    """Create test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client


@pytest.fixture
def rate_limit_test():
    """Enable the limiter for one test with clean counters."""
    original_enabled = limiter.enabled
    limiter.enabled = True
    limiter.reset()

    yield limiter

    limiter.enabled = original_enabled
    limiter.reset()


@pytest.fixture
async def session(test_db) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session (no transaction open)."""
    async with test_db() as session:
        yield session


async def _add(test_db, instance):
    """Insert a row through a short-lived session and return it detached."""
    async with test_db() as session:
        session.add(instance)
        await session.commit()
        await session.refresh(instance)
    return instance


@pytest.fixture
async def reload(test_db):
    """Read a row back from the store through a fresh session."""
    async def _reload(model, row_id: UUID):
        async with test_db() as session:
            return await session.get(model, row_id)

    return _reload


async def _create_user(test_db, username: str, role: UserRole) -> User:
    return await _add(
        test_db,
        User(
            username=username,
            email=f"{username}@example.com",
            password_hash=hash_password(PASSWORD),
            role=role.value,
        ),
    )


@pytest.fixture
async def user_a(test_db) -> User:
    """Engineer A."""
    return await _create_user(test_db, "user_a", UserRole.ENGINEER)


@pytest.fixture
async def user_b(test_db) -> User:
    """Engineer B."""
    return await _create_user(test_db, "user_b", UserRole.ENGINEER)


@pytest.fixture
async def admin_user(test_db) -> User:
    return await _create_user(test_db, "admin_user", UserRole.ADMIN)


async def _login(client: AsyncClient, username: str) -> str:
    response = await client.post(
        "/api/v1/auth/login",
        json={"username": username, "password": PASSWORD}
    )
    assert response.status_code == 200
    return response.json()["data"]["access_token"]


@pytest.fixture
async def user_a_jwt(client: AsyncClient, user_a: User) -> str:
    """Get session token for user A."""
    return await _login(client, "user_a")


@pytest.fixture
async def user_b_jwt(client: AsyncClient, user_b: User) -> str:
    """Get session token for user B."""
    return await _login(client, "user_b")


@pytest.fixture
async def admin_jwt(client: AsyncClient, admin_user: User) -> str:
    return await _login(client, "admin_user")


@pytest.fixture
async def create_project(test_db):
    """Factory to create projects directly in the store."""
    async def _create_project(
        owner: User,
        title: str = "Album Master",
        revision_limit: int | None = None,
        versions: int = 0,
        **fields,
    ) -> Project:
        project = await _add(
            test_db,
            Project(
                owner_id=owner.id,
                title=title,
                revision_limit=revision_limit,
                revisions_used=versions,
                **fields,
            ),
        )
        for number in range(1, versions + 1):
            await _add(
                test_db,
                ProjectVersion(
                    project_id=project.id,
                    version_number=number,
                    storage_key=f"projects/{project.id}/v{number}.wav",
                    original_filename=f"mix_v{number}.wav",
                ),
            )
        return project

    return _create_project


@pytest.fixture
async def create_folder(test_db):
    """Factory to create client folders directly in the store."""
    async def _create_folder(owner: User, name: str = "Client Stems") -> ClientFolder:
        return await _add(
            test_db,
            ClientFolder(owner_id=owner.id, name=name, client_email="client@example.com"),
        )

    return _create_folder


@pytest.fixture
async def create_upload(test_db):
    """Factory to create upload records directly in the store."""
    async def _create_upload(
        folder: ClientFolder,
        uploaded_by_type: str,
        uploaded_by_identifier: str,
        filename: str = "vocals.wav",
    ) -> ClientUpload:
        return await _add(
            test_db,
            ClientUpload(
                folder_id=folder.id,
                uploaded_by_type=uploaded_by_type,
                uploaded_by_identifier=uploaded_by_identifier,
                original_filename=filename,
                display_name=filename,
                storage_key=f"clients/{folder.id}/{filename}",
            ),
        )

    return _create_upload


@pytest.fixture
async def create_bearer_token(test_db):
    """Factory to create stored bearer tokens with arbitrary lifecycle state."""
    async def _create_token(
        kind: TokenKind,
        subject_id: UUID,
        expires_at: datetime | None = None,
        revoked_at: datetime | None = None,
        consumed_at: datetime | None = None,
        created_by_user_id: UUID | None = None,
    ) -> tuple[str, AccessToken]:
        """Create a token and return (raw_secret, token_model)."""
        secret_info = create_secret_info()
        now = utc_now()
        token = await _add(
            test_db,
            AccessToken(
                kind=kind.value,
                subject_id=subject_id,
                secret_digest=secret_info.digest,
                issued_at=now,
                expires_at=expires_at or calculate_expiry(kind, now),
                revoked_at=revoked_at,
                consumed_at=consumed_at,
                created_by_user_id=created_by_user_id,
            ),
        )
        return secret_info.secret, token

    return _create_token
