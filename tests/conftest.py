import os
import sys
import uuid
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from fastapi import HTTPException, status
from fastapi.testclient import TestClient
from sqlalchemy import create_engine

# Ensure the service package is importable regardless of repo root cwd
SERVICE_ROOT = Path(__file__).resolve().parents[1]
if str(SERVICE_ROOT) not in sys.path:
    sys.path.insert(0, str(SERVICE_ROOT))


@pytest.fixture(scope="session")
def test_db_url(tmp_path_factory) -> str:
    tmp_dir = tmp_path_factory.mktemp("teamhub_db")
    db_path = tmp_dir / "test_teamhub.db"
    return f"sqlite:///{db_path}"


@pytest.fixture(scope="session", autouse=True)
def migrated_db(test_db_url: str):
    # Set TEAMHUB_DATABASE_URL for alembic env and service code
    os.environ["TEAMHUB_DATABASE_URL"] = test_db_url
    os.environ["APP_ENV"] = "test"
    os.environ.pop("TEAMHUB_REDIS_URL", None)
    os.environ.pop("INTERNAL_GATEWAY_SECRET", None)
    cfg = Config(str(SERVICE_ROOT / "alembic.ini"))
    # Pin script_location explicitly to avoid picking up wrong migrations when running from repo root
    cfg.set_main_option("script_location", str(SERVICE_ROOT / "alembic"))
    command.upgrade(cfg, "head")
    yield test_db_url


@pytest.fixture(scope="session")
def sync_engine(migrated_db: str):
    engine = create_engine(migrated_db)
    yield engine
    engine.dispose()


@pytest.fixture(autouse=True)
def clean_tables(sync_engine):
    yield
    from teamhub_service.database import Base

    with sync_engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


class FakeIdentityProvider:
    """Accounts live in memory; a token is ``token-<user id>``."""

    def __init__(self):
        self.accounts: dict[str, tuple[str, str]] = {}
        self.signed_out: list[str] = []
        self.deleted: list[str] = []

    async def verify_token(self, token: str) -> str:
        if not token.startswith("token-"):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
        return token[len("token-") :]

    async def sign_in(self, email: str, password: str):
        from teamhub_service.identity import SignInResult

        account = self.accounts.get(email)
        if account is None or account[1] != password:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="INVALID_LOGIN_CREDENTIALS")
        user_id = account[0]
        return SignInResult(user_id=user_id, id_token=f"token-{user_id}", refresh_token="refresh", expires_in=3600)

    async def sign_up(self, email: str, password: str, metadata: dict) -> str:
        from teamhub_service.exceptions import ConflictException

        if email in self.accounts:
            raise ConflictException(f"EMAIL_EXISTS: {email}")
        user_id = f"uid-{uuid.uuid4().hex[:12]}"
        self.accounts[email] = (user_id, password)
        return user_id

    async def sign_out(self, user_id: str) -> None:
        self.signed_out.append(user_id)

    async def delete_account(self, user_id: str) -> None:
        self.deleted.append(user_id)
        self.accounts = {email: acc for email, acc in self.accounts.items() if acc[0] != user_id}


class FakeAssistantClient:
    def __init__(self):
        self.calls: list[tuple[int, str]] = []
        self.fail = False

    async def complete(self, conversation_id: int, message: str) -> str:
        from teamhub_service.exceptions import UpstreamServiceException

        self.calls.append((conversation_id, message))
        if self.fail:
            raise UpstreamServiceException("AI assistant request failed: Unexpected status 503")
        return f"Answer to: {message}"


@pytest.fixture()
def identity() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture()
def assistant_client() -> FakeAssistantClient:
    return FakeAssistantClient()


@pytest.fixture()
def client(migrated_db: str, identity: FakeIdentityProvider, assistant_client: FakeAssistantClient):
    # Import after TEAMHUB_DATABASE_URL is set and migrations have run
    from teamhub_service.assistant import get_assistant_client
    from teamhub_service.identity import get_identity_provider
    from teamhub_service.main import app

    app.dependency_overrides[get_identity_provider] = lambda: identity
    app.dependency_overrides[get_assistant_client] = lambda: assistant_client

    with TestClient(app) as c:
        yield c

    # Cleanup overrides
    app.dependency_overrides.pop(get_identity_provider, None)
    app.dependency_overrides.pop(get_assistant_client, None)


class Seeder:
    """Writes fixture rows straight into the test database."""

    def __init__(self, engine):
        self.engine = engine

    def user(self, user_id: str, role: str = "player", full_name: str | None = None, **profile) -> str:
        from teamhub_service.models import PlayerProfile, User

        with self.engine.begin() as conn:
            conn.execute(
                User.__table__.insert().values(
                    id=user_id,
                    email=f"{user_id}@example.com",
                    full_name=full_name or user_id.replace("-", " ").title(),
                    role=role,
                )
            )
            if role == "player":
                conn.execute(PlayerProfile.__table__.insert().values(user_id=user_id, **profile))
        return user_id

    def team(self, name: str) -> int:
        from teamhub_service.models import Team

        with self.engine.begin() as conn:
            res = conn.execute(Team.__table__.insert().values(name=name))
        return res.inserted_primary_key[0]

    def member(self, team_id: int, user_id: str, role: str = "player") -> None:
        from teamhub_service.models import TeamMembership

        with self.engine.begin() as conn:
            conn.execute(TeamMembership.__table__.insert().values(team_id=team_id, user_id=user_id, role=role))

    def count(self, table_name: str, **where) -> int:
        from sqlalchemy import func, select

        from teamhub_service.database import Base

        table = Base.metadata.tables[table_name]
        stmt = select(func.count()).select_from(table)
        for column, value in where.items():
            stmt = stmt.where(table.c[column] == value)
        with self.engine.connect() as conn:
            return conn.execute(stmt).scalar_one()


@pytest.fixture()
def seed(sync_engine) -> Seeder:
    return Seeder(sync_engine)


def as_user(user_id: str) -> dict[str, str]:
    return {"X-User-Id": user_id}


@pytest.fixture()
def auth():
    return as_user
