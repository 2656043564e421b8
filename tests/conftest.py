"""Test configuration."""
import json
import os
from collections.abc import AsyncIterator, Callable, Iterator
from pathlib import Path
from typing import Any

from alembic import command
from alembic.config import Config
import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

# --- Config env par défaut
os.environ.setdefault("DATABASE_URL", "sqlite:///./payrecon_test.db")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("KKIA_WEBHOOK_SECRET", "test-webhook-secret")
os.environ.setdefault("CLIENT_API_KEY", "test-client-key")

from payrecon.config import Settings, get_settings  # noqa: E402
from payrecon.db import get_db  # noqa: E402
from payrecon.main import app  # noqa: E402
from payrecon.services.kkiapay import KkiapayClient, get_verification_client  # noqa: E402

ROOT = Path(__file__).resolve().parents[1]
DB_PATH = Path("./payrecon_test.db")

WEBHOOK_SECRET = "test-webhook-secret"
CLIENT_KEY = "test-client-key"


def _run_migrations() -> None:
    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "alembic"))
    cfg.set_main_option("sqlalchemy.url", os.environ["DATABASE_URL"])
    command.upgrade(cfg, "head")


# --- (1) Reset DB fichier au début de la session
if DB_PATH.exists():
    DB_PATH.unlink()

engine = create_engine(
    os.environ["DATABASE_URL"],
    connect_args={"check_same_thread": False},
    future=True,
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False,
                                   future=True, expire_on_commit=False)

# --- (2) Construire le schéma via Alembic uniquement
_run_migrations()


class FakeKkiapay:
    """In-memory stand-in for the Kkiapay status endpoint."""

    def __init__(self) -> None:
        self.results: dict[str, Any] = {}
        self.requests: list[httpx.Request] = []

    def set_result(self, transaction_id: str, payload: Any, status_code: int = 200) -> None:
        self.results[transaction_id] = (status_code, payload)

    def fail(self, transaction_id: str) -> None:
        self.results[transaction_id] = ConnectionError

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        transaction_id = json.loads(request.content).get("transactionId")
        outcome = self.results.get(transaction_id)
        if outcome is None or outcome is ConnectionError:
            raise httpx.ConnectError("kkiapay unreachable", request=request)
        status_code, payload = outcome
        return httpx.Response(status_code, json=payload)

    @property
    def verified_ids(self) -> list[str]:
        return [json.loads(r.content)["transactionId"] for r in self.requests]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        app_env="test",
        database_url=os.environ["DATABASE_URL"],
        kkia_public_key="pk-test",
        kkia_private_key="pv-test",
        kkia_secret_key="sk-test",
        kkia_sandbox=True,
        kkia_webhook_secret=WEBHOOK_SECRET,
        client_api_key=CLIENT_KEY,
        preserve_success_status=True,
    )


@pytest.fixture
def fake_kkiapay() -> FakeKkiapay:
    return FakeKkiapay()


@pytest.fixture
def make_kkiapay_client(fake_kkiapay: FakeKkiapay) -> Callable[[Settings], KkiapayClient]:
    def _factory(settings: Settings) -> KkiapayClient:
        return KkiapayClient(settings, transport=httpx.MockTransport(fake_kkiapay.handler))

    return _factory


@pytest.fixture
def db_session() -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture(autouse=True)
def override_dependencies(
    db_session: Session,
    settings: Settings,
    make_kkiapay_client: Callable[[Settings], KkiapayClient],
) -> Iterator[None]:
    def _get_db() -> Iterator[Session]:
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_verification_client] = lambda: make_kkiapay_client(settings)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def use_settings(make_kkiapay_client: Callable[[Settings], KkiapayClient]) -> Callable[..., Settings]:
    """Swap the injected settings for a copy with some fields changed."""

    def _apply(base: Settings, **changes: Any) -> Settings:
        updated = base.model_copy(update=changes)
        app.dependency_overrides[get_settings] = lambda: updated
        app.dependency_overrides[get_verification_client] = lambda: make_kkiapay_client(updated)
        return updated

    return _apply


@pytest.fixture
async def client() -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as async_client:
        yield async_client


@pytest.fixture
def webhook_headers() -> dict[str, str]:
    return {"Content-Type": "application/json", "x-kkiapay-secret": WEBHOOK_SECRET}


@pytest.fixture
def client_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {CLIENT_KEY}"}


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"
