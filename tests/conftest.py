"""
Test configuration for the radiology center tracker.
"""
import os

# Keep the application engine in memory so test runs leave no files behind
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from concurrent.futures import Executor, Future
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from radcenter.client.api import ApiClient
from radcenter.client.context import AppContext
from radcenter.client.mock import MockBackend
from radcenter.client.storage import LocalStorage
from radcenter.client.sync import BackgroundSync, ImmediateExecutor
from radcenter.client.ui import HeadlessUI
from radcenter.database import Base, get_db
from radcenter.main import app
from radcenter.store.migrations import migrate

# Test database URL
TEST_DATABASE_URL = "sqlite://"

# Create test database engine
engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Create test session factory
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class DeferredExecutor(Executor):
    """
    Holds submitted jobs until run_all() so tests can look at the state
    before any backend call has happened.
    """

    def __init__(self):
        self.jobs = []

    def submit(self, fn, *args, **kwargs) -> Future:
        future: Future = Future()
        self.jobs.append((future, fn, args, kwargs))
        return future

    def run_all(self) -> None:
        while self.jobs:
            future, fn, args, kwargs = self.jobs.pop(0)
            future.set_result(fn(*args, **kwargs))


@pytest.fixture(scope="function")
def db():
    """
    Create a fresh, migrated database (with the seeded admin) for each test.
    """
    migrate(engine, TestingSessionLocal)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

    # Drop tables after test
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """
    Create a test client with a test database session.
    """
    def override_get_db():
        try:
            yield db
        finally:
            pass

    # Override the get_db dependency
    app.dependency_overrides[get_db] = override_get_db

    # Create test client
    with TestClient(app) as client:
        yield client

    # Remove dependency override
    app.dependency_overrides = {}


@pytest.fixture
def ui():
    return HeadlessUI()


@pytest.fixture
def mock_backend():
    return MockBackend()


def make_context(api: ApiClient, ui: HeadlessUI, executor: Executor = None) -> AppContext:
    return AppContext(
        api=api,
        ui=ui,
        storage=LocalStorage(),
        sync=BackgroundSync(executor or ImmediateExecutor()),
    )


@pytest.fixture
def ctx(mock_backend, ui):
    """
    Client context against the in-memory mock backend, data loaded, with
    background writes run inline.
    """
    context = make_context(ApiClient(mock=mock_backend), ui)
    context.load_data()
    return context


@pytest.fixture
def deferred_ctx(mock_backend, ui):
    """
    Mock backend context whose background writes wait for
    `deferred_ctx.sync.executor.run_all()`.
    """
    context = make_context(ApiClient(mock=mock_backend), ui, DeferredExecutor())
    context.load_data()
    return context


@pytest.fixture
def backend_ctx(client, ui):
    """
    Client context talking to the FastAPI app through the test client.
    """
    api = ApiClient(backend_url="http://testserver/exec", http_client=client)
    context = make_context(api, ui)
    context.load_data()
    return context


@pytest.fixture
def login_as():
    """
    Log a staff user into a context and return the landing page.
    """
    def login(context: AppContext, user_id: str, pin: str):
        page = context.auth.login_staff(user_id, pin)
        assert context.state.user is not None, context.ui.alerts
        return page
    return login
