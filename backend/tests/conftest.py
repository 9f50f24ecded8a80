import base64
import os

# Key material must exist before burnafter.config builds its Settings
os.environ.setdefault("ENCRYPTION_KEY", base64.b64encode(os.urandom(32)).decode())

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import burnafter.main as main_module  # noqa: E402
from burnafter.config import settings  # noqa: E402
from burnafter.database import Base, create_db_engine, get_db  # noqa: E402
from burnafter.main import app  # noqa: E402
from burnafter.middleware.rate_limit import limiter  # noqa: E402
from burnafter.services.crypto_utils import SecretCipher  # noqa: E402
from burnafter.services.secret_service import SecretService  # noqa: E402
from burnafter.services.secret_store import InMemorySecretStore, SqlSecretStore  # noqa: E402
from tests.test_utils import FrozenClock  # noqa: E402


@pytest.fixture
def db_session():
    """Create a fresh in-memory database for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def file_session_factory(tmp_path):
    """Session factory over a file-backed SQLite database, one connection per session.

    Needed when several threads must each hold their own connection.
    """
    engine = create_db_engine(f"sqlite:///{tmp_path / 'race.db'}")
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        engine.dispose()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def cipher():
    return SecretCipher(os.urandom(32))


@pytest.fixture
def memory_store(clock):
    return InMemorySecretStore(clock=clock)


@pytest.fixture
def sql_store(db_session, clock):
    return SqlSecretStore(db_session, clock=clock)


@pytest.fixture(params=["memory", "sql"])
def store(request, clock):
    """Each store implementation in turn."""
    if request.param == "memory":
        return InMemorySecretStore(clock=clock)
    return SqlSecretStore(request.getfixturevalue("db_session"), clock=clock)


@pytest.fixture
def service(store, cipher, clock):
    return SecretService(store=store, cipher=cipher, settings=settings, clock=clock)


@pytest.fixture
def client(db_session):
    """Create a test client with the test database and disabled rate limiting."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    # Disable rate limiting for tests
    limiter.enabled = False

    # Override the engine used by check_database_tables() so it checks the test database
    original_engine = main_module.engine
    main_module.engine = db_session.get_bind()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    limiter.enabled = True
    main_module.engine = original_engine
