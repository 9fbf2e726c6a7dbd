"""
Pytest fixtures shared across all test modules.
Uses an in-memory SQLite database with StaticPool so all connections
share a single in-memory DB; no real Postgres required for tests.
VAPID and device keys are generated fresh for each session.
"""

import os

from cryptography.hazmat.primitives.asymmetric import ec

from habitpush.tests.keys import Device, b64url, public_point

VAPID_KEY = ec.generate_private_key(ec.SECP256R1())

# Set env vars BEFORE any habitpush module is imported
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-min-32-chars-long!!"
os.environ["ALGORITHM"] = "HS256"
os.environ["VAPID_PRIVATE_KEY"] = b64url(VAPID_KEY.private_numbers().private_value.to_bytes(32, "big"))
os.environ["VAPID_PUBLIC_KEY"] = b64url(public_point(VAPID_KEY))
os.environ["VAPID_SUBJECT"] = "mailto:ops@biohabits.test"
os.environ["DISPATCH_SECRET"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

# Import habitpush modules AFTER env vars are set
from habitpush.database import Base, get_db  # noqa: E402
from habitpush.main import app  # noqa: E402

# Single shared in-memory SQLite engine. StaticPool ensures all
# connections share the same DB instance.
engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def setup_db():
    """Create tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


@pytest.fixture()
def vapid_key() -> ec.EllipticCurvePrivateKey:
    return VAPID_KEY


@pytest.fixture()
def device() -> Device:
    return Device()
