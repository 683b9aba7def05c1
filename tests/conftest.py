"""
Pytest configuration and fixtures for NextCap tests.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

# Set test environment variables before importing config
# Use a SEPARATE test database to avoid polluting development data
os.environ['ENVIRONMENT'] = 'development'
os.environ['DB_HOST'] = os.environ.get('TEST_DB_HOST', 'localhost')
os.environ['DB_PORT'] = os.environ.get('TEST_DB_PORT', '5432')
os.environ['POSTGRES_DB'] = 'nextcap_test'
os.environ['POSTGRES_USER'] = os.environ.get('TEST_POSTGRES_USER', 'nextcap')
os.environ['POSTGRES_PASSWORD'] = os.environ.get('TEST_POSTGRES_PASSWORD', 'nextcap')
os.environ['ADMIN_PASSWORD'] = 'test-admin-secret'

from license import LicenseKeyCollisionError, LicenseRecord  # noqa: E402

ADMIN_PASSWORD = 'test-admin-secret'
EPOCH = datetime(2025, 1, 1, tzinfo=timezone.utc)


class InMemoryLicenseStore:
    """LicenseStore backed by a dict, mirroring LicenseRepository semantics."""

    def __init__(self):
        self.records: Dict[int, LicenseRecord] = {}
        self._next_id = 1
        self._tick = 0
        self.taken_keys: List[str] = []  # keys that key_exists() reports as taken

    def add(self, key: str, holder_name: str = "Ada", email: str = "ada@example.com",
            is_active: bool = True, expires_at: Optional[datetime] = None) -> LicenseRecord:
        record = self.create_license(key, holder_name, email, expires_at=expires_at)
        if not is_active:
            self.set_active(record.id, False)
        return self.records[record.id]

    def list_licenses(self) -> List[LicenseRecord]:
        return sorted(
            self.records.values(),
            key=lambda r: (r.created_at, r.id),
            reverse=True,
        )

    def get_license_by_key(self, key: str) -> Optional[LicenseRecord]:
        for record in self.records.values():
            if record.key == key:
                return record
        return None

    def key_exists(self, key: str) -> bool:
        return key in self.taken_keys or self.get_license_by_key(key) is not None

    def create_license(self, key, holder_name, email, expires_at=None, created_at=None):
        if self.get_license_by_key(key) is not None:
            raise LicenseKeyCollisionError(key)
        # Strictly increasing timestamps so ordering is deterministic
        self._tick += 1
        record = LicenseRecord(
            id=self._next_id,
            key=key,
            holder_name=holder_name,
            email=email,
            is_active=True,
            expires_at=expires_at,
            created_at=EPOCH + timedelta(seconds=self._tick),
        )
        self.records[record.id] = record
        self._next_id += 1
        return record

    def set_active(self, license_id: int, is_active: bool) -> bool:
        record = self.records.get(license_id)
        if record is None:
            return False
        self.records[license_id] = LicenseRecord(
            id=record.id, key=record.key, holder_name=record.holder_name,
            email=record.email, is_active=is_active,
            expires_at=record.expires_at, created_at=record.created_at,
        )
        return True

    def delete_license(self, license_id: int) -> bool:
        return self.records.pop(license_id, None) is not None


@pytest.fixture
def store():
    return InMemoryLicenseStore()


@pytest.fixture
def client(store):
    """TestClient with the license repository replaced by the in-memory store.

    The client is not used as a context manager, so the lifespan (migrations,
    connection pool) never runs.
    """
    from fastapi.testclient import TestClient
    from api import app
    from services import get_license_repository

    app.dependency_overrides[get_license_repository] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return {"X-Admin-Password": ADMIN_PASSWORD}


@pytest.fixture(scope="session")
def qapp():
    """Create the QCoreApplication instance for worker tests."""
    from PySide6.QtCore import QCoreApplication
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    yield app


@pytest.fixture(scope='session')
def setup_test_database():
    """Create the test database if needed and migrate it to head."""
    import psycopg2
    from psycopg2.extensions import ISOLATION_LEVEL_AUTOCOMMIT
    from config import get_config

    db_config = get_config().database
    conn_params = {
        'host': db_config.host,
        'port': db_config.port,
        'user': db_config.user,
        'password': db_config.password,
        'dbname': 'postgres',
    }

    try:
        conn = psycopg2.connect(**conn_params)
    except psycopg2.OperationalError as e:
        pytest.skip(f"Could not connect to PostgreSQL: {e}")

    conn.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)
    cursor = conn.cursor()
    cursor.execute("SELECT 1 FROM pg_database WHERE datname = %s", (db_config.name,))
    if not cursor.fetchone():
        cursor.execute(f"CREATE DATABASE {db_config.name}")
    cursor.close()
    conn.close()

    from migrate import run_migrations
    if not run_migrations():
        pytest.skip("Could not migrate the test database")
    yield db_config.name


@pytest.fixture
def db_manager(setup_test_database):
    """Provide a database manager with an empty licenses table."""
    from database import DatabaseManager

    manager = DatabaseManager()
    manager.initialize()
    with manager.get_cursor() as cursor:
        cursor.execute("TRUNCATE licenses RESTART IDENTITY")
    yield manager
    manager.close()
