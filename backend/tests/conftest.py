import os
import tempfile
from pathlib import Path

# Point the app at a throwaway SQLite file before anything imports its settings.
_DB_DIR = Path(tempfile.mkdtemp(prefix="prep_tracker_tests_"))
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR / 'test.db'}"
os.environ["ENV"] = "dev"

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from prep_tracker.config import settings
from prep_tracker.database import drop_db_and_tables, engine
from prep_tracker.main import app


@pytest.fixture
def client():
    """A client bound to a freshly created and seeded database."""
    drop_db_and_tables()
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db(client):
    with Session(engine) as session:
        yield session


def auth_headers(token: str) -> dict:
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def admin_headers(client):
    r = client.post('/api/auth/login', json={'email': settings.ADMIN_EMAIL, 'password': settings.ADMIN_PASSWORD})
    assert r.status_code == 200
    return auth_headers(r.json()['token'])


@pytest.fixture
def register_user(client):
    """Factory registering a learner and returning its auth headers."""
    def _register(email='learner@example.com', name='Learner', password='secret1'):
        r = client.post('/api/auth/register', json={'name': name, 'email': email, 'password': password})
        assert r.status_code == 201, r.text
        return auth_headers(r.json()['token'])
    return _register


@pytest.fixture
def user_headers(register_user):
    return register_user()
