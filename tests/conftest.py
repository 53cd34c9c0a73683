from datetime import datetime, timezone

import pytest

from api import create_app
from models import storage
from models.user import Role

from tests.helpers import PASSWORD, FakeClock


@pytest.fixture
def clock():
    return FakeClock(datetime.now(timezone.utc).replace(microsecond=0))


@pytest.fixture
def app(clock):
    """Fresh app on an in-memory SQLite database per test."""
    app = create_app("testing", clock=clock)
    yield app
    with app.app_context():
        storage.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def sessions(app):
    """SessionLifecycle bound to the test app, used inside an app context."""
    with app.app_context():
        yield app.extensions["session_lifecycle"]


@pytest.fixture
def issuer(app):
    return app.extensions["token_issuer"]


@pytest.fixture
def make_user(app):
    """Create a user with any role directly through the service layer."""
    def _make(email="user@example.com", role=Role.STUDENT, password=PASSWORD, first="Test", last="User"):
        with app.app_context():
            sessions = app.extensions["session_lifecycle"]
            user = sessions.create_user(email, password, first, last, role)
            storage.save()
            return user.id
    return _make


@pytest.fixture
def login(client):
    def _login(email, password=PASSWORD):
        r = client.post("/api/v1/auth/login", json={"email": email, "password": password})
        assert r.status_code == 200, r.get_json()
        return r.get_json()
    return _login
