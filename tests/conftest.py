"""
Shared pytest fixtures for the Hackathon Onboarding test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - team_payload: factory for a valid POST /team-code body
    - registered_code: team code issued through the API
"""

import pytest

from onboarding import create_app
from onboarding.models import db as _db


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Convenience fixtures ─────────────────────────────────────────────────


def make_team_payload(name="Byte Busters", email="captain@bytebusters.io", members=None):
    """Return a valid ``{"teamData": {...}}`` registration body."""
    if members is None:
        members = [
            {
                "fullName": "Ada Demir",
                "email": "ada@bytebusters.io",
                "gender": "female",
                "foodPreference": "vegetarian",
            },
            {
                "fullName": "Kerem Yilmaz",
                "email": "kerem@bytebusters.io",
                "gender": "male",
                "foodPreference": "non-vegetarian",
            },
        ]
    return {
        "teamData": {
            "teamName": name,
            "teamEmail": email,
            "contactNumber": "+90 555 010 2030",
            "university": "Bogazici University",
            "members": members,
        }
    }


@pytest.fixture()
def team_payload():
    return make_team_payload


@pytest.fixture()
def registered_code(client):
    """Register a team through the API and return its team code."""
    res = client.post("/api/v1/team-code", json=make_team_payload())
    assert res.status_code == 201
    return res.get_json()["teamCode"]
