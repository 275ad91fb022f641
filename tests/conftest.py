# tests/conftest.py
import os

# Must be set before the app modules read them at import time
os.environ.setdefault("MONGODB_URL", "mongodb://localhost:27017")
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ.setdefault("GOOGLE_WEB_CLIENT_ID", "test-web-client-id")

import pytest
from unittest.mock import MagicMock
from httpx import AsyncClient, ASGITransport
from mongomock_motor import AsyncMongoMockClient

from app.main import app
from app.controllers import auth_controller, referral_controller, leaderboard_controller
from app.utils import auth_utils
from app.services.session_events import SessionHub

# Google ID tokens the fake provider accepts -> verified principal
GOOGLE_PRINCIPALS = {
    "token-ada": {
        "uid": "google-uid-ada",
        "name": "Ada Lovelace",
        "email": "ada@robosoccer.org",
        "photo_url": "https://lh3.googleusercontent.com/a/ada",
    },
    "token-alan": {
        "uid": "google-uid-alan",
        "name": "Alan Turing",
        "email": "alan@robosoccer.org",
        "photo_url": None,
    },
}

# Smallest valid PNG header is enough: nothing decodes the bytes
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64

_DB_MODULES = (auth_controller, referral_controller, leaderboard_controller, auth_utils)


@pytest.fixture
def mock_db(monkeypatch):
    """
    In-memory Mongo for each test, patched into every module that holds a collection.
    """
    db = AsyncMongoMockClient()["robosoccer_test"]
    collections = {
        "users_collection": db["users"],
        "referrals_collection": db["referrals"],
        "sessions_collection": db["sessions"],
    }
    for module in _DB_MODULES:
        for name, collection in collections.items():
            if hasattr(module, name):
                monkeypatch.setattr(module, name, collection)
    return db


@pytest.fixture
def session_hub():
    hub = SessionHub()
    app.state.session_hub = hub
    yield hub
    hub.close()


@pytest.fixture
def mock_google(monkeypatch):
    verify = MagicMock(side_effect=lambda token_id: GOOGLE_PRINCIPALS.get(token_id))
    monkeypatch.setattr(auth_controller, "verify_google_token", verify)
    return verify


@pytest.fixture
def mock_upload(monkeypatch):
    def _fake_upload(data, folder, public_id):
        return (
            f"https://res.cloudinary.com/robosoccer/image/upload/{folder}/{public_id}.png",
            f"{folder}/{public_id}",
        )

    upload = MagicMock(side_effect=_fake_upload)
    monkeypatch.setattr(referral_controller, "upload_screenshot", upload)
    return upload


@pytest.fixture
async def client(mock_db, session_hub, mock_google):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def sign_in(client: AsyncClient, token_id: str = "token-ada") -> dict:
    response = await client.post("/auth/google", json={"token_id": token_id})
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture
async def ada_headers(client) -> dict:
    data = await sign_in(client, "token-ada")
    return {"Authorization": f"Bearer {data['token']}"}


@pytest.fixture
async def alan_headers(client) -> dict:
    data = await sign_in(client, "token-alan")
    return {"Authorization": f"Bearer {data['token']}"}
