import asyncio

import pytest
from httpx import ASGITransport, AsyncClient

from taskminder.config import Settings
from taskminder.exceptions import NotifierError
from taskminder.main import create_app


class FakeNotifier:
    """Records every send instead of talking to an SMTP server."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []
        self.delivered = asyncio.Event()

    async def send(self, recipient, subject, body):
        self.sent.append((recipient, subject, body))
        self.delivered.set()
        if self.fail:
            raise NotifierError("SMTP server unreachable")


@pytest.fixture()
def notifier():
    return FakeNotifier()


@pytest.fixture()
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        SECRET_KEY="test-signing-key",
        SESSION_SECRET="test-session-secret",
        EMAIL_HOST=None,
    )


@pytest.fixture()
async def app(settings, notifier):
    app = create_app(settings, notifier=notifier)
    await app.state.context.startup()
    yield app
    await app.state.context.shutdown()


@pytest.fixture()
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
async def db(app):
    async with app.state.context.sessionmaker() as session:
        yield session


@pytest.fixture()
def signup(client):
    async def _signup(email="owner@taskminder.io", password="hunter22"):
        return await client.post("/signup", data={"email": email, "password": password})
    return _signup
