import asyncio
import json
from typing import Any, Iterable, List, Optional

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.main import create_app
from app.models.base import init_db


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        data_dir=tmp_path / "data",
        logs_dir=tmp_path / "logs",
        database_path=tmp_path / "data" / "test.db",
        database_url="sqlite://",
        jwt_secret="test-secret",
        bcrypt_rounds=4,
        assemblyai_api_key="test-key",
    )


@pytest.fixture
def app(settings):
    app = create_app(settings)
    init_db(app.state.engine)
    yield app
    app.state.engine.dispose()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def signup(client: TestClient, email: str = "ana@example.com", name: str = "Ana", password: str = "s3cret!") -> dict:
    response = client.post("/api/auth/signup", json={"name": name, "email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture
def token(client) -> str:
    return signup(client)["token"]


@pytest.fixture
def auth_headers(token) -> dict:
    return {"Authorization": f"Bearer {token}"}


class FakeUpstream:
    """Stand-in for the provider socket.

    Yields the scripted provider messages once the first audio frame arrives,
    then either raises ``fail_with``, ends (``close_after_script``) or waits
    until the relay closes it.
    """

    def __init__(
        self,
        messages: Iterable[Any] = (),
        close_after_script: bool = False,
        fail_with: Optional[BaseException] = None,
    ) -> None:
        self.messages = list(messages)
        self.close_after_script = close_after_script
        self.fail_with = fail_with
        self.sent: List[dict] = []
        self.closed = False
        self._audio = asyncio.Event()
        self._closed = asyncio.Event()

    async def send(self, data: str) -> None:
        message = json.loads(data)
        self.sent.append(message)
        if "audio_data" in message:
            self._audio.set()

    async def close(self) -> None:
        self.closed = True
        self._closed.set()
        self._audio.set()

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        await self._audio.wait()
        if self.closed:
            return
        for message in self.messages:
            yield message if isinstance(message, str) else json.dumps(message)
        if self.fail_with is not None:
            raise self.fail_with
        if self.close_after_script:
            return
        await self._closed.wait()

    @property
    def audio_frames(self) -> List[dict]:
        return [m for m in self.sent if "audio_data" in m]


class FakeTranslator:
    def __init__(self) -> None:
        self.calls: List[tuple] = []

    async def translate(self, text: str, source_language: str, target_language: str) -> str:
        self.calls.append((text, source_language, target_language))
        return f"[{target_language}] {text} "


class RecordingConnector:
    def __init__(self, upstream: Optional[FakeUpstream] = None, error: Optional[BaseException] = None) -> None:
        self.upstream = upstream
        self.error = error
        self.calls = 0

    async def __call__(self, settings: Settings) -> FakeUpstream:
        self.calls += 1
        if self.error is not None:
            raise self.error
        assert self.upstream is not None
        return self.upstream
