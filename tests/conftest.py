from http.client import IncompleteRead
import json

import pytest

from simplifique_proxy.core.app import create_app
from simplifique_proxy.core.settings import Settings
from simplifique_proxy.services import simplifique_service

CHATBOT_UUID = "123e4567-e89b-42d3-a456-426614174000"
API_TOKEN = "tok123"
AUTH_HEADERS = {"Authorization": f"Bearer {API_TOKEN}:{CHATBOT_UUID}"}


def make_settings(**overrides) -> Settings:
    values = {
        "log_level": "INFO",
        "app_version": "test",
        "create_log": False,
        "simplifique_base_url": "https://simplifique.test/api/v1",
        "upstream_timeout": 30.0,
        "failure_mode": "resilient",
        "error_mode": "envelope",
        "default_model": "gpt-3.5-turbo",
        "max_body_mb": 4.0,
        "strict_config": False,
        "log_dir": "/tmp/simplifique-proxy-tests",
        "port": 3000,
    }
    values.update(overrides)
    return Settings(**values)


class FakeResponse:
    def __init__(self, payload, status=200):
        self.status = status
        if isinstance(payload, bytes):
            self._raw = payload
        else:
            self._raw = json.dumps(payload).encode("utf-8")

    def read(self):
        return self._raw

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class TruncatedResponse(FakeResponse):
    """Response whose body ends before its declared length."""

    def __init__(self, status=200):
        super().__init__(b"", status)

    def read(self):
        raise IncompleteRead(b"{", 10)


class FakeUpstream:
    """Stands in for urlopen; records requests and replays ``outcome``."""

    def __init__(self):
        self.requests = []
        self.timeouts = []
        self.outcome = FakeResponse({"data": {"answer": "Olá! Como posso ajudar?", "chat_id": "chat-1"}})

    def __call__(self, req, timeout=None):
        self.requests.append(req)
        self.timeouts.append(timeout)
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome

    @property
    def last_body(self):
        return json.loads(self.requests[-1].data.decode("utf-8"))


@pytest.fixture(autouse=True)
def _no_file_logs(monkeypatch):
    monkeypatch.setenv("LOG_TO_FILE", "false")


@pytest.fixture
def fake_upstream(monkeypatch):
    upstream = FakeUpstream()
    monkeypatch.setattr(simplifique_service, "urlopen", upstream)
    return upstream


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def make_client():
    def _make(**overrides):
        app = create_app(make_settings(**overrides))
        app.config["TESTING"] = True
        return app.test_client()

    return _make


@pytest.fixture
def client(make_client):
    return make_client()
