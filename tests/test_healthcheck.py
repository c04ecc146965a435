import json

from conftest import FakeResponse
from simplifique_proxy import healthcheck


def test_healthcheck_ok(monkeypatch, tmp_path):
    seen = []

    def fake_urlopen(url, timeout=None):
        seen.append(url)
        return FakeResponse({"status": "ok"})

    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"server": {"port": 8123}}), encoding="utf-8")
    monkeypatch.setenv("CONFIG_PATH", str(config_path))
    monkeypatch.setattr(healthcheck.urllib.request, "urlopen", fake_urlopen)

    assert healthcheck.main() == 0
    assert seen == ["http://127.0.0.1:8123/health"]


def test_healthcheck_unreachable(monkeypatch, tmp_path):
    def fake_urlopen(url, timeout=None):
        raise ConnectionRefusedError()

    monkeypatch.setenv("CONFIG_PATH", str(tmp_path / "missing.json"))
    monkeypatch.setenv("PORT", "3001")
    monkeypatch.setattr(healthcheck.urllib.request, "urlopen", fake_urlopen)

    assert healthcheck.main() == 1
