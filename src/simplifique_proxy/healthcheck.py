"""Container healthcheck entrypoint."""
import json
import os
import urllib.request


def _resolve_port() -> int:
    """Resolve port from config.json or fall back to PORT/default."""
    port = int(os.getenv("PORT", "3000"))
    config_path = os.getenv("CONFIG_PATH", "/app/config.json")
    try:
        with open(config_path, "r", encoding="utf-8") as handle:
            config = json.load(handle)
        port = int(config.get("server", {}).get("port", port))
    except (OSError, ValueError, TypeError, AttributeError):
        return port
    return port


def main() -> int:
    """Return exit code 0 if /health answers with status ok."""
    port = _resolve_port()
    try:
        with urllib.request.urlopen(f"http://127.0.0.1:{port}/health", timeout=3) as resp:
            payload = json.loads(resp.read().decode("utf-8"))
    except (OSError, ValueError):
        return 1
    return 0 if payload.get("status") == "ok" else 1


if __name__ == "__main__":
    raise SystemExit(main())
