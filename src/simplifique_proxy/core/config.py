"""Optional config.json with the knobs that are not worth an env var.

Shape (every section optional)::

    {
      "server":  {"port": 3000},
      "cors":    {"origins": ["https://app.example"], "allow_credentials": false},
      "logging": {"sample_rate": 1.0, "include_headers": false, "include_body": false,
                  "redact_headers": [...], "redact_keys": [...]},
      "models":  ["simplifique-default"]
    }

Bad values are replaced with defaults and reported in ``ProxyConfig.errors``.
"""
from dataclasses import dataclass, field
import json
import logging
import os

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", ".."))
CONFIG_PATH = os.getenv("CONFIG_PATH", os.path.join(BASE_DIR, "config.json"))

DEFAULT_MODEL_IDS = ("simplifique-default",)
# Inbound Authorization carries "<api_token>:<chatbot_uuid>"; never log it.
DEFAULT_REDACT_HEADERS = ("authorization", "x-user-key", "x-user-id")
# user_key identifies an end user of the chatbot.
DEFAULT_REDACT_KEYS = ("api_token", "user", "user_key")

logger = logging.getLogger("simplifique_proxy.config")

_cache = {"mtime": None, "config": None}


@dataclass(frozen=True)
class ProxyConfig:
    port: int | None = None
    cors_origins: tuple = ()
    cors_allow_credentials: bool = False
    log_sample_rate: float = 1.0
    log_headers: bool = False
    log_bodies: bool = False
    redact_headers: tuple = DEFAULT_REDACT_HEADERS
    redact_keys: tuple = DEFAULT_REDACT_KEYS
    models: tuple = DEFAULT_MODEL_IDS
    errors: tuple = field(default=())


def _string_list(value, name, errors, default):
    if value is None:
        return default
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        errors.append(f"{name} must be a list or comma-separated string")
        return default
    return tuple(item.strip() for item in value if isinstance(item, str) and item.strip())


def _section(raw, name, errors) -> dict:
    value = raw.get(name, {})
    if isinstance(value, dict):
        return value
    errors.append(f"{name} must be an object")
    return {}


def _port(server, errors):
    if "port" not in server:
        return None
    try:
        port = int(server["port"])
    except (TypeError, ValueError):
        errors.append("server.port must be an integer")
        return None
    if not 0 < port <= 65535:
        errors.append("server.port must be between 1 and 65535")
        return None
    return port


def _sample_rate(logging_cfg, errors) -> float:
    if "sample_rate" not in logging_cfg:
        return 1.0
    try:
        rate = float(logging_cfg["sample_rate"])
    except (TypeError, ValueError):
        errors.append("logging.sample_rate must be a number")
        return 1.0
    if not 0.0 <= rate <= 1.0:
        errors.append("logging.sample_rate must be between 0 and 1")
        return 1.0
    return rate


def _models(value, errors):
    if value is None:
        return DEFAULT_MODEL_IDS
    if not isinstance(value, list):
        errors.append("models must be a list")
        return DEFAULT_MODEL_IDS
    ids = []
    for item in value:
        model_id = item.get("id") if isinstance(item, dict) else item
        if not isinstance(model_id, str) or not model_id.strip():
            errors.append(f"models entry ignored: {item!r}")
        elif model_id.strip() in ids:
            errors.append(f"models entry duplicated: {model_id.strip()}")
        else:
            ids.append(model_id.strip())
    return tuple(ids) or DEFAULT_MODEL_IDS


def parse_config(raw) -> ProxyConfig:
    """Build a ProxyConfig from decoded config.json, collecting warnings."""
    errors = []
    if not isinstance(raw, dict):
        return ProxyConfig(errors=("config.json must contain an object",))
    server = _section(raw, "server", errors)
    cors = _section(raw, "cors", errors)
    logging_cfg = _section(raw, "logging", errors)
    return ProxyConfig(
        port=_port(server, errors),
        cors_origins=_string_list(cors.get("origins"), "cors.origins", errors, ()),
        cors_allow_credentials=bool(cors.get("allow_credentials", False)),
        log_sample_rate=_sample_rate(logging_cfg, errors),
        log_headers=bool(logging_cfg.get("include_headers", False)),
        log_bodies=bool(logging_cfg.get("include_body", False)),
        redact_headers=_string_list(
            logging_cfg.get("redact_headers"), "logging.redact_headers", errors, DEFAULT_REDACT_HEADERS
        ),
        redact_keys=_string_list(logging_cfg.get("redact_keys"), "logging.redact_keys", errors, DEFAULT_REDACT_KEYS),
        models=_models(raw.get("models"), errors),
        errors=tuple(errors),
    )


def get_config() -> ProxyConfig:
    """Return the current config, re-reading config.json when its mtime changes."""
    try:
        mtime = os.path.getmtime(CONFIG_PATH)
    except OSError:
        return ProxyConfig()
    if _cache["config"] is not None and _cache["mtime"] == mtime:
        return _cache["config"]
    try:
        with open(CONFIG_PATH, "r", encoding="utf-8") as f:
            config = parse_config(json.load(f))
    except (OSError, json.JSONDecodeError) as e:
        config = ProxyConfig(errors=(f"config.json unreadable: {e}",))
    if config.errors:
        logger.warning("Config validation warnings: %s", "; ".join(config.errors))
    _cache["config"] = config
    _cache["mtime"] = mtime
    return config
