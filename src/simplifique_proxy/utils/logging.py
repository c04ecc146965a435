"""Structured logging for the proxy.

Every line is a JSON object ``{"ts", "level", "event", ...fields}``. Events:

``request`` / ``request_detail``
    one per handled request (sampled), plus redacted headers/body on demand
``upstream_request`` / ``upstream_error`` / ``upstream_fallback``
    the single Simplifique call, its failure, and resilient-mode recovery
``chat_completions_rejected`` / ``chat_completions_error``
    auth/validation failures and unexpected exceptions
``app_created`` / ``server_starting`` / ``config_error`` / ``file_logging_failed``
    process lifecycle
"""
import json
import logging
import os
import random
import sys
import time
from logging.handlers import RotatingFileHandler

from ..core.config import get_config

logger = logging.getLogger("simplifique_proxy")
_request_logger = None

LOG_FILE = "simplifique_proxy.log"
REQUEST_LOG_FILE = "chat_completions.log"
MAX_LOGGED_BODY = 2000


class JsonFormatter(logging.Formatter):
    """Render records as one JSON object per line."""

    def format(self, record):
        payload = {
            "ts": int(record.created),
            "level": record.levelname,
            "event": record.getMessage(),
        }
        payload.update(getattr(record, "fields", {}))
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _file_logging_enabled() -> bool:
    return os.getenv("LOG_TO_FILE", "True").lower() in ("1", "true", "yes", "on")


def _rotating_handler(log_dir: str, filename: str, formatter: logging.Formatter) -> RotatingFileHandler:
    os.makedirs(log_dir, exist_ok=True)
    handler = RotatingFileHandler(
        os.path.join(log_dir, filename),
        maxBytes=max(1, int(float(os.getenv("LOG_FILE_MAX_MB", "10")) * 1024 * 1024)),
        backupCount=max(1, int(os.getenv("LOG_FILE_BACKUPS", "5"))),
        encoding="utf-8",
    )
    handler.setFormatter(formatter)
    return handler


def setup_logging(level: str, log_dir: str | None = None) -> None:
    """Send JSON lines to stdout and, when enabled, to a rotating file."""
    formatter = JsonFormatter()
    stdout = logging.StreamHandler(sys.stdout)
    stdout.setFormatter(formatter)
    handlers = [stdout]
    if log_dir and _file_logging_enabled():
        try:
            handlers.append(_rotating_handler(log_dir, LOG_FILE, formatter))
        except OSError as exc:
            print(f"[simplifique_proxy] file logging disabled: {exc}", file=sys.stderr)
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), handlers=handlers, force=True)


def get_request_logger(log_dir: str) -> logging.Logger:
    """Logger that appends raw inbound chat requests (CREATE_LOG)."""
    global _request_logger
    if _request_logger is None:
        request_logger = logging.getLogger("simplifique_proxy.requests")
        request_logger.setLevel(logging.INFO)
        request_logger.propagate = False
        if _file_logging_enabled():
            request_logger.addHandler(_rotating_handler(log_dir, REQUEST_LOG_FILE, logging.Formatter("%(message)s")))
        else:
            request_logger.addHandler(logging.NullHandler())
        _request_logger = request_logger
    return _request_logger


def log_event(level: int, event: str, **fields) -> None:
    logger.log(level, event, extra={"fields": fields})


def clip_body(body) -> str:
    """Upstream bodies as bounded text for ``upstream_error``."""
    text = body if isinstance(body, str) else json.dumps(body, ensure_ascii=False, default=str)
    if len(text) > MAX_LOGGED_BODY:
        return text[:MAX_LOGGED_BODY] + "...(truncated)"
    return text


def redact(value, keys):
    """Mask ``keys`` (case-insensitive) anywhere in a header map or JSON payload."""
    keys = {key.lower() for key in keys}
    if isinstance(value, dict):
        return {
            key: "***" if str(key).lower() in keys else redact(item, keys)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [redact(item, keys) for item in value]
    return value


def should_log_request(status_code: int) -> bool:
    """Errors always; successes at the configured sample rate."""
    if status_code >= 400:
        return True
    return random.random() <= get_config().log_sample_rate


def elapsed_ms(started_at: float | None) -> int | None:
    if started_at is None:
        return None
    return int((time.time() - started_at) * 1000)
