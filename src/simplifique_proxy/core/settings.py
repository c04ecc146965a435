"""Environment-driven settings for the Simplifique proxy."""
from dataclasses import dataclass
from functools import lru_cache
import os

from dotenv import load_dotenv

load_dotenv()

FAILURE_MODES = ("resilient", "strict")
ERROR_MODES = ("envelope", "embedded")

DEFAULT_BASE_URL = "https://app.simplifique.ai/pt/chatbot/api/v1"


def _env_flag(name: str, default: str = "") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "on")


def _choice(value: str, allowed, default: str) -> str:
    value = (value or "").strip().lower()
    if value not in allowed:
        return default
    return value


@dataclass(frozen=True)
class Settings:
    log_level: str
    app_version: str
    create_log: bool
    simplifique_base_url: str
    upstream_timeout: float
    failure_mode: str
    error_mode: str
    default_model: str
    max_body_mb: float
    strict_config: bool
    log_dir: str
    port: int

    @property
    def max_content_length(self) -> int:
        return int(self.max_body_mb * 1024 * 1024)

    @property
    def resilient(self) -> bool:
        return self.failure_mode == "resilient"

    @property
    def embed_errors(self) -> bool:
        return self.error_mode == "embedded"


@lru_cache
def get_settings() -> Settings:
    """Load settings from environment variables."""
    return Settings(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        app_version=os.getenv("APP_VERSION", "0.1.0"),
        create_log=_env_flag("CREATE_LOG", "False"),
        simplifique_base_url=os.getenv("SIMPLIFIQUE_BASE_URL", DEFAULT_BASE_URL),
        upstream_timeout=float(os.getenv("UPSTREAM_TIMEOUT", "30")),
        failure_mode=_choice(os.getenv("UPSTREAM_FAILURE_MODE", ""), FAILURE_MODES, "resilient"),
        error_mode=_choice(os.getenv("ERROR_RESPONSE_MODE", ""), ERROR_MODES, "envelope"),
        default_model=os.getenv("DEFAULT_MODEL", "gpt-3.5-turbo"),
        max_body_mb=float(os.getenv("MAX_BODY_MB", "4")),
        strict_config=_env_flag("STRICT_CONFIG"),
        log_dir=os.getenv(
            "LOG_DIR",
            os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", "..", "logs")),
        ),
        port=int(os.getenv("PORT", "3000")),
    )
