"""Application factory and entrypoint."""
import os
import time
from typing import Optional

from flask import Flask

from .config import get_config
from ..utils.logging import log_event, setup_logging
from ..api.middleware import register_middlewares
from ..api.handlers import register_routes
from .settings import Settings, get_settings


def create_app(settings: Optional[Settings] = None) -> Flask:
    """Create and configure the Flask application."""
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_dir)

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = settings.max_content_length
    app.config["APP_STARTED_AT"] = time.time()
    app.config["SETTINGS"] = settings

    register_middlewares(app, settings)
    register_routes(app, settings)
    log_event(
        20,
        "app_created",
        simplifique_url=settings.simplifique_base_url,
        failure_mode=settings.failure_mode,
        error_mode=settings.error_mode,
    )
    return app


def run() -> None:
    """Run the Flask development server."""
    app = create_app()
    settings = app.config["SETTINGS"]

    if settings.strict_config:
        config_errors = get_config().errors
        if config_errors:
            for err in config_errors:
                log_event(40, "config_error", error=err)
            raise SystemExit("Strict config enabled; fix config.json errors.")

    port = get_config().port or settings.port
    debug = os.getenv("FLASK_DEBUG", "").lower() in ("1", "true", "yes", "on")
    log_event(20, "server_starting", port=port)
    app.run(host="0.0.0.0", port=port, debug=debug)


if __name__ == "__main__":
    run()
