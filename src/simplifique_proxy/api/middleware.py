"""Flask middleware registration for request ids, CORS and request logging."""
import time
import uuid

from flask import Response, g, request

from ..core.config import get_config
from ..utils.http import get_client_ip
from ..utils.logging import elapsed_ms, log_event, redact, should_log_request

_QUIET_PATHS = ("/health",)
_ALLOW_HEADERS = "Authorization, Content-Type, X-User-Key, X-User-Id, X-Request-ID"


def _apply_cors(response, config):
    request_origin = request.headers.get("Origin")
    if "*" in config.cors_origins:
        allow_origin = "*"
    elif request_origin and request_origin in config.cors_origins:
        allow_origin = request_origin
        response.headers["Vary"] = "Origin"
    else:
        return
    response.headers["Access-Control-Allow-Origin"] = allow_origin
    response.headers["Access-Control-Allow-Headers"] = _ALLOW_HEADERS
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
    if config.cors_allow_credentials:
        response.headers["Access-Control-Allow-Credentials"] = "true"


def register_middlewares(app, settings):
    """Register Flask middlewares on the app."""

    @app.before_request
    def attach_request_context():
        g.request_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
        g.request_start = time.time()

    @app.after_request
    def add_headers(response):
        response.headers["X-Request-ID"] = getattr(g, "request_id", "")
        config = get_config()
        _apply_cors(response, config)

        if request.path in _QUIET_PATHS or not should_log_request(response.status_code):
            return response
        log_event(
            20,
            "request",
            request_id=getattr(g, "request_id", ""),
            method=request.method,
            path=request.path,
            status=response.status_code,
            latency_ms=elapsed_ms(getattr(g, "request_start", None)),
            chatbot_uuid=getattr(g, "chatbot_uuid", None),
            failure_mode=settings.failure_mode,
            client_ip=get_client_ip(),
        )
        detail = {}
        if config.log_headers:
            detail["headers"] = redact(dict(request.headers), config.redact_headers)
        if config.log_bodies:
            detail["body"] = redact(g.get("request_body"), config.redact_keys)
            if response.mimetype == "application/json" and not response.is_streamed:
                detail["response"] = response.get_data(as_text=True)[:4096]
        if detail:
            log_event(20, "request_detail", request_id=getattr(g, "request_id", ""), **detail)
        return response

    @app.route('/', defaults={'path': ''}, methods=['OPTIONS'])
    @app.route('/<path:path>', methods=['OPTIONS'])
    def options_handler(path):
        return Response(status=204)
