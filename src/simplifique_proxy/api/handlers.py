"""Route handlers for the Simplifique proxy endpoints."""
import json
import time
from datetime import datetime, timezone

from flask import g, jsonify, request

from ..core.config import get_config
from ..core.errors import InternalError, PayloadTooLargeError, ProxyError
from ..services.simplifique_service import fetch_answer
from ..utils.http import error_response
from ..utils.logging import get_request_logger, log_event, redact
from ..utils.params import as_text
from .error_translator import render_error
from .normalizer import normalize_request
from .translator import SERVICE_NAME, build_completion


def _requested_model(data):
    model = as_text(data.get("model")) if isinstance(data, dict) else None
    return model or None


def register_routes(app, settings):
    """Register proxy routes on the app."""

    def _log_inbound(data):
        try:
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            get_request_logger(settings.log_dir).info(
                "\n".join(
                    [
                        f"=== {timestamp} ===",
                        f"IP: {request.remote_addr}",
                        json.dumps(redact(data, get_config().redact_keys), indent=2, ensure_ascii=False),
                        "",
                    ]
                )
            )
        except (OSError, TypeError, ValueError) as e:
            log_event(40, "file_logging_failed", error=str(e))

    @app.route('/chat/completions', methods=['POST'])
    @app.route('/v1/chat/completions', methods=['POST'])
    def chat_completions():
        # Oversized bodies raise 413 here and are answered by the errorhandler below.
        data = request.get_json(silent=True)
        g.request_body = data
        model = _requested_model(data) or settings.default_model
        try:
            if settings.create_log:
                _log_inbound(data)
            query = normalize_request(data, request.headers)
            g.chatbot_uuid = query.chatbot_uuid
            upstream = fetch_answer(settings, query, request_id=g.request_id)
            return jsonify(build_completion(upstream, query.query, model, query.chatbot_uuid))
        except ProxyError as e:
            log_event(30, "chat_completions_rejected", error=e.message, type=e.error_type, request_id=g.request_id)
            return render_error(e, settings, model)
        except Exception as e:
            log_event(40, "chat_completions_error", error=str(e), request_id=g.request_id)
            return render_error(InternalError(str(e)), settings, model)

    @app.route('/health', methods=['GET'])
    def health():
        config = get_config()
        return jsonify(
            {
                "status": "ok",
                "service": "Simplifique.ai OpenAI Proxy",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "version": settings.app_version,
                "uptime_seconds": int(time.time() - app.config.get("APP_STARTED_AT", time.time())),
                "config_errors": list(config.errors),
                "environment": {
                    "port": config.port or settings.port,
                    "simplifique_url": settings.simplifique_base_url,
                    "failure_mode": settings.failure_mode,
                    "error_mode": settings.error_mode,
                },
            }
        )

    @app.route('/models', methods=['GET'])
    @app.route('/v1/models', methods=['GET'])
    def list_models():
        created = int(time.time())
        return jsonify(
            {
                "object": "list",
                "data": [
                    {"id": model_id, "object": "model", "created": created, "owned_by": SERVICE_NAME}
                    for model_id in get_config().models
                ],
            }
        )

    @app.route('/debug/test', methods=['POST'])
    def debug_test():
        config = get_config()
        return jsonify(
            {
                "status": "ok",
                "message": "Request received",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "headers": redact(dict(request.headers), config.redact_headers),
                "body": redact(request.get_json(silent=True), config.redact_keys),
            }
        )

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return error_response("Method not allowed", 405, "invalid_request_error")

    @app.errorhandler(413)
    def handle_payload_too_large(error):
        message = f"Request body too large (limit {settings.max_content_length} bytes)"
        return render_error(PayloadTooLargeError(message), settings)
