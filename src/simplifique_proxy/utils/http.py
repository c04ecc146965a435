"""HTTP helpers and error responses."""
from flask import jsonify, request


def get_client_ip() -> str:
    """Resolve client IP with basic X-Forwarded-For support."""
    forwarded_for = request.headers.get("X-Forwarded-For", "")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.remote_addr or "unknown"


def error_payload(message: str, error_type: str = "invalid_request_error", details=None) -> dict:
    """Build the OpenAI-style error envelope."""
    error = {
        "message": message,
        "type": error_type,
    }
    if details is not None:
        error["details"] = details
    return {"error": error}


def error_response(message: str, status: int = 400, error_type: str = "invalid_request_error", details=None):
    """Return OpenAI-style error payload."""
    return jsonify(error_payload(message, error_type, details)), status
