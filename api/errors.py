from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException
import logging

from services.errors import ServiceError


def error_response(error: str, message: str, status: int, details: dict | None = None, errors: list | None = None):
    payload = {"error": error, "msg": message, "status": status}
    if errors:
        payload["errors"] = errors
    if details:
        payload["details"] = details
    return jsonify(payload), status


def register_error_handlers(app):
    # Domain failures carry their own status and code
    @app.errorhandler(ServiceError)
    def handle_service_error(err: ServiceError):
        return error_response(err.error_code, err.message, err.status_code, errors=err.errors)

    # 404 Not Found (unknown route)
    @app.errorhandler(404)
    def not_found(e):
        return error_response("NOT_FOUND", "Resource not found", 404)

    # Werkzeug HTTPExceptions map to their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        return error_response(err.name.upper().replace(" ", "_"), err.description, err.code or 400)

    # 500 Internal Error (catch-all)
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        logging.exception("Unhandled exception", exc_info=err)
        details = None
        # In dev, include exception details to speed up debugging
        if current_app and current_app.debug:
            details = {"type": err.__class__.__name__, "message": str(err)}
        return error_response("INTERNAL_ERROR", "Internal server error", 500, details=details)
