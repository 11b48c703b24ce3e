from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
import logging

from utils.exceptions import AuthError, StoreUnavailable

logger = logging.getLogger(__name__)


def error_response(error: str, message: str, status: int, details: dict | None = None):
    payload = {"error": error, "message": message, "status": status}
    if details:
        payload["details"] = details
    return jsonify(payload), status


def register_error_handlers(app):
    # 404 Not Found
    @app.errorhandler(404)
    def not_found(e):
        return error_response("NOT_FOUND", "Resource not found", 404)

    # 405 Method Not Allowed
    @app.errorhandler(405)
    def method_not_allowed(e):
        return error_response("METHOD_NOT_ALLOWED", "Method not allowed", 405)

    # Marshmallow validation errors map to 422
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        # err.messages contains field-level details
        return error_response("VALIDATION_ERROR", "Invalid input", 422, details=err.messages)

    # Store outage: retryable, tell the client when
    @app.errorhandler(StoreUnavailable)
    def handle_store_unavailable(err: StoreUnavailable):
        response, status = error_response(err.error, err.message, err.status)
        response.headers["Retry-After"] = str(err.retry_after)
        return response, status

    # Typed failures raised by the services and the auth decorators
    @app.errorhandler(AuthError)
    def handle_auth_error(err: AuthError):
        if err.status in (401, 403):
            logger.info("%s: %s", err.error, err.message)
        return error_response(err.error, err.message, err.status, details=err.details)

    # Werkzeug HTTPExceptions map to their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        return error_response("BAD_REQUEST", err.description, err.code or 400)

    # 500 Internal Error (catch-all)
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        # In dev, include exception details to speed up debugging
        details = None
        logger.exception("Unhandled exception", exc_info=err)
        if current_app and current_app.debug:
            details = {"type": err.__class__.__name__, "message": str(err)}
        return error_response("INTERNAL_ERROR", "An unexpected error occurred", 500, details=details)
