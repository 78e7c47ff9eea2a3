"""
Error envelope middleware - Standardize all error responses.

Every error leaves the API as:
{
    "error": {
        "code": "NOT_FOUND",
        "message": "Unknown metric: foo",
        "requestId": "uuid"
    }
}
"""

import logging
from flask import Flask, jsonify, g
from werkzeug.exceptions import HTTPException


logger = logging.getLogger('api.middleware.error')


# Error codes reference
ERROR_CODES = {
    "BAD_REQUEST": 400,
    "INVALID_PARAMS": 400,
    "NOT_FOUND": 404,
    "METHOD_NOT_ALLOWED": 405,
    "INTERNAL_ERROR": 500,
}


def make_error_response(
    code: str,
    message: str,
    status_code: int = None,
    field: str = None,
):
    """
    Create a standardized error response.

    Args:
        code: Error code (e.g., "INVALID_PARAMS")
        message: Human-readable error message
        status_code: HTTP status code (defaults based on error code)
        field: Optional field name that caused the error

    Returns:
        Tuple of (response, status_code)
    """
    request_id = getattr(g, 'request_id', None)

    if status_code is None:
        status_code = ERROR_CODES.get(code, 500)

    error = {
        "code": code,
        "message": message,
        "requestId": request_id,
    }
    if field:
        error["field"] = field

    response = jsonify({"error": error})
    if request_id:
        response.headers['X-Request-ID'] = request_id

    return response, status_code


def setup_error_handlers(app: Flask) -> None:
    """
    Set up standardized error handlers on Flask app.

    Handles:
    - HTTP exceptions (400, 404, 405, ...) with their own status code
    - Unhandled Python exceptions as 500 INTERNAL_ERROR

    Args:
        app: Flask application instance
    """

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        # "Not Found" -> "NOT_FOUND"
        code = error.name.upper().replace(' ', '_')
        return make_error_response(code, error.description, status_code=error.code)

    @app.errorhandler(Exception)
    def handle_generic_error(error):
        request_id = getattr(g, 'request_id', None)

        logger.exception(
            f"Unhandled error: {error}",
            extra={
                "event": "unhandled_error",
                "request_id": request_id,
                "error_type": type(error).__name__,
            }
        )

        return make_error_response("INTERNAL_ERROR", "An unexpected error occurred")
