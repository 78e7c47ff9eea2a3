"""
Request ID middleware - X-Request-ID for request correlation.

A caller-supplied X-Request-ID is reused when it looks sane (short,
printable token); otherwise a new UUID is generated. The id is stored on
flask.g and echoed back on every response.
"""

import re
import uuid
from flask import Flask, request, g

REQUEST_ID_HEADER = 'X-Request-ID'

# Caller ids end up in logs; keep them to a short token
REQUEST_ID_PATTERN = re.compile(r'^[A-Za-z0-9._-]{1,128}$')


def _new_request_id() -> str:
    return str(uuid.uuid4())


def setup_request_id_middleware(app: Flask) -> None:
    """
    Set up request ID middleware on Flask app.

    Args:
        app: Flask application instance
    """

    @app.before_request
    def inject_request_id():
        incoming = request.headers.get(REQUEST_ID_HEADER, '')
        g.request_id = incoming if REQUEST_ID_PATTERN.match(incoming) else _new_request_id()

    @app.after_request
    def add_request_id_header(response):
        request_id = getattr(g, 'request_id', None)
        if request_id:
            response.headers[REQUEST_ID_HEADER] = request_id
        return response

