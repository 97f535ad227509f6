"""
Request ID tracking.

Every request gets an id (taken from X-Request-ID when the caller sends one)
that is stamped on log records and echoed in the response header.
"""
import uuid

from flask import Flask, g, request

REQUEST_ID_HEADER = 'X-Request-ID'


def init_request_id_tracking(app: Flask) -> None:
    """Register before/after request hooks for request ids."""

    @app.before_request
    def assign_request_id():
        incoming = request.headers.get(REQUEST_ID_HEADER, '').strip()
        g.request_id = incoming[:64] if incoming else uuid.uuid4().hex[:16]

    @app.after_request
    def add_request_id_header(response):
        request_id = getattr(g, 'request_id', None)
        if request_id:
            response.headers[REQUEST_ID_HEADER] = request_id
        return response
