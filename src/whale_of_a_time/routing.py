"""
Error handling for everything the blueprints do not route
"""

import logging
from http import HTTPStatus

from flask import Flask, request
from werkzeug.exceptions import HTTPException, MethodNotAllowed, NotFound

from .errors import HandlerError

LOG = logging.getLogger()

PLAIN_TEXT = {"Content-Type": "text/plain; charset=utf-8"}


def register_error_handlers(app: Flask):
    app.register_error_handler(NotFound, not_found)
    app.register_error_handler(MethodNotAllowed, method_not_allowed)
    app.register_error_handler(Exception, unexpected_error)


def not_found(e: NotFound):
    LOG.debug(f"No route for {request.method} {request.path}")
    return ("Not Found", HTTPStatus.NOT_FOUND, PLAIN_TEXT)  # 404


def method_not_allowed(e: MethodNotAllowed):
    headers = dict(PLAIN_TEXT)
    if e.valid_methods:
        headers["Allow"] = ", ".join(e.valid_methods)
    return ("Method Not Allowed", HTTPStatus.METHOD_NOT_ALLOWED, headers)  # 405


def unexpected_error(e: Exception):
    # any other HTTP error (400, 413, ...) is already a well formed response
    if isinstance(e, HTTPException):
        return e

    error = e if isinstance(e, HandlerError) else HandlerError(f"{request.method} {request.path} failed: {e}")
    LOG.error(str(error), exc_info=e)
    return ("Internal Server Error", HTTPStatus.INTERNAL_SERVER_ERROR, PLAIN_TEXT)  # 500
