"""
Health check Flask routes
"""

import logging
from http import HTTPStatus

from flask import Blueprint, current_app

LOG = logging.getLogger()

health_bp = Blueprint("health", __name__)


@health_bp.route("/health")
async def healthcheck():
    return ("OK", HTTPStatus.OK)  # 200


@health_bp.route("/health/cache")
async def cache_healthcheck():
    # The cache is only a readiness dependency: the welcome page is served
    # whether or not it is reachable, so this probe is the only place its
    # state is visible over HTTP.
    cache = current_app.extensions.get("cache_client")
    if cache is None:
        return ("NOT CONFIGURED", HTTPStatus.OK)  # 200

    if not cache.is_ready():
        LOG.warning(f"Cache {cache.address} failed health check")
        return ("UNAVAILABLE", HTTPStatus.SERVICE_UNAVAILABLE)  # 503

    return ("OK", HTTPStatus.OK)  # 200
