"""Admin API - GET/PUT /api/admin/settings

Registration window and team cap. GET falls back to the defaults when no
settings were saved yet; PUT accepts a partial update.
"""

import logging
import os

from registration import clients
from registration.http import dispatch, response
from registration.settings import load_settings, settings_payload, update_settings

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

logger = logging.getLogger()
logger.setLevel(LOG_LEVEL)


def get_settings(request, identity):
    return response(200, {"settings": settings_payload(load_settings(clients.get_store()))})


def put_settings(request, identity):
    settings = update_settings(clients.get_store(), request.json())
    return response(200, {"settings": settings_payload(settings)})


ROUTES = {"GET": get_settings, "PUT": put_settings}


def lambda_handler(event, context):
    return dispatch(event, ROUTES, admin=True)
