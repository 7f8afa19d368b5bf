"""REST API - GET/POST/PUT/DELETE /api/pilots

Pilots of the caller's team. PUT and DELETE take the pilot in ?id=.
Adding or removing a pilot re-runs the team status rule.
"""

import logging
import os

from registration import clients
from registration.http import dispatch, response
from registration.roster import PilotService

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

logger = logging.getLogger()
logger.setLevel(LOG_LEVEL)


def list_pilots(request, identity):
    pilots = PilotService(clients.get_store()).list(identity.user_id)
    return response(200, {"pilots": [p.to_dict() for p in pilots]})


def add_pilot(request, identity):
    pilot = PilotService(clients.get_store()).add(identity.user_id, request.json())
    return response(201, {"pilot": pilot.to_dict()})


def update_pilot(request, identity):
    pilot = PilotService(clients.get_store()).update(identity.user_id, request.param("id"), request.json())
    return response(200, {"pilot": pilot.to_dict()})


def remove_pilot(request, identity):
    PilotService(clients.get_store()).remove(identity.user_id, request.param("id"))
    return response(200, {"success": True})


ROUTES = {"GET": list_pilots, "POST": add_pilot, "PUT": update_pilot, "DELETE": remove_pilot}


def lambda_handler(event, context):
    return dispatch(event, ROUTES)
