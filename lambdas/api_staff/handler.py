"""REST API - GET/POST/PUT/DELETE /api/staff

Support staff of the caller's team (mechanics, coordinators, support), at
most four per team. PUT and DELETE take the member in ?id=.
"""

import logging
import os

from registration import clients
from registration.http import dispatch, response
from registration.roster import StaffService

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

logger = logging.getLogger()
logger.setLevel(LOG_LEVEL)


def list_staff(request, identity):
    staff = StaffService(clients.get_store()).list(identity.user_id)
    return response(200, {"staff": [s.to_dict() for s in staff]})


def add_staff(request, identity):
    member = StaffService(clients.get_store()).add(identity.user_id, request.json())
    return response(201, {"staff": member.to_dict()})


def update_staff(request, identity):
    member = StaffService(clients.get_store()).update(identity.user_id, request.param("id"), request.json())
    return response(200, {"staff": member.to_dict()})


def remove_staff(request, identity):
    StaffService(clients.get_store()).remove(identity.user_id, request.param("id"))
    return response(200, {"success": True})


ROUTES = {"GET": list_staff, "POST": add_staff, "PUT": update_staff, "DELETE": remove_staff}


def lambda_handler(event, context):
    return dispatch(event, ROUTES)
