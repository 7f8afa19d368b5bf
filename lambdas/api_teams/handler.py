"""REST API - GET/POST/PUT /api/teams

The caller's own team, resolved from the bearer token. GET returns it with
its pilots and staff (or null before registration), POST registers it, PUT
edits the profile fields.
"""

import logging
import os

from registration import clients
from registration.http import dispatch, response
from registration.teams import TeamService

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

logger = logging.getLogger()
logger.setLevel(LOG_LEVEL)


def get_team(request, identity):
    team = TeamService(clients.get_store()).get_with_roster(identity.user_id)
    return response(200, {"team": team})


def create_team(request, identity):
    team = TeamService(clients.get_store()).create(identity.user_id, request.json(), email=identity.email)
    return response(201, {"team": team.to_dict()})


def update_team(request, identity):
    team = TeamService(clients.get_store()).update(identity.user_id, request.json())
    return response(200, {"team": team.to_dict()})


ROUTES = {"GET": get_team, "POST": create_team, "PUT": update_team}


def lambda_handler(event, context):
    return dispatch(event, ROUTES)
