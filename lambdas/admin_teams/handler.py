"""Admin API - GET/PUT/DELETE /api/admin/teams

GET lists every team with its roster and summary statistics. PUT ?id=
changes a team's status; DELETE ?id= removes the team with its pilots and
staff. Requires an email listed in ADMIN_EMAILS.
"""

import logging
import os

from registration import clients
from registration.admin import list_all_teams
from registration.errors import ValidationError
from registration.http import dispatch, response
from registration.teams import TeamService

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

logger = logging.getLogger()
logger.setLevel(LOG_LEVEL)


def _team_id(request):
    team_id = request.param("id")
    if not team_id:
        raise ValidationError("Team ID is required")
    return team_id


def list_teams(request, identity):
    teams, stats = list_all_teams(clients.get_store())
    return response(200, {"teams": teams, "stats": stats})


def update_status(request, identity):
    team_id = _team_id(request)
    status = request.json().get("status")
    team = TeamService(clients.get_store()).admin_update_status(team_id, status)
    return response(200, {"team": team.to_dict()})


def delete_team(request, identity):
    team_id = _team_id(request)
    TeamService(clients.get_store()).admin_delete(team_id)
    logger.info("Admin %s deleted team %s", identity.user_id, team_id)
    return response(200, {"message": "Team deleted successfully"})


ROUTES = {"GET": list_teams, "PUT": update_status, "DELETE": delete_team}


def lambda_handler(event, context):
    return dispatch(event, ROUTES, admin=True)
