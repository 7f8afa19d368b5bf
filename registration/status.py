"""Team lifecycle rule driven by pilot roster size.

draft -> pending once the roster reaches MIN_PILOTS, pending -> draft when
it drops below. confirmed and cancelled are admin-only and never move here.
"""

import logging

from registration.models import MIN_PILOTS, utcnow_iso

logger = logging.getLogger(__name__)


def next_status(pilot_count, current):
    if current == "draft" and pilot_count >= MIN_PILOTS:
        return "pending"
    if current == "pending" and pilot_count < MIN_PILOTS:
        return "draft"
    return current


def apply_status_rule(store, team_id):
    """Re-evaluate the team's status after a pilot was added or removed.

    The write is conditional on the status read here, so a concurrent admin
    change is never overwritten. Returns the team's resulting status.
    """
    team = store.get_team(team_id)
    if team is None:
        return None

    pilot_count = store.count_pilots(team_id)
    target = next_status(pilot_count, team.status)
    if target == team.status:
        return team.status

    if store.set_team_status(team_id, target, expected=team.status, updated_at=utcnow_iso()):
        logger.info("Team %s: %s -> %s (%d pilots)", team_id, team.status, target, pilot_count)
        return target

    logger.warning("Team %s: status changed concurrently, skipped %s -> %s", team_id, team.status, target)
    return store.get_team(team_id).status
