"""Team registration: one team per representative user."""

import logging
import uuid

from registration.errors import (
    BackendError,
    CapacityError,
    CascadeDeleteError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from registration.models import (
    ENGINE_CAPACITIES,
    MAX_PILOTS,
    MIN_PILOTS,
    TEAM_STATUSES,
    Team,
    by_created_at,
    utcnow_iso,
)
from registration.settings import deadline_passed, load_settings
from registration.validation import check_choice, clean_patch, require

logger = logging.getLogger(__name__)

# Owners never write these; status belongs to the roster rule and admins.
PROTECTED_FIELDS = (
    "id",
    "representative_user_id",
    "status",
    "created_at",
    "updated_at",
    "gdpr_consent_date",
)


def _validate(changes):
    if "number_of_pilots" in changes and not MIN_PILOTS <= changes["number_of_pilots"] <= MAX_PILOTS:
        raise ValidationError(f"Number of pilots must be between {MIN_PILOTS} and {MAX_PILOTS}")
    if "engine_capacity" in changes:
        check_choice(changes["engine_capacity"], ENGINE_CAPACITIES, "engineCapacity")


class TeamService:
    def __init__(self, store):
        self.store = store

    def get_by_owner(self, user_id):
        return self.store.get_team_by_owner(user_id)

    def get_with_roster(self, user_id):
        """The caller's team with its pilots and staff, or None."""
        team = self.store.get_team_by_owner(user_id)
        if team is None:
            return None
        return {
            **team.to_dict(),
            "pilots": [p.to_dict() for p in by_created_at(self.store.list_pilots(team.id))],
            "staff": [s.to_dict() for s in by_created_at(self.store.list_staff(team.id))],
        }

    def create(self, user_id, body, email=""):
        if self.store.get_team_by_owner(user_id) is not None:
            raise ConflictError("You already have a registered team")

        settings = load_settings(self.store)
        if not settings.registration_open:
            raise CapacityError("Registrations are closed")
        if deadline_passed(settings.registration_deadline):
            raise CapacityError("Registration deadline has passed")
        if settings.max_teams and self.store.count_teams() >= settings.max_teams:
            raise CapacityError("Maximum number of teams reached")

        require(body, ("name", "numberOfPilots"))
        changes = clean_patch(Team, body, protected=PROTECTED_FIELDS)
        _validate(changes)

        now = utcnow_iso()
        team = Team(
            **{
                **changes,
                "id": str(uuid.uuid4()),
                "representative_user_id": user_id,
                "representative_email": changes.get("representative_email") or email,
                "gdpr_consent_date": now if changes.get("gdpr_consent") else None,
                "status": "draft",
                "created_at": now,
                "updated_at": now,
            }
        )
        self.store.insert_team(team)
        logger.info("Team %s created by user %s", team.id, user_id)
        return team

    def update(self, user_id, body):
        team = self.store.get_team_by_owner(user_id)
        if team is None:
            raise NotFoundError("Team not found")

        changes = clean_patch(Team, body, protected=PROTECTED_FIELDS)
        if "name" in changes and not changes["name"]:
            raise ValidationError("Required field: name")
        _validate(changes)
        if "number_of_pilots" in changes:
            pilot_count = self.store.count_pilots(team.id)
            if changes["number_of_pilots"] < pilot_count:
                raise ValidationError(f"The team already has {pilot_count} pilots registered")

        now = utcnow_iso()
        if changes.get("gdpr_consent") and not team.gdpr_consent:
            changes["gdpr_consent_date"] = now
        changes["updated_at"] = now
        return self.store.update_team(team.id, changes)

    def admin_update_status(self, team_id, status):
        check_choice(status, TEAM_STATUSES, "status")
        team = self.store.get_team(team_id)
        if team is None:
            raise NotFoundError("Team not found")
        updated = self.store.update_team(team_id, {"status": status, "updated_at": utcnow_iso()})
        logger.info("Team %s status set by admin: %s -> %s", team_id, team.status, status)
        return updated

    def admin_delete(self, team_id):
        """Delete the team's pilots, then its staff, then the team.

        A failed stage stops the cascade; the team record survives any child
        failure.
        """
        team = self.store.get_team(team_id)
        if team is None:
            raise NotFoundError("Team not found")

        pilots = self.store.list_pilots(team_id)
        staff = self.store.list_staff(team_id)

        stages = (
            ("pilots", [lambda p=p: self.store.delete_pilot(team_id, p.id) for p in pilots]),
            ("staff", [lambda s=s: self.store.delete_staff(team_id, s.id) for s in staff]),
            ("team", [lambda: self.store.delete_team(team_id)]),
        )
        for stage, deletes in stages:
            try:
                for delete in deletes:
                    delete()
            except BackendError as exc:
                raise CascadeDeleteError(team_id, stage, exc) from exc

        logger.info("Team %s deleted with %d pilots and %d staff", team_id, len(pilots), len(staff))
