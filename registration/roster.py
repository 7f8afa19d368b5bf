"""Pilots and staff, always scoped to the caller's own team."""

import logging
import uuid

from registration.errors import CapacityError, ConflictError, ForbiddenError, NotFoundError, ValidationError
from registration.models import DRIVING_LEVELS, MAX_STAFF, STAFF_ROLES, Pilot, StaffMember, by_created_at, utcnow_iso
from registration.settings import deadline_passed, load_settings
from registration.status import apply_status_rule
from registration.validation import check_choice, clean_patch, require

logger = logging.getLogger(__name__)

MEMBER_PROTECTED_FIELDS = ("id", "team_id", "created_at", "updated_at")


class RosterService:
    """Shared list/add/update/remove flow; subclasses bind the member type."""

    record_cls = None
    label = ""
    required_fields = ()
    protected_fields = MEMBER_PROTECTED_FIELDS

    def __init__(self, store):
        self.store = store

    def _team(self, user_id):
        team = self.store.get_team_by_owner(user_id)
        if team is None:
            raise ValidationError("You must create a team first")
        return team

    def _existing(self, team_id, member_id):
        if not member_id:
            raise ValidationError(f"{self.label} ID required")
        member = self._get(team_id, member_id)
        if member is None:
            raise NotFoundError(f"{self.label} not found")
        return member

    def _check_dni(self, team_id, dni, exclude_id=None):
        if dni and self._find_by_dni(team_id, dni, exclude_id) is not None:
            raise ConflictError(f"A {self.label.lower()} with that ID already exists in the team")

    def list(self, user_id):
        team = self._team(user_id)
        return by_created_at(self._list(team.id))

    def add(self, user_id, body):
        team = self._team(user_id)
        self._before_change(team)
        self._check_capacity(team)
        require(body, self.required_fields)
        changes = clean_patch(self.record_cls, body, protected=MEMBER_PROTECTED_FIELDS)
        self._validate(changes)
        self._check_dni(team.id, changes.get("dni"))
        self._before_insert(team, changes)

        now = utcnow_iso()
        member = self.record_cls(
            **{**changes, "id": str(uuid.uuid4()), "team_id": team.id, "created_at": now, "updated_at": now}
        )
        self._insert(member)
        logger.info("%s %s added to team %s", self.label, member.id, team.id)
        self._after_change(team)
        return member

    def update(self, user_id, member_id, body):
        team = self._team(user_id)
        self._before_change(team)
        member = self._existing(team.id, member_id)
        changes = clean_patch(self.record_cls, body, protected=self.protected_fields)
        for name in self.required_fields:
            attr = self.record_cls.wire_names()[name]
            if attr in changes and not changes[attr]:
                raise ValidationError(f"Required field: {name}")
        self._validate(changes)
        if "dni" in changes:
            self._check_dni(team.id, changes["dni"], exclude_id=member.id)
        changes["updated_at"] = utcnow_iso()
        return self._update(team.id, member.id, changes)

    def remove(self, user_id, member_id):
        team = self._team(user_id)
        self._before_change(team)
        member = self._existing(team.id, member_id)
        self._before_delete(member)
        self._delete(team.id, member.id)
        logger.info("%s %s removed from team %s", self.label, member.id, team.id)
        self._after_change(team)

    # Hooks

    def _before_change(self, team):
        pass

    def _check_capacity(self, team):
        pass

    def _validate(self, changes):
        pass

    def _before_insert(self, team, changes):
        pass

    def _before_delete(self, member):
        pass

    def _after_change(self, team):
        pass


class PilotService(RosterService):
    record_cls = Pilot
    label = "Pilot"
    required_fields = (
        "name",
        "surname",
        "dni",
        "email",
        "phone",
        "emergencyContactName",
        "emergencyContactPhone",
    )
    # The representative flag is fixed at creation so the representative
    # cannot be demoted and then deleted.
    protected_fields = MEMBER_PROTECTED_FIELDS + ("is_representative",)

    def _list(self, team_id):
        return self.store.list_pilots(team_id)

    def _get(self, team_id, member_id):
        return self.store.get_pilot(team_id, member_id)

    def _find_by_dni(self, team_id, dni, exclude_id=None):
        return self.store.find_pilot_by_dni(team_id, dni, exclude_id=exclude_id)

    def _insert(self, member):
        return self.store.insert_pilot(member)

    def _update(self, team_id, member_id, changes):
        return self.store.update_pilot(team_id, member_id, changes)

    def _delete(self, team_id, member_id):
        self.store.delete_pilot(team_id, member_id)

    def _before_change(self, team):
        settings = load_settings(self.store)
        if deadline_passed(settings.pilot_modification_deadline):
            raise ForbiddenError("Pilot modification deadline has passed")

    def _check_capacity(self, team):
        if self.store.count_pilots(team.id) >= team.number_of_pilots:
            raise CapacityError(f"Team already has maximum pilots ({team.number_of_pilots})")

    def _validate(self, changes):
        if "driving_level" in changes:
            check_choice(changes["driving_level"], DRIVING_LEVELS, "drivingLevel")

    def _before_insert(self, team, changes):
        if changes.get("is_representative") and any(p.is_representative for p in self.store.list_pilots(team.id)):
            raise ConflictError("The team already has a representative pilot")

    def _before_delete(self, member):
        if member.is_representative:
            raise ForbiddenError("Cannot delete the team representative")

    def _after_change(self, team):
        apply_status_rule(self.store, team.id)


class StaffService(RosterService):
    record_cls = StaffMember
    label = "Staff"
    required_fields = ("name", "role")

    def _list(self, team_id):
        return self.store.list_staff(team_id)

    def _get(self, team_id, member_id):
        return self.store.get_staff(team_id, member_id)

    def _find_by_dni(self, team_id, dni, exclude_id=None):
        return self.store.find_staff_by_dni(team_id, dni, exclude_id=exclude_id)

    def _insert(self, member):
        return self.store.insert_staff(member)

    def _update(self, team_id, member_id, changes):
        return self.store.update_staff(team_id, member_id, changes)

    def _delete(self, team_id, member_id):
        self.store.delete_staff(team_id, member_id)

    def _check_capacity(self, team):
        if self.store.count_staff(team.id) >= MAX_STAFF:
            raise CapacityError(f"Team already has maximum staff ({MAX_STAFF})")

    def _validate(self, changes):
        if "role" in changes:
            check_choice(changes["role"], STAFF_ROLES, "role")
