"""Registration settings singleton."""

import logging

from registration.errors import ValidationError
from registration.models import RegistrationSettings, parse_timestamp, utcnow, utcnow_iso
from registration.validation import as_int

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "registrationOpen",
    "maxTeams",
    "registrationDeadline",
    "pilotModificationDeadline",
    "eventDate",
    "eventLocation",
)
DEADLINE_FIELDS = ("registrationDeadline", "pilotModificationDeadline")


def load_settings(store):
    return store.get_settings() or RegistrationSettings()


def settings_payload(settings):
    data = settings.to_dict()
    if data.get("updatedAt") is None:
        data.pop("updatedAt", None)
    return data


def deadline_passed(deadline, now=None):
    parsed = parse_timestamp(deadline)
    return parsed is not None and parsed < (now or utcnow())


def _clean(field_name, value):
    if field_name == "registrationOpen":
        if not isinstance(value, bool):
            raise ValidationError("registrationOpen must be true or false")
        return value
    if field_name == "maxTeams":
        max_teams = as_int(value, "maxTeams")
        if max_teams < 0:
            raise ValidationError("maxTeams must not be negative")
        return max_teams
    if value in (None, ""):
        return None
    if field_name in DEADLINE_FIELDS:
        try:
            return parse_timestamp(value).isoformat()
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"{field_name} must be an ISO date or datetime") from exc
    return str(value)


def update_settings(store, body):
    """Apply a partial update; creates the record from defaults on first write."""
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    wire_names = RegistrationSettings.wire_names()
    changes = {wire_names[name]: _clean(name, body[name]) for name in EDITABLE_FIELDS if name in body}
    if not changes:
        raise ValidationError("No valid fields to update")

    settings = load_settings(store).with_changes(**changes, updated_at=utcnow_iso())
    store.put_settings(settings)
    logger.info("Registration settings updated: %s", sorted(changes))
    return settings
