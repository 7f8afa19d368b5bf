"""Canonical records shared by both storage backends.

Attributes are snake_case; ``to_dict``/``from_dict`` speak the camelCase
names used on the wire and in the document store.
"""

from dataclasses import dataclass, fields, replace
from datetime import datetime, timezone
from typing import Optional

TEAM_STATUSES = ("draft", "pending", "confirmed", "cancelled")
ENGINE_CAPACITIES = ("125cc_4t", "50cc_2t")
DRIVING_LEVELS = ("amateur", "intermediate", "advanced", "expert")
STAFF_ROLES = ("mechanic", "coordinator", "support")

MIN_PILOTS = 4
MAX_PILOTS = 8
MAX_STAFF = 4

SETTINGS_ID = "registration"


def camel(name):
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def utcnow():
    return datetime.now(timezone.utc)


def utcnow_iso():
    return utcnow().isoformat()


def parse_timestamp(value) -> Optional[datetime]:
    """Parse an ISO date or datetime; naive values are taken as UTC."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class Record:
    """Mixin for the wire/attribute name mapping."""

    @classmethod
    def attribute_names(cls):
        return [f.name for f in fields(cls)]

    @classmethod
    def wire_names(cls):
        """camelCase name -> attribute name."""
        return {camel(name): name for name in cls.attribute_names()}

    @classmethod
    def from_dict(cls, data):
        known = cls.wire_names()
        return cls(**{attr: data[wire] for wire, attr in known.items() if wire in data})

    def to_dict(self):
        return {camel(f.name): getattr(self, f.name) for f in fields(self)}

    def with_changes(self, **changes):
        return replace(self, **changes)


@dataclass
class Team(Record):
    id: str
    representative_user_id: str
    name: str
    number_of_pilots: int
    representative_name: str = ""
    representative_surname: str = ""
    representative_dni: str = ""
    representative_phone: str = ""
    representative_email: str = ""
    address: str = ""
    municipality: str = ""
    postal_code: str = ""
    province: str = ""
    motorcycle_brand: str = ""
    motorcycle_model: str = ""
    engine_capacity: str = "125cc_4t"
    registration_date: str = ""
    modifications: str = ""
    comments: str = ""
    gdpr_consent: bool = False
    gdpr_consent_date: Optional[str] = None
    status: str = "draft"
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class Pilot(Record):
    id: str
    team_id: str
    name: str
    surname: str
    dni: str
    email: str
    phone: str
    emergency_contact_name: str
    emergency_contact_phone: str
    driving_level: str = "amateur"
    track_experience: str = ""
    is_representative: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class StaffMember(Record):
    id: str
    team_id: str
    name: str
    role: str
    dni: str = ""
    phone: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class RegistrationSettings(Record):
    id: str = SETTINGS_ID
    registration_open: bool = True
    max_teams: int = 35
    registration_deadline: Optional[str] = None
    pilot_modification_deadline: Optional[str] = None
    event_date: Optional[str] = None
    event_location: Optional[str] = None
    updated_at: Optional[str] = None


def by_created_at(records, reverse=False):
    return sorted(records, key=lambda record: record.created_at or "", reverse=reverse)
