"""Relational adapter (SQLAlchemy Core, snake_case columns).

Timestamps live in ``DateTime(timezone=True)`` columns and travel as ISO
strings outside this module. Owner uniqueness and per-team pilot national
IDs are backed by unique constraints.
"""

from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    func,
    select,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from registration.errors import BackendError, ConflictError, NotFoundError
from registration.models import SETTINGS_ID, Pilot, RegistrationSettings, StaffMember, Team, parse_timestamp
from registration.store import RegistrationStore

metadata = MetaData()

teams = Table(
    "teams",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("representative_user_id", String(255), nullable=False, unique=True),
    Column("name", String(255), nullable=False),
    Column("number_of_pilots", Integer, nullable=False),
    Column("representative_name", String(255), nullable=False, default=""),
    Column("representative_surname", String(255), nullable=False, default=""),
    Column("representative_dni", String(32), nullable=False, default=""),
    Column("representative_phone", String(32), nullable=False, default=""),
    Column("representative_email", String(255), nullable=False, default=""),
    Column("address", String(255), nullable=False, default=""),
    Column("municipality", String(255), nullable=False, default=""),
    Column("postal_code", String(16), nullable=False, default=""),
    Column("province", String(255), nullable=False, default=""),
    Column("motorcycle_brand", String(255), nullable=False, default=""),
    Column("motorcycle_model", String(255), nullable=False, default=""),
    Column("engine_capacity", String(16), nullable=False, default="125cc_4t"),
    Column("registration_date", String(32), nullable=False, default=""),
    Column("modifications", Text, nullable=False, default=""),
    Column("comments", Text, nullable=False, default=""),
    Column("gdpr_consent", Boolean, nullable=False, default=False),
    Column("gdpr_consent_date", DateTime(timezone=True), nullable=True),
    Column("status", String(16), nullable=False, default="draft", index=True),
    Column("created_at", DateTime(timezone=True), nullable=True),
    Column("updated_at", DateTime(timezone=True), nullable=True),
)

pilots = Table(
    "pilots",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("team_id", String(36), ForeignKey("teams.id"), nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("surname", String(255), nullable=False),
    Column("dni", String(32), nullable=False),
    Column("email", String(255), nullable=False),
    Column("phone", String(32), nullable=False),
    Column("emergency_contact_name", String(255), nullable=False),
    Column("emergency_contact_phone", String(32), nullable=False),
    Column("driving_level", String(16), nullable=False, default="amateur"),
    Column("track_experience", Text, nullable=False, default=""),
    Column("is_representative", Boolean, nullable=False, default=False),
    Column("created_at", DateTime(timezone=True), nullable=True),
    Column("updated_at", DateTime(timezone=True), nullable=True),
    UniqueConstraint("team_id", "dni", name="uq_pilots_team_dni"),
)

team_staff = Table(
    "team_staff",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("team_id", String(36), ForeignKey("teams.id"), nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("role", String(16), nullable=False),
    Column("dni", String(32), nullable=False, default=""),
    Column("phone", String(32), nullable=False, default=""),
    Column("created_at", DateTime(timezone=True), nullable=True),
    Column("updated_at", DateTime(timezone=True), nullable=True),
)

registration_settings = Table(
    "registration_settings",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("registration_open", Boolean, nullable=False, default=True),
    Column("max_teams", Integer, nullable=False, default=35),
    Column("registration_deadline", DateTime(timezone=True), nullable=True),
    Column("pilot_modification_deadline", DateTime(timezone=True), nullable=True),
    Column("event_date", String(32), nullable=True),
    Column("event_location", String(255), nullable=True),
    Column("updated_at", DateTime(timezone=True), nullable=True),
)


def _to_row(table, values):
    row = {}
    for name, value in values.items():
        if isinstance(table.c[name].type, DateTime) and isinstance(value, str) and value:
            value = parse_timestamp(value).astimezone(timezone.utc)
        row[name] = value
    return row


def _from_row(record_cls, row):
    if row is None:
        return None
    data = {}
    for name, value in row._mapping.items():
        if isinstance(value, datetime):
            if value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            value = value.isoformat()
        data[name] = value
    return record_cls(**data)


@contextmanager
def _sql_call(action):
    try:
        yield
    except SQLAlchemyError as exc:
        raise BackendError(f"SQL {action} failed: {exc}") from exc


def create_sql_engine(url):
    return create_engine(url, pool_pre_ping=True)


class SqlStore(RegistrationStore):
    def __init__(self, engine):
        self.engine = engine

    def create_schema(self):
        metadata.create_all(self.engine)

    # ── Helpers ──────────────────────────────────

    def _fetch_one(self, record_cls, statement):
        with self.engine.connect() as conn:
            return _from_row(record_cls, conn.execute(statement).first())

    def _fetch_all(self, record_cls, statement):
        with self.engine.connect() as conn:
            return [_from_row(record_cls, row) for row in conn.execute(statement)]

    def _count(self, statement):
        with self.engine.connect() as conn:
            return conn.execute(statement).scalar_one()

    def _insert(self, table, record, conflict_message):
        try:
            with self.engine.begin() as conn:
                conn.execute(table.insert().values(**_to_row(table, vars(record))))
        except IntegrityError as exc:
            raise ConflictError(conflict_message) from exc
        return record

    def _update(self, record_cls, table, where, changes, missing_message):
        with self.engine.begin() as conn:
            result = conn.execute(table.update().where(*where).values(**_to_row(table, changes)))
            if result.rowcount == 0:
                raise NotFoundError(missing_message)
            row = conn.execute(select(table).where(*where)).first()
        return _from_row(record_cls, row)

    def _delete(self, table, *where):
        with self.engine.begin() as conn:
            conn.execute(table.delete().where(*where))

    # ── Teams ────────────────────────────────────

    def get_team(self, team_id):
        with _sql_call("get team"):
            return self._fetch_one(Team, select(teams).where(teams.c.id == team_id))

    def get_team_by_owner(self, user_id):
        with _sql_call("get team by owner"):
            return self._fetch_one(Team, select(teams).where(teams.c.representative_user_id == user_id))

    def list_teams(self):
        with _sql_call("list teams"):
            return self._fetch_all(Team, select(teams))

    def count_teams(self):
        with _sql_call("count teams"):
            return self._count(select(func.count()).select_from(teams))

    def insert_team(self, team):
        with _sql_call("insert team"):
            return self._insert(teams, team, "You already have a registered team")

    def update_team(self, team_id, changes):
        with _sql_call("update team"):
            return self._update(Team, teams, [teams.c.id == team_id], changes, "Team not found")

    def set_team_status(self, team_id, status, expected, updated_at):
        statement = (
            teams.update()
            .where(teams.c.id == team_id, teams.c.status == expected)
            .values(status=status, updated_at=parse_timestamp(updated_at))
        )
        with _sql_call("set team status"):
            with self.engine.begin() as conn:
                return conn.execute(statement).rowcount == 1

    def delete_team(self, team_id):
        with _sql_call("delete team"):
            self._delete(teams, teams.c.id == team_id)

    # ── Pilots ───────────────────────────────────

    def list_pilots(self, team_id):
        with _sql_call("list pilots"):
            return self._fetch_all(Pilot, select(pilots).where(pilots.c.team_id == team_id))

    def get_pilot(self, team_id, pilot_id):
        statement = select(pilots).where(pilots.c.team_id == team_id, pilots.c.id == pilot_id)
        with _sql_call("get pilot"):
            return self._fetch_one(Pilot, statement)

    def find_pilot_by_dni(self, team_id, dni, exclude_id=None):
        statement = select(pilots).where(pilots.c.team_id == team_id, pilots.c.dni == dni)
        if exclude_id is not None:
            statement = statement.where(pilots.c.id != exclude_id)
        with _sql_call("find pilot by dni"):
            return self._fetch_one(Pilot, statement.limit(1))

    def count_pilots(self, team_id):
        statement = select(func.count()).select_from(pilots).where(pilots.c.team_id == team_id)
        with _sql_call("count pilots"):
            return self._count(statement)

    def insert_pilot(self, pilot):
        with _sql_call("insert pilot"):
            return self._insert(pilots, pilot, "A pilot with that ID already exists in the team")

    def update_pilot(self, team_id, pilot_id, changes):
        where = [pilots.c.team_id == team_id, pilots.c.id == pilot_id]
        with _sql_call("update pilot"):
            try:
                return self._update(Pilot, pilots, where, changes, "Pilot not found")
            except IntegrityError as exc:
                raise ConflictError("A pilot with that ID already exists in the team") from exc

    def delete_pilot(self, team_id, pilot_id):
        with _sql_call("delete pilot"):
            self._delete(pilots, pilots.c.team_id == team_id, pilots.c.id == pilot_id)

    # ── Staff ────────────────────────────────────

    def list_staff(self, team_id):
        with _sql_call("list staff"):
            return self._fetch_all(StaffMember, select(team_staff).where(team_staff.c.team_id == team_id))

    def get_staff(self, team_id, staff_id):
        statement = select(team_staff).where(team_staff.c.team_id == team_id, team_staff.c.id == staff_id)
        with _sql_call("get staff"):
            return self._fetch_one(StaffMember, statement)

    def find_staff_by_dni(self, team_id, dni, exclude_id=None):
        statement = select(team_staff).where(team_staff.c.team_id == team_id, team_staff.c.dni == dni)
        if exclude_id is not None:
            statement = statement.where(team_staff.c.id != exclude_id)
        with _sql_call("find staff by dni"):
            return self._fetch_one(StaffMember, statement.limit(1))

    def count_staff(self, team_id):
        statement = select(func.count()).select_from(team_staff).where(team_staff.c.team_id == team_id)
        with _sql_call("count staff"):
            return self._count(statement)

    def insert_staff(self, member):
        with _sql_call("insert staff"):
            return self._insert(team_staff, member, "A staff member with that ID already exists in the team")

    def update_staff(self, team_id, staff_id, changes):
        where = [team_staff.c.team_id == team_id, team_staff.c.id == staff_id]
        with _sql_call("update staff"):
            return self._update(StaffMember, team_staff, where, changes, "Staff not found")

    def delete_staff(self, team_id, staff_id):
        with _sql_call("delete staff"):
            self._delete(team_staff, team_staff.c.team_id == team_id, team_staff.c.id == staff_id)

    # ── Settings ─────────────────────────────────

    def get_settings(self):
        statement = select(registration_settings).where(registration_settings.c.id == SETTINGS_ID)
        with _sql_call("get settings"):
            return self._fetch_one(RegistrationSettings, statement)

    def put_settings(self, settings):
        row = _to_row(registration_settings, vars(settings))
        with _sql_call("put settings"):
            with self.engine.begin() as conn:
                exists = conn.execute(
                    select(registration_settings.c.id).where(registration_settings.c.id == settings.id)
                ).first()
                if exists:
                    conn.execute(
                        registration_settings.update()
                        .where(registration_settings.c.id == settings.id)
                        .values(**row)
                    )
                else:
                    conn.execute(registration_settings.insert().values(**row))
        return settings
