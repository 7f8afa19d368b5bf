"""Admin exports: spreadsheet-friendly CSV tables and a full JSON snapshot."""

import csv
import io
import json
from dataclasses import dataclass

from registration.errors import ValidationError
from registration.models import by_created_at, utcnow

EXPORT_KINDS = ("teams", "pilots", "staff", "all")
EXPORT_FORMATS = ("csv", "json")

# UTF-8 byte-order mark so spreadsheet apps detect the encoding.
BOM = "\ufeff"

TEAM_COLUMNS = (
    ("name", "Nombre Equipo"),
    ("status", "Estado"),
    ("numberOfPilots", "Num Pilotos"),
    ("representativeName", "Representante Nombre"),
    ("representativeSurname", "Representante Apellidos"),
    ("representativeDni", "DNI"),
    ("representativeEmail", "Email"),
    ("representativePhone", "Telefono"),
    ("address", "Direccion"),
    ("municipality", "Municipio"),
    ("postalCode", "CP"),
    ("province", "Provincia"),
    ("motorcycleBrand", "Marca Moto"),
    ("motorcycleModel", "Modelo Moto"),
    ("engineCapacity", "Cilindrada"),
    ("createdAt", "Fecha Registro"),
)

PILOT_COLUMNS = (
    ("teamName", "Equipo"),
    ("name", "Nombre"),
    ("surname", "Apellidos"),
    ("dni", "DNI"),
    ("email", "Email"),
    ("phone", "Telefono"),
    ("drivingLevel", "Nivel"),
    ("trackExperience", "Experiencia"),
    ("emergencyContactName", "Contacto Emergencia"),
    ("emergencyContactPhone", "Tel Emergencia"),
    ("isRepresentative", "Es Representante"),
)

STAFF_COLUMNS = (
    ("teamName", "Equipo"),
    ("name", "Nombre"),
    ("dni", "DNI"),
    ("phone", "Telefono"),
    ("role", "Rol"),
)

TABLES = {
    "teams": ("equipos", TEAM_COLUMNS),
    "pilots": ("pilotos", PILOT_COLUMNS),
    "staff": ("staff", STAFF_COLUMNS),
}


@dataclass
class Export:
    filename: str
    content_type: str
    body: str


def _cell(value):
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def to_csv(rows, columns):
    """Every field quoted, inner quotes doubled, one header row."""
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow([label for _, label in columns])
    for row in rows:
        writer.writerow([_cell(row.get(key)) for key, _ in columns])
    return buf.getvalue()[: -len("\n")]


def _team_rows(store):
    return [t.to_dict() for t in by_created_at(store.list_teams(), reverse=True)]


def _member_rows(store, list_members, teams=None):
    rows = []
    for team in teams if teams is not None else by_created_at(store.list_teams()):
        for member in by_created_at(list_members(team.id), reverse=True):
            rows.append({**member.to_dict(), "teamName": team.name})
    return rows


def collect_rows(store, kind):
    if kind == "teams":
        return _team_rows(store)
    if kind == "pilots":
        return _member_rows(store, store.list_pilots)
    if kind == "staff":
        return _member_rows(store, store.list_staff)
    raise ValidationError("Invalid export type. Use: teams, pilots, staff, or all")


def snapshot(store, now):
    teams = sorted(store.list_teams(), key=lambda t: t.name.lower())
    return {
        "exportedAt": now.isoformat(),
        "teams": [t.to_dict() for t in teams],
        "pilots": _member_rows(store, store.list_pilots, teams),
        "staff": _member_rows(store, store.list_staff, teams),
    }


def build_export(store, kind="teams", fmt="csv", prefix="grip-club-export", now=None):
    if kind not in EXPORT_KINDS:
        raise ValidationError("Invalid export type. Use: teams, pilots, staff, or all")
    if fmt not in EXPORT_FORMATS:
        raise ValidationError("Invalid export format. Use: csv or json")

    now = now or utcnow()
    date_str = now.date().isoformat()

    if kind == "all":
        return Export(
            filename=f"{prefix}-{date_str}.json",
            content_type="application/json",
            body=json.dumps(snapshot(store, now), indent=2, ensure_ascii=False),
        )

    name, columns = TABLES[kind]
    rows = collect_rows(store, kind)
    if fmt == "json":
        return Export(
            filename=f"{name}-{date_str}.json",
            content_type="application/json",
            body=json.dumps(rows, indent=2, ensure_ascii=False),
        )
    return Export(
        filename=f"{name}-{date_str}.csv",
        content_type="text/csv; charset=utf-8",
        body=BOM + to_csv(rows, columns),
    )
