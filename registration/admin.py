"""Admin overview: every team with its roster and summary statistics."""

from collections import Counter
from decimal import ROUND_HALF_UP, Decimal

from registration.models import DRIVING_LEVELS, ENGINE_CAPACITIES, STAFF_ROLES, TEAM_STATUSES, by_created_at


def _round_half_up(value, places="1"):
    return Decimal(str(value)).quantize(Decimal(places), rounding=ROUND_HALF_UP)


def _tally(values, keys):
    counts = Counter(values)
    return {key: counts.get(key, 0) for key in keys}


def registration_date(created_at):
    """Date part of a stored ISO timestamp, as stored."""
    return (created_at or "").split("T")[0]


def compute_stats(teams):
    """Summary over team dicts carrying nested ``pilots`` and ``staff`` lists."""
    pilots = [p for t in teams for p in t["pilots"]]
    staff = [s for t in teams for s in t["staff"]]
    total = len(teams)
    statuses = _tally((t["status"] for t in teams), TEAM_STATUSES)

    by_date = Counter()
    for team in teams:
        date = registration_date(team.get("createdAt"))
        if date:
            by_date[date] += 1

    if total:
        conversion_rate = int(_round_half_up(statuses["confirmed"] / total * 100, "1"))
        avg_pilots = str(_round_half_up(len(pilots) / total, "0.1"))
    else:
        conversion_rate = 0
        avg_pilots = "0"

    return {
        "total": total,
        **statuses,
        "totalPilots": len(pilots),
        "totalStaff": len(staff),
        "drivingLevels": _tally((p["drivingLevel"] for p in pilots), DRIVING_LEVELS),
        "engineTypes": _tally((t["engineCapacity"] for t in teams), ENGINE_CAPACITIES),
        "staffRoles": _tally((s["role"] for s in staff), STAFF_ROLES),
        "registrationsByDate": dict(sorted(by_date.items())),
        "teamsWithoutGdpr": sum(1 for t in teams if not t.get("gdprConsent")),
        "conversionRate": conversion_rate,
        "avgPilotsPerTeam": avg_pilots,
    }


def list_all_teams(store):
    """Return ``(teams, stats)`` with teams newest first."""
    teams = []
    for team in by_created_at(store.list_teams(), reverse=True):
        pilots = [p.to_dict() for p in by_created_at(store.list_pilots(team.id))]
        staff = [s.to_dict() for s in by_created_at(store.list_staff(team.id))]
        teams.append(
            {
                **team.to_dict(),
                "pilots": pilots,
                "staff": staff,
                "pilotsCount": len(pilots),
                "staffCount": len(staff),
            }
        )
    return teams, compute_stats(teams)
