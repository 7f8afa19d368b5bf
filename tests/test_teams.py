from datetime import timedelta

import pytest
from conftest import pilot_body, team_body

from registration.errors import CapacityError, ConflictError, NotFoundError, ValidationError
from registration.models import RegistrationSettings, utcnow
from registration.roster import PilotService
from registration.teams import TeamService


def test_create_team_starts_as_draft(store):
    team = TeamService(store).create("user-1", team_body(), email="token@team.test")

    assert team.status == "draft"
    assert team.representative_user_id == "user-1"
    assert team.number_of_pilots == 5
    assert team.gdpr_consent_date is not None
    assert store.get_team_by_owner("user-1").id == team.id


@pytest.mark.parametrize("pilots", [4, 5, 6, 7, 8])
def test_create_accepts_pilot_targets_in_range(store, pilots):
    team = TeamService(store).create("user-1", team_body(numberOfPilots=pilots))
    assert team.number_of_pilots == pilots


def test_second_team_for_same_owner_conflicts(store):
    service = TeamService(store)
    service.create("user-1", team_body())

    with pytest.raises(ConflictError):
        service.create("user-1", team_body(name="Another"))
    assert store.count_teams() == 1


def test_backend_rejects_duplicate_owner(store):
    # A racing create that slipped past the service-level check
    team = TeamService(store).create("user-1", team_body())
    duplicate = team.with_changes(id="other-id", name="Racer")

    with pytest.raises(ConflictError):
        store.insert_team(duplicate)


@pytest.mark.parametrize("pilots", [0, 3, 9, "12"])
def test_pilot_target_outside_range_rejected(store, pilots):
    with pytest.raises(ValidationError):
        TeamService(store).create("user-1", team_body(numberOfPilots=pilots))
    assert store.count_teams() == 0


@pytest.mark.parametrize("missing", ["name", "numberOfPilots"])
def test_required_fields(store, missing):
    body = team_body()
    del body[missing]
    with pytest.raises(ValidationError, match=missing):
        TeamService(store).create("user-1", body)


def test_invalid_engine_capacity(store):
    with pytest.raises(ValidationError):
        TeamService(store).create("user-1", team_body(engineCapacity="600cc"))


def test_representative_email_defaults_to_token_email(store):
    body = team_body()
    del body["representativeEmail"]
    team = TeamService(store).create("user-1", body, email="token@team.test")
    assert team.representative_email == "token@team.test"


def test_closed_registration(store):
    store.put_settings(RegistrationSettings(registration_open=False))
    with pytest.raises(CapacityError, match="closed"):
        TeamService(store).create("user-1", team_body())


def test_registration_deadline_passed(store):
    deadline = (utcnow() - timedelta(days=1)).isoformat()
    store.put_settings(RegistrationSettings(registration_deadline=deadline))
    with pytest.raises(CapacityError, match="deadline"):
        TeamService(store).create("user-1", team_body())


def test_registration_deadline_in_future(store):
    deadline = (utcnow() + timedelta(days=1)).isoformat()
    store.put_settings(RegistrationSettings(registration_deadline=deadline))
    assert TeamService(store).create("user-1", team_body()).status == "draft"


def test_max_teams_scenario(store):
    store.put_settings(RegistrationSettings(registration_open=True, max_teams=2))
    service = TeamService(store)
    service.create("user-1", team_body(name="One"))
    service.create("user-2", team_body(name="Two"))

    with pytest.raises(CapacityError):
        service.create("user-3", team_body(name="Three"))

    assert store.count_teams() == 2
    assert store.get_team_by_owner("user-3") is None


def test_get_by_owner_without_team(store):
    service = TeamService(store)
    assert service.get_by_owner("nobody") is None
    assert service.get_with_roster("nobody") is None


def test_get_with_roster(store):
    service = TeamService(store)
    service.create("user-1", team_body())
    PilotService(store).add("user-1", pilot_body(1))

    team = service.get_with_roster("user-1")

    assert team["name"] == "Moto Racing Team"
    assert [p["name"] for p in team["pilots"]] == ["Pilot1"]
    assert team["staff"] == []


def test_update_strips_protected_fields(store):
    service = TeamService(store)
    team = service.create("user-1", team_body())

    updated = service.update(
        "user-1",
        {
            "id": "hijack",
            "representativeUserId": "user-2",
            "status": "confirmed",
            "createdAt": "2000-01-01T00:00:00+00:00",
            "comments": "Bringing spare tyres",
            "unknownField": "ignored",
        },
    )

    assert updated.id == team.id
    assert updated.representative_user_id == "user-1"
    assert updated.status == "draft"
    assert updated.created_at == team.created_at
    assert updated.comments == "Bringing spare tyres"


@pytest.mark.parametrize("name", ["", "   ", None])
def test_update_cannot_blank_name(store, name):
    service = TeamService(store)
    service.create("user-1", team_body(name="Moto Racing Team"))

    with pytest.raises(ValidationError, match="name"):
        service.update("user-1", {"name": name})
    assert store.get_team_by_owner("user-1").name == "Moto Racing Team"


def test_update_without_team(store):
    with pytest.raises(NotFoundError):
        TeamService(store).update("user-1", {"name": "Ghost"})


def test_update_cannot_shrink_below_roster(store):
    service = TeamService(store)
    service.create("user-1", team_body(numberOfPilots=5))
    pilots = PilotService(store)
    for n in range(1, 6):
        pilots.add("user-1", pilot_body(n))

    with pytest.raises(ValidationError):
        service.update("user-1", {"numberOfPilots": 4})


def test_update_stamps_consent_date(store):
    service = TeamService(store)
    service.create("user-1", team_body(gdprConsent=False))

    updated = service.update("user-1", {"gdprConsent": True})

    assert updated.gdpr_consent is True
    assert updated.gdpr_consent_date is not None


def test_admin_update_status(store):
    service = TeamService(store)
    team = service.create("user-1", team_body())

    assert service.admin_update_status(team.id, "confirmed").status == "confirmed"


@pytest.mark.parametrize("status", ["approved", "", None])
def test_admin_update_status_rejects_unknown(store, status):
    service = TeamService(store)
    team = service.create("user-1", team_body())

    with pytest.raises(ValidationError):
        service.admin_update_status(team.id, status)


def test_admin_update_status_missing_team(store):
    with pytest.raises(NotFoundError):
        TeamService(store).admin_update_status("missing", "confirmed")
