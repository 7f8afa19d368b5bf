import pytest

from registration.models import Team
from registration.status import apply_status_rule, next_status


@pytest.mark.parametrize(
    "count,current,expected",
    [
        (0, "draft", "draft"),
        (3, "draft", "draft"),
        (4, "draft", "pending"),
        (8, "draft", "pending"),
        (5, "pending", "pending"),
        (4, "pending", "pending"),
        (3, "pending", "draft"),
        (0, "pending", "draft"),
        (2, "confirmed", "confirmed"),
        (6, "confirmed", "confirmed"),
        (1, "cancelled", "cancelled"),
        (7, "cancelled", "cancelled"),
    ],
)
def test_next_status(count, current, expected):
    assert next_status(count, current) == expected


def test_next_status_is_idempotent():
    for count in range(9):
        for status in ("draft", "pending", "confirmed", "cancelled"):
            once = next_status(count, status)
            assert next_status(count, once) == once


class StatusStoreStub:
    """Just enough of a store to drive the rule."""

    def __init__(self, status, pilots, fail_write=False):
        self.team = Team(id="t1", representative_user_id="u1", name="T", number_of_pilots=8, status=status)
        self.pilots = pilots
        self.fail_write = fail_write
        self.writes = []

    def get_team(self, team_id):
        return self.team

    def count_pilots(self, team_id):
        return self.pilots

    def set_team_status(self, team_id, status, expected, updated_at):
        self.writes.append((status, expected))
        if self.fail_write:
            # Someone else changed the status in between
            self.team = self.team.with_changes(status="confirmed")
            return False
        self.team = self.team.with_changes(status=status)
        return True


def test_apply_status_rule_writes_conditionally():
    store = StatusStoreStub("draft", pilots=4)
    assert apply_status_rule(store, "t1") == "pending"
    assert store.writes == [("pending", "draft")]


def test_apply_status_rule_skips_when_unchanged():
    store = StatusStoreStub("pending", pilots=5)
    assert apply_status_rule(store, "t1") == "pending"
    assert store.writes == []


def test_apply_status_rule_lost_race_keeps_stored_status():
    store = StatusStoreStub("pending", pilots=3, fail_write=True)
    assert apply_status_rule(store, "t1") == "confirmed"
    assert store.writes == [("draft", "pending")]
