"""DynamoDB document-store adapter.

Single-table layout, attribute names in camelCase:

  pk                 sk                item
  TEAM#<teamId>      TEAM              team document
  TEAM#<teamId>      PILOT#<pilotId>   pilot document
  TEAM#<teamId>      STAFF#<staffId>   staff document
  OWNER#<userId>     OWNER             owner lock, holds teamId
  SETTINGS           registration      registration settings

The owner lock is written in the same transaction as the team, so two
concurrent creates by one user cannot both succeed.
"""

from contextlib import contextmanager
from decimal import Decimal

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError

from registration.errors import BackendError, ConflictError, NotFoundError
from registration.models import SETTINGS_ID, Pilot, RegistrationSettings, StaffMember, Team, camel
from registration.store import RegistrationStore

TEAM_SK = "TEAM"
OWNER_SK = "OWNER"
PILOT_PREFIX = "PILOT#"
STAFF_PREFIX = "STAFF#"
SETTINGS_PK = "SETTINGS"
KEY_ATTRIBUTES = ("pk", "sk")


def team_pk(team_id):
    return f"TEAM#{team_id}"


def owner_pk(user_id):
    return f"OWNER#{user_id}"


def _error_code(exc):
    return exc.response.get("Error", {}).get("Code", "")


def _plain(value):
    """Undo boto3's Decimal wrapping of numbers."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def _to_record(record_cls, item):
    if not item:
        return None
    data = {k: _plain(v) for k, v in item.items() if k not in KEY_ATTRIBUTES}
    return record_cls.from_dict(data)


@contextmanager
def _dynamo_call(action):
    try:
        yield
    except (ClientError, BotoCoreError) as exc:
        raise BackendError(f"DynamoDB {action} failed: {exc}") from exc


def _update_expression(changes):
    names, values, clauses = {}, {}, []
    for i, (attr, value) in enumerate(changes.items()):
        names[f"#f{i}"] = camel(attr)
        values[f":v{i}"] = value
        clauses.append(f"#f{i} = :v{i}")
    return "SET " + ", ".join(clauses), names, values


class DynamoStore(RegistrationStore):
    def __init__(self, table):
        self.table = table

    @property
    def client(self):
        return self.table.meta.client

    # ── Queries ──────────────────────────────────

    def _query_all(self, **kwargs):
        items = []
        while True:
            response = self.table.query(ConsistentRead=True, **kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    def _scan_teams(self, **kwargs):
        results, count = [], 0
        while True:
            response = self.table.scan(FilterExpression=Attr("sk").eq(TEAM_SK), **kwargs)
            results.extend(response.get("Items", []))
            count += response.get("Count", 0)
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return results, count
            kwargs["ExclusiveStartKey"] = last_key

    def _children(self, team_id, prefix, **kwargs):
        return self._query_all(
            KeyConditionExpression=Key("pk").eq(team_pk(team_id)) & Key("sk").begins_with(prefix),
            **kwargs,
        )

    def _get_item(self, pk, sk):
        response = self.table.get_item(Key={"pk": pk, "sk": sk}, ConsistentRead=True)
        return response.get("Item")

    def _update_item(self, pk, sk, changes, missing_message):
        expression, names, values = _update_expression(changes)
        try:
            response = self.table.update_item(
                Key={"pk": pk, "sk": sk},
                UpdateExpression=expression,
                ConditionExpression="attribute_exists(pk)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except ClientError as exc:
            if _error_code(exc) == "ConditionalCheckFailedException":
                raise NotFoundError(missing_message) from exc
            raise
        return response["Attributes"]

    # ── Teams ────────────────────────────────────

    def get_team(self, team_id):
        with _dynamo_call("get team"):
            return _to_record(Team, self._get_item(team_pk(team_id), TEAM_SK))

    def get_team_by_owner(self, user_id):
        with _dynamo_call("get owner lock"):
            lock = self._get_item(owner_pk(user_id), OWNER_SK)
        if not lock:
            return None
        return self.get_team(lock["teamId"])

    def list_teams(self):
        with _dynamo_call("scan teams"):
            items, _ = self._scan_teams()
        return [_to_record(Team, item) for item in items]

    def count_teams(self):
        with _dynamo_call("count teams"):
            _, count = self._scan_teams()
        return count

    def insert_team(self, team):
        item = {"pk": team_pk(team.id), "sk": TEAM_SK, **team.to_dict()}
        lock = {"pk": owner_pk(team.representative_user_id), "sk": OWNER_SK, "teamId": team.id}
        with _dynamo_call("create team"):
            try:
                self.client.transact_write_items(
                    TransactItems=[
                        {
                            "Put": {
                                "TableName": self.table.name,
                                "Item": lock,
                                "ConditionExpression": "attribute_not_exists(pk)",
                            }
                        },
                        {
                            "Put": {
                                "TableName": self.table.name,
                                "Item": item,
                                "ConditionExpression": "attribute_not_exists(pk)",
                            }
                        },
                    ]
                )
            except ClientError as exc:
                if _error_code(exc) == "TransactionCanceledException":
                    raise ConflictError("You already have a registered team") from exc
                raise
        return team

    def update_team(self, team_id, changes):
        with _dynamo_call("update team"):
            item = self._update_item(team_pk(team_id), TEAM_SK, changes, "Team not found")
        return _to_record(Team, item)

    def set_team_status(self, team_id, status, expected, updated_at):
        with _dynamo_call("set team status"):
            try:
                self.table.update_item(
                    Key={"pk": team_pk(team_id), "sk": TEAM_SK},
                    UpdateExpression="SET #status = :status, #updated = :updated",
                    ConditionExpression="#status = :expected",
                    ExpressionAttributeNames={"#status": "status", "#updated": "updatedAt"},
                    ExpressionAttributeValues={
                        ":status": status,
                        ":updated": updated_at,
                        ":expected": expected,
                    },
                )
            except ClientError as exc:
                if _error_code(exc) == "ConditionalCheckFailedException":
                    return False
                raise
        return True

    def delete_team(self, team_id):
        team = self.get_team(team_id)
        if team is None:
            return
        with _dynamo_call("delete team"):
            self.client.transact_write_items(
                TransactItems=[
                    {
                        "Delete": {
                            "TableName": self.table.name,
                            "Key": {"pk": team_pk(team_id), "sk": TEAM_SK},
                        }
                    },
                    {
                        "Delete": {
                            "TableName": self.table.name,
                            "Key": {"pk": owner_pk(team.representative_user_id), "sk": OWNER_SK},
                        }
                    },
                ]
            )

    # ── Roster members ───────────────────────────

    def _list_members(self, record_cls, team_id, prefix):
        with _dynamo_call(f"list {record_cls.__name__}"):
            items = self._children(team_id, prefix)
        return [_to_record(record_cls, item) for item in items]

    def _get_member(self, record_cls, team_id, prefix, member_id):
        with _dynamo_call(f"get {record_cls.__name__}"):
            return _to_record(record_cls, self._get_item(team_pk(team_id), prefix + member_id))

    def _find_member_by_dni(self, record_cls, team_id, prefix, dni, exclude_id):
        with _dynamo_call(f"find {record_cls.__name__} by dni"):
            items = self._children(team_id, prefix, FilterExpression=Attr("dni").eq(dni))
        for item in items:
            if item.get("id") != exclude_id:
                return _to_record(record_cls, item)
        return None

    def _count_members(self, team_id, prefix):
        with _dynamo_call("count roster"):
            return len(self._children(team_id, prefix, ProjectionExpression="pk"))

    def _insert_member(self, member, prefix):
        item = {"pk": team_pk(member.team_id), "sk": prefix + member.id, **member.to_dict()}
        with _dynamo_call(f"put {type(member).__name__}"):
            self.table.put_item(Item=item, ConditionExpression="attribute_not_exists(pk)")
        return member

    def _update_member(self, record_cls, team_id, prefix, member_id, changes):
        with _dynamo_call(f"update {record_cls.__name__}"):
            item = self._update_item(
                team_pk(team_id), prefix + member_id, changes, f"{record_cls.__name__} not found"
            )
        return _to_record(record_cls, item)

    def _delete_member(self, team_id, prefix, member_id):
        with _dynamo_call("delete roster member"):
            self.table.delete_item(Key={"pk": team_pk(team_id), "sk": prefix + member_id})

    def list_pilots(self, team_id):
        return self._list_members(Pilot, team_id, PILOT_PREFIX)

    def get_pilot(self, team_id, pilot_id):
        return self._get_member(Pilot, team_id, PILOT_PREFIX, pilot_id)

    def find_pilot_by_dni(self, team_id, dni, exclude_id=None):
        return self._find_member_by_dni(Pilot, team_id, PILOT_PREFIX, dni, exclude_id)

    def count_pilots(self, team_id):
        return self._count_members(team_id, PILOT_PREFIX)

    def insert_pilot(self, pilot):
        return self._insert_member(pilot, PILOT_PREFIX)

    def update_pilot(self, team_id, pilot_id, changes):
        return self._update_member(Pilot, team_id, PILOT_PREFIX, pilot_id, changes)

    def delete_pilot(self, team_id, pilot_id):
        self._delete_member(team_id, PILOT_PREFIX, pilot_id)

    def list_staff(self, team_id):
        return self._list_members(StaffMember, team_id, STAFF_PREFIX)

    def get_staff(self, team_id, staff_id):
        return self._get_member(StaffMember, team_id, STAFF_PREFIX, staff_id)

    def find_staff_by_dni(self, team_id, dni, exclude_id=None):
        return self._find_member_by_dni(StaffMember, team_id, STAFF_PREFIX, dni, exclude_id)

    def count_staff(self, team_id):
        return self._count_members(team_id, STAFF_PREFIX)

    def insert_staff(self, member):
        return self._insert_member(member, STAFF_PREFIX)

    def update_staff(self, team_id, staff_id, changes):
        return self._update_member(StaffMember, team_id, STAFF_PREFIX, staff_id, changes)

    def delete_staff(self, team_id, staff_id):
        self._delete_member(team_id, STAFF_PREFIX, staff_id)

    # ── Settings ─────────────────────────────────

    def get_settings(self):
        with _dynamo_call("get settings"):
            return _to_record(RegistrationSettings, self._get_item(SETTINGS_PK, SETTINGS_ID))

    def put_settings(self, settings):
        with _dynamo_call("put settings"):
            self.table.put_item(Item={"pk": SETTINGS_PK, "sk": SETTINGS_ID, **settings.to_dict()})
        return settings
