"""
Pytest configuration and fixtures
"""
import json
import os
import time

import boto3
import jwt
import pytest
from moto import mock_aws
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

# moto needs credentials and a region even though nothing leaves the process
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_SECURITY_TOKEN", "testing")
os.environ.setdefault("AWS_SESSION_TOKEN", "testing")
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-1")

from registration import clients
from registration.auth import TokenVerifier
from registration.config import Config
from registration.dynamo import DynamoStore
from registration.sql import SqlStore

JWT_SECRET = "test-secret-for-hs256-signing-must-be-long-enough-0123456789"
ADMIN_EMAIL = "admin@gripclub.test"
TABLE_NAME = "endurance-registration-test"


def make_token(sub="user-1", email="rep@team.test", expires_in=3600, secret=JWT_SECRET, **claims):
    payload = {"sub": sub, "email": email, "exp": int(time.time()) + expires_in, **claims}
    return jwt.encode(payload, secret, algorithm="HS256")


def make_event(method, token=None, body=None, query=None):
    headers = {"Content-Type": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return {
        "httpMethod": method,
        "path": "/api",
        "headers": headers,
        "queryStringParameters": query,
        "body": json.dumps(body) if body is not None else None,
        "isBase64Encoded": False,
    }


def team_body(**overrides):
    body = {
        "name": "Moto Racing Team",
        "numberOfPilots": 5,
        "representativeName": "Laura",
        "representativeSurname": "Vidal",
        "representativeDni": "12345678Z",
        "representativePhone": "600000000",
        "representativeEmail": "laura@team.test",
        "motorcycleBrand": "Honda",
        "motorcycleModel": "CBR125",
        "engineCapacity": "125cc_4t",
        "gdprConsent": True,
    }
    body.update(overrides)
    return body


def pilot_body(n=1, **overrides):
    body = {
        "name": f"Pilot{n}",
        "surname": "Garcia",
        "dni": f"0000000{n}A",
        "email": f"pilot{n}@team.test",
        "phone": f"61100000{n}",
        "emergencyContactName": "Ana",
        "emergencyContactPhone": "622000000",
        "drivingLevel": "intermediate",
    }
    body.update(overrides)
    return body


def staff_body(n=1, **overrides):
    body = {"name": f"Staff{n}", "dni": f"1111111{n}B", "phone": "633000000", "role": "mechanic"}
    body.update(overrides)
    return body


@pytest.fixture
def sql_store():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    store = SqlStore(engine)
    store.create_schema()
    yield store
    engine.dispose()


@pytest.fixture
def dynamo_store():
    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name="eu-west-1")
        table = dynamodb.create_table(
            TableName=TABLE_NAME,
            KeySchema=[
                {"AttributeName": "pk", "KeyType": "HASH"},
                {"AttributeName": "sk", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "pk", "AttributeType": "S"},
                {"AttributeName": "sk", "AttributeType": "S"},
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        yield DynamoStore(table)


@pytest.fixture(params=["sql", "dynamodb"])
def store(request):
    """Run the test once per storage backend."""
    fixture = "sql_store" if request.param == "sql" else "dynamo_store"
    return request.getfixturevalue(fixture)


@pytest.fixture
def config():
    return Config(
        store_backend="sql",
        admin_emails=frozenset({ADMIN_EMAIL}),
        jwt_secret=JWT_SECRET,
    )


@pytest.fixture
def wired(monkeypatch, store, config):
    """Point the Lambda singletons at the test store and config."""
    monkeypatch.setattr(clients, "_config", config)
    monkeypatch.setattr(clients, "_store", store)
    monkeypatch.setattr(clients, "_verifier", TokenVerifier.from_config(config))
    return store


@pytest.fixture
def rep_token():
    return make_token(sub="user-1", email="rep@team.test")


@pytest.fixture
def admin_token():
    return make_token(sub="admin-1", email=ADMIN_EMAIL)
