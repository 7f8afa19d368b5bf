"""Process-wide singletons (warm start reuse).

Built lazily on first use and only read afterwards: parsed config, the
datastore adapter with its boto3 resource or SQLAlchemy engine, and the
token verifier with its JWKS cache.
"""

import logging

import boto3

from registration.auth import TokenVerifier
from registration.config import Config
from registration.dynamo import DynamoStore
from registration.sql import SqlStore, create_sql_engine

logger = logging.getLogger(__name__)

_config = None
_store = None
_verifier = None


def get_config():
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def build_store(config):
    if config.store_backend == "dynamodb":
        dynamodb = boto3.resource("dynamodb", region_name=config.aws_region or None)
        return DynamoStore(dynamodb.Table(config.dynamodb_table))
    if config.store_backend == "sql":
        return SqlStore(create_sql_engine(config.database_url))
    raise ValueError(f"Unknown STORE_BACKEND: {config.store_backend!r}")


def get_store():
    global _store
    if _store is None:
        config = get_config()
        _store = build_store(config)
        logger.info("Using %s store", config.store_backend)
    return _store


def get_verifier():
    global _verifier
    if _verifier is None:
        _verifier = TokenVerifier.from_config(get_config())
    return _verifier
