"""Environment configuration.

Read once per process by ``registration.clients.get_config``. Tests build
their own ``Config`` instead of touching ``os.environ``.
"""

import os
from dataclasses import dataclass, field


def _split_csv(raw):
    return frozenset(part.strip().lower() for part in (raw or "").split(",") if part.strip())


@dataclass(frozen=True)
class Config:
    store_backend: str = "dynamodb"
    dynamodb_table: str = "endurance-registration"
    aws_region: str = ""
    database_url: str = "sqlite:///registration.db"
    admin_emails: frozenset = field(default_factory=frozenset)
    jwt_secret: str = ""
    jwt_jwks_url: str = ""
    jwt_audience: str = ""
    jwt_issuer: str = ""
    jwks_cache_seconds: int = 3600
    request_timeout: int = 5
    export_filename_prefix: str = "grip-club-export"

    @classmethod
    def from_env(cls, environ=None):
        env = os.environ if environ is None else environ
        return cls(
            store_backend=env.get("STORE_BACKEND", "dynamodb").strip().lower(),
            dynamodb_table=env.get("DYNAMODB_TABLE", "endurance-registration"),
            aws_region=env.get("AWS_REGION", ""),
            database_url=env.get("DATABASE_URL", "sqlite:///registration.db"),
            admin_emails=_split_csv(env.get("ADMIN_EMAILS", "")),
            jwt_secret=env.get("JWT_SECRET", ""),
            jwt_jwks_url=env.get("JWT_JWKS_URL", ""),
            jwt_audience=env.get("JWT_AUDIENCE", ""),
            jwt_issuer=env.get("JWT_ISSUER", ""),
            jwks_cache_seconds=int(env.get("JWKS_CACHE_SECONDS", "3600")),
            request_timeout=int(env.get("REQUEST_TIMEOUT", "5")),
            export_filename_prefix=env.get("EXPORT_FILENAME_PREFIX", "grip-club-export"),
        )
