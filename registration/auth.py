"""Bearer token authentication and the admin allow-list.

Every protected request is verified from scratch: signature, expiry and,
when configured, audience and issuer. Tokens signed with a shared secret
(HS256, as Netlify Identity issues them) and tokens signed by an identity
provider publishing a JWKS document (RS256) are both supported.
"""

import json
import logging
import time
from dataclasses import dataclass, field

import jwt
import requests
from jwt.algorithms import RSAAlgorithm

from registration.errors import AdminRequiredError, AuthError, BackendError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: str = ""
    claims: dict = field(default_factory=dict, compare=False, repr=False)


def extract_bearer_token(headers):
    """Return the bearer token from an Authorization header, or None."""
    headers = headers or {}
    value = next((v for k, v in headers.items() if k.lower() == "authorization"), None)
    if not value:
        return None
    scheme, _, token = value.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class TokenVerifier:
    def __init__(self, secret="", jwks_url="", audience="", issuer="", cache_seconds=3600, timeout=5):
        self.secret = secret
        self.jwks_url = jwks_url
        self.audience = audience
        self.issuer = issuer
        self.cache_seconds = cache_seconds
        self.timeout = timeout
        self._jwks = {}
        self._jwks_fetched_at = 0.0

    @classmethod
    def from_config(cls, config):
        return cls(
            secret=config.jwt_secret,
            jwks_url=config.jwt_jwks_url,
            audience=config.jwt_audience,
            issuer=config.jwt_issuer,
            cache_seconds=config.jwks_cache_seconds,
            timeout=config.request_timeout,
        )

    def _fetch_jwks(self):
        try:
            resp = requests.get(self.jwks_url, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise BackendError(f"Failed to fetch JWKS from {self.jwks_url}: {exc}") from exc

        keys = {}
        for key_data in resp.json().get("keys", []):
            if key_data.get("kty") == "RSA" and key_data.get("kid"):
                keys[key_data["kid"]] = RSAAlgorithm.from_jwk(json.dumps(key_data))
        self._jwks = keys
        self._jwks_fetched_at = time.monotonic()
        logger.info("Loaded %d signing keys from JWKS", len(keys))

    def _signing_key(self, token):
        try:
            kid = jwt.get_unverified_header(token).get("kid")
        except jwt.PyJWTError as exc:
            raise AuthError("Invalid token") from exc

        expired = time.monotonic() - self._jwks_fetched_at > self.cache_seconds
        if expired or kid not in self._jwks:
            # Also refetches on an unknown kid, which covers key rotation.
            self._fetch_jwks()
        key = self._jwks.get(kid)
        if key is None:
            raise AuthError("Invalid token")
        return key

    def verify(self, token):
        """Return the verified claims or raise AuthError."""
        if self.secret:
            key, algorithms = self.secret, ["HS256"]
        elif self.jwks_url:
            key, algorithms = self._signing_key(token), ["RS256"]
        else:
            raise BackendError("No JWT_SECRET or JWT_JWKS_URL configured")

        try:
            return jwt.decode(
                token,
                key,
                algorithms=algorithms,
                audience=self.audience or None,
                issuer=self.issuer or None,
                options={"require": ["exp", "sub"], "verify_aud": bool(self.audience)},
            )
        except jwt.ExpiredSignatureError as exc:
            logger.warning("Rejected expired token")
            raise AuthError("Token has expired") from exc
        except jwt.PyJWTError as exc:
            logger.warning("Rejected token: %s", exc)
            raise AuthError("Invalid token") from exc


def authenticate(headers, verifier):
    token = extract_bearer_token(headers)
    if not token:
        raise AuthError()
    claims = verifier.verify(token)
    return Identity(user_id=str(claims["sub"]), email=claims.get("email") or "", claims=claims)


def is_admin(identity, admin_emails):
    return bool(identity.email) and identity.email.strip().lower() in admin_emails


def require_admin(identity, admin_emails):
    if not is_admin(identity, admin_emails):
        raise AdminRequiredError()
