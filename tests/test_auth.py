import json
import time

import jwt
import pytest
from conftest import ADMIN_EMAIL, JWT_SECRET, make_token
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import RSAAlgorithm

from registration import auth
from registration.auth import Identity, TokenVerifier, authenticate, extract_bearer_token, is_admin, require_admin
from registration.errors import AdminRequiredError, AuthError, BackendError


@pytest.fixture
def verifier():
    return TokenVerifier(secret=JWT_SECRET)


@pytest.mark.parametrize(
    "headers,expected",
    [
        ({"Authorization": "Bearer abc"}, "abc"),
        ({"authorization": "bearer abc "}, "abc"),
        ({"AUTHORIZATION": "Bearer   abc"}, "abc"),
        ({"Authorization": "Basic abc"}, None),
        ({"Authorization": "Bearer"}, None),
        ({"Authorization": ""}, None),
        ({}, None),
        (None, None),
    ],
)
def test_extract_bearer_token(headers, expected):
    assert extract_bearer_token(headers) == expected


def test_authenticate(verifier):
    identity = authenticate({"Authorization": f"Bearer {make_token(sub='u-42', email='x@y.test')}"}, verifier)

    assert identity.user_id == "u-42"
    assert identity.email == "x@y.test"
    assert identity.claims["sub"] == "u-42"


def test_missing_header(verifier):
    with pytest.raises(AuthError, match="Unauthorized"):
        authenticate({}, verifier)


def test_malformed_token(verifier):
    with pytest.raises(AuthError, match="Invalid token"):
        authenticate({"Authorization": "Bearer not-a-jwt"}, verifier)


def test_expired_token(verifier):
    with pytest.raises(AuthError, match="expired"):
        verifier.verify(make_token(expires_in=-60))


def test_wrong_secret(verifier):
    token = make_token(secret="another-secret-that-is-also-long-enough-0123456789")
    with pytest.raises(AuthError, match="Invalid token"):
        verifier.verify(token)


def test_token_without_subject(verifier):
    token = jwt.encode({"email": "x@y.test", "exp": int(time.time()) + 60}, JWT_SECRET, algorithm="HS256")
    with pytest.raises(AuthError):
        verifier.verify(token)


def test_audience_and_issuer():
    verifier = TokenVerifier(secret=JWT_SECRET, audience="grip-club", issuer="https://id.gripclub.test")

    good = make_token(aud="grip-club", iss="https://id.gripclub.test")
    assert verifier.verify(good)["aud"] == "grip-club"

    with pytest.raises(AuthError):
        verifier.verify(make_token(aud="other", iss="https://id.gripclub.test"))
    with pytest.raises(AuthError):
        verifier.verify(make_token(aud="grip-club"))


def test_unconfigured_verifier():
    with pytest.raises(BackendError):
        TokenVerifier().verify(make_token())


class FakeResponse:
    def __init__(self, payload):
        self.payload = payload

    def raise_for_status(self):
        pass

    def json(self):
        return self.payload


@pytest.fixture
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def _jwks(private_key, kid):
    jwk = json.loads(RSAAlgorithm.to_jwk(private_key.public_key()))
    jwk.update({"kid": kid, "use": "sig", "alg": "RS256"})
    return {"keys": [jwk]}


def _rs256_token(private_key, kid, sub="user-9"):
    payload = {"sub": sub, "email": "rs@team.test", "exp": int(time.time()) + 300}
    return jwt.encode(payload, private_key, algorithm="RS256", headers={"kid": kid})


def test_jwks_verification_is_cached(monkeypatch, rsa_key):
    calls = []

    def fake_get(url, timeout):
        calls.append(url)
        return FakeResponse(_jwks(rsa_key, "k1"))

    monkeypatch.setattr(auth.requests, "get", fake_get)
    verifier = TokenVerifier(jwks_url="https://id.gripclub.test/.well-known/jwks.json")

    assert verifier.verify(_rs256_token(rsa_key, "k1"))["sub"] == "user-9"
    assert verifier.verify(_rs256_token(rsa_key, "k1", sub="user-10"))["sub"] == "user-10"
    assert len(calls) == 1


def test_jwks_unknown_kid_refetches(monkeypatch, rsa_key):
    calls = []

    def fake_get(url, timeout):
        calls.append(url)
        return FakeResponse(_jwks(rsa_key, "k1"))

    monkeypatch.setattr(auth.requests, "get", fake_get)
    verifier = TokenVerifier(jwks_url="https://id.gripclub.test/.well-known/jwks.json")
    verifier.verify(_rs256_token(rsa_key, "k1"))

    with pytest.raises(AuthError):
        verifier.verify(_rs256_token(rsa_key, "rotated"))
    assert len(calls) == 2


@pytest.mark.parametrize(
    "email,admin",
    [
        (ADMIN_EMAIL, True),
        (ADMIN_EMAIL.upper(), True),
        (f"  {ADMIN_EMAIL} ", True),
        ("rep@team.test", False),
        ("", False),
    ],
)
def test_is_admin(email, admin):
    assert is_admin(Identity(user_id="u", email=email), frozenset({ADMIN_EMAIL})) is admin


def test_require_admin():
    with pytest.raises(AdminRequiredError):
        require_admin(Identity(user_id="u", email="rep@team.test"), frozenset({ADMIN_EMAIL}))
