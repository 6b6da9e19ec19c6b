"""
CampusGuard — Identity Verifier Tests
=======================================

What:  Tests for the static-key and JWKS identity verifiers.
How:   Credentials are signed with python-jose; the JWKS endpoint is an
       httpx.MockTransport, so no network access is needed.

What we test:
    ✅ Valid token → VerifiedToken (uid, email, email_verified)
    ✅ Expired / bad signature / wrong issuer or audience → typed errors
    ✅ JWKS keys are cached; an unknown kid forces one refresh
    ✅ 5xx and transport errors are retried (tenacity), then reported
"""

import base64
import time

import httpx
import pytest
from jose import jwt

from campusguard.config import Settings
from campusguard.services.identity import (
    ExpiredCredentialError,
    IdentityProviderUnavailableError,
    InvalidCredentialError,
    JwksIdentityVerifier,
    StaticKeyIdentityVerifier,
    VerifiedToken,
    build_identity_verifier,
)

SECRET = "static-secret"


def _token(key=SECRET, kid=None, expires_in=3600, **claims):
    now = int(time.time())
    payload = {"sub": "uid-1", "email": "t@school.test", "email_verified": True,
               "iat": now, "exp": now + expires_in}
    payload.update(claims)
    headers = {"kid": kid} if kid else None
    return jwt.encode(payload, key, algorithm="HS256", headers=headers)


def _oct_jwk(kid: str, secret: str) -> dict:
    k = base64.urlsafe_b64encode(secret.encode()).rstrip(b"=").decode()
    return {"kty": "oct", "kid": kid, "k": k, "alg": "HS256"}


class TestVerifiedToken:

    def test_subject_fallbacks(self):
        assert VerifiedToken.from_claims({"user_id": "u2"}).uid == "u2"
        assert VerifiedToken.from_claims({"uid": "u3"}).uid == "u3"

    def test_missing_subject_rejected(self):
        with pytest.raises(InvalidCredentialError):
            VerifiedToken.from_claims({"email": "x@y.z"})

    def test_email_verified_defaults_false(self):
        assert VerifiedToken.from_claims({"sub": "u"}).email_verified is False


class TestStaticKeyVerifier:

    def setup_method(self):
        self.verifier = StaticKeyIdentityVerifier(key=SECRET, algorithms=["HS256"])

    @pytest.mark.asyncio
    async def test_valid_token(self):
        verified = await self.verifier.verify(_token())
        assert verified.uid == "uid-1"
        assert verified.email == "t@school.test"
        assert verified.email_verified is True

    @pytest.mark.asyncio
    async def test_expired_token(self):
        with pytest.raises(ExpiredCredentialError):
            await self.verifier.verify(_token(expires_in=-60))

    @pytest.mark.asyncio
    async def test_bad_signature(self):
        with pytest.raises(InvalidCredentialError):
            await self.verifier.verify(_token(key="someone-else"))

    @pytest.mark.asyncio
    async def test_garbage_token(self):
        with pytest.raises(InvalidCredentialError):
            await self.verifier.verify("not-a-jwt")

    @pytest.mark.asyncio
    async def test_audience_ignored_when_not_configured(self):
        verified = await self.verifier.verify(_token(aud="some-project"))
        assert verified.uid == "uid-1"

    @pytest.mark.asyncio
    async def test_wrong_audience(self):
        verifier = StaticKeyIdentityVerifier(SECRET, ["HS256"], audience="campus")
        with pytest.raises(InvalidCredentialError):
            await verifier.verify(_token(aud="elsewhere"))

    @pytest.mark.asyncio
    async def test_wrong_issuer(self):
        verifier = StaticKeyIdentityVerifier(SECRET, ["HS256"], issuer="https://issuer.test")
        with pytest.raises(InvalidCredentialError):
            await verifier.verify(_token(iss="https://other.test"))

    @pytest.mark.asyncio
    async def test_missing_key_rejects_everything(self):
        verifier = StaticKeyIdentityVerifier(key="", algorithms=["HS256"])
        with pytest.raises(InvalidCredentialError):
            await verifier.verify(_token())


class JwksEndpoint:
    """Scripted JWKS endpoint: each request pops the next response."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


def _jwks_verifier(endpoint: JwksEndpoint, **kwargs) -> JwksIdentityVerifier:
    client = httpx.AsyncClient(transport=httpx.MockTransport(endpoint))
    options = dict(max_attempts=3, min_wait=0, max_wait=0)
    options.update(kwargs)
    return JwksIdentityVerifier(
        jwks_url="https://keys.test/jwks",
        algorithms=["HS256"],
        http_client=client,
        **options,
    )


class TestJwksVerifier:

    @pytest.mark.asyncio
    async def test_verifies_with_published_key(self):
        endpoint = JwksEndpoint(httpx.Response(200, json={"keys": [_oct_jwk("k1", SECRET)]}))
        verifier = _jwks_verifier(endpoint)
        verified = await verifier.verify(_token(kid="k1"))
        assert verified.uid == "uid-1"

    @pytest.mark.asyncio
    async def test_keys_are_cached(self):
        endpoint = JwksEndpoint(httpx.Response(200, json={"keys": [_oct_jwk("k1", SECRET)]}))
        verifier = _jwks_verifier(endpoint)
        await verifier.verify(_token(kid="k1"))
        await verifier.verify(_token(kid="k1"))
        assert endpoint.calls == 1

    @pytest.mark.asyncio
    async def test_cache_expires_after_ttl(self):
        now = [0.0]
        endpoint = JwksEndpoint(httpx.Response(200, json={"keys": [_oct_jwk("k1", SECRET)]}))
        verifier = _jwks_verifier(endpoint, cache_ttl=60, clock=lambda: now[0])
        await verifier.verify(_token(kid="k1"))
        now[0] = 61.0
        await verifier.verify(_token(kid="k1"))
        assert endpoint.calls == 2

    @pytest.mark.asyncio
    async def test_unknown_kid_forces_refresh(self):
        endpoint = JwksEndpoint(
            httpx.Response(200, json={"keys": [_oct_jwk("k1", SECRET)]}),
            httpx.Response(200, json={"keys": [_oct_jwk("k1", SECRET), _oct_jwk("k2", "rotated")]}),
        )
        verifier = _jwks_verifier(endpoint)
        await verifier.verify(_token(kid="k1"))
        verified = await verifier.verify(_token(key="rotated", kid="k2"))
        assert verified.uid == "uid-1"
        assert endpoint.calls == 2

    @pytest.mark.asyncio
    async def test_kid_still_unknown_after_refresh(self):
        endpoint = JwksEndpoint(httpx.Response(200, json={"keys": [_oct_jwk("k1", SECRET)]}))
        verifier = _jwks_verifier(endpoint)
        with pytest.raises(InvalidCredentialError):
            await verifier.verify(_token(kid="missing"))

    @pytest.mark.asyncio
    async def test_server_errors_are_retried(self):
        endpoint = JwksEndpoint(
            httpx.Response(503),
            httpx.Response(200, json={"keys": [_oct_jwk("k1", SECRET)]}),
        )
        verifier = _jwks_verifier(endpoint)
        verified = await verifier.verify(_token(kid="k1"))
        assert verified.uid == "uid-1"
        assert endpoint.calls == 2

    @pytest.mark.asyncio
    async def test_persistent_failure_reports_unavailable(self):
        endpoint = JwksEndpoint(httpx.Response(503))
        verifier = _jwks_verifier(endpoint, max_attempts=2)
        with pytest.raises(IdentityProviderUnavailableError):
            await verifier.verify(_token(kid="k1"))
        assert endpoint.calls == 2

    @pytest.mark.asyncio
    async def test_transport_errors_are_retried(self):
        endpoint = JwksEndpoint(httpx.ConnectError("refused"))
        verifier = _jwks_verifier(endpoint, max_attempts=3)
        with pytest.raises(IdentityProviderUnavailableError):
            await verifier.verify(_token(kid="k1"))
        assert endpoint.calls == 3

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self):
        endpoint = JwksEndpoint(httpx.Response(404))
        verifier = _jwks_verifier(endpoint)
        with pytest.raises(IdentityProviderUnavailableError):
            await verifier.verify(_token(kid="k1"))
        assert endpoint.calls == 1

    @pytest.mark.asyncio
    async def test_malformed_document(self):
        endpoint = JwksEndpoint(httpx.Response(200, json={"not_keys": []}))
        verifier = _jwks_verifier(endpoint)
        with pytest.raises(IdentityProviderUnavailableError):
            await verifier.verify(_token(kid="k1"))

    @pytest.mark.asyncio
    async def test_malformed_header(self):
        endpoint = JwksEndpoint(httpx.Response(200, json={"keys": []}))
        verifier = _jwks_verifier(endpoint)
        with pytest.raises(InvalidCredentialError):
            await verifier.verify("garbage")
        assert endpoint.calls == 0


class TestFactory:

    def test_static_by_default(self):
        verifier = build_identity_verifier(Settings(auth_verifier="static", auth_jwt_key="k"))
        assert isinstance(verifier, StaticKeyIdentityVerifier)

    @pytest.mark.asyncio
    async def test_jwks_selected(self):
        verifier = build_identity_verifier(Settings(auth_verifier="jwks"))
        assert isinstance(verifier, JwksIdentityVerifier)
        await verifier.aclose()
