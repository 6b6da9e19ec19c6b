"""
CampusGuard — Identity Verifier (Identity Provider Boundary)
==============================================================

What:  Turns a raw bearer credential into verified claims.
How:   Abstract IdentityVerifier interface with two implementations:
       - StaticKeyIdentityVerifier: verifies against a configured shared
         secret or PEM public key
       - JwksIdentityVerifier: fetches the provider's published signing keys
         (JWKS) over HTTP and verifies against them
Who:   Called by AuthGuard on every authenticated request.

Caching:
    Only signing-key material is cached (JwksIdentityVerifier, for
    `auth_jwks_cache_ttl` seconds). Verification results are never cached;
    every request re-verifies its token.

Retry Strategy:
    JWKS fetches use tenacity with exponential backoff and jitter on
    transport errors and 5xx responses. A token signed with an unknown key
    id triggers one forced refresh to pick up rotated keys.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
from jose import ExpiredSignatureError, JWTError, jwt
from tenacity import (
    RetryError,
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from campusguard.config import Settings, settings

logger = logging.getLogger(__name__)


# ── Verified Claims ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class VerifiedToken:
    """Claims of a successfully verified credential."""

    uid: str
    email: Optional[str]
    email_verified: bool
    claims: Dict[str, Any]

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "VerifiedToken":
        uid = claims.get("sub") or claims.get("user_id") or claims.get("uid")
        if not uid:
            raise InvalidCredentialError("Token has no subject")
        return cls(
            uid=str(uid),
            email=claims.get("email"),
            email_verified=bool(claims.get("email_verified", False)),
            claims=claims,
        )


# ── Verifier Errors ───────────────────────────────────────────────────────
# Internal to the identity boundary; AuthGuard translates them to AuthError.

class IdentityVerificationError(Exception):
    """Base class: the credential could not be verified."""


class InvalidCredentialError(IdentityVerificationError):
    """Bad signature, wrong issuer/audience, malformed token or missing subject."""


class ExpiredCredentialError(IdentityVerificationError):
    """Signature is valid but the token has expired."""


class IdentityProviderUnavailableError(IdentityVerificationError):
    """Signing keys could not be fetched from the identity provider."""


# ── Abstract Interface ────────────────────────────────────────────────────

class IdentityVerifier(ABC):
    """
    Contract for verifying bearer credentials.

    Implementations raise a subclass of IdentityVerificationError on any
    failure and never return partial claims.
    """

    @abstractmethod
    async def verify(self, token: str) -> VerifiedToken:
        """
        Verify a raw credential.

        Args:
            token: The credential without the "Bearer " prefix

        Returns:
            VerifiedToken with uid, email and email_verified

        Raises:
            ExpiredCredentialError: Token expired
            InvalidCredentialError: Token is otherwise invalid
            IdentityProviderUnavailableError: Key material unavailable
        """
        ...

    async def aclose(self) -> None:
        """Release network resources. No-op by default."""
        return None


def _decode_options(audience: Optional[str]) -> Dict[str, bool]:
    # python-jose rejects any "aud" claim when no audience is configured
    return {"verify_aud": audience is not None}


def _decode(
    token: str,
    key: Any,
    algorithms: List[str],
    issuer: Optional[str],
    audience: Optional[str],
) -> VerifiedToken:
    try:
        claims = jwt.decode(
            token,
            key,
            algorithms=algorithms,
            audience=audience,
            issuer=issuer,
            options=_decode_options(audience),
        )
    except ExpiredSignatureError as e:
        raise ExpiredCredentialError("Token has expired") from e
    except JWTError as e:
        raise InvalidCredentialError(str(e)) from e
    return VerifiedToken.from_claims(claims)


# ── Static Key Verifier ───────────────────────────────────────────────────

class StaticKeyIdentityVerifier(IdentityVerifier):
    """
    Verifies tokens against a single configured key.

    `key` is an HMAC secret for HS* algorithms or a PEM public key for
    RS*/ES* algorithms.
    """

    def __init__(
        self,
        key: str,
        algorithms: List[str],
        issuer: Optional[str] = None,
        audience: Optional[str] = None,
    ):
        self.key = key
        self.algorithms = algorithms
        self.issuer = issuer
        self.audience = audience

    async def verify(self, token: str) -> VerifiedToken:
        if not self.key:
            logger.error("Static identity verifier has no key configured (AUTH_JWT_KEY)")
            raise InvalidCredentialError("No verification key configured")
        return _decode(token, self.key, self.algorithms, self.issuer, self.audience)


# ── JWKS Verifier ─────────────────────────────────────────────────────────

class JwksIdentityVerifier(IdentityVerifier):
    """
    Verifies tokens against keys published at a JWKS endpoint.

    Keys are cached for `cache_ttl` seconds. Concurrent refreshes are
    serialized by an asyncio.Lock so a burst of requests after expiry
    triggers a single fetch.
    """

    def __init__(
        self,
        jwks_url: str,
        algorithms: List[str],
        issuer: Optional[str] = None,
        audience: Optional[str] = None,
        cache_ttl: float = 3600,
        timeout: float = 5.0,
        max_attempts: int = 3,
        min_wait: float = 1,
        max_wait: float = 5,
        http_client: Optional[httpx.AsyncClient] = None,
        clock=time.monotonic,
    ):
        self.jwks_url = jwks_url
        self.algorithms = algorithms
        self.issuer = issuer
        self.audience = audience
        self.cache_ttl = cache_ttl
        self.max_attempts = max_attempts
        self.min_wait = min_wait
        self.max_wait = max_wait
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None
        self._clock = clock
        self._jwks: Optional[Dict[str, Any]] = None
        self._fetched_at: float = 0.0
        self._lock = asyncio.Lock()

    async def verify(self, token: str) -> VerifiedToken:
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as e:
            raise InvalidCredentialError("Malformed token header") from e

        jwks = await self._get_keys()
        kid = header.get("kid")
        if kid and not self._has_kid(jwks, kid):
            # Provider may have rotated keys since the last fetch
            jwks = await self._get_keys(force=True)
            if not self._has_kid(jwks, kid):
                raise InvalidCredentialError("Token signed with an unknown key")

        return _decode(token, jwks, self.algorithms, self.issuer, self.audience)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ── Key Cache ─────────────────────────────────────────────────────────

    @staticmethod
    def _has_kid(jwks: Dict[str, Any], kid: str) -> bool:
        return any(k.get("kid") == kid for k in jwks.get("keys", []))

    def _cache_fresh(self) -> bool:
        return self._jwks is not None and (self._clock() - self._fetched_at) < self.cache_ttl

    async def _get_keys(self, force: bool = False) -> Dict[str, Any]:
        if not force and self._cache_fresh():
            return self._jwks

        async with self._lock:
            if not force and self._cache_fresh():
                return self._jwks
            try:
                jwks = await self._fetch_with_retry()
            except RetryError as e:
                logger.error("JWKS fetch failed after %d attempts: %s", self.max_attempts, e)
                raise IdentityProviderUnavailableError("Signing keys unavailable") from e
            except httpx.HTTPStatusError as e:
                logger.error("JWKS endpoint rejected request: %s", e)
                raise IdentityProviderUnavailableError("Signing keys unavailable") from e
            self._jwks = jwks
            self._fetched_at = self._clock()
            logger.info("Fetched %d signing keys from identity provider", len(jwks.get("keys", [])))
            return jwks

    async def _fetch_with_retry(self) -> Dict[str, Any]:
        @retry(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential_jitter(initial=self.min_wait, max=self.max_wait),
            retry=retry_if_exception_type((httpx.TransportError, _RetryableStatus)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
        )
        async def _attempt() -> Dict[str, Any]:
            response = await self._client.get(self.jwks_url)
            if response.status_code >= 500:
                raise _RetryableStatus(f"JWKS endpoint returned {response.status_code}")
            response.raise_for_status()
            try:
                payload = response.json()
            except ValueError as e:
                raise IdentityProviderUnavailableError("JWKS response is not JSON") from e
            if not isinstance(payload, dict) or "keys" not in payload:
                raise IdentityProviderUnavailableError("JWKS response has no 'keys'")
            return payload

        return await _attempt()


class _RetryableStatus(Exception):
    """5xx from the JWKS endpoint."""


# ── Factory ───────────────────────────────────────────────────────────────

def build_identity_verifier(config: Settings = settings) -> IdentityVerifier:
    """Create the verifier selected by AUTH_VERIFIER."""
    if config.auth_verifier == "jwks":
        logger.info("Identity verifier: JWKS (%s)", config.auth_jwks_url)
        return JwksIdentityVerifier(
            jwks_url=config.auth_jwks_url,
            algorithms=config.auth_jwt_algorithms_list,
            issuer=config.auth_issuer,
            audience=config.auth_audience,
            cache_ttl=config.auth_jwks_cache_ttl,
            timeout=config.auth_jwks_timeout,
            max_attempts=config.retry_max_attempts,
            min_wait=config.retry_min_wait,
            max_wait=config.retry_max_wait,
        )
    logger.info("Identity verifier: static key (%s)", ",".join(config.auth_jwt_algorithms_list))
    return StaticKeyIdentityVerifier(
        key=config.auth_jwt_key,
        algorithms=config.auth_jwt_algorithms_list,
        issuer=config.auth_issuer,
        audience=config.auth_audience,
    )
