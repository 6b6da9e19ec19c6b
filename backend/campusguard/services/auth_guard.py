"""
CampusGuard — Auth Guard
==========================

What:  Admits or rejects a caller for a privileged operation.
How:   Verifies the bearer credential through the IdentityVerifier, loads the
       caller's Profile, then applies the account-status, role and
       write-access checks in that order.
Who:   Called by the `require_auth` route dependency on every protected
       endpoint.

Failure mapping:
    ┌───────────────────────────────────────┬────────┬─────────────────────────┐
    │ Failure                               │ Status │ Code                    │
    ├───────────────────────────────────────┼────────┼─────────────────────────┤
    │ No Authorization header               │ 401    │ auth/missing-token      │
    │ Header not "Bearer <token>"           │ 401    │ auth/invalid-token      │
    │ Signature / claims invalid            │ 401    │ auth/invalid-token      │
    │ Token expired                         │ 401    │ auth/token-expired      │
    │ No profile (when required)            │ 404    │ auth/profile-not-found  │
    │ No profile, roles or write required   │ 403    │ auth/forbidden          │
    │ Status not active (when required)     │ 403    │ auth/forbidden          │
    │ Role requirement not met              │ 403    │ auth/forbidden          │
    │ Read-only admin on a write operation  │ 403    │ auth/forbidden          │
    └───────────────────────────────────────┴────────┴─────────────────────────┘

The guard keeps no state between calls.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from campusguard.exceptions import AuthError, ErrorCode
from campusguard.models.profile import Profile
from campusguard.services.identity import (
    ExpiredCredentialError,
    IdentityProviderUnavailableError,
    IdentityVerificationError,
    IdentityVerifier,
    VerifiedToken,
)
from campusguard.services.profile_store import profile_store
from campusguard.services.roles import AccountStatus, has_write_access, role_satisfies

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    """An admitted caller: verified claims plus the profile, if one exists."""

    token: VerifiedToken
    profile: Optional[Profile]

    @property
    def uid(self) -> str:
        return self.token.uid

    @property
    def email(self) -> str:
        if self.profile is not None and self.profile.email:
            return self.profile.email
        return self.token.email or ""

    @property
    def roles(self) -> List[str]:
        return list(self.profile.roles) if self.profile is not None else []


def extract_bearer_token(authorization: Optional[str]) -> str:
    """
    Pull the credential out of an Authorization header value.

    Raises:
        AuthError: 401 auth/missing-token when absent,
                   401 auth/invalid-token when not "Bearer <token>"
    """
    if authorization is None or not authorization.strip():
        raise AuthError(401, ErrorCode.MISSING_TOKEN, "Missing bearer token")

    scheme, _, credential = authorization.strip().partition(" ")
    credential = credential.strip()
    if scheme.lower() != "bearer" or not credential or " " in credential:
        raise AuthError(401, ErrorCode.INVALID_TOKEN, "Malformed Authorization header")
    return credential


class AuthGuard:
    """
    Runs the admission pipeline for one request.

    Args:
        verifier: Identity boundary used to verify credentials
    """

    def __init__(self, verifier: IdentityVerifier):
        self.verifier = verifier

    async def authenticate(
        self,
        db: AsyncSession,
        authorization: Optional[str],
        require_roles: Optional[Iterable[str]] = None,
        require_write_access: bool = False,
        require_active: bool = True,
        require_profile: bool = True,
    ) -> AuthContext:
        """
        Admit a caller or raise AuthError.

        Args:
            db: Async database session
            authorization: Raw Authorization header value (may be None)
            require_roles: Caller must hold at least one of these
                           (super_admin satisfies admin)
            require_write_access: Reject principals whose admin-tier roles
                                  are all read-only
            require_active: Reject profiles whose status is not active
            require_profile: Reject callers without a profile (404); when
                             False they are admitted with profile=None,
                             unless a role or write access is required (403)

        Returns:
            AuthContext with verified claims and the profile

        Raises:
            AuthError: See the failure table in the module docstring
        """
        token = extract_bearer_token(authorization)

        try:
            verified = await self.verifier.verify(token)
        except ExpiredCredentialError:
            logger.info("Rejected expired token")
            raise AuthError(401, ErrorCode.TOKEN_EXPIRED, "Token has expired")
        except IdentityProviderUnavailableError as e:
            logger.error("Token verification unavailable: %s", e)
            raise AuthError(401, ErrorCode.INVALID_TOKEN, "Invalid or expired token")
        except IdentityVerificationError as e:
            logger.info("Rejected invalid token: %s", e)
            raise AuthError(401, ErrorCode.INVALID_TOKEN, "Invalid or expired token")

        profile = await profile_store.get(db, verified.uid)
        if profile is None:
            if require_profile:
                logger.info("Verified caller %s has no profile", verified.uid)
                raise AuthError(404, ErrorCode.PROFILE_NOT_FOUND, "User profile not found")
            # No profile means no roles: any role or write requirement fails
            if not role_satisfies([], require_roles) or require_write_access:
                logger.warning(
                    "Denied %s: no profile for required roles %s",
                    verified.uid,
                    list(require_roles or []),
                )
                raise AuthError(
                    403,
                    ErrorCode.FORBIDDEN,
                    "Insufficient role",
                    principal_id=verified.uid,
                    principal_email=verified.email,
                )
            return AuthContext(token=verified, profile=None)

        if require_active and profile.status != AccountStatus.ACTIVE.value:
            logger.warning("Denied %s: account status is %s", profile.uid, profile.status)
            raise AuthError(
                403,
                ErrorCode.FORBIDDEN,
                "Account is not active",
                principal_id=profile.uid,
                principal_email=profile.email,
            )

        if not role_satisfies(profile.roles, require_roles):
            logger.warning(
                "Denied %s: roles %s do not satisfy %s",
                profile.uid,
                profile.roles,
                list(require_roles or []),
            )
            raise AuthError(
                403,
                ErrorCode.FORBIDDEN,
                "Insufficient role",
                principal_id=profile.uid,
                principal_email=profile.email,
            )

        if require_write_access and not has_write_access(profile.roles):
            logger.warning("Denied %s: read-only admin attempted a write", profile.uid)
            raise AuthError(
                403,
                ErrorCode.FORBIDDEN,
                "Read-only access",
                principal_id=profile.uid,
                principal_email=profile.email,
            )

        return AuthContext(token=verified, profile=profile)
