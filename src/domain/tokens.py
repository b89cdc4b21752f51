"""
Session token lifecycle - issuance, validation and revocation.

Validation pipeline (order is policy):
1. Revocation check - a denylisted token is rejected before any signature work
2. Signature check  - delegated to the TokenSigner port
3. Expiry check     - folded into the signer, re-checked against claims here

Because revocation is checked first, an unavailable revocation store blocks
validation. ``fail_open`` selects what happens then:
- False (default): raise RevocationStatusUnknown. Availability of token
  validation depends on the revocation backend.
- True: log a warning and continue to signature/expiry checks. A token
  revoked during the outage is accepted until its natural expiry.
"""

import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass

from .exceptions import BadSignature, RevocationStatusUnknown, TokenExpired, TokenRevoked, UnexpectedError
from .ports import Claims, RevocationStore, TokenSigner
from .values import IdentityAddress

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL_SECONDS = 600


@dataclass
class SessionTokenService:
    """Issues and validates signed, time-bounded session tokens."""

    signer: TokenSigner
    revocation_store: RevocationStore
    ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS
    fail_open: bool = False
    clock: Callable[[], float] = time.time

    def issue(self, address: IdentityAddress) -> str:
        """
        Mint a session token for address.

        Raises:
            UnexpectedError: Signing failed
        """
        now = int(self.clock())
        # jti keeps tokens issued within the same second distinct
        claims = {
            "sub": address.value,
            "iat": now,
            "exp": now + self.ttl_seconds,
            "jti": uuid.uuid4().hex,
        }
        return self.signer.sign(claims)

    def validate(self, token: str) -> Claims:
        """
        Run the validation pipeline.

        Raises:
            TokenRevoked: Token was revoked by logout
            BadSignature: Malformed token or invalid signature
            TokenExpired: Token is past its expiry
            RevocationStatusUnknown: Revocation store unavailable (fail-closed)
        """
        if not token:
            raise BadSignature("empty token")

        self._check_revocation(token)

        payload = self.signer.verify(token)
        try:
            claims = Claims(
                subject=str(payload["sub"]),
                expires_at=int(payload["exp"]),
                issued_at=int(payload.get("iat", 0)),
            )
        except (KeyError, TypeError, ValueError):
            raise BadSignature("token is missing required claims") from None

        if claims.expires_at <= int(self.clock()):
            raise TokenExpired("token expired")
        return claims

    def revoke(self, token: str, claims: Claims) -> None:
        """Denylist token until its own expiry so the entry never outlives it."""
        remaining = max(1, claims.expires_at - int(self.clock()))
        self.revocation_store.revoke(token, remaining)

    def _check_revocation(self, token: str) -> None:
        try:
            revoked = self.revocation_store.is_revoked(token)
        except UnexpectedError as e:
            if not self.fail_open:
                logger.error("Revocation status unavailable, rejecting token", exc_info=True)
                raise RevocationStatusUnknown("revocation status unavailable") from e
            logger.warning(
                "Revocation status unavailable, continuing without revocation check",
                exc_info=True,
            )
            return

        if revoked:
            raise TokenRevoked("token has been revoked")
