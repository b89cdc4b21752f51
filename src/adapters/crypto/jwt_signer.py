"""
JWT token signer - Implements TokenSigner protocol via PyJWT.

Signature and expiry are checked together by ``jwt.decode``; PyJWT errors
are translated to domain token errors so they never cross the port.
"""

import jwt

from src.domain.exceptions import BadSignature, TokenExpired, UnexpectedError


class JwtTokenSigner:
    """
    Implements TokenSigner protocol with an HMAC shared secret.

    Raises ValueError at construction when no secret is configured, so a
    missing signing key fails startup rather than the first request.
    """

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        if not secret:
            raise ValueError("JWT signing secret is not configured")
        self._secret = secret
        self._algorithm = algorithm

    def sign(self, claims: dict) -> str:
        try:
            return jwt.encode(claims, self._secret, algorithm=self._algorithm)
        except (jwt.PyJWTError, TypeError) as e:
            raise UnexpectedError("failed to sign token") from e

    def verify(self, token: str) -> dict:
        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpired("token expired") from None
        except jwt.PyJWTError:
            raise BadSignature("token signature is invalid") from None
