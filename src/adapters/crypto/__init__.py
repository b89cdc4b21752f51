"""Crypto adapters - Password hashing and token signing."""

from .bcrypt_hasher import BcryptPasswordHasher
from .jwt_signer import JwtTokenSigner

__all__ = ["BcryptPasswordHasher", "JwtTokenSigner"]
