"""
Login domain service - Login state machine implementation.

This module contains the core business logic for authenticating an identity,
optionally gated by a one-time code second factor.

Login State Machine
===================

States:
- AWAITING_CREDENTIALS: Address and credential submitted, not yet checked
- CREDENTIALS_VERIFIED: Credential matched the stored hash
- CHALLENGE_ISSUED: Second factor required, code dispatched, no token yet
- CHALLENGE_VERIFIED: Pending challenge matched and consumed
- SESSION_ISSUED: Terminal, session token minted

Transitions:
    AWAITING_CREDENTIALS -> CREDENTIALS_VERIFIED
    CREDENTIALS_VERIFIED -> SESSION_ISSUED     (second factor disabled)
    CREDENTIALS_VERIFIED -> CHALLENGE_ISSUED   (second factor enabled)
    CHALLENGE_ISSUED     -> CHALLENGE_VERIFIED -> SESSION_ISSUED

Any rejection is terminal and raised as a domain exception.

Unknown identities and wrong credentials both surface as InvalidCredentials
so callers cannot enumerate registered addresses.

A challenge whose code could not be dispatched is removed again before the
error surfaces, unless a newer login has already replaced it. If that removal
fails too, the orphan expires by TTL.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .exceptions import (
    CredentialMismatch,
    IdentityNotFound,
    InvalidCredentials,
    MessageDeliveryFailed,
    MissingToken,
    TokenRevoked,
    UnexpectedError,
)
from .ports import (
    ChallengeStore,
    Claims,
    IdentityRecord,
    IdentityStore,
    LoginResult,
    LoginState,
    MessageSender,
    PasswordHasher,
)
from .tokens import SessionTokenService
from .values import ChallengeId, IdentityAddress, OneTimeCode, SecretCredential

logger = logging.getLogger(__name__)

DEFAULT_CHALLENGE_TTL_SECONDS = 600
CHALLENGE_SUBJECT = "2FA Code"


@dataclass
class LoginService:
    """
    Domain service for registration, login, second factor and logout.

    Stores and collaborators are injected; their concurrency discipline
    is their own concern.
    """

    identity_store: IdentityStore
    challenge_store: ChallengeStore
    hasher: PasswordHasher
    tokens: SessionTokenService
    message_sender: MessageSender
    challenge_ttl_seconds: int = DEFAULT_CHALLENGE_TTL_SECONDS

    def register(self, address: str, credential: str, requires_second_factor: bool = False) -> IdentityAddress:
        """
        Register a new identity.

        Args:
            address: Email address (will be normalized)
            credential: Plaintext credential (will be hashed)
            requires_second_factor: Whether login needs a one-time code

        Returns:
            Normalized identity address

        Raises:
            ValidationError: Malformed address or credential
            IdentityAlreadyExists: Address already registered
        """
        identity = IdentityAddress.parse(address)
        candidate = SecretCredential.parse(credential)

        record = IdentityRecord(
            address=identity,
            credential_hash=self.hasher.hash(candidate),
            requires_second_factor=requires_second_factor,
        )
        self.identity_store.add(record)
        logger.info("Registered identity %s (second factor: %s)", identity, requires_second_factor)
        return identity

    def login(self, address: str, credential: str) -> LoginResult:
        """
        Authenticate with address and credential.

        Returns:
            LoginResult in SESSION_ISSUED (with token) or
            CHALLENGE_ISSUED (with challenge id) state

        Raises:
            ValidationError: Malformed input (no store was touched)
            InvalidCredentials: Unknown identity or wrong credential
            MessageDeliveryFailed: Code could not be dispatched
        """
        identity = IdentityAddress.parse(address)
        candidate = SecretCredential.parse(credential)

        # validate_credential runs the hash even for unknown identities
        try:
            self.identity_store.validate_credential(identity, candidate)
            record = self.identity_store.get(identity)
        except (IdentityNotFound, CredentialMismatch):
            raise InvalidCredentials("invalid credentials") from None
        logger.debug("%s: %s", LoginState.CREDENTIALS_VERIFIED.value, identity)

        if not record.requires_second_factor:
            return self._issue_session(identity)
        return self._issue_challenge(identity)

    def verify_challenge(self, address: str, challenge_id: str, code: str) -> LoginResult:
        """
        Complete a second-factor login.

        The pending challenge is consumed atomically, so a correct
        id/code pair works exactly once.

        Raises:
            ValidationError: Malformed input
            ChallengeNotFound: Nothing pending (expired, consumed, never issued)
            InvalidAttempt: Id or code does not match
        """
        identity = IdentityAddress.parse(address)
        parsed_id = ChallengeId.parse(challenge_id)
        parsed_code = OneTimeCode.parse(code)

        self.challenge_store.consume(identity, parsed_id, parsed_code)
        logger.debug("%s: %s", LoginState.CHALLENGE_VERIFIED.value, identity)
        return self._issue_session(identity)

    def logout(self, token: Optional[str]) -> None:
        """
        Revoke a presented session token.

        Revoking an already revoked token succeeds. Expired or forged
        tokens are rejected without revoking anything.

        Raises:
            MissingToken: No token presented
            TokenExpired / BadSignature: Token not valid
            RevocationStatusUnknown: Revocation store unavailable
        """
        if not token:
            raise MissingToken("no session token presented")

        try:
            claims = self.tokens.validate(token)
        except TokenRevoked:
            logger.info("Logout for already revoked token")
            return

        self.tokens.revoke(token, claims)
        logger.info("Revoked session token for %s", claims.subject)

    def verify_token(self, token: Optional[str]) -> Claims:
        """Validate a presented session token and return its claims."""
        if not token:
            raise MissingToken("no session token presented")
        return self.tokens.validate(token)

    def _issue_session(self, identity: IdentityAddress) -> LoginResult:
        token = self.tokens.issue(identity)
        logger.info("Session issued for %s", identity)
        return LoginResult(state=LoginState.SESSION_ISSUED, token=token)

    def _issue_challenge(self, identity: IdentityAddress) -> LoginResult:
        challenge_id = ChallengeId.generate()
        code = OneTimeCode.generate()

        self.challenge_store.put(identity, challenge_id, code, self.challenge_ttl_seconds)

        try:
            self.message_sender.send(identity, CHALLENGE_SUBJECT, code.value)
        except UnexpectedError as e:
            logger.error("Failed to dispatch second factor code to %s", identity, exc_info=True)
            try:
                self.challenge_store.remove_if(identity, challenge_id)
            except UnexpectedError:
                logger.error("Failed to roll back undelivered challenge for %s", identity, exc_info=True)
            if isinstance(e, MessageDeliveryFailed):
                raise
            raise MessageDeliveryFailed("second factor code could not be dispatched") from e

        logger.info("Challenge issued for %s", identity)
        return LoginResult(state=LoginState.CHALLENGE_ISSUED, challenge_id=challenge_id)
