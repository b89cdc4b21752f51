"""
Unit tests for LoginService domain logic.

Tests the login state machine over in-memory stores to verify:
- Registration (hashing, duplicate rejection)
- Login with and without a second factor
- Challenge replacement, single use and mismatch handling
- Logout and token verification
- Input validation before any store access
- Dispatch failure rollback
"""

from unittest.mock import Mock

import pytest

from src.adapters.cache.memory import InMemoryChallengeStore
from src.adapters.repository.memory import InMemoryIdentityStore
from src.domain.exceptions import (
    BadSignature,
    ChallengeNotFound,
    CredentialTooShort,
    IdentityAlreadyExists,
    InvalidAddress,
    InvalidAttempt,
    InvalidCredentials,
    InvalidOneTimeCode,
    MessageDeliveryFailed,
    MissingToken,
    TokenExpired,
    TokenRevoked,
    UnexpectedError,
)
from src.domain.login import CHALLENGE_SUBJECT, LoginService
from src.domain.ports import LoginState
from src.domain.tokens import SessionTokenService
from src.domain.values import ChallengeId, IdentityAddress, OneTimeCode

ALICE = "alice@example.com"
ALICE_CREDENTIAL = "hunter22ab"
BOB = "bob@example.com"
BOB_CREDENTIAL = "correct-horse-battery"


def last_code(sender: Mock) -> str:
    """Code body of the most recent message delivered via the mock sender."""
    return sender.send.call_args[0][2]


class TestRegister:
    """Tests for identity registration."""

    def test_register_returns_normalized_address(self, login_service: LoginService) -> None:
        assert login_service.register("  Alice@Example.com ", ALICE_CREDENTIAL) == IdentityAddress.parse(ALICE)

    def test_register_stores_hash_not_plaintext(
        self, login_service: LoginService, identity_store: InMemoryIdentityStore
    ) -> None:
        login_service.register(ALICE, ALICE_CREDENTIAL)
        record = identity_store.get(IdentityAddress.parse(ALICE))
        assert record.credential_hash.value != ALICE_CREDENTIAL
        assert record.credential_hash.value.startswith("$2b$")

    def test_register_twice_already_exists(self, login_service: LoginService) -> None:
        """First registration succeeds, the second raises IdentityAlreadyExists."""
        login_service.register(ALICE, ALICE_CREDENTIAL)
        with pytest.raises(IdentityAlreadyExists):
            login_service.register(ALICE, "another-credential")

    def test_register_duplicate_differing_only_in_case(self, login_service: LoginService) -> None:
        login_service.register(ALICE, ALICE_CREDENTIAL)
        with pytest.raises(IdentityAlreadyExists):
            login_service.register("ALICE@example.com", ALICE_CREDENTIAL)

    def test_register_rejects_malformed_input_before_store(self) -> None:
        store = Mock()
        hasher = Mock()
        service = LoginService(
            identity_store=store,
            challenge_store=Mock(),
            hasher=hasher,
            tokens=Mock(),
            message_sender=Mock(),
        )
        with pytest.raises(InvalidAddress):
            service.register("not-an-email", ALICE_CREDENTIAL)
        with pytest.raises(CredentialTooShort):
            service.register(ALICE, "short")
        store.add.assert_not_called()
        hasher.hash.assert_not_called()


class TestLoginWithoutSecondFactor:
    """Login for identities with the second factor disabled."""

    def test_login_returns_session_token(
        self, login_service: LoginService, token_service: SessionTokenService, message_sender: Mock
    ) -> None:
        """alice@example.com / hunter22ab logs in directly with no challenge."""
        login_service.register(ALICE, ALICE_CREDENTIAL, requires_second_factor=False)

        result = login_service.login(ALICE, ALICE_CREDENTIAL)

        assert result.state == LoginState.SESSION_ISSUED
        assert result.challenge_id is None
        assert token_service.validate(result.token).subject == ALICE
        message_sender.send.assert_not_called()

    def test_wrong_credential_is_invalid_credentials(self, login_service: LoginService) -> None:
        login_service.register(ALICE, ALICE_CREDENTIAL)
        with pytest.raises(InvalidCredentials):
            login_service.login(ALICE, "wrong-credential")

    def test_unknown_identity_is_invalid_credentials(self, login_service: LoginService) -> None:
        """Unknown identity is indistinguishable from a wrong credential."""
        with pytest.raises(InvalidCredentials):
            login_service.login("nobody@example.com", ALICE_CREDENTIAL)

    def test_malformed_input_rejected_before_store(self) -> None:
        store = Mock()
        service = LoginService(
            identity_store=store,
            challenge_store=Mock(),
            hasher=Mock(),
            tokens=Mock(),
            message_sender=Mock(),
        )
        with pytest.raises(InvalidAddress):
            service.login("bad", ALICE_CREDENTIAL)
        with pytest.raises(CredentialTooShort):
            service.login(ALICE, "short")
        store.get.assert_not_called()
        store.validate_credential.assert_not_called()

    def test_store_failure_propagates_as_unexpected(self) -> None:
        store = Mock()
        store.validate_credential.side_effect = UnexpectedError("db down")
        service = LoginService(
            identity_store=store,
            challenge_store=Mock(),
            hasher=Mock(),
            tokens=Mock(),
            message_sender=Mock(),
        )
        with pytest.raises(UnexpectedError):
            service.login(ALICE, ALICE_CREDENTIAL)


class TestLoginWithSecondFactor:
    """Login for identities with the second factor enabled."""

    @pytest.fixture(autouse=True)
    def register_bob(self, login_service: LoginService) -> None:
        login_service.register(BOB, BOB_CREDENTIAL, requires_second_factor=True)

    def test_login_returns_challenge_without_token(self, login_service: LoginService, message_sender: Mock) -> None:
        result = login_service.login(BOB, BOB_CREDENTIAL)

        assert result.state == LoginState.CHALLENGE_ISSUED
        assert result.token is None
        assert result.challenge_id is not None
        message_sender.send.assert_called_once()
        recipient, subject, body = message_sender.send.call_args[0]
        assert recipient == IdentityAddress.parse(BOB)
        assert subject == CHALLENGE_SUBJECT
        assert len(body) == 6 and body.isdigit()

    def test_wrong_code_then_correct_code(
        self, login_service: LoginService, message_sender: Mock, token_service: SessionTokenService
    ) -> None:
        """Wrong code is rejected; the correct code afterwards issues a token."""
        result = login_service.login(BOB, BOB_CREDENTIAL)
        code = last_code(message_sender)
        wrong = "100000" if code != "100000" else "100001"

        with pytest.raises(InvalidAttempt):
            login_service.verify_challenge(BOB, result.challenge_id.value, wrong)

        verified = login_service.verify_challenge(BOB, result.challenge_id.value, code)
        assert verified.state == LoginState.SESSION_ISSUED
        assert token_service.validate(verified.token).subject == BOB

    def test_verification_is_single_use(self, login_service: LoginService, message_sender: Mock) -> None:
        """Repeating a successful verification fails."""
        result = login_service.login(BOB, BOB_CREDENTIAL)
        code = last_code(message_sender)

        login_service.verify_challenge(BOB, result.challenge_id.value, code)
        with pytest.raises(ChallengeNotFound):
            login_service.verify_challenge(BOB, result.challenge_id.value, code)

    def test_new_login_replaces_pending_challenge(
        self, login_service: LoginService, message_sender: Mock, challenge_store: InMemoryChallengeStore
    ) -> None:
        """Only the second challenge is retrievable; the first pair is rejected."""
        first = login_service.login(BOB, BOB_CREDENTIAL)
        first_code = last_code(message_sender)
        second = login_service.login(BOB, BOB_CREDENTIAL)
        second_code = last_code(message_sender)

        pending = challenge_store.get(IdentityAddress.parse(BOB))
        assert pending.challenge_id == second.challenge_id
        assert pending.code.value == second_code

        with pytest.raises(InvalidAttempt):
            login_service.verify_challenge(BOB, first.challenge_id.value, first_code)

        verified = login_service.verify_challenge(BOB, second.challenge_id.value, second_code)
        assert verified.state == LoginState.SESSION_ISSUED

    def test_challenge_id_mismatch_rejected(self, login_service: LoginService, message_sender: Mock) -> None:
        login_service.login(BOB, BOB_CREDENTIAL)
        code = last_code(message_sender)
        with pytest.raises(InvalidAttempt):
            login_service.verify_challenge(BOB, "00000000-0000-4000-8000-000000000000", code)

    def test_verify_without_pending_challenge(self, login_service: LoginService) -> None:
        with pytest.raises(ChallengeNotFound):
            login_service.verify_challenge(BOB, "00000000-0000-4000-8000-000000000000", "123456")

    def test_verify_rejects_malformed_code_before_store(self, login_service: LoginService) -> None:
        result = login_service.login(BOB, BOB_CREDENTIAL)
        with pytest.raises(InvalidOneTimeCode):
            login_service.verify_challenge(BOB, result.challenge_id.value, "12ab56")

    def test_expired_challenge_rejected(
        self,
        identity_store: InMemoryIdentityStore,
        hasher,
        token_service: SessionTokenService,
        message_sender: Mock,
    ) -> None:
        now = [1000.0]
        store = InMemoryChallengeStore(clock=lambda: now[0])
        service = LoginService(
            identity_store=identity_store,
            challenge_store=store,
            hasher=hasher,
            tokens=token_service,
            message_sender=message_sender,
        )
        result = service.login(BOB, BOB_CREDENTIAL)
        code = last_code(message_sender)

        now[0] += 600
        with pytest.raises(ChallengeNotFound):
            service.verify_challenge(BOB, result.challenge_id.value, code)


class TestDispatchFailure:
    """Message delivery failure during challenge issuance."""

    def test_dispatch_failure_surfaces_and_rolls_back(
        self,
        login_service: LoginService,
        message_sender: Mock,
        challenge_store: InMemoryChallengeStore,
    ) -> None:
        login_service.register(BOB, BOB_CREDENTIAL, requires_second_factor=True)
        message_sender.send.side_effect = MessageDeliveryFailed("smtp down")

        with pytest.raises(MessageDeliveryFailed):
            login_service.login(BOB, BOB_CREDENTIAL)

        with pytest.raises(ChallengeNotFound):
            challenge_store.get(IdentityAddress.parse(BOB))

    def test_failed_rollback_still_surfaces_dispatch_error(
        self, identity_store: InMemoryIdentityStore, hasher, token_service: SessionTokenService
    ) -> None:
        challenge_store = Mock()
        challenge_store.remove_if.side_effect = UnexpectedError("redis down")
        sender = Mock()
        sender.send.side_effect = MessageDeliveryFailed("smtp down")
        service = LoginService(
            identity_store=identity_store,
            challenge_store=challenge_store,
            hasher=hasher,
            tokens=token_service,
            message_sender=sender,
        )
        service.register(BOB, BOB_CREDENTIAL, requires_second_factor=True)

        with pytest.raises(MessageDeliveryFailed):
            service.login(BOB, BOB_CREDENTIAL)
        challenge_store.remove_if.assert_called_once()

    def test_rollback_keeps_newer_challenge(
        self,
        login_service: LoginService,
        message_sender: Mock,
        challenge_store: InMemoryChallengeStore,
    ) -> None:
        """A challenge stored by a concurrent newer login survives the rollback."""
        login_service.register(BOB, BOB_CREDENTIAL, requires_second_factor=True)
        bob = IdentityAddress.parse(BOB)
        newer_id = ChallengeId.generate()

        def newer_login_then_fail(recipient, subject, body) -> None:
            challenge_store.put(bob, newer_id, OneTimeCode.parse("654321"), 600)
            raise MessageDeliveryFailed("smtp down")

        message_sender.send.side_effect = newer_login_then_fail

        with pytest.raises(MessageDeliveryFailed):
            login_service.login(BOB, BOB_CREDENTIAL)

        assert challenge_store.get(bob).challenge_id == newer_id

    def test_other_sender_failure_surfaces_as_delivery_failure(
        self,
        login_service: LoginService,
        message_sender: Mock,
        challenge_store: InMemoryChallengeStore,
    ) -> None:
        login_service.register(BOB, BOB_CREDENTIAL, requires_second_factor=True)
        message_sender.send.side_effect = UnexpectedError("connection reset")

        with pytest.raises(MessageDeliveryFailed) as info:
            login_service.login(BOB, BOB_CREDENTIAL)

        assert isinstance(info.value.__cause__, UnexpectedError)
        with pytest.raises(ChallengeNotFound):
            challenge_store.get(IdentityAddress.parse(BOB))


class TestLogout:
    """Tests for logout and token verification."""

    @pytest.fixture
    def token(self, login_service: LoginService) -> str:
        login_service.register(ALICE, ALICE_CREDENTIAL)
        return login_service.login(ALICE, ALICE_CREDENTIAL).token

    def test_logout_revokes_token(self, login_service: LoginService, token: str) -> None:
        """Token is accepted before logout and rejected right after."""
        assert login_service.verify_token(token).subject == ALICE
        login_service.logout(token)
        with pytest.raises(TokenRevoked):
            login_service.verify_token(token)

    def test_login_again_after_logout(self, login_service: LoginService, token: str) -> None:
        """A fresh login right after logout gets a token that is not revoked."""
        login_service.logout(token)

        second = login_service.login(ALICE, ALICE_CREDENTIAL).token

        assert second != token
        assert login_service.verify_token(second).subject == ALICE

    def test_logout_revokes_only_presented_session(self, login_service: LoginService) -> None:
        login_service.register(BOB, BOB_CREDENTIAL)
        first = login_service.login(BOB, BOB_CREDENTIAL).token
        second = login_service.login(BOB, BOB_CREDENTIAL).token

        login_service.logout(first)

        with pytest.raises(TokenRevoked):
            login_service.verify_token(first)
        assert login_service.verify_token(second).subject == BOB

    def test_logout_twice_is_idempotent(self, login_service: LoginService, token: str) -> None:
        login_service.logout(token)
        login_service.logout(token)

    def test_logout_missing_token(self, login_service: LoginService) -> None:
        with pytest.raises(MissingToken):
            login_service.logout(None)
        with pytest.raises(MissingToken):
            login_service.logout("")

    def test_logout_invalid_token_does_not_revoke(self) -> None:
        tokens = Mock()
        tokens.validate.side_effect = BadSignature("bad")
        service = LoginService(
            identity_store=Mock(),
            challenge_store=Mock(),
            hasher=Mock(),
            tokens=tokens,
            message_sender=Mock(),
        )
        with pytest.raises(BadSignature):
            service.logout("garbage")
        tokens.revoke.assert_not_called()

    def test_logout_expired_token_rejected(self) -> None:
        tokens = Mock()
        tokens.validate.side_effect = TokenExpired("expired")
        service = LoginService(
            identity_store=Mock(),
            challenge_store=Mock(),
            hasher=Mock(),
            tokens=tokens,
            message_sender=Mock(),
        )
        with pytest.raises(TokenExpired):
            service.logout("expired")
        tokens.revoke.assert_not_called()

    def test_verify_token_missing(self, login_service: LoginService) -> None:
        with pytest.raises(MissingToken):
            login_service.verify_token(None)
