from __future__ import annotations

import asyncio
import base64
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import pytest

from coinsensei.contexts.identity.adapters.outbound import (
    AesGcmEnvelopeSecretCipher,
    Hs256AccessTokenCodec,
    InMemoryAccountProfileStore,
    InMemoryIdentityProvider,
    InMemorySecretVault,
    InMemorySecurityProfileRepository,
    InProcessSecondFactorVerifier,
    PyOtpTotpEngine,
)
from coinsensei.contexts.identity.application.ports import (
    AuthSession,
    IdentityClock,
    SecondFactorVerifier,
    SessionEvent,
    SessionEventKind,
)
from coinsensei.contexts.identity.application.use_cases import (
    AUTH_CHAIN_MARKER_KEY,
    AuthenticationOrchestrator,
    BiometricCredentialStore,
    LoginContextMissingError,
    LoginFailure,
    LoginFlowStateError,
    LoginState,
    SecondFactorGateway,
)
from coinsensei.contexts.identity.domain.entities import AccountProfile
from coinsensei.platform.config import AuthFlowConfig
from coinsensei.shared_kernel.primitives import AccountId

_KEK_B64 = base64.b64encode(b"coinsensei-test-2fa-kek-00000001").decode("ascii")
_BOB_ID = AccountId.from_string("00000000-0000-0000-0000-000000000b0b")
_ALICE_ID = AccountId.from_string("00000000-0000-0000-0000-0000000a11ce")


class _MutableClock(IdentityClock):
    def __init__(self, *, now_value: datetime) -> None:
        self._now_value = now_value

    def advance(self, *, seconds: float) -> None:
        self._now_value = self._now_value + timedelta(seconds=seconds)

    def now(self) -> datetime:
        return self._now_value


class _AlwaysAvailableChallenge:
    async def is_available(self) -> bool:
        return True

    async def challenge(self, *, prompt: str) -> bool:
        return True


class _FixedCodeVerifier(SecondFactorVerifier):
    def __init__(self, *, accepted_code: str) -> None:
        self._accepted_code = accepted_code
        self.calls: list[tuple[AccountId, str]] = []

    async def verify_code(self, *, account_id: AccountId, code: str) -> bool:
        self.calls.append((account_id, code))
        return code == self._accepted_code


class _GatedIdentityProvider(InMemoryIdentityProvider):
    """
    Identity provider fake that parks password sign-in of one email until released.
    """

    def __init__(self, *, gated_email: str, **kwargs: object) -> None:
        super().__init__(**kwargs)  # type: ignore[arg-type]
        self._gated_email = gated_email
        self.reached_gate = asyncio.Event()
        self.release = asyncio.Event()

    async def sign_in_with_password(self, *, email: str, password: str) -> AuthSession:
        if email == self._gated_email:
            self.reached_gate.set()
            await self.release.wait()
        return await super().sign_in_with_password(email=email, password=password)


async def _no_sleep(_: float) -> None:
    return None


@dataclass(slots=True)
class _Harness:
    orchestrator: AuthenticationOrchestrator
    provider: InMemoryIdentityProvider
    profiles: InMemoryAccountProfileStore
    gateway: SecondFactorGateway
    engine: PyOtpTotpEngine
    vault: InMemorySecretVault
    clock: _MutableClock
    states: list[LoginState]

    def enable_two_factor(self, *, account_id: AccountId) -> str:
        secret = self.gateway.generate_secret(account_id=account_id)
        self.gateway.enable(account_id=account_id, secret=secret)
        return secret

    def current_totp(self, *, secret: str) -> str:
        return self.engine.generate(secret=secret, at_time=self.clock.now())

    def wrong_totp(self, *, secret: str) -> str:
        candidate = 0
        while self.engine.verify(
            secret=secret,
            code=f"{candidate:06d}",
            at_time=self.clock.now(),
        ):
            candidate += 1
        return f"{candidate:06d}"

    def email_code(self, *, email: str) -> str:
        code = self.provider.last_email_code(email=email)
        assert code is not None
        return code


def _build_harness(
    *,
    provider: InMemoryIdentityProvider | None = None,
    verifier: SecondFactorVerifier | None = None,
    use_security_repository: bool = True,
) -> _Harness:
    clock = _MutableClock(now_value=datetime(2026, 3, 3, 10, 0, 0, tzinfo=timezone.utc))
    codec = Hs256AccessTokenCodec(secret_key="test-access-token-secret", clock=clock)
    identity_provider = provider or InMemoryIdentityProvider(token_codec=codec, clock=clock)
    repository = InMemorySecurityProfileRepository()
    engine = PyOtpTotpEngine()
    gateway = SecondFactorGateway(
        repository=repository,
        secret_cipher=AesGcmEnvelopeSecretCipher(kek_b64=_KEK_B64),
        totp_engine=engine,
        clock=clock,
    )
    profiles = InMemoryAccountProfileStore(
        security_repository=repository if use_security_repository else None,
    )
    for account_id, email, full_name in (
        (_BOB_ID, "bob@example.com", "Bob Example"),
        (_ALICE_ID, "alice@example.com", "Alice Example"),
    ):
        identity_provider.register_account(
            email=email,
            password="Secret123",
            account_id=account_id,
            full_name=full_name,
        )
        profiles.put(
            AccountProfile(
                account_id=account_id,
                email=email,
                full_name=full_name,
                two_factor_enabled=False,
            )
        )
    vault = InMemorySecretVault()
    orchestrator = AuthenticationOrchestrator(
        identity_provider=identity_provider,
        profile_store=profiles,
        second_factor_verifier=verifier or InProcessSecondFactorVerifier(gateway=gateway),
        biometric_challenge=_AlwaysAvailableChallenge(),
        biometric_store=BiometricCredentialStore(vault=vault),
        vault=vault,
        clock=clock,
        config=AuthFlowConfig(profile_retry_delay_seconds=0),
        sleep=_no_sleep,
    )
    states: list[LoginState] = []
    orchestrator.add_state_listener(states.append)
    return _Harness(
        orchestrator=orchestrator,
        provider=identity_provider,
        profiles=profiles,
        gateway=gateway,
        engine=engine,
        vault=vault,
        clock=clock,
        states=states,
    )


def test_account_without_two_factor_never_visits_second_factor_state() -> None:
    """
    Verify password + email code establish session directly when 2FA is off.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Password check session is signed out before the email code is sent.
    Raises:
        AssertionError: If state sequence or provider side effects differ.
    Side Effects:
        None.
    """

    async def _scenario() -> None:
        harness = _build_harness()
        orchestrator = harness.orchestrator

        sent = await orchestrator.submit_credentials(email="bob@example.com", password="Secret123")
        assert sent.state is LoginState.EMAIL_CODE_PENDING
        assert sent.retry_after_seconds == 30
        assert await harness.provider.get_session() is None

        outcome = await orchestrator.submit_email_code(
            code=harness.email_code(email="bob@example.com"),
        )

        assert outcome.state is LoginState.SESSION_ESTABLISHED
        assert outcome.profile is not None
        assert outcome.profile.account_id == _BOB_ID
        assert outcome.profile.two_factor_enabled is False
        assert harness.states == [
            LoginState.PASSWORD_PENDING,
            LoginState.EMAIL_CODE_PENDING,
            LoginState.SESSION_ESTABLISHED,
        ]
        assert LoginState.SECOND_FACTOR_PENDING not in harness.states
        assert harness.provider.password_sign_ins == 1
        assert await harness.vault.read(key=AUTH_CHAIN_MARKER_KEY) == str(_BOB_ID)

    asyncio.run(_scenario())


def test_two_factor_account_completes_full_chain_with_fresh_reauthentication() -> None:
    async def _scenario() -> None:
        harness = _build_harness()
        orchestrator = harness.orchestrator
        secret = harness.enable_two_factor(account_id=_BOB_ID)

        await orchestrator.submit_credentials(email="bob@example.com", password="Secret123")
        pending = await orchestrator.submit_email_code(
            code=harness.email_code(email="bob@example.com"),
        )
        assert pending.state is LoginState.SECOND_FACTOR_PENDING
        assert orchestrator.pending_account_id == _BOB_ID
        assert await harness.provider.get_session() is None
        assert await harness.vault.read(key=AUTH_CHAIN_MARKER_KEY) is None

        outcome = await orchestrator.submit_second_factor(
            code=harness.current_totp(secret=secret),
        )

        assert outcome.state is LoginState.SESSION_ESTABLISHED
        assert outcome.profile is not None
        assert outcome.profile.two_factor_enabled is True
        assert harness.provider.password_sign_ins == 2
        session = await harness.provider.get_session()
        assert session is not None
        assert orchestrator.current_session == session
        assert await harness.vault.read(key=AUTH_CHAIN_MARKER_KEY) == str(_BOB_ID)
        assert orchestrator.pending_account_id is None

    asyncio.run(_scenario())


def test_backup_code_completes_second_factor_once() -> None:
    async def _scenario() -> None:
        harness = _build_harness()
        harness.enable_two_factor(account_id=_BOB_ID)
        backup_codes = harness.gateway.generate_backup_codes(account_id=_BOB_ID)

        await harness.orchestrator.submit_credentials(
            email="bob@example.com",
            password="Secret123",
        )
        await harness.orchestrator.submit_email_code(
            code=harness.email_code(email="bob@example.com"),
        )
        outcome = await harness.orchestrator.submit_second_factor(code=backup_codes[0])

        assert outcome.state is LoginState.SESSION_ESTABLISHED
        status = harness.gateway.get_status(account_id=_BOB_ID)
        assert status.backup_codes_remaining == len(backup_codes) - 1

    asyncio.run(_scenario())


def test_wrong_and_malformed_second_factor_codes_keep_state() -> None:
    async def _scenario() -> None:
        harness = _build_harness()
        orchestrator = harness.orchestrator
        secret = harness.enable_two_factor(account_id=_BOB_ID)
        await orchestrator.submit_credentials(email="bob@example.com", password="Secret123")
        await orchestrator.submit_email_code(code=harness.email_code(email="bob@example.com"))

        wrong = await orchestrator.submit_second_factor(code=harness.wrong_totp(secret=secret))
        malformed = await orchestrator.submit_second_factor(code="12-34")

        assert wrong.state is LoginState.SECOND_FACTOR_PENDING
        assert wrong.failure is LoginFailure.INVALID_SECOND_FACTOR_CODE
        assert malformed.failure is LoginFailure.MALFORMED_CODE
        assert orchestrator.state is LoginState.SECOND_FACTOR_PENDING
        assert harness.provider.password_sign_ins == 1

        retried = await orchestrator.submit_second_factor(
            code=harness.current_totp(secret=secret),
        )
        assert retried.state is LoginState.SESSION_ESTABLISHED

    asyncio.run(_scenario())


def test_fixed_code_verifier_scenario_accepts_only_matching_code() -> None:
    async def _scenario() -> None:
        verifier = _FixedCodeVerifier(accepted_code="482913")
        harness = _build_harness(verifier=verifier, use_security_repository=False)
        harness.profiles.put(
            AccountProfile(
                account_id=_BOB_ID,
                email="bob@example.com",
                full_name="Bob Example",
                two_factor_enabled=True,
            )
        )
        orchestrator = harness.orchestrator

        await orchestrator.submit_credentials(email="bob@example.com", password="Secret123")
        await orchestrator.submit_email_code(code=harness.email_code(email="bob@example.com"))
        rejected = await orchestrator.submit_second_factor(code="000000")
        accepted = await orchestrator.submit_second_factor(code="482 913")

        assert rejected.failure is LoginFailure.INVALID_SECOND_FACTOR_CODE
        assert accepted.state is LoginState.SESSION_ESTABLISHED
        assert verifier.calls == [(_BOB_ID, "000000"), (_BOB_ID, "482913")]

    asyncio.run(_scenario())


def test_cancel_during_second_factor_leaves_no_session_and_rejects_late_submit() -> None:
    """
    Verify cancel wipes the attempt and later second-factor submission is an invariant error.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Cancel reports `CANCELLED` and the machine rests in `IDLE`.
    Raises:
        AssertionError: If session or context survives cancel.
    Side Effects:
        None.
    """

    async def _scenario() -> None:
        harness = _build_harness()
        orchestrator = harness.orchestrator
        secret = harness.enable_two_factor(account_id=_BOB_ID)
        await orchestrator.submit_credentials(email="bob@example.com", password="Secret123")
        await orchestrator.submit_email_code(code=harness.email_code(email="bob@example.com"))

        cancelled = await orchestrator.cancel()

        assert cancelled.state is LoginState.CANCELLED
        assert orchestrator.state is LoginState.IDLE
        assert orchestrator.pending_account_id is None
        assert await harness.provider.get_session() is None
        with pytest.raises(LoginContextMissingError):
            await orchestrator.submit_second_factor(code=harness.current_totp(secret=secret))

        idle = await orchestrator.cancel()
        assert idle.state is LoginState.IDLE

    asyncio.run(_scenario())


def test_cancel_while_waiting_for_email_code_rejects_late_email_code() -> None:
    async def _scenario() -> None:
        harness = _build_harness()
        orchestrator = harness.orchestrator
        await orchestrator.submit_credentials(email="alice@example.com", password="Secret123")
        issued = harness.email_code(email="alice@example.com")

        cancelled = await orchestrator.cancel()

        assert cancelled.state is LoginState.CANCELLED
        assert orchestrator.state is LoginState.IDLE
        assert orchestrator.resend_seconds_remaining == 0
        assert harness.states[-2:] == [LoginState.CANCELLED, LoginState.IDLE]
        with pytest.raises(LoginContextMissingError):
            await orchestrator.submit_email_code(code=issued)
        assert await harness.provider.get_session() is None
        assert orchestrator.current_session is None

    asyncio.run(_scenario())


def test_cancel_while_password_check_pending_leaves_no_provider_session() -> None:
    """
    Verify cancel during a parked password sign-in discards the session it opens later.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Gated provider parks bob's password check until released.
    Raises:
        AssertionError: If the late sign-in leaves a session or sends an email code.
    Side Effects:
        None.
    """

    async def _scenario() -> None:
        clock = _MutableClock(now_value=datetime(2026, 3, 3, 10, 0, 0, tzinfo=timezone.utc))
        provider = _GatedIdentityProvider(
            gated_email="bob@example.com",
            token_codec=Hs256AccessTokenCodec(secret_key="test-access-token-secret", clock=clock),
            clock=clock,
        )
        harness = _build_harness(provider=provider)
        orchestrator = harness.orchestrator

        pending = asyncio.create_task(
            orchestrator.submit_credentials(email="bob@example.com", password="Secret123"),
        )
        await provider.reached_gate.wait()
        assert orchestrator.state is LoginState.PASSWORD_PENDING

        cancelled = await orchestrator.cancel()
        provider.release.set()
        late = await pending

        assert cancelled.state is LoginState.CANCELLED
        assert late.state is LoginState.CANCELLED
        assert late.failure is LoginFailure.SUPERSEDED
        assert orchestrator.state is LoginState.IDLE
        assert orchestrator.pending_account_id is None
        assert provider.password_sign_ins == 1
        assert await provider.get_session() is None
        assert provider.last_email_code(email="bob@example.com") is None

    asyncio.run(_scenario())


def test_resend_cooldown_counts_down_with_clock() -> None:
    async def _scenario() -> None:
        harness = _build_harness()
        orchestrator = harness.orchestrator
        await orchestrator.submit_credentials(email="bob@example.com", password="Secret123")

        immediate = await orchestrator.resend_email_code()
        harness.clock.advance(seconds=12)
        later = await orchestrator.resend_email_code()
        harness.clock.advance(seconds=19)
        allowed = await orchestrator.resend_email_code()

        assert immediate.failure is LoginFailure.RESEND_COOLDOWN
        assert immediate.retry_after_seconds == 30
        assert later.retry_after_seconds == 18
        assert orchestrator.resend_seconds_remaining == 30
        assert allowed.failure is None
        assert allowed.retry_after_seconds == 30
        assert harness.provider.sent_email_codes == 2

    asyncio.run(_scenario())


def test_wrong_password_and_malformed_email_code() -> None:
    async def _scenario() -> None:
        harness = _build_harness()
        orchestrator = harness.orchestrator

        rejected = await orchestrator.submit_credentials(
            email="bob@example.com",
            password="wrong-password",
        )
        assert rejected.state is LoginState.IDLE
        assert rejected.failure is LoginFailure.INVALID_CREDENTIALS
        assert harness.provider.sent_email_codes == 0

        await orchestrator.submit_credentials(email="bob@example.com", password="Secret123")
        issued = harness.email_code(email="bob@example.com")
        malformed = await orchestrator.submit_email_code(code="12ab")
        wrong = await orchestrator.submit_email_code(code=f"{(int(issued) + 1) % 1_000_000:06d}")

        assert malformed.failure is LoginFailure.MALFORMED_CODE
        assert malformed.state is LoginState.EMAIL_CODE_PENDING
        assert wrong.state is LoginState.EMAIL_CODE_PENDING
        assert wrong.failure is LoginFailure.INVALID_EMAIL_CODE

    asyncio.run(_scenario())


def test_profile_outage_after_email_code_fails_closed() -> None:
    async def _scenario() -> None:
        harness = _build_harness()
        harness.enable_two_factor(account_id=_BOB_ID)
        await harness.orchestrator.submit_credentials(
            email="bob@example.com",
            password="Secret123",
        )
        harness.profiles.fail_next(2)

        outcome = await harness.orchestrator.submit_email_code(
            code=harness.email_code(email="bob@example.com"),
        )

        assert outcome.state is LoginState.IDLE
        assert outcome.failure is LoginFailure.PROFILE_UNAVAILABLE
        assert await harness.provider.get_session() is None
        assert harness.orchestrator.state is LoginState.IDLE

    asyncio.run(_scenario())


def test_profile_retry_recovers_from_single_failure() -> None:
    async def _scenario() -> None:
        harness = _build_harness()
        await harness.orchestrator.submit_credentials(
            email="bob@example.com",
            password="Secret123",
        )
        harness.profiles.fail_next(1)

        outcome = await harness.orchestrator.submit_email_code(
            code=harness.email_code(email="bob@example.com"),
        )

        assert outcome.state is LoginState.SESSION_ESTABLISHED
        assert outcome.profile is not None
        assert outcome.profile.degraded is False

    asyncio.run(_scenario())


def test_profile_outage_after_second_factor_keeps_session_with_degraded_profile() -> None:
    """
    Verify a profile outage after a correct second factor degrades instead of signing out.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Every profile read after the second factor fails; the 2FA requirement was
        already read successfully after the email code.
    Raises:
        AssertionError: If the session is dropped or the profile is not rebuilt from claims.
    Side Effects:
        None.
    """

    async def _scenario() -> None:
        harness = _build_harness()
        orchestrator = harness.orchestrator
        secret = harness.enable_two_factor(account_id=_BOB_ID)
        await orchestrator.submit_credentials(email="bob@example.com", password="Secret123")
        await orchestrator.submit_email_code(code=harness.email_code(email="bob@example.com"))
        harness.profiles.fail_next(10)

        outcome = await orchestrator.submit_second_factor(
            code=harness.current_totp(secret=secret),
        )

        assert outcome.state is LoginState.SESSION_ESTABLISHED
        assert outcome.failure is None
        assert outcome.profile is not None
        assert outcome.profile.degraded is True
        assert outcome.profile.account_id == _BOB_ID
        assert outcome.profile.email == "bob@example.com"
        assert outcome.profile.two_factor_enabled is True
        session = await harness.provider.get_session()
        assert session is not None
        assert orchestrator.current_session == session
        assert await harness.vault.read(key=AUTH_CHAIN_MARKER_KEY) == str(_BOB_ID)

    asyncio.run(_scenario())


def test_out_of_order_step_tears_attempt_down() -> None:
    async def _scenario() -> None:
        harness = _build_harness()
        orchestrator = harness.orchestrator
        await orchestrator.submit_credentials(email="bob@example.com", password="Secret123")

        with pytest.raises(LoginFlowStateError) as error_info:
            await orchestrator.submit_second_factor(code="123456")

        assert error_info.value.code == "login_flow_state"
        assert orchestrator.state is LoginState.IDLE
        assert orchestrator.pending_account_id is None
        with pytest.raises(LoginContextMissingError):
            await orchestrator.submit_email_code(code="123456")

    asyncio.run(_scenario())


def test_session_events_refresh_and_profile_update_never_prompt_second_factor() -> None:
    async def _scenario() -> None:
        harness = _build_harness()
        orchestrator = harness.orchestrator
        secret = harness.enable_two_factor(account_id=_BOB_ID)
        await orchestrator.submit_credentials(email="bob@example.com", password="Secret123")
        await orchestrator.submit_email_code(code=harness.email_code(email="bob@example.com"))
        await orchestrator.submit_second_factor(code=harness.current_totp(secret=secret))

        states_before_events = list(harness.states)
        harness.clock.advance(seconds=5)
        refreshed = await harness.provider.refresh_session()
        outcome = await orchestrator.handle_session_event(
            SessionEvent(kind=SessionEventKind.TOKEN_REFRESH, session=refreshed),
        )
        assert outcome.state is LoginState.SESSION_ESTABLISHED
        assert orchestrator.current_session == refreshed

        profile_update = await orchestrator.handle_session_event(
            SessionEvent(kind=SessionEventKind.PROFILE_UPDATE, session=refreshed),
        )
        assert profile_update.state is LoginState.SESSION_ESTABLISHED
        assert harness.states == states_before_events

        signed_out = await orchestrator.handle_session_event(
            SessionEvent(kind=SessionEventKind.SIGNED_OUT),
        )
        assert signed_out.state is LoginState.IDLE
        assert await harness.vault.read(key=AUTH_CHAIN_MARKER_KEY) is None

    asyncio.run(_scenario())


def test_untrusted_fresh_sign_in_outside_flow_is_signed_out() -> None:
    async def _scenario() -> None:
        harness = _build_harness()
        session = await harness.provider.sign_in_with_password(
            email="bob@example.com",
            password="Secret123",
        )

        outcome = await harness.orchestrator.handle_session_event(
            SessionEvent(kind=SessionEventKind.FRESH_SIGN_IN, session=session),
        )

        assert outcome.state is LoginState.IDLE
        assert await harness.provider.get_session() is None

    asyncio.run(_scenario())


def test_restore_session_requires_device_marker_for_two_factor_accounts() -> None:
    async def _scenario() -> None:
        harness = _build_harness()
        harness.enable_two_factor(account_id=_BOB_ID)

        await harness.provider.sign_in_with_password(
            email="bob@example.com",
            password="Secret123",
        )
        untrusted = await harness.orchestrator.restore_session()
        assert untrusted.state is LoginState.IDLE
        assert await harness.provider.get_session() is None

        await harness.provider.sign_in_with_password(
            email="bob@example.com",
            password="Secret123",
        )
        await harness.vault.store(key=AUTH_CHAIN_MARKER_KEY, value=str(_BOB_ID))
        restored = await harness.orchestrator.restore_session()
        assert restored.state is LoginState.SESSION_ESTABLISHED
        assert restored.profile is not None
        assert restored.profile.account_id == _BOB_ID

    asyncio.run(_scenario())


def test_restore_session_without_two_factor_needs_no_marker() -> None:
    async def _scenario() -> None:
        harness = _build_harness()
        await harness.provider.sign_in_with_password(
            email="alice@example.com",
            password="Secret123",
        )

        restored = await harness.orchestrator.restore_session()

        assert restored.state is LoginState.SESSION_ESTABLISHED
        assert harness.orchestrator.current_profile is not None
        assert harness.orchestrator.current_profile.email == "alice@example.com"

    asyncio.run(_scenario())


def test_sign_out_clears_session_and_marker() -> None:
    async def _scenario() -> None:
        harness = _build_harness()
        await harness.orchestrator.submit_credentials(
            email="alice@example.com",
            password="Secret123",
        )
        await harness.orchestrator.submit_email_code(
            code=harness.email_code(email="alice@example.com"),
        )

        outcome = await harness.orchestrator.sign_out()

        assert outcome.state is LoginState.IDLE
        assert outcome.failure is None
        assert harness.orchestrator.current_session is None
        assert await harness.provider.get_session() is None
        assert await harness.vault.read(key=AUTH_CHAIN_MARKER_KEY) is None

    asyncio.run(_scenario())


def test_new_attempt_supersedes_in_flight_attempt_and_discards_its_session() -> None:
    """
    Verify a late password sign-in of superseded attempt is signed out and reported stale.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Gated provider parks alice's password check until released.
    Raises:
        AssertionError: If stale session survives or the newer attempt is disturbed.
    Side Effects:
        None.
    """

    async def _scenario() -> None:
        clock = _MutableClock(now_value=datetime(2026, 3, 3, 10, 0, 0, tzinfo=timezone.utc))
        provider = _GatedIdentityProvider(
            gated_email="alice@example.com",
            token_codec=Hs256AccessTokenCodec(secret_key="test-access-token-secret", clock=clock),
            clock=clock,
        )
        harness = _build_harness(provider=provider)
        orchestrator = harness.orchestrator

        task_a = asyncio.create_task(
            orchestrator.submit_credentials(email="alice@example.com", password="Secret123"),
        )
        await provider.reached_gate.wait()

        outcome_b = await orchestrator.submit_credentials(
            email="bob@example.com",
            password="Secret123",
        )
        provider.release.set()
        outcome_a = await task_a

        assert outcome_a.state is LoginState.CANCELLED
        assert outcome_a.failure is LoginFailure.SUPERSEDED
        assert outcome_b.state is LoginState.EMAIL_CODE_PENDING
        assert orchestrator.state is LoginState.EMAIL_CODE_PENDING
        assert orchestrator.pending_account_id == _BOB_ID
        assert await provider.get_session() is None
        assert provider.last_email_code(email="alice@example.com") is None

    asyncio.run(_scenario())
