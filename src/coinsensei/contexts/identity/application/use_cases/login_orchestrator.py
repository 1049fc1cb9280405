from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Awaitable, Callable
from uuid import uuid4

from coinsensei.contexts.identity.application.ports import (
    AccountProfileStore,
    AccountProfileUnavailableError,
    AuthSession,
    BiometricChallenge,
    IdentityClock,
    IdentityCredentialsRejectedError,
    IdentityProvider,
    IdentityProviderError,
    IdentityProviderUnavailableError,
    SecondFactorVerifier,
    SecondFactorVerifierUnavailableError,
    SecretVault,
    SessionEvent,
    SessionEventKind,
)
from coinsensei.contexts.identity.application.use_cases.biometric_credentials import (
    BIOMETRIC_SIGN_IN_PROMPT,
    BiometricCredentialStore,
)
from coinsensei.contexts.identity.application.use_cases.login_errors import (
    LoginContextMissingError,
    LoginFlowInvariantError,
    LoginFlowStateError,
    PendingAccountMissingError,
    ReauthenticatedAccountMismatchError,
    RetainedPasswordMissingError,
)
from coinsensei.contexts.identity.application.use_cases.login_state import (
    IN_FLIGHT_STATES,
    LoginContext,
    LoginFailure,
    LoginOutcome,
    LoginState,
)
from coinsensei.contexts.identity.application.use_cases.resend_cooldown import ResendCooldown
from coinsensei.contexts.identity.domain.entities import AccountProfile
from coinsensei.contexts.identity.domain.value_objects import (
    classify_second_factor_code,
    is_email_code,
    sanitize_code,
)
from coinsensei.platform.config import AuthFlowConfig
from coinsensei.shared_kernel.primitives import AccountId

log = logging.getLogger(__name__)

AUTH_CHAIN_MARKER_KEY = "auth_chain_completed_account"

StateListener = Callable[[LoginState], None]
Sleep = Callable[[float], Awaitable[None]]


class AuthenticationOrchestrator:
    """
    AuthenticationOrchestrator — client-side login state machine.

    Sequences password check, mandatory email code, optional second factor and the
    biometric shortcut. No provider session survives a step that did not complete the
    whole factor chain. Each attempt lives in one `LoginContext`; a new attempt
    supersedes the previous one, and every coroutine re-checks ownership of its context
    after each await.

    Related:
      - src/coinsensei/contexts/identity/application/use_cases/login_state.py
      - src/coinsensei/contexts/identity/application/ports/identity_provider.py
      - src/coinsensei/contexts/identity/application/ports/second_factor_verifier.py
      - src/coinsensei/contexts/identity/application/use_cases/biometric_credentials.py
    """

    def __init__(
        self,
        *,
        identity_provider: IdentityProvider,
        profile_store: AccountProfileStore,
        second_factor_verifier: SecondFactorVerifier,
        biometric_challenge: BiometricChallenge,
        biometric_store: BiometricCredentialStore,
        vault: SecretVault,
        clock: IdentityClock,
        config: AuthFlowConfig,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """
        Initialize orchestrator collaborators and flow settings.

        Args:
            identity_provider: Hosted authentication provider port.
            profile_store: Account profile port with the authoritative 2FA flag.
            second_factor_verifier: Second-factor verification gateway client.
            biometric_challenge: Device biometric prompt port.
            biometric_store: Device record of the biometric credential.
            vault: Device vault holding the completed-chain marker.
            clock: UTC time source for resend cooldown.
            config: Flow settings.
            sleep: Awaitable delay used between profile fetch retries.
        Returns:
            None.
        Assumptions:
            One orchestrator instance per device session.
        Raises:
            ValueError: If a dependency is missing.
        Side Effects:
            None.
        """
        if identity_provider is None:  # type: ignore[truthy-bool]
            raise ValueError("AuthenticationOrchestrator requires identity_provider")
        if profile_store is None:  # type: ignore[truthy-bool]
            raise ValueError("AuthenticationOrchestrator requires profile_store")
        if second_factor_verifier is None:  # type: ignore[truthy-bool]
            raise ValueError("AuthenticationOrchestrator requires second_factor_verifier")
        if biometric_challenge is None:  # type: ignore[truthy-bool]
            raise ValueError("AuthenticationOrchestrator requires biometric_challenge")
        if biometric_store is None:  # type: ignore[truthy-bool]
            raise ValueError("AuthenticationOrchestrator requires biometric_store")
        if vault is None:  # type: ignore[truthy-bool]
            raise ValueError("AuthenticationOrchestrator requires vault")
        if clock is None:  # type: ignore[truthy-bool]
            raise ValueError("AuthenticationOrchestrator requires clock")
        if config is None:  # type: ignore[truthy-bool]
            raise ValueError("AuthenticationOrchestrator requires config")

        self._identity_provider = identity_provider
        self._profile_store = profile_store
        self._verifier = second_factor_verifier
        self._biometric_challenge = biometric_challenge
        self._biometric_store = biometric_store
        self._vault = vault
        self._clock = clock
        self._config = config
        self._sleep = sleep

        self._state = LoginState.IDLE
        self._context: LoginContext | None = None
        self._session: AuthSession | None = None
        self._profile: AccountProfile | None = None
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> LoginState:
        return self._state

    @property
    def pending_account_id(self) -> AccountId | None:
        if self._context is None:
            return None
        return self._context.pending_account_id

    @property
    def current_profile(self) -> AccountProfile | None:
        return self._profile

    @property
    def current_session(self) -> AuthSession | None:
        return self._session

    @property
    def resend_seconds_remaining(self) -> int:
        if self._context is None or self._context.resend_cooldown is None:
            return 0
        return self._context.resend_cooldown.seconds_remaining(now=self._clock.now())

    def add_state_listener(self, listener: StateListener) -> Callable[[], None]:
        """
        Register callback invoked with every new state.

        Args:
            listener: Synchronous callback receiving the new `LoginState`.
        Returns:
            Callable[[], None]: Function removing the listener.
        Assumptions:
            Listener failures are logged and never break the state machine.
        Raises:
            None.
        Side Effects:
            Mutates listener registry.
        """
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    async def submit_credentials(self, *, email: str, password: str) -> LoginOutcome:
        """
        Start login attempt: password check, sign-out, then email one-time code.

        Args:
            email: Account email.
            password: Account password, retained until the second factor completes.
        Returns:
            LoginOutcome: `EMAIL_CODE_PENDING` with resend delay, or `IDLE` with failure.
        Assumptions:
            The password check must never leave a provider session behind.
        Raises:
            None.
        Side Effects:
            Supersedes in-flight attempt; calls provider; sends one email.
        """
        normalized_email = email.strip()
        if not normalized_email or not password:
            return LoginOutcome(state=self._state, failure=LoginFailure.INVALID_CREDENTIALS)

        context = await self._start_attempt(
            email=normalized_email,
            password=password,
            is_biometric=False,
        )
        if context is None:
            return _superseded()
        self._set_state(LoginState.PASSWORD_PENDING)

        try:
            session = await self._identity_provider.sign_in_with_password(
                email=context.email,
                password=password,
            )
        except IdentityCredentialsRejectedError:
            if not self._owns(context):
                return _superseded()
            log.info("login password rejected attempt_id=%s", context.attempt_id)
            return await self._abort_attempt(context, failure=LoginFailure.INVALID_CREDENTIALS)
        except IdentityProviderUnavailableError:
            if not self._owns(context):
                return _superseded()
            log.warning("login password check unavailable attempt_id=%s", context.attempt_id)
            return await self._abort_attempt(context, failure=LoginFailure.PROVIDER_UNAVAILABLE)
        if not self._owns(context):
            return await self._discard_stale_session()
        context.pending_account_id = session.account_id
        context.session_opened = True

        if not await self._sign_out_quietly():
            if not self._owns(context):
                return _superseded()
            return await self._abort_attempt(context, failure=LoginFailure.PROVIDER_UNAVAILABLE)
        if not self._owns(context):
            return _superseded()
        context.session_opened = False

        return await self._send_email_code(context)

    async def resend_email_code(self) -> LoginOutcome:
        """
        Send email code again once the resend cooldown elapsed.

        Args:
            None.
        Returns:
            LoginOutcome: `RESEND_COOLDOWN` with remaining seconds, or refreshed cooldown.
        Assumptions:
            Cooldown is advisory; provider enforces its own limits.
        Raises:
            LoginContextMissingError: If no attempt is in flight.
            LoginFlowStateError: If attempt is not waiting for the email code.
        Side Effects:
            Sends one email when allowed.
        """
        context = await self._require_context(
            step="resend_email_code",
            expected=LoginState.EMAIL_CODE_PENDING,
        )
        cooldown = context.resend_cooldown
        if cooldown is not None:
            remaining = cooldown.seconds_remaining(now=self._clock.now())
            if remaining > 0:
                return LoginOutcome(
                    state=LoginState.EMAIL_CODE_PENDING,
                    failure=LoginFailure.RESEND_COOLDOWN,
                    retry_after_seconds=remaining,
                )

        try:
            await self._identity_provider.send_email_one_time_code(email=context.email)
        except IdentityProviderError:
            if not self._owns(context):
                return _superseded()
            log.warning("email code resend failed attempt_id=%s", context.attempt_id)
            return LoginOutcome(
                state=LoginState.EMAIL_CODE_PENDING,
                failure=LoginFailure.PROVIDER_UNAVAILABLE,
            )
        if not self._owns(context):
            return _superseded()
        return self._start_resend_cooldown(context)

    async def submit_email_code(self, *, code: str) -> LoginOutcome:
        """
        Verify email code; fresh sign-in decides between second factor and session.

        Args:
            code: Raw user-entered code; non-digits are stripped.
        Returns:
            LoginOutcome: `SECOND_FACTOR_PENDING`, `SESSION_ESTABLISHED`, or failure.
        Assumptions:
            Failed profile read at this point fails closed.
        Raises:
            LoginContextMissingError: If no attempt is in flight.
            LoginFlowStateError: If attempt is not waiting for the email code.
            ReauthenticatedAccountMismatchError: If provider returns another account.
        Side Effects:
            Opens provider session; may sign it out again.
        """
        context = await self._require_context(
            step="submit_email_code",
            expected=LoginState.EMAIL_CODE_PENDING,
        )
        sanitized = sanitize_code(code)
        if not is_email_code(sanitized):
            return LoginOutcome(
                state=LoginState.EMAIL_CODE_PENDING,
                failure=LoginFailure.MALFORMED_CODE,
            )

        try:
            session = await self._identity_provider.verify_email_one_time_code(
                email=context.email,
                code=sanitized,
            )
        except IdentityCredentialsRejectedError:
            if not self._owns(context):
                return _superseded()
            return LoginOutcome(
                state=LoginState.EMAIL_CODE_PENDING,
                failure=LoginFailure.INVALID_EMAIL_CODE,
            )
        except IdentityProviderUnavailableError:
            if not self._owns(context):
                return _superseded()
            return LoginOutcome(
                state=LoginState.EMAIL_CODE_PENDING,
                failure=LoginFailure.PROVIDER_UNAVAILABLE,
            )
        if not self._owns(context):
            return await self._discard_stale_session()
        context.session_opened = True
        context.resend_cooldown = None
        await self._bind_account(context, session=session)

        return await self._decide_second_factor(context, session=session)

    async def submit_second_factor(self, *, code: str) -> LoginOutcome:
        """
        Verify TOTP or backup code, then re-authenticate with the retained password.

        Args:
            code: Raw user-entered 6-digit TOTP or 8-digit backup code.
        Returns:
            LoginOutcome: `SESSION_ESTABLISHED`, unchanged state on wrong code, or `IDLE`.
        Assumptions:
            Interim session from the email step was already signed out.
        Raises:
            LoginContextMissingError: If no attempt is in flight (for example after cancel).
            LoginFlowStateError: If attempt is not waiting for the second factor.
            RetainedPasswordMissingError: If the retained password is gone.
            PendingAccountMissingError: If attempt has no identified account.
            ReauthenticatedAccountMismatchError: If re-authentication returns another account.
        Side Effects:
            May consume a backup code; opens provider session; writes device marker.
        """
        context = await self._require_context(
            step="submit_second_factor",
            expected=LoginState.SECOND_FACTOR_PENDING,
        )
        sanitized = sanitize_code(code)
        if classify_second_factor_code(sanitized) is None:
            return LoginOutcome(
                state=LoginState.SECOND_FACTOR_PENDING,
                failure=LoginFailure.MALFORMED_CODE,
            )
        if context.password is None:
            error: LoginFlowInvariantError = RetainedPasswordMissingError()
            await self._teardown_after_violation(context, error=error)
            raise error
        account_id = context.pending_account_id
        if account_id is None:
            error = PendingAccountMissingError()
            await self._teardown_after_violation(context, error=error)
            raise error

        try:
            accepted = await self._verifier.verify_code(account_id=account_id, code=sanitized)
        except SecondFactorVerifierUnavailableError:
            if not self._owns(context):
                return _superseded()
            log.warning("second factor check unavailable attempt_id=%s", context.attempt_id)
            return LoginOutcome(
                state=LoginState.SECOND_FACTOR_PENDING,
                failure=LoginFailure.PROVIDER_UNAVAILABLE,
            )
        if not self._owns(context):
            return _superseded()
        if not accepted:
            log.info(
                "second factor rejected attempt_id=%s account_id=%s",
                context.attempt_id,
                account_id,
            )
            return LoginOutcome(
                state=LoginState.SECOND_FACTOR_PENDING,
                failure=LoginFailure.INVALID_SECOND_FACTOR_CODE,
            )

        try:
            session = await self._identity_provider.sign_in_with_password(
                email=context.email,
                password=context.password,
            )
        except IdentityCredentialsRejectedError:
            if not self._owns(context):
                return _superseded()
            log.info("re-authentication rejected attempt_id=%s", context.attempt_id)
            return await self._abort_attempt(context, failure=LoginFailure.INVALID_CREDENTIALS)
        except IdentityProviderUnavailableError:
            if not self._owns(context):
                return _superseded()
            log.warning("re-authentication unavailable attempt_id=%s", context.attempt_id)
            return await self._abort_attempt(context, failure=LoginFailure.PROVIDER_UNAVAILABLE)
        if not self._owns(context):
            return await self._discard_stale_session()
        context.password = None
        context.session_opened = True
        await self._bind_account(context, session=session)

        try:
            profile = await self._fetch_profile(account_id=session.account_id)
        except AccountProfileUnavailableError:
            if not self._owns(context):
                return _superseded()
            log.warning(
                "profile unavailable after second factor; using session claims account_id=%s",
                session.account_id,
            )
            profile = _degraded_profile(session=session, two_factor_enabled=True)
        if not self._owns(context):
            return _superseded()
        return await self._establish(context, session=session, profile=profile)

    async def cancel(self) -> LoginOutcome:
        """
        Cancel in-flight attempt and sign out any session it opened.

        Args:
            None.
        Returns:
            LoginOutcome: `CANCELLED`, or current state when nothing is in flight.
        Assumptions:
            When this returns, no session, cooldown or retained password remains.
        Raises:
            None.
        Side Effects:
            Calls provider sign-out; state ends in `IDLE`.
        """
        context = self._context
        if context is None or self._state not in IN_FLIGHT_STATES:
            return LoginOutcome(state=self._state, profile=self._established_profile())

        self._context = None
        context.wipe()
        self._set_state(LoginState.CANCELLED)
        log.info("login attempt cancelled attempt_id=%s", context.attempt_id)
        signed_out = await self._sign_out_quietly()
        if self._context is None:
            self._set_state(LoginState.IDLE)
        failure = None if signed_out else LoginFailure.PROVIDER_UNAVAILABLE
        return LoginOutcome(state=LoginState.CANCELLED, failure=failure)

    async def sign_in_with_biometric(self) -> LoginOutcome:
        """
        Replay stored credential after a passed device challenge.

        Args:
            None.
        Returns:
            LoginOutcome: `SESSION_ESTABLISHED`, `SECOND_FACTOR_PENDING` when configured,
            or failure.
        Assumptions:
            A passed device challenge stands in for the email code and second factor
            unless `require_second_factor_after_biometric` is set.
        Raises:
            ReauthenticatedAccountMismatchError: If provider returns another account.
        Side Effects:
            Shows device prompt; supersedes in-flight attempt; opens provider session.
        """
        if not await self._biometric_store.is_enabled():
            return LoginOutcome(state=self._state, failure=LoginFailure.BIOMETRIC_NOT_ENROLLED)
        if not await self._biometric_challenge.is_available():
            return LoginOutcome(state=self._state, failure=LoginFailure.BIOMETRIC_UNAVAILABLE)
        if not await self._biometric_challenge.challenge(prompt=BIOMETRIC_SIGN_IN_PROMPT):
            return LoginOutcome(state=self._state, failure=LoginFailure.BIOMETRIC_REJECTED)
        credential = await self._biometric_store.load()
        if credential is None:
            return LoginOutcome(state=self._state, failure=LoginFailure.BIOMETRIC_NOT_ENROLLED)

        context = await self._start_attempt(
            email=credential.email,
            password=credential.password,
            is_biometric=True,
        )
        if context is None:
            return _superseded()
        self._set_state(LoginState.PASSWORD_PENDING)

        try:
            session = await self._identity_provider.sign_in_with_password(
                email=credential.email,
                password=credential.password,
            )
        except IdentityCredentialsRejectedError:
            if not self._owns(context):
                return _superseded()
            log.info("biometric credential rejected attempt_id=%s", context.attempt_id)
            return await self._abort_attempt(context, failure=LoginFailure.INVALID_CREDENTIALS)
        except IdentityProviderUnavailableError:
            if not self._owns(context):
                return _superseded()
            return await self._abort_attempt(context, failure=LoginFailure.PROVIDER_UNAVAILABLE)
        if not self._owns(context):
            return await self._discard_stale_session()
        context.session_opened = True
        await self._bind_account(context, session=session)

        return await self._decide_second_factor(context, session=session)

    async def sign_out(self) -> LoginOutcome:
        """
        End established session or in-flight attempt and forget the device marker.

        Args:
            None.
        Returns:
            LoginOutcome: `IDLE`, with `PROVIDER_UNAVAILABLE` if provider sign-out failed.
        Assumptions:
            Local state is cleared even when the provider cannot be reached.
        Raises:
            ValueError: If vault delete fails.
        Side Effects:
            Calls provider sign-out; deletes device marker.
        """
        context = self._context
        self._context = None
        if context is not None:
            context.wipe()
        self._session = None
        self._profile = None
        await self._vault.delete(key=AUTH_CHAIN_MARKER_KEY)
        signed_out = await self._sign_out_quietly()
        if self._context is None:
            self._set_state(LoginState.IDLE)
        failure = None if signed_out else LoginFailure.PROVIDER_UNAVAILABLE
        return LoginOutcome(state=LoginState.IDLE, failure=failure)

    async def restore_session(self) -> LoginOutcome:
        """
        Resume provider-persisted session at start-up.

        Args:
            None.
        Returns:
            LoginOutcome: `SESSION_ESTABLISHED` or `IDLE`.
        Assumptions:
            Accounts with 2FA resume only when this device completed their full chain.
        Raises:
            ValueError: If vault read fails.
        Side Effects:
            May sign out an untrusted provider session.
        """
        if self._context is not None or self._state is LoginState.SESSION_ESTABLISHED:
            return LoginOutcome(state=self._state, profile=self._established_profile())

        try:
            session = await self._identity_provider.get_session()
        except IdentityProviderUnavailableError:
            return LoginOutcome(state=self._state, failure=LoginFailure.PROVIDER_UNAVAILABLE)
        if self._context is not None:
            return _superseded()
        if session is None:
            return LoginOutcome(state=LoginState.IDLE)

        marker = await self._vault.read(key=AUTH_CHAIN_MARKER_KEY)
        chain_completed = marker == str(session.account_id)
        try:
            profile = await self._fetch_profile(account_id=session.account_id)
        except AccountProfileUnavailableError:
            if not chain_completed:
                await self._sign_out_quietly()
                return LoginOutcome(
                    state=LoginState.IDLE,
                    failure=LoginFailure.PROFILE_UNAVAILABLE,
                )
            profile = _degraded_profile(session=session, two_factor_enabled=False)
        if self._context is not None:
            return _superseded()

        if profile.two_factor_enabled and not chain_completed:
            log.info(
                "restored session signed out; second factor not completed account_id=%s",
                session.account_id,
            )
            await self._sign_out_quietly()
            return LoginOutcome(state=LoginState.IDLE)

        self._session = session
        self._profile = await self._with_device_flags(profile)
        self._set_state(LoginState.SESSION_ESTABLISHED)
        return LoginOutcome(state=LoginState.SESSION_ESTABLISHED, profile=self._profile)

    async def refresh_profile(self) -> LoginOutcome:
        """
        Re-read profile of established session, replacing a degraded one.

        Args:
            None.
        Returns:
            LoginOutcome: Current state with latest profile.
        Assumptions:
            Failure keeps the session and the previous profile.
        Raises:
            None.
        Side Effects:
            Reads profile store.
        """
        session = self._session
        if self._state is not LoginState.SESSION_ESTABLISHED or session is None:
            return LoginOutcome(state=self._state)
        try:
            profile = await self._profile_store.get_profile(account_id=session.account_id)
        except AccountProfileUnavailableError:
            return LoginOutcome(
                state=LoginState.SESSION_ESTABLISHED,
                failure=LoginFailure.PROFILE_UNAVAILABLE,
                profile=self._profile,
            )
        if self._session is not session:
            return LoginOutcome(state=self._state, profile=self._established_profile())
        self._profile = await self._with_device_flags(profile)
        return LoginOutcome(state=LoginState.SESSION_ESTABLISHED, profile=self._profile)

    async def handle_session_event(self, event: SessionEvent) -> LoginOutcome:
        """
        Apply provider session notification.

        Args:
            event: Provider notification.
        Returns:
            LoginOutcome: Current state after the event.
        Assumptions:
            Only fresh sign-ins driven by this orchestrator reach the factor decision;
            refresh and profile events never prompt for a second factor.
        Raises:
            None.
        Side Effects:
            May swap stored session, clear established session, or sign out.
        """
        if event.kind in (SessionEventKind.TOKEN_REFRESH, SessionEventKind.PROFILE_UPDATE):
            current = self._session
            if (
                self._state is LoginState.SESSION_ESTABLISHED
                and current is not None
                and event.session is not None
                and event.session.account_id == current.account_id
            ):
                self._session = event.session
            return LoginOutcome(state=self._state, profile=self._established_profile())

        if event.kind is SessionEventKind.SIGNED_OUT:
            if self._state is LoginState.SESSION_ESTABLISHED:
                self._session = None
                self._profile = None
                await self._vault.delete(key=AUTH_CHAIN_MARKER_KEY)
                self._set_state(LoginState.IDLE)
            return LoginOutcome(state=self._state, profile=self._established_profile())

        if self._context is not None or self._state is LoginState.SESSION_ESTABLISHED:
            return LoginOutcome(state=self._state, profile=self._established_profile())

        log.warning("untrusted fresh sign-in outside login flow; signing out")
        await self._sign_out_quietly()
        return LoginOutcome(state=self._state)

    async def _start_attempt(
        self,
        *,
        email: str,
        password: str,
        is_biometric: bool,
    ) -> LoginContext | None:
        previous = self._context
        was_established = self._state is LoginState.SESSION_ESTABLISHED
        context = LoginContext(
            attempt_id=uuid4().hex,
            email=email,
            password=password,
            is_biometric=is_biometric,
        )
        self._context = context

        if previous is not None:
            previous.wipe()
            log.info(
                "login attempt superseded attempt_id=%s by=%s",
                previous.attempt_id,
                context.attempt_id,
            )
            await self._sign_out_quietly()
        elif was_established:
            self._session = None
            self._profile = None
            await self._vault.delete(key=AUTH_CHAIN_MARKER_KEY)
            await self._sign_out_quietly()

        if not self._owns(context):
            return None
        log.info(
            "login attempt started attempt_id=%s biometric=%s",
            context.attempt_id,
            is_biometric,
        )
        return context

    async def _send_email_code(self, context: LoginContext) -> LoginOutcome:
        try:
            await self._identity_provider.send_email_one_time_code(email=context.email)
        except IdentityCredentialsRejectedError:
            if not self._owns(context):
                return _superseded()
            return await self._abort_attempt(context, failure=LoginFailure.INVALID_CREDENTIALS)
        except IdentityProviderUnavailableError:
            if not self._owns(context):
                return _superseded()
            log.warning("email code send unavailable attempt_id=%s", context.attempt_id)
            return await self._abort_attempt(context, failure=LoginFailure.PROVIDER_UNAVAILABLE)
        if not self._owns(context):
            return _superseded()
        self._set_state(LoginState.EMAIL_CODE_PENDING)
        return self._start_resend_cooldown(context)

    def _start_resend_cooldown(self, context: LoginContext) -> LoginOutcome:
        context.resend_cooldown = ResendCooldown(
            started_at=self._clock.now(),
            window_seconds=self._config.resend_cooldown_seconds,
        )
        return LoginOutcome(
            state=LoginState.EMAIL_CODE_PENDING,
            retry_after_seconds=self._config.resend_cooldown_seconds,
        )

    async def _decide_second_factor(
        self,
        context: LoginContext,
        *,
        session: AuthSession,
    ) -> LoginOutcome:
        """
        Evaluate second-factor requirement of a fresh sign-in.

        Args:
            context: Owned in-flight context.
            session: Session opened by this fresh sign-in.
        Returns:
            LoginOutcome: `SECOND_FACTOR_PENDING`, `SESSION_ESTABLISHED`, or `IDLE` failure.
        Assumptions:
            Unknown 2FA requirement fails closed.
        Raises:
            None.
        Side Effects:
            Signs out interim session when a second factor is required.
        """
        try:
            profile = await self._fetch_profile(account_id=session.account_id)
        except AccountProfileUnavailableError:
            if not self._owns(context):
                return _superseded()
            log.warning(
                "2fa requirement unknown; failing closed attempt_id=%s account_id=%s",
                context.attempt_id,
                session.account_id,
            )
            return await self._abort_attempt(context, failure=LoginFailure.PROFILE_UNAVAILABLE)
        if not self._owns(context):
            return _superseded()

        second_factor_required = profile.two_factor_enabled and (
            not context.is_biometric or self._config.require_second_factor_after_biometric
        )
        if not second_factor_required:
            return await self._establish(context, session=session, profile=profile)

        if not await self._sign_out_quietly():
            if not self._owns(context):
                return _superseded()
            return await self._abort_attempt(context, failure=LoginFailure.PROVIDER_UNAVAILABLE)
        if not self._owns(context):
            return _superseded()
        context.session_opened = False
        context.awaiting_second_factor = True
        self._set_state(LoginState.SECOND_FACTOR_PENDING)
        return LoginOutcome(state=LoginState.SECOND_FACTOR_PENDING)

    async def _establish(
        self,
        context: LoginContext,
        *,
        session: AuthSession,
        profile: AccountProfile,
    ) -> LoginOutcome:
        full_profile = await self._with_device_flags(profile)
        if not self._owns(context):
            return _superseded()
        await self._vault.store(key=AUTH_CHAIN_MARKER_KEY, value=str(session.account_id))
        if not self._owns(context):
            return _superseded()

        self._context = None
        context.wipe()
        self._session = session
        self._profile = full_profile
        self._set_state(LoginState.SESSION_ESTABLISHED)
        log.info(
            "session established attempt_id=%s account_id=%s degraded=%s",
            context.attempt_id,
            session.account_id,
            full_profile.degraded,
        )
        return LoginOutcome(state=LoginState.SESSION_ESTABLISHED, profile=full_profile)

    async def _fetch_profile(self, *, account_id: AccountId) -> AccountProfile:
        attempts = self._config.profile_fetch_attempts
        for attempt in range(1, attempts + 1):
            try:
                return await self._profile_store.get_profile(account_id=account_id)
            except AccountProfileUnavailableError:
                log.warning(
                    "profile fetch failed account_id=%s attempt=%s/%s",
                    account_id,
                    attempt,
                    attempts,
                )
                if attempt == attempts:
                    raise
                await self._sleep(self._config.profile_retry_delay_seconds)
        raise AccountProfileUnavailableError(f"profile unavailable for {account_id}")

    async def _with_device_flags(self, profile: AccountProfile) -> AccountProfile:
        biometric_enabled = await self._biometric_store.is_enabled()
        return replace(profile, biometric_enabled=biometric_enabled)

    async def _bind_account(self, context: LoginContext, *, session: AuthSession) -> None:
        if context.pending_account_id is None:
            context.pending_account_id = session.account_id
            return
        if context.pending_account_id != session.account_id:
            error = ReauthenticatedAccountMismatchError()
            await self._teardown_after_violation(context, error=error)
            raise error

    async def _require_context(self, *, step: str, expected: LoginState) -> LoginContext:
        context = self._context
        if context is None:
            error: LoginFlowInvariantError = LoginContextMissingError(step=step)
            log.error("login flow invariant violated code=%s step=%s", error.code, step)
            raise error
        if self._state is not expected:
            error = LoginFlowStateError(
                step=step,
                expected=expected.value,
                actual=self._state.value,
            )
            await self._teardown_after_violation(context, error=error)
            raise error
        return context

    async def _teardown_after_violation(
        self,
        context: LoginContext,
        *,
        error: LoginFlowInvariantError,
    ) -> None:
        log.error(
            "login flow invariant violated code=%s attempt_id=%s",
            error.code,
            context.attempt_id,
        )
        if not self._owns(context):
            context.wipe()
            return
        self._context = None
        context.wipe()
        await self._sign_out_quietly()
        if self._context is None:
            self._set_state(LoginState.IDLE)

    async def _abort_attempt(
        self,
        context: LoginContext,
        *,
        failure: LoginFailure,
    ) -> LoginOutcome:
        self._context = None
        context.wipe()
        await self._sign_out_quietly()
        if self._context is None:
            self._set_state(LoginState.IDLE)
        return LoginOutcome(state=LoginState.IDLE, failure=failure)

    async def _sign_out_quietly(self) -> bool:
        try:
            await self._identity_provider.sign_out()
        except IdentityProviderError as error:
            log.warning("identity provider sign-out failed: %s", error.message)
            return False
        return True

    async def _discard_stale_session(self) -> LoginOutcome:
        """
        Sign out a session opened by a superseded coroutine.

        Args:
            None.
        Returns:
            LoginOutcome: `CANCELLED` with `SUPERSEDED`.
        Assumptions:
            Provider keeps one session, so the stale sign-in replaced whatever was open;
            it is kept only while the current attempt or session owns it.
        Raises:
            None.
        Side Effects:
            May call provider sign-out.
        """
        current = self._context
        owned_by_current = self._state is LoginState.SESSION_ESTABLISHED or (
            current is not None and current.session_opened
        )
        if not owned_by_current:
            await self._sign_out_quietly()
        return _superseded()

    def _owns(self, context: LoginContext) -> bool:
        return self._context is context

    def _established_profile(self) -> AccountProfile | None:
        if self._state is LoginState.SESSION_ESTABLISHED:
            return self._profile
        return None

    def _set_state(self, state: LoginState) -> None:
        if state is self._state:
            return
        previous = self._state
        self._state = state
        log.debug("login state %s -> %s", previous.value, state.value)
        for listener in tuple(self._listeners):
            try:
                listener(state)
            except Exception:
                log.exception("login state listener failed state=%s", state.value)


def _superseded() -> LoginOutcome:
    return LoginOutcome(state=LoginState.CANCELLED, failure=LoginFailure.SUPERSEDED)


def _degraded_profile(*, session: AuthSession, two_factor_enabled: bool) -> AccountProfile:
    """
    Build minimal profile from session claims while the profile store is unreachable.

    Args:
        session: Established session.
        two_factor_enabled: Known 2FA flag of the account.
    Returns:
        AccountProfile: Profile flagged `degraded=True`.
    Assumptions:
        `full_name` claim is optional.
    Raises:
        None.
    Side Effects:
        None.
    """
    full_name = session.claims.get("full_name")
    return AccountProfile(
        account_id=session.account_id,
        email=session.email,
        full_name=full_name if isinstance(full_name, str) else "",
        two_factor_enabled=two_factor_enabled,
        degraded=True,
    )
