from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from coinsensei.contexts.identity.application.use_cases.resend_cooldown import ResendCooldown
from coinsensei.contexts.identity.domain.entities import AccountProfile
from coinsensei.shared_kernel.primitives import AccountId


class LoginState(str, Enum):
    """
    LoginState — states of the authentication orchestrator.

    `CANCELLED` is reported by `cancel()` and superseded attempts; the machine itself
    rests in `IDLE` afterwards.
    """

    IDLE = "idle"
    PASSWORD_PENDING = "password_pending"
    EMAIL_CODE_PENDING = "email_code_pending"
    SECOND_FACTOR_PENDING = "second_factor_pending"
    SESSION_ESTABLISHED = "session_established"
    CANCELLED = "cancelled"


IN_FLIGHT_STATES = frozenset(
    {
        LoginState.PASSWORD_PENDING,
        LoginState.EMAIL_CODE_PENDING,
        LoginState.SECOND_FACTOR_PENDING,
    }
)


class LoginFailure(str, Enum):
    """
    LoginFailure — expected, user-recoverable failure reasons reported in `LoginOutcome`.
    """

    INVALID_CREDENTIALS = "invalid_credentials"
    INVALID_EMAIL_CODE = "invalid_email_code"
    INVALID_SECOND_FACTOR_CODE = "invalid_second_factor_code"
    MALFORMED_CODE = "malformed_code"
    RESEND_COOLDOWN = "resend_cooldown"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    PROFILE_UNAVAILABLE = "profile_unavailable"
    BIOMETRIC_UNAVAILABLE = "biometric_unavailable"
    BIOMETRIC_NOT_ENROLLED = "biometric_not_enrolled"
    BIOMETRIC_REJECTED = "biometric_rejected"
    SUPERSEDED = "superseded"


@dataclass(frozen=True, slots=True)
class LoginOutcome:
    """
    LoginOutcome — result of one orchestrator operation.

    Related:
      - src/coinsensei/contexts/identity/application/use_cases/login_orchestrator.py
    """

    state: LoginState
    failure: LoginFailure | None = None
    profile: AccountProfile | None = None
    retry_after_seconds: int | None = None

    def __post_init__(self) -> None:
        if self.profile is not None and self.state is not LoginState.SESSION_ESTABLISHED:
            raise ValueError("LoginOutcome.profile is only set for established sessions")
        if self.retry_after_seconds is not None and self.retry_after_seconds < 0:
            raise ValueError("LoginOutcome.retry_after_seconds must be >= 0")

    @property
    def succeeded(self) -> bool:
        return self.failure is None


@dataclass(slots=True)
class LoginContext:
    """
    LoginContext — in-flight state of exactly one login attempt.

    Owned by one orchestrator instance and never persisted. `password` is retained only
    until the fresh re-authentication after the second factor.

    Related:
      - src/coinsensei/contexts/identity/application/use_cases/login_orchestrator.py
      - src/coinsensei/contexts/identity/application/use_cases/resend_cooldown.py
    """

    attempt_id: str
    email: str
    password: str | None
    is_biometric: bool = False
    pending_account_id: AccountId | None = None
    awaiting_second_factor: bool = False
    session_opened: bool = False
    resend_cooldown: ResendCooldown | None = None

    def wipe(self) -> None:
        """
        Drop retained password, cooldown and progress flags.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            Called on every terminal transition of the attempt.
        Raises:
            None.
        Side Effects:
            Mutates this context in place.
        """
        self.password = None
        self.resend_cooldown = None
        self.awaiting_second_factor = False
        self.session_opened = False

    def __repr__(self) -> str:
        retained = "***" if self.password is not None else None
        return (
            f"LoginContext(attempt_id={self.attempt_id!r}, password={retained!r}, "
            f"pending_account_id={self.pending_account_id}, "
            f"awaiting_second_factor={self.awaiting_second_factor})"
        )
