from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Protocol

from coinsensei.shared_kernel.primitives import AccountId


@dataclass(frozen=True, slots=True)
class AuthSession:
    """
    AuthSession — authenticated session handed out by the identity provider.

    Related:
      - src/coinsensei/contexts/identity/application/ports/identity_provider.py
      - src/coinsensei/contexts/identity/application/use_cases/login_orchestrator.py
      - src/coinsensei/contexts/identity/adapters/outbound/identity_provider/
        in_memory_identity_provider.py
    """

    account_id: AccountId
    email: str
    access_token: str
    issued_at: datetime
    claims: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.access_token.strip():
            raise ValueError("AuthSession.access_token must be non-empty")
        if self.issued_at.tzinfo is None or self.issued_at.utcoffset() is None:
            raise ValueError("AuthSession.issued_at must be timezone-aware")

    def __repr__(self) -> str:
        return f"AuthSession(account_id={self.account_id}, access_token='***')"


class SessionEventKind(str, Enum):
    """
    SessionEventKind — provider session notifications relevant to the login flow.

    Only `FRESH_SIGN_IN` may lead to a second-factor decision.
    """

    FRESH_SIGN_IN = "fresh_sign_in"
    TOKEN_REFRESH = "token_refresh"
    PROFILE_UPDATE = "profile_update"
    SIGNED_OUT = "signed_out"


@dataclass(frozen=True, slots=True)
class SessionEvent:
    """
    SessionEvent — one provider notification with optional session payload.
    """

    kind: SessionEventKind
    session: AuthSession | None = None

    def __post_init__(self) -> None:
        if self.kind is not SessionEventKind.SIGNED_OUT and self.session is None:
            raise ValueError(f"SessionEvent {self.kind.value} requires session")


class IdentityProviderError(Exception):
    """
    IdentityProviderError — base error raised by identity provider adapters.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class IdentityCredentialsRejectedError(IdentityProviderError):
    """
    IdentityCredentialsRejectedError — provider rejected password or one-time code.
    """


class IdentityProviderUnavailableError(IdentityProviderError):
    """
    IdentityProviderUnavailableError — transient provider failure (network, outage).
    """


class IdentityProvider(Protocol):
    """
    IdentityProvider — async port of the hosted authentication provider.

    Adapters raise `IdentityCredentialsRejectedError` for credential rejection and
    `IdentityProviderUnavailableError` for transient failures.

    Related:
      - src/coinsensei/contexts/identity/application/use_cases/login_orchestrator.py
      - src/coinsensei/contexts/identity/application/use_cases/change_password.py
      - src/coinsensei/contexts/identity/adapters/outbound/identity_provider/
        in_memory_identity_provider.py
    """

    async def sign_in_with_password(self, *, email: str, password: str) -> AuthSession:
        """
        Authenticate email and password and open provider session.

        Args:
            email: Account email.
            password: Account password.
        Returns:
            AuthSession: Opened session.
        Assumptions:
            Provider emits `FRESH_SIGN_IN` for each successful call.
        Raises:
            IdentityCredentialsRejectedError: If credentials are rejected.
            IdentityProviderUnavailableError: If provider cannot be reached.
        Side Effects:
            Opens provider session.
        """
        ...

    async def sign_out(self) -> None:
        """
        Close current provider session if any.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            Safe to call without an open session.
        Raises:
            IdentityProviderUnavailableError: If provider cannot be reached.
        Side Effects:
            Closes provider session.
        """
        ...

    async def get_session(self) -> AuthSession | None:
        """
        Return provider-persisted session, if any.

        Args:
            None.
        Returns:
            AuthSession | None: Current session or `None`.
        Assumptions:
            Used at start-up to resume a previous session.
        Raises:
            IdentityProviderUnavailableError: If provider cannot be reached.
        Side Effects:
            None.
        """
        ...

    async def send_email_one_time_code(self, *, email: str) -> None:
        """
        Ask provider to email a one-time sign-in code.

        Args:
            email: Destination account email.
        Returns:
            None.
        Assumptions:
            Provider never creates accounts from this call.
        Raises:
            IdentityCredentialsRejectedError: If email is unknown.
            IdentityProviderUnavailableError: If provider cannot be reached.
        Side Effects:
            Sends one email.
        """
        ...

    async def verify_email_one_time_code(self, *, email: str, code: str) -> AuthSession:
        """
        Verify emailed one-time code and open provider session.

        Args:
            email: Account email.
            code: Six-digit emailed code.
        Returns:
            AuthSession: Opened session.
        Assumptions:
            Success is a fresh sign-in.
        Raises:
            IdentityCredentialsRejectedError: If code is wrong or expired.
            IdentityProviderUnavailableError: If provider cannot be reached.
        Side Effects:
            Opens provider session.
        """
        ...

    async def update_password(self, *, new_password: str) -> None:
        """
        Change password of the account owning the current session.

        Args:
            new_password: New password.
        Returns:
            None.
        Assumptions:
            A session is open; provider emits `PROFILE_UPDATE`.
        Raises:
            IdentityCredentialsRejectedError: If provider rejects the password.
            IdentityProviderUnavailableError: If provider cannot be reached.
        Side Effects:
            Updates provider account.
        """
        ...
