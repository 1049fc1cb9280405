from __future__ import annotations

import hmac
import logging
import secrets
from collections import deque
from dataclasses import dataclass
from datetime import timedelta
from uuid import uuid4

from coinsensei.contexts.identity.application.ports import (
    AccessTokenClaims,
    AccessTokenCodec,
    AuthSession,
    IdentityClock,
    IdentityCredentialsRejectedError,
    IdentityProvider,
    IdentityProviderUnavailableError,
    SessionEvent,
    SessionEventKind,
)
from coinsensei.contexts.identity.domain.value_objects import EMAIL_CODE_LENGTH
from coinsensei.shared_kernel.primitives import AccountId

log = logging.getLogger(__name__)

_DEFAULT_TOKEN_TTL_SECONDS = 3600
_DEFAULT_EVENT_HISTORY_SIZE = 64


@dataclass(slots=True)
class _Account:
    account_id: AccountId
    email: str
    password: str
    full_name: str


class InMemoryIdentityProvider(IdentityProvider):
    """
    InMemoryIdentityProvider — single-device identity provider for local runs and tests.

    Mirrors a hosted provider: one session at a time, signed HS256 access tokens,
    emailed one-time codes kept in memory, and the most recent session events recorded
    in order (older events are dropped once `event_history_size` is reached).

    Related:
      - src/coinsensei/contexts/identity/application/ports/identity_provider.py
      - src/coinsensei/contexts/identity/adapters/outbound/security/jwt/
        hs256_access_token_codec.py
      - tests/unit/contexts/identity/application/test_login_orchestrator.py
    """

    def __init__(
        self,
        *,
        token_codec: AccessTokenCodec,
        clock: IdentityClock,
        token_ttl_seconds: int = _DEFAULT_TOKEN_TTL_SECONDS,
        event_history_size: int = _DEFAULT_EVENT_HISTORY_SIZE,
    ) -> None:
        if token_codec is None:  # type: ignore[truthy-bool]
            raise ValueError("InMemoryIdentityProvider requires token_codec")
        if clock is None:  # type: ignore[truthy-bool]
            raise ValueError("InMemoryIdentityProvider requires clock")
        if token_ttl_seconds <= 0:
            raise ValueError("InMemoryIdentityProvider token_ttl_seconds must be > 0")
        if event_history_size <= 0:
            raise ValueError("InMemoryIdentityProvider event_history_size must be > 0")
        self._token_codec = token_codec
        self._clock = clock
        self._token_ttl = timedelta(seconds=token_ttl_seconds)
        self._accounts: dict[str, _Account] = {}
        self._email_codes: dict[str, str] = {}
        self._session: AuthSession | None = None
        self._events: deque[SessionEvent] = deque(maxlen=event_history_size)
        self._available = True
        self.sent_email_codes = 0
        self.password_sign_ins = 0

    @property
    def emitted_events(self) -> tuple[SessionEvent, ...]:
        return tuple(self._events)

    def register_account(
        self,
        *,
        email: str,
        password: str,
        account_id: AccountId | None = None,
        full_name: str = "",
    ) -> AccountId:
        resolved_id = account_id if account_id is not None else AccountId(uuid4())
        key = _email_key(email)
        self._accounts[key] = _Account(
            account_id=resolved_id,
            email=email.strip(),
            password=password,
            full_name=full_name,
        )
        return resolved_id

    def set_available(self, available: bool) -> None:
        self._available = available

    def last_email_code(self, *, email: str) -> str | None:
        return self._email_codes.get(_email_key(email))

    def password_of(self, *, email: str) -> str | None:
        account = self._accounts.get(_email_key(email))
        return account.password if account is not None else None

    async def sign_in_with_password(self, *, email: str, password: str) -> AuthSession:
        self._ensure_available()
        account = self._accounts.get(_email_key(email))
        if account is None or not hmac.compare_digest(
            account.password.encode("utf-8"),
            password.encode("utf-8"),
        ):
            raise IdentityCredentialsRejectedError("Invalid login credentials")
        self.password_sign_ins += 1
        return self._open_session(account)

    async def sign_out(self) -> None:
        self._ensure_available()
        if self._session is None:
            return
        self._session = None
        self._events.append(SessionEvent(kind=SessionEventKind.SIGNED_OUT))

    async def get_session(self) -> AuthSession | None:
        self._ensure_available()
        return self._session

    async def send_email_one_time_code(self, *, email: str) -> None:
        self._ensure_available()
        key = _email_key(email)
        if key not in self._accounts:
            raise IdentityCredentialsRejectedError("Signups not allowed for otp")
        upper_bound = 10**EMAIL_CODE_LENGTH
        self._email_codes[key] = f"{secrets.randbelow(upper_bound):0{EMAIL_CODE_LENGTH}d}"
        self.sent_email_codes += 1

    async def verify_email_one_time_code(self, *, email: str, code: str) -> AuthSession:
        self._ensure_available()
        key = _email_key(email)
        expected = self._email_codes.get(key)
        account = self._accounts.get(key)
        if expected is None or account is None or not hmac.compare_digest(expected, code):
            raise IdentityCredentialsRejectedError("Token has expired or is invalid")
        del self._email_codes[key]
        return self._open_session(account)

    async def update_password(self, *, new_password: str) -> None:
        self._ensure_available()
        session = self._session
        if session is None:
            raise IdentityCredentialsRejectedError("Auth session missing")
        account = self._accounts[_email_key(session.email)]
        account.password = new_password
        self._events.append(SessionEvent(kind=SessionEventKind.PROFILE_UPDATE, session=session))

    async def refresh_session(self) -> AuthSession:
        """
        Re-issue access token of current session and record `TOKEN_REFRESH`.

        Args:
            None.
        Returns:
            AuthSession: Session with a new access token.
        Assumptions:
            Simulates the provider's background token refresh.
        Raises:
            IdentityCredentialsRejectedError: If no session is open.
            IdentityProviderUnavailableError: If provider is marked unavailable.
        Side Effects:
            Replaces current session; records one event.
        """
        self._ensure_available()
        current = self._session
        if current is None:
            raise IdentityCredentialsRejectedError("Auth session missing")
        refreshed = self._mint_session(self._accounts[_email_key(current.email)])
        self._session = refreshed
        self._events.append(SessionEvent(kind=SessionEventKind.TOKEN_REFRESH, session=refreshed))
        return refreshed

    def _open_session(self, account: _Account) -> AuthSession:
        session = self._mint_session(account)
        self._session = session
        self._events.append(SessionEvent(kind=SessionEventKind.FRESH_SIGN_IN, session=session))
        log.debug("in-memory identity session opened account_id=%s", account.account_id)
        return session

    def _mint_session(self, account: _Account) -> AuthSession:
        issued_at = self._clock.now()
        claims = AccessTokenClaims(
            account_id=account.account_id,
            email=account.email,
            issued_at=issued_at,
            expires_at=issued_at + self._token_ttl,
        )
        return AuthSession(
            account_id=account.account_id,
            email=account.email,
            access_token=self._token_codec.encode(claims=claims),
            issued_at=issued_at,
            claims={"email": account.email, "full_name": account.full_name},
        )

    def _ensure_available(self) -> None:
        if not self._available:
            raise IdentityProviderUnavailableError("identity provider unavailable")


def _email_key(email: str) -> str:
    return email.strip().lower()
