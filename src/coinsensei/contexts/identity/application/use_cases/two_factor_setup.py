from __future__ import annotations

import logging
from dataclasses import dataclass

from coinsensei.contexts.identity.application.ports import IdentityClock, TotpEngine
from coinsensei.contexts.identity.application.use_cases.second_factor_gateway import (
    SecondFactorGateway,
)
from coinsensei.contexts.identity.domain.value_objects import TOTP_CODE_LENGTH, sanitize_code
from coinsensei.shared_kernel.primitives import AccountId

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TwoFactorSetupStart:
    """
    TwoFactorSetupStart — fresh secret and the otpauth URI rendered as QR code.
    """

    secret: str
    otpauth_uri: str

    def __post_init__(self) -> None:
        """
        Validate that result contains standard otpauth URI expected by UI.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            UI generates QR code from returned URI; no binary QR payload is produced.
        Raises:
            ValueError: If secret is empty or URI does not match expected scheme prefix.
        Side Effects:
            None.
        """
        if not self.secret:
            raise ValueError("TwoFactorSetupStart.secret must be non-empty")
        if not self.otpauth_uri.startswith("otpauth://totp"):
            raise ValueError("TwoFactorSetupStart.otpauth_uri must start with 'otpauth://totp'")

    def __repr__(self) -> str:
        return "TwoFactorSetupStart(secret='***', otpauth_uri='***')"


@dataclass(frozen=True, slots=True)
class TwoFactorSetupResult:
    """
    TwoFactorSetupResult — outcome of setup confirmation.

    `backup_codes` is empty when the confirmation code did not match.
    """

    enabled: bool
    backup_codes: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.enabled and self.backup_codes:
            raise ValueError("TwoFactorSetupResult cannot carry backup codes when not enabled")


class TwoFactorSetupUseCase:
    """
    TwoFactorSetupUseCase — guided 2FA enrollment: secret, QR URI, local check, enable.

    Related:
      - src/coinsensei/contexts/identity/application/use_cases/second_factor_gateway.py
      - src/coinsensei/contexts/identity/application/ports/totp_engine.py
      - src/coinsensei/contexts/identity/adapters/inbound/api/routes/two_factor_gateway.py
    """

    def __init__(
        self,
        *,
        gateway: SecondFactorGateway,
        totp_engine: TotpEngine,
        clock: IdentityClock,
        issuer: str = "CoinSensei",
    ) -> None:
        """
        Initialize setup dependencies and issuer label.

        Args:
            gateway: Server-side 2FA gateway.
            totp_engine: Engine used for URI building and local code check.
            clock: UTC time source for local code check.
            issuer: Issuer label shown by authenticator apps.
        Returns:
            None.
        Assumptions:
            Dependencies are initialized and non-null.
        Raises:
            ValueError: If a dependency is missing or issuer is empty.
        Side Effects:
            None.
        """
        normalized_issuer = issuer.strip()
        if gateway is None:  # type: ignore[truthy-bool]
            raise ValueError("TwoFactorSetupUseCase requires gateway")
        if totp_engine is None:  # type: ignore[truthy-bool]
            raise ValueError("TwoFactorSetupUseCase requires totp_engine")
        if clock is None:  # type: ignore[truthy-bool]
            raise ValueError("TwoFactorSetupUseCase requires clock")
        if not normalized_issuer:
            raise ValueError("TwoFactorSetupUseCase requires non-empty issuer")

        self._gateway = gateway
        self._totp_engine = totp_engine
        self._clock = clock
        self._issuer = normalized_issuer

    def begin(self, *, account_id: AccountId, account_label: str) -> TwoFactorSetupStart:
        """
        Generate pending secret and build otpauth URI.

        Args:
            account_id: Authenticated account id.
            account_label: Label shown in authenticator apps, usually the email.
        Returns:
            TwoFactorSetupStart: Secret and otpauth URI.
        Assumptions:
            Secret is shown for manual entry and never logged.
        Raises:
            TwoFactorAlreadyEnabledError: If 2FA is already enabled.
        Side Effects:
            Persists encrypted pending secret.
        """
        secret = self._gateway.generate_secret(account_id=account_id)
        otpauth_uri = self._totp_engine.build_otpauth_uri(
            secret=secret,
            account_label=account_label,
            issuer=self._issuer,
        )
        return TwoFactorSetupStart(secret=secret, otpauth_uri=otpauth_uri)

    def confirm(self, *, account_id: AccountId, secret: str, code: str) -> TwoFactorSetupResult:
        """
        Check code against secret locally, then enable 2FA and issue backup codes.

        Args:
            account_id: Authenticated account id.
            secret: Secret returned by `begin`.
            code: Code from the authenticator app.
        Returns:
            TwoFactorSetupResult: `enabled=False` when the code does not match.
        Assumptions:
            Mismatch leaves storage untouched so the user can retry.
        Raises:
            TwoFactorAlreadyEnabledError: If 2FA got enabled concurrently.
            TwoFactorInvalidSecretError: If secret is malformed.
        Side Effects:
            Enables 2FA and replaces backup codes on success.
        """
        sanitized = sanitize_code(code)
        if len(sanitized) != TOTP_CODE_LENGTH:
            return TwoFactorSetupResult(enabled=False)
        if not self._totp_engine.verify(secret=secret, code=sanitized, at_time=self._clock.now()):
            log.info("2fa setup confirmation rejected account_id=%s", account_id)
            return TwoFactorSetupResult(enabled=False)

        self._gateway.enable(account_id=account_id, secret=secret)
        backup_codes = self._gateway.generate_backup_codes(account_id=account_id)
        return TwoFactorSetupResult(enabled=True, backup_codes=backup_codes)
