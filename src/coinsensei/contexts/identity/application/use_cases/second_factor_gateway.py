from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass
from datetime import datetime

from coinsensei.contexts.identity.application.ports import (
    IdentityClock,
    SecretCipher,
    SecurityProfileRepository,
    TotpEngine,
)
from coinsensei.contexts.identity.application.use_cases.two_factor_errors import (
    TwoFactorAlreadyEnabledError,
    TwoFactorInvalidSecretError,
    TwoFactorSetupRequiredError,
)
from coinsensei.contexts.identity.domain.value_objects import (
    SecondFactorCodeKind,
    classify_second_factor_code,
    sanitize_code,
)
from coinsensei.shared_kernel.primitives import AccountId

log = logging.getLogger(__name__)

_BASE32_SECRET = re.compile(r"^[A-Z2-7]+=*$")


@dataclass(frozen=True, slots=True)
class TwoFactorStatus:
    """
    TwoFactorStatus — read model of account 2FA state without secret material.
    """

    enabled: bool
    has_secret: bool
    backup_codes_remaining: int

    def __post_init__(self) -> None:
        if self.backup_codes_remaining < 0:
            raise ValueError("TwoFactorStatus.backup_codes_remaining must be >= 0")
        if self.enabled and not self.has_secret:
            raise ValueError("TwoFactorStatus cannot be enabled without secret")


class SecondFactorGateway:
    """
    SecondFactorGateway — server-side authority over account 2FA secret, flag and backup codes.

    Stored secrets are envelope-encrypted; backup codes are stored as SHA-256 digests and
    consumed atomically by the repository.

    Related:
      - src/coinsensei/contexts/identity/application/ports/security_profile_repository.py
      - src/coinsensei/contexts/identity/application/ports/totp_engine.py
      - src/coinsensei/contexts/identity/adapters/inbound/api/routes/two_factor_gateway.py
    """

    def __init__(
        self,
        *,
        repository: SecurityProfileRepository,
        secret_cipher: SecretCipher,
        totp_engine: TotpEngine,
        clock: IdentityClock,
    ) -> None:
        """
        Initialize gateway dependencies.

        Args:
            repository: 2FA persistence port.
            secret_cipher: Envelope encryption port for TOTP secret.
            totp_engine: TOTP and backup code engine.
            clock: UTC time source for verification and `updated_at`.
        Returns:
            None.
        Assumptions:
            All dependencies are initialized and non-null.
        Raises:
            ValueError: If a dependency is missing.
        Side Effects:
            None.
        """
        if repository is None:  # type: ignore[truthy-bool]
            raise ValueError("SecondFactorGateway requires repository")
        if secret_cipher is None:  # type: ignore[truthy-bool]
            raise ValueError("SecondFactorGateway requires secret_cipher")
        if totp_engine is None:  # type: ignore[truthy-bool]
            raise ValueError("SecondFactorGateway requires totp_engine")
        if clock is None:  # type: ignore[truthy-bool]
            raise ValueError("SecondFactorGateway requires clock")

        self._repository = repository
        self._secret_cipher = secret_cipher
        self._totp_engine = totp_engine
        self._clock = clock

    def generate_secret(self, *, account_id: AccountId) -> str:
        """
        Create fresh pending secret for account; 2FA stays disabled.

        Args:
            account_id: Account identifier.
        Returns:
            str: Plaintext base32 secret for QR rendering.
        Assumptions:
            Each call replaces the previous pending secret.
        Raises:
            TwoFactorAlreadyEnabledError: If 2FA is already enabled.
        Side Effects:
            Persists encrypted pending secret.
        """
        existing = self._repository.find_by_account_id(account_id=account_id)
        if existing is not None and existing.two_factor_enabled:
            raise TwoFactorAlreadyEnabledError()

        secret = self._totp_engine.create_secret()
        stored = self._repository.store_pending_secret(
            account_id=account_id,
            secret_enc=self._secret_cipher.encrypt_secret(secret=secret),
            updated_at=self._now(),
        )
        if stored.two_factor_enabled:
            raise TwoFactorAlreadyEnabledError()
        log.info("2fa pending secret stored account_id=%s", account_id)
        return secret

    def enable(self, *, account_id: AccountId, secret: str) -> bool:
        """
        Commit secret as authoritative and turn 2FA on.

        Args:
            account_id: Account identifier.
            secret: Base32 secret the user just verified locally.
        Returns:
            bool: `True` once the enabled state is persisted.
        Assumptions:
            Local code verification is done by `TwoFactorSetupUseCase.confirm`.
        Raises:
            TwoFactorAlreadyEnabledError: If 2FA is already enabled.
            TwoFactorInvalidSecretError: If secret is empty or not base32.
        Side Effects:
            Persists encrypted secret and enabled flag.
        """
        normalized_secret = secret.strip().replace(" ", "").upper()
        if not normalized_secret or not _BASE32_SECRET.match(normalized_secret):
            raise TwoFactorInvalidSecretError()
        existing = self._repository.find_by_account_id(account_id=account_id)
        if existing is not None and existing.two_factor_enabled:
            raise TwoFactorAlreadyEnabledError()

        secret_enc = self._secret_cipher.encrypt_secret(secret=normalized_secret)
        stored = self._repository.enable(
            account_id=account_id,
            secret_enc=secret_enc,
            updated_at=self._now(),
        )
        # a concurrent enable won; its secret stays authoritative
        if stored.two_factor_secret_enc != secret_enc:
            raise TwoFactorAlreadyEnabledError()
        log.info("2fa enabled account_id=%s", account_id)
        return True

    def disable(self, *, account_id: AccountId) -> None:
        """
        Clear 2FA flag, secret and backup codes in one write.

        Args:
            account_id: Account identifier.
        Returns:
            None.
        Assumptions:
            Idempotent; disabling an account without 2FA is a no-op.
        Raises:
            ValueError: If repository fails to persist.
        Side Effects:
            Writes one storage record.
        """
        self._repository.disable(account_id=account_id, updated_at=self._now())
        log.info("2fa disabled account_id=%s", account_id)

    def verify_code(self, *, account_id: AccountId, code: str) -> bool:
        """
        Verify TOTP (6 digits) or consume backup code (8 digits).

        Args:
            account_id: Account identifier.
            code: Raw user-entered code; non-digits are stripped.
        Returns:
            bool: `True` when the code is accepted.
        Assumptions:
            Unknown accounts, missing secrets and unsupported lengths are `False`.
        Raises:
            ValueError: If the stored secret cannot be decrypted.
        Side Effects:
            Removes consumed backup code from storage.
        """
        sanitized = sanitize_code(code)
        kind = classify_second_factor_code(sanitized)
        if kind is None:
            return False

        profile = self._repository.find_by_account_id(account_id=account_id)
        if profile is None or profile.two_factor_secret_enc is None:
            return False

        if kind is SecondFactorCodeKind.BACKUP:
            consumed = self._repository.consume_backup_code(
                account_id=account_id,
                code_digest=backup_code_digest(sanitized),
                updated_at=self._now(),
            )
            if consumed:
                log.info("2fa backup code consumed account_id=%s", account_id)
            return consumed

        secret = self._secret_cipher.decrypt_secret(secret_enc=profile.two_factor_secret_enc)
        return self._totp_engine.verify(secret=secret, code=sanitized, at_time=self._now())

    def generate_backup_codes(self, *, account_id: AccountId) -> tuple[str, ...]:
        """
        Replace the whole backup code set of account.

        Args:
            account_id: Account identifier.
        Returns:
            tuple[str, ...]: New plaintext codes, shown to the user exactly once.
        Assumptions:
            Previous codes stop working immediately.
        Raises:
            TwoFactorSetupRequiredError: If account has no secret.
        Side Effects:
            Persists code digests.
        """
        profile = self._repository.find_by_account_id(account_id=account_id)
        if profile is None or not profile.has_secret:
            raise TwoFactorSetupRequiredError()

        codes = self._totp_engine.generate_backup_codes()
        self._repository.replace_backup_codes(
            account_id=account_id,
            code_digests=frozenset(backup_code_digest(code) for code in codes),
            updated_at=self._now(),
        )
        log.info("2fa backup codes replaced account_id=%s count=%s", account_id, len(codes))
        return codes

    def get_status(self, *, account_id: AccountId) -> TwoFactorStatus:
        profile = self._repository.find_by_account_id(account_id=account_id)
        if profile is None:
            return TwoFactorStatus(enabled=False, has_secret=False, backup_codes_remaining=0)
        return TwoFactorStatus(
            enabled=profile.two_factor_enabled,
            has_secret=profile.has_secret,
            backup_codes_remaining=len(profile.backup_code_digests),
        )

    def _now(self) -> datetime:
        return _ensure_utc_datetime(value=self._clock.now(), field_name="clock.now")


def backup_code_digest(code: str) -> str:
    """
    Hash sanitized backup code into stored SHA-256 hex digest.

    Args:
        code: Digits-only backup code.
    Returns:
        str: Lowercase 64-character hex digest.
    Assumptions:
        Codes carry enough entropy for a plain digest when combined with single use.
    Raises:
        None.
    Side Effects:
        None.
    """
    return hashlib.sha256(code.encode("ascii")).hexdigest()


def _ensure_utc_datetime(*, value: datetime, field_name: str) -> datetime:
    offset = value.utcoffset()
    if value.tzinfo is None or offset is None:
        raise ValueError(f"{field_name} must be timezone-aware UTC datetime")
    if offset.total_seconds() != 0:
        raise ValueError(f"{field_name} must be UTC datetime")
    return value
