from __future__ import annotations

import logging
import secrets
from datetime import datetime

import pyotp

from coinsensei.contexts.identity.application.ports.totp_engine import TotpEngine
from coinsensei.contexts.identity.domain.value_objects import (
    BACKUP_CODE_LENGTH,
    TOTP_CODE_LENGTH,
)

log = logging.getLogger(__name__)

_DEFAULT_TOTP_PERIOD_SECONDS = 30
_DEFAULT_VALID_WINDOW = 1
_DEFAULT_BACKUP_CODE_COUNT = 8


class PyOtpTotpEngine(TotpEngine):
    """
    PyOtpTotpEngine — RFC 6238 TOTP engine backed by pyotp, plus CSPRNG backup codes.

    `valid_window` is the number of neighbouring time steps accepted on each side of the
    current one; `0` accepts the current step only.

    Related:
      - src/coinsensei/contexts/identity/application/ports/totp_engine.py
      - src/coinsensei/contexts/identity/application/use_cases/second_factor_gateway.py
      - src/coinsensei/platform/config/auth_flow.py
    """

    def __init__(
        self,
        *,
        period_seconds: int = _DEFAULT_TOTP_PERIOD_SECONDS,
        valid_window: int = _DEFAULT_VALID_WINDOW,
        backup_code_count: int = _DEFAULT_BACKUP_CODE_COUNT,
    ) -> None:
        """
        Initialize TOTP parameters shared by URI building and verification.

        Args:
            period_seconds: TOTP step length in seconds.
            valid_window: Accepted steps before/after the current step.
            backup_code_count: Number of codes per backup batch.
        Returns:
            None.
        Assumptions:
            Defaults match common authenticator apps (6 digits, 30 seconds, SHA-1).
        Raises:
            ValueError: If arguments are outside supported ranges.
        Side Effects:
            None.
        """
        if period_seconds <= 0:
            raise ValueError("PyOtpTotpEngine period_seconds must be > 0")
        if valid_window < 0:
            raise ValueError("PyOtpTotpEngine valid_window must be >= 0")
        if backup_code_count <= 0:
            raise ValueError("PyOtpTotpEngine backup_code_count must be > 0")
        self._period_seconds = period_seconds
        self._valid_window = valid_window
        self._backup_code_count = backup_code_count

    def create_secret(self) -> str:
        secret = pyotp.random_base32().strip().upper()
        if not secret:
            raise ValueError("PyOtpTotpEngine generated empty secret")
        return secret

    def build_otpauth_uri(self, *, secret: str, account_label: str, issuer: str) -> str:
        """
        Build otpauth provisioning URI for QR rendering.

        Args:
            secret: Base32 secret.
            account_label: Label shown by authenticator apps (usually the email).
            issuer: Issuer label shown by authenticator apps.
        Returns:
            str: URI starting with `otpauth://totp`.
        Assumptions:
            URI embeds the secret and is never logged.
        Raises:
            ValueError: If any argument is empty.
        Side Effects:
            None.
        """
        normalized_label = account_label.strip()
        normalized_issuer = issuer.strip()
        if not normalized_label:
            raise ValueError("PyOtpTotpEngine requires non-empty account_label")
        if not normalized_issuer:
            raise ValueError("PyOtpTotpEngine requires non-empty issuer")
        uri = self._totp(secret=secret).provisioning_uri(
            name=normalized_label,
            issuer_name=normalized_issuer,
        )
        if not uri.startswith("otpauth://totp"):
            raise ValueError("PyOtpTotpEngine produced invalid otpauth URI")
        return uri

    def generate(self, *, secret: str, at_time: datetime) -> str:
        timestamp = _utc_timestamp(value=at_time, field_name="at_time")
        return self._totp(secret=secret).at(timestamp)

    def verify(self, *, secret: str, code: str, at_time: datetime) -> bool:
        """
        Verify code within the configured step window; never raises.

        Args:
            secret: Base32 secret.
            code: Digits-only candidate code.
            at_time: Timezone-aware UTC datetime.
        Returns:
            bool: `True` when any accepted step matches.
        Assumptions:
            pyotp compares codes in constant time.
        Raises:
            None.
        Side Effects:
            None.
        """
        if len(code) != TOTP_CODE_LENGTH or not (code.isascii() and code.isdigit()):
            return False
        try:
            timestamp = _utc_timestamp(value=at_time, field_name="at_time")
            return bool(
                self._totp(secret=secret).verify(
                    code,
                    for_time=timestamp,
                    valid_window=self._valid_window,
                )
            )
        except ValueError as error:
            log.debug("totp verification failed on invalid input: %s", type(error).__name__)
            return False

    def generate_backup_codes(self) -> tuple[str, ...]:
        upper_bound = 10**BACKUP_CODE_LENGTH
        codes: list[str] = []
        while len(codes) < self._backup_code_count:
            candidate = f"{secrets.randbelow(upper_bound):0{BACKUP_CODE_LENGTH}d}"
            if candidate not in codes:
                codes.append(candidate)
        return tuple(codes)

    def _totp(self, *, secret: str) -> pyotp.TOTP:
        normalized_secret = secret.strip().replace(" ", "").upper()
        if not normalized_secret:
            raise ValueError("PyOtpTotpEngine requires non-empty secret")
        return pyotp.TOTP(
            normalized_secret,
            digits=TOTP_CODE_LENGTH,
            interval=self._period_seconds,
        )


def _utc_timestamp(*, value: datetime, field_name: str) -> int:
    """
    Validate datetime is timezone-aware UTC and return whole UNIX seconds.

    Args:
        value: Datetime value to validate.
        field_name: Field label for deterministic error message.
    Returns:
        int: UNIX timestamp in seconds.
    Assumptions:
        UTC datetimes have zero offset.
    Raises:
        ValueError: If datetime is naive, non-UTC, or before the epoch.
    Side Effects:
        None.
    """
    offset = value.utcoffset()
    if value.tzinfo is None or offset is None:
        raise ValueError(f"{field_name} must be timezone-aware UTC datetime")
    if offset.total_seconds() != 0:
        raise ValueError(f"{field_name} must be UTC datetime")
    timestamp = int(value.timestamp())
    if timestamp < 0:
        raise ValueError(f"{field_name} must not precede the UNIX epoch")
    return timestamp
