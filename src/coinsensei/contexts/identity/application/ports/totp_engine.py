from __future__ import annotations

from datetime import datetime
from typing import Protocol


class TotpEngine(Protocol):
    """
    TotpEngine — port of RFC 6238 time-based one-time codes and backup recovery codes.

    Related:
      - src/coinsensei/contexts/identity/adapters/outbound/security/two_factor/
        pyotp_totp_engine.py
      - src/coinsensei/contexts/identity/application/use_cases/second_factor_gateway.py
      - src/coinsensei/contexts/identity/application/use_cases/two_factor_setup.py
    """

    def create_secret(self) -> str:
        """
        Generate new base32 secret for the setup flow.

        Args:
            None.
        Returns:
            str: New base32 secret.
        Assumptions:
            Secret must come from a cryptographically secure random source.
        Raises:
            ValueError: If provider cannot generate valid secret.
        Side Effects:
            None.
        """
        ...

    def build_otpauth_uri(self, *, secret: str, account_label: str, issuer: str) -> str:
        """
        Build standard otpauth URI rendered as QR code by the client.

        Args:
            secret: Base32 secret.
            account_label: Account label shown by authenticator apps.
            issuer: Issuer label shown by authenticator apps.
        Returns:
            str: URI starting with `otpauth://totp`.
        Assumptions:
            URI contains the secret and must never be logged.
        Raises:
            ValueError: If secret or labels are empty.
        Side Effects:
            None.
        """
        ...

    def generate(self, *, secret: str, at_time: datetime) -> str:
        """
        Generate the code of the time step containing `at_time`.

        Args:
            secret: Base32 secret.
            at_time: Timezone-aware UTC datetime.
        Returns:
            str: Zero-padded numeric code.
        Assumptions:
            Pure function of secret and time step.
        Raises:
            ValueError: If secret is not base32 or datetime is not UTC.
        Side Effects:
            None.
        """
        ...

    def verify(self, *, secret: str, code: str, at_time: datetime) -> bool:
        """
        Verify candidate code against secret at given UTC time.

        Args:
            secret: Base32 secret.
            code: Candidate code, digits only.
            at_time: Timezone-aware UTC datetime.
        Returns:
            bool: `True` when code matches an accepted time step.
        Assumptions:
            A failed verification is a normal outcome.
        Raises:
            None: Internal errors are reported as `False`.
        Side Effects:
            None.
        """
        ...

    def generate_backup_codes(self) -> tuple[str, ...]:
        """
        Generate one batch of unique single-use numeric backup codes.

        Args:
            None.
        Returns:
            tuple[str, ...]: Unique 8-digit codes.
        Assumptions:
            Codes are unique within the batch.
        Raises:
            None.
        Side Effects:
            Reads OS random source.
        """
        ...
