from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime

from coinsensei.shared_kernel.primitives import AccountId

_DIGEST_PATTERN = re.compile(r"^[0-9a-f]{64}$")


@dataclass(frozen=True, slots=True)
class AccountSecurityProfile:
    """
    AccountSecurityProfile — immutable 2FA state snapshot of one account.

    Related:
      - src/coinsensei/contexts/identity/application/ports/security_profile_repository.py
      - src/coinsensei/contexts/identity/application/use_cases/second_factor_gateway.py
      - src/coinsensei/contexts/identity/adapters/outbound/persistence/postgres/
        security_profile_repository.py
    """

    account_id: AccountId
    two_factor_enabled: bool
    two_factor_secret_enc: bytes | None
    backup_code_digests: frozenset[str]
    updated_at: datetime

    def __post_init__(self) -> None:
        """
        Validate 2FA state invariants for enabled flag, secret and backup code digests.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            A secret may exist while 2FA is disabled (setup in progress).
        Raises:
            ValueError: If 2FA is enabled without secret, a digest is malformed, or
                `updated_at` is not UTC.
        Side Effects:
            Freezes backup code digests into `frozenset`.
        """
        if self.two_factor_secret_enc is not None and not self.two_factor_secret_enc:
            raise ValueError("AccountSecurityProfile.two_factor_secret_enc must be non-empty")
        if self.two_factor_enabled and self.two_factor_secret_enc is None:
            raise ValueError("AccountSecurityProfile cannot enable 2FA without a secret")
        digests = frozenset(self.backup_code_digests)
        for digest in digests:
            if not _DIGEST_PATTERN.match(digest):
                raise ValueError("AccountSecurityProfile backup code digest must be sha256 hex")
        object.__setattr__(self, "backup_code_digests", digests)
        offset = self.updated_at.utcoffset()
        if self.updated_at.tzinfo is None or offset is None or offset.total_seconds() != 0:
            raise ValueError("AccountSecurityProfile.updated_at must be UTC datetime")

    @property
    def has_secret(self) -> bool:
        return self.two_factor_secret_enc is not None
