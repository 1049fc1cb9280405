from __future__ import annotations

from datetime import datetime
from typing import Protocol

from coinsensei.contexts.identity.domain.entities import AccountSecurityProfile
from coinsensei.shared_kernel.primitives import AccountId


class SecurityProfileRepository(Protocol):
    """
    SecurityProfileRepository — storage port of account 2FA state.

    Every method is a single atomic write from the caller's point of view.

    Related:
      - src/coinsensei/contexts/identity/domain/entities/account_security_profile.py
      - src/coinsensei/contexts/identity/application/use_cases/second_factor_gateway.py
      - src/coinsensei/contexts/identity/adapters/outbound/persistence/postgres/
        security_profile_repository.py
    """

    def find_by_account_id(self, *, account_id: AccountId) -> AccountSecurityProfile | None:
        """
        Find 2FA state snapshot by account identifier.

        Args:
            account_id: Account identifier.
        Returns:
            AccountSecurityProfile | None: Stored snapshot or `None` when never set up.
        Assumptions:
            `account_id` uniquely identifies one row.
        Raises:
            ValueError: If adapter cannot map storage row to domain state.
        Side Effects:
            Reads one storage record.
        """
        ...

    def store_pending_secret(
        self,
        *,
        account_id: AccountId,
        secret_enc: bytes,
        updated_at: datetime,
    ) -> AccountSecurityProfile:
        """
        Create or replace the secret while 2FA is not enabled.

        Args:
            account_id: Account identifier.
            secret_enc: Encrypted opaque secret blob.
            updated_at: UTC timestamp of this write.
        Returns:
            AccountSecurityProfile: Persisted state (unchanged row when already enabled).
        Assumptions:
            Caller rejects this operation for accounts with 2FA enabled.
        Raises:
            ValueError: If adapter cannot persist or map the resulting state.
        Side Effects:
            Writes one storage record.
        """
        ...

    def enable(
        self,
        *,
        account_id: AccountId,
        secret_enc: bytes,
        updated_at: datetime,
    ) -> AccountSecurityProfile:
        """
        Commit secret as authoritative and mark 2FA enabled.

        Args:
            account_id: Account identifier.
            secret_enc: Encrypted opaque secret blob.
            updated_at: UTC timestamp of this write.
        Returns:
            AccountSecurityProfile: Persisted enabled state, or the unchanged row when
                2FA was already enabled (its secret blob differs from `secret_enc`).
        Assumptions:
            Secret was verified against the user's authenticator app beforehand.
            An enabled row is never overwritten.
        Raises:
            ValueError: If adapter cannot persist or map the resulting state.
        Side Effects:
            Writes one storage record.
        """
        ...

    def disable(self, *, account_id: AccountId, updated_at: datetime) -> None:
        """
        Clear enabled flag, secret and backup codes in one write.

        Args:
            account_id: Account identifier.
            updated_at: UTC timestamp of this write.
        Returns:
            None.
        Assumptions:
            Missing rows are a no-op so the call is safe to retry.
        Raises:
            ValueError: If adapter fails to persist.
        Side Effects:
            Writes one storage record.
        """
        ...

    def replace_backup_codes(
        self,
        *,
        account_id: AccountId,
        code_digests: frozenset[str],
        updated_at: datetime,
    ) -> AccountSecurityProfile:
        """
        Replace whole backup code set; previous codes stop working immediately.

        Args:
            account_id: Account identifier.
            code_digests: SHA-256 hex digests of the new codes.
            updated_at: UTC timestamp of this write.
        Returns:
            AccountSecurityProfile: Persisted state.
        Assumptions:
            Account already has a secret.
        Raises:
            ValueError: If account row does not exist.
        Side Effects:
            Writes one storage record.
        """
        ...

    def consume_backup_code(
        self,
        *,
        account_id: AccountId,
        code_digest: str,
        updated_at: datetime,
    ) -> bool:
        """
        Atomically remove backup code digest if present.

        Args:
            account_id: Account identifier.
            code_digest: SHA-256 hex digest of submitted code.
            updated_at: UTC timestamp of this write.
        Returns:
            bool: `True` when the code existed and was consumed by this call.
        Assumptions:
            Concurrent consumers of the same code see exactly one `True`.
        Raises:
            ValueError: If adapter fails to persist.
        Side Effects:
            Writes one storage record when the code matches.
        """
        ...
