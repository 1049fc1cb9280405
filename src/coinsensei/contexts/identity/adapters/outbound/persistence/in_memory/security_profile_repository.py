from __future__ import annotations

import threading
from datetime import datetime

from coinsensei.contexts.identity.application.ports.security_profile_repository import (
    SecurityProfileRepository,
)
from coinsensei.contexts.identity.domain.entities import AccountSecurityProfile
from coinsensei.shared_kernel.primitives import AccountId


class InMemorySecurityProfileRepository(SecurityProfileRepository):
    """
    InMemorySecurityProfileRepository — process-local 2FA state storage.

    Each method holds one lock for its whole read-modify-write, which gives the same
    atomicity the Postgres adapter gets from single statements.

    Related:
      - src/coinsensei/contexts/identity/application/ports/security_profile_repository.py
      - src/coinsensei/contexts/identity/adapters/outbound/persistence/postgres/
        security_profile_repository.py
      - tests/unit/contexts/identity/application/test_second_factor_gateway.py
    """

    def __init__(self) -> None:
        self._rows: dict[AccountId, AccountSecurityProfile] = {}
        self._lock = threading.Lock()

    def find_by_account_id(self, *, account_id: AccountId) -> AccountSecurityProfile | None:
        with self._lock:
            return self._rows.get(account_id)

    def store_pending_secret(
        self,
        *,
        account_id: AccountId,
        secret_enc: bytes,
        updated_at: datetime,
    ) -> AccountSecurityProfile:
        with self._lock:
            existing = self._rows.get(account_id)
            if existing is not None and existing.two_factor_enabled:
                return existing
            row = AccountSecurityProfile(
                account_id=account_id,
                two_factor_enabled=False,
                two_factor_secret_enc=bytes(secret_enc),
                backup_code_digests=frozenset(),
                updated_at=updated_at,
            )
            self._rows[account_id] = row
            return row

    def enable(
        self,
        *,
        account_id: AccountId,
        secret_enc: bytes,
        updated_at: datetime,
    ) -> AccountSecurityProfile:
        with self._lock:
            existing = self._rows.get(account_id)
            if existing is not None and existing.two_factor_enabled:
                return existing
            row = AccountSecurityProfile(
                account_id=account_id,
                two_factor_enabled=True,
                two_factor_secret_enc=bytes(secret_enc),
                backup_code_digests=(
                    existing.backup_code_digests if existing is not None else frozenset()
                ),
                updated_at=updated_at,
            )
            self._rows[account_id] = row
            return row

    def disable(self, *, account_id: AccountId, updated_at: datetime) -> None:
        with self._lock:
            if account_id not in self._rows:
                return
            self._rows[account_id] = AccountSecurityProfile(
                account_id=account_id,
                two_factor_enabled=False,
                two_factor_secret_enc=None,
                backup_code_digests=frozenset(),
                updated_at=updated_at,
            )

    def replace_backup_codes(
        self,
        *,
        account_id: AccountId,
        code_digests: frozenset[str],
        updated_at: datetime,
    ) -> AccountSecurityProfile:
        """
        Replace backup code digests of an existing row.

        Args:
            account_id: Account identifier.
            code_digests: New SHA-256 hex digests.
            updated_at: UTC update timestamp.
        Returns:
            AccountSecurityProfile: Updated snapshot.
        Assumptions:
            Row exists; gateway checks for a secret beforehand.
        Raises:
            ValueError: If row is missing or digests are malformed.
        Side Effects:
            Mutates in-memory row.
        """
        with self._lock:
            existing = self._rows.get(account_id)
            if existing is None:
                raise ValueError("InMemorySecurityProfileRepository missing account row")
            row = AccountSecurityProfile(
                account_id=account_id,
                two_factor_enabled=existing.two_factor_enabled,
                two_factor_secret_enc=existing.two_factor_secret_enc,
                backup_code_digests=frozenset(code_digests),
                updated_at=updated_at,
            )
            self._rows[account_id] = row
            return row

    def consume_backup_code(
        self,
        *,
        account_id: AccountId,
        code_digest: str,
        updated_at: datetime,
    ) -> bool:
        with self._lock:
            existing = self._rows.get(account_id)
            if existing is None or code_digest not in existing.backup_code_digests:
                return False
            self._rows[account_id] = AccountSecurityProfile(
                account_id=account_id,
                two_factor_enabled=existing.two_factor_enabled,
                two_factor_secret_enc=existing.two_factor_secret_enc,
                backup_code_digests=existing.backup_code_digests - {code_digest},
                updated_at=updated_at,
            )
            return True
