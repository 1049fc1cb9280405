from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

from coinsensei.contexts.identity.adapters.outbound.persistence.postgres.gateway import (
    IdentityPostgresGateway,
)
from coinsensei.contexts.identity.application.ports.security_profile_repository import (
    SecurityProfileRepository,
)
from coinsensei.contexts.identity.domain.entities import AccountSecurityProfile
from coinsensei.shared_kernel.primitives import AccountId

_RETURNING_COLUMNS = """
            uid,
            two_factor_enabled,
            two_factor_secret,
            backup_codes,
            COALESCE(two_factor_updated_at, created_at) AS two_factor_updated_at
"""


class PostgresSecurityProfileRepository(SecurityProfileRepository):
    """
    PostgresSecurityProfileRepository — 2FA columns of the managed `user_profile` table.

    Every mutation is one `UPDATE ... RETURNING` statement, so disable and backup-code
    consumption are atomic under the row lock. Profile rows are created at sign-up, so a
    missing row is an error for writes that need one.

    Related:
      - src/coinsensei/contexts/identity/application/ports/security_profile_repository.py
      - src/coinsensei/contexts/identity/adapters/outbound/persistence/postgres/gateway.py
      - tests/unit/contexts/identity/adapters/test_postgres_security_profile_repository.py
    """

    def __init__(
        self,
        *,
        gateway: IdentityPostgresGateway,
        profile_table: str = "user_profile",
    ) -> None:
        """
        Initialize repository with SQL gateway and profile table name.

        Args:
            gateway: SQL gateway abstraction.
            profile_table: Table holding one profile row per account.
        Returns:
            None.
        Assumptions:
            Table has `uid`, `two_factor_enabled`, `two_factor_secret` (bytea),
            `backup_codes` (text[]), `two_factor_updated_at` and `created_at` columns.
        Raises:
            ValueError: If dependencies are invalid.
        Side Effects:
            None.
        """
        if gateway is None:  # type: ignore[truthy-bool]
            raise ValueError("PostgresSecurityProfileRepository requires gateway")
        normalized_table = profile_table.strip()
        if not normalized_table:
            raise ValueError("PostgresSecurityProfileRepository requires non-empty table name")

        self._gateway = gateway
        self._table = normalized_table

    def find_by_account_id(self, *, account_id: AccountId) -> AccountSecurityProfile | None:
        query = f"""
        SELECT{_RETURNING_COLUMNS}
        FROM {self._table}
        WHERE uid = %(uid)s
        """
        row = self._gateway.fetch_one(query=query, parameters={"uid": str(account_id)})
        if row is None:
            return None
        return _map_security_row(row=row)

    def store_pending_secret(
        self,
        *,
        account_id: AccountId,
        secret_enc: bytes,
        updated_at: datetime,
    ) -> AccountSecurityProfile:
        """
        Replace pending secret unless 2FA is enabled.

        Args:
            account_id: Account identifier.
            secret_enc: Encrypted opaque secret blob.
            updated_at: UTC update timestamp.
        Returns:
            AccountSecurityProfile: Updated row, or the unchanged enabled row.
        Assumptions:
            Enabled rows are never overwritten by this statement.
        Raises:
            ValueError: If profile row does not exist.
        Side Effects:
            Executes one SQL update and optional fallback select.
        """
        query = f"""
        UPDATE {self._table}
        SET
            two_factor_secret = %(secret_enc)s,
            backup_codes = '{{}}',
            two_factor_updated_at = %(updated_at)s
        WHERE uid = %(uid)s
          AND NOT two_factor_enabled
        RETURNING{_RETURNING_COLUMNS}
        """
        row = self._gateway.fetch_one(
            query=query,
            parameters={
                "uid": str(account_id),
                "secret_enc": bytes(secret_enc),
                "updated_at": updated_at,
            },
        )
        if row is None:
            return self._require_existing(account_id=account_id)
        return _map_security_row(row=row)

    def enable(
        self,
        *,
        account_id: AccountId,
        secret_enc: bytes,
        updated_at: datetime,
    ) -> AccountSecurityProfile:
        query = f"""
        UPDATE {self._table}
        SET
            two_factor_enabled = TRUE,
            two_factor_secret = %(secret_enc)s,
            two_factor_updated_at = %(updated_at)s
        WHERE uid = %(uid)s
          AND NOT two_factor_enabled
        RETURNING{_RETURNING_COLUMNS}
        """
        row = self._gateway.fetch_one(
            query=query,
            parameters={
                "uid": str(account_id),
                "secret_enc": bytes(secret_enc),
                "updated_at": updated_at,
            },
        )
        if row is None:
            return self._require_existing(account_id=account_id)
        return _map_security_row(row=row)

    def disable(self, *, account_id: AccountId, updated_at: datetime) -> None:
        query = f"""
        UPDATE {self._table}
        SET
            two_factor_enabled = FALSE,
            two_factor_secret = NULL,
            backup_codes = '{{}}',
            two_factor_updated_at = %(updated_at)s
        WHERE uid = %(uid)s
        """
        self._gateway.execute(
            query=query,
            parameters={"uid": str(account_id), "updated_at": updated_at},
        )

    def replace_backup_codes(
        self,
        *,
        account_id: AccountId,
        code_digests: frozenset[str],
        updated_at: datetime,
    ) -> AccountSecurityProfile:
        query = f"""
        UPDATE {self._table}
        SET
            backup_codes = %(code_digests)s,
            two_factor_updated_at = %(updated_at)s
        WHERE uid = %(uid)s
          AND two_factor_secret IS NOT NULL
        RETURNING{_RETURNING_COLUMNS}
        """
        row = self._gateway.fetch_one(
            query=query,
            parameters={
                "uid": str(account_id),
                "code_digests": sorted(code_digests),
                "updated_at": updated_at,
            },
        )
        if row is None:
            raise ValueError("PostgresSecurityProfileRepository has no secret row for backup codes")
        return _map_security_row(row=row)

    def consume_backup_code(
        self,
        *,
        account_id: AccountId,
        code_digest: str,
        updated_at: datetime,
    ) -> bool:
        """
        Remove digest with one conditional update; only one concurrent caller matches.

        Args:
            account_id: Account identifier.
            code_digest: SHA-256 hex digest of submitted code.
            updated_at: UTC update timestamp.
        Returns:
            bool: `True` when this statement removed the digest.
        Assumptions:
            Row lock re-checks the `ANY` predicate for concurrent updates.
        Raises:
            None.
        Side Effects:
            Executes one SQL update statement.
        """
        query = f"""
        UPDATE {self._table}
        SET
            backup_codes = array_remove(backup_codes, %(code_digest)s),
            two_factor_updated_at = %(updated_at)s
        WHERE uid = %(uid)s
          AND %(code_digest)s = ANY(backup_codes)
        RETURNING uid
        """
        row = self._gateway.fetch_one(
            query=query,
            parameters={
                "uid": str(account_id),
                "code_digest": code_digest,
                "updated_at": updated_at,
            },
        )
        return row is not None

    def _require_existing(self, *, account_id: AccountId) -> AccountSecurityProfile:
        existing = self.find_by_account_id(account_id=account_id)
        if existing is None:
            raise ValueError("PostgresSecurityProfileRepository missing profile row")
        return existing


def _map_security_row(*, row: Mapping[str, Any]) -> AccountSecurityProfile:
    """
    Map SQL row into immutable `AccountSecurityProfile`.

    Args:
        row: SQL result mapping.
    Returns:
        AccountSecurityProfile: Domain snapshot.
    Assumptions:
        `backup_codes` may be NULL for rows that never had 2FA.
    Raises:
        ValueError: If required fields are missing or malformed.
    Side Effects:
        None.
    """
    try:
        secret_raw = row["two_factor_secret"]
        secret_enc: bytes | None
        if secret_raw is None:
            secret_enc = None
        elif isinstance(secret_raw, memoryview):
            secret_enc = secret_raw.tobytes()
        else:
            secret_enc = bytes(secret_raw)
        updated_at = row["two_factor_updated_at"]
        if not isinstance(updated_at, datetime):
            raise TypeError("two_factor_updated_at must be datetime")
        return AccountSecurityProfile(
            account_id=AccountId.from_string(str(row["uid"])),
            two_factor_enabled=bool(row["two_factor_enabled"]),
            two_factor_secret_enc=secret_enc,
            backup_code_digests=frozenset(row["backup_codes"] or ()),
            updated_at=updated_at.astimezone(timezone.utc),
        )
    except (KeyError, TypeError, ValueError) as error:
        raise ValueError("PostgresSecurityProfileRepository cannot map profile row") from error
