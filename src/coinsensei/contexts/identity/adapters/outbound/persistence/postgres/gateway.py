from __future__ import annotations

from typing import Any, Mapping, Protocol, cast

import psycopg
from psycopg.rows import dict_row


class IdentityPostgresGateway(Protocol):
    """
    SQL seam for identity Postgres adapters.

    Repositories talk to this protocol so tests can substitute an in-memory fake that records
    statements instead of opening real connections.

    Related:
      - src/coinsensei/contexts/identity/adapters/outbound/persistence/postgres/
        security_profile_repository.py
      - apps/api/wiring/modules/identity.py
    """

    def fetch_one(self, *, query: str, parameters: Mapping[str, Any]) -> Mapping[str, Any] | None:
        """
        Run one statement and return its first row.

        Args:
            query: SQL text with `%(name)s` placeholders.
            parameters: Values bound to the placeholders.
        Returns:
            Mapping[str, Any] | None: First row keyed by column name, or `None` when empty.
        Assumptions:
            Upserts use `RETURNING` so callers can read back the stored row.
        Raises:
            Exception: Driver errors propagate unchanged.
        Side Effects:
            Executes and commits one SQL statement.
        """
        ...

    def execute(self, *, query: str, parameters: Mapping[str, Any]) -> None:
        ...


class PsycopgIdentityPostgresGateway(IdentityPostgresGateway):
    """
    psycopg 3 gateway that opens a short-lived connection for every statement.

    Leaving the connection block commits the transaction, an exception inside it rolls back.
    """

    def __init__(self, *, dsn: str) -> None:
        normalized_dsn = dsn.strip()
        if not normalized_dsn:
            raise ValueError("PsycopgIdentityPostgresGateway requires non-empty dsn")
        self._dsn = normalized_dsn

    def fetch_one(self, *, query: str, parameters: Mapping[str, Any]) -> Mapping[str, Any] | None:
        return self._run(query=query, parameters=parameters, want_row=True)

    def execute(self, *, query: str, parameters: Mapping[str, Any]) -> None:
        self._run(query=query, parameters=parameters, want_row=False)

    def _run(
        self,
        *,
        query: str,
        parameters: Mapping[str, Any],
        want_row: bool,
    ) -> Mapping[str, Any] | None:
        connection = psycopg.connect(self._dsn, row_factory=cast(Any, dict_row))
        with connection:
            cursor = connection.execute(cast(Any, query), parameters)
            row = cursor.fetchone() if want_row else None
        return None if row is None else dict(row)
