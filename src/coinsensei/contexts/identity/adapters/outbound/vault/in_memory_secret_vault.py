from __future__ import annotations

from coinsensei.contexts.identity.application.ports.secret_vault import SecretVault


class InMemorySecretVault(SecretVault):
    """
    InMemorySecretVault — process-local vault for tests and ephemeral sessions.
    """

    def __init__(self) -> None:
        self._records: dict[str, str] = {}

    def keys(self) -> tuple[str, ...]:
        return tuple(sorted(self._records))

    async def store(self, *, key: str, value: str) -> None:
        self._records[_require_key(key)] = value

    async def read(self, *, key: str) -> str | None:
        return self._records.get(_require_key(key))

    async def delete(self, *, key: str) -> None:
        self._records.pop(_require_key(key), None)


def _require_key(key: str) -> str:
    normalized = key.strip()
    if not normalized:
        raise ValueError("SecretVault key must be non-empty")
    return normalized
