from __future__ import annotations

from typing import Protocol


class SecretVault(Protocol):
    """
    SecretVault — async port of device-local secure key/value storage.

    Related:
      - src/coinsensei/contexts/identity/application/use_cases/biometric_credentials.py
      - src/coinsensei/contexts/identity/adapters/outbound/vault/in_memory_secret_vault.py
      - src/coinsensei/contexts/identity/adapters/outbound/vault/encrypted_file_secret_vault.py
    """

    async def store(self, *, key: str, value: str) -> None:
        """
        Store value under key, replacing previous value.

        Args:
            key: Record key.
            value: Plaintext value, encrypted by the adapter at rest.
        Returns:
            None.
        Assumptions:
            Keys are short ASCII identifiers.
        Raises:
            ValueError: If key is invalid or write fails.
        Side Effects:
            Writes one record.
        """
        ...

    async def read(self, *, key: str) -> str | None:
        """
        Read value stored under key.

        Args:
            key: Record key.
        Returns:
            str | None: Stored value or `None` when missing.
        Assumptions:
            None.
        Raises:
            ValueError: If key is invalid or record cannot be decrypted.
        Side Effects:
            Reads one record.
        """
        ...

    async def delete(self, *, key: str) -> None:
        """
        Delete record; missing key is a no-op.

        Args:
            key: Record key.
        Returns:
            None.
        Assumptions:
            None.
        Raises:
            ValueError: If key is invalid.
        Side Effects:
            Removes one record.
        """
        ...
