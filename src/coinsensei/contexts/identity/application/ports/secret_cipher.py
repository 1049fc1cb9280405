from __future__ import annotations

from typing import Protocol


class SecretCipher(Protocol):
    """
    SecretCipher — port of authenticated encryption for secrets kept at rest.

    Used for the account TOTP secret on the server and for the device vault records.

    Related:
      - src/coinsensei/contexts/identity/adapters/outbound/security/two_factor/
        aes_gcm_envelope_secret_cipher.py
      - src/coinsensei/contexts/identity/application/use_cases/second_factor_gateway.py
      - src/coinsensei/contexts/identity/adapters/outbound/vault/encrypted_file_secret_vault.py
    """

    def encrypt_secret(self, *, secret: str) -> bytes:
        """
        Encrypt plaintext secret into opaque blob suitable for persistence.

        Args:
            secret: Plaintext secret.
        Returns:
            bytes: Encrypted opaque blob.
        Assumptions:
            Plaintext is non-empty and never persisted as plaintext.
        Raises:
            ValueError: If inputs are invalid or encryption fails.
        Side Effects:
            None.
        """
        ...

    def decrypt_secret(self, *, secret_enc: bytes) -> str:
        """
        Decrypt persisted blob for runtime use only.

        Args:
            secret_enc: Opaque encrypted blob.
        Returns:
            str: Plaintext secret.
        Assumptions:
            Decrypted value is kept in memory only and never logged.
        Raises:
            ValueError: If blob format is invalid or authentication fails.
        Side Effects:
            None.
        """
        ...
