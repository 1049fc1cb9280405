from __future__ import annotations

import asyncio
import logging
import os
import re
from pathlib import Path

from coinsensei.contexts.identity.application.ports.secret_cipher import SecretCipher
from coinsensei.contexts.identity.application.ports.secret_vault import SecretVault

log = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_.-]{0,63}$")
_RECORD_SUFFIX = ".vault"
_FILE_MODE = 0o600
_DIRECTORY_MODE = 0o700


class EncryptedFileSecretVault(SecretVault):
    """
    EncryptedFileSecretVault — device vault storing one AES-GCM blob per key.

    Files are created owner-only (`0o600`) inside an owner-only directory and replaced
    atomically. Blocking file IO runs in worker threads.

    Related:
      - src/coinsensei/contexts/identity/application/ports/secret_vault.py
      - src/coinsensei/contexts/identity/adapters/outbound/security/two_factor/
        aes_gcm_envelope_secret_cipher.py
      - src/coinsensei/contexts/identity/application/use_cases/biometric_credentials.py
    """

    def __init__(self, *, directory: Path, cipher: SecretCipher) -> None:
        """
        Initialize vault directory and record cipher.

        Args:
            directory: Directory holding vault records.
            cipher: Cipher bound to device vault associated data.
        Returns:
            None.
        Assumptions:
            Directory is private to the application user.
        Raises:
            ValueError: If cipher is missing.
        Side Effects:
            None; directory is created on first write.
        """
        if cipher is None:  # type: ignore[truthy-bool]
            raise ValueError("EncryptedFileSecretVault requires cipher")
        self._directory = Path(directory)
        self._cipher = cipher

    async def store(self, *, key: str, value: str) -> None:
        path = self._record_path(key=key)
        blob = self._cipher.encrypt_secret(secret=value)
        await asyncio.to_thread(self._write_record, path, blob)

    async def read(self, *, key: str) -> str | None:
        path = self._record_path(key=key)
        blob = await asyncio.to_thread(_read_record, path)
        if blob is None:
            return None
        return self._cipher.decrypt_secret(secret_enc=blob)

    async def delete(self, *, key: str) -> None:
        path = self._record_path(key=key)
        await asyncio.to_thread(path.unlink, missing_ok=True)

    def _record_path(self, *, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"EncryptedFileSecretVault key is invalid: {key!r}")
        return self._directory / f"{key}{_RECORD_SUFFIX}"

    def _write_record(self, path: Path, blob: bytes) -> None:
        """
        Write blob to temporary owner-only file, then atomically replace target.

        Args:
            path: Target record path.
            blob: Encrypted record bytes.
        Returns:
            None.
        Assumptions:
            Temporary file lives in the same directory so replace is atomic.
        Raises:
            OSError: If filesystem write fails.
        Side Effects:
            Creates vault directory and writes one file.
        """
        self._directory.mkdir(mode=_DIRECTORY_MODE, parents=True, exist_ok=True)
        temporary = path.with_name(f".{path.name}.tmp")
        descriptor = os.open(temporary, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, _FILE_MODE)
        try:
            with os.fdopen(descriptor, "wb") as handle:
                handle.write(blob)
                handle.flush()
                os.fsync(handle.fileno())
            temporary.chmod(_FILE_MODE)
            temporary.replace(path)
        except OSError:
            log.exception("vault record write failed record=%s", path.name)
            temporary.unlink(missing_ok=True)
            raise


def _read_record(path: Path) -> bytes | None:
    try:
        return path.read_bytes()
    except FileNotFoundError:
        return None
