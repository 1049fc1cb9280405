from __future__ import annotations

import base64
import binascii
import os
import struct
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from coinsensei.contexts.identity.application.ports.secret_cipher import SecretCipher

TOTP_SECRET_AAD = b"coinsensei.identity.2fa.totp.v1"
DEVICE_VAULT_AAD = b"coinsensei.identity.device-vault.v1"

_BLOB_VERSION_V1 = 1
_NONCE_LENGTH = 12
_GCM_TAG_LENGTH = 16
_DEK_LENGTH = 32
_HEADER = struct.Struct(">BBBH")
_SUPPORTED_KEK_LENGTHS = {16, 24, 32}


@dataclass(frozen=True, slots=True)
class _Envelope:
    """
    Binary layout: header(version, dek nonce len, secret nonce len, encrypted dek len),
    dek nonce, encrypted dek, secret nonce, encrypted secret.
    """

    dek_nonce: bytes
    encrypted_dek: bytes
    secret_nonce: bytes
    encrypted_secret: bytes

    def to_bytes(self) -> bytes:
        header = _HEADER.pack(
            _BLOB_VERSION_V1,
            len(self.dek_nonce),
            len(self.secret_nonce),
            len(self.encrypted_dek),
        )
        return b"".join(
            (header, self.dek_nonce, self.encrypted_dek, self.secret_nonce, self.encrypted_secret)
        )

    @classmethod
    def from_bytes(cls, blob: bytes) -> _Envelope:
        """
        Split versioned blob into envelope parts.

        Args:
            blob: Complete encrypted blob.
        Returns:
            _Envelope: Parsed parts.
        Assumptions:
            Only version 1 layout exists.
        Raises:
            ValueError: If blob is truncated or header values are unsupported.
        Side Effects:
            None.
        """
        if len(blob) < _HEADER.size:
            raise ValueError("Encrypted secret blob is too short")
        version, dek_nonce_len, secret_nonce_len, encrypted_dek_len = _HEADER.unpack_from(blob)
        if version != _BLOB_VERSION_V1:
            raise ValueError("Unsupported encrypted secret blob version")
        if dek_nonce_len != _NONCE_LENGTH or secret_nonce_len != _NONCE_LENGTH:
            raise ValueError("Encrypted secret blob contains invalid nonce length")
        if encrypted_dek_len <= _GCM_TAG_LENGTH:
            raise ValueError("Encrypted secret blob contains invalid encrypted DEK length")

        cursor = _HEADER.size
        parts: list[bytes] = []
        for length in (dek_nonce_len, encrypted_dek_len, secret_nonce_len):
            chunk = blob[cursor : cursor + length]
            if len(chunk) != length:
                raise ValueError("Encrypted secret blob payload is truncated")
            parts.append(chunk)
            cursor += length
        encrypted_secret = blob[cursor:]
        if len(encrypted_secret) <= _GCM_TAG_LENGTH:
            raise ValueError("Encrypted secret blob contains invalid encrypted secret payload")
        return cls(
            dek_nonce=parts[0],
            encrypted_dek=parts[1],
            secret_nonce=parts[2],
            encrypted_secret=encrypted_secret,
        )


class AesGcmEnvelopeSecretCipher(SecretCipher):
    """
    AesGcmEnvelopeSecretCipher — AES-GCM envelope cipher (random DEK wrapped by KEK).

    The associated data binds a blob to its purpose; a TOTP secret blob cannot be
    decrypted as a device vault record and vice versa.

    Related:
      - src/coinsensei/contexts/identity/application/ports/secret_cipher.py
      - src/coinsensei/contexts/identity/adapters/outbound/vault/encrypted_file_secret_vault.py
      - apps/api/wiring/modules/identity.py
    """

    def __init__(self, *, kek_b64: str, aad: bytes = TOTP_SECRET_AAD) -> None:
        """
        Initialize envelope cipher from base64-encoded key-encryption key.

        Args:
            kek_b64: Base64-encoded KEK bytes (`IDENTITY_2FA_KEK_B64`).
            aad: Associated data authenticated with every blob.
        Returns:
            None.
        Assumptions:
            KEK length is a valid AES size (16/24/32 bytes).
        Raises:
            ValueError: If KEK is empty, malformed, or unsupported length, or AAD is empty.
        Side Effects:
            None.
        """
        normalized_kek_b64 = kek_b64.strip()
        if not normalized_kek_b64:
            raise ValueError("AesGcmEnvelopeSecretCipher requires non-empty kek_b64")
        if not aad:
            raise ValueError("AesGcmEnvelopeSecretCipher requires non-empty aad")
        try:
            kek = base64.b64decode(normalized_kek_b64, validate=True)
        except binascii.Error as error:
            raise ValueError("KEK must be valid base64") from error
        if len(kek) not in _SUPPORTED_KEK_LENGTHS:
            raise ValueError("KEK must decode to 16, 24, or 32 bytes for AES-GCM")
        self._kek = AESGCM(kek)
        self._aad = bytes(aad)

    def encrypt_secret(self, *, secret: str) -> bytes:
        """
        Encrypt plaintext under fresh DEK and wrap DEK with KEK.

        Args:
            secret: Plaintext secret.
        Returns:
            bytes: Versioned opaque blob.
        Assumptions:
            Plaintext is never persisted or logged.
        Raises:
            ValueError: If secret is empty.
        Side Effects:
            Uses OS CSPRNG for DEK and nonces.
        """
        if not secret.strip():
            raise ValueError("AesGcmEnvelopeSecretCipher secret must be non-empty")
        dek = os.urandom(_DEK_LENGTH)
        dek_nonce = os.urandom(_NONCE_LENGTH)
        secret_nonce = os.urandom(_NONCE_LENGTH)
        envelope = _Envelope(
            dek_nonce=dek_nonce,
            encrypted_dek=self._kek.encrypt(dek_nonce, dek, self._aad),
            secret_nonce=secret_nonce,
            encrypted_secret=AESGCM(dek).encrypt(secret_nonce, secret.encode("utf-8"), self._aad),
        )
        return envelope.to_bytes()

    def decrypt_secret(self, *, secret_enc: bytes) -> str:
        """
        Unwrap DEK and decrypt plaintext secret.

        Args:
            secret_enc: Opaque blob produced by `encrypt_secret`.
        Returns:
            str: Plaintext secret.
        Assumptions:
            Plaintext is used transiently and never logged.
        Raises:
            ValueError: If blob is malformed, authentication fails, or plaintext is empty.
        Side Effects:
            None.
        """
        blob = bytes(secret_enc)
        if not blob:
            raise ValueError("AesGcmEnvelopeSecretCipher secret_enc must be non-empty")
        envelope = _Envelope.from_bytes(blob)
        try:
            dek = self._kek.decrypt(envelope.dek_nonce, envelope.encrypted_dek, self._aad)
            plaintext = AESGCM(dek).decrypt(
                envelope.secret_nonce,
                envelope.encrypted_secret,
                self._aad,
            )
        except InvalidTag as error:
            raise ValueError("Encrypted secret blob authentication failed") from error
        try:
            secret = plaintext.decode("utf-8")
        except UnicodeDecodeError as error:
            raise ValueError("Encrypted secret plaintext is not valid UTF-8") from error
        if not secret:
            raise ValueError("Encrypted secret plaintext is empty")
        return secret
