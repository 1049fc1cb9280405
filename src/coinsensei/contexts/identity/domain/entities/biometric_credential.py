from __future__ import annotations

import json
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class BiometricCredential:
    """
    BiometricCredential — device-local (email, password) pair replayed after a biometric unlock.

    Related:
      - src/coinsensei/contexts/identity/application/use_cases/biometric_credentials.py
      - src/coinsensei/contexts/identity/application/ports/secret_vault.py
    """

    email: str
    password: str

    def __post_init__(self) -> None:
        if not self.email.strip():
            raise ValueError("BiometricCredential.email must be non-empty")
        if not self.password:
            raise ValueError("BiometricCredential.password must be non-empty")

    def to_json(self) -> str:
        return json.dumps({"email": self.email, "password": self.password}, sort_keys=True)

    @classmethod
    def from_json(cls, raw_value: str) -> BiometricCredential:
        """
        Parse credential JSON written by `to_json`.

        Args:
            raw_value: JSON document read from the device vault.
        Returns:
            BiometricCredential: Parsed credential.
        Assumptions:
            Document was produced by this class.
        Raises:
            ValueError: If document is not a JSON object with string fields.
        Side Effects:
            None.
        """
        try:
            loaded = json.loads(raw_value)
        except json.JSONDecodeError as error:
            raise ValueError("BiometricCredential payload is not valid JSON") from error
        if not isinstance(loaded, dict):
            raise ValueError("BiometricCredential payload must be a JSON object")
        email = loaded.get("email")
        password = loaded.get("password")
        if not isinstance(email, str) or not isinstance(password, str):
            raise ValueError("BiometricCredential payload requires string email and password")
        return cls(email=email, password=password)

    def __repr__(self) -> str:
        return f"BiometricCredential(email={self.email!r}, password='***')"
