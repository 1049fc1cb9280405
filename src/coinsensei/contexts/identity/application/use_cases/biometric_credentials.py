from __future__ import annotations

import logging

from coinsensei.contexts.identity.application.ports import BiometricChallenge, SecretVault
from coinsensei.contexts.identity.domain.entities import BiometricCredential

log = logging.getLogger(__name__)

BIOMETRIC_ENABLED_KEY = "biometric_enabled"
BIOMETRIC_CREDENTIALS_KEY = "biometric_credentials"
BIOMETRIC_ENABLE_PROMPT = "Verify your identity to enable biometric login"
BIOMETRIC_SIGN_IN_PROMPT = "Sign in with biometric authentication"

_ENABLED_FLAG = "true"


class BiometricCredentialStore:
    """
    BiometricCredentialStore — device-vault record of the credential replayed after unlock.

    The credential is readable only while the separate enabled flag is set.

    Related:
      - src/coinsensei/contexts/identity/domain/entities/biometric_credential.py
      - src/coinsensei/contexts/identity/application/ports/secret_vault.py
      - src/coinsensei/contexts/identity/application/use_cases/login_orchestrator.py
    """

    def __init__(self, *, vault: SecretVault) -> None:
        if vault is None:  # type: ignore[truthy-bool]
            raise ValueError("BiometricCredentialStore requires vault")
        self._vault = vault

    async def is_enabled(self) -> bool:
        return await self._vault.read(key=BIOMETRIC_ENABLED_KEY) == _ENABLED_FLAG

    async def save(self, *, credential: BiometricCredential) -> None:
        """
        Store credential, then raise the enabled flag.

        Args:
            credential: Credential captured after a passed device challenge.
        Returns:
            None.
        Assumptions:
            Flag is written last so a partial write never enables a missing record.
        Raises:
            ValueError: If vault write fails.
        Side Effects:
            Writes two vault records.
        """
        await self._vault.store(key=BIOMETRIC_CREDENTIALS_KEY, value=credential.to_json())
        await self._vault.store(key=BIOMETRIC_ENABLED_KEY, value=_ENABLED_FLAG)

    async def load(self) -> BiometricCredential | None:
        """
        Read stored credential when biometric sign-in is enabled.

        Args:
            None.
        Returns:
            BiometricCredential | None: Credential or `None` when disabled, missing or corrupt.
        Assumptions:
            A corrupt record is treated as not enrolled.
        Raises:
            ValueError: If vault read fails.
        Side Effects:
            Reads vault records.
        """
        if not await self.is_enabled():
            return None
        raw_value = await self._vault.read(key=BIOMETRIC_CREDENTIALS_KEY)
        if raw_value is None:
            return None
        try:
            return BiometricCredential.from_json(raw_value)
        except ValueError:
            log.warning("biometric credential record is unreadable; treating as not enrolled")
            return None

    async def clear(self) -> None:
        await self._vault.delete(key=BIOMETRIC_ENABLED_KEY)
        await self._vault.delete(key=BIOMETRIC_CREDENTIALS_KEY)

    async def replace_password(self, *, email: str, password: str) -> bool:
        """
        Refresh stored password after a password change of the same account.

        Args:
            email: Email of the account whose password changed.
            password: New password.
        Returns:
            bool: `True` when a matching record was updated.
        Assumptions:
            Email comparison is case-insensitive.
        Raises:
            ValueError: If vault write fails.
        Side Effects:
            May rewrite the credential record.
        """
        current = await self.load()
        if current is None:
            return False
        if current.email.strip().lower() != email.strip().lower():
            return False
        await self.save(credential=BiometricCredential(email=current.email, password=password))
        return True


class BiometricEnrollmentUseCase:
    """
    BiometricEnrollmentUseCase — opt in and out of biometric sign-in on this device.

    Related:
      - src/coinsensei/contexts/identity/application/ports/biometric_challenge.py
      - src/coinsensei/contexts/identity/application/use_cases/biometric_credentials.py
    """

    def __init__(self, *, store: BiometricCredentialStore, challenge: BiometricChallenge) -> None:
        if store is None:  # type: ignore[truthy-bool]
            raise ValueError("BiometricEnrollmentUseCase requires store")
        if challenge is None:  # type: ignore[truthy-bool]
            raise ValueError("BiometricEnrollmentUseCase requires challenge")
        self._store = store
        self._challenge = challenge

    async def enable(self, *, email: str, password: str) -> bool:
        """
        Run device challenge and store credential on success.

        Args:
            email: Signed-in account email.
            password: Account password entered by the user.
        Returns:
            bool: `True` when enrollment completed.
        Assumptions:
            Unavailable hardware and a failed challenge are normal outcomes.
        Raises:
            ValueError: If email or password is empty, or vault write fails.
        Side Effects:
            Shows device prompt; writes vault records on success.
        """
        credential = BiometricCredential(email=email.strip(), password=password)
        if not await self._challenge.is_available():
            log.info("biometric enrollment skipped: device challenge unavailable")
            return False
        if not await self._challenge.challenge(prompt=BIOMETRIC_ENABLE_PROMPT):
            log.info("biometric enrollment rejected by device challenge")
            return False
        await self._store.save(credential=credential)
        return True

    async def disable(self) -> None:
        await self._store.clear()
