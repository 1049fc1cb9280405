from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from coinsensei.contexts.identity.application.ports import (
    IdentityCredentialsRejectedError,
    IdentityProvider,
    IdentityProviderUnavailableError,
)
from coinsensei.contexts.identity.application.use_cases.biometric_credentials import (
    BiometricCredentialStore,
)

log = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class ChangePasswordFailure(str, Enum):
    """
    ChangePasswordFailure — reasons a password change was not applied.
    """

    EMPTY_PASSWORD = "empty_password"
    PASSWORD_TOO_SHORT = "password_too_short"
    CONFIRMATION_MISMATCH = "confirmation_mismatch"
    NOT_SIGNED_IN = "not_signed_in"
    PROVIDER_REJECTED = "provider_rejected"
    PROVIDER_UNAVAILABLE = "provider_unavailable"


@dataclass(frozen=True, slots=True)
class ChangePasswordResult:
    changed: bool
    failure: ChangePasswordFailure | None = None
    biometric_updated: bool = False

    def __post_init__(self) -> None:
        if self.changed == (self.failure is not None):
            raise ValueError("ChangePasswordResult requires failure exactly when not changed")


class ChangePasswordUseCase:
    """
    ChangePasswordUseCase — change password of the signed-in account.

    A stored biometric credential of the same account is refreshed so the biometric
    shortcut keeps working.

    Related:
      - src/coinsensei/contexts/identity/application/ports/identity_provider.py
      - src/coinsensei/contexts/identity/application/use_cases/biometric_credentials.py
    """

    def __init__(
        self,
        *,
        identity_provider: IdentityProvider,
        biometric_store: BiometricCredentialStore,
    ) -> None:
        if identity_provider is None:  # type: ignore[truthy-bool]
            raise ValueError("ChangePasswordUseCase requires identity_provider")
        if biometric_store is None:  # type: ignore[truthy-bool]
            raise ValueError("ChangePasswordUseCase requires biometric_store")
        self._identity_provider = identity_provider
        self._biometric_store = biometric_store

    async def change(self, *, new_password: str, confirmation: str) -> ChangePasswordResult:
        """
        Validate new password locally, update it at the provider, refresh biometric record.

        Args:
            new_password: New password.
            confirmation: Repeated new password.
        Returns:
            ChangePasswordResult: Change outcome.
        Assumptions:
            Provider emits `PROFILE_UPDATE`, which never re-triggers the second factor.
        Raises:
            ValueError: If vault write fails.
        Side Effects:
            Updates provider account; may rewrite biometric credential record.
        """
        if not new_password:
            return ChangePasswordResult(changed=False, failure=ChangePasswordFailure.EMPTY_PASSWORD)
        if len(new_password) < MIN_PASSWORD_LENGTH:
            return ChangePasswordResult(
                changed=False,
                failure=ChangePasswordFailure.PASSWORD_TOO_SHORT,
            )
        if new_password != confirmation:
            return ChangePasswordResult(
                changed=False,
                failure=ChangePasswordFailure.CONFIRMATION_MISMATCH,
            )

        try:
            session = await self._identity_provider.get_session()
            if session is None:
                return ChangePasswordResult(
                    changed=False,
                    failure=ChangePasswordFailure.NOT_SIGNED_IN,
                )
            await self._identity_provider.update_password(new_password=new_password)
        except IdentityCredentialsRejectedError:
            return ChangePasswordResult(
                changed=False,
                failure=ChangePasswordFailure.PROVIDER_REJECTED,
            )
        except IdentityProviderUnavailableError:
            log.warning("password change failed: identity provider unavailable")
            return ChangePasswordResult(
                changed=False,
                failure=ChangePasswordFailure.PROVIDER_UNAVAILABLE,
            )

        biometric_updated = await self._biometric_store.replace_password(
            email=session.email,
            password=new_password,
        )
        log.info(
            "password changed account_id=%s biometric_updated=%s",
            session.account_id,
            biometric_updated,
        )
        return ChangePasswordResult(changed=True, biometric_updated=biometric_updated)
