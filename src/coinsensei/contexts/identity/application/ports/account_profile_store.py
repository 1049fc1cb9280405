from __future__ import annotations

from typing import Protocol

from coinsensei.contexts.identity.domain.entities import AccountProfile
from coinsensei.shared_kernel.primitives import AccountId


class AccountProfileUnavailableError(Exception):
    """
    AccountProfileUnavailableError — profile store could not return a profile.
    """


class AccountProfileStore(Protocol):
    """
    AccountProfileStore — async port reading the materialized user profile.

    Related:
      - src/coinsensei/contexts/identity/domain/entities/account_profile.py
      - src/coinsensei/contexts/identity/application/use_cases/login_orchestrator.py
      - src/coinsensei/contexts/identity/adapters/outbound/persistence/in_memory/
        account_profile_store.py
    """

    async def get_profile(self, *, account_id: AccountId) -> AccountProfile:
        """
        Load profile including the authoritative `two_factor_enabled` flag.

        Args:
            account_id: Account identifier.
        Returns:
            AccountProfile: Loaded profile.
        Assumptions:
            Profile row exists for every account that can sign in.
        Raises:
            AccountProfileUnavailableError: If profile cannot be read.
        Side Effects:
            Reads profile storage.
        """
        ...
