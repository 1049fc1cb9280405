from __future__ import annotations

from dataclasses import replace

from coinsensei.contexts.identity.application.ports.account_profile_store import (
    AccountProfileStore,
    AccountProfileUnavailableError,
)
from coinsensei.contexts.identity.application.ports.security_profile_repository import (
    SecurityProfileRepository,
)
from coinsensei.contexts.identity.domain.entities import AccountProfile
from coinsensei.shared_kernel.primitives import AccountId


class InMemoryAccountProfileStore(AccountProfileStore):
    """
    InMemoryAccountProfileStore — process-local profile store for local runs and tests.

    When a security repository is given, `two_factor_enabled` is read from it so the
    profile and the 2FA gateway never disagree.

    Related:
      - src/coinsensei/contexts/identity/application/ports/account_profile_store.py
      - src/coinsensei/contexts/identity/adapters/outbound/persistence/in_memory/
        security_profile_repository.py
    """

    def __init__(self, *, security_repository: SecurityProfileRepository | None = None) -> None:
        self._profiles: dict[AccountId, AccountProfile] = {}
        self._security_repository = security_repository
        self._pending_failures = 0

    def put(self, profile: AccountProfile) -> None:
        self._profiles[profile.account_id] = profile

    def fail_next(self, count: int = 1) -> None:
        """
        Make the next `count` reads raise `AccountProfileUnavailableError`.

        Args:
            count: Number of failing reads.
        Returns:
            None.
        Assumptions:
            Used to simulate transient outages.
        Raises:
            ValueError: If count is negative.
        Side Effects:
            Mutates failure counter.
        """
        if count < 0:
            raise ValueError("InMemoryAccountProfileStore.fail_next count must be >= 0")
        self._pending_failures = count

    async def get_profile(self, *, account_id: AccountId) -> AccountProfile:
        if self._pending_failures > 0:
            self._pending_failures -= 1
            raise AccountProfileUnavailableError("profile store unavailable")
        profile = self._profiles.get(account_id)
        if profile is None:
            raise AccountProfileUnavailableError(f"profile not found for account {account_id}")
        if self._security_repository is None:
            return profile
        security = self._security_repository.find_by_account_id(account_id=account_id)
        enabled = security is not None and security.two_factor_enabled
        return replace(profile, two_factor_enabled=enabled)
