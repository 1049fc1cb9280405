from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True, slots=True)
class AccountId:
    """
    AccountId — stable account identifier issued by the identity provider (UUID).

    Related:
      - src/coinsensei/contexts/identity/domain/entities/account_security_profile.py
      - src/coinsensei/contexts/identity/application/ports/identity_provider.py
      - src/coinsensei/contexts/identity/application/use_cases/login_orchestrator.py
    """

    value: UUID

    def __post_init__(self) -> None:
        """
        Validate UUID value type for account identifier.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            `AccountId` must wrap concrete `uuid.UUID` value.
        Raises:
            ValueError: If `value` is not a UUID instance.
        Side Effects:
            None.
        """
        if not isinstance(self.value, UUID):
            raise ValueError(f"AccountId requires UUID value, got {self.value!r}")

    @classmethod
    def from_string(cls, raw_value: str) -> AccountId:
        """
        Parse account identifier from canonical UUID string representation.

        Args:
            raw_value: Raw UUID string, e.g. the `sub` claim of an access token.
        Returns:
            AccountId: Parsed account id value object.
        Assumptions:
            Input string is expected to be non-empty and UUID-compatible.
        Raises:
            ValueError: If UUID parsing fails.
        Side Effects:
            None.
        """
        stripped = raw_value.strip()
        if not stripped:
            raise ValueError("AccountId.from_string requires non-empty value")
        return cls(UUID(stripped))

    def __str__(self) -> str:
        return str(self.value)
