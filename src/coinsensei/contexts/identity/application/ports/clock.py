from __future__ import annotations

from datetime import datetime
from typing import Protocol


class IdentityClock(Protocol):
    """
    IdentityClock — port of the current UTC time for identity use-cases.

    Related:
      - src/coinsensei/contexts/identity/application/use_cases/login_orchestrator.py
      - src/coinsensei/contexts/identity/application/use_cases/second_factor_gateway.py
      - src/coinsensei/contexts/identity/adapters/outbound/time/system_identity_clock.py
    """

    def now(self) -> datetime:
        """
        Return current UTC timestamp used in identity flow.

        Args:
            None.
        Returns:
            datetime: Timezone-aware UTC datetime.
        Assumptions:
            TOTP verification and resend cooldowns are computed from this value.
        Raises:
            None.
        Side Effects:
            None.
        """
        ...
