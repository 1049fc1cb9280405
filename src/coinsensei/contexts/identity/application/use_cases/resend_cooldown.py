from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta


@dataclass(frozen=True, slots=True)
class ResendCooldown:
    """
    ResendCooldown — advisory deadline before the email code may be sent again.

    Computed from the injected clock; nothing runs in the background, so disposing the
    login context disposes the cooldown.

    Related:
      - src/coinsensei/contexts/identity/application/use_cases/login_orchestrator.py
      - src/coinsensei/platform/config/auth_flow.py
    """

    started_at: datetime
    window_seconds: int

    def __post_init__(self) -> None:
        if self.window_seconds <= 0:
            raise ValueError(
                f"ResendCooldown.window_seconds must be > 0, got {self.window_seconds}"
            )
        if self.started_at.tzinfo is None or self.started_at.utcoffset() is None:
            raise ValueError("ResendCooldown.started_at must be timezone-aware")

    @property
    def expires_at(self) -> datetime:
        return self.started_at + timedelta(seconds=self.window_seconds)

    def seconds_remaining(self, *, now: datetime) -> int:
        """
        Return whole seconds left before resend is allowed, rounded up.

        Args:
            now: Current timezone-aware datetime.
        Returns:
            int: `0` once the window elapsed, otherwise at least `1`.
        Assumptions:
            A clock moving backwards never extends the window past `window_seconds`.
        Raises:
            None.
        Side Effects:
            None.
        """
        remaining = (self.expires_at - now).total_seconds()
        if remaining <= 0:
            return 0
        return min(self.window_seconds, math.ceil(remaining))

    def is_active(self, *, now: datetime) -> bool:
        return self.seconds_remaining(now=now) > 0
