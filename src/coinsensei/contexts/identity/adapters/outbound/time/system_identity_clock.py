from __future__ import annotations

from datetime import datetime, timezone

from coinsensei.contexts.identity.application.ports.clock import IdentityClock


class SystemIdentityClock(IdentityClock):
    """
    SystemIdentityClock — `IdentityClock` backed by the system UTC wall clock.

    Related:
      - src/coinsensei/contexts/identity/application/ports/clock.py
      - apps/api/wiring/modules/identity.py
    """

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
