from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from coinsensei.contexts.identity.application.use_cases import ResendCooldown

_STARTED_AT = datetime(2026, 3, 6, 9, 0, 0, tzinfo=timezone.utc)


def test_seconds_remaining_rounds_up_and_reaches_zero() -> None:
    cooldown = ResendCooldown(started_at=_STARTED_AT, window_seconds=30)

    assert cooldown.seconds_remaining(now=_STARTED_AT) == 30
    assert cooldown.seconds_remaining(now=_STARTED_AT + timedelta(seconds=12.5)) == 18
    assert cooldown.seconds_remaining(now=_STARTED_AT + timedelta(seconds=29.1)) == 1
    assert cooldown.seconds_remaining(now=_STARTED_AT + timedelta(seconds=30)) == 0
    assert not cooldown.is_active(now=_STARTED_AT + timedelta(seconds=31))
    assert cooldown.expires_at == _STARTED_AT + timedelta(seconds=30)


def test_clock_moving_backwards_never_extends_window() -> None:
    cooldown = ResendCooldown(started_at=_STARTED_AT, window_seconds=30)

    assert cooldown.seconds_remaining(now=_STARTED_AT - timedelta(seconds=10)) == 30


def test_cooldown_rejects_invalid_arguments() -> None:
    with pytest.raises(ValueError):
        ResendCooldown(started_at=_STARTED_AT, window_seconds=0)
    with pytest.raises(ValueError):
        ResendCooldown(started_at=datetime(2026, 3, 6, 9, 0, 0), window_seconds=30)
