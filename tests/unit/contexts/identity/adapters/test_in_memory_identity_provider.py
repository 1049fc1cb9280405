from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from coinsensei.contexts.identity.adapters.outbound import (
    Hs256AccessTokenCodec,
    InMemoryIdentityProvider,
)
from coinsensei.contexts.identity.application.ports import IdentityClock, SessionEventKind


class _FixedClock(IdentityClock):
    def now(self) -> datetime:
        return datetime(2026, 3, 9, 8, 0, 0, tzinfo=timezone.utc)


def _build(*, event_history_size: int) -> InMemoryIdentityProvider:
    clock = _FixedClock()
    provider = InMemoryIdentityProvider(
        token_codec=Hs256AccessTokenCodec(secret_key="test-access-token-secret", clock=clock),
        clock=clock,
        event_history_size=event_history_size,
    )
    provider.register_account(email="bob@example.com", password="Secret123")
    return provider


def test_event_history_keeps_only_most_recent_events() -> None:
    """
    Verify repeated sign-in/sign-out cycles keep the event log bounded and ordered.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Each cycle emits FRESH_SIGN_IN followed by SIGNED_OUT.
    Raises:
        AssertionError: If the history grows past its limit or loses ordering.
    Side Effects:
        None.
    """
    provider = _build(event_history_size=3)

    async def _scenario() -> None:
        for _ in range(10):
            await provider.sign_in_with_password(email="bob@example.com", password="Secret123")
            await provider.sign_out()

    asyncio.run(_scenario())

    assert [event.kind for event in provider.emitted_events] == [
        SessionEventKind.SIGNED_OUT,
        SessionEventKind.FRESH_SIGN_IN,
        SessionEventKind.SIGNED_OUT,
    ]
    assert provider.password_sign_ins == 10


def test_provider_rejects_non_positive_event_history_size() -> None:
    with pytest.raises(ValueError):
        _build(event_history_size=0)
