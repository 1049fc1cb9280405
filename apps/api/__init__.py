"""
CoinSensei HTTP API.

`create_app` is looked up on first attribute access, so importing route or wiring
submodules never builds the identity module or reads `configs/`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .main.app import create_app

__all__ = ["create_app"]


def __getattr__(name: str) -> Any:
    if name != "create_app":
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    from .main.app import create_app

    return create_app
