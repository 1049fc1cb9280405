"""
Shared Kernel primitives.

    from coinsensei.shared_kernel.primitives import AccountId
"""

from .account_id import AccountId

__all__ = [
    "AccountId",
]
