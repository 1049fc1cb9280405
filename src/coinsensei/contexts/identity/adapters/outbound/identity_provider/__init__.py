from .in_memory_identity_provider import InMemoryIdentityProvider

__all__ = [
    "InMemoryIdentityProvider",
]
