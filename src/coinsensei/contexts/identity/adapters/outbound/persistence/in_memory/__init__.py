from .account_profile_store import InMemoryAccountProfileStore
from .security_profile_repository import InMemorySecurityProfileRepository

__all__ = [
    "InMemoryAccountProfileStore",
    "InMemorySecurityProfileRepository",
]
