from .in_memory import InMemoryAccountProfileStore, InMemorySecurityProfileRepository
from .postgres import (
    IdentityPostgresGateway,
    PostgresSecurityProfileRepository,
    PsycopgIdentityPostgresGateway,
)

__all__ = [
    "IdentityPostgresGateway",
    "InMemoryAccountProfileStore",
    "InMemorySecurityProfileRepository",
    "PostgresSecurityProfileRepository",
    "PsycopgIdentityPostgresGateway",
]
