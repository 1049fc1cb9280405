from .gateway import IdentityPostgresGateway, PsycopgIdentityPostgresGateway
from .security_profile_repository import PostgresSecurityProfileRepository

__all__ = [
    "IdentityPostgresGateway",
    "PostgresSecurityProfileRepository",
    "PsycopgIdentityPostgresGateway",
]
