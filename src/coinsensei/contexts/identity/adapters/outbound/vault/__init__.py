from .encrypted_file_secret_vault import EncryptedFileSecretVault
from .in_memory_secret_vault import InMemorySecretVault

__all__ = [
    "EncryptedFileSecretVault",
    "InMemorySecretVault",
]
