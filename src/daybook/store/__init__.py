from .vault_store import VaultStore

__all__ = ["VaultStore"]
