from .dispatcher import EventDispatcher
from .vault_watcher import VaultWatcher

__all__ = ["EventDispatcher", "VaultWatcher"]
