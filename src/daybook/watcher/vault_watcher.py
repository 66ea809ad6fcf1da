"""
Vault file system watcher, polling-based.

Docker volume mounts from Windows do not forward filesystem events (inotify)
into the container, so changes are found by periodic mtime polling.

The watcher runs a daemon thread that:
1. Lists the vault's markdown files every ``poll_interval`` seconds
2. Compares their mtimes against the previous cycle
3. Hands new and modified files to the dispatcher
"""

import logging
import threading
from typing import Dict, Optional

from daybook.store.vault_store import VaultStore
from daybook.watcher.dispatcher import EventDispatcher

log = logging.getLogger(__name__)


class VaultWatcher:
    """
    Polling-based vault watcher.

    Usage:
        watcher = VaultWatcher(store, dispatcher, poll_interval=5.0)
        watcher.start()
        ...
        watcher.stop()
    """

    def __init__(
        self,
        store: VaultStore,
        dispatcher: EventDispatcher,
        poll_interval: float = 5.0,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._poll_interval = poll_interval
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._known_files: Dict[str, float] = {}

    def start(self) -> None:
        """Start the polling thread (daemon)."""
        log.info("Starting vault watcher (polling every %.1fs)", self._poll_interval)
        self._known_files = self._snapshot()
        self._thread = threading.Thread(
            target=self._poll_loop, daemon=True, name="vault-watcher"
        )
        self._thread.start()

    def stop(self) -> None:
        log.info("Stopping vault watcher")
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=self._poll_interval + 2)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _poll_loop(self) -> None:
        while not self._stop_event.is_set():
            self._stop_event.wait(self._poll_interval)
            if self._stop_event.is_set():
                break
            try:
                self.check_for_changes()
            except Exception:
                log.exception("Error during poll cycle")

    def check_for_changes(self) -> int:
        """Single poll cycle. Returns the number of changed files reported."""
        current = self._snapshot()
        reported = 0
        for path, mtime in current.items():
            old_mtime = self._known_files.get(path)
            if old_mtime is None or mtime > old_mtime:
                log.debug("Changed: %s", path)
                self._dispatcher.handle_modified(path)
                reported += 1
        self._known_files = current
        return reported

    def _snapshot(self) -> Dict[str, float]:
        snapshot: Dict[str, float] = {}
        try:
            for path in self._store.list_files():
                mtime = self._store.mtime(path)
                if mtime is not None:
                    snapshot[path] = mtime
        except OSError:
            log.exception("Error walking vault")
        return snapshot
