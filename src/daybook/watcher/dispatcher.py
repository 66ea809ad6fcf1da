"""
Event dispatch for vault modifications.

The watcher reports every changed markdown file; the dispatcher decides what
to do with it:

1. Drops the change if the file still has the mtime of daybook's own last
   write (the store keeps that in-flight record per path)
2. Debounces task-note changes per path, so a burst of saves syncs once
3. Queues the path for the worker thread, which runs one handler at a time
"""

import logging
import queue
import threading
from typing import Dict, Optional

from daybook.config import Settings, should_process_file
from daybook.notes.status_sync import StatusSynchronizer
from daybook.notes.task_notes import TaskNoteManager
from daybook.store.vault_store import VaultStore
from daybook.transforms.editing import process_content

log = logging.getLogger(__name__)


class EventDispatcher:
    """
    Serializes handling of vault modifications.

    Usage:
        dispatcher = EventDispatcher(store, settings, notes, statuses)
        dispatcher.start_worker()
        dispatcher.handle_modified("00 - Daily/2025-01-10.md")
        ...
        dispatcher.stop()
    """

    def __init__(
        self,
        store: VaultStore,
        settings: Settings,
        notes: TaskNoteManager,
        statuses: StatusSynchronizer,
    ) -> None:
        self._store = store
        self._settings = settings
        self._notes = notes
        self._statuses = statuses
        self._timers: Dict[str, threading.Timer] = {}
        self._timers_lock = threading.Lock()
        self._update_queue: "queue.Queue[Optional[str]]" = queue.Queue()
        self._worker_thread: Optional[threading.Thread] = None
        self._handled = 0

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    def start_worker(self) -> None:
        self._worker_thread = threading.Thread(
            target=self._worker_loop, daemon=True, name="daybook-dispatcher"
        )
        self._worker_thread.start()

    def stop(self) -> None:
        """Cancel pending debounce timers and stop the worker thread."""
        with self._timers_lock:
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()
        self._update_queue.put(None)
        if self._worker_thread:
            self._worker_thread.join(timeout=5)

    def _worker_loop(self) -> None:
        while True:
            path = self._update_queue.get()
            if path is None:
                break
            try:
                self.process(path)
            except Exception:
                log.exception("Failed to handle change to %s", path)

    def pending(self) -> int:
        return self._update_queue.qsize()

    # ------------------------------------------------------------------
    # Intake
    # ------------------------------------------------------------------

    def handle_modified(self, path: str) -> bool:
        """
        Accept a modification notice. Returns True if the path was queued
        or a debounce timer was (re)started for it.
        """
        mtime = self._store.mtime(path)
        if mtime is None:
            return False
        if self._store.is_own_write(path, mtime):
            log.debug("Skipping own write to %s", path)
            return False

        if self._notes.is_task_note(path):
            self._debounce(path)
            return True
        if should_process_file(path, self._settings):
            self._update_queue.put(path)
            return True
        return False

    def _debounce(self, path: str) -> None:
        with self._timers_lock:
            existing = self._timers.pop(path, None)
            if existing:
                existing.cancel()
            timer = threading.Timer(
                self._settings.sync_debounce_seconds, self._fire, args=(path,)
            )
            timer.daemon = True
            self._timers[path] = timer
            timer.start()

    def _fire(self, path: str) -> None:
        with self._timers_lock:
            self._timers.pop(path, None)
        self._update_queue.put(path)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def process(self, path: str) -> bool:
        """Run the handler for one path to completion. Returns True if anything was written."""
        with self._store.transaction():
            self._handled += 1
            if self._notes.is_task_note(path):
                return self.process_task_note(path)
            return self.process_file(path)

    def process_file(self, path: str) -> bool:
        """Whole-file pipeline for a daily note, then status push to task notes."""
        if not self._store.exists(path):
            return False
        content = self._store.read(path)
        updated = process_content(content, self._settings)
        changed = updated != content
        if changed:
            self._store.write(path, updated)
            log.info("Processed %s", path)
        if self._settings.enable_task_status_sync:
            changed = self._statuses.sync_all_statuses_to_task_notes(path) > 0 or changed
        return changed

    def process_task_note(self, path: str) -> bool:
        """Carry a task note's status and checklist back to its source."""
        if not self._store.exists(path):
            return False
        changed = self._statuses.sync_status_to_source(path) is not None
        if self._settings.enable_task_notes:
            changed = self._notes.sync_subtasks_to_source(path) or changed
        return changed

    def status(self) -> dict:
        with self._timers_lock:
            debouncing = len(self._timers)
        return {
            "queued": self._update_queue.qsize(),
            "debouncing": debouncing,
            "handled": self._handled,
        }
