"""Wiring of the shared components every surface (REST, MCP, CLI) works against."""

from dataclasses import dataclass
from typing import Optional

from daybook.config import ConfigError, Settings
from daybook.notes.event_notes import EventNoteManager
from daybook.notes.status_sync import StatusSynchronizer
from daybook.notes.task_notes import TaskNoteManager
from daybook.scheduler.scheduler import TaskScheduler
from daybook.store.vault_store import VaultStore
from daybook.watcher.dispatcher import EventDispatcher


@dataclass
class DaybookContext:
    settings: Settings
    store: VaultStore
    notes: TaskNoteManager
    events: EventNoteManager
    statuses: StatusSynchronizer
    scheduler: TaskScheduler
    dispatcher: EventDispatcher


def build_context(settings: Settings, store: Optional[VaultStore] = None) -> DaybookContext:
    if store is None:
        if settings.vault_root is None:
            raise ConfigError("VAULT_ROOT is required; set it to the vault root path.")
        store = VaultStore(settings.vault_root, settings.exclude_dirs)
    notes = TaskNoteManager(store, settings)
    statuses = StatusSynchronizer(store, settings, notes)
    return DaybookContext(
        settings=settings,
        store=store,
        notes=notes,
        events=EventNoteManager(store, settings),
        statuses=statuses,
        scheduler=TaskScheduler(store, settings, notes),
        dispatcher=EventDispatcher(store, settings, notes, statuses),
    )
