"""
Runtime settings for daybook.

Defaults mirror the behaviour users expect from the daily-notes workflow:
tasks live in date-named notes under the first target folder, satellite task
notes live in their own folder, and every automatic feature can be toggled
from the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Set


class ConfigError(RuntimeError):
    """Raised when required configuration is missing or invalid."""


DEFAULT_STATUS_MAPPINGS: Dict[str, str] = {
    " ": "incomplete",
    "x": "complete",
    "X": "complete",
    "/": "in-progress",
    "-": "cancelled",
    ">": "scheduled",
}


@dataclass
class Settings:
    vault_root: Optional[Path] = None
    target_folders: List[str] = field(default_factory=lambda: ["00 - Daily/"])

    # Task IDs
    enable_task_ids: bool = True
    id_prefix: str = "t-"
    id_length: int = 8

    # Parent-child linking
    enable_parent_child_linking: bool = True

    # Whole-file processing
    enable_auto_sort: bool = False
    enable_auto_archive: bool = False

    # Satellite notes
    enable_task_notes: bool = True
    task_notes_folder: str = "Task Notes"
    enable_event_notes: bool = True
    event_notes_folder: str = "Event Notes"

    # Status sync
    enable_task_status_sync: bool = True
    status_mappings: Dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_STATUS_MAPPINGS)
    )

    # Event dispatch
    sync_debounce_seconds: float = 0.5
    poll_interval: float = 5.0
    exclude_dirs: Set[str] = field(
        default_factory=lambda: {".git", ".obsidian", "node_modules", ".trash"}
    )

    # REST API
    api_enabled: bool = True
    api_port: int = 9400

    @property
    def daily_folder(self) -> str:
        """Folder holding the YYYY-MM-DD.md notes, without trailing slash."""
        folder = self.target_folders[0] if self.target_folders else "00 - Daily/"
        return folder.rstrip("/")


def should_process_file(path: str, settings: Settings) -> bool:
    """True for markdown files inside one of the target folders."""
    if not path.endswith(".md"):
        return False
    return any(folder in path for folder in settings.target_folders)


# ---------------------------------------------------------------------------
# Environment loading
# ---------------------------------------------------------------------------

def _read_bool(raw_value: Optional[str], *, default: bool, key: str) -> bool:
    if raw_value is None:
        return default
    normalized = raw_value.strip().lower()
    if not normalized:
        return default
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ConfigError(f"{key} must be a boolean value.")


def _read_number(raw_value: Optional[str], *, default, key: str, cast=float):
    if raw_value is None or not raw_value.strip():
        return default
    try:
        value = cast(raw_value.strip())
    except ValueError:
        raise ConfigError(f"{key} must be a number.") from None
    if value < 0:
        raise ConfigError(f"{key} must not be negative.")
    return value


def _parse_list(raw: str) -> List[str]:
    """Parse a comma-separated list, dropping blanks."""
    return [part.strip() for part in raw.split(",") if part.strip()]


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    *,
    require_vault: bool = False,
) -> Settings:
    """Build Settings from environment variables, falling back to defaults."""
    env = os.environ if environ is None else environ
    settings = Settings()

    vault_raw = env.get("VAULT_ROOT", "").strip()
    if vault_raw:
        settings.vault_root = Path(vault_raw)
    elif require_vault:
        raise ConfigError("VAULT_ROOT is required; set it to the vault root path.")

    folders_raw = env.get("TARGET_FOLDERS")
    if folders_raw:
        folders = _parse_list(folders_raw)
        if folders:
            settings.target_folders = [
                f if f.endswith("/") else f + "/" for f in folders
            ]

    settings.task_notes_folder = env.get("TASK_NOTES_FOLDER", settings.task_notes_folder)
    settings.event_notes_folder = env.get("EVENT_NOTES_FOLDER", settings.event_notes_folder)
    settings.id_prefix = env.get("ID_PREFIX", settings.id_prefix)
    settings.id_length = _read_number(
        env.get("ID_LENGTH"), default=settings.id_length, key="ID_LENGTH", cast=int
    )
    if settings.id_length == 0:
        raise ConfigError("ID_LENGTH must be at least 1.")

    for key, attr in (
        ("ENABLE_TASK_IDS", "enable_task_ids"),
        ("ENABLE_PARENT_CHILD_LINKING", "enable_parent_child_linking"),
        ("ENABLE_AUTO_SORT", "enable_auto_sort"),
        ("ENABLE_AUTO_ARCHIVE", "enable_auto_archive"),
        ("ENABLE_TASK_NOTES", "enable_task_notes"),
        ("ENABLE_EVENT_NOTES", "enable_event_notes"),
        ("ENABLE_TASK_STATUS_SYNC", "enable_task_status_sync"),
        ("API_ENABLED", "api_enabled"),
    ):
        setattr(
            settings,
            attr,
            _read_bool(env.get(key), default=getattr(settings, attr), key=key),
        )

    settings.poll_interval = _read_number(
        env.get("POLL_INTERVAL"), default=settings.poll_interval, key="POLL_INTERVAL"
    )
    settings.sync_debounce_seconds = _read_number(
        env.get("SYNC_DEBOUNCE"),
        default=settings.sync_debounce_seconds,
        key="SYNC_DEBOUNCE",
    )
    settings.api_port = _read_number(
        env.get("API_PORT"), default=settings.api_port, key="API_PORT", cast=int
    )

    exclude_raw = env.get("EXCLUDE_DIRS")
    if exclude_raw is not None:
        settings.exclude_dirs = set(_parse_list(exclude_raw))

    return settings
