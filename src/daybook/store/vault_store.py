"""
Filesystem-backed document store.

Documents are addressed by vault-relative POSIX paths ("00 - Daily/2025-01-10.md"),
the same form that task notes record in their ``sourceFile`` field.

Every write made through the store is remembered as (path, mtime) so the
watcher can tell the system's own edits apart from the user's and skip them.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Dict, Iterator, List, Optional, Set

log = logging.getLogger(__name__)


class VaultStore:
    """
    Thread-safe read/write access to the markdown files of one vault.

    Usage:
        store = VaultStore(vault_root, exclude_dirs)
        text = store.read("00 - Daily/2025-01-10.md")
        store.write("00 - Daily/2025-01-10.md", text)
    """

    def __init__(self, vault_root: Path, exclude_dirs: Optional[Set[str]] = None) -> None:
        self._root = Path(vault_root)
        self._exclude_dirs: Set[str] = set(exclude_dirs or ())
        self._lock = threading.RLock()
        self._own_writes: Dict[str, float] = {}
        self._writes = 0
        self._started = datetime.now()

    @property
    def root(self) -> Path:
        return self._root

    # ------------------------------------------------------------------
    # Path handling
    # ------------------------------------------------------------------

    def resolve(self, path: str) -> Path:
        """Absolute filesystem path for a vault-relative path."""
        rel = PurePosixPath(path.replace("\\", "/").lstrip("/"))
        if ".." in rel.parts:
            raise ValueError(f"Path escapes the vault: {path}")
        return self._root.joinpath(*rel.parts)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Hold the store lock across a read-modify-write of one or more documents."""
        with self._lock:
            yield

    def relative(self, path: Path) -> str:
        return path.relative_to(self._root).as_posix()

    def is_excluded(self, path: str) -> bool:
        return any(part in self._exclude_dirs for part in PurePosixPath(path).parts[:-1])

    # ------------------------------------------------------------------
    # Document operations
    # ------------------------------------------------------------------

    def exists(self, path: str) -> bool:
        return self.resolve(path).is_file()

    def read(self, path: str) -> str:
        """Read a document. Raises FileNotFoundError if it does not exist."""
        return self.resolve(path).read_text(encoding="utf-8")

    def write(self, path: str, text: str) -> None:
        """Overwrite a document, creating its folder if needed."""
        target = self.resolve(path)
        with self._lock:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")
            self._own_writes[path] = target.stat().st_mtime
            self._writes += 1
        log.debug("Wrote %s", path)

    def create(self, path: str, text: str) -> str:
        """Create a new document. Raises FileExistsError if it already exists."""
        if self.exists(path):
            raise FileExistsError(f"Document already exists: {path}")
        self.write(path, text)
        log.info("Created %s", path)
        return path

    def create_folder(self, path: str) -> None:
        self.resolve(path).mkdir(parents=True, exist_ok=True)

    def list_files(self, folder: str = "") -> List[str]:
        """Sorted vault-relative paths of the markdown files under ``folder``."""
        base = self.resolve(folder) if folder else self._root
        if not base.is_dir():
            return []
        paths = []
        for p in base.rglob("*.md"):
            rel = self.relative(p)
            if not self.is_excluded(rel):
                paths.append(rel)
        return sorted(paths)

    def mtime(self, path: str) -> Optional[float]:
        try:
            return self.resolve(path).stat().st_mtime
        except OSError:
            return None

    # ------------------------------------------------------------------
    # Own-write tracking
    # ------------------------------------------------------------------

    def is_own_write(self, path: str, mtime: float) -> bool:
        """
        True if the file at ``path`` still has the mtime of our last write.

        A match is consumed, so a later user edit with a new mtime is seen.
        """
        with self._lock:
            recorded = self._own_writes.get(path)
            if recorded is not None and recorded == mtime:
                del self._own_writes[path]
                return True
            return False

    def status(self) -> dict:
        with self._lock:
            return {
                "vault_root": str(self._root),
                "exclude_dirs": sorted(self._exclude_dirs),
                "writes": self._writes,
                "pending_own_writes": len(self._own_writes),
                "started": self._started.isoformat(),
            }
