"""
Trilogy Save Editor - Save Service
====================================
File I/O around the codec, run as background units of work.

Each load/save handles one fully buffered document; documents share no
mutable state, so several slots can be processed at once. Before the
first overwrite of a path, a timestamped copy is taken:

    <save file>.backup_YYYYmmdd_HHMMSS
"""

import logging
import os
import shutil
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime

from . import load, save
from .config import BACKUP_TIMESTAMP_FORMAT, DEFAULT_MAX_DEPTH, SERVICE_MAX_WORKERS
from .document import SaveDocument, Title

logger = logging.getLogger(__name__)


class SaveService:
    """Loads and saves documents on a worker pool.

    Usable as a context manager; leaving the block waits for pending work.
    """

    def __init__(self, max_workers: int = SERVICE_MAX_WORKERS, *,
                 max_depth: int = DEFAULT_MAX_DEPTH):
        self.max_depth = max_depth
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix='trilogy-save'
        )
        self._backed_up: set[str] = set()
        self._lock = threading.Lock()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    # ========================================================================
    # SYNCHRONOUS FILE I/O
    # ========================================================================

    def load_file(self, path: str, title: Title | str | None = None, *,
                  strict: bool = False) -> SaveDocument:
        """Read and decode a save file."""
        if not os.path.exists(path):
            raise FileNotFoundError(f'Save file not found: {path}')
        with open(path, 'rb') as f:
            data = f.read()
        doc = load(data, title, strict=strict, max_depth=self.max_depth)
        logger.info(f'Loaded {path} ({len(data):,} bytes, {doc.title.value} '
                    f'v{doc.header["version"]})')
        for warning in doc.warnings:
            logger.warning(f'{path}: {warning}')
        return doc

    def _ensure_backup(self, path: str) -> str | None:
        """Copy `path` aside once per service; returns the backup path if one was made."""
        key = os.path.abspath(path)
        with self._lock:
            if key in self._backed_up or not os.path.exists(path):
                return None
            self._backed_up.add(key)
        timestamp = datetime.now().strftime(BACKUP_TIMESTAMP_FORMAT)
        backup_path = f'{path}.backup_{timestamp}'
        shutil.copy2(path, backup_path)
        logger.info(f'Backup created: {backup_path}')
        return backup_path

    def save_file(self, doc: SaveDocument, path: str, backup: bool = True) -> str | None:
        """Encode `doc` and write it to `path`.

        The document is fully encoded before the file is touched, and the
        bytes go to `<path>.tmp` first, which then replaces `path`. Returns
        the path of the backup taken, if any.
        """
        data = save(doc, max_depth=self.max_depth)
        backup_path = self._ensure_backup(path) if backup else None
        tmp_path = f'{path}.tmp'
        try:
            with open(tmp_path, 'wb') as f:
                f.write(data)
            os.replace(tmp_path, path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        logger.info(f'Saved {path} ({len(data):,} bytes)')
        return backup_path

    # ========================================================================
    # BACKGROUND WORK
    # ========================================================================

    def submit_load(self, path: str, title: Title | str | None = None, *,
                    strict: bool = False) -> Future:
        return self._executor.submit(self.load_file, path, title, strict=strict)

    def submit_save(self, doc: SaveDocument, path: str, backup: bool = True) -> Future:
        return self._executor.submit(self.save_file, doc, path, backup)
