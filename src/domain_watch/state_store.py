"""
State Store module for the snapshot and history documents.

Reads are forgiving: a missing, unreadable or malformed document is
returned as an empty but valid document so the dashboard never sees an
error state. Writes are all-or-nothing: content goes to a temporary file
next to the target and is moved into place with ``os.replace``. A failed
write raises PersistenceError.
"""

import json
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from .enums import LogLevel
from .exceptions import PersistenceError
from .models import HistoryLog, ScanSnapshot
from .scan_logger import ScanLogger


class StateStore:
    """
    Durable storage for the current scan snapshot and the history log.

    The snapshot is replaced wholesale on every save; the history is
    read-modify-written as a whole document by its single writer, the
    HistoryReconciler.
    """

    COMPONENT = "StateStore"

    def __init__(
        self,
        snapshot_path: Path,
        history_path: Path,
        logger: Optional[ScanLogger] = None,
    ) -> None:
        """
        Initialize the state store.

        Args:
            snapshot_path: Path to the snapshot document (JSON)
            history_path: Path to the history document (JSON)
            logger: Optional scan logger
        """
        self._snapshot_path = Path(snapshot_path)
        self._history_path = Path(history_path)
        self._logger = logger

    @property
    def snapshot_path(self) -> Path:
        return self._snapshot_path

    @property
    def history_path(self) -> Path:
        return self._history_path

    def load_snapshot(self, now: Optional[datetime] = None) -> ScanSnapshot:
        """Load the last snapshot, or an empty one stamped ``now``."""
        raw = self._read_json(self._snapshot_path)
        if raw is None:
            return ScanSnapshot.empty(now)
        try:
            return ScanSnapshot.from_dict(raw)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            self._log(
                LogLevel.WARN,
                f"Malformed snapshot document, using empty snapshot: {e}",
                {"file_path": str(self._snapshot_path)},
            )
            return ScanSnapshot.empty(now)

    def load_history(self) -> HistoryLog:
        """Load the history log, or an empty one if absent or malformed."""
        raw = self._read_json(self._history_path)
        if raw is None:
            return HistoryLog.empty()
        try:
            return HistoryLog.from_dict(raw)
        except ValueError as e:
            self._log(
                LogLevel.WARN,
                f"Malformed history document, starting a new history: {e}",
                {"file_path": str(self._history_path)},
            )
            return HistoryLog.empty()

    def save_snapshot(self, snapshot: ScanSnapshot) -> None:
        """
        Replace the snapshot document.

        Raises:
            PersistenceError: If the file cannot be written
        """
        self._write_json(self._snapshot_path, snapshot.to_dict())

    def save_history(self, history: HistoryLog) -> None:
        """
        Replace the history document.

        Raises:
            PersistenceError: If the file cannot be written
        """
        self._write_json(self._history_path, history.to_dict())

    def _read_json(self, path: Path) -> Optional[Any]:
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            self._log(
                LogLevel.WARN,
                f"Could not read {path.name}: {e}",
                {"file_path": str(path)},
            )
            return None

    def _write_json(self, path: Path, data: dict) -> None:
        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.write("\n")
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceError(
                code="io_error",
                message=f"Failed to write {path}: {e}",
                details={"file_path": str(path)},
            ) from e

        self._log(
            LogLevel.DEBUG,
            f"Wrote {path}",
            {"file_path": str(path)},
        )

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, self.COMPONENT, message, data)
