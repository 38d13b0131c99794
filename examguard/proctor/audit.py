"""
Audit Sink - Durable append-only log of session and violation events

Entries are written to one JSON file per category per day:

    <directory>/<category>_<YYYY-MM-DD>.json

Each file holds a JSON array. Appending re-reads the whole array, adds
the entry and rewrites the file. Persistence problems are logged and
never reach the caller.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .clock import Clock, SystemClock, format_timestamp
from .errors import AuditWriteError

logger = logging.getLogger(__name__)


class AuditSink:
    """Interface for audit persistence"""
    
    def append(self, category: str, data: Dict[str, Any]):
        raise NotImplementedError


class NullAuditSink(AuditSink):
    """Discards all entries (audit disabled)"""
    
    def append(self, category: str, data: Dict[str, Any]):
        return None


class JsonFileAuditSink(AuditSink):
    """Audit sink backed by daily JSON array files"""
    
    def __init__(self, directory: Union[str, Path], clock: Optional[Clock] = None):
        self.directory = Path(directory)
        self.clock = clock or SystemClock()
        self._lock = threading.Lock()
    
    def path_for(self, category: str) -> Path:
        day = self.clock.now().strftime("%Y-%m-%d")
        return self.directory / f"{category}_{day}.json"
    
    def append(self, category: str, data: Dict[str, Any]):
        """
        Append an entry; the entry's timestamp defaults to now.
        
        Never raises. Failures are logged.
        """
        entry = {"timestamp": format_timestamp(self.clock.now())}
        entry.update(data)
        
        try:
            with self._lock:
                self._write(self.path_for(category), entry)
        except AuditWriteError as e:
            logger.error(f"Audit write failed for {category}: {e}")
    
    def _read(self, path: Path) -> List[Any]:
        if not path.exists():
            return []
        try:
            entries = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Unreadable audit file {path}, starting a new log: {e}")
            return []
        if not isinstance(entries, list):
            logger.warning(f"Audit file {path} is not a JSON array, starting a new log")
            return []
        return entries
    
    def _write(self, path: Path, entry: Dict[str, Any]):
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            entries = self._read(path)
            entries.append(entry)
            path.write_text(json.dumps(entries, indent=2, default=str), encoding="utf-8")
        except (OSError, TypeError, ValueError) as e:
            raise AuditWriteError(str(e)) from e
