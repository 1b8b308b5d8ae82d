"""
Photo Storage - writes captures to the photo directory and keeps a media index
"""

import json
import logging
import time
from datetime import datetime
from pathlib import Path
from threading import RLock
from typing import Any, Dict, List, Union

from core.constants import ImageConstants, StorageConstants

logger = logging.getLogger(__name__)


class MediaIndex:
    """JSON catalogue of saved photos, rescanned on every save"""

    def __init__(self, path: Path):
        self.path = path
        self.lock = RLock()

    def _load(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        try:
            entries = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Media index {self.path} unreadable, rebuilding: {e}")
            return []
        if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
            logger.warning(f"Media index {self.path} is not a list of entries, rebuilding")
            return []
        return entries

    def scan(self, file_path: Path, mime_type: str = ImageConstants.JPEG_MIME_TYPE) -> Dict[str, Any]:
        """Register (or refresh) a file in the index"""
        with self.lock:
            entries = [e for e in self._load() if e.get("path") != str(file_path)]
            entry = {
                "path": str(file_path),
                "mime_type": mime_type,
                "bytes": file_path.stat().st_size,
                "saved_at": datetime.now().isoformat(),
            }
            entries.append(entry)
            self.path.write_text(json.dumps(entries, indent=2), encoding="utf-8")

        logger.debug(f"Media index updated with {file_path}")
        return entry

    def entries(self) -> List[Dict[str, Any]]:
        with self.lock:
            return self._load()


class PhotoStorage:
    """Persists encoded captures as <prefix><epoch-millis>.jpg"""

    def __init__(
        self,
        directory: Union[str, Path],
        prefix: str = StorageConstants.DEFAULT_FILENAME_PREFIX,
    ):
        self.directory = Path(directory).expanduser()
        self.prefix = prefix
        self.index = MediaIndex(self.directory / StorageConstants.MEDIA_INDEX_FILENAME)
        self.lock = RLock()

    def _next_path(self) -> Path:
        stem = f"{self.prefix}{int(time.time() * 1000)}"
        path = self.directory / f"{stem}{ImageConstants.JPEG_EXTENSION}"
        n = 1
        while path.exists():
            path = self.directory / f"{stem}_{n}{ImageConstants.JPEG_EXTENSION}"
            n += 1
        return path

    def save(self, data: bytes) -> Path:
        """
        Write photo bytes and index the new file.

        Raises:
            OSError: If the file cannot be written
        """
        with self.lock:
            self.directory.mkdir(parents=True, exist_ok=True)
            path = self._next_path()
            path.write_bytes(data)

        self.index.scan(path)
        logger.info(f"Photo saved locally: {path.resolve()}")
        return path.resolve()

    def list_recent(self, limit: int = 10) -> List[Dict[str, Any]]:
        entries = self.index.entries()
        entries.sort(key=lambda e: e.get("saved_at", ""), reverse=True)
        return entries[:limit]
