"""
JSON-file store used when no remote backend is configured.

Each resource is a single JSON array on disk. Reads never raise; writes
report success as a boolean so callers can detect read-only filesystems
(serverless deployments) without crashing.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

MESSAGES_FILE = "messages.json"
PHOTOS_FILE = "photos.json"


class LocalFileStore:
    """Reads and writes one JSON array per resource under ``data_dir``."""

    def __init__(self, data_dir: str | Path):
        self.data_dir = Path(data_dir)

    def get_messages(self) -> list[dict]:
        return self._read(MESSAGES_FILE)

    def save_messages(self, records: list[dict]) -> bool:
        return self._write(MESSAGES_FILE, records)

    def get_photos(self) -> list[dict]:
        return self._read(PHOTOS_FILE)

    def save_photos(self, records: list[dict]) -> bool:
        return self._write(PHOTOS_FILE, records)

    def _read(self, filename: str) -> list[dict]:
        path = self.data_dir / filename
        if not path.exists():
            return []
        try:
            with path.open("r", encoding="utf-8") as f:
                records = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Could not read %s: %s", path, e)
            return []
        if not isinstance(records, list):
            logger.warning("Ignoring %s: expected a JSON array", path)
            return []
        return records

    def _write(self, filename: str, records: list[dict]) -> bool:
        """
        Replace ``filename`` atomically: the array is written to a temporary
        file in ``data_dir`` which is then renamed over the target.
        """
        path = self.data_dir / filename
        tmp_path = None
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.data_dir,
                prefix=f".{filename}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_path = f.name
                json.dump(records, f, indent=2, ensure_ascii=False)
                f.write("\n")
            os.replace(tmp_path, path)
        except OSError as e:
            logger.warning("Could not write %s: %s", path, e)
            if tmp_path is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_path)
            return False
        return True
