"""Device-resident cart snapshots, one per user."""
import json
import os
from pathlib import Path
from typing import Dict, List, Optional, Protocol
from urllib.parse import quote

from portal.config import LOCAL_CART_DIR
from portal.db import RedisKeys
from portal.logging import get_logger, sanitize_id_for_logging
from .models import CartLineItem, snapshot_from_dicts, snapshot_to_dicts

logger = get_logger(__name__)


def cart_storage_key(user_id) -> str:
    """Per-user key, shared with the remote store: ``cart:{user_id}``."""
    return RedisKeys.cart_key(user_id)


class LocalCartStorage(Protocol):
    def read(self, key: str) -> Optional[List[CartLineItem]]: ...

    def write(self, key: str, items: List[CartLineItem]) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryLocalStorage:
    """Dict-backed storage. Keeps serialized copies, like a browser would."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def read(self, key: str) -> Optional[List[CartLineItem]]:
        raw = self._data.get(key)
        if raw is None:
            return None
        return snapshot_from_dicts(json.loads(raw), source=key)

    def write(self, key: str, items: List[CartLineItem]) -> None:
        self._data[key] = json.dumps(snapshot_to_dicts(items))

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data)


class FileLocalStorage:
    """One JSON file per key under ``directory``."""

    def __init__(self, directory: Optional[str] = None):
        self.directory = Path(directory or LOCAL_CART_DIR)

    def _path(self, key: str) -> Path:
        # Percent-encoding keeps distinct keys in distinct files
        return self.directory / f"{quote(key, safe='')}.json"

    def read(self, key: str) -> Optional[List[CartLineItem]]:
        path = self._path(key)
        if not path.exists():
            return None

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            # Corrupted data - clear it and start empty
            logger.warning(f"Corrupted local cart {sanitize_id_for_logging(key)}: {e}")
            self.delete(key)
            return None

        return snapshot_from_dicts(data, source=key)

    def write(self, key: str, items: List[CartLineItem]) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(snapshot_to_dicts(items)), encoding="utf-8")
        os.replace(tmp_path, path)

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)
