from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional, Tuple

from roster import HistoryEntry

logger = logging.getLogger(__name__)

_MISSING = object()


class JsonStore:
    """
    Small key/value store kept in one JSON document.

    Read lazily and re-read whenever the file changes on disk, so another
    process writing the same document is picked up. A missing or unreadable
    file behaves as an empty store; write failures are logged and the
    in-memory copy stays authoritative.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self.generation = 0
        self._cache: Optional[Dict[str, Any]] = None
        self._signature: Optional[Tuple[int, int, int]] = None

    def _stat(self) -> Optional[Tuple[int, int, int]]:
        try:
            st = os.stat(self.path)
        except OSError:
            return None
        return (st.st_mtime_ns, st.st_size, st.st_ino)

    def _load(self) -> Dict[str, Any]:
        signature = self._stat()
        if self._cache is not None:
            if signature == self._signature:
                return self._cache
            logger.info("Storage file %s changed on disk, reloading", self.path)
            self.generation += 1

        self._signature = signature
        if signature is None:
            self._cache = {}
            return self._cache

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Error reading storage file %s: %s", self.path, exc)
            data = {}

        if not isinstance(data, dict):
            logger.warning("Ignoring non-object storage file %s", self.path)
            data = {}
        self._cache = data
        return self._cache

    def _save(self) -> None:
        try:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(self._cache or {}, f, indent=2)
        except OSError as exc:
            logger.error("Error writing storage file %s: %s", self.path, exc)
            return
        self._signature = self._stat()

    def sync(self) -> int:
        """Pick up changes made on disk; returns the current generation."""
        self._load()
        return self.generation

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._load()[key] = value
        self._save()

    def delete(self, key: str) -> None:
        if self._load().pop(key, _MISSING) is not _MISSING:
            self._save()


# ---------- history ----------


def history_key(prefix: str, player_id: str) -> str:
    return f"{prefix}{player_id}"


def load_history(store: JsonStore, key: str) -> List[HistoryEntry]:
    raw = store.get(key, [])
    if not isinstance(raw, list):
        logger.warning("History under %s is not a list, starting empty", key)
        return []

    entries = []
    for item in raw:
        try:
            entries.append(HistoryEntry.from_dict(item))
        except (KeyError, TypeError, ValueError):
            logger.warning("Dropping malformed history entry under %s: %r", key, item)
    return entries


def save_history(store: JsonStore, key: str, entries) -> None:
    store.set(key, [entry.to_dict() for entry in entries])
