"""
API key registry: maps submitter API keys to display names
"""

import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class KeyRegistryError(ValueError):
    """Raised when a key registry source cannot be parsed"""


def parse_key_entries(data: Any, source: str) -> Dict[str, str]:
    """
    Normalise registry JSON into a ``{key: user}`` mapping.

    Accepted shapes:
        {"keys": [{"key": "k1", "user": "alice"}, ...]}
        [{"key": "k1", "user": "alice"}, ...]
        {"k1": "alice", ...}
    """
    if isinstance(data, dict) and "keys" in data:
        data = data["keys"]

    mapping: Dict[str, str] = {}
    if isinstance(data, list):
        for index, entry in enumerate(data):
            if not isinstance(entry, dict) or not entry.get("key"):
                raise KeyRegistryError(f"{source}: entry {index} must be an object with a 'key'")
            key = str(entry["key"])
            mapping[key] = str(entry.get("user") or key)
    elif isinstance(data, dict):
        for key, user in data.items():
            if not isinstance(user, str):
                raise KeyRegistryError(f"{source}: user for key entry must be a string")
            mapping[str(key)] = user
    else:
        raise KeyRegistryError(f"{source}: expected a list or object of keys")
    return mapping


class KeyRegistry:
    """
    Static registry loaded from a JSON file and/or inline JSON.

    The file is read at construction. Afterwards it is only re-read by an
    explicit ``reload()`` or, when ``poll_interval`` is positive, by a lookup
    that happens at least ``poll_interval`` seconds after the previous check
    and finds a changed modification time.
    """

    def __init__(
        self,
        file_path: Optional[str] = None,
        inline_json: Optional[str] = None,
        poll_interval: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.file_path = Path(file_path) if file_path else None
        self.inline_json = inline_json
        self.poll_interval = poll_interval
        self._clock = clock
        self._keys: Dict[str, str] = {}
        self._file_mtime: Optional[float] = None
        self._last_check = clock()
        self._keys = self._load()

    @classmethod
    def from_mapping(cls, mapping: Dict[str, str]) -> "KeyRegistry":
        """Build a registry from an in-memory mapping (no file source)"""
        return cls(inline_json=json.dumps(mapping))

    def _read_mtime(self) -> Optional[float]:
        try:
            return os.stat(self.file_path).st_mtime
        except OSError:
            return None

    def _load(self) -> Dict[str, str]:
        """Read every configured source; raises KeyRegistryError on bad JSON"""
        keys: Dict[str, str] = {}

        if self.file_path is not None:
            if self.file_path.exists():
                try:
                    with open(self.file_path, "r", encoding="utf-8") as f:
                        data = json.load(f)
                except json.JSONDecodeError as e:
                    raise KeyRegistryError(f"{self.file_path}: invalid JSON: {e}")
                keys.update(parse_key_entries(data, str(self.file_path)))
                logger.info(f"Loaded {len(keys)} keys from {self.file_path}")
            else:
                logger.warning(f"{self.file_path} not found, submitter names will not be resolved from file")
            self._file_mtime = self._read_mtime()

        if self.inline_json:
            try:
                data = json.loads(self.inline_json)
            except json.JSONDecodeError as e:
                raise KeyRegistryError(f"API_KEYS: invalid JSON: {e}")
            inline = parse_key_entries(data, "API_KEYS")
            keys.update(inline)
            logger.info(f"Loaded {len(inline)} keys from API_KEYS")

        return keys

    def reload(self) -> int:
        """Re-read all sources. On failure the previous mapping is kept and the error re-raised."""
        try:
            keys = self._load()
        except (KeyRegistryError, OSError) as e:
            logger.error(f"Key registry reload failed, keeping {len(self._keys)} keys: {e}")
            raise
        self._keys = keys
        self._last_check = self._clock()
        logger.info(f"Key registry reloaded: {len(keys)} keys")
        return len(keys)

    def _refresh_if_stale(self):
        if self.poll_interval <= 0 or self.file_path is None:
            return
        now = self._clock()
        if now - self._last_check < self.poll_interval:
            return
        self._last_check = now
        if self._read_mtime() == self._file_mtime:
            return
        try:
            self.reload()
        except (KeyRegistryError, OSError):
            # Previous mapping stays active; reload() already logged the error
            pass

    def resolve(self, api_key: str) -> Optional[str]:
        """Return the display name for an API key, or None when unknown"""
        self._refresh_if_stale()
        return self._keys.get(api_key)

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, api_key: str) -> bool:
        return api_key in self._keys
