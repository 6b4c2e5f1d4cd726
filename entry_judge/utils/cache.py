"""Key-value storage for resolved provider symbols.

Entries never expire: a code resolves to the same provider symbol every
time, so a stale entry is still a correct one.
"""

import hashlib
import json
import threading
from pathlib import Path

from entry_judge.config import Paths


class MemoryBackend:
    """In-process dict backend."""

    def __init__(self):
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value


class FileBackend:
    """One JSON file per key, named by the md5 of the key."""

    def __init__(self, cache_dir: Path | None = None):
        self.cache_dir = Path(cache_dir or Paths.SYMBOL_CACHE)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def _key_path(self, key: str) -> Path:
        hashed = hashlib.md5(key.encode()).hexdigest()
        return self.cache_dir / f"{hashed}.json"

    def get(self, key: str) -> str | None:
        path = self._key_path(key)
        if not path.exists():
            return None
        with open(path) as f:
            return json.load(f).get("value")

    def set(self, key: str, value: str) -> None:
        # Write-then-rename
        path = self._key_path(key)
        tmp = path.with_suffix(f".{threading.get_ident()}.tmp")
        with open(tmp, "w") as f:
            json.dump({"key": key, "value": value}, f)
        tmp.replace(path)


class SymbolCache:
    """Namespaced view over a backend, one namespace per provider."""

    def __init__(self, backend=None, namespace: str = "default"):
        self.backend = backend if backend is not None else MemoryBackend()
        self.namespace = namespace

    def _key(self, code: str) -> str:
        return f"{self.namespace}:{code}"

    def get(self, code: str) -> str | None:
        return self.backend.get(self._key(code))

    def set(self, code: str, symbol: str) -> None:
        self.backend.set(self._key(code), symbol)

    def scoped(self, namespace: str) -> "SymbolCache":
        """Return a cache sharing this backend under another namespace."""
        return SymbolCache(self.backend, namespace)
