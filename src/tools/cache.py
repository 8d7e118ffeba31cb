import abc
import hashlib
import json
import logging
import os
import re
import tempfile
import threading
import time
import typing as typ
from pathlib import Path

import dill
import pydantic

from core.errors import CacheUnavailableError

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


class CacheEntry(pydantic.BaseModel):
    """A serialized cache value and its expiry timestamp."""

    key: str
    value: str
    expires_at: float

    model_config = pydantic.ConfigDict(frozen=True)

    def expired(self, now: float) -> bool:
        return now >= self.expires_at


def _normalize(part: typ.Any) -> typ.Any:
    if isinstance(part, str):
        return _WHITESPACE.sub(" ", part).strip().lower()
    if isinstance(part, pydantic.BaseModel):
        return _normalize(part.model_dump(mode="json"))
    if isinstance(part, dict):
        return {str(k): _normalize(v) for k, v in part.items()}
    if isinstance(part, (list, tuple)):
        return [_normalize(v) for v in part]
    return part


def fingerprint(*parts: typ.Any) -> str:
    """Stable content hash of normalized `parts`."""
    payload = json.dumps([_normalize(p) for p in parts], sort_keys=True, default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class Cache(abc.ABC):
    """Keyed cache with per-entry TTL. Values must be JSON-serializable."""

    def __init__(self, clock: typ.Callable[[], float] = time.time):
        self.clock = clock

    @abc.abstractmethod
    def get(self, key: str) -> typ.Any | None:
        """Return the cached value or None on a miss or expiry."""

    @abc.abstractmethod
    def set(self, key: str, value: typ.Any, ttl_seconds: float) -> None:
        """Store `value` under `key` for `ttl_seconds`."""

    def _entry(self, key: str, value: typ.Any, ttl_seconds: float) -> CacheEntry:
        return CacheEntry(key=key, value=json.dumps(value), expires_at=self.clock() + ttl_seconds)


class NullCache(Cache):
    """Never stores anything."""

    def get(self, key: str) -> typ.Any | None:
        return None

    def set(self, key: str, value: typ.Any, ttl_seconds: float) -> None:
        return None


class InMemoryCache(Cache):
    """Process-local cache; last writer wins."""

    def __init__(self, clock: typ.Callable[[], float] = time.time):
        super().__init__(clock)
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> typ.Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expired(self.clock()):
                del self._entries[key]
                return None
        return json.loads(entry.value)

    def set(self, key: str, value: typ.Any, ttl_seconds: float) -> None:
        entry = self._entry(key, value, ttl_seconds)
        with self._lock:
            self._entries[key] = entry


class DiskCache(Cache):
    """One dill file per entry under `cache_dir`."""

    def __init__(self, cache_dir: Path | str, clock: typ.Callable[[], float] = time.time):
        super().__init__(clock)
        self.cache_dir = Path(cache_dir).expanduser()
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CacheUnavailableError(f"Cannot create cache dir {self.cache_dir}: {exc}") from exc

    def _path(self, key: str) -> Path:
        return self.cache_dir / f"{key}.pkl"

    def get(self, key: str) -> typ.Any | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with open(path, "rb") as f:
                entry: CacheEntry = dill.load(f)
        except Exception as exc:
            # any load failure leaves the entry unusable
            logger.warning("Dropping unreadable cache entry %s: %s", key[:12], exc)
            path.unlink(missing_ok=True)
            return None
        if not isinstance(entry, CacheEntry):
            logger.warning("Dropping foreign cache entry %s", key[:12])
            path.unlink(missing_ok=True)
            return None
        if entry.expired(self.clock()):
            path.unlink(missing_ok=True)
            return None
        return json.loads(entry.value)

    def set(self, key: str, value: typ.Any, ttl_seconds: float) -> None:
        entry = self._entry(key, value, ttl_seconds)
        fd, tmp_name = tempfile.mkstemp(dir=self.cache_dir, suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                dill.dump(entry, f)
            os.replace(tmp_name, self._path(key))
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def cache_get(cache: Cache | None, key: str) -> typ.Any | None:
    """Read from `cache`, treating backend failures as a miss."""
    if cache is None:
        return None
    try:
        return cache.get(key)
    except (CacheUnavailableError, OSError, ValueError) as exc:
        logger.warning("Cache read failed for %s, treating as miss: %s", key[:12], exc)
        return None


M = typ.TypeVar("M", bound=pydantic.BaseModel)


def cache_get_model(cache: Cache | None, key: str, model: type[M]) -> M | None:
    """Read and validate a cached `model`; values that no longer fit the schema are misses."""
    cached = cache_get(cache, key)
    if cached is None:
        return None
    try:
        return model.model_validate(cached)
    except pydantic.ValidationError as exc:
        logger.warning(
            "Ignoring stale %s cache entry %s: %d error(s)", model.__name__, key[:12], exc.error_count()
        )
        return None


def cache_set(cache: Cache | None, key: str, value: typ.Any, ttl_seconds: float) -> None:
    """Write to `cache`, ignoring backend failures."""
    if cache is None:
        return
    try:
        cache.set(key, value, ttl_seconds)
    except (CacheUnavailableError, OSError) as exc:
        logger.warning("Cache write failed for %s, continuing without cache: %s", key[:12], exc)
