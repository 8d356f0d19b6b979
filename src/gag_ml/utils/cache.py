"""
Content-addressed caching of expensive pipeline artifacts.

The reference model fit, the variable-selection search and the projection are
each cached under a key that hashes everything their result depends on:

- the modelled data (feature matrix in feature order, and the outcome),
- the stage's configuration section,
- the run seed,
- the key of the upstream stage whose artifact the stage consumes.

Changing any input therefore changes the key; a stale artifact can never be
returned for a different dataset, feature set or configuration.

Backends implement the two-method :class:`CacheBackend` protocol. The disk
backend stores joblib bundles; the memory backend is used in tests and for
interactive sessions.
"""

import hashlib
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Any, Protocol, TypeVar, runtime_checkable

import numpy as np
import pandas as pd
from pydantic import BaseModel

from gag_ml.utils.serialization import library_versions, load_joblib, save_joblib

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DIGEST_LEN = 20


@dataclass(frozen=True)
class CacheKey:
    """Immutable key for cache lookups."""

    stage: str  # 'reference', 'selection', 'projection'
    digest: str  # sha256 prefix over all inputs of the stage

    @property
    def filename(self) -> str:
        return f"{self.stage}_{self.digest}.joblib"

    def __str__(self) -> str:
        return f"{self.stage}:{self.digest}"


def hash_array(arr: np.ndarray) -> str:
    """Stable hash of a numpy array (dtype, shape and bytes)."""
    arr = np.ascontiguousarray(arr)
    h = hashlib.sha256()
    h.update(str(arr.dtype).encode())
    h.update(str(arr.shape).encode())
    h.update(arr.tobytes())
    return h.hexdigest()[:_DIGEST_LEN]


def hash_data(df: pd.DataFrame, features: list[str], y: np.ndarray) -> str:
    """
    Hash the modelled data: feature names, feature matrix and outcome.

    Feature order is significant (coefficients are aligned to it), so columns
    are hashed in the order given rather than sorted.
    """
    h = hashlib.sha256()
    h.update("|".join(features).encode())
    h.update(hash_array(df[features].to_numpy(dtype=float)).encode())
    h.update(hash_array(np.asarray(y, dtype=np.int64)).encode())
    return h.hexdigest()[:_DIGEST_LEN]


def hash_config(section: BaseModel | dict[str, Any]) -> str:
    """Hash a configuration section via its canonical JSON representation."""
    if isinstance(section, BaseModel):
        payload = section.model_dump(mode="json")
    else:
        payload = section
    blob = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(blob.encode()).hexdigest()[:_DIGEST_LEN]


def make_cache_key(
    stage: str,
    *,
    data_hash: str,
    config_section: BaseModel | dict[str, Any],
    seed: int,
    upstream: CacheKey | None = None,
    extra: dict[str, Any] | None = None,
) -> CacheKey:
    """
    Build the cache key for a pipeline stage.

    Args:
        stage: Stage name
        data_hash: Hash from :func:`hash_data`
        config_section: Configuration the stage reads
        seed: Run seed
        upstream: Key of the artifact this stage consumes (if any)
        extra: Additional stage inputs (e.g. an explicit submodel size)

    Returns:
        CacheKey
    """
    parts = [
        stage,
        data_hash,
        hash_config(config_section),
        str(int(seed)),
        str(upstream) if upstream is not None else "-",
        json.dumps(extra or {}, sort_keys=True, default=str),
    ]
    digest = hashlib.sha256("||".join(parts).encode()).hexdigest()[:_DIGEST_LEN]
    return CacheKey(stage=stage, digest=digest)


@runtime_checkable
class CacheBackend(Protocol):
    """Minimal interface for artifact caches."""

    def get(self, key: CacheKey) -> Any | None:
        """Return the cached artifact, or None when absent."""
        ...

    def put(self, key: CacheKey, artifact: Any) -> None:
        """Store an artifact under ``key``."""
        ...


class _StatsMixin:
    def _init_stats(self):
        self._lock = Lock()
        self._hits = 0
        self._misses = 0

    def _record(self, hit: bool):
        with self._lock:
            if hit:
                self._hits += 1
            else:
                self._misses += 1

    def stats(self) -> dict[str, float]:
        """Return cache statistics."""
        with self._lock:
            return {
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": self._hits / max(1, self._hits + self._misses),
            }


class MemoryCache(_StatsMixin):
    """Thread-safe in-process cache."""

    def __init__(self):
        self._init_stats()
        self._store: dict[CacheKey, Any] = {}

    def get(self, key: CacheKey) -> Any | None:
        with self._lock:
            artifact = self._store.get(key)
        self._record(artifact is not None)
        return artifact

    def put(self, key: CacheKey, artifact: Any) -> None:
        with self._lock:
            self._store[key] = artifact

    def __len__(self) -> int:
        return len(self._store)

    def clear(self) -> None:
        """Clear all cached entries (useful for testing)."""
        with self._lock:
            self._store.clear()
            self._hits = 0
            self._misses = 0


class DiskCache(_StatsMixin):
    """
    Joblib-backed cache storing one file per key under ``root``.

    Files are bundles ``{"artifact", "stage", "key", "versions"}`` so that
    :func:`load_joblib` can warn when the numerical stack changed since the
    artifact was written.
    """

    def __init__(self, root: str | Path, compress: int = 3):
        self._init_stats()
        self.root = Path(root)
        self.compress = compress

    def path_for(self, key: CacheKey) -> Path:
        return self.root / key.filename

    def get(self, key: CacheKey) -> Any | None:
        path = self.path_for(key)
        if not path.exists():
            self._record(False)
            return None
        bundle = load_joblib(path)
        if not isinstance(bundle, dict) or bundle.get("key") != key.digest:
            logger.warning(f"[cache] Ignoring malformed cache file: {path}")
            self._record(False)
            return None
        self._record(True)
        return bundle["artifact"]

    def put(self, key: CacheKey, artifact: Any) -> None:
        bundle = {
            "artifact": artifact,
            "stage": key.stage,
            "key": key.digest,
            "versions": library_versions(),
        }
        save_joblib(bundle, self.path_for(key), compress=self.compress)
        logger.debug(f"[cache] STORED {key} -> {self.path_for(key)}")


class NullCache:
    """Cache that never stores anything (``cache.enabled = false``)."""

    def get(self, key: CacheKey) -> Any | None:
        return None

    def put(self, key: CacheKey, artifact: Any) -> None:
        return None


def cached_stage(cache: CacheBackend, key: CacheKey, compute: Callable[[], T]) -> T:
    """
    Return the cached artifact for ``key`` or compute and store it.

    Args:
        cache: Cache backend
        key: Stage key
        compute: Zero-argument callable producing the artifact

    Returns:
        The artifact (from cache or freshly computed)
    """
    artifact = cache.get(key)
    if artifact is not None:
        logger.info(f"[cache] HIT {key}; skipping {key.stage} computation")
        return artifact

    logger.info(f"[cache] MISS {key}; computing {key.stage}")
    artifact = compute()
    cache.put(key, artifact)
    return artifact


def build_cache(enabled: bool = True, backend: str = "disk", root: str | Path = ".gag_cache"):
    """Cache backend for the ``cache`` configuration section."""
    if not enabled:
        return NullCache()
    if backend == "memory":
        return MemoryCache()
    if backend == "disk":
        return DiskCache(root)
    raise ValueError(f"Unknown cache backend: {backend}")
