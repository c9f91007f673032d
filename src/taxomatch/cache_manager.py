"""Download cache for TaxoMatch.

Reference checklists are large and change rarely, so downloads are kept in a
``diskcache.Cache`` rooted at ``config.cache_dir``. Entries are stored next to
a metadata record holding a fingerprint of the call arguments and a
timestamp; an entry is served only while the fingerprint matches and the
entry is younger than the configured maximum age.
"""

import functools
import hashlib
import inspect
import logging
import os
import time
from collections import defaultdict
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from diskcache import Cache

from taxomatch.config import config

logger = logging.getLogger(__name__)

# Module-level singleton so all callers share one diskcache handle per directory.
# A new handle is opened when config.cache_dir changes.
_cache_instance: Optional[Cache] = None
_cache_path: Optional[Path] = None
META_SUFFIX = "::meta"
META_VERSION = 1


def _close_cache() -> None:
    """Close the active diskcache instance."""
    global _cache_instance, _cache_path
    if _cache_instance is not None:
        _cache_instance.close()
        _cache_instance = None
        _cache_path = None


def get_cache() -> Cache:
    """Return a diskcache instance rooted at the current config cache dir."""
    global _cache_instance, _cache_path
    cache_dir = Path(config.cache_dir)
    cache_dir.mkdir(parents=True, exist_ok=True)
    if _cache_instance is None or _cache_path != cache_dir:
        if _cache_instance is not None:
            _cache_instance.close()
        _cache_instance = Cache(directory=str(cache_dir))
        _cache_path = cache_dir
    return _cache_instance


def get_cache_directory() -> Path:
    """Return the current cache directory as a Path."""
    cache_dir = Path(config.cache_dir)
    cache_dir.mkdir(parents=True, exist_ok=True)
    return cache_dir


def compute_fingerprint(arguments: Dict[str, Any]) -> str:
    """Compute a SHA-256 fingerprint of call arguments.

    Args:
        arguments: Mapping of argument names to values

    Returns:
        Hex digest of the sorted argument representation
    """
    return hashlib.sha256(repr(sorted(arguments.items())).encode("utf-8")).hexdigest()


def save_cache(key: str, obj: Any, fingerprint: str,
               metadata: Optional[Dict[str, Any]] = None) -> None:
    """Save an object to the cache.

    Args:
        key: Cache key for the object
        obj: The object to cache
        fingerprint: Fingerprint used to validate the entry on load
        metadata: Additional metadata to store with the entry
    """
    cache = get_cache()
    meta_key = f"{key}{META_SUFFIX}"

    meta = {
        "fingerprint": fingerprint,
        "timestamp": datetime.now().isoformat(),
        "version": META_VERSION,
    }
    if metadata:
        meta.update(metadata)

    try:
        cache.set(key, obj)
        cache.set(meta_key, meta)
        logger.debug(f"Saved object to cache: {key}")
    except Exception as exc:
        logger.error(f"Failed to save to cache: {key}, {exc}")
        cache.delete(key)
        cache.delete(meta_key)


def load_cache(key: str, expected_fingerprint: str,
               max_age: Optional[int] = None) -> Optional[Any]:
    """Load an object from the cache if valid.

    Args:
        key: Cache key for the object
        expected_fingerprint: Fingerprint the entry must have been saved with
        max_age: Maximum age in seconds (defaults to ``config.cache_max_age``;
            None there means no limit)

    Returns:
        The cached object if valid, otherwise None
    """
    cache = get_cache()
    meta = cache.get(f"{key}{META_SUFFIX}", default=None)
    if meta is None:
        logger.debug(f"Cache miss (metadata not found): {key}")
        return None

    if meta.get("fingerprint") != expected_fingerprint:
        logger.debug(f"Cache miss (fingerprint mismatch): {key}")
        return None

    if max_age is None:
        max_age = config.cache_max_age

    if max_age is not None:
        timestamp = datetime.fromisoformat(meta.get("timestamp", "2000-01-01T00:00:00"))
        age = (datetime.now() - timestamp).total_seconds()
        if age > max_age:
            logger.debug(f"Cache miss (expired after {age:.1f}s): {key}")
            return None

    obj = cache.get(key, default=None)
    if obj is None:
        logger.debug(f"Cache miss (value not found): {key}")
        return None
    logger.debug(f"Cache hit: {key}")
    return obj


def clear_cache(pattern: Optional[str] = None) -> int:
    """Clear cache entries whose key contains ``pattern``.

    Args:
        pattern: Substring to match, or None to clear everything

    Returns:
        Number of entries removed
    """
    cache = get_cache()
    if pattern is None:
        count = len(cache)
        cache.clear()
        logger.info(f"Cleared {count} cache entries")
        return count

    keys_to_delete = [key for key in cache if pattern in str(key)]
    for key in keys_to_delete:
        try:
            del cache[key]
        except KeyError:
            continue
    logger.info(f"Cleared {len(keys_to_delete)} cache entries matching '{pattern}'")
    return len(keys_to_delete)


def _classify_cache_key(key: str) -> str:
    """Return the cache object category based on the key prefix."""
    return key.split("_", 1)[0] if "_" in key else "other"


def get_cache_stats() -> Dict[str, Any]:
    """Get statistics about the cache.

    Returns:
        Dictionary with the cache directory, its size on disk and entry
        counts per key prefix
    """
    cache_dir = get_cache_directory()
    stats: Dict[str, Any] = {
        "cache_dir": str(cache_dir),
        "total_size_bytes": 0,
        "db_file_count": 0,
        "entry_count": 0,
        "meta_count": 0,
        "prefix_counts": {},
    }

    for root, _, files in os.walk(cache_dir):
        for file_name in files:
            stats["db_file_count"] += 1
            try:
                stats["total_size_bytes"] += (Path(root) / file_name).stat().st_size
            except OSError:
                continue

    prefix_counts: Dict[str, int] = defaultdict(int)
    for key in get_cache():
        key_str = str(key)
        if key_str.endswith(META_SUFFIX):
            stats["meta_count"] += 1
            continue
        stats["entry_count"] += 1
        prefix_counts[_classify_cache_key(key_str)] += 1
    stats["prefix_counts"] = dict(prefix_counts)

    return stats


def _create_cache_key(
    func: Callable,
    prefix: str,
    args: Tuple,
    kwargs: Dict[str, Any],
    key_args: Optional[List[str]],
) -> Tuple[str, str]:
    """Generate a cache key and fingerprint for a function call.

    Returns:
        Tuple of (cache_key, fingerprint)
    """
    sig = inspect.signature(func)
    bound = sig.bind(*args, **kwargs)
    bound.apply_defaults()
    arg_dict = dict(bound.arguments)

    if key_args:
        arg_dict = {k: v for k, v in arg_dict.items() if k in key_args}

    fingerprint = compute_fingerprint(arg_dict)
    return f"{prefix}_{fingerprint[:16]}", fingerprint


def cached(
    prefix: Optional[str] = None,
    key_args: Optional[List[str]] = None,
    max_age: Optional[int] = None,
):
    """Decorator caching function results keyed on their arguments.

    Pass ``refresh_cache=True`` to the decorated function to bypass the
    cache and overwrite the stored entry.

    Args:
        prefix: Prefix for the cache key (defaults to the function name)
        key_args: Argument names to include in the key (defaults to all)
        max_age: Maximum age of entries in seconds

    Returns:
        Decorated function with caching
    """
    def decorator(func: Callable) -> Callable:
        func_prefix = prefix or func.__name__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            refresh = kwargs.pop("refresh_cache", False)
            cache_key, fingerprint = _create_cache_key(func, func_prefix, args, kwargs, key_args)

            if not refresh:
                cached_result = load_cache(cache_key, fingerprint, max_age=max_age)
                if cached_result is not None:
                    logger.debug(f"Cache hit for {func.__name__}")
                    return cached_result

            start_time = time.time()
            result = func(*args, **kwargs)
            elapsed = time.time() - start_time

            metadata = {"function": func.__name__, "execution_time": elapsed}
            save_cache(cache_key, result, fingerprint, metadata=metadata)
            logger.debug(f"Cached result for {func.__name__} (took {elapsed:.2f}s)")
            return result

        def clear_function_cache() -> int:
            """Clear all cache entries for this function."""
            return clear_cache(func_prefix)

        wrapper.clear_cache = clear_function_cache
        return wrapper

    return decorator
