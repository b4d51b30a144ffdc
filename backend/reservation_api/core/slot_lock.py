"""
Per-slot mutual exclusion for admission and settlement.

Every read-then-write on a (court, timeslot, date) slot runs while holding
``slot_lock`` for that slot. With ``REDIS_URL`` configured the lock is a
Redis lock shared by all workers; otherwise it is a process-local lock.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date
import logging
import threading
from typing import Any, Dict, Iterator, List, Optional

from redis import Redis
from redis.exceptions import LockError, RedisError

from ..monitoring.prometheus_metrics import prometheus_metrics
from .config import settings
from .exceptions import SlotBusyException

logger = logging.getLogger(__name__)

_SYNC_REDIS: Optional[Redis] = None
_SYNC_REDIS_URL: Optional[str] = None
_SYNC_REDIS_LOCK = threading.Lock()


def slot_lock_key(court_id: str, timeslot_id: str, slot_date: date) -> str:
    return f"slot:{court_id}:{timeslot_id}:{slot_date.isoformat()}:mutex"


class _KeyedLocks:
    """Process-local lock per key; entries are dropped once nobody holds or waits on them."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: Dict[str, List[Any]] = {}

    def acquire(self, key: str, timeout: float) -> bool:
        with self._guard:
            entry = self._entries.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        acquired = entry[0].acquire(timeout=timeout)
        if not acquired:
            self._drop_reference(key)
        return acquired

    def release(self, key: str) -> None:
        with self._guard:
            entry = self._entries[key]
            entry[0].release()
        self._drop_reference(key)

    def _drop_reference(self, key: str) -> None:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                return
            entry[1] -= 1
            if entry[1] <= 0:
                del self._entries[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)


_LOCAL_LOCKS = _KeyedLocks()


def _get_sync_redis() -> Optional[Redis]:
    global _SYNC_REDIS, _SYNC_REDIS_URL
    url = settings.redis_url
    if not url:
        return None
    if _SYNC_REDIS is not None and _SYNC_REDIS_URL == url:
        return _SYNC_REDIS
    with _SYNC_REDIS_LOCK:
        if _SYNC_REDIS is not None and _SYNC_REDIS_URL == url:
            return _SYNC_REDIS
        try:
            client = Redis.from_url(url, encoding="utf-8", decode_responses=True)
            client.ping()
        except RedisError as exc:
            logger.warning("slot_lock_redis_unavailable: %s", exc)
            return None
        _SYNC_REDIS = client
        _SYNC_REDIS_URL = url
        return _SYNC_REDIS


@contextmanager
def _local_slot_lock(key: str, wait_s: float) -> Iterator[str]:
    if not _LOCAL_LOCKS.acquire(key, wait_s):
        prometheus_metrics.record_slot_lock("acquire", "timeout")
        logger.warning("slot_lock_timeout", extra={"slot": key, "backend": "local"})
        raise SlotBusyException(key)
    prometheus_metrics.record_slot_lock("acquire", "success")
    try:
        yield key
    finally:
        _LOCAL_LOCKS.release(key)
        prometheus_metrics.record_slot_lock("release", "success")


@contextmanager
def slot_lock(
    court_id: str,
    timeslot_id: str,
    slot_date: date,
    *,
    wait_s: Optional[float] = None,
    ttl_s: Optional[int] = None,
) -> Iterator[str]:
    """
    Hold the lock for one slot for the duration of the block.

    Raises:
        SlotBusyException: If the lock is not acquired within ``wait_s`` seconds
    """
    key = slot_lock_key(court_id, timeslot_id, slot_date)
    wait = settings.slot_lock_wait_seconds if wait_s is None else wait_s
    ttl = settings.slot_lock_ttl_seconds if ttl_s is None else ttl_s

    client = _get_sync_redis()
    if client is None:
        with _local_slot_lock(key, wait) as held:
            yield held
        return

    lock = client.lock(key, timeout=ttl, blocking_timeout=wait)
    try:
        acquired = lock.acquire(blocking=True)
    except RedisError as exc:
        prometheus_metrics.record_slot_lock("acquire", "redis_error")
        logger.warning(
            "slot_lock_redis_acquire_failed",
            extra={"slot": key, "error": str(exc), "error_type": type(exc).__name__},
        )
        with _local_slot_lock(key, wait) as held:
            yield held
        return

    if not acquired:
        prometheus_metrics.record_slot_lock("acquire", "timeout")
        logger.warning("slot_lock_timeout", extra={"slot": key, "backend": "redis"})
        raise SlotBusyException(key)

    prometheus_metrics.record_slot_lock("acquire", "success")
    try:
        yield key
    finally:
        try:
            lock.release()
            prometheus_metrics.record_slot_lock("release", "success")
        except LockError as exc:
            # TTL elapsed before release; another holder may already own the key.
            prometheus_metrics.record_slot_lock("release", "expired")
            logger.warning(
                "slot_lock_release_failed",
                extra={"slot": key, "error": str(exc), "error_type": type(exc).__name__},
            )


def reset_slot_lock_state() -> None:
    """Forget the cached Redis client and any idle local locks."""
    global _SYNC_REDIS, _SYNC_REDIS_URL, _LOCAL_LOCKS
    with _SYNC_REDIS_LOCK:
        _SYNC_REDIS = None
        _SYNC_REDIS_URL = None
    _LOCAL_LOCKS = _KeyedLocks()
