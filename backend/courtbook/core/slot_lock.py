"""
Redis advisory locks for slot occupancy and ledger accounts.

These locks only shed contention early; correctness rests on the database
(unique slot holds and locked ledger rows). When Redis is not configured or
unreachable every acquire succeeds.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date
import logging
import threading
import time
from typing import Iterable, Iterator, List, Optional

from redis import Redis

from ..monitoring.prometheus_metrics import prometheus_metrics
from .config import settings

logger = logging.getLogger(__name__)

_SYNC_REDIS: Optional[Redis] = None
_SYNC_REDIS_LOCK = threading.Lock()


def _slot_key(booking_date: date, court_id: str) -> str:
    return f"slot:{booking_date.isoformat()}:{court_id}:mutex"


def _ledger_key(user_id: str, kind: str) -> str:
    return f"ledger:{user_id}:{kind}:mutex"


def _namespaced_key(key: str) -> str:
    return f"{settings.lock_namespace}:lock:{key}"


def _get_sync_redis() -> Optional[Redis]:
    global _SYNC_REDIS
    if not settings.redis_url:
        return None
    if _SYNC_REDIS is not None:
        return _SYNC_REDIS
    with _SYNC_REDIS_LOCK:
        if _SYNC_REDIS is not None:
            return _SYNC_REDIS
        try:
            client = Redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            client.ping()
        except Exception as exc:
            logger.warning("slot_lock_redis_unavailable: %s", exc)
            return None
        _SYNC_REDIS = client
        return _SYNC_REDIS


def _acquire(scope: str, key: str, ttl_s: int) -> bool:
    client = _get_sync_redis()
    if client is None:
        prometheus_metrics.record_lock(scope, "acquire", "redis_unavailable")
        return True
    try:
        acquired = bool(client.set(_namespaced_key(key), str(time.time()), nx=True, ex=ttl_s))
    except Exception as exc:
        prometheus_metrics.record_lock(scope, "acquire", "error")
        logger.warning(
            "slot_lock_acquire_failed",
            extra={"key": key, "error": str(exc), "error_type": type(exc).__name__},
        )
        return True
    prometheus_metrics.record_lock(scope, "acquire", "success" if acquired else "blocked")
    return acquired


def _release(scope: str, key: str) -> None:
    client = _get_sync_redis()
    if client is None:
        return
    try:
        deleted = client.delete(_namespaced_key(key))
        prometheus_metrics.record_lock(scope, "release", "success" if deleted else "not_found")
    except Exception as exc:
        prometheus_metrics.record_lock(scope, "release", "error")
        logger.warning(
            "slot_lock_release_failed",
            extra={"key": key, "error": str(exc), "error_type": type(exc).__name__},
        )


@contextmanager
def slot_lock(
    booking_date: date, court_ids: Iterable[str], ttl_s: Optional[int] = None
) -> Iterator[bool]:
    """
    Hold advisory locks on every (date, court) pair, acquired in sorted order.

    Yields False if any pair is held by another request; nothing stays locked
    in that case.
    """
    ttl = ttl_s or settings.lock_ttl_seconds
    keys = [_slot_key(booking_date, court) for court in sorted(set(court_ids))]
    held: List[str] = []
    try:
        for key in keys:
            if not _acquire("slot", key, ttl):
                break
            held.append(key)
        yield len(held) == len(keys)
    finally:
        for key in reversed(held):
            _release("slot", key)


@contextmanager
def ledger_lock(user_id: str, kind: str, ttl_s: Optional[int] = None) -> Iterator[bool]:
    key = _ledger_key(user_id, kind)
    acquired = _acquire("ledger", key, ttl_s or settings.lock_ttl_seconds)
    try:
        yield acquired
    finally:
        if acquired:
            _release("ledger", key)
