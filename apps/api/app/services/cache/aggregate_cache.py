from __future__ import annotations

import hashlib
import json
import logging
import re
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

from redis import Redis

from app.core.config import get_settings

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
_UNSAFE_KEY_CHARS = re.compile(r"[^a-z0-9]")
_DELETE_BATCH_SIZE = 500


@lru_cache(maxsize=1)
def _cache_client() -> Redis | None:
    settings = get_settings()
    if not settings.aggregate_cache_enabled:
        return None
    try:
        return Redis.from_url(settings.redis_url, decode_responses=True)
    except Exception:
        logger.exception("aggregate_cache_client_init_failed")
        return None


def _clean_param(value: object) -> str:
    text = str(value)
    # Email lists and other identifying values never appear in keys verbatim.
    if "@" in text or "," in text:
        return "h-" + hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]
    return _UNSAFE_KEY_CHARS.sub("-", text.lower())


def cache_key(prefix: str, kind: str, *params: object) -> str:
    cleaned = [_clean_param(param) for param in params if param is not None and param != ""]
    return ":".join([prefix, kind, *cleaned])


def enquiries_view_key(*params: object) -> str:
    return cache_key(get_settings().aggregate_cache_prefix, "enquiries", *params)


def enquiries_view_patterns() -> list[str]:
    return [f"{get_settings().aggregate_cache_prefix}:enquiries:*"]


def mask_key_for_logging(key: str) -> str:
    if ":h-" in key:
        return key
    return _EMAIL_RE.sub("***@***", key)


def get_cached(key: str) -> Any | None:
    client = _cache_client()
    if client is None:
        return None
    try:
        raw = client.get(key)
    except Exception:
        logger.exception("aggregate_cache_read_failed", extra={"key": mask_key_for_logging(key)})
        return None
    if not raw:
        return None
    try:
        envelope = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("aggregate_cache_payload_invalid", extra={"key": mask_key_for_logging(key)})
        return None
    if not isinstance(envelope, dict) or "data" not in envelope:
        return None
    return envelope["data"]


def set_cached(key: str, data: Any, ttl_seconds: int | None = None) -> bool:
    client = _cache_client()
    if client is None:
        return False
    ttl = ttl_seconds or get_settings().aggregate_cache_ttl_seconds
    envelope = {
        "data": data,
        "cached_at": datetime.now(timezone.utc).isoformat(),
        "ttl": ttl,
    }
    try:
        client.setex(key, ttl, json.dumps(envelope, ensure_ascii=True, separators=(",", ":")))
    except Exception:
        logger.exception("aggregate_cache_write_failed", extra={"key": mask_key_for_logging(key)})
        return False
    return True


def invalidate(patterns: list[str]) -> int:
    """Delete every cached key matching any wildcard pattern; never raises."""
    client = _cache_client()
    if client is None:
        return 0

    deleted = 0
    for pattern in patterns:
        try:
            batch: list[str] = []
            for key in client.scan_iter(match=pattern, count=_DELETE_BATCH_SIZE):
                batch.append(key)
                if len(batch) >= _DELETE_BATCH_SIZE:
                    deleted += int(client.delete(*batch) or 0)
                    batch = []
            if batch:
                deleted += int(client.delete(*batch) or 0)
        except Exception:
            logger.exception("aggregate_cache_invalidate_failed", extra={"pattern": pattern})
            continue
    logger.info("aggregate_cache_invalidated", extra={"patterns": patterns, "deleted": deleted})
    return deleted
