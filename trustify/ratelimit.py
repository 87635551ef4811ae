# trustify/ratelimit.py

from __future__ import annotations

import logging
from typing import Tuple

import redis
from fastapi import Request

from trustify import config

logger = logging.getLogger("trustify")

_client: redis.Redis | None = None


def _redis_client() -> redis.Redis:
    global _client
    if not config.REDIS_URL:
        raise RuntimeError("REDIS_URL is not set.")
    if _client is None:
        _client = redis.Redis.from_url(config.REDIS_URL, decode_responses=True)
    return _client


def get_client_ip(request: Request) -> str:
    xfwd = request.headers.get("x-forwarded-for")
    if xfwd:
        return xfwd.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


def check_guest_scan_limit(request: Request) -> Tuple[bool, int]:
    """
    Redis-backed per-IP daily scan cap for guests.
    Returns (allowed, remaining). Without Redis every scan is allowed.
    """
    limit = config.GUEST_DAILY_SCANS
    try:
        r = _redis_client()
        key = f"guest:scan:{get_client_ip(request)}"
        used = r.incr(key)
        if used == 1:
            r.expire(key, 86_400)
    except (RuntimeError, redis.RedisError) as exc:
        if config.REDIS_URL:
            logger.warning("guest limit unavailable: %s", exc)
        return True, limit
    if used > limit:
        return False, 0
    return True, max(limit - used, 0)
