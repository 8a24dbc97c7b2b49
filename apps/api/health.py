# apps/api/health.py
from __future__ import annotations

import logging
from typing import Any, Callable, Dict

from cache import healthcheck as cache_healthcheck
from config import settings
from db import healthcheck as db_healthcheck
from storage import bucket_ready

log = logging.getLogger("health")


def _run_check(name: str, check: Callable[[], Any]) -> Dict[str, Any]:
    try:
        result = check()
        if result is False:
            raise RuntimeError(f"{name} check returned falsy response")
        return {"ok": True}
    except Exception as e:
        log.warning("%s health check failed: %s", name, e)
        return {"ok": False, "error": str(e)}


def check_database() -> Dict[str, Any]:
    """Database connection plus feed tables."""
    return _run_check("database", db_healthcheck)


def check_cache() -> Dict[str, Any]:
    """Redis, which holds sessions."""
    return _run_check("cache", cache_healthcheck)


def check_object_storage(skip_if_disabled: bool = False) -> Dict[str, Any]:
    bucket = settings.s3_bucket
    if not bucket:
        return {"ok": True, "skipped": True, "reason": "S3 bucket not configured"}
    if skip_if_disabled:
        return {"ok": True, "skipped": True, "reason": "optional check skipped"}
    status = _run_check("object_storage", lambda: bucket_ready(bucket))
    if not status["ok"]:
        return {"ok": True, "error": status["error"], "optional": True}
    return {"ok": True, "bucket": bucket}


def collect_health_status(include_optional: bool = True) -> Dict[str, Any]:
    """
    Run all health checks and return overall status.

    Required services: database, cache
    Optional services: object_storage

    Returns overall "ok": True only if all required services are healthy.
    """
    database = check_database()
    cache = check_cache()
    storage = check_object_storage(skip_if_disabled=not include_optional)

    overall_ok = all([
        database.get("ok", False),
        cache.get("ok", False),
    ])

    return {
        "ok": overall_ok,
        "checks": {
            "database": database,
            "cache": cache,
            "object_storage": storage,
        },
    }
