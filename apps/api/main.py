# apps/api/main.py
from __future__ import annotations

import logging
from typing import Callable, Iterable

from fastapi import Depends, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware

import config
from csrf import router as csrf_router
from db import healthcheck as db_healthcheck
from health import collect_health_status
from models import User
from routes_feed import router as feed_router
from routes_votes import router as votes_router
from session import get_current_user
from storage import bucket_ready

logging.basicConfig(
    level=getattr(logging, config.settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
log = logging.getLogger("api.main")

# (name, task, optional)
StartupCheck = tuple[str, Callable[[], object], bool]

STARTUP_CHECKS: tuple[StartupCheck, ...] = (
    ("feed_tables", db_healthcheck, False),
    ("video_bucket", bucket_ready, True),
)


def run_startup_checks(checks: Iterable[StartupCheck]) -> None:
    for name, check, optional in checks:
        try:
            check()
        except Exception as exc:
            level = logging.INFO if optional else logging.WARNING
            log.log(level, "startup_check_failed name=%s optional=%s error=%s", name, optional, exc)
        else:
            log.debug("startup_check_ok name=%s", name)


app = FastAPI(title="Civic Video Feed API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.settings.cors_origins or ["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(csrf_router)
app.include_router(feed_router)
app.include_router(votes_router)


@app.on_event("startup")
def _startup() -> None:
    run_startup_checks(STARTUP_CHECKS)


@app.get("/healthz")
def healthz(include_optional: bool = Query(True, description="Include the object storage check")):
    return collect_health_status(include_optional=include_optional)


@app.get("/me")
def me(user: User = Depends(get_current_user)):
    return {"id": str(user.id)}


# Run: uvicorn main:app --reload --port 8000
