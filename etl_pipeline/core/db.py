"""Engine and session factory for the relational store."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from etl_pipeline.core.config import settings


def canonical_json(value: Any) -> str:
    """Stable JSON text: sorted keys, no insignificant whitespace."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def create_db_engine(url: Optional[str] = None) -> Engine:
    """Build the pooled engine shared by the pipeline and the health checks.

    JSON columns are written through ``canonical_json`` so raw payloads are
    stored in one stable text form.
    """
    url = url or settings.DATABASE_URL
    kwargs: Dict[str, Any] = {
        "json_serializer": canonical_json,
        "pool_pre_ping": True,
    }

    if url.startswith("sqlite"):
        # Cycles write from worker threads
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_recycle=settings.DB_POOL_RECYCLE_SECONDS,
            connect_args={"connect_timeout": settings.DB_CONNECT_TIMEOUT_SECONDS},
        )

    return create_engine(url, **kwargs)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
