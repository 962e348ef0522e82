"""Transactional sink for raw and normalized batches."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from alembic import command
from alembic.config import Config
from alembic.util import CommandError
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from etl_pipeline.core.db import create_session_factory
from etl_pipeline.core.errors import PersistenceError
from etl_pipeline.core.logging import get_logger
from etl_pipeline.models.processed import ProcessedData
from etl_pipeline.models.raw import RawData
from etl_pipeline.schemas.normalized import NormalizedRecord

log = get_logger("storage.database")

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"

HEALTH_CHECK_TIMEOUT_SECONDS = 2.0


def run_migrations(engine: Engine) -> None:
    """Upgrade the store to the latest revision. Safe to repeat."""
    alembic_cfg = Config()
    alembic_cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    with engine.begin() as connection:
        alembic_cfg.attributes["connection"] = connection
        log.info("Running Alembic migrations to head")
        command.upgrade(alembic_cfg, "head")
    log.info("Alembic migrations applied")


class PersistenceSink:
    """Writes batches to the relational store, one transaction per batch.

    Construction checks connectivity and brings the schema up to date; no
    write is accepted before that has succeeded.
    """

    def __init__(self, engine: Engine, auto_migrate: bool = True):
        self.engine = engine
        self._session_factory = create_session_factory(engine)
        self._ping_task: Optional[asyncio.Future] = None
        self._ping_timeout = HEALTH_CHECK_TIMEOUT_SECONDS

        try:
            self._ping()
            if auto_migrate:
                run_migrations(engine)
        except (SQLAlchemyError, CommandError) as exc:
            raise PersistenceError(f"failed to initialize store: {exc}") from exc

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------
    def persist_raw(self, records: Iterable[Mapping[str, Any]]) -> int:
        """Store each raw record verbatim as JSON. All or nothing."""
        return self._write_batch("raw", (RawData(data=dict(record)) for record in records))

    def persist_normalized(self, records: Iterable[NormalizedRecord]) -> int:
        """Store the typed fields of each normalized record. All or nothing."""
        return self._write_batch(
            "processed",
            (ProcessedData(user_id=rec.user_id, title=rec.title, body=rec.body) for rec in records),
        )

    def _write_batch(self, kind: str, rows: Iterable[Any]) -> int:
        written = 0
        try:
            with self._session_factory.begin() as session:
                for row in rows:
                    session.add(row)
                    # surface a bad record at its own position
                    session.flush()
                    written += 1
        except (SQLAlchemyError, TypeError, ValueError) as exc:
            log.error(f"Rolled back {kind} batch after {written} records: {exc}")
            raise PersistenceError(f"failed to insert {kind} record #{written}: {exc}") from exc

        log.debug(f"Committed {kind} batch of {written} records")
        return written

    # -------------------------------------------------------------------------
    # Health
    # -------------------------------------------------------------------------
    def _ping(self) -> None:
        with self.engine.connect() as connection:
            if connection.dialect.name == "postgresql":
                # scoped to this transaction, so the pooled connection keeps its default
                timeout_ms = int(self._ping_timeout * 1000)
                connection.execute(text(f"SET LOCAL statement_timeout = {timeout_ms}"))
            connection.execute(text("SELECT 1"))

    async def health_check(self, timeout: float = HEALTH_CHECK_TIMEOUT_SECONDS) -> bool:
        """True if the store answers ``SELECT 1`` within ``timeout`` seconds.

        At most one ping thread runs at a time. While an earlier ping is still
        blocked on an unresponsive store, later checks report unhealthy at once.
        """
        if self._ping_task is not None and not self._ping_task.done():
            log.error("Health check failed: previous database ping has not returned")
            return False

        self._ping_timeout = timeout
        self._ping_task = asyncio.ensure_future(asyncio.to_thread(self._ping))
        # an abandoned ping may still fail later; nobody awaits it then
        self._ping_task.add_done_callback(lambda task: task.cancelled() or task.exception())
        try:
            await asyncio.wait_for(asyncio.shield(self._ping_task), timeout=timeout)
        except asyncio.TimeoutError:
            log.error(f"Health check failed: database did not answer within {timeout}s")
            return False
        except SQLAlchemyError as exc:
            log.error(f"Health check failed: database unhealthy: {exc}")
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()
