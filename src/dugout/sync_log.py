"""
Structured audit log for pipeline runs.

Each run gets a sync_run_id; every event is appended to the sync_log table
and mirrored to stdlib logging. Writes use their own short-lived session so
they never join (or break) the caller's transaction, and a failed write is
only reported through stdlib logging: the audit trail must never abort the
pipeline.
"""

import logging
import time
import uuid
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from dugout.db.models import SyncLogEntry

logger = logging.getLogger(__name__)

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class SyncLogger:
    """Append-only run logger backed by the sync_log table."""

    def __init__(
        self,
        session_factory: Optional[sessionmaker],
        job: str,
        sync_run_id: Optional[str] = None,
    ):
        self.session_factory = session_factory
        self.job = job
        self.sync_run_id = sync_run_id or str(uuid.uuid4())
        self._started = time.monotonic()
        self.write_failures = 0

    def log(self, level: str, message: str, details: Optional[dict[str, Any]] = None) -> None:
        logger.log(_LEVELS.get(level, logging.INFO), "[%s] %s", self.job, message)
        if self.session_factory is None:
            return

        payload = {"job": self.job, **(details or {})}
        session = self.session_factory()
        try:
            session.add(SyncLogEntry(
                sync_run_id=self.sync_run_id,
                level=level,
                message=message,
                details=payload,
            ))
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            self.write_failures += 1
            logger.warning("Could not write sync log entry (%s): %s", message, exc)
        finally:
            session.close()

    # -------------------------------------------------------------------------
    # Event helpers
    # -------------------------------------------------------------------------

    def log_sync_start(self, **counts: Any) -> None:
        self.log("info", f"{self.job} started", counts)

    def log_match_start(self, match_id: int, external_id: str, name: Optional[str] = None) -> None:
        self.log("info", f"Processing match {match_id}", {
            "match_id": match_id,
            "external_id": external_id,
            "match_name": name,
        })

    def log_api_call(
        self,
        provider: str,
        resource: str,
        success: bool,
        status_code: Optional[int] = None,
    ) -> None:
        self.log("info" if success else "error", f"API call {provider}:{resource}", {
            "provider": provider,
            "resource": resource,
            "success": success,
            "status_code": status_code,
        })

    def log_no_scorecard(self, match_id: int) -> None:
        self.log("warn", f"No scorecard data for match {match_id}", {"match_id": match_id})

    def log_player_processing(
        self,
        match_id: int,
        external_id: str,
        discipline: str,
        success: bool,
        error: Optional[str] = None,
    ) -> None:
        self.log("info" if success else "error", f"{discipline} row for player {external_id}", {
            "match_id": match_id,
            "player_external_id": external_id,
            "discipline": discipline,
            "success": success,
            "error": error,
        })

    def log_error(self, context: str, error: BaseException, **details: Any) -> None:
        self.log("error", f"Error in {context}: {error}", {
            "context": context,
            "error_type": type(error).__name__,
            **details,
        })

    def log_sync_complete(self, stats: dict[str, Any]) -> None:
        duration = round(time.monotonic() - self._started, 3)
        self.log("info", f"{self.job} complete", {"duration_s": duration, **stats})
