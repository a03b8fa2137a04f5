"""
Cleanup Scheduler Service

Sweeps staged files orphaned by an interrupted request (e.g. a crash
between staging and deletion). Uses APScheduler for the interval job.
"""

import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Collection, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "sweep_stale_files"


async def sweep_stale_files(
    staging_dir: str | Path,
    ttl_minutes: int,
    exclude: Collection[str] = (),
) -> dict:
    """
    Delete staged files older than the TTL.

    Only regular files directly inside the staging directory are considered.
    Files still owned by a request (queued for a slot or being forwarded)
    are passed in ``exclude`` and kept whatever their age.

    Args:
        staging_dir: Staging directory to scan
        ttl_minutes: Age in minutes after which a file is deleted
        exclude: Resolved paths of staged files still in use

    Returns:
        dict: Summary of the sweep with counts
    """
    cutoff = datetime.now() - timedelta(minutes=ttl_minutes)
    summary = {
        "files_scanned": 0,
        "files_deleted": 0,
        "errors": 0,
    }

    dir_path = Path(staging_dir)
    if not dir_path.exists():
        logger.debug(f"Staging directory does not exist: {dir_path}")
        return summary

    try:
        for entry in dir_path.iterdir():
            if not entry.is_file():
                continue

            summary["files_scanned"] += 1

            if str(entry.resolve()) in exclude:
                continue

            try:
                modified = datetime.fromtimestamp(entry.stat().st_mtime)
                if modified < cutoff:
                    entry.unlink()
                    summary["files_deleted"] += 1
                    logger.info(f"Swept stale staged file: {entry}")
            except FileNotFoundError:
                # Finished request removed it between listing and unlink
                continue
            except OSError as e:
                summary["errors"] += 1
                logger.error(f"Failed to sweep {entry}: {e}")

    except OSError as e:
        summary["errors"] += 1
        logger.error(f"Failed to scan staging directory {dir_path}: {e}")

    if summary["files_deleted"] or summary["errors"]:
        logger.info(
            f"Sweep completed: {summary['files_deleted']} files deleted, "
            f"{summary['errors']} errors"
        )

    return summary


class StaleFileSweeper:
    """Interval job that runs sweep_stale_files on the staging directory."""

    def __init__(
        self,
        staging_dir: str | Path,
        ttl_minutes: int,
        interval_minutes: int,
        in_use: Optional[Callable[[], Collection[str]]] = None,
    ):
        """
        Initialize the sweeper.

        Args:
            staging_dir: Staging directory to sweep
            ttl_minutes: Age in minutes after which an orphaned file is deleted
            interval_minutes: Interval between sweeps
            in_use: Returns paths of staged files still owned by a request
        """
        self.staging_dir = Path(staging_dir)
        self.ttl_minutes = ttl_minutes
        self.interval_minutes = interval_minutes
        self.in_use = in_use or (lambda: ())
        self.scheduler = AsyncIOScheduler()
        # AsyncIOScheduler.shutdown applies its state change on the next loop
        # iteration, so scheduler.running lags behind stop()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def run_once(self) -> dict:
        return await sweep_stale_files(self.staging_dir, self.ttl_minutes, exclude=self.in_use())

    def start(self) -> None:
        """
        Start the sweeper.

        Must be called from within a running event loop. Safe to call
        multiple times - will not add duplicate jobs.
        """
        if self._running:
            logger.debug("Sweeper already running")
            return

        self.scheduler.add_job(
            self.run_once,
            "interval",
            minutes=self.interval_minutes,
            id=SWEEP_JOB_ID,
            name="Sweep stale staged files",
            replace_existing=True,
        )
        self.scheduler.start()
        self._running = True
        logger.info(
            f"Sweeper started: every {self.interval_minutes} minute(s), "
            f"TTL: {self.ttl_minutes} minutes"
        )

    def stop(self) -> None:
        """Stop the sweeper gracefully. Safe to call multiple times."""
        if not self._running:
            return

        self._running = False
        self.scheduler.shutdown(wait=False)
        logger.info("Sweeper stopped")

    def status(self) -> dict:
        job = self.scheduler.get_job(SWEEP_JOB_ID) if self._running else None
        return {
            "running": self._running,
            "job_scheduled": job is not None,
            "next_run": str(job.next_run_time) if job else None,
            "interval_minutes": self.interval_minutes,
            "ttl_minutes": self.ttl_minutes,
        }
