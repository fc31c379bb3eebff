"""
Supervised fire-and-forget execution for best-effort bookkeeping writes.

Jobs submitted here never report back to the request that queued them.
Every job is still supervised: a failure is logged with the job name and
never escapes into the caller.
"""

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

import structlog

logger = structlog.get_logger(__name__)


class BackgroundDispatcher:
    """Run jobs on a thread pool, logging any job that fails."""

    def __init__(self, max_workers: int = 4):
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="identity-bg"
        )

    def submit(self, job_name: str, fn: Callable[..., Any], *args: Any) -> Future:
        """
        Queue a job.

        Args:
            job_name: Name used when logging the outcome
            fn: Callable to run
            *args: Positional arguments for ``fn``

        Returns:
            Future: The job's future, already supervised
        """
        future = self._executor.submit(fn, *args)
        future.add_done_callback(lambda f: report_outcome(job_name, f))
        return future

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting jobs and optionally wait for queued ones."""
        self._executor.shutdown(wait=wait)


def report_outcome(job_name: str, future: Future) -> None:
    """Log the outcome of a finished job; failures never propagate."""
    if future.cancelled():
        logger.warning("Background job cancelled", job=job_name)
        return

    error = future.exception()
    if error is not None:
        logger.error(
            "Background job failed",
            job=job_name,
            error=str(error),
            error_type=type(error).__name__,
        )
