"""Bounded, thread-safe store of captured jobs."""

import dataclasses
import logging
import threading
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from ..utils.logging_utils import log_job_event
from .job import Job

logger = logging.getLogger(__name__)

__all__ = ["JobHistory"]


class JobHistory:
    """Ordered jobs, oldest first, bounded by count, total bytes and age.

    A single lock covers insertion and eviction, so concurrent connection
    tasks and readers always observe a consistent sequence. Readers get
    tuple snapshots of immutable Jobs.
    """

    def __init__(
        self,
        max_jobs: Optional[int] = 25,
        max_bytes: Optional[int] = None,
        max_age: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_jobs is not None and max_jobs < 1:
            raise ValueError("max_jobs must be at least 1")
        if max_bytes is not None and max_bytes < 1:
            raise ValueError("max_bytes must be at least 1")
        if max_age is not None and max_age <= 0:
            raise ValueError("max_age must be positive")
        self.max_jobs = max_jobs
        self.max_bytes = max_bytes
        self.max_age = max_age
        self._clock = clock
        self._jobs: List[Job] = []
        self._total_bytes = 0
        self._next_id = 1
        self._evicted = 0
        self.lock = threading.Lock()

    def add(self, job: Job) -> Job:
        """Assign the next id to job, append it and evict beyond the bounds.

        Returns:
            The stored Job carrying its assigned id.
        """
        with self.lock:
            stored = dataclasses.replace(job, job_id=self._next_id)
            self._next_id += 1
            self._jobs.append(stored)
            self._total_bytes += stored.size
            evicted = self._evict()
        log_job_event(logger, "Committed", stored.job_id, f"{stored.size} bytes")
        for old in evicted:
            logger.debug(f"Evicted job #{old.job_id} ({old.size} bytes)")
        return stored

    def _evict(self) -> List[Job]:
        # Caller holds the lock
        evicted: List[Job] = []
        if self.max_age is not None:
            cutoff = self._clock() - self.max_age
            while len(self._jobs) > 1 and self._jobs[0].timestamp < cutoff:
                evicted.append(self._pop_oldest())
        if self.max_jobs is not None:
            while len(self._jobs) > self.max_jobs:
                evicted.append(self._pop_oldest())
        if self.max_bytes is not None:
            # The newest job stays even when it alone exceeds the bound
            while len(self._jobs) > 1 and self._total_bytes > self.max_bytes:
                evicted.append(self._pop_oldest())
        self._evicted += len(evicted)
        return evicted

    def _pop_oldest(self) -> Job:
        job = self._jobs.pop(0)
        self._total_bytes -= job.size
        return job

    def prune(self) -> int:
        """Apply the bounds without inserting; returns jobs removed.

        The newest job is always kept.
        """
        with self.lock:
            evicted = self._evict()
        if evicted:
            logger.debug(f"Pruned {len(evicted)} jobs")
        return len(evicted)

    def jobs(self) -> Tuple[Job, ...]:
        """Snapshot of the retained jobs, oldest first."""
        with self.lock:
            return tuple(self._jobs)

    def get(self, job_id: int) -> Optional[Job]:
        with self.lock:
            for job in self._jobs:
                if job.job_id == job_id:
                    return job
        return None

    def latest(self) -> Optional[Job]:
        with self.lock:
            return self._jobs[-1] if self._jobs else None

    def replace(self, updated: Iterable[Job]) -> Tuple[Job, ...]:
        """Swap in new versions of retained jobs, matched by job_id.

        Jobs evicted since the new versions were built are skipped, and
        jobs added meanwhile are left alone. Order is unchanged. The new
        versions must be built before calling, so the lock is held only
        for the swap.

        Returns:
            The replacements that were stored, oldest first.
        """
        by_id = {job.job_id: job for job in updated}
        replaced: List[Job] = []
        with self.lock:
            jobs = []
            for job in self._jobs:
                new_job = by_id.get(job.job_id)
                if new_job is not None:
                    job = new_job
                    replaced.append(new_job)
                jobs.append(job)
            self._jobs = jobs
            self._total_bytes = sum(job.size for job in jobs)
        return tuple(replaced)

    def clear(self) -> None:
        with self.lock:
            self._jobs.clear()
            self._total_bytes = 0

    @property
    def total_bytes(self) -> int:
        with self.lock:
            return self._total_bytes

    def get_statistics(self) -> Dict[str, Any]:
        with self.lock:
            return {
                "jobs": len(self._jobs),
                "total_bytes": self._total_bytes,
                "evicted": self._evicted,
                "next_id": self._next_id,
                "max_jobs": self.max_jobs,
                "max_bytes": self.max_bytes,
                "max_age": self.max_age,
            }

    def __len__(self) -> int:
        with self.lock:
            return len(self._jobs)

    def __repr__(self) -> str:
        return (
            f"JobHistory(jobs={len(self)}, max_jobs={self.max_jobs}, "
            f"max_bytes={self.max_bytes}, max_age={self.max_age})"
        )
