"""
JobAssembler turns one connection's byte stream into a committed Job.

A job is everything a sender writes before closing the connection. Reads are
bounded by the idle timeout; parsing is CPU bound and runs in the event
loop's default executor so other connections keep flowing.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

from ..config import CaptureConfig
from ..exceptions import AcceptError, IdleTimeoutError
from ..utils.logging_utils import log_data_processing, log_job_event
from .escpos_parser import EscPosParser
from .job import Job
from .job_history import JobHistory

logger = logging.getLogger(__name__)

__all__ = ["JobAssembler", "READ_CHUNK_SIZE"]

READ_CHUNK_SIZE = 8192


class JobAssembler:
    """Collect, filter, parse and store jobs."""

    def __init__(
        self,
        parser: EscPosParser,
        history: JobHistory,
        config: Optional[CaptureConfig] = None,
        on_job: Optional[Callable[[Job], None]] = None,
    ):
        """
        Initialize the assembler.

        Args:
            parser: Parser used for every committed job
            history: Destination of committed jobs
            config: Noise filter and idle timeout settings (defaults if None)
            on_job: Called with each committed Job
        """
        self.parser = parser
        self.history = history
        self.config = config or CaptureConfig()
        self.on_job = on_job

    def is_noise(self, data: bytes) -> bool:
        """True when the job would be dropped before parsing."""
        if not data:
            return True
        return (
            self.config.noise_filter_enabled
            and len(data) < self.config.noise_threshold_bytes
        )

    async def read_job(self, reader: asyncio.StreamReader, source: str = "") -> bytes:
        """Read until EOF, failing when the sender stays idle too long.

        Raises:
            IdleTimeoutError: If a single read waits longer than idle_timeout.
            AcceptError: If reading the socket fails.
        """
        buffer = bytearray()
        timeout = self.config.idle_timeout
        while True:
            try:
                chunk = await asyncio.wait_for(reader.read(READ_CHUNK_SIZE), timeout)
            except asyncio.TimeoutError as e:
                raise IdleTimeoutError(
                    "Connection idle timeout",
                    context={
                        "source": source,
                        "timeout": timeout,
                        "received": len(buffer),
                    },
                    original_exception=e,
                ) from e
            except OSError as e:
                raise AcceptError(
                    "Connection read failed",
                    context={"source": source, "received": len(buffer)},
                    original_exception=e,
                ) from e
            if not chunk:
                break
            buffer.extend(chunk)
            log_data_processing(
                logger, "Received", f"{len(chunk)} bytes from {source}"
            )
        return bytes(buffer)

    async def assemble(
        self, reader: asyncio.StreamReader, source: str = ""
    ) -> Optional[Job]:
        """Read one connection to EOF and commit its job.

        Returns:
            The committed Job, or None when the connection was empty or noise.

        Raises:
            IdleTimeoutError: If the sender went silent; nothing is committed.
            AcceptError: If the connection failed mid-job; nothing is committed.
        """
        data = await self.read_job(reader, source)
        if self.is_noise(data):
            logger.debug(f"Dropped {len(data)}-byte job from {source or 'unknown'}")
            return None
        return await self.submit(data, source)

    async def submit(self, data: bytes, source: str = "") -> Job:
        """Parse data in the default executor and store it as a job.

        No noise filtering is applied.
        """
        loop = asyncio.get_running_loop()
        job = await loop.run_in_executor(None, self._build_job, bytes(data), source)
        return self._store(job)

    def _build_job(self, data: bytes, source: str) -> Job:
        result = self.parser.parse(data)
        return Job(
            raw=data,
            document=result.document,
            status=result.status,
            anomalies=result.anomalies,
            source=source,
            timestamp=time.time(),
        )

    def _store(self, job: Job) -> Job:
        stored = self.history.add(job)
        if stored.is_partial:
            log_job_event(
                logger,
                "Partial",
                stored.job_id,
                f"{len(stored.anomalies)} anomalies",
            )
        if self.on_job is not None:
            try:
                self.on_job(stored)
            except Exception as e:
                logger.error(f"on_job callback failed for job #{stored.job_id}: {e}")
        return stored
