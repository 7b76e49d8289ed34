"""
Synchronous capture service.

CaptureService wires the parser, job history, assembler and TCP listener
together and runs the listener on a dedicated worker event loop thread, so
callers without an event loop (a GUI, the CLI, tests) can drive capture
through plain method calls.
"""

import asyncio
import dataclasses
import logging
import threading
from pathlib import Path
from typing import (
    Any,
    Callable,
    Coroutine,
    Dict,
    List,
    Optional,
    Tuple,
    TypeVar,
    Union,
)

from .config import CaptureConfig
from .emulation.codepages import parse_codepage
from .protocol.capture_server import CaptureServerState, TcpCaptureServer
from .protocol.escpos_parser import EscPosParser
from .protocol.job import Job
from .protocol.job_assembler import JobAssembler
from .protocol.job_history import JobHistory
from .utils.logging_utils import log_capture_event, log_job_event

logger = logging.getLogger(__name__)

T = TypeVar("T")

__all__ = ["CaptureService"]


class CaptureService:
    """Capture pipeline with a blocking API."""

    def __init__(
        self,
        config: Optional[CaptureConfig] = None,
        on_job: Optional[Callable[[Job], None]] = None,
    ) -> None:
        """
        Initialize the service; nothing listens until start().

        Args:
            config: Capture configuration (defaults if None)
            on_job: Called from the worker thread with each committed Job
        """
        self.config = config or CaptureConfig()
        self.parser = EscPosParser(self.config.default_codepage)
        self.history = JobHistory(
            max_jobs=self.config.max_jobs,
            max_bytes=self.config.max_bytes,
            max_age=self.config.max_age,
        )
        self.assembler = JobAssembler(
            self.parser, self.history, self.config, on_job=on_job
        )
        self.server = TcpCaptureServer(
            self.assembler, host=self.config.host, port=self.config.port
        )
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None

    def _ensure_worker_loop(self) -> None:
        """Start the worker thread and its event loop if not running."""
        if self._loop is not None and self._thread is not None:
            if self._thread.is_alive():
                return

        loop = asyncio.new_event_loop()

        def _runner() -> None:
            asyncio.set_event_loop(loop)
            try:
                loop.run_forever()
            finally:
                loop.close()

        thread = threading.Thread(
            target=_runner, name="pureescpos-CaptureLoop", daemon=True
        )
        thread.start()
        self._loop = loop
        self._thread = thread

    def _shutdown_worker_loop(self) -> None:
        loop = self._loop
        thread = self._thread
        self._loop = None
        self._thread = None
        if loop is not None:
            loop.call_soon_threadsafe(loop.stop)
        if thread is not None:
            thread.join(timeout=1.0)

    def _run_async(self, coro: Coroutine[Any, Any, T]) -> T:
        """Run a coroutine on the worker loop and wait for its result.

        Raises:
            RuntimeError: If called from the worker loop thread itself,
                where waiting on the loop could never finish.
        """
        if self._thread is not None and threading.current_thread() is self._thread:
            coro.close()
            raise RuntimeError(
                "CaptureService methods cannot be called from the capture loop "
                "thread (for example from an on_job callback)"
            )
        self._ensure_worker_loop()
        assert self._loop is not None
        fut = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return fut.result()

    def start(self) -> Optional[int]:
        """Start the worker loop and, when capture is enabled, the listener.

        Returns:
            The bound port, or None while capture is disabled.

        Raises:
            BindError: If the listening port cannot be bound.
        """
        self._ensure_worker_loop()
        if not self.config.capture_enabled:
            self._run_async(self.server.set_enabled(False))
            log_capture_event(logger, "Started", "capture disabled")
            return None
        return self._run_async(self.server.start())

    def stop(self) -> None:
        """Stop listening, cancel in-flight connections and end the worker."""
        if self._loop is not None:
            self._run_async(self.server.stop())
        self._shutdown_worker_loop()

    def set_enabled(self, enabled: bool) -> None:
        """Toggle capture; retained jobs are untouched."""
        self._run_async(self.server.set_enabled(enabled))
        self.config.capture_enabled = bool(enabled)

    @property
    def bound_port(self) -> Optional[int]:
        return self.server.bound_port

    @property
    def is_listening(self) -> bool:
        return self.server.state == CaptureServerState.LISTENING

    def load_bytes(self, data: bytes, source: str = "") -> Job:
        """Store a job from bytes, skipping the connection and noise rules."""
        job = self._run_async(self.assembler.submit(data, source or "<bytes>"))
        log_job_event(logger, "Loaded", job.job_id, job.source)
        return job

    def load_file(self, path: Union[str, Path]) -> Job:
        """Store a captured job read from disk.

        Raises:
            OSError: If the file cannot be read.
        """
        data = Path(path).read_bytes()
        return self.load_bytes(data, str(path))

    def jobs(self) -> Tuple[Job, ...]:
        """Retained jobs, oldest first."""
        return self.history.jobs()

    def get_job(self, job_id: int) -> Optional[Job]:
        return self.history.get(job_id)

    def reparse_all(self, codepage: Any = None) -> Tuple[Job, ...]:
        """Decode every retained job again, optionally with a new default code page.

        Job ids, sources and timestamps are kept. Jobs are parsed in the worker
        loop's executor and swapped into the history afterwards, so capture
        and readers carry on meanwhile.

        Raises:
            ValueError: If codepage names no supported code page.
        """
        if codepage is not None:
            self.config.default_codepage = parse_codepage(codepage)
            self.parser = EscPosParser(self.config.default_codepage)
            self.assembler.parser = self.parser
        updated = self._run_async(
            self._reparse_jobs(self.parser, self.history.jobs())
        )
        jobs = self.history.replace(updated)
        log_capture_event(
            logger,
            "Reparsed",
            f"{len(jobs)} jobs with {self.config.default_codepage.name}",
        )
        return jobs

    async def _reparse_jobs(
        self, parser: EscPosParser, jobs: Tuple[Job, ...]
    ) -> List[Job]:
        loop = asyncio.get_running_loop()
        updated = []
        for job in jobs:
            updated.append(await loop.run_in_executor(None, _reparse_job, parser, job))
        return updated

    def get_status(self) -> Dict[str, Any]:
        return {
            "server": self.server.get_server_info(),
            "history": self.history.get_statistics(),
            "config": self.config.to_dict(),
        }

    def __enter__(self) -> "CaptureService":
        self.start()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[Exception],
        exc_tb: Optional[Any],
    ) -> None:
        self.stop()

    def __repr__(self) -> str:
        return f"CaptureService(server={self.server!r}, history={self.history!r})"


def _reparse_job(parser: EscPosParser, job: Job) -> Job:
    result = parser.parse(job.raw)
    return dataclasses.replace(
        job,
        document=result.document,
        status=result.status,
        anomalies=result.anomalies,
    )
