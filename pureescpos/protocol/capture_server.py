"""
TCP capture listener for raw ESC/POS print streams.

Point-of-sale software opens a connection to the printer port, writes one
job and closes. Every accepted connection is handled in its own task that
hands the stream to JobAssembler; failures in one connection are logged and
counted without reaching the listener or other connections.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, Optional, Set

from ..exceptions import AcceptError, BindError, IdleTimeoutError
from ..utils.logging_utils import (
    log_capture_event,
    log_connection_event,
    log_session_error,
)
from .job_assembler import JobAssembler

logger = logging.getLogger(__name__)

__all__ = ["CaptureServerState", "TcpCaptureServer"]


class CaptureServerState(Enum):
    """States of the capture listener."""

    STOPPED = "STOPPED"
    LISTENING = "LISTENING"
    DISABLED = "DISABLED"
    ERROR = "ERROR"


class TcpCaptureServer:
    """Asyncio listening socket feeding JobAssembler, one task per connection."""

    def __init__(
        self, assembler: JobAssembler, host: str = "127.0.0.1", port: int = 9100
    ):
        """
        Initialize the capture server.

        Args:
            assembler: Receives each accepted connection's stream
            host: Listening address
            port: Listening port (0 lets the OS choose)
        """
        self.assembler = assembler
        self.host = host
        self.port = port
        self.state = CaptureServerState.STOPPED
        self._server: Optional[asyncio.AbstractServer] = None
        self._tasks: Set["asyncio.Task[None]"] = set()
        self._bound_port: Optional[int] = None
        self._state_lock = asyncio.Lock()
        self.connections_accepted = 0
        self.jobs_committed = 0
        self.jobs_dropped = 0
        self.timeouts = 0
        self.errors = 0

    @property
    def bound_port(self) -> Optional[int]:
        """Port actually bound, None while not listening."""
        return self._bound_port

    @property
    def is_listening(self) -> bool:
        return self.state == CaptureServerState.LISTENING

    @property
    def active_connections(self) -> int:
        return len(self._tasks)

    async def start(self, port: Optional[int] = None) -> int:
        """Bind and start accepting connections.

        Args:
            port: Overrides the configured port for this and later starts.

        Returns:
            The bound port.

        Raises:
            BindError: If the address cannot be bound. The server stays
                stopped and start may be retried.
        """
        async with self._state_lock:
            if port is not None:
                self.port = port
            if self._server is not None:
                return self._bound_port or self.port
            try:
                self._server = await asyncio.start_server(
                    self._handle_connection, self.host, self.port
                )
            except OSError as e:
                self.state = CaptureServerState.ERROR
                log_session_error(logger, "bind", e)
                raise BindError(
                    f"Cannot listen on {self.host}:{self.port}",
                    context={"host": self.host, "port": self.port},
                    original_exception=e,
                ) from e
            sockets = self._server.sockets or ()
            self._bound_port = sockets[0].getsockname()[1] if sockets else self.port
            self.state = CaptureServerState.LISTENING
            log_capture_event(logger, "Listening", f"{self.host}:{self._bound_port}")
            return self._bound_port

    async def stop(self) -> None:
        """Close the listening socket and cancel in-flight connections.

        Cancelled connections commit nothing.
        """
        async with self._state_lock:
            server = self._server
            if server is not None:
                server.close()
            tasks = list(self._tasks)
            for task in tasks:
                task.cancel()
            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)
            self._tasks.clear()
            if server is not None:
                await server.wait_closed()
            self._server = None
            self._bound_port = None
            self.state = CaptureServerState.STOPPED
            log_capture_event(logger, "Stopped")

    async def set_enabled(self, enabled: bool) -> None:
        """Start or stop accepting connections; history is untouched.

        Connections already in progress finish normally when disabling.
        """
        if enabled:
            if self._server is None:
                await self.start()
            return
        async with self._state_lock:
            if self._server is not None:
                # wait_closed would block on the in-flight connections
                self._server.close()
                self._server = None
                self._bound_port = None
            self.state = CaptureServerState.DISABLED
            log_capture_event(logger, "Disabled")

    async def _handle_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        task = asyncio.current_task()
        if task is not None:
            self._tasks.add(task)
        peer = writer.get_extra_info("peername")
        if isinstance(peer, tuple):
            peer_host, peer_port = peer[0], peer[1]
            source = f"{peer_host}:{peer_port}"
        else:
            peer_host, peer_port = str(peer), 0
            source = peer_host
        self.connections_accepted += 1
        log_connection_event(logger, "accepted", peer_host, peer_port)
        try:
            job = await self.assembler.assemble(reader, source)
            if job is None:
                self.jobs_dropped += 1
            else:
                self.jobs_committed += 1
        except IdleTimeoutError as e:
            self.timeouts += 1
            logger.warning(f"Dropped connection from {source}: {e}")
        except AcceptError as e:
            self.errors += 1
            logger.warning(f"Lost connection from {source}: {e}")
        except asyncio.CancelledError:
            logger.debug(f"Connection from {source} cancelled")
            raise
        except Exception as e:
            self.errors += 1
            log_session_error(logger, "capture", e)
        finally:
            if task is not None:
                self._tasks.discard(task)
            writer.close()
            try:
                await writer.wait_closed()
            except (ConnectionError, OSError) as e:
                logger.debug(f"Error closing connection from {source}: {e}")
            log_connection_event(logger, "closed", peer_host, peer_port)

    def get_server_info(self) -> Dict[str, Any]:
        """Status snapshot for diagnostics."""
        return {
            "state": self.state.value,
            "host": self.host,
            "port": self._bound_port or self.port,
            "active_connections": self.active_connections,
            "connections_accepted": self.connections_accepted,
            "jobs_committed": self.jobs_committed,
            "jobs_dropped": self.jobs_dropped,
            "timeouts": self.timeouts,
            "errors": self.errors,
        }

    def __repr__(self) -> str:
        port = self._bound_port or self.port
        return (
            f"TcpCaptureServer(host='{self.host}', port={port}, "
            f"state='{self.state.value}')"
        )
