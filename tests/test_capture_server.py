import asyncio
import socket
from unittest.mock import AsyncMock, patch

import pytest

from pureescpos.config import CaptureConfig
from pureescpos.exceptions import AcceptError, BindError
from pureescpos.protocol.capture_server import CaptureServerState, TcpCaptureServer
from pureescpos.protocol.job_assembler import JobAssembler
from tests.utils.helpers import send_job, wait_for_jobs


@pytest.mark.integration
class TestTcpCaptureServer:
    @pytest.mark.asyncio
    async def test_start_binds_ephemeral_port(self, capture_server):
        assert capture_server.state is CaptureServerState.LISTENING
        assert capture_server.is_listening
        assert capture_server.bound_port and capture_server.bound_port > 0

    @pytest.mark.asyncio
    async def test_one_job_per_connection(
        self, capture_server, history, sample_receipt
    ):
        await send_job(capture_server.bound_port, sample_receipt)
        await wait_for_jobs(history, 1)
        job = history.latest()
        assert job.raw == sample_receipt
        assert job.source.startswith("127.0.0.1:")
        assert "STORE 42" in job.document.text()

    @pytest.mark.asyncio
    async def test_concurrent_connections_are_isolated(self, capture_server, history):
        payloads = [f"ticket {i:02d} ".encode() * 8 + b"\n" for i in range(10)]
        await asyncio.gather(
            *(send_job(capture_server.bound_port, p) for p in payloads)
        )
        await wait_for_jobs(history, len(payloads))
        assert sorted(job.raw for job in history.jobs()) == sorted(payloads)
        for job in history.jobs():
            assert job.document.text().encode() == job.raw

    @pytest.mark.asyncio
    async def test_noise_connections_dropped(self, capture_server, history):
        await send_job(capture_server.bound_port, b"\x10\x04\x01")
        await send_job(capture_server.bound_port, b"A" * 40)
        await wait_for_jobs(history, 1)
        await asyncio.sleep(0.05)
        assert len(history) == 1
        assert capture_server.jobs_dropped == 1
        assert capture_server.jobs_committed == 1

    @pytest.mark.asyncio
    async def test_idle_connection_times_out(self, parser, history):
        config = CaptureConfig(port=0, idle_timeout=0.1)
        server = TcpCaptureServer(JobAssembler(parser, history, config), port=0)
        port = await server.start()
        try:
            reader, writer = await asyncio.open_connection("127.0.0.1", port)
            writer.write(b"x" * 64)
            await writer.drain()
            # The server closes the idle connection
            assert await asyncio.wait_for(reader.read(), 2.0) == b""
            writer.close()
            assert server.timeouts == 1
            assert len(history) == 0
        finally:
            await server.stop()

    @pytest.mark.asyncio
    async def test_read_failure_counted_as_error(
        self, capture_server, assembler, history, sample_receipt
    ):
        failure = AcceptError("Connection read failed", context={"source": "x"})
        port = capture_server.bound_port
        with patch.object(
            assembler, "read_job", AsyncMock(side_effect=failure)
        ) as read_job:
            await send_job(port, sample_receipt)
            for _ in range(200):
                if capture_server.errors:
                    break
                await asyncio.sleep(0.01)
        read_job.assert_awaited_once()
        assert capture_server.errors == 1
        assert len(history) == 0
        # The listener keeps accepting
        await send_job(port, sample_receipt)
        await wait_for_jobs(history, 1)
        assert capture_server.is_listening

    @pytest.mark.asyncio
    async def test_stop_cancels_in_flight_connections(self, assembler, history):
        server = TcpCaptureServer(assembler, port=0)
        port = await server.start()
        reader, writer = await asyncio.open_connection("127.0.0.1", port)
        writer.write(b"x" * 64)
        await writer.drain()
        await asyncio.sleep(0.05)
        assert server.active_connections == 1
        await server.stop()
        assert server.state is CaptureServerState.STOPPED
        assert server.bound_port is None
        assert server.active_connections == 0
        assert len(history) == 0
        writer.close()

    @pytest.mark.asyncio
    async def test_stop_releases_port(self, assembler):
        server = TcpCaptureServer(assembler, port=0)
        port = await server.start()
        await server.stop()
        with pytest.raises(OSError):
            await asyncio.open_connection("127.0.0.1", port)
        # The same port can be bound again
        assert await server.start(port=port) == port
        await server.stop()

    @pytest.mark.asyncio
    async def test_bind_error(self, assembler):
        blocker = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        blocker.bind(("127.0.0.1", 0))
        blocker.listen(1)
        port = blocker.getsockname()[1]
        server = TcpCaptureServer(assembler, port=port)
        try:
            with pytest.raises(BindError) as exc_info:
                await server.start()
            assert exc_info.value.get_context("port") == port
            assert server.state is CaptureServerState.ERROR
            assert server.bound_port is None
        finally:
            blocker.close()
        # Retry succeeds once the port is free
        assert await server.start() == port
        await server.stop()

    @pytest.mark.asyncio
    async def test_disable_and_enable(self, capture_server, history, sample_receipt):
        port = capture_server.bound_port
        await send_job(port, sample_receipt)
        await wait_for_jobs(history, 1)

        await capture_server.set_enabled(False)
        assert capture_server.state is CaptureServerState.DISABLED
        with pytest.raises(OSError):
            await asyncio.open_connection("127.0.0.1", port)
        assert len(history) == 1

        await capture_server.set_enabled(True)
        assert capture_server.is_listening
        await send_job(capture_server.bound_port, sample_receipt)
        await wait_for_jobs(history, 2)

    @pytest.mark.asyncio
    async def test_server_info(self, capture_server, history, sample_receipt):
        await send_job(capture_server.bound_port, sample_receipt)
        await wait_for_jobs(history, 1)
        info = capture_server.get_server_info()
        assert info["state"] == "LISTENING"
        assert info["port"] == capture_server.bound_port
        assert info["connections_accepted"] == 1
        assert info["jobs_committed"] == 1
        assert info["errors"] == 0
        assert "LISTENING" in repr(capture_server)
