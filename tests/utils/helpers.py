"""Socket helpers shared by the capture tests."""

import asyncio

from pureescpos.protocol.job_history import JobHistory


async def send_job(port: int, payload: bytes, host: str = "127.0.0.1") -> None:
    """Connect, write payload and close, like a POS application would."""
    reader, writer = await asyncio.open_connection(host, port)
    writer.write(payload)
    await writer.drain()
    writer.close()
    await writer.wait_closed()


async def wait_for_jobs(history: JobHistory, count: int, timeout: float = 5.0) -> None:
    """Poll until history holds `count` jobs."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while len(history) < count:
        if loop.time() > deadline:
            raise AssertionError(f"expected {count} jobs, have {len(history)}")
        await asyncio.sleep(0.01)
