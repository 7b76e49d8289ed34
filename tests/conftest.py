import logging
from typing import List

import pytest
import pytest_asyncio

from pureescpos.config import CaptureConfig
from pureescpos.emulation.codepages import CodepageTable
from pureescpos.protocol.capture_server import TcpCaptureServer
from pureescpos.protocol.decoder import CommandDecoder
from pureescpos.protocol.escpos_parser import EscPosParser
from pureescpos.protocol.job import Job
from pureescpos.protocol.job_assembler import JobAssembler
from pureescpos.protocol.job_history import JobHistory
from pureescpos.protocol.state import ParserState

logger = logging.getLogger(__name__)

ESC = b"\x1b"
GS = b"\x1d"

# A small but complete receipt: init, centered bold title, body, barcode, cut
SAMPLE_RECEIPT = (
    ESC
    + b"@"
    + ESC
    + b"a\x01"
    + ESC
    + b"E\x01"
    + b"STORE 42\n"
    + ESC
    + b"E\x00"
    + ESC
    + b"a\x00"
    + b"Coffee          3.50\n"
    + b"Bagel           2.25\n"
    + GS
    + b"H\x02"
    + GS
    + b"h\x50"
    + GS
    + b"kI\x08{BABC123"
    + GS
    + b"V\x41\x03"
)


def pytest_configure(config):
    config.addinivalue_line("markers", "property: hypothesis property-based tests")
    config.addinivalue_line("markers", "integration: tests using real sockets")


@pytest.fixture
def sample_receipt() -> bytes:
    return SAMPLE_RECEIPT


@pytest.fixture
def codepages():
    return CodepageTable()


@pytest.fixture
def decoder(codepages):
    return CommandDecoder(codepages)


@pytest.fixture
def state():
    return ParserState.initial()


@pytest.fixture
def parser():
    return EscPosParser()


@pytest.fixture
def history():
    return JobHistory(max_jobs=25)


@pytest.fixture
def capture_config():
    # Port 0: let the OS pick a free port for each test
    return CaptureConfig(port=0, idle_timeout=2.0)


@pytest.fixture
def committed_jobs() -> List[Job]:
    return []


@pytest.fixture
def assembler(parser, history, capture_config, committed_jobs):
    return JobAssembler(parser, history, capture_config, on_job=committed_jobs.append)


@pytest_asyncio.fixture
async def capture_server(assembler):
    """Listening TcpCaptureServer on an ephemeral loopback port."""
    server = TcpCaptureServer(assembler, host="127.0.0.1", port=0)
    await server.start()
    try:
        yield server
    finally:
        await server.stop()


@pytest.fixture
def preserve_root_logger():
    """Restore root logger handlers and level changed by setup_logging."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
