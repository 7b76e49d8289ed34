import logging

import pytest

from pureescpos.emulation.document import RasterImage
from pureescpos.protocol.escpos_parser import EscPosParser
from pureescpos.protocol.job import JobStatus

# Keep debug logging out of the timings
logging.getLogger("pureescpos").setLevel(logging.WARNING)

# 576 dots wide (80 mm head), 1200 rows: a long receipt logo
WIDTH_BYTES = 72
HEIGHT = 1200
RASTER_JOB = (
    b"\x1b@"
    + b"\x1dv0\x00"
    + WIDTH_BYTES.to_bytes(2, "little")
    + HEIGHT.to_bytes(2, "little")
    + bytes(range(256)) * (WIDTH_BYTES * HEIGHT // 256)
    + b"\x00" * (WIDTH_BYTES * HEIGHT % 256)
    + b"\x1dV\x00"
)

TEXT_JOB = b"\x1b@" + b"".join(
    b"\x1bE\x01Item %04d\x1bE\x00            1.00\n" % i for i in range(2000)
)


@pytest.fixture
def parser():
    return EscPosParser()


def test_parse_large_raster(benchmark, parser):
    result = benchmark(parser.parse, RASTER_JOB)
    assert result.status is JobStatus.COMPLETE
    image = result.document[0]
    assert isinstance(image, RasterImage)
    assert (image.width_px, image.height_px) == (WIDTH_BYTES * 8, HEIGHT)


def test_parse_long_text_receipt(benchmark, parser):
    result = benchmark(parser.parse, TEXT_JOB)
    assert result.status is JobStatus.COMPLETE
    assert len(result.document.text_runs()) == 4000
