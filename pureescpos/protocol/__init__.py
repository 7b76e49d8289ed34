"""ESC/POS decoding, job assembly and TCP capture."""

from .capture_server import CaptureServerState, TcpCaptureServer
from .decoder import (
    CommandDecoder,
    DecodeResult,
    EmitElement,
    EmitText,
    Ignore,
    MutateState,
)
from .escpos_parser import EscPosParser, ParseResult
from .job import Job, JobStatus
from .job_assembler import JobAssembler
from .job_history import JobHistory
from .state import ParserState
from .utils import hex_dump

__all__ = [
    "CaptureServerState",
    "TcpCaptureServer",
    "CommandDecoder",
    "DecodeResult",
    "EmitElement",
    "EmitText",
    "Ignore",
    "MutateState",
    "EscPosParser",
    "ParseResult",
    "Job",
    "JobStatus",
    "JobAssembler",
    "JobHistory",
    "ParserState",
    "hex_dump",
]
