"""
pureescpos package init.
Exports the capture service, parser and document model for ESC/POS print
stream capture.
"""

import argparse
import datetime
import json
import logging
import os
import sys
import threading
from typing import List, Optional

from .capture import CaptureService
from .config import CaptureConfig
from .emulation.codepages import Codepage, parse_codepage
from .emulation.document import (
    Barcode,
    Cut,
    DocumentModel,
    QrCode,
    RasterImage,
    TextRun,
)
from .exceptions import PureEscPosError
from .protocol.escpos_parser import EscPosParser
from .protocol.job import Job, JobStatus
from .protocol.job_history import JobHistory
from .protocol.utils import hex_dump

logger = logging.getLogger(__name__)


class JSONFormatter(logging.Formatter):
    """JSON formatter with capture-specific structured fields."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.datetime.now().isoformat(),
            "level": record.levelname,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }

        job_id = getattr(record, "job_id", None)
        if job_id is not None:
            log_entry["job_id"] = job_id

        source = getattr(record, "source", None)
        if source:
            log_entry["source"] = source

        extra = getattr(record, "pureescpos_extra", {})
        if extra:
            log_entry.update(extra)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
            context = getattr(record.exc_info[1], "context", None)
            if context:
                log_entry["context"] = context

        return json.dumps(log_entry, ensure_ascii=False, default=str)


def setup_logging(level: str = "WARNING") -> None:
    """
    Setup basic logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    use_json = os.environ.get("PUREESCPOS_LOG_JSON", "false").lower() == "true"
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper()))
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    if use_json:
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        root.addHandler(handler)
    else:
        logging.basicConfig(level=getattr(logging, level.upper()))


def format_document(document: DocumentModel) -> str:
    """Plain-text view of a document for terminals and logs."""
    lines: List[str] = []
    current = ""
    for element in document:
        if isinstance(element, TextRun):
            current += element.content
            if element.line_break:
                lines.append(current)
                current = ""
            continue
        if current:
            lines.append(current)
            current = ""
        if isinstance(element, Barcode):
            lines.append(f"[BARCODE {element.symbology.name} {element.hri_text()}]")
        elif isinstance(element, QrCode):
            payload = element.payload.decode("utf-8", errors="replace")
            lines.append(f"[QR {payload}]")
        elif isinstance(element, RasterImage):
            lines.append(f"[IMAGE {element.width_px}x{element.height_px}]")
        elif isinstance(element, Cut):
            lines.append(f"--- {element.kind.value} cut ---")
    if current:
        lines.append(current)
    return "\n".join(lines)


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pureescpos", description="pureescpos - ESC/POS print capture"
    )
    parser.add_argument(
        "--log-level", default="WARNING", help="Logging level (default WARNING)"
    )
    parser.add_argument(
        "--codepage",
        default=None,
        help="Default code page, e.g. 16, cp437 or auto (default auto: UTF-8, "
        "falling back to Windows-1252)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    decode = commands.add_parser("decode", help="Decode a captured job file")
    decode.add_argument("file", help="File holding raw ESC/POS bytes")
    decode.add_argument(
        "--hex", action="store_true", help="Also print a hex dump of the input"
    )

    listen = commands.add_parser("listen", help="Capture jobs from a TCP port")
    listen.add_argument("--host", default=None, help="Listening address")
    listen.add_argument("--port", type=int, default=None, help="Listening port")
    return parser


def _decode(path: str, codepage: Codepage, show_hex: bool) -> int:
    parser = EscPosParser(codepage)
    try:
        with open(path, "rb") as fh:
            data = fh.read()
    except OSError as e:
        logger.error(f"Cannot read {path}: {e}")
        return 1
    result = parser.parse(data)
    if show_hex:
        print(hex_dump(data), end="")
    print(format_document(result.document))
    for anomaly in result.anomalies:
        print(f"! {anomaly}", file=sys.stderr)
    return 0 if result.status is JobStatus.COMPLETE else 2


def _listen(config: CaptureConfig, stop_event: Optional[threading.Event]) -> int:
    def _print_job(job: Job) -> None:
        logger.info(
            f"Job #{job.job_id} from {job.source}: {job.size} bytes, "
            f"{job.status.value}",
            extra={"job_id": job.job_id, "source": job.source},
        )
        print(f"=== job #{job.job_id} ({job.source}) ===")
        print(format_document(job.document))

    service = CaptureService(config, on_job=_print_job)
    try:
        port = service.start()
    except PureEscPosError as e:
        logger.error(f"Capture failed: {e}")
        return 1
    logger.info(f"Capturing on {config.host}:{port}")
    event = stop_event or threading.Event()
    try:
        event.wait()
    except KeyboardInterrupt:
        pass
    finally:
        service.stop()
    return 0


def main(
    argv: Optional[List[str]] = None, stop_event: Optional[threading.Event] = None
) -> int:
    """CLI entry point: `decode FILE` or `listen [--host] [--port]`."""
    args = _build_arg_parser().parse_args(argv)
    setup_logging(args.log_level)

    overrides = {}
    if args.codepage is not None:
        try:
            overrides["default_codepage"] = parse_codepage(args.codepage)
        except ValueError as e:
            logger.error(str(e))
            return 1
    if args.command == "listen":
        if args.host is not None:
            overrides["host"] = args.host
        if args.port is not None:
            overrides["port"] = args.port
    try:
        config = CaptureConfig.from_env(**overrides)
    except PureEscPosError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    if args.command == "decode":
        return _decode(args.file, config.default_codepage, args.hex)
    return _listen(config, stop_event)


if __name__ == "__main__":
    sys.exit(main())


__all__ = [
    "CaptureService",
    "CaptureConfig",
    "Codepage",
    "DocumentModel",
    "EscPosParser",
    "Job",
    "JobHistory",
    "JobStatus",
    "JSONFormatter",
    "format_document",
    "hex_dump",
    "setup_logging",
    "main",
]
