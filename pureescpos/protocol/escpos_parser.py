"""
Whole-job ESC/POS parser.

EscPosParser owns the recovery policy: it drives CommandDecoder across a job,
applies each effect to a fresh ParserState and collects elements in byte
order. Unknown opcodes are recorded and skipped; a truncated command ends
decoding. Either way the job is marked PARTIAL and parse never raises.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple, Union

from ..emulation.codepages import DEFAULT_CODEPAGE, Codepage, CodepageTable
from ..emulation.document import DocumentElement, DocumentModel, TextRun
from ..utils.logging_utils import log_data_processing, log_parsing_warning
from .decoder import CommandDecoder, EmitElement, EmitText, Ignore, MutateState
from .job import JobStatus
from .state import ParserState

logger = logging.getLogger(__name__)

__all__ = ["EscPosParser", "ParseResult"]


@dataclass(frozen=True)
class ParseResult:
    document: DocumentModel
    status: JobStatus = JobStatus.COMPLETE
    anomalies: Tuple[str, ...] = ()


class EscPosParser:
    """Decode complete ESC/POS jobs into DocumentModels."""

    def __init__(self, default_codepage: int = DEFAULT_CODEPAGE) -> None:
        self.codepages = CodepageTable(Codepage(default_codepage))
        self.decoder = CommandDecoder(self.codepages)

    @property
    def default_codepage(self) -> Codepage:
        return self.codepages.default

    def parse(self, data: bytes) -> ParseResult:
        """Parse one job's bytes.

        Args:
            data: Raw bytes of the job.

        Returns:
            ParseResult with the document, COMPLETE or PARTIAL status and the
            anomalies met along the way.
        """
        data = bytes(data)
        state = ParserState.initial(self.codepages.default)
        elements: List[DocumentElement] = []
        anomalies: List[str] = []
        offset = 0

        while offset < len(data):
            result = self.decoder.decode_one(data, offset, state)
            effect = result.effect

            if isinstance(effect, EmitText):
                elements.append(
                    TextRun(
                        content=self.codepages.decode(state.codepage, effect.data),
                        bold=state.bold,
                        alignment=state.alignment,
                        size=state.size,
                        line_break=effect.line_break,
                    )
                )
            elif isinstance(effect, EmitElement):
                elements.append(effect.element)
                if effect.after is not None:
                    effect.after(state)
            elif isinstance(effect, MutateState):
                effect.apply(state)
            elif isinstance(effect, Ignore) and effect.unknown:
                anomalies.append(f"offset {offset}: {effect.reason}")

            if result.truncated:
                anomalies.append(
                    f"offset {offset}: truncated command, "
                    f"{len(data) - offset} bytes left undecoded"
                )
                break
            offset += result.consumed

        for anomaly in anomalies:
            log_parsing_warning(logger, "ESC/POS anomaly", anomaly)

        status = JobStatus.PARTIAL if anomalies else JobStatus.COMPLETE
        log_data_processing(
            logger,
            "Parsed job",
            f"{len(data)} bytes, {len(elements)} elements, {status.value}",
        )
        return ParseResult(DocumentModel(elements), status, tuple(anomalies))

    def parse_file(self, path: Union[str, Path]) -> ParseResult:
        """Read a captured job from disk and parse it.

        Raises:
            OSError: If the file cannot be read.
        """
        return self.parse(Path(path).read_bytes())
