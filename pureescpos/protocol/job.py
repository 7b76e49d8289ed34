"""Captured print job record."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Tuple

from ..emulation.document import DocumentModel

__all__ = ["Job", "JobStatus"]


class JobStatus(Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"


@dataclass(frozen=True)
class Job:
    """One captured byte stream with its decoded document.

    job_id is 0 until JobHistory assigns the next sequence number on insert.
    """

    raw: bytes
    document: DocumentModel
    status: JobStatus = JobStatus.COMPLETE
    anomalies: Tuple[str, ...] = ()
    source: str = ""
    timestamp: float = 0.0
    job_id: int = 0
    # Derived once, raw never changes
    size: int = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "size", len(self.raw))

    @property
    def is_partial(self) -> bool:
        return self.status is JobStatus.PARTIAL

    def get_job_info(self) -> Dict[str, Any]:
        """Summary suitable for logs and status listings."""
        return {
            "job_id": self.job_id,
            "source": self.source,
            "timestamp": self.timestamp,
            "size": self.size,
            "status": self.status.value,
            "elements": len(self.document),
            "anomalies": len(self.anomalies),
        }

    def __repr__(self) -> str:
        return (
            f"Job(id={self.job_id}, source='{self.source}', "
            f"status='{self.status.value}', size={self.size} bytes, "
            f"elements={len(self.document)})"
        )
