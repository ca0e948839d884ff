"""Data models for the answering pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class OutcomeReason(str, Enum):
    """Why the pipeline short-circuited to the fallback answer."""

    NO_MATCHES = "no_matches"
    LOW_SIMILARITY = "low_similarity"
    NO_CONTEXT = "no_context"
    FAILED_SANITIZATION = "failed_sanitization"
    ERROR = "error"


@dataclass(frozen=True)
class SourceCitation:
    """A citation derived from a match, without the raw chunk text."""

    source: str
    section_title: str | None = None
    page_reference: str | None = None


@dataclass
class PipelineMetadata:
    """Diagnostics attached to every outcome."""

    query: str
    matches_count: int = 0
    top_score: float = 0.0
    processing_time_ms: int = 0
    provider: str | None = None
    reason: OutcomeReason | None = None
    request_id: str | None = None
    error_type: str | None = None


@dataclass
class PipelineOutcome:
    """Final answer, its citations and diagnostics."""

    answer: str | None
    sources: list[SourceCitation] = field(default_factory=list)
    metadata: PipelineMetadata = field(default_factory=lambda: PipelineMetadata(query=""))

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready view; ``None`` metadata fields are dropped."""
        meta = {k: v for k, v in asdict(self.metadata).items() if v is not None}
        if self.metadata.reason is not None:
            meta["reason"] = self.metadata.reason.value
        return {
            "answer": self.answer,
            "sources": [asdict(s) for s in self.sources],
            "metadata": meta,
        }


@dataclass
class SanitizedAnswer:
    """Sanitizer output: the accepted answer (``None`` on rejection) and citations."""

    answer: str | None
    sources: list[SourceCitation] = field(default_factory=list)
