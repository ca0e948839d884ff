"""Data models for retrieval operations."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class LineRange:
    """Line span of a chunk within its source document."""

    start: int | str
    end: int | str

    def label(self) -> str:
        return f"Lines {self.start}-{self.end}"


@dataclass(frozen=True)
class Match:
    """One retrieved chunk with its grounding text and provenance."""

    id: str
    score: float
    text: str = ""
    source: str = "Unknown Source"
    section_title: str | None = None
    page_reference: str | None = None
    line_range: LineRange | None = None


@dataclass
class RetrievalResult:
    """Matches for one query, highest score first."""

    matches: list[Match] = field(default_factory=list)

    @property
    def top_score(self) -> float:
        return self.matches[0].score if self.matches else 0.0

    def __len__(self) -> int:
        return len(self.matches)

    def __bool__(self) -> bool:
        return bool(self.matches)
