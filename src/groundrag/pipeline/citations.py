"""Citation building — map contributing matches to source citations."""

from __future__ import annotations

from collections.abc import Sequence

from groundrag.pipeline.schemas import SourceCitation
from groundrag.retrieval.schemas import Match


def build_citations(matches: Sequence[Match]) -> list[SourceCitation]:
    """Cite every match that contributed grounding text.

    The section title falls back to a ``Lines a-b`` label when the chunk
    only carries a line range. Identical citations are collapsed, first
    occurrence wins.
    """
    citations: list[SourceCitation] = []
    seen: set[SourceCitation] = set()

    for match in matches:
        if not match.text or not match.text.strip():
            continue

        section = match.section_title
        if not section and match.line_range is not None:
            section = match.line_range.label()

        citation = SourceCitation(
            source=match.source,
            section_title=section,
            page_reference=match.page_reference,
        )
        if citation not in seen:
            seen.add(citation)
            citations.append(citation)

    return citations


def format_citations(citations: Sequence[SourceCitation]) -> str:
    """Format citations for display.

    Returns a markdown-formatted citation block.
    """
    if not citations:
        return ""

    lines = ["\n---\n**Sources:**"]
    for i, c in enumerate(citations, 1):
        parts = [f"[{i}]", c.source]
        if c.section_title:
            parts.append(f"({c.section_title})")
        if c.page_reference:
            parts.append(f"page {c.page_reference}")
        lines.append(f"- {' | '.join(parts)}")

    return "\n".join(lines)
