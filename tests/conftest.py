"""Shared fixtures for tests — synthetic knowledge base, no network calls."""

from __future__ import annotations

import pytest

from groundrag.providers import factory as provider_factory
from groundrag.retrieval.schemas import LineRange, Match
from groundrag.vectorstore import factory as store_factory
from groundrag.vectorstore.schemas import IndexMatch

# ---------------------------------------------------------------------------
# Synthetic knowledge base content
# ---------------------------------------------------------------------------

LIBRARY_TEXT = (
    "The campus has a central library. The library is open from 8am to 10pm "
    "on weekdays and from 10am to 6pm on weekends."
)
ADMISSIONS_TEXT = (
    "Admission to the engineering programme requires an entrance examination "
    "and a minimum of 60 percent in the qualifying examination."
)
HISTORY_TEXT = "The college was founded in 1985 and is affiliated with the state university."


@pytest.fixture(autouse=True)
def _clear_factory_caches():
    provider_factory.clear_cache()
    store_factory.clear_cache()
    yield
    provider_factory.clear_cache()
    store_factory.clear_cache()


@pytest.fixture
def kb_index_matches() -> list[IndexMatch]:
    """Raw index hits as a Pinecone-style index would return them."""
    return [
        IndexMatch(
            id="chunk-1",
            score=0.91,
            metadata={
                "text": LIBRARY_TEXT,
                "source": "facilities.md",
                "section_title": "Library",
                "pageId": "page-101",
            },
        ),
        IndexMatch(
            id="chunk-2",
            score=0.84,
            metadata={
                "text": ADMISSIONS_TEXT,
                "source": "admissions.md",
                "loc.lines.from": 12.0,
                "loc.lines.to": 30.0,
            },
        ),
        IndexMatch(
            id="chunk-3",
            score=0.80,
            metadata={"text": HISTORY_TEXT, "source": "about.md"},
        ),
    ]


@pytest.fixture
def kb_matches() -> list[Match]:
    return [
        Match(
            id="chunk-1",
            score=0.91,
            text=LIBRARY_TEXT,
            source="facilities.md",
            section_title="Library",
            page_reference="page-101",
        ),
        Match(
            id="chunk-2",
            score=0.84,
            text=ADMISSIONS_TEXT,
            source="admissions.md",
            line_range=LineRange(start=12, end=30),
        ),
        Match(id="chunk-3", score=0.80, text=HISTORY_TEXT, source="about.md"),
    ]


@pytest.fixture
def kb_context(kb_matches: list[Match]) -> str:
    return "\n\n".join(m.text for m in kb_matches)
