"""Tests for the answer synthesizer — every terminal state of the pipeline."""

from __future__ import annotations

import pytest

from groundrag.config import Settings
from groundrag.errors import IndexUnavailableError, ProviderTransientError
from groundrag.pipeline.prompts import (
    NO_ANSWER_SENTENCE,
    build_answer_prompt,
    build_context,
    build_verification_prompt,
)
from groundrag.pipeline.schemas import OutcomeReason, PipelineMetadata, PipelineOutcome
from groundrag.pipeline.synthesizer import ERROR_MESSAGE, FALLBACK_MESSAGE, AnswerSynthesizer
from groundrag.providers.base import GenerationOptions, Provider
from groundrag.providers.coordinator import ProviderCoordinator
from groundrag.retrieval.retriever import VectorRetriever
from groundrag.retrieval.schemas import Match
from groundrag.vectorstore.base import VectorIndex
from groundrag.vectorstore.schemas import IndexMatch

# ---------------------------------------------------------------------------
# Mock components
# ---------------------------------------------------------------------------


class MockProvider(Provider):
    """Returns a fixed embedding and replays queued generations."""

    embed_model = "mock-embed"
    llm_model = "mock-llm"

    def __init__(self, name: str = "mock", generations: list[str] | None = None,
                 fail_with: Exception | None = None):
        self.name = name
        self.generations = list(generations or [])
        self.fail_with = fail_with
        self.prompts: list[str] = []
        self.options: list[GenerationOptions | None] = []
        self.embed_calls = 0

    def embed(self, text: str) -> list[float]:
        self.embed_calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        return [0.1, 0.2, 0.3, 0.4]

    def generate(self, prompt: str, options: GenerationOptions | None = None) -> str:
        if self.fail_with is not None:
            raise self.fail_with
        self.prompts.append(prompt)
        self.options.append(options)
        return self.generations.pop(0) if self.generations else "OK"


class MockIndex(VectorIndex):
    """Returns canned hits or raises."""

    def __init__(self, hits: list[IndexMatch] | None = None, error: Exception | None = None):
        self.hits = hits or []
        self.error = error
        self.queries: list[tuple[list[float], int]] = []

    def query(self, vector, top_k=5):
        self.queries.append((vector, top_k))
        if self.error is not None:
            raise self.error
        return self.hits[:top_k]


class StepClock:
    """Advances by a fixed step on every read."""

    def __init__(self, step: float):
        self.now = 0.0
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value


def _synthesizer(provider: MockProvider, index: MockIndex, *extra: MockProvider, **kwargs):
    providers = {p.name: p for p in (provider, *extra)}
    coordinator = ProviderCoordinator(providers, sleep=lambda _: None)
    return AnswerSynthesizer(coordinator, VectorRetriever(index), **kwargs)


def _hits(*scores: float) -> list[IndexMatch]:
    return [
        IndexMatch(
            id=f"chunk-{i}",
            score=score,
            metadata={"text": f"Chunk number {i} text.", "source": f"doc{i}.md"},
        )
        for i, score in enumerate(scores)
    ]


# ---------------------------------------------------------------------------
# Negative outcomes
# ---------------------------------------------------------------------------


class TestFallbackOutcomes:
    def test_no_matches(self):
        provider = MockProvider()
        outcome = _synthesizer(provider, MockIndex([])).answer_query("Who is the principal?")

        assert outcome.answer == FALLBACK_MESSAGE
        assert outcome.sources == []
        assert outcome.metadata.reason == OutcomeReason.NO_MATCHES
        assert outcome.metadata.matches_count == 0
        assert outcome.metadata.top_score == 0.0
        assert provider.prompts == []

    def test_low_similarity(self):
        provider = MockProvider()
        outcome = _synthesizer(provider, MockIndex(_hits(0.5, 0.4))).answer_query("q")

        assert outcome.answer == FALLBACK_MESSAGE
        assert outcome.sources == []
        assert outcome.metadata.reason == OutcomeReason.LOW_SIMILARITY
        assert outcome.metadata.top_score == 0.5
        assert outcome.metadata.matches_count == 2
        assert provider.prompts == []

    def test_threshold_is_inclusive(self, kb_index_matches):
        provider = MockProvider(generations=["The college was founded in 1985."])
        synthesizer = _synthesizer(provider, MockIndex(kb_index_matches), similarity_threshold=0.91)

        outcome = synthesizer.answer_query("When was the college founded?")
        assert outcome.metadata.reason is None

    def test_nan_score_fails_the_gate(self, kb_index_matches):
        hits = [
            IndexMatch(id=m.id, score=float("nan"), metadata=m.metadata) for m in kb_index_matches
        ]
        provider = MockProvider(generations=["The college was founded in 1985."])

        outcome = _synthesizer(provider, MockIndex(hits)).answer_query("q")

        assert outcome.answer == FALLBACK_MESSAGE
        assert outcome.metadata.reason == OutcomeReason.LOW_SIMILARITY
        assert provider.prompts == []

    def test_no_context(self):
        hits = [IndexMatch(id="a", score=0.9, metadata={"source": "empty.md", "text": "  "})]
        provider = MockProvider()
        outcome = _synthesizer(provider, MockIndex(hits)).answer_query("q")

        assert outcome.answer == FALLBACK_MESSAGE
        assert outcome.metadata.reason == OutcomeReason.NO_CONTEXT
        assert outcome.metadata.matches_count == 1
        assert provider.prompts == []

    def test_failed_sanitization(self, kb_index_matches):
        provider = MockProvider(generations=["Parking permits cost twenty dollars monthly."])
        outcome = _synthesizer(provider, MockIndex(kb_index_matches)).answer_query("q")

        assert outcome.answer == FALLBACK_MESSAGE
        assert outcome.sources == []
        assert outcome.metadata.reason == OutcomeReason.FAILED_SANITIZATION

    def test_custom_fallback_message(self):
        synthesizer = _synthesizer(MockProvider(), MockIndex([]), fallback_message="Nothing found.")
        assert synthesizer.answer_query("q").answer == "Nothing found."


class TestErrorOutcomes:
    def test_all_providers_unavailable(self):
        primary = MockProvider("primary", fail_with=ProviderTransientError("unavailable"))
        secondary = MockProvider("secondary", fail_with=ProviderTransientError("unavailable"))
        outcome = _synthesizer(primary, MockIndex(_hits(0.9)), secondary).answer_query("q")

        assert outcome.answer == ERROR_MESSAGE
        assert outcome.sources == []
        assert outcome.metadata.reason == OutcomeReason.ERROR
        assert outcome.metadata.error_type == "ProvidersExhaustedError"
        assert primary.embed_calls == 1
        assert secondary.embed_calls == 1

    def test_index_failure(self):
        index = MockIndex(error=ConnectionError("connection refused"))
        outcome = _synthesizer(MockProvider(), index).answer_query("q")

        assert outcome.answer == ERROR_MESSAGE
        assert outcome.metadata.reason == OutcomeReason.ERROR
        assert outcome.metadata.error_type == IndexUnavailableError.__name__

    def test_answer_query_never_raises(self):
        class Broken(MockIndex):
            def query(self, vector, top_k=5):
                raise KeyError("boom")

        outcome = _synthesizer(MockProvider(), Broken()).answer_query("q")
        assert outcome.metadata.reason == OutcomeReason.ERROR


# ---------------------------------------------------------------------------
# Successful answers
# ---------------------------------------------------------------------------


class TestSuccessfulAnswer:
    def test_grounded_answer_with_sources(self, kb_index_matches):
        provider = MockProvider(generations=["The library is open from 8am to 10pm on weekdays."])
        synthesizer = _synthesizer(provider, MockIndex(kb_index_matches))

        outcome = synthesizer.answer_query("When is the library open?", request_id="req-1")

        assert outcome.answer == "The library is open from 8am to 10pm on weekdays."
        assert [s.source for s in outcome.sources] == ["facilities.md", "admissions.md", "about.md"]
        meta = outcome.metadata
        assert meta.reason is None
        assert meta.matches_count == 3
        assert meta.top_score == 0.91
        assert meta.provider == "mock"
        assert meta.request_id == "req-1"

    def test_prompt_carries_context_and_question(self, kb_index_matches):
        provider = MockProvider(generations=["The college was founded in 1985."])
        _synthesizer(provider, MockIndex(kb_index_matches)).answer_query("When was it founded?")

        prompt = provider.prompts[0]
        assert "When was it founded?" in prompt
        assert "central library" in prompt
        assert "founded in 1985" in prompt
        assert prompt.index("central library") < prompt.index("entrance examination")

    def test_generation_options_forwarded(self, kb_index_matches):
        provider = MockProvider(generations=["The college was founded in 1985."])
        options = GenerationOptions(temperature=0.0, max_tokens=256)
        _synthesizer(
            provider, MockIndex(kb_index_matches), generation_options=options,
        ).answer_query("q")

        assert provider.options[0] == options

    def test_top_k_forwarded_to_index(self, kb_index_matches):
        index = MockIndex(kb_index_matches)
        provider = MockProvider(generations=["The college was founded in 1985."])
        _synthesizer(provider, index, top_k=2).answer_query("q")

        assert index.queries[0][1] == 2

    def test_hallucinated_sentence_removed_end_to_end(self, kb_index_matches):
        provider = MockProvider(generations=[
            "The campus has a central library. Dragons patrol the campus at night. "
            "The college was founded in 1985.",
            "UNSUPPORTED: Dragons patrol the campus at night",
        ])
        outcome = _synthesizer(provider, MockIndex(kb_index_matches)).answer_query("q")

        assert outcome.answer == (
            "The campus has a central library. The college was founded in 1985."
        )
        assert len(provider.prompts) == 2

    def test_processing_time_measured(self):
        synthesizer = _synthesizer(MockProvider(), MockIndex([]), clock=StepClock(0.25))
        assert synthesizer.answer_query("q").metadata.processing_time_ms == 250

    def test_provider_recorded_after_switch(self, kb_index_matches):
        primary = MockProvider("primary")
        secondary = MockProvider("secondary", generations=["The college was founded in 1985."])
        synthesizer = _synthesizer(primary, MockIndex(kb_index_matches), secondary)

        synthesizer.coordinator.switch_provider("secondary")
        outcome = synthesizer.answer_query("q")

        assert outcome.metadata.provider == "secondary"
        assert primary.embed_calls == 0


# ---------------------------------------------------------------------------
# Prompts and outcome serialization
# ---------------------------------------------------------------------------


class TestPrompts:
    def test_context_skips_blank_chunks(self):
        matches = [
            Match(id="a", score=0.9, text="First chunk."),
            Match(id="b", score=0.8, text=""),
            Match(id="c", score=0.7, text="Second chunk."),
        ]
        assert build_context(matches) == "First chunk.\n\nSecond chunk."

    def test_answer_prompt(self):
        prompt = build_answer_prompt("What {is} this?", "Context with {braces}.")
        assert "What {is} this?" in prompt
        assert "Context with {braces}." in prompt
        assert NO_ANSWER_SENTENCE in prompt
        assert "<CONTEXT>" in prompt

    def test_verification_prompt(self):
        prompt = build_verification_prompt("ctx", ["First claim", "Second claim"])
        assert "First claim. Second claim" in prompt
        assert '"OK"' in prompt
        assert "UNSUPPORTED" in prompt


class TestOutcomeToDict:
    def test_drops_empty_metadata(self):
        outcome = PipelineOutcome(
            answer=FALLBACK_MESSAGE,
            metadata=PipelineMetadata(query="q", reason=OutcomeReason.LOW_SIMILARITY),
        )
        data = outcome.to_dict()

        assert data["answer"] == FALLBACK_MESSAGE
        assert data["sources"] == []
        assert data["metadata"]["reason"] == "low_similarity"
        assert "error_type" not in data["metadata"]
        assert "request_id" not in data["metadata"]


class TestFromSettings:
    def test_wires_settings(self):
        settings = Settings()
        settings.retrieval.top_k = 3
        settings.retrieval.similarity_threshold = 0.6
        settings.generation.max_tokens = 512
        settings.sanitizer.overlap_threshold = 0.5
        settings.messages.fallback = "No idea."

        synthesizer = AnswerSynthesizer.from_settings(settings, index=MockIndex([]))

        assert synthesizer.top_k == 3
        assert synthesizer.similarity_threshold == 0.6
        assert synthesizer.retriever.default_top_k == 3
        assert synthesizer.generation_options.max_tokens == 512
        assert synthesizer.sanitizer.overlap_threshold == 0.5
        assert synthesizer.coordinator.active_provider == "gemini"
        assert synthesizer.fallback_message == "No idea."

    @pytest.mark.parametrize("backend", ["faiss"])
    def test_builds_local_index(self, backend):
        pytest.importorskip("faiss")
        settings = Settings()
        settings.vectorstore.backend = backend
        settings.vectorstore.dimension = 4

        synthesizer = AnswerSynthesizer.from_settings(settings)
        assert synthesizer.retriever.index.dimension == 4
