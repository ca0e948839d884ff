"""Answer synthesizer — question → embed → retrieve → gate → generate → sanitize.

``answer_query`` never raises. Weak evidence, empty context and rejected
answers are designed negative outcomes with their own reason codes; any
unexpected failure becomes the generic apology with ``reason=error``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from groundrag.config import MessageSettings, Settings
from groundrag.pipeline.prompts import build_answer_prompt, build_context
from groundrag.pipeline.sanitize import AnswerSanitizer
from groundrag.pipeline.schemas import OutcomeReason, PipelineMetadata, PipelineOutcome
from groundrag.providers.base import GenerationOptions
from groundrag.providers.coordinator import ProviderCoordinator
from groundrag.retrieval.retriever import VectorRetriever
from groundrag.vectorstore.base import VectorIndex
from groundrag.vectorstore.factory import get_vector_store, store_kwargs

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = MessageSettings().fallback
ERROR_MESSAGE = MessageSettings().error


class AnswerSynthesizer:
    """Orchestrates the grounded answering pipeline for one question at a time."""

    def __init__(
        self,
        coordinator: ProviderCoordinator,
        retriever: VectorRetriever,
        sanitizer: AnswerSanitizer | None = None,
        similarity_threshold: float = 0.75,
        top_k: int = 5,
        generation_options: GenerationOptions | None = None,
        fallback_message: str = FALLBACK_MESSAGE,
        error_message: str = ERROR_MESSAGE,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.coordinator = coordinator
        self.retriever = retriever
        self.sanitizer = sanitizer or AnswerSanitizer(coordinator)
        self.similarity_threshold = similarity_threshold
        self.top_k = top_k
        self.generation_options = generation_options or GenerationOptions()
        self.fallback_message = fallback_message
        self.error_message = error_message
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        coordinator: ProviderCoordinator | None = None,
        index: VectorIndex | None = None,
    ) -> AnswerSynthesizer:
        """Wire providers, vector index and sanitizer from settings."""
        coordinator = coordinator or ProviderCoordinator.from_settings(settings)
        if index is None:
            index = get_vector_store(settings.vectorstore.backend, **store_kwargs(settings))

        gen = settings.generation
        san = settings.sanitizer
        return cls(
            coordinator=coordinator,
            retriever=VectorRetriever(index, default_top_k=settings.retrieval.top_k),
            sanitizer=AnswerSanitizer(
                coordinator,
                min_sentence_chars=san.min_sentence_chars,
                min_word_chars=san.min_word_chars,
                overlap_threshold=san.overlap_threshold,
            ),
            similarity_threshold=settings.retrieval.similarity_threshold,
            top_k=settings.retrieval.top_k,
            generation_options=GenerationOptions(
                temperature=gen.temperature,
                max_tokens=gen.max_tokens,
                top_p=gen.top_p,
                top_k=gen.top_k,
            ),
            fallback_message=settings.messages.fallback,
            error_message=settings.messages.error,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def answer_query(self, query: str, request_id: str | None = None) -> PipelineOutcome:
        """Answer a question from the knowledge base.

        Args:
            query: The user's question, already validated by the caller.
            request_id: Optional correlation id for logs and metadata.

        Returns:
            A ``PipelineOutcome``. ``metadata.reason`` is set whenever the
            fallback or error message was returned instead of an answer.
        """
        started = self._clock()
        meta = PipelineMetadata(
            query=query,
            provider=self.coordinator.active_provider,
            request_id=request_id,
        )
        logger.info("[%s] Processing query: %s", request_id, query)

        try:
            outcome = self._run(query, meta)
        except Exception as exc:
            logger.error("[%s] Error processing query: %s", request_id, exc, exc_info=True)
            meta.reason = OutcomeReason.ERROR
            meta.error_type = type(exc).__name__
            outcome = PipelineOutcome(answer=self.error_message, metadata=meta)

        meta.processing_time_ms = int(round((self._clock() - started) * 1000))
        logger.info(
            "[%s] Query finished in %dms (reason=%s)",
            request_id,
            meta.processing_time_ms,
            meta.reason.value if meta.reason else "answered",
        )
        return outcome

    # ------------------------------------------------------------------
    # Pipeline states
    # ------------------------------------------------------------------

    def _run(self, query: str, meta: PipelineMetadata) -> PipelineOutcome:
        request_id = meta.request_id

        # EmbedQuery
        vector = self.coordinator.embed(query)

        # Retrieve
        result = self.retriever.query(vector, self.top_k)
        meta.matches_count = len(result)
        if not result:
            logger.warning("[%s] No matches found", request_id)
            return self._fallback(meta, OutcomeReason.NO_MATCHES)

        # ThresholdGate
        meta.top_score = result.top_score
        if not result.top_score >= self.similarity_threshold:
            logger.warning(
                "[%s] Low similarity score: %.4f < %.4f",
                request_id, result.top_score, self.similarity_threshold,
            )
            return self._fallback(meta, OutcomeReason.LOW_SIMILARITY)

        # BuildContext
        context = build_context(result.matches)
        if not context.strip():
            logger.warning("[%s] No usable chunk text among %d matches", request_id, len(result))
            return self._fallback(meta, OutcomeReason.NO_CONTEXT)

        # GeneratePrompt
        prompt = build_answer_prompt(query, context)
        trace = self.coordinator.generate_traced(prompt, self.generation_options)
        logger.info(
            "[%s] Answer generated by %s (%d attempts)", request_id, trace.provider, trace.attempts
        )

        # Sanitize
        sanitized = self.sanitizer.verify(trace.value, context, result.matches)
        if sanitized.answer is None:
            return self._fallback(meta, OutcomeReason.FAILED_SANITIZATION)

        return PipelineOutcome(answer=sanitized.answer, sources=sanitized.sources, metadata=meta)

    def _fallback(self, meta: PipelineMetadata, reason: OutcomeReason) -> PipelineOutcome:
        meta.reason = reason
        return PipelineOutcome(answer=self.fallback_message, metadata=meta)
