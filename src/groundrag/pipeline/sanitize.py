"""Answer sanitization — keep only what the retrieved context supports.

Two stages:

1. Lexical overlap. Each sentence of the candidate answer is scored by the
   share of its longer words that occur verbatim in the context. Sentences at
   or above the threshold are valid, the rest suspicious.
2. Semantic verification. Only when some, but fewer than half, of the
   sentences are suspicious: the LLM is asked for an ``OK`` /
   ``UNSUPPORTED: ...`` verdict on the suspicious ones.

Half or more suspicious sentences reject the answer outright. The sanitizer
never raises; internal failures degrade to the valid sentences alone.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import Protocol

from groundrag.pipeline.citations import build_citations
from groundrag.pipeline.prompts import build_verification_prompt
from groundrag.pipeline.schemas import SanitizedAnswer, SourceCitation
from groundrag.providers.base import GenerationOptions
from groundrag.retrieval.schemas import Match

logger = logging.getLogger(__name__)

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")

VERIFIED_OK = "OK"


class TextGenerator(Protocol):
    def generate(self, prompt: str, options: GenerationOptions | None = None) -> str: ...


def split_sentences(text: str, min_chars: int = 10) -> list[str]:
    """Split on ``.``/``!``/``?`` and drop fragments of ``min_chars`` or fewer."""
    pieces = (piece.strip() for piece in _SENTENCE_SPLIT_RE.split(text or ""))
    return [piece for piece in pieces if len(piece) > min_chars]


def overlap_ratio(sentence: str, context_lower: str, min_word_chars: int = 3) -> float:
    """Share of the sentence's words (longer than ``min_word_chars``) found in the context."""
    words = [w for w in sentence.lower().split() if len(w) > min_word_chars]
    if not words:
        return 0.0
    found = sum(1 for word in words if word in context_lower)
    return found / len(words)


def join_sentences(sentences: Sequence[str]) -> str:
    return ". ".join(sentences) + "."


class AnswerSanitizer:
    """Validates a generated answer against its grounding context."""

    def __init__(
        self,
        generator: TextGenerator,
        min_sentence_chars: int = 10,
        min_word_chars: int = 3,
        overlap_threshold: float = 0.3,
        verify_options: GenerationOptions | None = None,
    ):
        self.generator = generator
        self.min_sentence_chars = min_sentence_chars
        self.min_word_chars = min_word_chars
        self.overlap_threshold = overlap_threshold
        self.verify_options = verify_options or GenerationOptions(temperature=0.1)

    def verify(self, candidate: str, context: str, matches: Sequence[Match]) -> SanitizedAnswer:
        """Return the grounded part of ``candidate``.

        Args:
            candidate: The LLM-generated answer.
            context: The grounding context the answer was generated from.
            matches: The matches the context was built from, for citations.

        Returns:
            A ``SanitizedAnswer``; ``answer`` is ``None`` on total rejection.
        """
        valid: list[str] = []
        sources: list[SourceCitation] = []
        try:
            sources = build_citations(matches)
            sentences = split_sentences(candidate, self.min_sentence_chars)
            if not sentences:
                logger.warning("Answer has no sentences long enough to verify")
                return SanitizedAnswer(answer=None)

            context_lower = (context or "").lower()
            supported = [
                overlap_ratio(s, context_lower, self.min_word_chars) >= self.overlap_threshold
                for s in sentences
            ]
            valid = [s for s, ok in zip(sentences, supported, strict=True) if ok]
            suspicious = [s for s, ok in zip(sentences, supported, strict=True) if not ok]

            for sentence in suspicious:
                logger.warning("Suspicious sentence detected: %s", sentence)

            if not suspicious:
                logger.info("Answer passed lexical verification")
                return SanitizedAnswer(answer=join_sentences(valid), sources=sources)

            if len(suspicious) * 2 >= len(sentences):
                logger.warning(
                    "Too many suspicious sentences (%d of %d), rejecting answer",
                    len(suspicious), len(sentences),
                )
                return SanitizedAnswer(answer=None)

            logger.info("Running semantic verification on %d suspicious sentences", len(suspicious))
            verdict = self.generator.generate(
                build_verification_prompt(context, suspicious),
                self.verify_options,
            )

            if verdict.strip().startswith(VERIFIED_OK):
                return SanitizedAnswer(answer=join_sentences(sentences), sources=sources)

            logger.warning("Semantic verification failed: %s", verdict.strip())
            return self._valid_only(valid, sources)

        except Exception as exc:
            logger.warning("Sanitization degraded to lexically valid sentences: %s", exc)
            return self._valid_only(valid, sources)

    @staticmethod
    def _valid_only(valid: list[str], sources: list[SourceCitation]) -> SanitizedAnswer:
        if not valid:
            return SanitizedAnswer(answer=None)
        return SanitizedAnswer(answer=join_sentences(valid), sources=sources)
