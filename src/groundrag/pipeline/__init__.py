"""Answering pipeline — synthesizer, sanitizer, prompts, citations."""

from groundrag.pipeline.sanitize import AnswerSanitizer
from groundrag.pipeline.schemas import (
    OutcomeReason,
    PipelineMetadata,
    PipelineOutcome,
    SanitizedAnswer,
    SourceCitation,
)
from groundrag.pipeline.synthesizer import AnswerSynthesizer

__all__ = [
    "AnswerSanitizer",
    "AnswerSynthesizer",
    "OutcomeReason",
    "PipelineMetadata",
    "PipelineOutcome",
    "SanitizedAnswer",
    "SourceCitation",
]
