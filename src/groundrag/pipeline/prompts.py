"""Prompt templates for grounded answering and answer verification."""

from __future__ import annotations

from collections.abc import Sequence

from groundrag.retrieval.schemas import Match

CONTEXT_SEPARATOR = "\n\n"

NO_ANSWER_SENTENCE = (
    "I do not have enough information in the provided context to answer this question."
)

# ---------------------------------------------------------------------------
# Answering
# ---------------------------------------------------------------------------

ANSWER_PROMPT_TEMPLATE = """\
You are an expert assistant. Your task is to answer the user's question based \
exclusively on the provided context.

Follow these rules strictly:
1. Use ONLY the information from the CONTEXT below to answer the QUESTION.
2. Do not use any prior knowledge or information from outside the provided context.
3. If the CONTEXT does not contain the answer to the question, you MUST state: \
"{no_answer}"
4. Mention which sections of the context you used to formulate the answer.
5. Keep the answer clear and concise. Include dates, names and figures exactly \
as they appear in the context.

<CONTEXT>
{context}
</CONTEXT>

<QUESTION>
{question}
</QUESTION>

Answer:"""

# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------

VERIFY_PROMPT_TEMPLATE = """\
You are a verification assistant. Given CONTEXT and ANSWER below, check whether \
every factual statement in ANSWER appears in CONTEXT. If something is not \
supported, return "UNSUPPORTED: <the unsupported sentence(s)>". If everything is \
supported, return "OK".

CONTEXT:
{context}

ANSWER:
{answer}

Response:"""


def build_context(matches: Sequence[Match]) -> str:
    """Join non-empty chunk texts in retrieval order, blank-line separated."""
    return CONTEXT_SEPARATOR.join(m.text for m in matches if m.text and m.text.strip())


def build_answer_prompt(question: str, context: str) -> str:
    """Embed the grounding context and the literal question in the answer template."""
    return ANSWER_PROMPT_TEMPLATE.format(
        no_answer=NO_ANSWER_SENTENCE,
        context=context,
        question=question,
    )


def build_verification_prompt(context: str, sentences: Sequence[str]) -> str:
    """Ask for an OK / UNSUPPORTED verdict on the given sentences."""
    return VERIFY_PROMPT_TEMPLATE.format(context=context, answer=". ".join(sentences))
