"""
OpenAI API helpers — embeddings and short text generation, async.

Every call is routed through the 'openai' circuit breaker. Errors propagate;
callers decide how to degrade.
"""
import logging
from typing import List

from leadqual.config import EMBEDDING_MODEL, EMBEDDING_DIMENSIONS, EXPLANATION_MODEL
from leadqual.extensions import get_openai_client

logger = logging.getLogger('services.openai')


class OpenAINotConfigured(RuntimeError):
    """Raised when a call is attempted without OPENAI_API_KEY."""


def _require_client():
    client = get_openai_client()
    if client is None:
        raise OpenAINotConfigured("OPENAI_API_KEY not set")
    return client


async def _call(func, **kwargs):
    """Route a provider coroutine through the OpenAI circuit breaker."""
    from leadqual.services.circuit_breaker import get_breaker
    cb = get_breaker('openai')
    return await cb.call(func, **kwargs)


async def generate_embedding(text: str) -> List[float]:
    """Embed a single text into a fixed-length vector."""
    if not text or not text.strip():
        raise ValueError("Cannot embed empty text")

    response = await _call(
        _require_client().embeddings.create,
        model=EMBEDDING_MODEL,
        input=text,
        dimensions=EMBEDDING_DIMENSIONS,
    )
    embedding = response.data[0].embedding
    logger.debug("Embedded %d chars → %d dims", len(text), len(embedding))
    return embedding


async def generate_text(
    prompt: str,
    model: str = EXPLANATION_MODEL,
    max_tokens: int = 120,
    temperature: float = 0.7,
) -> str:
    """Single-turn chat completion; returns the stripped message content ('' if none)."""
    response = await _call(
        _require_client().chat.completions.create,
        model=model,
        messages=[{"role": "user", "content": prompt}],
        max_tokens=max_tokens,
        temperature=temperature,
    )
    content = response.choices[0].message.content
    return (content or '').strip()
