"""
Lead scoring — embedding similarity against an ideal customer profile.

A lead's profile text and the ideal-customer description are embedded, compared
by cosine similarity, bucketed into a tier, and explained in a couple of
sentences by the LLM.

score() never raises: any provider or math failure degrades to FALLBACK_RESULT.
rank_leads() orders precomputed lead embeddings by fit and does raise on bad
input, since a partial ranking would be misleading.
"""
import asyncio
import logging
import os
from typing import Any, Awaitable, Callable, Dict, Hashable, List, Mapping, Optional, Sequence, Tuple

import yaml

from leadqual.pipeline.base import HIGH, MEDIUM, LOW, ScoreResult
from leadqual.services import openai_client
from leadqual.services.vector_math import cosine_similarity

logger = logging.getLogger('pipeline.scoring')

# Tier thresholds: inclusive lower bounds.
HIGH_THRESHOLD = 0.75
MEDIUM_THRESHOLD = 0.50

MAX_EXPLANATION_LENGTH = 200
EMPTY_EXPLANATION = "No explanation available"

FALLBACK_RESULT = ScoreResult(
    tier=MEDIUM,
    similarity=0.5,
    explanation="Lead could not be automatically scored. Please review manually.",
)


# ── Scoring config (YAML with hardcoded fallback) ────────────────────────────

_scoring_config = None


def _default_config():
    """Hardcoded fallback if YAML is missing."""
    return {
        'version': 'default',
        'ideal_customer_profile': (
            "A decision maker (Director level or above) from a mid to large-sized company "
            "in the technology, finance, or healthcare industries. They have budget authority "
            "and are actively looking for solutions to improve their business operations. "
            "They're interested in innovation and improving efficiency."
        ),
        'explanation': {
            'max_tokens': 120,
            'temperature': 0.7,
        },
    }


def load_scoring_config():
    """Load scoring config from YAML, with in-memory cache and hardcoded fallback."""
    global _scoring_config
    if _scoring_config is not None:
        return _scoring_config

    config_path = os.path.join(os.path.dirname(__file__), 'scoring_config.yaml')
    try:
        with open(config_path, 'r') as f:
            _scoring_config = yaml.safe_load(f)
        logger.info("Config loaded from YAML (version=%s)", _scoring_config.get('version', '?'))
    except Exception as e:
        logger.warning("YAML config not found (%s), using defaults", e)
        _scoring_config = _default_config()

    return _scoring_config


def default_ideal_customer_text() -> str:
    cfg = load_scoring_config()
    return cfg.get('ideal_customer_profile') or _default_config()['ideal_customer_profile']


# ── Pure helpers ──────────────────────────────────────────────────────────────

def build_lead_profile_text(lead: Mapping[str, Any]) -> str:
    """Name, title, company, email, notes — always in this order."""
    name = ' '.join(p for p in (lead.get('first_name') or '', lead.get('last_name') or '') if p)
    return (
        f"Name: {name}\n"
        f"Title: {lead.get('title') or 'Unknown'}\n"
        f"Company: {lead.get('company') or 'Unknown'}\n"
        f"Email: {lead.get('email') or ''}\n"
        f"Notes: {lead.get('notes') or ''}"
    )


def resolve_ideal_customer_text(criteria: Optional[str]) -> str:
    """Event criteria when given and non-blank, else the built-in default."""
    if criteria and criteria.strip():
        return criteria
    return default_ideal_customer_text()


def ideal_customer_text_for(industry: str, use_case: str) -> str:
    """Ideal-customer description built from an industry and a use case."""
    industry = (industry or '').strip()
    use_case = (use_case or '').strip()
    if not industry and not use_case:
        raise ValueError("industry or use_case is required")
    return f"Ideal customer profile for {industry or 'any industry'} with use case: {use_case or 'unspecified'}"


def classify_tier(similarity: float) -> str:
    if similarity >= HIGH_THRESHOLD:
        return HIGH
    if similarity >= MEDIUM_THRESHOLD:
        return MEDIUM
    return LOW


def truncate_explanation(text: str, limit: int = MAX_EXPLANATION_LENGTH) -> str:
    if len(text) <= limit:
        return text
    return text[:limit - 3] + '...'


def build_explanation_prompt(profile_text: str, ideal_text: str, tier: str, similarity: float) -> str:
    return f"""I'm analyzing a potential sales lead with the following profile:
{profile_text}

Compare this to our ideal customer profile criteria:
{ideal_text}

Based on the profile data, explain in 2-3 short sentences why this lead is scored as "{tier}" quality (similarity score: {round(similarity * 100)}%).
Focus on specific attributes like job title, company, and potential interest signals.
Your response should be 2-3 sentences only, and please be constructive even for low-scored leads."""


def rank_leads(
    embeddings: Mapping[Hashable, Sequence[float]],
    ideal_vec: Sequence[float],
) -> List[Tuple[Hashable, float]]:
    """
    (lead_id, similarity) pairs, best fit first.

    Ties keep the input order. A vector whose length differs from ideal_vec
    raises DimensionMismatch for the whole ranking.
    """
    scored = [(lead_id, cosine_similarity(vec, ideal_vec)) for lead_id, vec in embeddings.items()]
    return sorted(scored, key=lambda pair: pair[1], reverse=True)


# ── Scorer ────────────────────────────────────────────────────────────────────

class LeadScorer:
    """
    Scores one lead at a time against an ideal customer description.

    The embedding and text-generation calls are injectable so tests and
    alternative providers can swap them without patching module globals.
    """

    def __init__(
        self,
        embed: Callable[[str], Awaitable[List[float]]] = None,
        generate: Callable[..., Awaitable[str]] = None,
    ):
        self.embed = embed or openai_client.generate_embedding
        self.generate = generate or openai_client.generate_text

    async def score(self, lead: Mapping[str, Any], ideal_customer_text: Optional[str] = None) -> ScoreResult:
        try:
            return await self._score(lead, ideal_customer_text)
        except Exception:
            lead_id = lead.get('id') if isinstance(lead, Mapping) else None
            logger.error(
                "Scoring failed for lead %s — using fallback", lead_id,
                exc_info=True, extra={'lead_id': lead_id},
            )
            return FALLBACK_RESULT

    async def _score(self, lead: Mapping[str, Any], ideal_customer_text: Optional[str]) -> ScoreResult:
        profile_text = build_lead_profile_text(lead)
        ideal_text = resolve_ideal_customer_text(ideal_customer_text)

        lead_vec, ideal_vec = await asyncio.gather(
            self.embed(profile_text),
            self.embed(ideal_text),
        )
        similarity = cosine_similarity(lead_vec, ideal_vec)
        tier = classify_tier(similarity)

        explanation = await self._explain(profile_text, ideal_text, tier, similarity)

        logger.info("Lead %s scored %s (similarity=%.3f)", lead.get('id', '?'), tier, similarity)
        return ScoreResult(tier=tier, similarity=similarity, explanation=explanation)

    async def _explain(self, profile_text: str, ideal_text: str, tier: str, similarity: float) -> str:
        settings: Dict[str, Any] = load_scoring_config().get('explanation') or {}
        prompt = build_explanation_prompt(profile_text, ideal_text, tier, similarity)
        text = await self.generate(
            prompt,
            max_tokens=settings.get('max_tokens', 120),
            temperature=settings.get('temperature', 0.7),
        )
        return truncate_explanation(text or EMPTY_EXPLANATION)
