"""
Pipeline Manager — public entry points for the CRUD/API layer.

  score_lead(lead, criteria)    → ScoreResult
  score_event(leads, criteria)  → BatchScoringResult
  rescore_event(event_id)       → BatchScoringResult (loads leads + criteria)
  enrich_by_email(email)        → EnrichmentPatch | None
  embed_ideal_customer(industry, use_case)     → embedding vector
  rank_leads_by_fit(leads, criteria, ideal_vec) → [(lead_id, similarity)], best first

Scorer, scheduler and enrichment chain are built lazily on first use so
importing this module never touches the network or the database.
"""
import asyncio
import logging
from typing import Any, Hashable, List, Mapping, Optional, Sequence, Tuple

from leadqual.pipeline.base import BatchScoringResult, EnrichmentPatch, ScoreResult
from leadqual.pipeline.batch import CHUNK_SIZE, BatchScoringScheduler, chunked
from leadqual.pipeline.enrichment import ProfileEnrichmentChain
from leadqual.pipeline.scoring import (
    LeadScorer,
    build_lead_profile_text,
    ideal_customer_text_for,
    rank_leads,
    resolve_ideal_customer_text,
)

logger = logging.getLogger('pipeline.manager')

_scorer = None
_scheduler = None
_chain = None


def _get_scorer() -> LeadScorer:
    global _scorer
    if _scorer is None:
        _scorer = LeadScorer()
    return _scorer


def _get_scheduler() -> BatchScoringScheduler:
    global _scheduler
    if _scheduler is None:
        from leadqual.services.db import persist_lead_score
        _scheduler = BatchScoringScheduler(_get_scorer(), persist=persist_lead_score)
    return _scheduler


def _get_chain() -> ProfileEnrichmentChain:
    global _chain
    if _chain is None:
        _chain = ProfileEnrichmentChain()
    return _chain


# ── Public API ────────────────────────────────────────────────────────────────

async def score_lead(lead: Mapping[str, Any], criteria: Optional[str] = None) -> ScoreResult:
    """Score one lead. Never raises; see LeadScorer.score."""
    return await _get_scorer().score(lead, criteria)


async def score_event(
    leads: Sequence[Mapping[str, Any]],
    criteria: Optional[str] = None,
) -> BatchScoringResult:
    """Score and persist every lead in leads, CHUNK_SIZE at a time."""
    return await _get_scheduler().score_all(leads, criteria)


async def rescore_event(event_id: int) -> BatchScoringResult:
    """Reload an event's leads and criteria from the store and re-score them all."""
    from leadqual.services.db import get_leads_for_event, get_event_criteria

    criteria, leads = await asyncio.gather(
        asyncio.to_thread(get_event_criteria, event_id),
        asyncio.to_thread(get_leads_for_event, event_id),
    )
    logger.info(
        "Re-scoring event %s: %d leads (%s criteria)",
        event_id, len(leads), 'custom' if criteria else 'default',
        extra={'event_id': event_id},
    )
    return await score_event(leads, criteria)


async def enrich_by_email(email: str) -> Optional[EnrichmentPatch]:
    """Look up profile data for an email via the enrichment chain."""
    return await _get_chain().enrich(email)


async def embed_ideal_customer(industry: str, use_case: str) -> List[float]:
    """Embedding of an ideal customer described by industry and use case."""
    return await _get_scorer().embed(ideal_customer_text_for(industry, use_case))


async def rank_leads_by_fit(
    leads: Sequence[Mapping[str, Any]],
    criteria: Optional[str] = None,
    ideal_vec: Optional[Sequence[float]] = None,
) -> List[Tuple[Hashable, float]]:
    """
    Rank leads by similarity to the ideal customer, best first.

    ideal_vec (e.g. from embed_ideal_customer) takes precedence over criteria.
    Lead profiles are embedded CHUNK_SIZE at a time. Unlike score_lead, provider
    errors propagate.
    """
    embed = _get_scorer().embed
    if ideal_vec is None:
        ideal_vec = await embed(resolve_ideal_customer_text(criteria))

    embeddings = {}
    for chunk in chunked(list(leads), CHUNK_SIZE):
        vectors = await asyncio.gather(*(embed(build_lead_profile_text(lead)) for lead in chunk))
        embeddings.update((lead.get('id'), vec) for lead, vec in zip(chunk, vectors))

    ranking = rank_leads(embeddings, ideal_vec)
    logger.info("Ranked %d leads (top similarity=%.3f)", len(ranking), ranking[0][1] if ranking else 0.0)
    return ranking
