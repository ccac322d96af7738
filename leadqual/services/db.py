"""
Lead store helpers — the storage side of the scoring pipeline.

Reads return plain dicts so the pipeline never holds a live session.
persist_lead_score re-raises after rollback: the batch scheduler counts the
lead as failed instead of silently losing the write.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from leadqual.database import get_session
from leadqual.models.event import Event
from leadqual.models.lead import Lead
from leadqual.pipeline.base import EnrichmentPatch, ScoreResult

logger = logging.getLogger('services.db')

# Lead columns that enrichment is allowed to fill
_ENRICHABLE_COLUMNS = (
    'first_name', 'last_name', 'title', 'company',
    'avatar', 'linkedin', 'location', 'industry', 'bio',
)


class LeadNotFound(LookupError):
    def __init__(self, lead_id):
        self.lead_id = lead_id
        super().__init__(f"Lead {lead_id} not found")


def lead_to_dict(lead: Lead) -> Dict[str, Any]:
    return {
        'id': lead.id,
        'event_id': lead.event_id,
        'first_name': lead.first_name,
        'last_name': lead.last_name,
        'email': lead.email,
        'title': lead.title,
        'company': lead.company,
        'notes': lead.notes,
        'score': lead.score,
        'ai_similarity_score': lead.ai_similarity_score,
        'ai_score_explanation': lead.ai_score_explanation,
        'avatar': lead.avatar,
        'linkedin': lead.linkedin,
        'location': lead.location,
        'industry': lead.industry,
        'bio': lead.bio,
    }


def get_leads_for_event(event_id: int) -> List[Dict[str, Any]]:
    """All leads captured at an event, oldest first."""
    session = get_session()
    try:
        leads = (
            session.query(Lead)
            .filter(Lead.event_id == event_id)
            .order_by(Lead.id)
            .all()
        )
        return [lead_to_dict(lead) for lead in leads]
    finally:
        session.close()


def get_event_criteria(event_id: int) -> Optional[str]:
    """The event's custom scoring criteria, or None if unset / unknown event."""
    session = get_session()
    try:
        event = session.get(Event, event_id)
        if event is None:
            logger.warning("Event %s not found — using default scoring criteria", event_id)
            return None
        return event.lead_scoring_criteria or None
    finally:
        session.close()


def persist_lead_score(lead_id: int, result: ScoreResult):
    """Write tier, similarity and explanation onto the lead. Raises on failure."""
    session = get_session()
    try:
        lead = session.get(Lead, lead_id)
        if lead is None:
            raise LeadNotFound(lead_id)
        lead.score = result.tier
        lead.ai_similarity_score = result.similarity
        lead.ai_score_explanation = result.explanation
        lead.scored_at = datetime.now(timezone.utc)
        session.commit()
    except Exception:
        session.rollback()
        logger.error("Failed to persist score for lead %s", lead_id, exc_info=True)
        raise
    finally:
        session.close()


def apply_enrichment(lead_id: int, patch: EnrichmentPatch) -> List[str]:
    """
    Fill empty profile columns on a lead from an enrichment patch.

    Values already on the lead are kept. Returns the names of the columns
    that were filled.
    """
    session = get_session()
    try:
        lead = session.get(Lead, lead_id)
        if lead is None:
            raise LeadNotFound(lead_id)
        filled = []
        for column in _ENRICHABLE_COLUMNS:
            value = patch.get(column)
            if value and not getattr(lead, column):
                setattr(lead, column, value)
                filled.append(column)
        session.commit()
        return filled
    except Exception:
        session.rollback()
        logger.error("Failed to apply enrichment to lead %s", lead_id, exc_info=True)
        raise
    finally:
        session.close()
