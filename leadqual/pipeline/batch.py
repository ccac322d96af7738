"""
Batch scoring — re-score every lead of an event under a concurrency cap.

Leads are processed in fixed-size chunks. All leads in a chunk are scored
concurrently; the next chunk starts only once the whole chunk has settled, so
at most CHUNK_SIZE scoring calls are ever in flight against the provider.

Scoring itself never fails (see LeadScorer.score). A lead counts as failed
only when persisting its score raises. Failures never abort the batch.
"""
import asyncio
import logging
from typing import Any, Callable, List, Mapping, Optional, Sequence

from leadqual.pipeline.base import BatchScoringResult, ScoreResult
from leadqual.pipeline.scoring import LeadScorer

logger = logging.getLogger('pipeline.batch')

CHUNK_SIZE = 5

PersistFn = Callable[[Any, ScoreResult], None]


def chunked(items: Sequence, size: int) -> List[Sequence]:
    """Split items into consecutive slices of at most size."""
    if size < 1:
        raise ValueError("chunk size must be >= 1")
    return [items[i:i + size] for i in range(0, len(items), size)]


class BatchScoringScheduler:
    """
    Drives a LeadScorer over a lead set in sequential chunks.

    persist is the storage collaborator's write: a blocking
    ``(lead_id, ScoreResult) -> None`` callable, run off the event loop.
    Pass None to score without writing back.
    """

    def __init__(
        self,
        scorer: LeadScorer,
        persist: Optional[PersistFn] = None,
        chunk_size: int = CHUNK_SIZE,
    ):
        self.scorer = scorer
        self.persist = persist
        self.chunk_size = chunk_size

    async def score_all(
        self,
        leads: Sequence[Mapping[str, Any]],
        ideal_customer_text: Optional[str] = None,
    ) -> BatchScoringResult:
        leads = list(leads)
        result = BatchScoringResult(total=len(leads))
        chunks = chunked(leads, self.chunk_size)

        logger.info("Scoring %d leads in %d chunks of %d", len(leads), len(chunks), self.chunk_size)

        for idx, chunk in enumerate(chunks, 1):
            await asyncio.gather(*(
                self._score_one(lead, ideal_customer_text, result) for lead in chunk
            ))
            logger.debug(
                "Chunk %d/%d done — processed=%d failed=%d",
                idx, len(chunks), result.processed, result.failed,
            )

        logger.info(
            "Batch complete: %d/%d processed (high=%d medium=%d low=%d), %d failed",
            result.processed, result.total, result.high, result.medium, result.low, result.failed,
        )
        return result

    async def _score_one(
        self,
        lead: Mapping[str, Any],
        ideal_customer_text: Optional[str],
        result: BatchScoringResult,
    ):
        lead_id = lead.get('id')
        try:
            score = await self.scorer.score(lead, ideal_customer_text)
            if self.persist is not None:
                await asyncio.to_thread(self.persist, lead_id, score)
        except Exception:
            logger.error("Failed to score/persist lead %s", lead_id, exc_info=True, extra={'lead_id': lead_id})
            result.record_failure()
            return
        result.record(score.tier)
