"""
Pipeline result contracts.

ScoreResult is what a single scoring call returns; BatchScoringResult is the
aggregate of a batch run. Enrichment patches are plain dicts keyed by
PATCH_FIELDS.
"""
from dataclasses import dataclass, asdict
from typing import Any, Dict

HIGH = 'high'
MEDIUM = 'medium'
LOW = 'low'
TIERS = (HIGH, MEDIUM, LOW)

# Profile fields an enrichment source may supply, in display order.
PATCH_FIELDS = (
    'first_name',
    'last_name',
    'title',
    'company',
    'avatar',
    'location',
    'industry',
    'bio',
    'linkedin',
)

EnrichmentPatch = Dict[str, Any]


@dataclass(frozen=True)
class ScoreResult:
    """Tier, raw similarity and a short explanation for one lead."""
    tier: str
    similarity: float
    explanation: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BatchScoringResult:
    """Running totals for a batch scoring pass over one event's leads."""
    total: int
    processed: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    failed: int = 0

    def record(self, tier: str):
        """Count one successfully scored and persisted lead."""
        if tier not in TIERS:
            raise ValueError(f"Unknown tier '{tier}'")
        setattr(self, tier, getattr(self, tier) + 1)
        self.processed += 1

    def record_failure(self):
        self.failed += 1

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
