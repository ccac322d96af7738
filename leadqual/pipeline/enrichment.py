"""
Profile enrichment — ordered fallback over profile lookup sources.

Sources are tried strictly in order. The first source is always consulted;
later sources only run while the merged patch is still missing an avatar.
Merging is per field: a value supplied by an earlier source is never
overwritten by a later one.
"""
import logging
from typing import Iterable, Optional, Sequence
from urllib.parse import quote

from leadqual.config import PLACEHOLDER_AVATAR_URL
from leadqual.pipeline.base import EnrichmentPatch, PATCH_FIELDS
from leadqual.services.profile_sources import DEFAULT_SOURCES, ProfileSource

logger = logging.getLogger('pipeline.enrichment')

PLACEHOLDER_TITLE = 'Unknown title (connect Clearbit or PhantomBuster for real data)'
PLACEHOLDER_COMPANY = 'Unknown company (connect Clearbit or PhantomBuster for real data)'


def _is_empty(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def merge_patches(patches: Iterable[Optional[EnrichmentPatch]]) -> Optional[EnrichmentPatch]:
    """
    Fold patches left to right; first non-empty value per field wins.

    Returns None if every patch is None. Unknown keys are carried along
    after PATCH_FIELDS.
    """
    merged = None
    for patch in patches:
        if patch is None:
            continue
        if merged is None:
            merged = {}
        for key, value in patch.items():
            if _is_empty(value):
                continue
            if _is_empty(merged.get(key)):
                merged[key] = value
    if merged is None:
        return None
    ordered = {k: merged[k] for k in PATCH_FIELDS if k in merged}
    ordered.update({k: v for k, v in merged.items() if k not in ordered})
    return ordered


def placeholder_avatar_url(email: str) -> str:
    local_part = email.split('@', 1)[0]
    return f"{PLACEHOLDER_AVATAR_URL}?name={quote(local_part)}&background=random"


def placeholder_patch(email: str) -> EnrichmentPatch:
    """Synthetic patch used when no source has credentials."""
    return {
        'title': PLACEHOLDER_TITLE,
        'company': PLACEHOLDER_COMPANY,
        'avatar': placeholder_avatar_url(email),
    }


class ProfileEnrichmentChain:
    """Runs lookup sources in order and merges their patches."""

    def __init__(self, sources: Sequence[ProfileSource] = DEFAULT_SOURCES):
        if not sources:
            raise ValueError("ProfileEnrichmentChain needs at least one source")
        self.sources = tuple(sources)

    async def enrich(self, email: str) -> Optional[EnrichmentPatch]:
        email = (email or '').strip()
        if not email:
            return None

        if not any(source.is_configured() for source in self.sources):
            logger.warning("No enrichment credentials configured — returning placeholder for %s", email)
            return placeholder_patch(email)

        patches = []
        merged = None
        for source in self.sources:
            if merged and not _is_empty(merged.get('avatar')):
                break
            patches.append(await self._lookup(source, email))
            merged = merge_patches(patches)

        if merged is None:
            logger.info("No profile found for %s", email)
        return merged

    async def _lookup(self, source: ProfileSource, email: str) -> Optional[EnrichmentPatch]:
        try:
            patch = await source.lookup(email)
        except Exception:
            logger.error(
                "Profile lookup via %s failed for %s", source.name, email,
                exc_info=True, extra={'provider': source.name},
            )
            return None
        if patch:
            logger.info("%s matched %s (%d fields)", source.name, email, len(patch))
        return patch or None
