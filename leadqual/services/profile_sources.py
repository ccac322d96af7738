"""
Profile lookup sources — Clearbit (primary) and PhantomBuster (fallback).

Every lookup has the same shape: ``async (email) -> patch | None``. A missing
match is None, not an error. Missing credentials also yield None (with a
warning) so the enrichment chain can decide what to do. Real provider failures
raise ProfileLookupError (or CircuitOpenError) and are handled by the caller.
"""
import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, NamedTuple, Optional

import httpx

from leadqual.config import (
    CLEARBIT_API_KEY, CLEARBIT_API_URL,
    PHANTOMBUSTER_API_KEY, PHANTOMBUSTER_AGENT_ID, PHANTOMBUSTER_API_URL,
    PHANTOMBUSTER_POLL_INTERVAL, PHANTOMBUSTER_MAX_POLLS,
    PROFILE_LOOKUP_TIMEOUT,
)
from leadqual.services.circuit_breaker import get_breaker

logger = logging.getLogger('services.profile_sources')

Patch = Dict[str, Any]


class ProfileLookupError(Exception):
    """A profile provider returned an unexpected response."""
    def __init__(self, provider: str, message: str, status_code: Optional[int] = None):
        self.provider = provider
        self.status_code = status_code
        super().__init__(f"{provider}: {message}")


class ProfileSource(NamedTuple):
    name: str
    lookup: Callable[[str], Awaitable[Optional[Patch]]]
    is_configured: Callable[[], bool]


def _compact(patch: Patch) -> Patch:
    """Drop keys whose value is None or an empty string."""
    return {k: v for k, v in patch.items() if v not in (None, '')}


# ── Clearbit ─────────────────────────────────────────────────────────────────

def clearbit_configured() -> bool:
    return bool(CLEARBIT_API_KEY)


def parse_clearbit_person(data: Dict[str, Any]) -> Patch:
    """Map a Clearbit Person payload onto patch fields."""
    name = data.get('name') or {}
    employment = data.get('employment') or {}
    linkedin = data.get('linkedin') or {}
    handle = linkedin.get('handle')
    return _compact({
        'first_name': name.get('givenName'),
        'last_name': name.get('familyName'),
        'title': employment.get('title'),
        'company': employment.get('name'),
        'avatar': data.get('avatar'),
        'location': data.get('location'),
        'bio': data.get('bio'),
        'linkedin': f'https://linkedin.com/in/{handle}' if handle else None,
    })


async def _fetch_clearbit(email: str) -> Optional[Patch]:
    async with httpx.AsyncClient(timeout=PROFILE_LOOKUP_TIMEOUT) as http:
        response = await http.get(
            CLEARBIT_API_URL,
            params={'email': email},
            headers={'Authorization': f'Bearer {CLEARBIT_API_KEY}'},
        )

    # 404 = unknown person, 202 = lookup queued on Clearbit's side
    if response.status_code in (404, 202):
        return None
    if response.status_code != 200:
        raise ProfileLookupError('clearbit', response.reason_phrase or 'request failed',
                                 status_code=response.status_code)

    patch = parse_clearbit_person(response.json())
    return patch or None


async def lookup_clearbit(email: str) -> Optional[Patch]:
    """Primary source: Clearbit Person API (name, title, company, avatar)."""
    if not clearbit_configured():
        logger.warning("CLEARBIT_API_KEY not set — Clearbit enrichment disabled")
        return None
    return await get_breaker('clearbit').call(_fetch_clearbit, email)


# ── PhantomBuster ────────────────────────────────────────────────────────────

def phantombuster_configured() -> bool:
    return bool(PHANTOMBUSTER_API_KEY and PHANTOMBUSTER_AGENT_ID)


def parse_phantombuster_output(output: Any) -> Patch:
    """Map a finished LinkedIn-scraper container output onto patch fields."""
    if isinstance(output, str):
        try:
            output = json.loads(output)
        except json.JSONDecodeError:
            return {}
    if isinstance(output, list):
        output = output[0] if output else {}
    if not isinstance(output, dict):
        return {}
    return _compact({
        'avatar': output.get('profileImage') or output.get('imgUrl'),
        'title': output.get('title') or output.get('job'),
        'company': output.get('company'),
        'location': output.get('location'),
        'industry': output.get('industry'),
        'bio': output.get('summary') or output.get('description'),
        'linkedin': output.get('profileUrl') or output.get('linkedinProfileUrl'),
    })


async def _fetch_phantombuster(email: str) -> Optional[Patch]:
    headers = {'X-Phantombuster-Key': PHANTOMBUSTER_API_KEY}

    async with httpx.AsyncClient(timeout=PROFILE_LOOKUP_TIMEOUT) as http:
        launch = await http.post(
            f'{PHANTOMBUSTER_API_URL}/agents/launch',
            headers=headers,
            json={'id': PHANTOMBUSTER_AGENT_ID, 'argument': {'emailSearch': email}},
        )
        if launch.status_code != 200:
            raise ProfileLookupError('phantombuster', 'agent launch failed',
                                     status_code=launch.status_code)
        container_id = launch.json().get('containerId')
        if not container_id:
            raise ProfileLookupError('phantombuster', 'launch returned no containerId')

        result = None
        for _ in range(PHANTOMBUSTER_MAX_POLLS):
            await asyncio.sleep(PHANTOMBUSTER_POLL_INTERVAL)
            status = await http.get(
                f'{PHANTOMBUSTER_API_URL}/containers/fetch-output',
                headers=headers,
                params={'id': container_id},
            )
            if status.status_code == 200:
                result = status.json()
                if result.get('status') == 'finished':
                    break

    if not result or result.get('status') != 'finished' or not result.get('output'):
        logger.info("PhantomBuster container %s produced no output", container_id)
        return None

    patch = parse_phantombuster_output(result['output'])
    return patch or None


async def lookup_phantombuster(email: str) -> Optional[Patch]:
    """Fallback source: PhantomBuster LinkedIn scraper (avatar, title, company)."""
    if not phantombuster_configured():
        logger.warning("PhantomBuster credentials not set — PhantomBuster enrichment disabled")
        return None
    return await get_breaker('phantombuster').call(_fetch_phantombuster, email)


# ── Source registry ──────────────────────────────────────────────────────────

CLEARBIT = ProfileSource('clearbit', lookup_clearbit, clearbit_configured)
PHANTOMBUSTER = ProfileSource('phantombuster', lookup_phantombuster, phantombuster_configured)

# Order is precedence: earlier sources win on conflicting fields.
DEFAULT_SOURCES = (CLEARBIT, PHANTOMBUSTER)
