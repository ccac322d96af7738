"""
Shared client instances — Redis (asyncio) and OpenAI (async).

Both clients hold connection pools bound to the event loop that opened them,
so one instance is kept per running loop. A synchronous host that calls
asyncio.run() per request gets fresh clients on each new loop instead of
reusing connections from a closed one.

Nothing connects at import time, so importing this module is always safe
(even when env vars are missing during tests).
"""
import asyncio
import logging
import weakref

import redis.asyncio as aioredis
from openai import AsyncOpenAI

from leadqual.config import REDIS_URL, OPENAI_API_KEY, OPENAI_TIMEOUT

logger = logging.getLogger('leadqual.extensions')

if not OPENAI_API_KEY:
    logger.warning("OPENAI_API_KEY not set — lead scoring will fall back to defaults")

# event loop → {client name: client}; entries vanish with their loop
_loop_clients = weakref.WeakKeyDictionary()


def _for_running_loop(name, factory):
    loop = asyncio.get_running_loop()
    clients = _loop_clients.setdefault(loop, {})
    if name not in clients:
        clients[name] = factory()
        logger.debug("Created %s client for loop %#x", name, id(loop))
    return clients[name]


# ── Redis ─────────────────────────────────────────────────────────────────────

def get_redis():
    """Redis client for the running event loop."""
    return _for_running_loop(
        'redis', lambda: aioredis.from_url(REDIS_URL, decode_responses=True),
    )


# ── OpenAI ────────────────────────────────────────────────────────────────────

def get_openai_client():
    """AsyncOpenAI client for the running event loop, or None without an API key."""
    if not OPENAI_API_KEY:
        return None
    return _for_running_loop(
        'openai', lambda: AsyncOpenAI(api_key=OPENAI_API_KEY, timeout=OPENAI_TIMEOUT),
    )
