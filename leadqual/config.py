"""
Centralized configuration — all env vars and provider settings.
"""
import os


# ── Logging ──────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_FORMAT = os.getenv('LOG_FORMAT', 'text')

# ── Redis (circuit breaker state) ────────────────────────────────────────────
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

# ── Lead store ───────────────────────────────────────────────────────────────
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///local.db')

# ── OpenAI ────────────────────────────────────────────────────────────────────
OPENAI_API_KEY = os.getenv('OPENAI_API_KEY')
OPENAI_TIMEOUT = float(os.getenv('OPENAI_TIMEOUT', '30'))
EMBEDDING_MODEL = os.getenv('EMBEDDING_MODEL', 'text-embedding-3-small')
EMBEDDING_DIMENSIONS = int(os.getenv('EMBEDDING_DIMENSIONS', '1536'))
EXPLANATION_MODEL = os.getenv('EXPLANATION_MODEL', 'gpt-4o')

# ── Clearbit (primary enrichment) ────────────────────────────────────────────
CLEARBIT_API_KEY = os.getenv('CLEARBIT_API_KEY')
CLEARBIT_API_URL = 'https://person.clearbit.com/v2/people/find'

# ── PhantomBuster (fallback enrichment) ──────────────────────────────────────
PHANTOMBUSTER_API_KEY = os.getenv('PHANTOMBUSTER_API_KEY')
PHANTOMBUSTER_AGENT_ID = os.getenv('PHANTOMBUSTER_AGENT_ID')
PHANTOMBUSTER_API_URL = 'https://api.phantombuster.com/api/v2'
PHANTOMBUSTER_POLL_INTERVAL = float(os.getenv('PHANTOMBUSTER_POLL_INTERVAL', '5'))
PHANTOMBUSTER_MAX_POLLS = int(os.getenv('PHANTOMBUSTER_MAX_POLLS', '10'))

# ── Profile lookups ──────────────────────────────────────────────────────────
PROFILE_LOOKUP_TIMEOUT = float(os.getenv('PROFILE_LOOKUP_TIMEOUT', '10'))
PLACEHOLDER_AVATAR_URL = 'https://ui-avatars.com/api/'
