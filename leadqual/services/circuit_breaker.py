"""
Circuit breaker pattern with Redis-backed state and health tracking.

Each breaker tracks failures per provider in Redis. States:
  - CLOSED  → normal operation, requests pass through
  - OPEN    → too many failures, requests short-circuit with CircuitOpenError
  - HALF_OPEN → after reset_timeout, allows one probe request

All Redis access goes through redis.asyncio so the event loop never blocks
on breaker bookkeeping. Breakers without an explicit client use the running
loop's client from leadqual.extensions.get_redis(), so OPEN state read from
Redis survives across asyncio.run() calls. If Redis is unreachable the
breaker fails open.
"""
import logging
import time

logger = logging.getLogger('services.circuit_breaker')

# State constants
CLOSED = 'closed'
OPEN = 'open'
HALF_OPEN = 'half_open'


class CircuitOpenError(Exception):
    """Raised when calling through an open circuit breaker."""
    def __init__(self, name, retry_after=None):
        self.name = name
        self.retry_after = retry_after
        super().__init__(f"Circuit breaker '{name}' is OPEN — provider unavailable")


class CircuitBreaker:
    """
    Redis-backed circuit breaker for async provider calls.

    Usage:
        cb = CircuitBreaker('clearbit', failure_threshold=3, reset_timeout=120)
        result = await cb.call(some_coroutine_function, arg1, arg2)

    Pass redis_client to pin the breaker to one client (tests, single-loop
    hosts); leave it None to follow the running event loop.
    """

    PREFIX = 'cb'

    def __init__(self, name, redis_client=None, failure_threshold=3, reset_timeout=300):
        self.name = name
        self._redis = redis_client
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout  # seconds before OPEN → HALF_OPEN

    @property
    def redis(self):
        if self._redis is not None:
            return self._redis
        from leadqual import extensions
        return extensions.get_redis()

    # ── Redis keys ────────────────────────────────────────────────────

    @property
    def _state_key(self):
        return f'{self.PREFIX}:{self.name}:state'

    @property
    def _failures_key(self):
        return f'{self.PREFIX}:{self.name}:failures'

    @property
    def _last_failure_key(self):
        return f'{self.PREFIX}:{self.name}:last_failure'

    @property
    def _health_key(self):
        return f'{self.PREFIX}:{self.name}:health'

    # ── State management ──────────────────────────────────────────────

    async def get_state(self):
        try:
            s = await self.redis.get(self._state_key)
            if s is None:
                return CLOSED
            if s == OPEN:
                last = await self.redis.get(self._last_failure_key)
                if last and (time.time() - float(last)) > self.reset_timeout:
                    await self._set_state(HALF_OPEN)
                    return HALF_OPEN
            return s
        except Exception:
            logger.warning("Circuit '%s' state unavailable, failing open", self.name)
            return CLOSED

    async def _set_state(self, new_state):
        try:
            await self.redis.set(self._state_key, new_state)
        except Exception:
            logger.debug("Circuit '%s' could not persist state %s", self.name, new_state)

    async def get_failure_count(self):
        try:
            val = await self.redis.get(self._failures_key)
            return int(val) if val else 0
        except Exception:
            return 0

    # ── Health metrics ────────────────────────────────────────────────

    async def _record_success(self):
        try:
            pipe = self.redis.pipeline()
            pipe.hincrby(self._health_key, 'success', 1)
            pipe.hset(self._health_key, 'last_success', str(time.time()))
            await pipe.execute()
        except Exception:
            logger.debug("Circuit '%s' could not record success", self.name)

    async def _record_failure(self, error_msg=''):
        try:
            pipe = self.redis.pipeline()
            pipe.hincrby(self._health_key, 'failure', 1)
            pipe.hset(self._health_key, 'last_failure', str(time.time()))
            if error_msg:
                pipe.hset(self._health_key, 'last_error', str(error_msg)[:200])
            await pipe.execute()
        except Exception:
            logger.debug("Circuit '%s' could not record failure", self.name)

    async def get_health(self):
        """Return health metrics dict for this provider."""
        try:
            data = await self.redis.hgetall(self._health_key)
            return {
                'name': self.name,
                'state': await self.get_state(),
                'failure_count': await self.get_failure_count(),
                'failure_threshold': self.failure_threshold,
                'reset_timeout': self.reset_timeout,
                'total_success': int(data.get('success', 0)),
                'total_failure': int(data.get('failure', 0)),
                'last_success': float(data['last_success']) if data.get('last_success') else None,
                'last_failure': float(data['last_failure']) if data.get('last_failure') else None,
                'last_error': data.get('last_error', ''),
            }
        except Exception:
            return {
                'name': self.name,
                'state': 'unknown',
                'failure_count': 0,
                'failure_threshold': self.failure_threshold,
                'reset_timeout': self.reset_timeout,
                'total_success': 0,
                'total_failure': 0,
                'last_success': None,
                'last_failure': None,
                'last_error': '',
            }

    # ── Core call logic ───────────────────────────────────────────────

    async def call(self, func, *args, **kwargs):
        """Await func(*args, **kwargs) through the circuit breaker."""
        current = await self.get_state()

        if current == OPEN:
            retry_after = None
            try:
                last = await self.redis.get(self._last_failure_key)
                if last:
                    retry_after = max(0, self.reset_timeout - (time.time() - float(last)))
            except Exception:
                pass
            raise CircuitOpenError(self.name, retry_after=retry_after)

        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            await self._on_failure(e)
            raise
        await self._on_success()
        return result

    async def _on_success(self):
        """Reset failure count, close circuit."""
        try:
            pipe = self.redis.pipeline()
            pipe.set(self._state_key, CLOSED)
            pipe.set(self._failures_key, 0)
            await pipe.execute()
        except Exception:
            logger.debug("Circuit '%s' could not reset after success", self.name)
        await self._record_success()

    async def _on_failure(self, error):
        """Increment failures, open circuit if threshold reached."""
        try:
            new_count = await self.redis.incr(self._failures_key)
            await self.redis.set(self._last_failure_key, str(time.time()))
            if new_count >= self.failure_threshold:
                await self._set_state(OPEN)
                logger.warning(
                    "Circuit '%s' OPENED after %d failures (threshold=%d): %s",
                    self.name, new_count, self.failure_threshold, error,
                )
            else:
                logger.info(
                    "Circuit '%s' failure %d/%d: %s",
                    self.name, new_count, self.failure_threshold, error,
                )
        except Exception:
            logger.debug("Circuit '%s' could not record failure count", self.name)
        await self._record_failure(str(error))

    async def reset(self):
        """Manually reset the circuit breaker to closed state."""
        try:
            pipe = self.redis.pipeline()
            pipe.set(self._state_key, CLOSED)
            pipe.set(self._failures_key, 0)
            pipe.delete(self._last_failure_key)
            await pipe.execute()
            logger.info("Circuit '%s' manually reset to CLOSED", self.name)
        except Exception as e:
            logger.error("Failed to reset circuit '%s': %s", self.name, e)


# ── Global registry ───────────────────────────────────────────────────────

_registry = {}

# name → (failure_threshold, reset_timeout)
PROVIDER_LIMITS = {
    'openai': (5, 60),
    'clearbit': (5, 120),
    'phantombuster': (3, 300),
}


def get_breaker(name, redis_client=None, **kwargs):
    """Get or create a named circuit breaker (singleton per name)."""
    if name not in _registry:
        if not kwargs and name in PROVIDER_LIMITS:
            threshold, timeout = PROVIDER_LIMITS[name]
            kwargs = {'failure_threshold': threshold, 'reset_timeout': timeout}
        _registry[name] = CircuitBreaker(name, redis_client, **kwargs)
    return _registry[name]


def get_all_breakers():
    """Return all registered circuit breakers."""
    return dict(_registry)


def init_breakers(redis_client=None):
    """Initialize standard circuit breakers for every external provider."""
    breakers = {
        name: CircuitBreaker(name, redis_client, failure_threshold=threshold, reset_timeout=timeout)
        for name, (threshold, timeout) in PROVIDER_LIMITS.items()
    }
    _registry.update(breakers)
    return breakers
