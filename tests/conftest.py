"""Shared test fixtures."""
import pytest
from unittest.mock import patch
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from leadqual.database import Base


class FakeRedis:
    """Minimal in-memory stand-in for redis.asyncio used by circuit breakers."""

    def __init__(self):
        self.get_store = {}
        self.hash_store = {}

    async def get(self, key):
        return self.get_store.get(key)

    async def set(self, key, value):
        self.get_store[key] = str(value)

    async def incr(self, key):
        val = int(self.get_store.get(key, 0)) + 1
        self.get_store[key] = str(val)
        return val

    async def delete(self, *keys):
        for k in keys:
            self.get_store.pop(k, None)
            self.hash_store.pop(k, None)

    async def hset(self, key, field, value):
        self.hash_store.setdefault(key, {})[field] = value

    async def hincrby(self, key, field, amount):
        h = self.hash_store.setdefault(key, {})
        h[field] = str(int(h.get(field, 0)) + amount)

    async def hgetall(self, key):
        return dict(self.hash_store.get(key, {}))

    def pipeline(self):
        return FakePipeline(self)


class FakePipeline:
    """Buffers commands like a redis.asyncio pipeline; execute() applies them."""

    def __init__(self, redis):
        self._redis = redis
        self._ops = []

    def set(self, key, value):
        self._ops.append(('set', key, value))
        return self

    def delete(self, *keys):
        self._ops.append(('delete', keys))
        return self

    def hincrby(self, key, field, amount):
        self._ops.append(('hincrby', key, field, amount))
        return self

    def hset(self, key, field, value):
        self._ops.append(('hset', key, field, value))
        return self

    async def execute(self):
        for op in self._ops:
            if op[0] == 'set':
                await self._redis.set(op[1], op[2])
            elif op[0] == 'delete':
                await self._redis.delete(*op[1])
            elif op[0] == 'hincrby':
                await self._redis.hincrby(op[1], op[2], op[3])
            elif op[0] == 'hset':
                await self._redis.hset(op[1], op[2], op[3])
        self._ops = []


@pytest.fixture
def fake_redis():
    """In-memory Redis fake with dict-backed storage."""
    return FakeRedis()


@pytest.fixture(autouse=True)
def isolated_breakers(fake_redis):
    """Every test gets an empty breaker registry backed by the fake Redis on every loop."""
    with patch('leadqual.services.circuit_breaker._registry', {}), \
            patch('leadqual.extensions.get_redis', return_value=fake_redis):
        yield


@pytest.fixture
def db_engine():
    """In-memory SQLite engine shared across threads, schema created."""
    engine = create_engine(
        'sqlite:///:memory:',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    import leadqual.models.event
    import leadqual.models.lead
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    """SQLAlchemy session bound to in-memory SQLite."""
    Session = sessionmaker(bind=db_engine)
    session = Session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def patch_db_sessions(db_engine):
    """
    Route get_session() inside leadqual.services.db to the test engine.

    The module binds get_session at import time, so patching
    leadqual.database alone would not reach it.
    """
    TestSession = sessionmaker(bind=db_engine)
    with patch('leadqual.services.db.get_session', side_effect=lambda: TestSession()):
        yield TestSession


@pytest.fixture
def make_lead():
    """Factory fixture — lead dicts shaped like services.db.lead_to_dict()."""
    counter = {'n': 0}

    def _make(**overrides):
        counter['n'] += 1
        defaults = dict(
            id=counter['n'],
            event_id=1,
            first_name='Lead',
            last_name=str(counter['n']),
            email=f"lead{counter['n']}@example.com",
            title='Engineer',
            company='Acme',
            notes='',
        )
        defaults.update(overrides)
        return defaults
    return _make


@pytest.fixture
def sample_lead():
    """The canonical high-fit lead."""
    return {
        'id': 1,
        'event_id': 1,
        'first_name': 'John',
        'last_name': 'Smith',
        'email': 'john.smith@techcorp.com',
        'title': 'CTO',
        'company': 'TechCorp',
        'notes': 'decision maker, budget authority',
    }
