"""
Lead qualification pipeline.

Embedding-based lead scoring, profile enrichment with ordered fallback, and
rate-limited batch re-scoring for conference lead capture.
"""
import importlib

__version__ = '1.0.0'


def init_pipeline(create_tables: bool = False):
    """
    Configure logging, register provider circuit breakers and load models.

    Call once at process start (request handler bootstrap, worker, script).
    """
    from leadqual.logging_config import configure_logging

    configure_logging()

    from leadqual.services.circuit_breaker import init_breakers
    init_breakers()

    # Import models so Base.metadata knows about them (required for SQLAlchemy).
    importlib.import_module('leadqual.models.event')
    importlib.import_module('leadqual.models.lead')

    if create_tables:
        from leadqual.database import Base, engine
        Base.metadata.create_all(engine)
