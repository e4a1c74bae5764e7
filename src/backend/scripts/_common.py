"""
Common utilities for backend scripts.

Sets up the Python path so scripts can be run directly
(python scripts/foo.py) as well as as modules (python -m scripts.foo),
and builds the session factory they share.

Usage:
    from scripts._common import open_session_factory
    # Now you can import from db, models, services, etc.
"""

import sys
from pathlib import Path

BACKEND_ROOT = Path(__file__).parent.parent
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))


def open_session_factory():
    """Engine and session factory for the configured database."""
    from core.config import settings
    from db.session import create_engine_for_url, create_session_factory

    engine = create_engine_for_url(settings.database_url, echo=settings.DB_ECHO)
    return engine, create_session_factory(engine)
