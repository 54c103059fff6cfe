"""
Pytest configuration and shared fixtures.
This file ensures the project root is in sys.path for imports and exposes
the fixtures from test_fixtures to every test module.
"""

import sys
from pathlib import Path

# Add project root to sys.path so we can import domain, services, etc.
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from test_fixtures import (  # noqa: E402,F401
    api_client,
    cache,
    catalog_client,
    db_session,
    engine,
    fake_catalog,
    plan,
    planner,
    recipes,
    resolver,
    session_factory,
    shopping,
    store,
    user_id,
)
