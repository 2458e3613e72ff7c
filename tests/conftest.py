"""
Shared test fixtures and environment setup.

Environment variables are set before any src module is imported so that
pydantic-settings ``Settings`` can be instantiated without a .env file.
Redis is provided via the ``fakeredis`` package.
"""

import os
import sys

# Inject required env vars before config.Settings is instantiated.
os.environ.setdefault("DATAVERSE_URL", "https://test.crm.dynamics.com")
os.environ.setdefault("CLIENT_ID", "00000000-0000-0000-0000-000000000000")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")

# Ensure src/ is on the import path.
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))


# ---------------------------------------------------------------------------
# Patch Redis to use fakeredis before any src module connects
# ---------------------------------------------------------------------------

import fakeredis
import redis as _real_redis_module

_fake_server = fakeredis.FakeServer()


def _fake_from_url(url, **kwargs):
    return fakeredis.FakeRedis(server=_fake_server, decode_responses=kwargs.get("decode_responses", False))


_real_redis_module.Redis.from_url = staticmethod(_fake_from_url)


# ---------------------------------------------------------------------------
# Per-test isolation: flush fakeredis between tests
# ---------------------------------------------------------------------------

import pytest


@pytest.fixture(autouse=True)
def _flush_fakeredis():
    """Flush all fakeredis data before each test for isolation."""
    _fake_server.connected = True
    r = fakeredis.FakeRedis(server=_fake_server)
    r.flushall()
    yield
    r.flushall()
