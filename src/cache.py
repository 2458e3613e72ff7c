"""
Redis-backed cache for WhoAmI identity and table metadata.

Keys (all JSON values, expiry handled by Redis):
  mcp:whoami:<user_oid|local>   : WhoAmI result per signed-in user
  mcp:tables                    : list of tables (logical name, display name, entity set)
  mcp:columns:<table>           : column metadata of one table

TTL policy:
  - WhoAmI: WHOAMI_CACHE_TTL_SECONDS (24 hours by default). Invalidated
    explicitly on sign-out.
  - Columns: METADATA_CACHE_TTL_SECONDS (1 hour by default). Form and view
    editing needs correct column names, but schema changes are rare.
    Set to 0 to disable column caching entirely.
  - Tables: TABLES_CACHE_TTL_SECONDS (24 hours by default).

The Redis connection is created lazily on first use, so importing this module
never touches the network.
"""

import json
import logging
from typing import Any, Optional

import redis

from config import settings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

WHOAMI_CACHE_TTL_SECONDS: int = settings.whoami_cache_ttl_seconds
METADATA_CACHE_TTL_SECONDS: int = settings.metadata_cache_ttl_seconds
TABLES_CACHE_TTL_SECONDS: int = settings.tables_cache_ttl_seconds

_PREFIX = "mcp:"
_WHOAMI_PREFIX = _PREFIX + "whoami:"
_COLUMNS_PREFIX = _PREFIX + "columns:"
_TABLES_KEY = _PREFIX + "tables"
_LOCAL_USER = "local"

_client: Optional[redis.Redis] = None


def _redis() -> redis.Redis:
    global _client
    if _client is None:
        _client = redis.Redis.from_url(settings.redis_url, decode_responses=True)
    return _client


def _get_json(key: str) -> Optional[Any]:
    raw = _redis().get(key)
    if raw is None:
        return None
    return json.loads(raw)


def _set_json(key: str, value: Any, ttl: int) -> None:
    _redis().setex(key, ttl, json.dumps(value))


def _delete_matching(pattern: str) -> int:
    client = _redis()
    keys = list(client.scan_iter(match=pattern))
    if keys:
        client.delete(*keys)
    return len(keys)


# ---------------------------------------------------------------------------
# WhoAmI cache
# ---------------------------------------------------------------------------

def _whoami_key(user_oid: Optional[str]) -> str:
    return _WHOAMI_PREFIX + (user_oid or _LOCAL_USER)


def get_whoami(user_oid: Optional[str] = None) -> Optional[dict]:
    """Return the cached WhoAmI result for *user_oid* (None = local user)."""
    return _get_json(_whoami_key(user_oid))


def set_whoami(user_oid: Optional[str], data: dict) -> None:
    _set_json(_whoami_key(user_oid), data, WHOAMI_CACHE_TTL_SECONDS)
    logger.debug("WhoAmI cached: UserId=%s", data.get("UserId"))


def invalidate_whoami(user_oid: Optional[str] = None) -> None:
    """Drop the identity of one user, or of every user when *user_oid* is None."""
    if user_oid:
        _redis().delete(_whoami_key(user_oid))
        logger.info("WhoAmI cache invalidated for %s", user_oid)
    else:
        count = _delete_matching(_WHOAMI_PREFIX + "*")
        logger.info("WhoAmI cache invalidated (%d entries)", count)


# ---------------------------------------------------------------------------
# Column metadata cache
# ---------------------------------------------------------------------------

def get_columns(table: str) -> Optional[list[dict]]:
    """
    Return cached column metadata for *table*, or None.

    A TTL of 0 disables caching entirely (always None, forcing a fresh fetch).
    """
    if METADATA_CACHE_TTL_SECONDS == 0:
        return None
    data = _get_json(_COLUMNS_PREFIX + table)
    if data is not None:
        logger.debug("Column cache hit for '%s'", table)
    return data


def set_columns(table: str, columns: list[dict]) -> None:
    if METADATA_CACHE_TTL_SECONDS == 0:
        return
    _set_json(_COLUMNS_PREFIX + table, columns, METADATA_CACHE_TTL_SECONDS)
    logger.debug("Columns cached for '%s' (%d columns)", table, len(columns))


def invalidate_columns(table: Optional[str] = None) -> None:
    """Invalidate one table's columns, or all cached columns when *table* is None."""
    if table:
        _redis().delete(_COLUMNS_PREFIX + table)
        logger.info("Column cache invalidated for '%s'", table)
    else:
        count = _delete_matching(_COLUMNS_PREFIX + "*")
        logger.info("Entire column cache invalidated (%d tables)", count)


def get_cached_column_tables() -> list[str]:
    """Names of the tables whose columns are currently cached, sorted."""
    return sorted(
        key[len(_COLUMNS_PREFIX):] for key in _redis().scan_iter(match=_COLUMNS_PREFIX + "*")
    )


# ---------------------------------------------------------------------------
# Tables list cache
# ---------------------------------------------------------------------------

def get_tables() -> Optional[list[dict]]:
    return _get_json(_TABLES_KEY)


def set_tables(tables: list[dict]) -> None:
    _set_json(_TABLES_KEY, tables, TABLES_CACHE_TTL_SECONDS)
    logger.debug("Tables list cached (%d tables)", len(tables))


def invalidate_tables() -> None:
    _redis().delete(_TABLES_KEY)
    logger.info("Tables list cache invalidated")
