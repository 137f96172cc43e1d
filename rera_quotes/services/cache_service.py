"""
Redis cache for the pricing catalog.

Every price calculation reads the whole catalog (developer types, regions,
plot-area brackets, categories, services) and the catalog rarely changes,
so its raw rows are kept in Redis under a single key. A disabled or
unreachable Redis is not an error: reads fall through to the database.
"""

import json
import logging
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

import redis
from redis.exceptions import RedisError
from flask import Flask

logger = logging.getLogger(__name__)

CATALOG_KEY = 'reference:catalog'
DEFAULT_TTL = 300


def _encode(obj: Any) -> Any:
    # Prices and multipliers must come back as exact Decimals
    if isinstance(obj, Decimal):
        return {'__decimal__': str(obj)}
    raise TypeError(f"Cannot cache a {type(obj).__name__}")


def _decode(dct: Dict[str, Any]) -> Any:
    if '__decimal__' in dct:
        return Decimal(dct['__decimal__'])
    return dct


class CatalogCache:
    """Cache-aside holder for the catalog rows."""

    def __init__(self):
        self.client: Optional[redis.Redis] = None
        self.key = CATALOG_KEY
        self.ttl = DEFAULT_TTL

    def init_app(self, app: Flask) -> None:
        """Connect to Redis if caching is enabled; stay disabled on failure."""
        self.client = None
        self.key = f"{app.config.get('CACHE_KEY_PREFIX', 'quotations')}:{CATALOG_KEY}"
        self.ttl = app.config.get('CACHE_REFERENCE_TTL', DEFAULT_TTL)

        if not app.config.get('CACHE_ENABLED', True):
            logger.info("[CACHE] Catalog cache disabled by config")
            return

        redis_url = app.config.get('REDIS_URL', 'redis://localhost:6379/0')
        try:
            client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=3,
                socket_timeout=3,
            )
            client.ping()
        except RedisError as e:
            logger.warning(f"[CACHE] Redis unreachable at {redis_url} ({e}), catalog reads go to the database")
            return

        self.client = client
        logger.info(f"[CACHE] Catalog cache on {redis_url} (ttl={self.ttl}s)")

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def read(self) -> Optional[Dict[str, Any]]:
        """Cached catalog, or None on a miss or any Redis problem."""
        if not self.enabled:
            return None
        try:
            raw = self.client.get(self.key)
        except RedisError as e:
            logger.warning(f"[CACHE] Catalog read failed: {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw, object_hook=_decode)
        except ValueError:
            logger.warning(f"[CACHE] Unreadable entry at {self.key}, dropping it")
            self.invalidate()
            return None

    def write(self, catalog: Dict[str, Any]) -> bool:
        if not self.enabled:
            return False
        try:
            self.client.setex(self.key, self.ttl, json.dumps(catalog, default=_encode))
            return True
        except (RedisError, TypeError) as e:
            logger.warning(f"[CACHE] Catalog write failed: {e}")
            return False

    def invalidate(self) -> bool:
        """Forget the cached catalog (after seeding or editing reference data)."""
        if not self.enabled:
            return False
        try:
            self.client.delete(self.key)
        except RedisError as e:
            logger.warning(f"[CACHE] Catalog invalidation failed: {e}")
            return False
        logger.info(f"[CACHE] INVALIDATE {self.key}")
        return True

    def fetch(self, loader: Callable[[], Dict[str, Any]]) -> Dict[str, Any]:
        """Cached catalog, loading and storing it on a miss."""
        catalog = self.read()
        if catalog is None:
            catalog = loader()
            self.write(catalog)
        return catalog


catalog_cache = CatalogCache()


def init_cache(app: Flask) -> None:
    """Bind the catalog cache to the app's Redis settings."""
    catalog_cache.init_app(app)
    app.extensions['catalog_cache'] = catalog_cache
