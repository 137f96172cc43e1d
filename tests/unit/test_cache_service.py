"""
Unit tests for the catalog cache (Redis replaced by an in-memory client).
"""

from decimal import Decimal

from redis.exceptions import ConnectionError

from rera_quotes.services.cache_service import CatalogCache


class FakeRedis:
    def __init__(self):
        self.store = {}
        self.ttls = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl

    def delete(self, key):
        self.store.pop(key, None)


class BrokenRedis:
    def get(self, key):
        raise ConnectionError('gone')

    def setex(self, key, ttl, value):
        raise ConnectionError('gone')


def _cache(client):
    cache = CatalogCache()
    cache.client = client
    cache.key = 'test:reference:catalog'
    return cache


class TestCatalogCache:

    def test_disabled_cache_always_loads(self):
        cache = CatalogCache()
        calls = []

        def loader():
            calls.append(1)
            return {'services': []}

        assert cache.enabled is False
        cache.fetch(loader)
        cache.fetch(loader)
        assert len(calls) == 2

    def test_fetch_caches_with_exact_decimals(self):
        client = FakeRedis()
        cache = _cache(client)
        catalog = {'regions': [{'id': 1, 'name': 'Pune', 'multiplier': Decimal('1.150')}]}
        calls = []

        def loader():
            calls.append(1)
            return catalog

        cache.fetch(loader)
        cached = cache.fetch(loader)

        assert len(calls) == 1
        assert client.ttls['test:reference:catalog'] == 300
        assert cached['regions'][0]['multiplier'] == Decimal('1.150')
        assert isinstance(cached['regions'][0]['multiplier'], Decimal)

    def test_invalidate(self):
        client = FakeRedis()
        cache = _cache(client)
        cache.write({'services': []})

        assert cache.invalidate() is True
        assert cache.read() is None

    def test_unreadable_entry_is_dropped(self):
        client = FakeRedis()
        client.store['test:reference:catalog'] = '{not json'
        cache = _cache(client)

        assert cache.read() is None
        assert 'test:reference:catalog' not in client.store

    def test_redis_errors_fall_through_to_loader(self):
        cache = _cache(BrokenRedis())

        assert cache.fetch(lambda: {'services': [1]}) == {'services': [1]}

    def test_init_app_respects_config(self, app):
        cache = CatalogCache()
        cache.init_app(app)

        assert cache.enabled is False
        assert cache.key.endswith(':reference:catalog')
