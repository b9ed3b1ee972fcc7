"""
Unit tests for the cache-aside engine and the key-variant index.
"""

from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from prometheus_client import CollectorRegistry

from shared.errors import CacheKeyError
from shared.metrics import MetricsCollector
from method_cache.app.caching import CacheEntry, KeyVariantIndex, MethodResultCache
from method_cache.app.keys import CacheKeyProvider
from method_cache.app.policy import (
    CacheConfigurationBuilder,
    ExpirationKind,
    MethodCachePolicy,
    MethodIdentity,
)
from method_cache.app.store import InMemoryStore

from .services import EXPIRATION_TOTAL_SECONDS, FULL_NAME, Book, BookService, IUserService


def build_cache(store, metrics=None):
    options = CacheConfigurationBuilder().build()
    return MethodResultCache(options, CacheKeyProvider(options), store, metrics=metrics)


class Factory:
    """Counting stand-in for the real computation."""

    def __init__(self, value):
        self.value = value
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        return self.value


class TestMethodResultCache:
    """Test cases for MethodResultCache."""

    @pytest.fixture
    def store(self):
        return InMemoryStore()

    @pytest.fixture
    def metrics(self):
        return MetricsCollector("test", CollectorRegistry())

    @pytest.fixture
    def cache(self, store, metrics):
        return build_cache(store, metrics)

    @pytest.fixture
    def identity(self):
        return MethodIdentity(IUserService, "get_full_name")

    @pytest.mark.asyncio
    async def test_miss_then_hit(self, cache, identity, metrics):
        """Test that the factory runs once for identical calls."""
        factory = Factory(FULL_NAME)
        policy = MethodCachePolicy()

        first = await cache.get_or_create(identity, [1], policy, factory, str)
        second = await cache.get_or_create(identity, [1], policy, factory, str)

        assert first == second == FULL_NAME
        assert factory.calls == 1

        registry = metrics.registry
        labels = {"method": str(identity)}
        assert registry.get_sample_value("method_cache_lookups_total", {**labels, "result": "miss"}) == 1.0
        assert registry.get_sample_value("method_cache_lookups_total", {**labels, "result": "hit"}) == 1.0

    @pytest.mark.asyncio
    async def test_cached_none_is_a_hit(self, cache, identity):
        """Test that a cached None is not mistaken for a miss."""
        factory = Factory(None)

        await cache.get_or_create(identity, [3], MethodCachePolicy(), factory)
        result = await cache.get_or_create(identity, [3], MethodCachePolicy(), factory)

        assert result is None
        assert factory.calls == 1

    @pytest.mark.asyncio
    async def test_different_arguments_are_isolated(self, cache, identity):
        """Test that each argument value gets its own entry."""
        for user_id in (1, 2, 3):
            await cache.get_or_create(identity, [user_id], MethodCachePolicy(), Factory(f"John{user_id}"))

        for user_id in (1, 2, 3):
            result = await cache.get_or_create(identity, [user_id], MethodCachePolicy(), Factory("other"))
            assert result == f"John{user_id}"

    @pytest.mark.asyncio
    async def test_typed_result(self, cache):
        """Test that hits are decoded as the declared return type."""
        identity = MethodIdentity(BookService, "get_book")
        book = Book(id=1, title="t", author="a", published=date(1870, 1, 1))

        await cache.get_or_create(identity, [1], MethodCachePolicy(), Factory(book), Book)
        result = await cache.get_or_create(identity, [1], MethodCachePolicy(), Factory(None), Book)

        assert result == book
        assert isinstance(result, Book)

    @pytest.mark.asyncio
    async def test_policy_result_type_overrides_return_type(self, cache):
        """Test decoding with the policy result type."""
        identity = MethodIdentity(BookService, "get_book")
        book = Book(id=1, title="t", author="a", published=date(1870, 1, 1))
        policy = MethodCachePolicy(result_type=Book)

        await cache.get_or_create(identity, [1], policy, Factory(book))
        result = await cache.get_or_create(identity, [1], policy, Factory(None))

        assert isinstance(result, Book)

    @pytest.mark.asyncio
    async def test_expiration_is_applied(self, store, identity):
        """Test that the translated policy reaches the store."""
        store.set = AsyncMock(wraps=store.set)
        cache = build_cache(store)
        policy = MethodCachePolicy(expiration_hours=6, expiration_minutes=30, expiration_seconds=10, sliding_expiration=True)

        await cache.get_or_create(identity, [1], policy, Factory(FULL_NAME))

        key = cache.key_provider.get_cache_key(identity, [1])
        expiration = next(call.args[2] for call in store.set.call_args_list if call.args[0] == key)
        assert expiration.kind is ExpirationKind.SLIDING
        assert expiration.seconds == EXPIRATION_TOTAL_SECONDS

    @pytest.mark.asyncio
    async def test_factory_errors_propagate(self, cache, identity, store):
        """Test that errors of the real computation are not wrapped or cached."""
        async def failing():
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            await cache.get_or_create(identity, [1], MethodCachePolicy(), failing)

        assert store.keys() == []

    @pytest.mark.asyncio
    async def test_read_failure_falls_back(self, identity, metrics):
        """Test that a broken store read is treated as a miss."""
        store = InMemoryStore()
        store.get = AsyncMock(side_effect=ConnectionError("down"))
        cache = build_cache(store, metrics)
        factory = Factory(FULL_NAME)

        result = await cache.get_or_create(identity, [1], MethodCachePolicy(), factory)

        assert result == FULL_NAME
        assert factory.calls == 1
        assert metrics.registry.get_sample_value(
            "method_cache_store_failures_total", {"operation": "read"}
        ) == 1.0

    @pytest.mark.asyncio
    async def test_write_failure_returns_value(self, identity):
        """Test that a broken store write still returns the result and skips the index."""
        store = InMemoryStore()
        store.set = AsyncMock(side_effect=ConnectionError("down"))
        cache = build_cache(store)

        with patch.object(cache.index, "record", new_callable=AsyncMock) as record:
            result = await cache.get_or_create(identity, [1], MethodCachePolicy(), Factory(FULL_NAME))

        assert result == FULL_NAME
        record.assert_not_called()

    @pytest.mark.asyncio
    async def test_undecodable_entry_is_a_miss(self, cache, store, identity):
        """Test that a corrupt payload is recomputed."""
        key = cache.key_provider.get_cache_key(identity, [1])
        await store.set(key, b"{corrupt")
        factory = Factory(FULL_NAME)

        result = await cache.get_or_create(identity, [1], MethodCachePolicy(), factory, str)

        assert result == FULL_NAME
        assert factory.calls == 1

    @pytest.mark.asyncio
    async def test_key_failure_raises_cache_key_error(self, cache, identity):
        """Test that an unencodable argument raises before the factory runs."""
        factory = Factory(FULL_NAME)

        with pytest.raises(CacheKeyError) as exc_info:
            await cache.get_or_create(identity, [object()], MethodCachePolicy(), factory)

        assert exc_info.value.code == "CACHE_KEY_ERROR"
        assert factory.calls == 0

    def test_build_cache_key(self, cache, identity):
        """Test key building on its own."""
        assert cache.build_cache_key(identity, [1]) == cache.key_provider.get_cache_key(identity, [1])

        with pytest.raises(CacheKeyError):
            cache.build_cache_key(identity, [object()])

    @pytest.mark.asyncio
    async def test_given_cache_key_is_used(self, cache, identity, store):
        """Test that a key built by the caller is not built again."""
        cache_key = cache.build_cache_key(identity, [1])

        with patch.object(cache.key_provider, "get_cache_key") as get_cache_key:
            await cache.get_or_create(identity, [1], MethodCachePolicy(), Factory(FULL_NAME), cache_key=cache_key)

        get_cache_key.assert_not_called()
        assert await store.get(cache_key) is not None

    @pytest.mark.asyncio
    async def test_index_records_written_keys(self, cache, identity):
        """Test that written keys are recorded in the index of their method."""
        for user_id in (1, 2):
            await cache.get_or_create(identity, [user_id], MethodCachePolicy(), Factory(FULL_NAME))
        await cache.get_or_create(identity, [], MethodCachePolicy(), Factory(FULL_NAME))

        entry = await cache.index.read(cache.key_provider.get_method_key(identity))

        assert entry.loaded
        assert entry.value == {
            cache.key_provider.get_cache_key(identity, [1]),
            cache.key_provider.get_cache_key(identity, [2]),
            cache.key_provider.get_method_key(identity),
        }

    @pytest.mark.asyncio
    async def test_get_entry_and_set_entry(self, cache):
        """Test the typed store helpers."""
        assert await cache.get_entry("missing", int) == CacheEntry()

        assert await cache.set_entry("k", 0, int) is True
        assert await cache.get_entry("k", int) == CacheEntry(0, True)


class TestKeyVariantIndex:
    """Test cases for KeyVariantIndex."""

    @pytest.fixture
    def store(self):
        return InMemoryStore()

    @pytest.fixture
    def index(self, store):
        return KeyVariantIndex(store)

    def test_index_key(self):
        assert KeyVariantIndex.index_key("method_result_cache_a.B.c") == "method_result_cache_a.B.c_keys"

    @pytest.mark.asyncio
    async def test_record_grows_only(self, index, store):
        """Test that the index is written only when the set grows."""
        assert await index.record("m", "m-1") is True
        assert await index.record("m", "m-2") is True
        assert await index.record("m", "m-1") is False

        assert (await index.read("m")).value == {"m-1", "m-2"}
        assert await store.get("m_keys") == b'["m-1","m-2"]'

    @pytest.mark.asyncio
    async def test_index_does_not_expire(self, index, store):
        """Test that the index is stored without expiration."""
        store.set = AsyncMock(wraps=store.set)

        await index.record("m", "m-1")

        expiration = store.set.call_args.args[2]
        assert expiration.expires is False

    @pytest.mark.asyncio
    async def test_record_skips_write_on_read_failure(self, store):
        """Test that a failed index read never overwrites the index."""
        store.get = AsyncMock(side_effect=ConnectionError("down"))
        store.set = AsyncMock()
        index = KeyVariantIndex(store)

        assert await index.record("m", "m-1") is False
        store.set.assert_not_called()

    @pytest.mark.asyncio
    async def test_record_write_failure_is_logged(self, store):
        """Test that a failed index write is logged and swallowed."""
        store.set = AsyncMock(side_effect=ConnectionError("down"))
        index = KeyVariantIndex(store)
        index.logger = MagicMock()

        assert await index.record("m", "m-1") is False
        index.logger.error.assert_called_once()

    @pytest.mark.asyncio
    async def test_clear_with_index(self, index):
        """Test the removal plan for an indexed method."""
        await index.record("m", "m-b")
        await index.record("m", "m-a")

        assert await index.clear("m") == ["m-a", "m-b", "m", "m_keys"]

    @pytest.mark.asyncio
    async def test_clear_with_bare_key_listed(self, index):
        """Test that a listed bare key is not planned twice."""
        await index.record("m", "m")

        assert await index.clear("m") == ["m", "m_keys"]

    @pytest.mark.asyncio
    async def test_clear_without_index(self, index, store):
        """Test the removal plan when no index exists."""
        assert await index.clear("m") == ["m"]

    @pytest.mark.asyncio
    async def test_clear_has_no_side_effects(self, index, store):
        """Test that planning removes nothing."""
        await index.record("m", "m-1")

        await index.clear("m")

        assert (await index.read("m")).loaded
