import random

import pytest

from memhier.cache import Block, Cache, CacheSet, EvictionPolicy
from memhier.trace import block_address

INDEX_BITS = 2
OFFSET_BITS = 3


def addr(tag, index=0):
    return block_address((tag << (INDEX_BITS + OFFSET_BITS)) | (index << OFFSET_BITS), INDEX_BITS, OFFSET_BITS)


def fill_two_way(policy, rng=None):
    cache_set = CacheSet(8, 2, policy, rng)
    cache_set.read_and_allocate(addr(1), 1)
    cache_set.read_and_allocate(addr(2), 2)
    cache_set.read_and_allocate(addr(1), 3)
    return cache_set


def test_lru_evicts_least_recently_used():
    cache_set = fill_two_way(EvictionPolicy.LRU)
    evicted = cache_set.read_and_allocate(addr(3), 4)
    assert evicted.tag == 2
    assert sorted(cache_set.tags()) == [1, 3]


def test_fifo_evicts_first_loaded():
    cache_set = fill_two_way(EvictionPolicy.FIFO)
    evicted = cache_set.read_and_allocate(addr(3), 4)
    assert evicted.tag == 1
    assert sorted(cache_set.tags()) == [2, 3]


def test_random_evicts_one_of_resident_blocks():
    cache_set = fill_two_way(EvictionPolicy.RANDOM, random.Random(7))
    evicted = cache_set.read_and_allocate(addr(3), 4)
    assert evicted.tag in (1, 2)
    assert 3 in cache_set.tags()
    assert evicted.tag not in cache_set.tags()
    assert len(cache_set.tags()) == 2


def test_choose_victim_empty_raises():
    with pytest.raises(ValueError):
        EvictionPolicy.LRU.choose_victim([], random.Random())


def test_choose_victim_tie_prefers_first_slot():
    first = Block.loaded(1, 0, 8, 5)
    second = Block.loaded(2, 0, 8, 5)
    assert EvictionPolicy.LRU.choose_victim([first, second], random.Random()) is first


def test_evict_on_non_full_set_returns_none():
    cache_set = CacheSet(8, 2)
    cache_set.read_and_allocate(addr(1), 1)
    assert cache_set.evict() is None
    assert cache_set.tags() == [1]


def test_evict_tag_missing_returns_none():
    cache_set = CacheSet(8, 2)
    assert cache_set.evict_tag(9) is None


def test_is_full_and_len():
    cache_set = CacheSet(8, 2)
    assert len(cache_set) == 2
    assert not cache_set.is_full()
    cache_set.allocate(addr(1), 1)
    cache_set.allocate(addr(2), 2)
    assert cache_set.is_full()
    assert cache_set.size_in_bytes() == 2 * 8


def test_block_write_and_read_update_state():
    block = Block.loaded(1, 0, 8, 1)
    assert block.dirty is False
    block.read(4)
    assert block.last_access == 4
    assert block.first_access == 1
    assert block.dirty is True
    block.write(6)
    assert block.last_access == 6


def test_block_is_hit():
    block = Block.loaded(5, 2, 8, 1)
    assert block.is_hit(addr(5, 2))
    assert not block.is_hit(addr(5, 1))
    assert not block.is_hit(addr(4, 2))


def test_write_allocate_hit_sequence():
    cache = Cache.direct_mapped(32, 8, EvictionPolicy.LRU)
    assert cache.is_write_and_allocate_hit(addr(1, 2), 1) is False
    assert cache.is_write_and_allocate_hit(addr(1, 2), 2) is True
    assert cache.get(addr(1, 2)).dirty is True


def test_write_and_allocate_hit_returns_none():
    cache = Cache.direct_mapped(32, 8, EvictionPolicy.LRU)
    assert cache.write_and_allocate(addr(1), 1) is None
    assert cache.write_and_allocate(addr(1), 2) is None
    assert cache.get(addr(1)).last_access == 2


def test_direct_mapped_conflict_evicts():
    cache = Cache.direct_mapped(32, 8, EvictionPolicy.LRU)
    cache.read_and_allocate(addr(1, 3), 1)
    evicted = cache.read_and_allocate(addr(2, 3), 2)
    assert evicted.tag == 1
    assert not cache.is_hit(addr(1, 3))
    assert cache.is_hit(addr(2, 3))


def test_try_write_and_read_miss_do_not_allocate():
    cache = Cache.direct_mapped(32, 8, EvictionPolicy.LRU)
    assert cache.try_write(addr(1), 1) is False
    assert cache.try_read(addr(1), 1) is False
    assert cache.blocks() == []


def test_read_allocate_hit_sequence():
    cache = Cache.direct_mapped(32, 8, EvictionPolicy.LRU)
    assert cache.is_read_and_allocate_hit(addr(1, 1), 1) is False
    assert cache.is_read_and_allocate_hit(addr(1, 1), 2) is True
    assert cache.try_read(addr(1, 1), 3) is True


def test_invalidate_removes_block():
    cache = Cache.direct_mapped(32, 8, EvictionPolicy.LRU)
    cache.read_and_allocate(addr(7, 1), 1)
    removed = cache.invalidate(addr(7, 1))
    assert removed.tag == 7
    assert not cache.is_hit(addr(7, 1))
    assert cache.invalidate(addr(7, 1)) is None


def test_sets_are_independent():
    cache = Cache.direct_mapped(32, 8, EvictionPolicy.LRU)
    for index in range(len(cache)):
        cache.read_and_allocate(addr(1, index), index + 1)
    assert len(cache.blocks()) == len(cache)
    assert all(cache.is_hit(addr(1, index)) for index in range(len(cache)))


def test_set_associative_geometry():
    cache = Cache.set_associative(2, 64, 8, EvictionPolicy.LRU)
    assert cache.associativity == 2
    assert cache.number_of_blocks() == 64 // 8
    assert cache.size_in_bytes() == 64
    assert len(cache) * 2 == 64 // 8


def test_fully_associative_geometry():
    cache = Cache.fully_associative(32, 8, EvictionPolicy.FIFO)
    assert len(cache) == cache.associativity
    assert cache.evict_policy is EvictionPolicy.FIFO
    assert cache.number_of_blocks() == len(cache) * len(cache)


def test_out_of_range_index_raises():
    cache = Cache(1, 8, 1)
    with pytest.raises(IndexError):
        cache.get(addr(1, 3))