"""The first-level data cache with hit and miss counters."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .cache import Block, Cache, EvictionPolicy
from .trace import BlockAddress, data_cache_address

if TYPE_CHECKING:
    from .config import SimulatorConfig

_log = logging.getLogger(__name__)


class DataCache:
    """A data cache that counts reads, writes and their misses."""

    def __init__(
        self,
        sets: int,
        block_size: int,
        associativity: int,
        evict_policy: EvictionPolicy = EvictionPolicy.LRU,
        is_write_allocate: bool = True,
    ) -> None:
        _log.info(
            "Creating data cache with %d sets, block-size=%d, associativity=%d, policy=%s",
            sets,
            block_size,
            associativity,
            evict_policy,
        )
        self.cache = Cache(sets, block_size, associativity, evict_policy)
        self.is_write_allocate = is_write_allocate
        self.total_reads = 0
        self.total_writes = 0
        self.total_read_misses = 0
        self.total_write_misses = 0

    @classmethod
    def fully_associative(
        cls,
        size_in_bytes: int,
        block_size: int,
        evict_policy: EvictionPolicy,
        is_write_allocate: bool,
    ) -> DataCache:
        number_of_sets = size_in_bytes // block_size
        return cls(
            number_of_sets, block_size, number_of_sets, evict_policy, is_write_allocate
        )

    @classmethod
    def direct_mapped(
        cls,
        size_in_bytes: int,
        block_size: int,
        evict_policy: EvictionPolicy,
        is_write_allocate: bool,
    ) -> DataCache:
        return cls(
            size_in_bytes // block_size, block_size, 1, evict_policy, is_write_allocate
        )

    @classmethod
    def set_associative(
        cls,
        associativity: int,
        size_in_bytes: int,
        block_size: int,
        evict_policy: EvictionPolicy,
        is_write_allocate: bool,
    ) -> DataCache:
        number_of_sets = (size_in_bytes // block_size) // associativity
        return cls(
            number_of_sets, block_size, associativity, evict_policy, is_write_allocate
        )

    @classmethod
    def from_config(cls, config: SimulatorConfig) -> DataCache:
        settings = config.data_cache
        return cls(
            settings.number_of_sets,
            settings.line_size,
            settings.set_size,
            settings.eviction_policy(),
            settings.is_write_allocate(),
        )

    def write(self, address: BlockAddress, current_access_time: int) -> bool:
        """Write to the block; return whether it was a hit."""
        self.total_writes += 1
        if self.is_write_allocate:
            hit = self.cache.is_write_and_allocate_hit(address, current_access_time)
        else:
            hit = self.cache.try_write(address, current_access_time)
        if not hit:
            self.total_write_misses += 1
        return hit

    def read(self, address: BlockAddress, current_access_time: int) -> bool:
        """Read the block, loading it on a miss; return whether it was a hit."""
        self.total_reads += 1
        hit = self.cache.is_read_and_allocate_hit(address, current_access_time)
        if not hit:
            self.total_read_misses += 1
        return hit

    def access(
        self, is_read: bool, address: BlockAddress, current_access_time: int
    ) -> bool:
        if is_read:
            return self.read(address, current_access_time)
        return self.write(address, current_access_time)

    def invalidate_page(
        self, physical_address: int, config: SimulatorConfig
    ) -> list[Block]:
        """Drop a page's worth of blocks starting at the block holding ``physical_address``.

        Returns the blocks that were present and removed.
        """
        block_size = config.data_cache.line_size
        page_size = config.page_size()
        number_of_blocks = page_size // block_size
        if number_of_blocks * block_size != page_size:
            raise ValueError(
                f"page size {page_size} is not a multiple of line size {block_size}"
            )
        base = physical_address & ~(block_size - 1)
        _log.debug(
            "DC invalidating %d blocks = %d bytes at %x",
            number_of_blocks,
            number_of_blocks * block_size,
            base,
        )
        invalidated = []
        for number in range(number_of_blocks):
            address = data_cache_address(base + number * block_size, config)
            block = self.cache.invalidate(address)
            if block is not None:
                invalidated.append(block)
        return invalidated