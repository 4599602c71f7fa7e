"""The translation lookaside buffer, a cache of virtual page numbers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .cache import Block, Cache, EvictionPolicy
from .trace import BlockAddress, tlb_address

if TYPE_CHECKING:
    from .config import SimulatorConfig
    from .pagetable import PageTable

_log = logging.getLogger(__name__)


class TLBCache:
    """A cache whose blocks are page translations."""

    def __init__(
        self,
        sets: int,
        block_size: int,
        associativity: int,
        evict_policy: EvictionPolicy = EvictionPolicy.LRU,
    ) -> None:
        _log.info(
            "Creating TLB with %d sets, associativity=%d, block-size=%d, policy=%s",
            sets,
            associativity,
            block_size,
            evict_policy,
        )
        self.cache = Cache(sets, block_size, associativity, evict_policy)

    @classmethod
    def from_config(cls, config: SimulatorConfig) -> TLBCache:
        return cls(
            config.tlb.number_of_sets,
            config.page_size(),
            config.tlb.set_size,
            config.tlb.eviction_policy(),
        )

    def translate(self, address: BlockAddress, current_access_time: int) -> bool:
        """Look the page up, loading it on a miss; return whether it hit."""
        return self.cache.is_read_and_allocate_hit(address, current_access_time)

    def invalidate_page(
        self, physical_address: int, page_table: PageTable, config: SimulatorConfig
    ) -> list[Block]:
        """Drop the translations of every virtual page mapped to ``physical_address``."""
        invalidated = []
        for entry in page_table.entries():
            if entry.physical_address() == physical_address:
                block = self.cache.invalidate(tlb_address(entry.virtual_address, config))
                if block is not None:
                    invalidated.append(block)
        _log.debug(
            "TLB invalidated %d blocks at %x", len(invalidated), physical_address
        )
        return invalidated