"""Set-associative caches built from sets of blocks, with pluggable eviction."""

from __future__ import annotations

import enum
import random
from dataclasses import dataclass
from typing import Iterator, Sequence

from .trace import BlockAddress


class EvictionPolicy(enum.Enum):
    """How a full set chooses the block to give up."""

    LRU = "lru"
    FIFO = "fifo"
    RANDOM = "random"

    def choose_victim(self, blocks: Sequence[Block], rng: random.Random) -> Block:
        """Return the block to evict from ``blocks`` (listed in slot order).

        Ties go to the block in the earliest slot.
        """
        if not blocks:
            raise ValueError("cannot choose a victim from an empty set")
        if self is EvictionPolicy.FIFO:
            return min(blocks, key=lambda block: block.first_access)
        if self is EvictionPolicy.LRU:
            return min(blocks, key=lambda block: block.last_access)
        return blocks[rng.randrange(len(blocks))]


@dataclass
class Block:
    """A cache line: its tag, set index, size and access bookkeeping."""

    tag: int
    index: int
    size: int
    last_access: int
    first_access: int
    dirty: bool = False

    @classmethod
    def loaded(cls, tag: int, index: int, size: int, current_access_time: int) -> Block:
        """A clean block brought in at ``current_access_time``."""
        return cls(tag, index, size, current_access_time, current_access_time)

    def is_hit(self, address: BlockAddress) -> bool:
        return self.tag == address.tag and self.index == address.index

    def write(self, current_access_time: int) -> None:
        """Mark the block dirty and record the access."""
        self.dirty = True
        self.last_access = current_access_time

    def read(self, current_access_time: int) -> None:
        """Record the access; like a write, this also marks the block dirty."""
        self.dirty = True
        self.last_access = current_access_time


class CacheSet:
    """A fixed number of block slots sharing one set index."""

    def __init__(
        self,
        block_size: int,
        associativity: int,
        evict_policy: EvictionPolicy = EvictionPolicy.LRU,
        rng: random.Random | None = None,
    ) -> None:
        self.block_size = block_size
        self.evict_policy = evict_policy
        self._rng = rng if rng is not None else random.Random()
        self._slots: list[Block | None] = [None] * associativity

    def __len__(self) -> int:
        return len(self._slots)

    def __iter__(self) -> Iterator[Block]:
        return (block for block in self._slots if block is not None)

    def is_full(self) -> bool:
        return all(block is not None for block in self._slots)

    def tags(self) -> list[int]:
        return [block.tag for block in self]

    def evict(self) -> Block | None:
        """Evict a block chosen by the policy if the set is full."""
        if not self.is_full():
            return None
        victim = self.evict_policy.choose_victim(list(self), self._rng)
        return self.evict_tag(victim.tag)

    def evict_tag(self, tag: int) -> Block | None:
        """Remove the block with ``tag`` and return it, or None if absent."""
        for slot, block in enumerate(self._slots):
            if block is not None and block.tag == tag:
                self._slots[slot] = None
                return block
        return None

    def evict_address(self, address: BlockAddress) -> Block | None:
        return self.evict_tag(address.tag)

    def allocate(self, address: BlockAddress, current_access_time: int) -> Block | None:
        """Load a block for ``address``, evicting first if full.

        Returns the evicted block, if any.
        """
        evicted = self.evict() if self.is_full() else None
        for slot, block in enumerate(self._slots):
            if block is None:
                self._slots[slot] = Block.loaded(
                    address.tag, address.index, self.block_size, current_access_time
                )
                break
        return evicted

    def find(self, address: BlockAddress) -> Block | None:
        return next((block for block in self if block.is_hit(address)), None)

    def is_hit(self, address: BlockAddress) -> bool:
        return self.find(address) is not None

    def try_write(self, address: BlockAddress, current_access_time: int) -> bool:
        """Write to the block if present; return whether it was a hit."""
        block = self.find(address)
        if block is None:
            return False
        block.write(current_access_time)
        return True

    def try_read(self, address: BlockAddress, current_access_time: int) -> bool:
        """Read the block if present; return whether it was a hit."""
        block = self.find(address)
        if block is None:
            return False
        block.read(current_access_time)
        return True

    def write_and_allocate(
        self, address: BlockAddress, current_access_time: int
    ) -> Block | None:
        """Write, loading the block on a miss; return any evicted block."""
        if self.try_write(address, current_access_time):
            return None
        return self.allocate(address, current_access_time)

    def read_and_allocate(
        self, address: BlockAddress, current_access_time: int
    ) -> Block | None:
        """Read, loading the block on a miss; return any evicted block."""
        if self.try_read(address, current_access_time):
            return None
        return self.allocate(address, current_access_time)

    def is_write_and_allocate_hit(
        self, address: BlockAddress, current_access_time: int
    ) -> bool:
        hit = self.is_hit(address)
        self.write_and_allocate(address, current_access_time)
        return hit

    def is_read_and_allocate_hit(
        self, address: BlockAddress, current_access_time: int
    ) -> bool:
        hit = self.is_hit(address)
        self.read_and_allocate(address, current_access_time)
        return hit

    def size_in_bytes(self) -> int:
        return len(self._slots) * self.block_size


class Cache:
    """A cache of sets, selected by the index field of a block address."""

    def __init__(
        self,
        sets: int,
        block_size: int,
        associativity: int,
        evict_policy: EvictionPolicy = EvictionPolicy.LRU,
        rng: random.Random | None = None,
    ) -> None:
        self.associativity = associativity
        self.evict_policy = evict_policy
        self.block_size = block_size
        shared_rng = rng if rng is not None else random.Random()
        self._sets = [
            CacheSet(block_size, associativity, evict_policy, shared_rng)
            for _ in range(sets)
        ]

    @classmethod
    def fully_associative(
        cls, size_in_bytes: int, block_size: int, evict_policy: EvictionPolicy
    ) -> Cache:
        number_of_sets = size_in_bytes // block_size
        return cls(number_of_sets, block_size, number_of_sets, evict_policy)

    @classmethod
    def direct_mapped(
        cls, size_in_bytes: int, block_size: int, evict_policy: EvictionPolicy
    ) -> Cache:
        return cls(size_in_bytes // block_size, block_size, 1, evict_policy)

    @classmethod
    def set_associative(
        cls,
        associativity: int,
        size_in_bytes: int,
        block_size: int,
        evict_policy: EvictionPolicy,
    ) -> Cache:
        number_of_sets = (size_in_bytes // block_size) // associativity
        return cls(number_of_sets, block_size, associativity, evict_policy)

    def blocks(self) -> list[Block]:
        """Every block currently held, set by set."""
        return [block for cache_set in self._sets for block in cache_set]

    def __len__(self) -> int:
        return len(self._sets)

    def size_in_bytes(self) -> int:
        return sum(cache_set.size_in_bytes() for cache_set in self._sets)

    def number_of_blocks(self) -> int:
        return len(self._sets) * self.associativity

    def _set_for(self, address: BlockAddress) -> CacheSet:
        return self._sets[address.index]

    def get(self, address: BlockAddress) -> Block | None:
        return self._set_for(address).find(address)

    def is_hit(self, address: BlockAddress) -> bool:
        return self.get(address) is not None

    def write_and_allocate(
        self, address: BlockAddress, current_access_time: int
    ) -> Block | None:
        return self._set_for(address).write_and_allocate(address, current_access_time)

    def read_and_allocate(
        self, address: BlockAddress, current_access_time: int
    ) -> Block | None:
        return self._set_for(address).read_and_allocate(address, current_access_time)

    def is_write_and_allocate_hit(
        self, address: BlockAddress, current_access_time: int
    ) -> bool:
        return self._set_for(address).is_write_and_allocate_hit(
            address, current_access_time
        )

    def is_read_and_allocate_hit(
        self, address: BlockAddress, current_access_time: int
    ) -> bool:
        return self._set_for(address).is_read_and_allocate_hit(
            address, current_access_time
        )

    def try_write(self, address: BlockAddress, current_access_time: int) -> bool:
        return self._set_for(address).try_write(address, current_access_time)

    def try_read(self, address: BlockAddress, current_access_time: int) -> bool:
        return self._set_for(address).try_read(address, current_access_time)

    def invalidate(self, address: BlockAddress) -> Block | None:
        """Remove the block for ``address``; return it if it was present."""
        return self._set_for(address).evict_address(address)