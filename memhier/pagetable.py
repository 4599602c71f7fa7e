"""A single-level page table with LRU replacement of physical pages."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .config import SimulatorConfig

_log = logging.getLogger(__name__)

_U64_MAX = (1 << 64) - 1


def _trailing_zeros(value: int) -> int:
    """Count trailing zero bits of a 64-bit unsigned value (64 for zero)."""
    if value == 0:
        return 64
    return (value & -value).bit_length() - 1


def _shift_right(value: int, bits: int) -> int:
    """Shift right the way a wrapping 64-bit shift does (amount taken mod 64)."""
    return value >> (bits % 64)


@dataclass
class PageTableEntry:
    """A mapping from one virtual page to one physical page."""

    frame_address: int
    virtual_address: int
    page_size: int
    last_access_time: int

    def physical_address(self) -> int:
        """The page-aligned physical address of the mapped page."""
        return self.frame_address & ~(self.page_size - 1) & _U64_MAX

    def virtual_page_number(self) -> int:
        aligned = self.virtual_address & ~(self.page_size - 1) & _U64_MAX
        return aligned >> _trailing_zeros(self.page_size)

    def physical_page_number(self) -> int:
        return self.physical_address() >> _trailing_zeros(self.page_size)


class PageTable:
    """Maps virtual pages to physical pages, evicting the least recently used."""

    def __init__(self, virtual_pages: int, physical_pages: int, page_size: int) -> None:
        _log.info(
            "Creating page table with %d virtual pages, %d physical pages, page size %d",
            virtual_pages,
            physical_pages,
            page_size,
        )
        self.virtual_pages = virtual_pages
        self.physical_pages = physical_pages
        self.page_size = page_size
        self._entries: list[PageTableEntry | None] = [None] * virtual_pages
        self._allocated_physical_pages = 0
        self._last_access: list[int] = [0] * physical_pages

    @classmethod
    def from_config(cls, config: SimulatorConfig) -> PageTable:
        page_table = config.page_table
        return cls(
            page_table.number_of_virtual_pages,
            page_table.number_of_physical_pages,
            page_table.page_size,
        )

    def entries(self) -> list[PageTableEntry]:
        """Copies of every valid entry, in virtual page order."""
        return [dataclasses.replace(entry) for entry in self._entries if entry is not None]

    def offset_bits(self) -> int:
        return _trailing_zeros(self.page_size)

    def index_bits(self) -> int:
        return _trailing_zeros(self.virtual_pages)

    def index_from_virtual_address(self, virtual_address: int) -> int:
        return _shift_right(virtual_address, self.offset_bits())

    def offset(self, address: int) -> int:
        return address & (self.page_size - 1)

    def physical_page_number(self, physical_address: int) -> int:
        return _shift_right(physical_address, self.offset_bits())

    def virtual_page_number(self, virtual_address: int) -> int:
        return _shift_right(virtual_address, self.offset_bits())

    def _entry(self, virtual_address: int) -> PageTableEntry | None:
        index = self.index_from_virtual_address(virtual_address)
        if index < len(self._entries):
            return self._entries[index]
        _log.error("Could not find page for virtual address %x", virtual_address)
        return None

    def _set_last_access(self, physical_page_number: int, current_access_time: int) -> None:
        if physical_page_number < len(self._last_access):
            self._last_access[physical_page_number] = current_access_time
        else:
            _log.error(
                "Could not set access time for page #%d; page doesn't exist",
                physical_page_number,
            )

    def _is_free(self, physical_page_number: int) -> bool:
        return self._last_access[physical_page_number] == 0

    def _mark_free(self, physical_page_number: int) -> None:
        self._set_last_access(physical_page_number, 0)
        self.invalidate_page_number(physical_page_number)

    def invalidate_page_number(self, physical_page_number: int) -> None:
        """Drop every entry mapped to the given physical page."""
        for index, entry in enumerate(self._entries):
            if entry is not None and entry.physical_page_number() == physical_page_number:
                _log.debug("Invalidated virtual page #%d", entry.virtual_page_number())
                self._entries[index] = None

    def invalidate_address(self, physical_address: int) -> None:
        self.invalidate_page_number(self.physical_page_number(physical_address))

    def _evict(self) -> None:
        """Free the first free physical page, or else the least recently used."""
        victim = 0
        oldest = _U64_MAX
        for page_number, last_access in enumerate(self._last_access):
            if last_access == 0:
                victim = page_number
                break
            if last_access < oldest:
                oldest = last_access
                victim = page_number
        self._mark_free(victim)
        _log.debug("Evicting page table entry at index %d", victim)
        self._allocated_physical_pages -= 1

    def _allocate_physical_page(
        self, virtual_address: int, current_access_time: int
    ) -> int | None:
        index = self.index_from_virtual_address(virtual_address)
        if index >= len(self._entries):
            return None
        physical_page_number = self._allocated_physical_pages
        self._allocated_physical_pages += 1
        if self._allocated_physical_pages >= self.physical_pages:
            self._evict()
        physical_page_number = next(
            (number for number in range(len(self._last_access)) if self._is_free(number)),
            physical_page_number,
        )
        self._entries[index] = PageTableEntry(
            frame_address=physical_page_number << self.offset_bits(),
            virtual_address=virtual_address,
            page_size=self.page_size,
            last_access_time=current_access_time,
        )
        self.mark_virtual_access(virtual_address, current_access_time)
        return physical_page_number

    def mark_virtual_access(self, virtual_address: int, current_access_time: int) -> None:
        """Record an access to the page mapped for ``virtual_address``."""
        entry = self._entry(virtual_address)
        if entry is None:
            _log.error(
                "Could not mark access for virtual address %x, no entry found",
                virtual_address,
            )
            return
        entry.last_access_time = current_access_time
        self.mark_physical_access(entry.physical_address(), current_access_time)

    def mark_physical_access(self, physical_address: int, current_access_time: int) -> None:
        """Record an access to the physical page holding ``physical_address``."""
        physical_page_number = self.physical_page_number(physical_address)
        self._last_access[physical_page_number] = max(current_access_time, 1)

    def translate(
        self, virtual_address: int, current_access_time: int
    ) -> tuple[int, bool] | None:
        """Translate, allocating the page on a fault.

        Returns the physical address and whether the lookup hit, or None
        when the virtual address lies outside the table.
        """
        is_hit = self._entry(virtual_address) is not None
        if not is_hit:
            self._allocate_physical_page(virtual_address, current_access_time)
        offset = self.offset(virtual_address)
        entry = self._entry(virtual_address)
        if entry is None:
            return None
        entry.last_access_time = current_access_time
        physical_address = entry.physical_address() | offset
        self.mark_physical_access(physical_address, current_access_time)
        return physical_address, is_hit