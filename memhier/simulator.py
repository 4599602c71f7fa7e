"""Drives memory accesses through the TLB, page table, data cache and L2."""

from __future__ import annotations

import dataclasses
import logging
import sys
from typing import Iterable

from .config import SimulatorConfig
from .dc import DataCache
from .l2 import L2Cache
from .output import AccessOutput, SimulatorOutput
from .pagetable import PageTable
from .tlb import TLBCache
from .trace import Operation, data_cache_address, l2_cache_address, tlb_address

_log = logging.getLogger(__name__)


class Simulator:
    """A memory hierarchy built from a configuration, with a logical clock."""

    def __init__(self, config: SimulatorConfig) -> None:
        self.config = config
        self.output = SimulatorOutput(config)
        self.l2 = L2Cache.from_config(config) if config.l2_cache_enabled else None
        self.dc = DataCache.from_config(config)
        self.tlb = TLBCache.from_config(config) if config.tlb_enabled else None
        self.page_table = (
            PageTable.from_config(config) if config.virtual_addresses_enabled else None
        )
        self.time = 1

    def _check_components(self) -> None:
        config = self.config
        if config.virtual_addresses_enabled != (self.page_table is not None):
            raise RuntimeError("page table does not match the configuration")
        if config.tlb_enabled != (self.tlb is not None):
            raise RuntimeError("TLB does not match the configuration")
        if config.l2_cache_enabled != (self.l2 is not None):
            raise RuntimeError("L2 cache does not match the configuration")

    def _age(self) -> None:
        self.time += 1

    def simulate(self, trace: Iterable[Operation]) -> SimulatorOutput:
        """Run every operation of ``trace`` and return the collected output."""
        self.output = SimulatorOutput(self.config)
        for access in trace:
            self.simulate_access(access)
        return dataclasses.replace(self.output, accesses=list(self.output.accesses))

    def _translate(self, virtual_address: int, time: int) -> tuple[int, bool]:
        assert self.page_table is not None
        result = self.page_table.translate(virtual_address, time)
        if result is None:
            raise ValueError(
                f"virtual address {virtual_address:x} lies outside the page table"
            )
        return result

    def _invalidate_page(self, physical_address: int) -> None:
        config = self.config
        if self.tlb is not None and self.page_table is not None:
            count = len(
                self.tlb.invalidate_page(physical_address, self.page_table, config)
            )
            if count > 0:
                print(f"Evicted {count} pages from the TLB", file=sys.stderr)
        count = len(self.dc.invalidate_page(physical_address, config))
        if count > 0:
            print(f"Evicted {count} pages from the DC", file=sys.stderr)
        if config.data_cache.is_write_back() and not config.l2_cache_enabled:
            return
        if self.l2 is not None:
            count = len(self.l2.invalidate_page(physical_address, config))
            if count > 0:
                print(f"Evicted {count} pages from the L2", file=sys.stderr)

    def _access_l2(
        self, access: Operation, physical_address: int, dc_hit: bool, time: int
    ) -> bool | None:
        """Pass the access on to the L2 as the write policies require.

        Returns the L2 result to report, or None when none is shown.
        """
        assert self.l2 is not None
        config = self.config
        address = l2_cache_address(physical_address, config)
        is_read = access.is_read()
        dc_through = config.data_cache.write_through
        l2_through = config.l2_cache.write_through

        if dc_through:
            if not dc_hit or access.is_write():
                result = self.l2.access(is_read, address, time)
                self.output.add_l2_access(result)
                return result
            return None

        if l2_through:
            if access.is_write():
                result = self.l2.access(is_read, address, time)
                self.output.add_l2_access(result)
                return None if dc_hit else result
            if not dc_hit:
                result = self.l2.access(is_read, address, time)
                self.output.add_l2_access(result)
                return result
            return None

        if not dc_hit or access.is_write():
            result = self.l2.access(is_read, address, time)
            dc_address = data_cache_address(physical_address, config)
            if not self.dc.access(is_read, dc_address, time):
                raise RuntimeError("data cache lost a block it just loaded")
            self.output.add_l2_access(result)
            return None if dc_hit else result
        return None

    def simulate_access(self, access: Operation) -> AccessOutput:
        """Run one access through the hierarchy and record its result."""
        self._check_components()
        config = self.config
        virtual_address = access.address
        time = self.time
        _log.debug("Access %s at %d", access, time)

        tlb_addr = None
        is_tlb_hit = False
        is_page_table_hit = False
        if self.page_table is not None and self.tlb is not None:
            tlb_addr = tlb_address(virtual_address, config)
            is_tlb_hit = self.tlb.translate(tlb_addr, time)
            physical_address, is_page_table_hit = self._translate(virtual_address, time)
            is_tlb_hit = is_tlb_hit and is_page_table_hit
        elif self.page_table is not None:
            physical_address, is_page_table_hit = self._translate(virtual_address, time)
        else:
            physical_address = virtual_address

        if config.tlb_enabled:
            self.output.add_tlb_access(is_tlb_hit)
        if not is_tlb_hit and config.virtual_addresses_enabled:
            self.output.add_page_table_access(is_page_table_hit)

        if config.virtual_addresses_enabled and not is_tlb_hit and not is_page_table_hit:
            self._invalidate_page(physical_address)

        dc_address = data_cache_address(physical_address, config)
        dc_hit = self.dc.access(access.is_read(), dc_address, time)
        self.output.add_dc_access(dc_hit)

        l2_addr = None
        l2_hit = None
        if self.l2 is not None:
            l2_addr = l2_cache_address(physical_address, config)
            l2_hit = self._access_l2(access, physical_address, dc_hit, time)

        page_size = config.page_size()
        offset_bits = config.page_table.offset_bits()

        def page_number(address: int) -> int:
            return (address & ~(page_size - 1)) >> offset_bits

        shown_virtual = virtual_address if config.virtual_addresses_enabled else None
        self._age()

        result = AccessOutput(
            access=access,
            physical_address=physical_address,
            page_offset=physical_address & (page_size - 1),
            physical_page_number=page_number(physical_address),
            dc_address=dc_address,
            dc_hit=dc_hit,
            virtual_address=shown_virtual,
            virtual_page_number=(
                page_number(shown_virtual) if shown_virtual is not None else None
            ),
            tlb_address=tlb_addr,
            tlb_hit=is_tlb_hit if config.tlb_enabled else None,
            page_table_hit=(
                is_page_table_hit if config.virtual_addresses_enabled else None
            ),
            l2_address=l2_addr,
            l2_hit=l2_hit,
        )
        self.output.add_access(result)
        return result