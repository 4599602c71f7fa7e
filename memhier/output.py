"""Per-access results and the final simulation report."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .trace import BlockAddress, Operation

if TYPE_CHECKING:
    from .config import SimulatorConfig

_HEADER = (
    "{} Virt.  Page TLB    TLB TLB  PT   Phys        DC  DC          L2  L2\n"
    "Address  Page # Off  Tag    Ind Res. Res. Pg # DC Tag Ind Res. L2 Tag Ind Res.\n"
    "-------- ------ ---- ------ --- ---- ---- ---- ------ --- ---- ------ --- ----"
)


def _result(hit: bool) -> str:
    return "hit " if hit else "miss"


def _ratio(hits: int, misses: int) -> float:
    return hits / max(hits + misses, 0.0000001)


@dataclass(frozen=True)
class AccessOutput:
    """Everything recorded about how one access went through the hierarchy."""

    access: Operation
    physical_address: int
    page_offset: int
    physical_page_number: int
    dc_address: BlockAddress
    dc_hit: bool
    virtual_address: int | None = None
    virtual_page_number: int | None = None
    tlb_address: BlockAddress | None = None
    tlb_hit: bool | None = None
    page_table_hit: bool | None = None
    l2_address: BlockAddress | None = None
    l2_hit: bool | None = None

    def main_memory_accesses(self, config: SimulatorConfig) -> int:
        """How many main memory references this access caused."""
        if self.access.is_read():
            return 0 if self.dc_hit or self.l2_hit is True else 1
        if self.dc_hit:
            both_through = (
                config.data_cache.write_through and config.l2_cache.write_through
            )
            return 1 if both_through else 0
        if self.l2_hit is True:
            return 1 if config.l2_cache.write_through else 0
        return 1

    def __str__(self) -> str:
        address = (
            self.virtual_address
            if self.virtual_address is not None
            else self.physical_address
        )
        parts = [f"{address:08x} "]
        parts.append(
            " " * 6 if self.virtual_page_number is None else f"{self.virtual_page_number:>6x}"
        )
        parts.append(f" {self.page_offset:>4x} ")
        tlb = self.tlb_address
        parts.append(" " * 6 if tlb is None else f"{tlb.tag:>6x}")
        parts.append(" ")
        parts.append(" " * 3 if tlb is None else f"{tlb.index:>3x}")
        parts.append(" ")
        parts.append(" " * 4 if self.tlb_hit is None else _result(self.tlb_hit))
        parts.append(" ")
        if self.page_table_hit is not None and self.tlb_hit is not True:
            parts.append(_result(self.page_table_hit))
        else:
            parts.append(" " * 4)
        parts.append(
            f" {self.physical_page_number:>4x} {self.dc_address.tag:>6x} "
            f"{self.dc_address.index:>3x} {_result(self.dc_hit):>4} "
        )
        if self.l2_hit is None:
            return "".join(parts)
        if self.l2_address is not None:
            parts.append(f"{self.l2_address.tag:>6x} {self.l2_address.index:>3x} ")
        parts.append(_result(self.l2_hit))
        return "".join(parts)


@dataclass
class SimulatorOutput:
    """Accumulated accesses and statistics for one simulation run."""

    config: SimulatorConfig
    accesses: list[AccessOutput] = field(default_factory=list)
    tlb_hits: int = 0
    tlb_misses: int = 0
    pt_hits: int = 0
    pt_faults: int = 0
    dc_hits: int = 0
    dc_misses: int = 0
    l2_hits: int = 0
    l2_misses: int = 0
    total_reads: int = 0
    total_writes: int = 0
    main_memory_refs: int = 0

    def add_access(self, access: AccessOutput) -> None:
        if access.access.is_read():
            self.total_reads += 1
        else:
            self.total_writes += 1
        self.accesses.append(access)

    def add_main_memory_accesses(self, count: int = 1) -> None:
        self.main_memory_refs += count

    def add_tlb_access(self, hit: bool) -> None:
        if not self.config.tlb_enabled:
            return
        if hit:
            self.tlb_hits += 1
        else:
            self.tlb_misses += 1

    def add_page_table_access(self, hit: bool) -> None:
        if not self.config.virtual_addresses_enabled:
            return
        if hit:
            self.pt_hits += 1
        else:
            self.pt_faults += 1

    def add_dc_access(self, hit: bool) -> None:
        if hit:
            self.dc_hits += 1
        else:
            self.dc_misses += 1

    def add_l2_access(self, hit: bool) -> None:
        if not self.config.l2_cache_enabled:
            return
        if hit:
            self.l2_hits += 1
        else:
            self.l2_misses += 1

    def add_l2_accesses(self, count: int) -> None:
        """Count ``count`` L2 hits."""
        if not self.config.l2_cache_enabled:
            return
        self.l2_hits += count

    def __str__(self) -> str:
        config = self.config
        kind = "Virtual " if config.virtual_addresses_enabled else "Physical"
        lines = [f"{config}\n", _HEADER.format(kind) + "\n"]

        main_memory = self.main_memory_refs
        for access in self.accesses:
            main_memory += access.main_memory_accesses(config)
            lines.append(f"{access}\n")

        def ratio_line(label: str, enabled: bool, hits: int, misses: int) -> str:
            value = f"{_ratio(hits, misses):.6f}" if enabled else "N/A"
            return f"{label}: {value}\n\n"

        lines.append("\nSimulation statistics\n\n")
        lines.append(f"dtlb hits        : {self.tlb_hits}\n")
        lines.append(f"dtlb misses      : {self.tlb_misses}\n")
        lines.append(
            ratio_line("dtlb hit ratio   ", config.tlb_enabled, self.tlb_hits, self.tlb_misses)
        )
        lines.append(f"pt hits          : {self.pt_hits}\n")
        lines.append(f"pt faults        : {self.pt_faults}\n")
        lines.append(
            ratio_line(
                "pt hit ratio     ",
                config.virtual_addresses_enabled,
                self.pt_hits,
                self.pt_faults,
            )
        )
        lines.append(f"dc hits          : {self.dc_hits}\n")
        lines.append(f"dc misses        : {self.dc_misses}\n")
        lines.append(ratio_line("dc hit ratio     ", True, self.dc_hits, self.dc_misses))
        lines.append(f"L2 hits          : {self.l2_hits}\n")
        lines.append(f"L2 misses        : {self.l2_misses}\n")
        lines.append(
            ratio_line(
                "L2 hit ratio     ", config.l2_cache_enabled, self.l2_hits, self.l2_misses
            )
        )
        lines.append(f"Total reads      : {self.total_reads}\n")
        lines.append(f"Total writes     : {self.total_writes}\n")
        lines.append(
            ratio_line("Ratio of reads   ", True, self.total_reads, self.total_writes)
        )
        lines.append(f"main memory refs : {main_memory}\n")
        lines.append(f"page table refs  : {self.pt_hits + self.pt_faults}\n")
        lines.append(f"disk refs        : {self.pt_faults}")
        return "".join(lines)