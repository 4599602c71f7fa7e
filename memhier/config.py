"""Simulator configuration: TLB, page table, data cache and L2 cache settings."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TextIO, TypeVar

from .cache import EvictionPolicy
from .parsing import ConfigFormatError, read_bool, read_decimal, read_header

DEFAULT_CONFIG_PATH = "trace.config"

_T = TypeVar("_T")


def _trailing_zeros(value: int) -> int:
    """Count trailing zero bits of a 64-bit unsigned value (64 for zero)."""
    if value == 0:
        return 64
    return (value & -value).bit_length() - 1


def _require(result: tuple[str, _T] | None, key: str) -> _T:
    if result is None:
        raise ConfigFormatError(f'Expected "{key}: {{value}}", got end of input')
    return result[1]


def _decimal(stream: TextIO, key: str) -> int:
    return _require(read_decimal(stream, key), key)


def _flag(stream: TextIO, key: str) -> bool:
    return _require(read_bool(stream, key), key)


def _read_cache_fields(stream: TextIO, header: str) -> tuple[int, int, int, bool]:
    read_header(stream, header)
    number_of_sets = _decimal(stream, "Number of sets")
    set_size = _decimal(stream, "Set size")
    line_size = _decimal(stream, "Line size")
    write_through = _flag(stream, "Write through/no write allocate")
    return number_of_sets, set_size, line_size, write_through


def _describe_cache(
    label: str,
    number_of_sets: int,
    set_size: int,
    line_size: int,
    write_through: bool,
    index_bits: int,
    offset_bits: int,
    trailer: str = "",
) -> str:
    allocate_policy = "no " if write_through else ""
    write_policy = "through" if write_through else "back"
    return (
        f"{label} contains {number_of_sets} sets.\n"
        f"Each set contains {set_size} entries.\n"
        f"Each line is {line_size} bytes.\n"
        f"The cache uses a {allocate_policy}write-allocate and "
        f"write-{write_policy} policy.\n"
        f"Number of bits used for the index is {index_bits}.\n"
        f"Number of bits used for the offset is {offset_bits}.\n"
        f"{trailer}"
    )


@dataclass
class TLBConfig:
    """Geometry of the data TLB."""

    number_of_sets: int
    set_size: int

    def index_bits(self) -> int:
        return _trailing_zeros(self.number_of_sets)

    def eviction_policy(self) -> EvictionPolicy:
        return EvictionPolicy.LRU

    @classmethod
    def from_stream(cls, stream: TextIO) -> TLBConfig:
        read_header(stream, "Data TLB configuration")
        number_of_sets = _decimal(stream, "Number of sets")
        set_size = _decimal(stream, "Set size")
        return cls(number_of_sets, set_size)

    def __str__(self) -> str:
        return (
            f"Data TLB contains {self.number_of_sets} sets.\n"
            f"Each set contains {self.set_size} entries.\n"
            f"Number of bits used for the index is {self.index_bits()}.\n"
        )


@dataclass
class PageTableConfig:
    """Sizes of the virtual and physical address spaces, in pages."""

    number_of_virtual_pages: int
    number_of_physical_pages: int
    page_size: int

    def virtual_page_number_bits(self) -> int:
        return _trailing_zeros(self.number_of_virtual_pages)

    def index_bits(self) -> int:
        return _trailing_zeros(self.number_of_virtual_pages)

    def offset_bits(self) -> int:
        return _trailing_zeros(self.page_size)

    @classmethod
    def from_stream(cls, stream: TextIO) -> PageTableConfig:
        read_header(stream, "Page Table configuration")
        virtual_pages = _decimal(stream, "Number of virtual pages")
        physical_pages = _decimal(stream, "Number of physical pages")
        page_size = _decimal(stream, "Page size")
        return cls(virtual_pages, physical_pages, page_size)

    def __str__(self) -> str:
        return (
            f"Number of virtual pages is {self.number_of_virtual_pages}.\n"
            f"Number of physical pages is {self.number_of_physical_pages}.\n"
            f"Each page contains {self.page_size} bytes.\n"
            f"Number of bits used for the page table index is {self.index_bits()}.\n"
            f"Number of bits used for the page offset is {self.offset_bits()}.\n"
        )


@dataclass
class DataCacheConfig:
    """Geometry and write policy of the first-level data cache."""

    number_of_sets: int
    set_size: int
    line_size: int
    write_through: bool

    def index_bits(self) -> int:
        return _trailing_zeros(self.number_of_sets)

    def offset_bits(self) -> int:
        return _trailing_zeros(self.line_size)

    def is_write_back(self) -> bool:
        return not self.write_through

    def is_write_allocate(self) -> bool:
        return not self.write_through

    def eviction_policy(self) -> EvictionPolicy:
        return EvictionPolicy.LRU

    @classmethod
    def from_stream(cls, stream: TextIO) -> DataCacheConfig:
        return cls(*_read_cache_fields(stream, "Data Cache configuration"))

    def __str__(self) -> str:
        return _describe_cache(
            "D-cache",
            self.number_of_sets,
            self.set_size,
            self.line_size,
            self.write_through,
            self.index_bits(),
            self.offset_bits(),
        )


@dataclass
class L2CacheConfig:
    """Geometry and write policy of the L2 cache."""

    number_of_sets: int
    set_size: int
    line_size: int
    write_through: bool

    def index_bits(self) -> int:
        return _trailing_zeros(self.number_of_sets)

    def offset_bits(self) -> int:
        return _trailing_zeros(self.line_size)

    def is_write_back(self) -> bool:
        return not self.write_through

    def is_write_allocate(self) -> bool:
        return not self.write_through

    def eviction_policy(self) -> EvictionPolicy:
        return EvictionPolicy.LRU

    @classmethod
    def from_stream(cls, stream: TextIO) -> L2CacheConfig:
        return cls(*_read_cache_fields(stream, "L2 Cache configuration"))

    def __str__(self) -> str:
        return _describe_cache(
            "L2-cache",
            self.number_of_sets,
            self.set_size,
            self.line_size,
            self.write_through,
            self.index_bits(),
            self.offset_bits(),
            trailer="\n",
        )


@dataclass
class SimulatorConfig:
    """The full memory hierarchy configuration and its feature switches."""

    virtual_addresses_enabled: bool
    tlb_enabled: bool
    l2_cache_enabled: bool
    tlb: TLBConfig
    page_table: PageTableConfig
    data_cache: DataCacheConfig
    l2_cache: L2CacheConfig

    @classmethod
    def from_stream(cls, stream: TextIO) -> SimulatorConfig:
        tlb = TLBConfig.from_stream(stream)
        page_table = PageTableConfig.from_stream(stream)
        data_cache = DataCacheConfig.from_stream(stream)
        l2_cache = L2CacheConfig.from_stream(stream)
        virtual_addresses_enabled = _flag(stream, "Virtual addresses")
        tlb_enabled = _flag(stream, "TLB")
        l2_cache_enabled = _flag(stream, "L2 cache")
        return cls(
            virtual_addresses_enabled=virtual_addresses_enabled,
            tlb_enabled=tlb_enabled,
            l2_cache_enabled=l2_cache_enabled,
            tlb=tlb,
            page_table=page_table,
            data_cache=data_cache,
            l2_cache=l2_cache,
        )

    def page_size(self) -> int:
        return self.page_table.page_size

    def __str__(self) -> str:
        kind = "virtual" if self.virtual_addresses_enabled else "physical"
        parts = [
            f"{self.tlb}\n{self.page_table}\n{self.data_cache}\n{self.l2_cache}",
            f"The addresses read in are {kind} addresses.\n",
        ]
        if not self.tlb_enabled:
            parts.append("TLB is disabled in this configuration.\n")
        if not self.l2_cache_enabled:
            parts.append("L2 cache is disabled in this configuration.\n")
        return "".join(parts)


def load_config(path: str | Path = DEFAULT_CONFIG_PATH) -> SimulatorConfig:
    """Read a simulator configuration from the file at ``path``."""
    with open(path, encoding="utf-8") as stream:
        return SimulatorConfig.from_stream(stream)