"""Memory access operations, cache block addresses and access traces."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Iterator, TextIO

from .parsing import read_hexadecimal

if TYPE_CHECKING:
    from .config import SimulatorConfig

_KINDS = ("R", "W")


@dataclass(frozen=True)
class Operation:
    """A single read ("R") or write ("W") of an address."""

    kind: str
    address: int

    def __post_init__(self) -> None:
        if self.kind not in _KINDS:
            raise ValueError(f"unknown access kind {self.kind!r}")

    def is_read(self) -> bool:
        return self.kind == "R"

    def is_write(self) -> bool:
        return self.kind == "W"

    def __str__(self) -> str:
        return f"{self.kind}:{self.address:03x}"


@dataclass(frozen=True)
class BlockAddress:
    """An address split into tag, index and offset fields."""

    tag: int
    index: int
    offset: int
    tag_bits: int
    index_bits: int
    offset_bits: int

    def address(self) -> int:
        """Reassemble the full address from its fields."""
        return (
            (self.tag << (self.offset_bits + self.index_bits))
            | (self.index << self.offset_bits)
            | self.offset
        )

    def __str__(self) -> str:
        return f"{self.address():03x}"


def block_address(address: int, index_bits: int, offset_bits: int) -> BlockAddress:
    """Split ``address`` using the given index and offset widths."""
    return BlockAddress(
        tag=address >> (index_bits + offset_bits),
        index=(address >> offset_bits) & ((1 << index_bits) - 1),
        offset=address & ((1 << offset_bits) - 1),
        tag_bits=32 - index_bits - offset_bits,
        index_bits=index_bits,
        offset_bits=offset_bits,
    )


def data_cache_address(address: int, config: SimulatorConfig) -> BlockAddress:
    return block_address(
        address, config.data_cache.index_bits(), config.data_cache.offset_bits()
    )


def l2_cache_address(address: int, config: SimulatorConfig) -> BlockAddress:
    return block_address(
        address, config.l2_cache.index_bits(), config.l2_cache.offset_bits()
    )


def page_table_address(address: int, config: SimulatorConfig) -> BlockAddress:
    return block_address(
        address, config.page_table.index_bits(), config.page_table.offset_bits()
    )


def tlb_address(address: int, config: SimulatorConfig) -> BlockAddress:
    """Address the TLB by the virtual page number of ``address``."""
    page_size = config.page_size()
    page_number = (address & ~(page_size - 1)) >> config.page_table.offset_bits()
    return block_address(page_number, config.tlb.index_bits(), 0)


def parse_operation(stream: TextIO) -> Operation | None:
    """Read the next ``R:addr`` or ``W:addr`` line.

    Returns None at end of input or when the access kind is not recognised.
    """
    pair = read_hexadecimal(stream, None)
    if pair is None:
        return None
    kind, address = pair
    if kind not in _KINDS:
        return None
    return Operation(kind, address)


@dataclass
class Trace:
    """An ordered sequence of memory access operations."""

    operations: list[Operation] = field(default_factory=list)

    def push(self, operation: Operation) -> None:
        self.operations.append(operation)

    def __iter__(self) -> Iterator[Operation]:
        return iter(self.operations)

    def __len__(self) -> int:
        return len(self.operations)

    def __getitem__(self, index: int) -> Operation:
        return self.operations[index]

    def __str__(self) -> str:
        return "\n".join(str(operation) for operation in self.operations)


def read_trace(stream: TextIO) -> Trace:
    """Read operations from ``stream`` until end of input or an unknown kind."""
    trace = Trace()
    while (operation := parse_operation(stream)) is not None:
        trace.push(operation)
    return trace


def load_trace(path: str | Path) -> Trace:
    with open(path, encoding="utf-8") as stream:
        return read_trace(stream)