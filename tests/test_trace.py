import io
from types import SimpleNamespace

import pytest

from memhier.trace import (
    BlockAddress,
    Operation,
    Trace,
    block_address,
    data_cache_address,
    l2_cache_address,
    load_trace,
    page_table_address,
    parse_operation,
    read_trace,
    tlb_address,
)


def _bits(index_bits, offset_bits):
    return SimpleNamespace(
        index_bits=lambda: index_bits, offset_bits=lambda: offset_bits
    )


def make_config():
    return SimpleNamespace(
        tlb=SimpleNamespace(index_bits=lambda: 2),
        page_table=_bits(6, 8),
        data_cache=_bits(2, 4),
        l2_cache=_bits(4, 4),
        page_size=lambda: 256,
    )


def test_operation_str_format():
    assert str(Operation("R", 0x1F)) == "R:01f"
    assert str(Operation("W", 0xC84)) == "W:c84"


def test_operation_kinds():
    read = Operation("R", 4)
    write = Operation("W", 4)
    assert read.is_read() and not read.is_write()
    assert write.is_write() and not write.is_read()


def test_operation_rejects_unknown_kind():
    with pytest.raises(ValueError):
        Operation("X", 0)


@pytest.mark.parametrize(
    "address,index_bits,offset_bits",
    [(0x1234, 4, 4), (0, 2, 3), (0xFFFFFFFF, 6, 6), (0xABCDE, 0, 0), (77, 3, 0)],
)
def test_block_address_round_trip(address, index_bits, offset_bits):
    block = block_address(address, index_bits, offset_bits)
    assert block.address() == address
    assert block.index < (1 << index_bits)
    assert block.offset < (1 << offset_bits)
    assert block.tag_bits + block.index_bits + block.offset_bits == 32


def test_block_address_fields_are_nibbles():
    block = block_address(0x1234, 4, 4)
    assert block.tag == 0x12
    assert block.index == 0x3
    assert block.offset == 0x4
    assert str(block) == "1234"


def test_block_address_str_pads_to_three_digits():
    assert str(block_address(0x5, 1, 1)) == "005"


def test_cache_addresses_use_config_widths():
    config = make_config()
    assert data_cache_address(0xC84, config) == block_address(0xC84, 2, 4)
    assert l2_cache_address(0xC84, config) == block_address(0xC84, 4, 4)
    assert page_table_address(0xC84, config) == block_address(0xC84, 6, 8)


def test_tlb_address_uses_page_number():
    config = make_config()
    block = tlb_address(0x1234, config)
    assert isinstance(block, BlockAddress)
    assert block.offset == 0
    assert block.address() == 0x12
    assert tlb_address(0x12FF, config) == block


def test_parse_operation():
    assert parse_operation(io.StringIO("\nR:1f\n")) == Operation("R", 0x1F)


def test_parse_operation_unknown_kind_returns_none():
    assert parse_operation(io.StringIO("X:10\n")) is None


def test_parse_operation_end_of_input_returns_none():
    assert parse_operation(io.StringIO("")) is None


def test_read_trace_stops_at_unknown_kind():
    trace = read_trace(io.StringIO("R:10\n\nW:20\nQ:30\nR:40\n"))
    assert list(trace) == [Operation("R", 0x10), Operation("W", 0x20)]


def test_trace_push_len_and_index():
    trace = Trace()
    trace.push(Operation("W", 3))
    trace.push(Operation("R", 9))
    assert len(trace) == 2
    assert trace[1] == Operation("R", 9)
    with pytest.raises(IndexError):
        trace[2]


def test_trace_str_round_trip():
    trace = Trace([Operation("R", 0xC84), Operation("W", 0x81C), Operation("R", 1)])
    text = str(trace)
    assert text.splitlines() == ["R:c84", "W:81c", "R:001"]
    assert read_trace(io.StringIO(text)) == trace


def test_empty_trace_str():
    assert str(Trace()) == ""


def test_load_trace(tmp_path):
    path = tmp_path / "trace.dat"
    path.write_text("R:c84\nW:81c\n", encoding="utf-8")
    trace = load_trace(path)
    assert list(trace) == [Operation("R", 0xC84), Operation("W", 0x81C)]