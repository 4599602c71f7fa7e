import pytest

from memhier.config import (
    DataCacheConfig,
    L2CacheConfig,
    PageTableConfig,
    SimulatorConfig,
    TLBConfig,
)
from memhier.simulator import Simulator
from memhier.trace import Operation, Trace


def make_config(virtual=False, tlb=False, l2=False, dc_wt=False, l2_wt=False):
    return SimulatorConfig(
        virtual_addresses_enabled=virtual,
        tlb_enabled=tlb,
        l2_cache_enabled=l2,
        tlb=TLBConfig(2, 2),
        page_table=PageTableConfig(64, 4, 256),
        data_cache=DataCacheConfig(4, 1, 16, dc_wt),
        l2_cache=L2CacheConfig(16, 4, 16, l2_wt),
    )


def test_repeated_read_hits_data_cache():
    sim = Simulator(make_config())
    first = sim.simulate_access(Operation("R", 0x34))
    second = sim.simulate_access(Operation("R", 0x34))
    assert first.dc_hit is False
    assert second.dc_hit is True
    assert sim.output.dc_hits == 1
    assert sim.output.dc_misses == 1


def test_clock_advances_per_access():
    sim = Simulator(make_config())
    start = sim.time
    sim.simulate_access(Operation("R", 0))
    sim.simulate_access(Operation("W", 0))
    assert sim.time == start + 2


def test_conflicting_addresses_evict_in_direct_mapped_cache():
    sim = Simulator(make_config())
    results = [
        sim.simulate_access(Operation("R", address)).dc_hit
        for address in (0x00, 0x40, 0x00)
    ]
    assert results == [False, False, False]


def test_physical_mode_leaves_translation_fields_empty():
    sim = Simulator(make_config())
    out = sim.simulate_access(Operation("R", 0x1234))
    assert out.virtual_address is None
    assert out.virtual_page_number is None
    assert out.tlb_hit is None
    assert out.page_table_hit is None
    assert out.physical_address == 0x1234
    assert out.l2_hit is None


def test_page_fault_then_page_hit():
    sim = Simulator(make_config(virtual=True))
    first = sim.simulate_access(Operation("R", 0x1234))
    second = sim.simulate_access(Operation("R", 0x1210))
    assert first.page_table_hit is False
    assert second.page_table_hit is True
    assert first.physical_page_number == second.physical_page_number
    assert first.page_offset == 0x34
    assert first.virtual_address == 0x1234
    assert first.virtual_page_number == 0x12
    assert sim.output.pt_faults == 1
    assert sim.output.pt_hits == 1


def test_first_page_maps_to_first_frame():
    sim = Simulator(make_config(virtual=True))
    out = sim.simulate_access(Operation("R", 0x1234))
    assert out.physical_page_number == 0
    assert out.physical_address == 0x34


def test_address_outside_page_table_raises():
    sim = Simulator(make_config(virtual=True))
    with pytest.raises(ValueError):
        sim.simulate_access(Operation("R", 64 * 256))


def test_write_through_does_not_allocate_on_write_miss():
    sim = Simulator(make_config(dc_wt=True))
    write = sim.simulate_access(Operation("W", 0x80))
    read = sim.simulate_access(Operation("R", 0x80))
    again = sim.simulate_access(Operation("R", 0x80))
    assert write.dc_hit is False
    assert read.dc_hit is False
    assert again.dc_hit is True


def test_write_back_allocates_on_write_miss():
    sim = Simulator(make_config())
    sim.simulate_access(Operation("W", 0x80))
    assert sim.simulate_access(Operation("R", 0x80)).dc_hit is True


def test_l2_result_shown_only_on_dc_miss_for_reads():
    sim = Simulator(make_config(l2=True))
    first = sim.simulate_access(Operation("R", 0x20))
    second = sim.simulate_access(Operation("R", 0x20))
    assert first.l2_hit is False
    assert first.l2_address is not None
    assert second.l2_hit is None
    assert sim.output.l2_misses == 1
    assert sim.output.l2_hits == 0


def test_l2_catches_block_evicted_from_dc():
    sim = Simulator(make_config(l2=True, dc_wt=True, l2_wt=True))
    sim.simulate_access(Operation("R", 0x00))
    sim.simulate_access(Operation("R", 0x40))
    back = sim.simulate_access(Operation("R", 0x00))
    assert back.dc_hit is False
    assert back.l2_hit is True


def test_write_through_writes_reach_l2_even_on_dc_hit():
    sim = Simulator(make_config(l2=True, dc_wt=True, l2_wt=True))
    sim.simulate_access(Operation("R", 0x10))
    write = sim.simulate_access(Operation("W", 0x10))
    assert write.dc_hit is True
    assert write.l2_hit is True


def test_simulate_counts_reads_and_writes():
    trace = Trace([Operation("R", 0), Operation("W", 0x10), Operation("R", 0x20)])
    sim = Simulator(make_config(l2=True))
    output = sim.simulate(trace)
    assert len(output.accesses) == len(trace)
    assert output.total_reads == 2
    assert output.total_writes == 1
    assert output.dc_hits + output.dc_misses == len(trace)
    assert [a.access for a in output.accesses] == list(trace)


def test_simulate_starts_fresh_output():
    sim = Simulator(make_config())
    sim.simulate(Trace([Operation("R", 0)]))
    output = sim.simulate(Trace([Operation("R", 0x100)]))
    assert len(output.accesses) == 1


def test_report_reflects_statistics():
    sim = Simulator(make_config(virtual=True))
    output = sim.simulate(Trace([Operation("R", 0x100), Operation("R", 0x300)]))
    report = str(output)
    assert "Simulation statistics" in report
    assert report.endswith(f"disk refs        : {output.pt_faults}")
    assert f"pt faults        : {output.pt_faults}" in report