# memhier

A trace-driven simulator of a memory hierarchy. It models:

- a data TLB,
- a page table that replaces the least recently used physical page,
- a set-associative data cache (write-back/write-allocate or write-through/no-write-allocate),
- an optional L2 cache.

For each memory reference in a trace it prints the address breakdown and the hit/miss result at every level. At the end it prints summary statistics: hit ratios, reads and writes, main memory references, page table references and disk references.

## Installation

```
pip install .
```

To run the tests as well:

```
pip install .[test]
pytest
```

## Configuration

By default the configuration is read from a file named `trace.config` in the current directory. Sections and keys must appear in this order; blank lines are skipped:

```
Data TLB configuration
Number of sets: 2
Set size: 1

Page Table configuration
Number of virtual pages: 64
Number of physical pages: 4
Page size: 256

Data Cache configuration
Number of sets: 4
Set size: 1
Line size: 16
Write through/no write allocate: n

L2 Cache configuration
Number of sets: 16
Set size: 4
Line size: 16
Write through/no write allocate: n

Virtual addresses: y
TLB: y
L2 cache: y
```

Numbers are decimal, and sizes should be powers of two: bit widths are taken from the number of trailing zero bits. Flags are `y`/`Y` or `n`/`N`. The last three lines turn virtual addressing, the TLB and the L2 cache on or off. All caches, the TLB included, replace blocks least-recently-used.

## Traces

A trace holds one reference per line. Each line is `R` or `W`, a colon, and a hexadecimal address:

```
R:c84
W:81c
R:14c
```

Reading stops at end of input, or at the first line whose kind is neither `R` nor `W`.

## Running

Read the trace from a file:

```
memhier trace.dat
```

Or read it from standard input:

```
memhier < trace.dat
```

Use another configuration file with `--config`:

```
memhier --config my.config trace.dat
```

The report goes to standard output. When a page fault invalidates blocks, a line such as `Evicted 2 pages from the DC` is written to standard error. If a file cannot be opened or the configuration is malformed, the command prints the error and exits with status 1.

## Use as a library

```python
from memhier.config import load_config
from memhier.trace import load_trace
from memhier.simulator import Simulator

config = load_config("trace.config")
simulator = Simulator(config)
report = simulator.simulate(load_trace("trace.dat"))
print(report)
```

`Simulator.simulate_access` runs a single `Operation` (for example `Operation("R", 0xc84)`) and returns an `AccessOutput` with the details of that reference. `SimulatorOutput` holds the counters, and its string form is the full report.

The modules:

- `memhier.config` – `SimulatorConfig` and its parts, `load_config`.
- `memhier.trace` – `Operation`, `BlockAddress`, `Trace`, `read_trace`, `load_trace`.
- `memhier.cache` – `Cache`, `CacheSet`, `Block` and `EvictionPolicy` (`LRU`, `FIFO`, `RANDOM`).
- `memhier.tlb`, `memhier.pagetable`, `memhier.dc`, `memhier.l2` – the levels of the hierarchy.
- `memhier.output` – `AccessOutput` and `SimulatorOutput`.
- `memhier.parsing` – the line readers and `ConfigFormatError`.

## Limits

The configuration file has no setting for the replacement policy. FIFO and random replacement can be used only by building a `Cache` directly. A virtual address whose page lies outside the page table raises `ValueError` during simulation.