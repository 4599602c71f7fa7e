"""Trace-driven simulator of a TLB, page table, data cache and L2 cache."""

__version__ = "0.1.0"
__all__ = ["__version__"]