[build-system]
requires = ["setuptools>=61"]
build-backend = "setuptools.build_meta"

[project]
name = "memhier"
version = "0.1.0"
description = "Trace-driven simulator of a memory hierarchy: TLB, page table, data cache and L2 cache"
requires-python = ">=3.10"
dependencies = []
keywords = ["cache", "simulator", "tlb", "page table", "memory hierarchy", "trace"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Education",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
memhier = "memhier.cli:main"

[tool.setuptools.packages.find]
include = ["memhier*"]

[tool.pytest.ini_options]
addopts = "-ra"
