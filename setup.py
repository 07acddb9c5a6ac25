#!/usr/bin/env python3
# =============================================================================
#  callgraph-core — setup.py  (legacy compatibility shim)
#
#  All authoritative metadata lives in pyproject.toml.
#  This file exists so that `pip install -e .` works on older pip /
#  setuptools that pre-date PEP 660 editable installs.
#
#  For new tooling, prefer:
#      pip install -e ".[dev]"
#      python -m build
#      python -m pytest
# =============================================================================

from setuptools import setup, find_packages

setup(
    packages=find_packages(
        include=["callgraph_core", "callgraph_core.*"],
        exclude=["tests", "tests.*"],
    ),
    package_data={"callgraph_core": ["py.typed"]},
    zip_safe=False,
)
