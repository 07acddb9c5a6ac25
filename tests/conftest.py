# tests/conftest.py
"""
Shared fixtures: the reference scenario graphs and a graph factory.
"""

import pytest

from callgraph_core import CallGraph


def build(name, edges, nodes=()):
    """Build a ``CallGraph[str]`` from edge pairs, then extra *nodes*."""
    cg = CallGraph(name)
    for caller, callee in edges:
        cg.add(caller, callee)
    for n in nodes:
        cg.add(n)
    return cg


@pytest.fixture
def make_graph():
    return build


@pytest.fixture
def linear_chain():
    return build("linear", [("A", "B"), ("B", "C"), ("C", "D")])


@pytest.fixture
def diamond():
    return build("diamond", [("A", "B"), ("A", "C"), ("B", "D"), ("C", "D")])


@pytest.fixture
def self_loop():
    return build("self-loop", [("A", "A")])


@pytest.fixture
def simple_cycle():
    return build("cycle", [("A", "B"), ("B", "C"), ("C", "A")])


@pytest.fixture
def nested_loops():
    return build("nested", [
        ("A", "B"), ("B", "C"), ("C", "B"), ("B", "D"), ("D", "A"),
    ])


@pytest.fixture
def disconnected():
    return build("disconnected", [("A", "B")], nodes=["C"])
