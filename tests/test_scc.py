# tests/test_scc.py
"""
Tarjan SCC decomposition and the non-trivial-cycle flag.
"""

import logging

import pytest

from callgraph_core import CallGraph, UnknownNodeError


def _reachable(cg, start):
    return {start} | cg.transitive_callees(start)


def _component_of(cg, node):
    """Brute-force SCC: nodes mutually reachable with *node*."""
    forward = _reachable(cg, node)
    return {m for m in forward if node in _reachable(cg, m)}


def _split(cg, order):
    """Cut a Tarjan output sequence into its components."""
    components = []
    i = 0
    while i < len(order):
        comp = _component_of(cg, order[i])
        chunk = order[i:i + len(comp)]
        assert set(chunk) == comp, "component is not contiguous"
        components.append(chunk)
        i += len(comp)
    return components


GRAPHS = [
    [("A", "B"), ("B", "C"), ("C", "D")],
    [("A", "B"), ("A", "C"), ("B", "D"), ("C", "D")],
    [("A", "A")],
    [("A", "B"), ("B", "C"), ("C", "A")],
    [("A", "B"), ("B", "C"), ("C", "B"), ("B", "D"), ("D", "A")],
    [("A", "B"), ("B", "C"), ("C", "B"), ("C", "D"), ("D", "E"),
     ("E", "F"), ("F", "D"), ("A", "G"), ("G", "G")],
    [("A", "B"), ("A", "B"), ("B", "A"), ("B", "C")],
    [("s", "x"), ("x", "y"), ("y", "x"), ("y", "z"), ("z", "w"),
     ("w", "y"), ("s", "w")],
]


class TestScenarios:

    def test_linear_chain(self, linear_chain):
        out = []
        assert linear_chain.scc_sort("A", out) is False
        assert sorted(out) == ["A", "B", "C", "D"]

    def test_diamond(self, diamond):
        out = []
        assert diamond.scc_sort("A", out) is False
        assert sorted(out) == ["A", "B", "C", "D"]
        assert out[0] == "D" and out[-1] == "A"

    def test_self_loop_is_not_a_cycle(self, self_loop):
        out = []
        assert self_loop.scc_sort("A", out) is False
        assert out == ["A"]

    def test_simple_cycle(self, simple_cycle):
        out = []
        assert simple_cycle.scc_sort("A", out) is True
        assert sorted(out) == ["A", "B", "C"]

    def test_nested_loops(self, nested_loops):
        out = []
        assert nested_loops.scc_sort("A", out) is True
        assert sorted(out) == ["A", "B", "C", "D"]

    def test_disconnected_visits_reachable_only(self, disconnected):
        out = []
        assert disconnected.scc_sort("A", out) is False
        assert out == ["B", "A"]


class TestOrderGuarantees:

    def test_condensation_order(self, make_graph):
        cg = make_graph("g", [("A", "B"), ("B", "C"), ("C", "B"), ("C", "D")])
        out = []
        assert cg.scc_sort("A", out) is True
        assert out == ["D", "C", "B", "A"]

    @pytest.mark.parametrize("edges", GRAPHS)
    def test_partition_of_reachable_nodes(self, make_graph, edges):
        cg = make_graph("g", edges)
        start = edges[0][0]
        out = []
        cg.scc_sort(start, out)
        assert len(out) == len(set(out))
        assert set(out) == _reachable(cg, start)

    @pytest.mark.parametrize("edges", GRAPHS)
    def test_components_contiguous_and_callees_first(self, make_graph, edges):
        cg = make_graph("g", edges)
        out = []
        cg.scc_sort(edges[0][0], out)
        components = _split(cg, out)
        rank = {n: i for i, comp in enumerate(components) for n in comp}
        for caller in out:
            for callee in cg.get_callees(caller):
                assert rank[callee] <= rank[caller]

    @pytest.mark.parametrize("edges", GRAPHS)
    def test_cycle_flag_matches_component_sizes(self, make_graph, edges):
        cg = make_graph("g", edges)
        start = edges[0][0]
        expected = any(len(_component_of(cg, n)) > 1
                       for n in _reachable(cg, start))
        assert cg.scc_sort(start, []) is expected

    def test_appends_to_existing_output(self, linear_chain):
        out = ["x"]
        linear_chain.scc_sort("C", out)
        assert out == ["x", "D", "C"]


class TestFullDecomposition:

    def test_disconnected(self, disconnected):
        assert disconnected.strongly_connected_components() == [["B"], ["A"], ["C"]]

    def test_components_cover_graph(self, make_graph):
        cg = make_graph("g", GRAPHS[5], nodes=["lonely"])
        sccs = cg.strongly_connected_components()
        flat = [n for scc in sccs for n in scc]
        assert sorted(flat) == sorted(cg.nodes)
        sizes = sorted(len(scc) for scc in sccs)
        assert sizes == [1, 1, 1, 2, 3]

    def test_restart_does_not_revisit(self, make_graph):
        cg = make_graph("g", [("B", "C"), ("A", "B")])
        assert cg.strongly_connected_components() == [["C"], ["B"], ["A"]]


class TestMisuse:

    def test_unknown_start(self, linear_chain):
        with pytest.raises(UnknownNodeError):
            linear_chain.scc_sort("Z", [])


class TestDeepGraphs:

    def test_long_cycle(self):
        cg = CallGraph("ring")
        n = 20000
        for i in range(n):
            cg.add(i, (i + 1) % n)
        out = []
        assert cg.scc_sort(0, out) is True
        assert len(out) == n
        assert out[-1] == 0

    def test_long_chain(self):
        cg = CallGraph("chain")
        n = 20000
        for i in range(n):
            cg.add(i, i + 1)
        out = []
        assert cg.scc_sort(0, out) is False
        assert out == list(range(n, -1, -1))


class TestTracing:

    def test_pop_order_is_traced(self, simple_cycle, caplog):
        caplog.set_level(logging.DEBUG, logger="callgraph_core.callgraph")
        simple_cycle.scc_sort("A", [])
        messages = [r.getMessage() for r in caplog.records]
        assert "scc A" in messages
        assert "Scc order A[A]" in messages
