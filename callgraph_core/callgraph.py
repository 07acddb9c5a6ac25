"""
callgraph_core.callgraph
========================

Generic call graph for compiler middle-end analyses.

The graph is a directed multigraph over opaque node values:

- **Nodes** are any hashable value with a stable ``str()``.  Two nodes are
  the same iff they compare equal.
- **Edges** ``caller -> callee`` mean "caller invokes callee".  Each call
  site may be its own edge, so parallel edges are kept.

Both adjacency directions are stored in insertion-ordered dicts, which
makes every traversal below deterministic from run to run.

Public API
----------
    CallGraph       - the graph store plus sort / SCC entry points
    Loop            - natural loop record (re-exported from :mod:`dominance`)

Typical usage::

    from callgraph_core import CallGraph

    cg = CallGraph("controls")
    cg.add("ingress", "apply_acl")
    cg.add("apply_acl", "drop")

    order = cg.sort([])                 # callees before callers
    scc_order = []
    has_cycle = cg.scc_sort("ingress", scc_order)
    loops = cg.compute_loops("ingress")

Relationship to other modules
-----------------------------
* Dominator and loop computations live in :mod:`callgraph_core.dominance`;
  the ``dominators`` / ``compute_loops`` methods here delegate to it.
* :mod:`callgraph_core.textformat` builds ``CallGraph[str]`` instances from
  description files for the command-line front-end.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import (
    Any,
    Deque,
    Dict,
    Generic,
    Hashable,
    Iterable,
    Iterator,
    KeysView,
    List,
    Optional,
    Set,
    Tuple,
    TypeVar,
)

from callgraph_core import dominance
from callgraph_core.dominance import Loop
from callgraph_core.errors import UnknownNodeError

__all__ = ["CallGraph", "Loop"]

_log = logging.getLogger(__name__)

N = TypeVar("N", bound=Hashable)

_NO_CALLEE = object()


class CallGraph(Generic[N]):
    """Directed call graph with forward and reverse adjacency.

    Attributes
    ----------
    name : str
        Label used only in trace output.
    logger : logging.Logger
        Sink for trace lines, emitted at ``INFO``.

    The graph only grows: nodes and edges are added, never removed.
    Algorithms are read-only with respect to the graph and write into
    containers supplied (or returned) to the caller.
    """

    def __init__(self, name: str, logger: Optional[logging.Logger] = None) -> None:
        self.name: str = name
        self.logger: logging.Logger = logger or _log
        # A node is known iff it is a key of both maps.
        self._out_edges: Dict[N, List[N]] = {}
        self._in_edges: Dict[N, List[N]] = {}

    # ----- mutation ---------------------------------------------------------

    def add(self, caller: N, callee: Any = _NO_CALLEE) -> None:
        """Add a node, or a ``caller -> callee`` edge.

        With one argument the node is made known (idempotent).  With two
        the endpoints are made known and a new edge is appended, so
        repeated calls with the same pair create parallel edges.
        """
        if callee is _NO_CALLEE:
            self._add_node(caller)
            return
        self.logger.info("%s: %s is called by %s", self.name, callee, caller)
        self._add_node(caller)
        self._add_node(callee)
        self._out_edges[caller].append(callee)
        self._in_edges[callee].append(caller)

    def _add_node(self, node: N) -> None:
        if node in self._out_edges:
            return
        self.logger.info("%s: %s", self.name, node)
        self._out_edges[node] = []
        self._in_edges[node] = []

    # ----- queries ----------------------------------------------------------

    @property
    def nodes(self) -> KeysView[N]:
        """All known nodes, in first-insertion order."""
        return self._out_edges.keys()

    def is_caller(self, node: N) -> bool:
        """True iff *node* is known, whether or not it calls anything."""
        return node in self._out_edges

    def is_callee(self, node: N) -> bool:
        """True iff *node* has at least one incoming edge."""
        callers = self._in_edges.get(node)
        return bool(callers)

    def get_callees(self, caller: N) -> List[N]:
        """The out-edges of *caller* in insertion order.

        The returned list is owned by the graph; it grows as edges are
        added and must not be modified.
        """
        try:
            return self._out_edges[caller]
        except KeyError:
            raise UnknownNodeError(caller, self.name) from None

    def get_callers(self, callee: N) -> List[N]:
        """The in-edges of *callee*, one entry per call edge."""
        try:
            return self._in_edges[callee]
        except KeyError:
            raise UnknownNodeError(callee, self.name) from None

    def collect_callees(self, caller: N, acc: Set[N]) -> Set[N]:
        """Union the callees of *caller* into *acc* (no-op if unknown)."""
        callees = self._out_edges.get(caller)
        if callees is not None:
            acc.update(callees)
        return acc

    def items(self) -> Iterator[Tuple[N, List[N]]]:
        """Yield ``(node, callees)`` pairs in node-insertion order."""
        return iter(self._out_edges.items())

    def __iter__(self) -> Iterator[Tuple[N, List[N]]]:
        return self.items()

    def __len__(self) -> int:
        return len(self._out_edges)

    def __contains__(self, node: object) -> bool:
        return node in self._out_edges

    def edge_count(self) -> int:
        return sum(len(callees) for callees in self._out_edges.values())

    @property
    def roots(self) -> List[N]:
        """Nodes nobody calls."""
        return [n for n, callers in self._in_edges.items() if not callers]

    @property
    def leaves(self) -> List[N]:
        """Nodes that call nothing."""
        return [n for n, callees in self._out_edges.items() if not callees]

    def transitive_callees(self, node: N) -> Set[N]:
        """Return all nodes reachable from *node* through one or more edges."""
        visited: Set[N] = set()
        worklist: Deque[N] = deque(self.get_callees(node))
        while worklist:
            n = worklist.popleft()
            if n in visited:
                continue
            visited.add(n)
            worklist.extend(self._out_edges[n])
        return visited

    def is_recursive(self, node: N) -> bool:
        """Is *node* on a cycle (a self-loop counts)?"""
        return node in self.transitive_callees(node)

    # ----- reachability sort ------------------------------------------------

    def sort(self, out: List[N], start: Optional[Iterable[N]] = None) -> List[N]:
        """Append nodes to *out* in DFS postorder and return *out*.

        Each node is emitted after all of its callees, so on an acyclic
        graph callees come before callers.  If the graph has cycles other
        than self-loops the result is still a listing of every reachable
        node exactly once, but the order inside a strongly-connected
        component is unspecified.

        *start* lists the DFS roots, visited in order with one shared
        "done" set.  When omitted every node is a root, in insertion
        order, so every node appears exactly once.
        """
        roots = list(self._out_edges) if start is None else start
        done: Set[N] = set()
        for root in roots:
            self._postorder(root, out, done)
        return out

    def _postorder(self, root: N, out: List[N], done: Set[N]) -> None:
        # Nodes enter ``done`` when first reached so that back-edges to a
        # node still on the stack are skipped.
        if root in done:
            return
        done.add(root)
        stack: List[Tuple[N, Iterator[N]]] = [
            (root, iter(self._out_edges.get(root, ())))
        ]
        while stack:
            node, children = stack[-1]
            for child in children:
                if child not in done:
                    done.add(child)
                    stack.append((child, iter(self._out_edges[child])))
                    break
            else:
                stack.pop()
                self.logger.info("Order %s", node)
                out.append(node)

    # ----- dominators and loops ---------------------------------------------

    def reachable(self, start: N) -> Set[N]:
        """Return *start* plus every node reachable from it."""
        return dominance.reachable(self, start)

    def dominators(
        self, start: N, out: Optional[Dict[N, Set[N]]] = None
    ) -> Dict[N, Set[N]]:
        """See :func:`callgraph_core.dominance.dominators`."""
        return dominance.dominators(self, start, out)

    def compute_loops(
        self,
        start: N,
        out: Optional[List[Loop]] = None,
        reachable_only: bool = False,
    ) -> List[Loop]:
        """See :func:`callgraph_core.dominance.compute_loops`."""
        return dominance.compute_loops(self, start, out, reachable_only)

    # ----- strongly-connected components ------------------------------------

    def scc_sort(self, start: N, out: List[N]) -> bool:
        """Tarjan's algorithm from *start*, appending SCC members to *out*.

        Members are appended in stack-pop order, one component at a
        time, so components are contiguous and appear callees first.
        Only nodes reachable from *start* are visited.

        Returns True iff at least one component has more than one node;
        self-loops are not non-trivial cycles.
        """
        if start not in self._out_edges:
            raise UnknownNodeError(start, self.name)
        return self._strong_connect(start, _SccState(), out)

    def strongly_connected_components(self) -> List[List[N]]:
        """Decompose the whole graph, callees first.

        Tarjan is restarted from every node not yet visited, in insertion
        order, sharing one index space.
        """
        state: _SccState = _SccState()
        order: List[N] = []
        for node in self._out_edges:
            if state.unknown(node):
                self._strong_connect(node, state, order)
        return [list(scc) for scc in state.components]

    def _strong_connect(self, root: N, state: "_SccState", out: List[N]) -> bool:
        log = self.logger
        cyclic = False

        state.visit(root, log)
        frames: List[Tuple[N, Iterator[N]]] = [(root, iter(self._out_edges[root]))]
        while frames:
            node, successors = frames[-1]
            descended = False
            for succ in successors:
                log.info("%s => %s", node, succ)
                if state.unknown(succ):
                    state.visit(succ, log)
                    frames.append((succ, iter(self._out_edges[succ])))
                    descended = True
                    break
                if state.is_on_stack(succ):
                    state.lower(node, succ, log)
            if descended:
                continue

            frames.pop()
            if state.lowlink[node] == state.index[node]:
                log.info("%s index=%d lowlink=%d",
                          node, state.index[node], state.lowlink[node])
                members: List[N] = []
                while True:
                    member = state.pop()
                    log.info("Scc order %s[%s]", member, node)
                    out.append(member)
                    members.append(member)
                    if member == node:
                        break
                    cyclic = True
                state.components.append(members)
            if frames:
                # Returning from the tree edge parent -> node.
                state.lower(frames[-1][0], node, log)
        return cyclic

    # ----- reporting --------------------------------------------------------

    def statistics(self) -> Dict[str, Any]:
        """Return a dict with summary statistics."""
        sccs = self.strongly_connected_components()
        return {
            "name": self.name,
            "nodes": len(self),
            "edges": self.edge_count(),
            "roots": len(self.roots),
            "leaves": len(self.leaves),
            "sccs": len(sccs),
            "recursive_sccs": sum(1 for scc in sccs if len(scc) > 1),
            "self_loops": sum(1 for n, callees in self._out_edges.items()
                              if n in callees),
        }

    def to_dot(self, title: Optional[str] = None) -> str:
        """Return a Graphviz DOT representation."""
        lines = ["digraph CallGraph {"]
        lines.append("  rankdir=TB;")
        lines.append(f'  label="{_dot_escape(title or self.name)}";')
        lines.append('  node [shape=box, fontname="Helvetica", fontsize=10];')
        for n in self._out_edges:
            lines.append(f'  "{_dot_escape(str(n))}";')
        for caller, callees in self._out_edges.items():
            for callee in callees:
                lines.append(
                    f'  "{_dot_escape(str(caller))}" -> "{_dot_escape(str(callee))}";'
                )
        lines.append("}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"CallGraph({self.name!r}, nodes={len(self)}, edges={self.edge_count()})"
        )


def _dot_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


# ---------------------------------------------------------------------------
# Tarjan bookkeeping
# ---------------------------------------------------------------------------

class _SccState:
    """Per-run state for Tarjan's algorithm."""

    def __init__(self) -> None:
        self.counter: int = 0
        self.stack: List[Any] = []
        self.on_stack: Set[Any] = set()
        self.index: Dict[Any, int] = {}
        self.lowlink: Dict[Any, int] = {}
        self.components: List[List[Any]] = []

    def unknown(self, node: Any) -> bool:
        return node not in self.index

    def is_on_stack(self, node: Any) -> bool:
        return node in self.on_stack

    def visit(self, node: Any, log: logging.Logger) -> None:
        log.info("scc %s", node)
        self.index[node] = self.counter
        self.lowlink[node] = self.counter
        self.counter += 1
        self.stack.append(node)
        self.on_stack.add(node)

    def lower(self, node: Any, successor: Any, log: logging.Logger) -> None:
        # lowlink of the successor, not its index, in both edge cases
        slink = self.lowlink[successor]
        if slink < self.lowlink[node]:
            self.lowlink[node] = slink
            log.info("%s.lowlink = %d", node, slink)

    def pop(self) -> Any:
        node = self.stack.pop()
        self.on_stack.discard(node)
        return node
