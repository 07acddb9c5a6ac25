# callgraph_core/dominance.py
"""
Dominator sets and natural loops over a :class:`~callgraph_core.callgraph.CallGraph`.

Node *d* dominates node *n* (with respect to an entry *s*) if every path
from *s* to *n* passes through *d*.  An edge ``e -> h`` whose target
dominates its source is a back-edge, and *h* is the header of a natural
loop.

The functions here only read the graph through its public accessors
(``nodes``, ``items()``, ``get_callers()``), so they work on anything that
quacks like a call graph.

Principal entry points
----------------------
- dominators        iterative fixed-point dominator sets
- compute_loops     natural loops keyed by header
- loop_nesting      innermost enclosing loop of every loop
- reachable         nodes reachable from an entry

References
----------
[1] Aho, Lam, Sethi, Ullman – "Compilers: Principles, Techniques, &
    Tools", 2e, §9.6 (natural loops), §9.7 (dominators).
[2] Cooper, Harvey, Kennedy – "A Simple, Fast Dominance Algorithm", 2001.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Set

from callgraph_core.errors import ContractViolation, UnknownNodeError

if TYPE_CHECKING:
    from callgraph_core.callgraph import CallGraph

__all__ = [
    "Loop",
    "dominators",
    "compute_loops",
    "loop_nesting",
    "reachable",
]

_log = logging.getLogger(__name__)


# ===================================================================
#  Reachability
# ===================================================================

def reachable(graph: "CallGraph", start: Any) -> Set[Any]:
    """Return *start* plus every node reachable from it."""
    if start not in graph.nodes:
        raise UnknownNodeError(start, graph.name)
    seen: Set[Any] = {start}
    work: List[Any] = [start]
    while work:
        node = work.pop()
        for succ in graph.get_callees(node):
            if succ not in seen:
                seen.add(succ)
                work.append(succ)
    return seen


# ===================================================================
#  1. Dominator sets
# ===================================================================

def dominators(
    graph: "CallGraph",
    start: Any,
    out: Optional[Dict[Any, Set[Any]]] = None,
) -> Dict[Any, Set[Any]]:
    """Compute the dominator set of every node with respect to *start*.

    Classic iterative data-flow formulation: ``dom[start] = {start}``,
    every other node starts at the universal set, and each pass replaces
    ``dom[n]`` by ``{n} ∪ (dom[n] ∩ ⋂ dom[p])`` over the predecessors *p*
    of *n*, until a whole pass changes nothing.  Starting from the
    universal set yields the greatest fixed point, which is the dominator
    relation.

    Parameters
    ----------
    graph : CallGraph
    start : node
        The entry node.  Must be known to the graph.
    out : dict, optional
        Destination map.  Must be empty; a fresh dict is used when omitted.

    Returns
    -------
    dict
        ``out``, mapping every node to its dominator set.  Nodes not
        reachable from *start* keep the universal set; filter with
        :func:`reachable` when that matters.
    """
    if out is None:
        out = {}
    elif out:
        raise ContractViolation(
            "dominators() needs an empty output map, got one with "
            f"{len(out)} entries"
        )
    if start not in graph.nodes:
        raise UnknownNodeError(start, graph.name)

    nodes = list(graph.nodes)
    universe = frozenset(nodes)
    for n in nodes:
        out[n] = {start} if n == start else set(universe)

    # Iterate until a full pass leaves every set unchanged.  The meet
    # builds a new set; the one being read is never mutated in place.
    passes = 0
    changed = True
    while changed:
        changed = False
        passes += 1
        for n in nodes:
            preds = graph.get_callers(n)
            if not preds:
                continue
            current = out[n]
            meet = set(current)
            for p in preds:
                meet &= out[p]
            meet.add(n)
            if meet != current:
                out[n] = meet
                changed = True

    _log.debug("%s: dominators from %s converged after %d passes",
               graph.name, start, passes)
    return out


# ===================================================================
#  2. Natural loops
# ===================================================================

@dataclass
class Loop:
    """
    A natural loop.

    Attributes
    ----------
    entry            : the loop header; dominates every node of the body
    body             : nodes of the loop, header included
    back_edge_heads  : sources of the back-edges that target ``entry``
                       (several back-edges may share one header)
    """
    entry: Any
    body: Set[Any] = field(default_factory=set)
    back_edge_heads: Set[Any] = field(default_factory=set)

    @property
    def size(self) -> int:
        return len(self.body)

    def contains(self, node: Any) -> bool:
        return node in self.body


def compute_loops(
    graph: "CallGraph",
    start: Any,
    out: Optional[List[Loop]] = None,
    reachable_only: bool = False,
) -> List[Loop]:
    """Find the natural loops of *graph* as seen from *start*.

    For every edge ``e -> n`` with ``n`` in ``dom[e]``, ``n`` is a loop
    header and ``e`` one of its back-edge heads.  All back-edges sharing a
    header feed a single :class:`Loop`.  The body collects every node
    found by walking predecessor edges backwards from ``e``, without
    walking past ``n``.

    Edges are examined in node-insertion then edge-insertion order, and
    loops are appended to *out* in the order their headers are first seen.
    Nested loops share body nodes.

    By default every edge of the graph is examined and the body walk
    follows every predecessor.  Nodes unreachable from *start* keep the
    universal dominator set, so every edge among them counts as a
    back-edge.  Pass ``reachable_only=True`` to ignore edges leaving such
    nodes and keep the body walk from entering them.
    """
    if out is None:
        out = []
    dom = dominators(graph, start)
    live = reachable(graph, start) if reachable_only else None

    by_entry: Dict[Any, Loop] = {}
    for tail, callees in graph.items():
        if live is not None and tail not in live:
            continue
        dom_tail = dom[tail]
        for head in callees:
            if head not in dom_tail:
                continue
            loop = by_entry.get(head)
            if loop is None:
                loop = Loop(entry=head)
                loop.body.add(head)
                by_entry[head] = loop
                out.append(loop)
                _log.debug("%s: loop header %s", graph.name, head)
            loop.back_edge_heads.add(tail)

            work: List[Any] = [tail]
            while work:
                crt = work.pop()
                if crt in loop.body:
                    continue
                loop.body.add(crt)
                for pred in graph.get_callers(crt):
                    if live is None or pred in live:
                        work.append(pred)
    return out


def loop_nesting(loops: List[Loop]) -> Dict[Any, Optional[Any]]:
    """Map each loop header to the header of its innermost enclosing loop.

    Loop *A* is nested in *B* when A's body is a strict subset of B's.
    Top-level loops map to ``None``.
    """
    by_size = sorted(loops, key=lambda l: len(l.body))
    parent: Dict[Any, Optional[Any]] = {}
    for i, inner in enumerate(by_size):
        parent[inner.entry] = None
        for outer in by_size[i + 1:]:
            if inner.body < outer.body:
                parent[inner.entry] = outer.entry
                break
    return parent
