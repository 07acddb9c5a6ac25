"""
callgraph_core — call-graph algorithms for a compiler middle-end
================================================================

Core modules
------------
callgraph
    Generic call graph store, cycle-tolerant postorder sort and Tarjan
    strongly-connected-component decomposition.
dominance
    Iterative dominator sets and natural-loop discovery.
textformat
    Parser for call-graph description files (Parsimonious PEG).
errors
    Exception hierarchy.
cli
    The ``callgraph`` command-line front-end.

Quick start
-----------
>>> from callgraph_core import CallGraph
>>> cg = CallGraph("demo")
>>> cg.add("a", "b"); cg.add("b", "c")
>>> cg.sort([])
['c', 'b', 'a']
"""

from __future__ import annotations

import logging
from typing import List

__version__ = "0.1.0"
__license__ = "MIT"

from callgraph_core.errors import (  # noqa: E402
    CallGraphError,
    ContractViolation,
    GraphFormatError,
    UnknownNodeError,
)
from callgraph_core.dominance import (  # noqa: E402
    Loop,
    compute_loops,
    dominators,
    loop_nesting,
    reachable,
)
from callgraph_core.callgraph import CallGraph  # noqa: E402
from callgraph_core.textformat import load_graph, load_graph_file  # noqa: E402

__all__: List[str] = [
    "CallGraph",
    "Loop",
    "dominators",
    "compute_loops",
    "loop_nesting",
    "reachable",
    "load_graph",
    "load_graph_file",
    "CallGraphError",
    "ContractViolation",
    "GraphFormatError",
    "UnknownNodeError",
]

logging.getLogger(__name__).addHandler(logging.NullHandler())
