# callgraph_core/textformat.py
"""
Call-graph description files.

A small line-oriented language for feeding graphs to the command-line
front-end and to tests::

    # comments run to the end of the line
    callgraph ingress;              # optional header: the graph name
    main -> parse, deparse;         # edges, appended in order
    parse -> parse;                 # self-loop
    helper;                         # node with no edges
    "odd name" -> main;             # quoted names (JSON string escapes)

Statements are terminated by ``;``.  A bare name may use letters, digits
and ``_ . $ : @``; anything else needs quotes.  Repeating an edge adds a
parallel edge, exactly as :meth:`CallGraph.add` does.

The grammar is a Parsimonious PEG; the parse tree is walked by a
``NodeVisitor`` that populates a :class:`CallGraph` as it goes.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List, Optional, Union

from parsimonious.exceptions import ParseError, VisitationError
from parsimonious.grammar import Grammar
from parsimonious.nodes import Node, NodeVisitor

from callgraph_core.callgraph import CallGraph
from callgraph_core.errors import GraphFormatError

__all__ = ["GRAPH_GRAMMAR", "load_graph", "load_graph_file"]

_log = logging.getLogger(__name__)

DEFAULT_GRAPH_NAME = "callgraph"


# ═══════════════════════════════════════════════════════════════════
#  Grammar
# ═══════════════════════════════════════════════════════════════════

GRAPH_GRAMMAR = Grammar(r'''
    document     = _ header? statement*

    header       = "callgraph" __ name _ ";" _
    statement    = edge_stmt / node_stmt
    edge_stmt    = name _ "->" _ name_list _ ";" _
    node_stmt    = name _ ";" _

    name_list    = name more_names*
    more_names   = _ "," _ name

    name         = quoted_name / bare_name
    quoted_name  = ~r'"(?:[^"\\\n]|\\.)*"'
    bare_name    = ~r"[A-Za-z0-9_.$:@]+"

    __           = ~r"[ \t]+"
    _            = (~r"\s+" / comment)*
    comment      = ~r"#[^\n]*"
''')


# ═══════════════════════════════════════════════════════════════════
#  Tree walker
# ═══════════════════════════════════════════════════════════════════

class _GraphBuilder(NodeVisitor):
    """Populates ``self.graph`` while visiting a parse tree.

    Children are visited before their parents, and statements in
    document order, so edges are added in the order they are written.
    """

    grammar = GRAPH_GRAMMAR

    def __init__(self, graph: CallGraph, rename: bool) -> None:
        self.graph = graph
        self.rename = rename

    def generic_visit(self, node: Node, visited_children: List[Any]) -> Any:
        return visited_children or node

    def visit_header(self, node: Node, visited_children: List[Any]) -> None:
        name = visited_children[2]
        if self.rename:
            self.graph.name = name

    def visit_edge_stmt(self, node: Node, visited_children: List[Any]) -> None:
        caller = visited_children[0]
        for callee in visited_children[4]:
            self.graph.add(caller, callee)

    def visit_node_stmt(self, node: Node, visited_children: List[Any]) -> None:
        self.graph.add(visited_children[0])

    def visit_name_list(self, node: Node, visited_children: List[Any]) -> List[str]:
        first, rest = visited_children
        # An empty repetition comes back as the bare Node.
        return [first] + (rest if isinstance(rest, list) else [])

    def visit_more_names(self, node: Node, visited_children: List[Any]) -> str:
        return visited_children[3]

    def visit_name(self, node: Node, visited_children: List[Any]) -> str:
        return visited_children[0]

    def visit_quoted_name(self, node: Node, visited_children: List[Any]) -> str:
        return json.loads(node.text)

    def visit_bare_name(self, node: Node, visited_children: List[Any]) -> str:
        return node.text


# ═══════════════════════════════════════════════════════════════════
#  Public API
# ═══════════════════════════════════════════════════════════════════

def load_graph(
    text: str,
    name: Optional[str] = None,
    logger: Optional[logging.Logger] = None,
    source: Optional[str] = None,
) -> CallGraph:
    """Parse a description and return a new ``CallGraph[str]``.

    Parameters
    ----------
    text : str
        The description.
    name : str, optional
        Graph name.  Overrides any ``callgraph NAME;`` header; defaults to
        the header, or ``"callgraph"`` when there is none.
    logger : logging.Logger, optional
        Trace sink handed to the graph.
    source : str, optional
        File name used in error messages.

    Raises
    ------
    GraphFormatError
        On any syntax error.
    """
    graph: CallGraph = CallGraph(name or DEFAULT_GRAPH_NAME, logger=logger)
    builder = _GraphBuilder(graph, rename=name is None)
    try:
        builder.parse(text)
    except ParseError as exc:
        raise GraphFormatError(
            _describe_parse_error(exc),
            line=exc.line(),
            column=exc.column(),
            source=source,
        ) from exc
    except VisitationError as exc:
        # Only malformed quoted names can fail inside a visit method.
        raise GraphFormatError(
            f"invalid name: {exc.original_class.__name__}", source=source
        ) from exc
    _log.info("loaded call graph %r: %d nodes, %d edges",
              graph.name, len(graph), graph.edge_count())
    return graph


def load_graph_file(
    path: Union[str, Path],
    name: Optional[str] = None,
    logger: Optional[logging.Logger] = None,
) -> CallGraph:
    """Read and parse the description file at *path*."""
    p = Path(path)
    text = p.read_text(encoding="utf-8")
    return load_graph(text, name=name, logger=logger, source=str(p))


def _describe_parse_error(exc: ParseError) -> str:
    snippet = exc.text[exc.pos:exc.pos + 20].split("\n", 1)[0]
    if not snippet:
        return "unexpected end of input"
    return f"unexpected text {snippet!r}"
