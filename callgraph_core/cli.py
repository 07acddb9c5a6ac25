#!/usr/bin/env python3
"""callgraph_core/cli.py — command-line front-end.

Usage examples
--------------
    # Postorder (callees first) over every node, or from chosen roots
    callgraph graph.cg sort
    callgraph graph.cg sort --start main --start init

    # Tarjan order from an entry; --fail-on-cycle turns recursion into exit 1
    callgraph graph.cg scc --start main --fail-on-cycle

    # Dominator sets and natural loops with respect to an entry
    callgraph graph.cg dominators --start main
    callgraph --format json graph.cg loops --start main

    # Graphviz output and summary statistics
    callgraph graph.cg dot | dot -Tsvg > graph.svg
    callgraph -v graph.cg stats

Exit codes
----------
    0   Success.
    1   Analysis finding (a cycle, with ``scc --fail-on-cycle``).
    2   Infrastructure failure (missing file, syntax error, unknown node).

``-v`` enables progress messages and the trace lines emitted by the graph
algorithms; ``-vv`` adds dominator and loop diagnostics.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional, Sequence, TextIO

from callgraph_core import __version__
from callgraph_core.callgraph import CallGraph
from callgraph_core.dominance import loop_nesting
from callgraph_core.errors import CallGraphError
from callgraph_core.textformat import load_graph, load_graph_file

_log = logging.getLogger("callgraph_core")

EXIT_OK: int = 0
EXIT_FINDING: int = 1
EXIT_INFRA: int = 2

# Handler installed by the last _configure_logging() call.
_handler: Optional[logging.Handler] = None


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``callgraph_core`` logger.

    Parameters
    ----------
    verbosity:
        0 → WARNING, 1 → INFO (algorithm trace lines), 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    global _handler
    root = logging.getLogger("callgraph_core")
    if _handler is not None:
        root.removeHandler(_handler)

    _handler = logging.StreamHandler(sys.stderr)
    _handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root.setLevel(level)
    root.addHandler(_handler)


def _read_graph(path: str, name: Optional[str]) -> CallGraph:
    if path == "-":
        return load_graph(sys.stdin.read(), name=name, source="<stdin>")
    return load_graph_file(path, name=name)


def _write(stream: TextIO, fmt: str, text_lines: List[str], payload: Any) -> None:
    if fmt == "json":
        stream.write(json.dumps(payload, indent=2) + "\n")
    else:
        for line in text_lines:
            stream.write(line + "\n")


def _names(nodes: Sequence[Any]) -> List[str]:
    return [str(n) for n in nodes]


# ===========================================================================
# Commands
# ===========================================================================

def cmd_sort(graph: CallGraph, args: argparse.Namespace, stream: TextIO) -> int:
    start = args.start or None
    order = graph.sort([], start)
    _write(stream, args.format, _names(order), {"order": _names(order)})
    return EXIT_OK


def cmd_scc(graph: CallGraph, args: argparse.Namespace, stream: TextIO) -> int:
    if args.all:
        sccs = graph.strongly_connected_components()
        cyclic = any(len(scc) > 1 for scc in sccs)
    else:
        order: List[Any] = []
        cyclic = graph.scc_sort(args.start, order)
        sccs = [order]
    lines = [" ".join(_names(scc)) for scc in sccs]
    lines.append(f"cycle: {'yes' if cyclic else 'no'}")
    _write(stream, args.format, lines,
           {"components": [_names(scc) for scc in sccs], "cycle": cyclic})
    if cyclic and args.fail_on_cycle:
        _log.warning("%s: non-trivial cycle reachable", graph.name)
        return EXIT_FINDING
    return EXIT_OK


def cmd_dominators(graph: CallGraph, args: argparse.Namespace,
                   stream: TextIO) -> int:
    dom = graph.dominators(args.start)
    live = None if args.all else graph.reachable(args.start)
    payload: Dict[str, List[str]] = {}
    lines: List[str] = []
    for node in graph.nodes:
        if live is not None and node not in live:
            continue
        # Present dominators in graph order for stable output.
        doms = [str(d) for d in graph.nodes if d in dom[node]]
        payload[str(node)] = doms
        lines.append(f"{node}: {' '.join(doms)}")
    _write(stream, args.format, lines, {"start": str(args.start),
                                        "dominators": payload})
    return EXIT_OK


def cmd_loops(graph: CallGraph, args: argparse.Namespace, stream: TextIO) -> int:
    loops = graph.compute_loops(args.start, reachable_only=args.reachable_only)
    parents = loop_nesting(loops)
    ordered = list(graph.nodes)
    lines: List[str] = []
    payload: List[Dict[str, Any]] = []
    for loop in loops:
        body = [str(n) for n in ordered if n in loop.body]
        tails = [str(n) for n in ordered if n in loop.back_edge_heads]
        parent = parents.get(loop.entry)
        lines.append(
            f"loop {loop.entry}: body {' '.join(body)}; "
            f"back-edges from {' '.join(tails)}"
            + (f"; inside {parent}" if parent is not None else "")
        )
        payload.append({
            "entry": str(loop.entry),
            "body": body,
            "back_edge_heads": tails,
            "parent": None if parent is None else str(parent),
        })
    if not loops:
        lines.append("no loops")
    _write(stream, args.format, lines, {"start": str(args.start),
                                        "loops": payload})
    return EXIT_OK


def cmd_dot(graph: CallGraph, args: argparse.Namespace, stream: TextIO) -> int:
    stream.write(graph.to_dot(args.title) + "\n")
    return EXIT_OK


def cmd_stats(graph: CallGraph, args: argparse.Namespace, stream: TextIO) -> int:
    stats = graph.statistics()
    _write(stream, args.format,
           [f"{key}: {value}" for key, value in stats.items()], stats)
    return EXIT_OK


# ===========================================================================
# Argument parser
# ===========================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="callgraph",
        description="Ordering, SCC, dominator and loop analyses over a "
                    "call-graph description file.",
    )
    parser.add_argument("--version", action="version",
                        version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="increase verbosity (-v prints algorithm traces)")
    parser.add_argument("--format", choices=("text", "json"), default="text",
                        help="output format (default: text)")
    parser.add_argument("--name", default=None,
                        help="override the graph name from the file header")
    parser.add_argument("file", help="call-graph description file, or '-'")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("sort", help="postorder: callees before callers")
    p.add_argument("--start", action="append", default=[],
                   help="DFS root (repeatable); default is every node")
    p.set_defaults(func=cmd_sort)

    p = sub.add_parser("scc", help="Tarjan strongly-connected components")
    group = p.add_mutually_exclusive_group(required=True)
    group.add_argument("--start", help="entry node")
    group.add_argument("--all", action="store_true",
                       help="decompose the whole graph")
    p.add_argument("--fail-on-cycle", action="store_true",
                   help="exit with status 1 when a non-trivial cycle exists")
    p.set_defaults(func=cmd_scc)

    p = sub.add_parser("dominators", help="dominator sets from an entry")
    p.add_argument("--start", required=True, help="entry node")
    p.add_argument("--all", action="store_true",
                   help="include nodes unreachable from the entry")
    p.set_defaults(func=cmd_dominators)

    p = sub.add_parser("loops", help="natural loops from an entry")
    p.add_argument("--start", required=True, help="entry node")
    p.add_argument("--reachable-only", action="store_true",
                   help="ignore edges and callers unreachable from the entry")
    p.set_defaults(func=cmd_loops)

    p = sub.add_parser("dot", help="Graphviz DOT output")
    p.add_argument("--title", default=None, help="graph label")
    p.set_defaults(func=cmd_dot)

    p = sub.add_parser("stats", help="summary statistics")
    p.set_defaults(func=cmd_stats)

    return parser


def main(argv: Optional[Sequence[str]] = None,
         stream: Optional[TextIO] = None) -> int:
    """Entry point for the ``callgraph`` console script."""
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    out = stream if stream is not None else sys.stdout

    try:
        graph = _read_graph(args.file, args.name)
        return args.func(graph, args, out)
    except OSError as exc:
        _log.error("cannot read %s: %s", args.file, exc)
        return EXIT_INFRA
    except CallGraphError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA


if __name__ == "__main__":
    sys.exit(main())
