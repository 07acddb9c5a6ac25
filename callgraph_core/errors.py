# callgraph_core/errors.py
"""
Exception types for callgraph_core.

The graph algorithms have no recoverable errors: everything raised here
signals either misuse of the API or malformed input handed to the
description-file loader.

Hierarchy
---------
::

    CallGraphError
    ├── UnknownNodeError     query on a node that was never added (also a KeyError)
    ├── ContractViolation    precondition broken by the caller (also a ValueError)
    └── GraphFormatError     syntax error in a call-graph description file
"""

from __future__ import annotations

from typing import Any, Optional


class CallGraphError(Exception):
    """Base class for every error raised by callgraph_core."""


class UnknownNodeError(CallGraphError, KeyError):
    """A query named a node that was never added to the graph."""

    def __init__(self, node: Any, graph_name: Optional[str] = None) -> None:
        self.node = node
        self.graph_name = graph_name
        where = f" in call graph {graph_name!r}" if graph_name else ""
        super().__init__(f"unknown node {node!s}{where}")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return self.args[0]


class ContractViolation(CallGraphError, ValueError):
    """The caller broke a documented precondition."""


class GraphFormatError(CallGraphError):
    """A call-graph description could not be parsed.

    Attributes
    ----------
    line, column : int or None
        1-based position of the offending text, when known.
    source : str or None
        Name of the file (or ``"<string>"``) being parsed.
    """

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
        source: Optional[str] = None,
    ) -> None:
        self.message = message
        self.line = line
        self.column = column
        self.source = source
        super().__init__(self._format())

    def _format(self) -> str:
        loc = self.source or "<string>"
        if self.line is not None:
            loc += f":{self.line}"
            if self.column is not None:
                loc += f":{self.column}"
        return f"{loc}: {self.message}"
