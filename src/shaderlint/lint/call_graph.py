"""
Call Graph Analysis for shader functions.

Builds the graph of which user functions call which, so rules can restrict
themselves to code reachable from a stage entry point (``main``).

Key features:
- Build call graphs from the AST
- Compute the set of functions reachable from an entry point, terminating
  on direct and indirect recursion (illegal in shaders)
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Optional

from shaderlint.syntax.ast_nodes import (
    BaseASTVisitor,
    CallExpression,
    Function,
    TranslationUnit,
)
from shaderlint.utils.diagnostics import SourceSpan

ENTRY_POINT = "main"


@dataclass(slots=True)
class CallSite:
    """
    Represents a single function call in the shader.

    Attributes:
        caller: Name of the calling function
        callee: Name of the called function
        span: Source span of the call expression
    """

    caller: str
    callee: str
    span: SourceSpan


@dataclass(slots=True)
class CallGraphNode:
    """
    Represents a function in the call graph.

    Overloads share one node: calls are resolved by name only.

    Attributes:
        name: Function name
        calls: Set of function names this function calls
        called_by: Set of function names that call this function
    """

    name: str
    calls: set[str] = field(default_factory=set)
    called_by: set[str] = field(default_factory=set)


class CallGraph:
    """
    The call graph of one translation unit.
    """

    def __init__(self) -> None:
        self.nodes: dict[str, CallGraphNode] = {}
        self.edges: list[CallSite] = []

    def add_function(self, name: str) -> None:
        """Add a function to the graph; a no-op if it already exists."""
        if name not in self.nodes:
            self.nodes[name] = CallGraphNode(name=name)

    def add_call(self, caller: str, callee: str, span: SourceSpan) -> None:
        """
        Record a function call from caller to callee.

        Args:
            caller: Name of the calling function
            callee: Name of the called function
            span: Source span of the call
        """
        self.add_function(caller)
        self.add_function(callee)

        self.edges.append(CallSite(caller=caller, callee=callee, span=span))
        self.nodes[caller].calls.add(callee)
        self.nodes[callee].called_by.add(caller)

    def get_transitive_callees(self, func: str) -> set[str]:
        """
        Get all functions reachable from the given function.

        Args:
            func: Starting function name

        Returns:
            Set of all function names reachable from func, excluding func
            itself unless it is part of a cycle
        """
        if func not in self.nodes:
            return set()

        visited: set[str] = set()
        queue: deque[str] = deque(self.nodes[func].calls)

        while queue:
            current = queue.popleft()
            if current in visited:
                continue
            visited.add(current)
            for callee in self.nodes[current].calls:
                if callee not in visited:
                    queue.append(callee)

        return visited

    def reachable_from(self, entry: str = ENTRY_POINT) -> frozenset[str]:
        """The entry point and every function it can reach; empty if undefined."""
        if entry not in self.nodes:
            return frozenset()
        return frozenset({entry} | self.get_transitive_callees(entry))

    def __repr__(self) -> str:
        return f"CallGraph(nodes={len(self.nodes)}, edges={len(self.edges)})"


class CallGraphBuilder(BaseASTVisitor):
    """
    AST visitor that builds a call graph from a translation unit.

    Only calls to functions defined in the unit become edges; built-in
    functions and constructors are ignored.

    Usage:
        builder = CallGraphBuilder()
        call_graph = builder.build(unit)
    """

    def __init__(self) -> None:
        self._graph: CallGraph = CallGraph()
        self._current_function: Optional[str] = None
        self._defined_functions: set[str] = set()

    def build(self, unit: TranslationUnit) -> CallGraph:
        """
        Build the call graph for a translation unit.

        Args:
            unit: The parsed translation unit

        Returns:
            The constructed call graph with all functions and calls
        """
        self._graph = CallGraph()
        self._current_function = None
        self._defined_functions = {f.name for f in unit.functions if not f.is_prototype}

        for name in sorted(self._defined_functions):
            self._graph.add_function(name)

        self.visit(unit)
        return self._graph

    def visit_function(self, node: Function) -> None:
        if node.body is None:
            return
        self._current_function = node.name
        try:
            self.visit(node.body)
        finally:
            self._current_function = None

    def visit_call_expression(self, node: CallExpression) -> None:
        callee_name = node.callee_name
        if (
            self._current_function is not None
            and callee_name is not None
            and callee_name in self._defined_functions
        ):
            self._graph.add_call(self._current_function, callee_name, node.span)

        self.visit(node.callee)
        for arg in node.arguments:
            self.visit(arg)


def build_call_graph(unit: TranslationUnit) -> CallGraph:
    """Convenience function to build the call graph of a translation unit."""
    return CallGraphBuilder().build(unit)
