"""
The annotated shader handed to every lint rule.

``annotate`` runs the front end once per file (lex, parse, classify, build
the call graph) and bundles the results in an immutable ``AnnotatedShader``.
Rules read from it and never modify it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import cached_property
from typing import Iterator, Optional

from shaderlint.lint.call_graph import CallGraph, build_call_graph
from shaderlint.lint.resolve import ExpressionResolver
from shaderlint.lint.symbols import SymbolTable, classify_symbols
from shaderlint.syntax.ast_nodes import (
    ASTNode,
    Expression,
    Function,
    GlobalVariable,
    TranslationUnit,
    walk,
)
from shaderlint.syntax.lexer import tokenize
from shaderlint.syntax.parser import parse
from shaderlint.syntax.tokens import Token
from shaderlint.utils.diagnostics import Diagnostic


class ShaderStage(Enum):
    """Pipeline stage of a shader, derived from its file extension."""

    VERTEX = "vertex"
    FRAGMENT = "fragment"
    COMPUTE = "compute"
    UNKNOWN = "unknown"

    @classmethod
    def from_file_identifier(cls, file_identifier: str) -> "ShaderStage":
        """
        Determine the stage from a file identifier's extension.

        Example:
            ShaderStage.from_file_identifier("shaders/blur.frag") -> FRAGMENT
        """
        extension = file_extension(file_identifier)
        return STAGE_EXTENSIONS.get(extension, cls.UNKNOWN)


STAGE_EXTENSIONS: dict[str, ShaderStage] = {
    ".vert": ShaderStage.VERTEX,
    ".frag": ShaderStage.FRAGMENT,
    ".comp": ShaderStage.COMPUTE,
}


def base_name(file_identifier: str) -> str:
    """Last path component, accepting both '/' and '\\' separators."""
    return file_identifier.replace("\\", "/").rsplit("/", 1)[-1]


def file_extension(file_identifier: str) -> str:
    """Extension of the base name including the dot, '' if there is none."""
    name = base_name(file_identifier)
    dot = name.rfind(".")
    return name[dot:] if dot > 0 else ""


@dataclass(frozen=True)
class AnnotatedShader:
    """
    Everything the front end knows about one shader file.

    Attributes:
        file_identifier: Identifier the caller passed (never read from disk)
        source: The source text
        tokens: Full token stream, including directive and error tokens
        unit: Root of the AST
        symbols: Symbol table built by the classifier
        call_graph: Call graph of user functions
        stage: Stage derived from the file identifier
        parse_diagnostics: Lex and parse diagnostics
    """

    file_identifier: str
    source: str
    tokens: tuple[Token, ...]
    unit: TranslationUnit
    symbols: SymbolTable
    call_graph: CallGraph
    stage: ShaderStage
    parse_diagnostics: tuple[Diagnostic, ...] = ()

    @cached_property
    def resolver(self) -> ExpressionResolver:
        return ExpressionResolver(self.symbols, self.call_graph.nodes)

    @cached_property
    def reachable_functions(self) -> frozenset[str]:
        """Functions reachable from the stage entry point."""
        return self.call_graph.reachable_from()

    def function_definitions(self) -> Iterator[Function]:
        """Functions with a body, in source order."""
        for function in self.unit.functions:
            if function.body is not None:
                yield function

    def expressions(self) -> Iterator[tuple[Optional[str], Expression]]:
        """
        Every expression node with its scope, in source order.

        Covers function bodies (scope is the function name) and global
        declarations (scope None). Nested expressions are included.
        """
        for decl in self.unit.declarations:
            if isinstance(decl, Function):
                if decl.body is None:
                    continue
                scope: Optional[str] = decl.name
                root: ASTNode = decl.body
            elif isinstance(decl, GlobalVariable):
                scope, root = None, decl
            else:
                continue
            for node in walk(root):
                if isinstance(node, Expression):
                    yield scope, node


def annotate(
    file_identifier: str,
    source: str,
    tokens: Optional[list[Token]] = None,
) -> AnnotatedShader:
    """
    Run the front end over one file.

    Args:
        file_identifier: Identifier of the file, used for the stage
        source: Shader source text
        tokens: Pre-lexed tokens, lexed from source when omitted

    Returns:
        The annotated shader
    """
    if tokens is None:
        tokens = list(tokenize(source, file_identifier))
    unit, diagnostics = parse(tokens, file_identifier)
    return AnnotatedShader(
        file_identifier=file_identifier,
        source=source,
        tokens=tuple(tokens),
        unit=unit,
        symbols=classify_symbols(unit),
        call_graph=build_call_graph(unit),
        stage=ShaderStage.from_file_identifier(file_identifier),
        parse_diagnostics=tuple(diagnostics),
    )
