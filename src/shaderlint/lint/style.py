"""
Style rules: naming, declaration order, file naming and version directives.

Each check is a pure function over an ``AnnotatedShader`` returning the
diagnostics it found. Checks never modify the shader or each other's output.
"""

from __future__ import annotations

from typing import Iterator, Optional

from shaderlint.lint.context import STAGE_EXTENSIONS, AnnotatedShader, base_name
from shaderlint.lint.rules import (
    DECLARATION_ORDER,
    FILE_NAME,
    IDENTIFIER_CASE,
    OUT_PARAMETER_SUFFIX,
    VERSION_DIRECTIVE,
)
from shaderlint.lint.symbols import (
    CaseStyle,
    SymbolRole,
    expected_styles,
    matches_style,
    suggest_name,
)
from shaderlint.syntax.ast_nodes import (
    Declaration,
    GlobalVariable,
    InputAttachment,
    InterfaceBlock,
    Sampler,
    StageIO,
    UniformBlock,
)
from shaderlint.syntax.tokens import TokenType
from shaderlint.utils.diagnostics import Diagnostic

OUT_SUFFIX = "_out"


# =============================================================================
# version-directive
# =============================================================================


def check_version_directive(shader: AnnotatedShader) -> Iterator[Diagnostic]:
    """Report every '#version' line, wherever it appears."""
    for token in shader.tokens:
        if token.type == TokenType.VERSION_DIRECTIVE:
            yield VERSION_DIRECTIVE.diagnostic(token.span)


# =============================================================================
# file-name
# =============================================================================


def check_file_name(shader: AnnotatedShader) -> Iterator[Diagnostic]:
    """
    Check the file identifier: a lower_snake_case stem and a stage extension.

    Only the identifier is inspected; the file is never opened.
    """
    name = base_name(shader.file_identifier)
    dot = name.rfind(".")
    stem, extension = (name[:dot], name[dot:]) if dot > 0 else (name, "")
    span = _file_span(shader)

    if extension not in STAGE_EXTENSIONS:
        expected = ", ".join(STAGE_EXTENSIONS)
        found = f"'{extension}'" if extension else "no extension"
        yield FILE_NAME.diagnostic(
            span,
            f"file '{name}' has {found}; expected one of {expected}",
        )

    if stem and not matches_style(stem, CaseStyle.LOWER_SNAKE):
        suggestion = suggest_name(stem, CaseStyle.LOWER_SNAKE) + extension
        yield FILE_NAME.diagnostic(
            span,
            f"file name '{name}' should be lower_snake_case",
            suggested_fix=suggestion,
        )


def _file_span(shader: AnnotatedShader):
    first = shader.tokens[0] if shader.tokens else None
    if first is not None and first.type != TokenType.EOF:
        return first.span
    return shader.unit.span


# =============================================================================
# identifier-case
# =============================================================================


def check_identifier_case(shader: AnnotatedShader) -> Iterator[Diagnostic]:
    """
    Check every declared name against the case style of its role.

    Variables, uniforms, functions, parameters and fields are
    lower_snake_case, type names are UpperCamelCase and const names may
    also be UPPER_SNAKE_CASE.
    """
    for symbol in shader.symbols:
        styles = expected_styles(symbol)
        if not styles or any(matches_style(symbol.name, style) for style in styles):
            continue
        # Prefer the style the name is closest to when several are allowed
        target = styles[0]
        if CaseStyle.UPPER_SNAKE in styles and symbol.name[:1].isupper():
            target = CaseStyle.UPPER_SNAKE
        suggestion = suggest_name(symbol.name, target)
        yield IDENTIFIER_CASE.diagnostic(
            symbol.span,
            symbol.role.value,
            symbol.name,
            " or ".join(style.value for style in styles),
            suggested_fix=suggestion if suggestion != symbol.name else None,
        )


# =============================================================================
# out-parameter-suffix
# =============================================================================


def check_out_parameter_suffix(shader: AnnotatedShader) -> Iterator[Diagnostic]:
    """Names of 'out' and 'inout' parameters must end in '_out'."""
    for symbol in shader.symbols.by_role(SymbolRole.PARAMETER_OUT, SymbolRole.PARAMETER_INOUT):
        if not symbol.name.endswith(OUT_SUFFIX):
            yield OUT_PARAMETER_SUFFIX.diagnostic(symbol.span, symbol.role.value, symbol.name)


# =============================================================================
# declaration-order
# =============================================================================

# Canonical order of resource declarations
STAGE_INPUTS = 0
STAGE_OUTPUTS = 1
INPUT_ATTACHMENTS = 2
SAMPLERS = 3
PUSH_CONSTANTS = 4
UNIFORM_BLOCKS = 5

CATEGORY_LABELS: dict[int, str] = {
    STAGE_INPUTS: "stage input",
    STAGE_OUTPUTS: "stage output",
    INPUT_ATTACHMENTS: "input attachment",
    SAMPLERS: "sampler",
    PUSH_CONSTANTS: "push constant block",
    UNIFORM_BLOCKS: "uniform block",
}


def declaration_category(decl: Declaration) -> Optional[int]:
    """
    Position of a declaration in the canonical order, None if unordered.

    Loose uniforms and storage buffers share the uniform block category.
    Structs, functions, constants and directives are not ordered.
    """
    if isinstance(decl, (StageIO, InterfaceBlock)):
        return STAGE_OUTPUTS if decl.direction == "out" else STAGE_INPUTS
    if isinstance(decl, InputAttachment):
        return INPUT_ATTACHMENTS
    if isinstance(decl, Sampler):
        return SAMPLERS
    if isinstance(decl, UniformBlock):
        return PUSH_CONSTANTS if decl.is_push_constant else UNIFORM_BLOCKS
    if isinstance(decl, GlobalVariable) and decl.is_uniform and decl.type.name:
        return UNIFORM_BLOCKS
    return None


def declaration_name(decl: Declaration) -> str:
    if isinstance(decl, (StageIO, InputAttachment, Sampler)):
        return decl.name
    if isinstance(decl, (InterfaceBlock, UniformBlock)):
        return decl.block_name
    if isinstance(decl, GlobalVariable) and decl.declarators:
        return decl.declarators[0].name
    return ""


def check_declaration_order(shader: AnnotatedShader) -> Iterator[Diagnostic]:
    """
    Check that resource declarations follow the canonical order.

    A declaration is out of order when a declaration of an earlier category
    appears after it. Each offending declaration is reported once, at its
    own span.
    """
    ordered: list[tuple[Declaration, int]] = []
    for decl in shader.unit.declarations:
        category = declaration_category(decl)
        if category is not None:
            ordered.append((decl, category))

    # For each position, the first later declaration with the lowest category
    later: list[Optional[tuple[Declaration, int]]] = [None] * len(ordered)
    best: Optional[tuple[Declaration, int]] = None
    for index in range(len(ordered) - 1, -1, -1):
        later[index] = best
        decl, category = ordered[index]
        if best is None or category <= best[1]:
            best = (decl, category)

    for index, (decl, category) in enumerate(ordered):
        successor = later[index]
        if successor is None or successor[1] >= category:
            continue
        successor_decl, successor_category = successor
        yield DECLARATION_ORDER.diagnostic(
            decl.span,
            CATEGORY_LABELS[category],
            declaration_name(decl),
            CATEGORY_LABELS[successor_category],
            declaration_name(successor_decl),
        )
