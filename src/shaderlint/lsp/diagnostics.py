"""
Diagnostic conversion for editor integrations.

This module converts shaderlint analysis results into Language Server
Protocol diagnostics for display in editors. Running a server is left to
the caller.
"""

from typing import Optional
from urllib.parse import unquote, urlparse

from lsprotocol import types

from shaderlint.lint.config import LintConfiguration
from shaderlint.lint.engine import analyze
from shaderlint.utils.diagnostics import AnalysisResult, Diagnostic, Severity

SOURCE = "shaderlint"

SEVERITY_MAP: dict[Severity, types.DiagnosticSeverity] = {
    Severity.ERROR: types.DiagnosticSeverity.Error,
    Severity.WARNING: types.DiagnosticSeverity.Warning,
    Severity.INFO: types.DiagnosticSeverity.Information,
}


def to_lsp_diagnostic(diagnostic: Diagnostic) -> types.Diagnostic:
    """
    Convert one diagnostic to an LSP diagnostic.

    Positions are converted from 1-indexed to 0-indexed. A suggested fix is
    appended to the message as a hint.

    Args:
        diagnostic: The shaderlint diagnostic

    Returns:
        LSP diagnostic object
    """
    span = diagnostic.span
    message = diagnostic.message
    if diagnostic.suggested_fix:
        message = f"{message}\n\nhint: {diagnostic.suggested_fix}"

    return types.Diagnostic(
        range=types.Range(
            start=types.Position(line=max(0, span.start_line - 1), character=max(0, span.start_col - 1)),
            end=types.Position(line=max(0, span.end_line - 1), character=max(0, span.end_col - 1)),
        ),
        message=message,
        severity=SEVERITY_MAP[diagnostic.severity],
        source=SOURCE,
        code=diagnostic.code or diagnostic.rule_id,
    )


def to_lsp_diagnostics(result: AnalysisResult) -> list[types.Diagnostic]:
    """Convert every diagnostic of a result, keeping their order."""
    return [to_lsp_diagnostic(diagnostic) for diagnostic in result.diagnostics]


def file_identifier_from_uri(uri: str) -> str:
    """
    Turn a document URI into a file identifier.

    Example:
        file:///home/me/shaders/blur.frag -> /home/me/shaders/blur.frag
    """
    parsed = urlparse(uri)
    if parsed.scheme in ("", "file"):
        return unquote(parsed.path) or uri
    return uri


def get_diagnostics_for_document(
    source: str,
    uri: str,
    config: Optional[LintConfiguration] = None,
) -> list[types.Diagnostic]:
    """
    Convenience function to get diagnostics for a document.

    Args:
        source: The shader source code
        uri: The document URI
        config: Optional lint configuration

    Returns:
        List of LSP diagnostics
    """
    result = analyze(file_identifier_from_uri(uri), source, config=config)
    return to_lsp_diagnostics(result)
