"""
shaderlint Language Server Protocol adapter.

Converts analysis results into ``lsprotocol`` diagnostics for editors.
"""

from shaderlint.lsp.diagnostics import (
    get_diagnostics_for_document,
    to_lsp_diagnostic,
    to_lsp_diagnostics,
)

__all__ = [
    "to_lsp_diagnostic",
    "to_lsp_diagnostics",
    "get_diagnostics_for_document",
]
