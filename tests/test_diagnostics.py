"""
Testes para nushell_lsp/diagnostics.py
"""

from lsprotocol.types import DiagnosticSeverity, Position

from nushell_lsp.converters import IdeCheckDiagnostic, IdeCheckHint, Span
from nushell_lsp.diagnostics import SOURCE, build_diagnostic, build_diagnostics
from nushell_lsp.documents import Document

SOURCE_TEXT = "let é = 1\nls ||\n"


def _doc():
    return Document("file:///tmp/diag.nu", SOURCE_TEXT, 7)


def test_single_diagnostic_range_in_utf16():
    # "||" na linha 1: bytes 14..16 ("let é = 1\n" tem 11 bytes)
    check = IdeCheckDiagnostic(
        message="The '||' operator is not supported in Nushell",
        severity=DiagnosticSeverity.Error,
        span=Span(14, 16),
    )

    diagnostic = build_diagnostic(check, _doc())

    assert diagnostic.range.start == Position(line=1, character=3)
    assert diagnostic.range.end == Position(line=1, character=5)
    assert diagnostic.severity == DiagnosticSeverity.Error
    assert diagnostic.source == SOURCE
    assert diagnostic.message.startswith("The '||'")


def test_multi_byte_column():
    # "é" ocupa 2 bytes mas 1 unidade UTF-16
    check = IdeCheckDiagnostic(
        message="unused", severity=DiagnosticSeverity.Warning, span=Span(4, 6)
    )

    diagnostic = build_diagnostic(check, _doc())

    assert diagnostic.range.start == Position(line=0, character=4)
    assert diagnostic.range.end == Position(line=0, character=5)


def test_hints_are_skipped_and_order_kept():
    checks = [
        IdeCheckDiagnostic(message="first", severity=DiagnosticSeverity.Hint, span=Span(0, 3)),
        IdeCheckHint(position=Span(4, 6), typename="int"),
        IdeCheckDiagnostic(message="second", severity=DiagnosticSeverity.Error, span=Span(11, 13)),
    ]

    diagnostics = build_diagnostics(checks, _doc())

    assert [d.message for d in diagnostics] == ["first", "second"]
