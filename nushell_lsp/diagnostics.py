"""
diagnostics.py - Diagnósticos via `nu --ide-check`

Propósito:
    Converte as linhas de diagnóstico do `nu` em Diagnostic LSP.

Notas de implementação:
    - Uma linha JSON por objeto; linhas inválidas são descartadas
    - Linhas "hint" são tratadas em inlay_hints.py
    - Ranges convertidos pela tabela do texto enviado ao `nu`
"""

from __future__ import annotations

from typing import List, Sequence

from lsprotocol.types import Diagnostic

from nushell_lsp.converters import IdeCheck, IdeCheckDiagnostic, span_to_range
from nushell_lsp.documents import Document

SOURCE = "nushell"


def build_diagnostic(check: IdeCheckDiagnostic, doc: Document) -> Diagnostic:
    return Diagnostic(
        range=span_to_range(doc, check.span),
        severity=check.severity,
        source=SOURCE,
        message=check.message,
    )


def build_diagnostics(checks: Sequence[IdeCheck], doc: Document) -> List[Diagnostic]:
    """Converte todos os IdeCheckDiagnostic, na ordem emitida pelo `nu`."""
    return [
        build_diagnostic(check, doc)
        for check in checks
        if isinstance(check, IdeCheckDiagnostic)
    ]
