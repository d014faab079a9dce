"""
inlay_hints.py - Inlay hints com tipos inferidos

Propósito:
    Exibe ": <tipo>" após cada variável cujo tipo o `nu --ide-check`
    inferiu (linhas com type="hint").

Notas de implementação:
    - Hints são calculados na validação e guardados por URI
    - textDocument/inlayHint apenas lê o cache, filtrando pelo range visível
    - Âncora: fim do span do hint
    - Desligado por hints.showInferredTypes = false
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from lsprotocol.types import InlayHint, InlayHintKind, Range

from nushell_lsp.converters import IdeCheck, IdeCheckHint
from nushell_lsp.documents import Document


def build_inlay_hints(checks: Sequence[IdeCheck], doc: Document) -> List[InlayHint]:
    """
    Computa inlay hints a partir das linhas do --ide-check.

    Args:
        checks: Linhas decodificadas do --ide-check
        doc: Documento cujo texto foi enviado ao `nu`

    Returns:
        Lista de InlayHint do tipo Type
    """
    return [
        InlayHint(
            position=doc.position_at(check.position.end),
            label=f": {check.typename}",
            kind=InlayHintKind.Type,
        )
        for check in checks
        if isinstance(check, IdeCheckHint)
    ]


def filter_inlay_hints(
    hints: Sequence[InlayHint], range_: Optional[Range] = None
) -> List[InlayHint]:
    """Mantém apenas hints dentro das linhas do range pedido."""
    if range_ is None:
        return list(hints)
    return [
        hint
        for hint in hints
        if range_.start.line <= hint.position.line <= range_.end.line
    ]
