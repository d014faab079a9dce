"""
hover.py - Informação contextual ao passar o mouse (textDocument/hover)

Propósito:
    Converte a resposta do `nu --ide-hover <offset>` em Hover LSP.

Notas de implementação:
    - Texto do `nu` já vem em Markdown; enviado via MarkupContent
    - Span opcional convertido pela tabela do documento de origem
    - Sem span, o hover não é ancorado (range=None)
"""

from __future__ import annotations

from lsprotocol.types import Hover, MarkupContent, MarkupKind

from nushell_lsp.compiler import CompilerResponse
from nushell_lsp.converters import IdeHover, decode_response, span_to_range
from nushell_lsp.documents import Document


def compute_hover(response: CompilerResponse, doc: Document) -> Hover:
    """
    Computa hover a partir da saída do `nu`.

    Args:
        response: Saída do `nu --ide-hover`
        doc: Documento cujo texto foi enviado ao `nu`

    Returns:
        Hover com MarkupContent e range (se o `nu` informou span)
    """
    hover: IdeHover = decode_response(response, IdeHover)
    range_ = span_to_range(doc, hover.span) if hover.span is not None else None
    return Hover(
        contents=MarkupContent(kind=MarkupKind.Markdown, value=hover.hover),
        range=range_,
    )
