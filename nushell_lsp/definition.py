"""
definition.py - Go-to-definition via `nu --ide-goto-def`

Propósito:
    Resolve a resposta {file, start, end} do `nu` em Location LSP.

Política:
    - file vazio ou "__prelude__" (escopo embutido do `nu`) → None
    - arquivo inexistente em disco → None (logado, não é erro)
    - caso contrário, span convertido pela tabela do documento alvo se
      ele estiver aberto, senão pela tabela do documento de origem

Notas de implementação:
    - Paths do `nu` são absolutos; relativos são completados com o cwd
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from lsprotocol.types import Location

from nushell_lsp.compiler import CompilerResponse
from nushell_lsp.converters import IdeGotoDef, Span, decode_response, span_to_range
from nushell_lsp.documents import Document

logger = logging.getLogger(__name__)

DocumentLookup = Callable[[str], Optional[Document]]


def compute_definition(
    response: CompilerResponse, source_doc: Document, lookup: DocumentLookup
) -> Optional[Location]:
    """
    Resolve definição a partir da saída do `nu`.

    Args:
        response: Saída do `nu --ide-goto-def`
        source_doc: Documento onde o cursor está
        lookup: uri -> Document aberto (ou None)

    Returns:
        Location apontando para a definição, ou None
    """
    goto_def: IdeGotoDef = decode_response(response, IdeGotoDef)
    if goto_def.is_prelude:
        logger.debug("Definição no prelude do nu, sem localização")
        return None

    target = Path(goto_def.file)
    if not target.exists():
        logger.warning(f"Arquivo {goto_def.file} não existe")
        return None

    uri = _to_uri(target)
    doc = lookup(uri) or source_doc
    return Location(uri=uri, range=span_to_range(doc, Span(goto_def.start, goto_def.end)))


def _to_uri(path: Path) -> str:
    return path.absolute().as_uri()
