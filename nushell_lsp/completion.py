"""
completion.py - Autocomplete via `nu --ide-complete`

Propósito:
    Converte a lista de rótulos devolvida pelo `nu` em CompletionItems.

Notas de implementação:
    - Heurística: rótulo com '(' é função, demais são campos
    - `data` recebe um identificador estável, 1-based, na ordem do `nu`
    - Resposta malformada gera OutputParseError
"""

from __future__ import annotations

import logging
from typing import List

from lsprotocol.types import CompletionItem, CompletionItemKind

from nushell_lsp.compiler import CompilerResponse
from nushell_lsp.converters import IdeComplete, decode_response

logger = logging.getLogger(__name__)


def completion_kind(label: str) -> CompletionItemKind:
    """Classifica um rótulo como função ou campo."""
    if "(" in label:
        return CompletionItemKind.Function
    return CompletionItemKind.Field


def compute_completions(response: CompilerResponse) -> List[CompletionItem]:
    """
    Computa lista de completamento.

    Args:
        response: Saída do `nu --ide-complete <offset>`

    Returns:
        Lista de CompletionItem na ordem devolvida pelo `nu`
    """
    complete: IdeComplete = decode_response(response, IdeComplete)
    items = [
        CompletionItem(label=label, kind=completion_kind(label), data=index)
        for index, label in enumerate(complete.completions, start=1)
    ]
    logger.debug(f"{len(items)} sugestões de completamento")
    return items
