"""
test_completion.py - Testes para textDocument/completion

Propósito:
    Validar a conversão da saída do `nu --ide-complete` em CompletionItems.
"""

from __future__ import annotations

import pytest
from lsprotocol.types import CompletionItemKind

from nushell_lsp.compiler import CompilerResponse
from nushell_lsp.completion import completion_kind, compute_completions
from nushell_lsp.errors import OutputParseError


def _response(stdout: str) -> CompilerResponse:
    return CompilerResponse(cmdline="nu --ide-complete 2 /tmp/x.nu", stdout=stdout)


def test_completion_kind_function():
    assert completion_kind("str length(") == CompletionItemKind.Function


def test_completion_kind_field():
    assert completion_kind("where") == CompletionItemKind.Field


def test_items_in_order_with_ids():
    items = compute_completions(_response('{"completions": ["where", "which", "while"]}'))

    assert [item.label for item in items] == ["where", "which", "while"]
    assert [item.data for item in items] == [1, 2, 3]
    assert all(item.kind == CompletionItemKind.Field for item in items)


def test_mixed_kinds():
    items = compute_completions(_response('{"completions": ["$env", "math sum()"]}'))

    assert items[0].kind == CompletionItemKind.Field
    assert items[1].kind == CompletionItemKind.Function


def test_empty():
    assert compute_completions(_response('{"completions": []}')) == []


def test_malformed():
    with pytest.raises(OutputParseError):
        compute_completions(_response("Error: nu::parser::unexpected"))
