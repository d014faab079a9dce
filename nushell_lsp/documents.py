"""
documents.py - Document Store e conversão de posições

Propósito:
    Rastreia documentos abertos (uri, texto, versão), aplica notificações
    de mudança e converte posições entre o endereçamento do editor
    (linha/caractere em unidades UTF-16) e o do `nu` (byte offset UTF-8).

Componentes principais:
    - find_line_breaks: Índices em bytes de cada '\\n'
    - convert_position: Position (UTF-16) → byte offset
    - lower_bound_binary_search: Linha que contém um byte offset
    - convert_span: byte offset → Position (UTF-16)
    - Document: Estado de um documento e suas tabelas de conversão
    - DocumentStore: Coleção de documentos com lock leitores/escritor

Notas de implementação:
    - Apenas '\\n' quebra linha (mesma regra do `nu`); '\\r' fica no fim da linha
    - Caracteres fora do BMP contam 2 unidades UTF-16
    - Offsets no meio de um caractere multi-byte recuam para o início dele
    - Tabela de quebras é descartada a cada mudança e reconstruída na
      primeira conversão seguinte
"""

from __future__ import annotations

import bisect
import copy
import logging
from typing import Iterable, List, Optional

from lsprotocol.types import Position, Range

from nushell_lsp.errors import DocumentNotFound
from nushell_lsp.locks import ReadWriteLock

logger = logging.getLogger(__name__)

_NEWLINE = 0x0A


def find_line_breaks(text: str) -> List[int]:
    """Retorna os byte offsets de cada '\\n' no texto codificado em UTF-8."""
    return [i for i, b in enumerate(text.encode("utf-8")) if b == _NEWLINE]


def lower_bound_binary_search(offset: int, line_breaks: List[int]) -> Optional[int]:
    """
    Índice da última quebra de linha em ou abaixo de `offset`.

    Exemplo com quebras [18, 32, 64]:
        offset < 18        → None
        18 <= offset < 32  → 0
        32 <= offset < 64  → 1
        offset >= 64       → 2
    """
    index = bisect.bisect_right(line_breaks, offset) - 1
    return index if index >= 0 else None


def _utf16_units(char: str) -> int:
    return 2 if ord(char) > 0xFFFF else 1


def _utf16_length(text: str) -> int:
    return sum(_utf16_units(c) for c in text)


def _byte_column(line: str, character: int) -> int:
    """Converte coluna UTF-16 em coluna de bytes dentro de uma linha."""
    units = 0
    consumed = 0
    for char in line:
        width = _utf16_units(char)
        if units + width > character:
            break
        units += width
        consumed += len(char.encode("utf-8"))
    return consumed


def _offset_at(data: bytes, line_breaks: List[int], position: Position) -> int:
    if position.line > len(line_breaks):
        return len(data)
    line_start = line_breaks[position.line - 1] + 1 if position.line else 0
    line_end = (
        line_breaks[position.line] if position.line < len(line_breaks) else len(data)
    )
    line = data[line_start:line_end].decode("utf-8")
    return line_start + _byte_column(line, position.character)


def _position_at(data: bytes, line_breaks: List[int], offset: int) -> Position:
    offset = max(0, min(offset, len(data)))
    # o '\n' pertence à linha que ele termina
    index = lower_bound_binary_search(offset - 1, line_breaks)
    line = 0 if index is None else index + 1
    line_start = 0 if index is None else line_breaks[index] + 1
    prefix = data[line_start:offset].decode("utf-8", errors="ignore")
    return Position(line=line, character=_utf16_length(prefix))


def convert_position(position: Position, text: str) -> int:
    """
    Converte Position LSP (UTF-16) em byte offset.

    Colunas além do fim da linha param no fim da linha; linhas além da
    última retornam o comprimento total do texto.
    """
    data = text.encode("utf-8")
    return _offset_at(data, find_line_breaks(text), position)


def convert_span(offset: int, text: str) -> Position:
    """Converte byte offset em Position LSP (UTF-16)."""
    data = text.encode("utf-8")
    return _position_at(data, find_line_breaks(text), offset)


class Document:
    """Documento aberto no editor."""

    def __init__(self, uri: str, text: str, version: int):
        self.uri = uri
        self.version = version
        self._set_text(text)

    @property
    def text(self) -> str:
        return self._text

    def _set_text(self, text: str) -> None:
        self._text = text
        self._data = text.encode("utf-8")
        self._line_breaks: Optional[List[int]] = None

    @property
    def line_breaks(self) -> List[int]:
        """Tabela de quebras, construída na primeira conversão após cada edição."""
        if self._line_breaks is None:
            self._line_breaks = [i for i, b in enumerate(self._data) if b == _NEWLINE]
        return self._line_breaks

    def offset_at(self, position: Position) -> int:
        return _offset_at(self._data, self.line_breaks, position)

    def position_at(self, offset: int) -> Position:
        return _position_at(self._data, self.line_breaks, offset)

    def range_of(self, start: int, end: int) -> Range:
        return Range(start=self.position_at(start), end=self.position_at(end))

    def apply(self, change) -> None:
        """
        Aplica um TextDocumentContentChangeEvent.

        Sem `range` o texto é substituído por completo; com `range` apenas
        o trecho indicado (em UTF-16) é trocado.
        """
        range_ = getattr(change, "range", None)
        if range_ is None:
            self._set_text(change.text)
            return

        start = self.offset_at(range_.start)
        end = self.offset_at(range_.end)
        if end < start:
            start, end = end, start
        data = self._data[:start] + change.text.encode("utf-8") + self._data[end:]
        self._set_text(data.decode("utf-8"))

    def snapshot(self) -> "Document":
        """Cópia desligada do store; mudanças posteriores não a afetam."""
        return copy.copy(self)


class DocumentStore:
    """
    Documentos abertos indexados por URI.

    Attributes:
        _documents: Mapeamento uri -> Document

    Nota sobre concorrência:
        - Muitos leitores simultâneos, no máximo um escritor
        - Nenhum método suspende; quem precisa do texto depois de um
          await deve usar snapshot()
    """

    def __init__(self):
        self._documents: dict[str, Document] = {}
        self._lock = ReadWriteLock()

    def open(self, uri: str, text: str, version: int) -> None:
        """Insere ou substitui o documento (idempotente)."""
        with self._lock.write():
            self._documents[uri] = Document(uri, text, version)
        logger.debug(f"Documento rastreado: {uri} (v{version})")

    def apply_change(self, uri: str, version: int, changes: Iterable) -> None:
        """Aplica mudanças em ordem e atualiza a versão."""
        with self._lock.write():
            doc = self._documents.get(uri)
            if doc is None:
                raise DocumentNotFound(uri)
            for change in changes:
                doc.apply(change)
            if version is not None:
                doc.version = version

    def close(self, uri: str) -> None:
        with self._lock.write():
            removed = self._documents.pop(uri, None)
        if removed is None:
            logger.debug(f"Fechamento de documento não rastreado: {uri}")

    def _get(self, uri: str) -> Document:
        doc = self._documents.get(uri)
        if doc is None:
            raise DocumentNotFound(uri)
        return doc

    def get_content(self, uri: str) -> str:
        with self._lock.read():
            return self._get(uri).text

    def get_version(self, uri: str) -> int:
        with self._lock.read():
            return self._get(uri).version

    def snapshot(self, uri: str) -> Document:
        with self._lock.read():
            return self._get(uri).snapshot()

    def offset_at(self, uri: str, position: Position) -> int:
        with self._lock.read():
            return self._get(uri).offset_at(position)

    def position_at(self, uri: str, offset: int) -> Position:
        with self._lock.read():
            return self._get(uri).position_at(offset)

    def range_of(self, uri: str, start: int, end: int) -> Range:
        with self._lock.read():
            return self._get(uri).range_of(start, end)

    def has(self, uri: str) -> bool:
        with self._lock.read():
            return uri in self._documents

    def uris(self) -> List[str]:
        with self._lock.read():
            return list(self._documents)
