"""
cache.py - Cache por URI de documento

Propósito:
    Armazena valores derivados por documento para servir requisições
    sem nova chamada ao cliente ou ao `nu`:
    - settings efetivas por URI (workspace/configuration)
    - inlay hints calculados na última validação

Componentes principais:
    - UriCache: Dicionário uri -> valor protegido por lock leitores/escritor

Notas de implementação:
    - clear() invalida tudo de uma vez (mudança de configuração)
    - Valores devem ser imutáveis ou copiados pelo chamador
"""

from __future__ import annotations

import logging
from typing import Generic, Optional, TypeVar

from nushell_lsp.locks import ReadWriteLock

logger = logging.getLogger(__name__)

T = TypeVar("T")


class UriCache(Generic[T]):
    """Cache de valores por URI."""

    def __init__(self, name: str = "cache"):
        self.name = name
        self._cache: dict[str, T] = {}
        self._lock = ReadWriteLock()

    def get(self, uri: str) -> Optional[T]:
        """Retorna o valor em cache para o URI, ou None."""
        with self._lock.read():
            return self._cache.get(uri)

    def put(self, uri: str, value: T) -> None:
        with self._lock.write():
            self._cache[uri] = value
        logger.debug(f"{self.name} atualizado para: {uri}")

    def invalidate(self, uri: str) -> None:
        """Remove o valor do URI, se existir."""
        with self._lock.write():
            removed = self._cache.pop(uri, None)
        if removed is not None:
            logger.debug(f"{self.name} invalidado para: {uri}")

    def clear(self) -> None:
        with self._lock.write():
            count = len(self._cache)
            self._cache.clear()
        logger.info(f"{self.name} limpo ({count} entradas)")

    def has(self, uri: str) -> bool:
        with self._lock.read():
            return uri in self._cache

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._cache)
