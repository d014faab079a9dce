"""
locks.py - Lock leitores/escritor para o estado da sessão

Propósito:
    Cada campo mutável da sessão (documentos, cache de settings, settings
    globais, relógio do throttle, inlay hints) tem o seu próprio lock,
    permitindo muitos leitores simultâneos e no máximo um escritor.

Notas de implementação:
    - Não reentrante: nunca adquirir read() dentro de write() no mesmo campo
    - Seções críticas são síncronas; nunca segurar o lock através de um await
    - Escritores têm prioridade sobre novos leitores
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class ReadWriteLock:
    """Lock com leitores compartilhados e escritor exclusivo."""

    def __init__(self):
        self._condition = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._condition:
            while self._writer or self._waiting_writers:
                self._condition.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._condition:
                self._readers -= 1
                if not self._readers:
                    self._condition.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._condition:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._condition.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._condition:
                self._writer = False
                self._condition.notify_all()
