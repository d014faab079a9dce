"""
capabilities.py - Capability Gate

Propósito:
    Registra, uma única vez durante o handshake `initialize`, o que o
    cliente suporta:
    - publicação de diagnósticos (textDocument.publishDiagnostics)
    - notificação de mudança de configuração (workspace.didChangeConfiguration)
    - consulta de configuração por recurso (workspace.configuration)

Notas de implementação:
    - Cada flag é escrita exatamente uma vez; segunda escrita é erro
    - Ler antes do initialize é erro de sequência (falha imediata)
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from nushell_lsp.errors import CapabilityError

logger = logging.getLogger(__name__)


class CapabilityGate:
    """Flags booleanas write-once negociadas no initialize."""

    def __init__(self):
        self._lock = threading.Lock()
        self._can_publish_diagnostics: Optional[bool] = None
        self._can_change_configuration: Optional[bool] = None
        self._can_lookup_configuration: Optional[bool] = None

    @property
    def latched(self) -> bool:
        with self._lock:
            return self._can_publish_diagnostics is not None

    def latch(self, client_capabilities) -> None:
        """
        Inspeciona ClientCapabilities e fixa as três flags.

        Raises:
            CapabilityError: Se as flags já foram fixadas
        """
        workspace = getattr(client_capabilities, "workspace", None)
        text_document = getattr(client_capabilities, "text_document", None)

        can_change = getattr(workspace, "did_change_configuration", None) is not None
        can_lookup = bool(getattr(workspace, "configuration", None))
        can_publish = getattr(text_document, "publish_diagnostics", None) is not None

        with self._lock:
            if self._can_publish_diagnostics is not None:
                raise CapabilityError("server value initialized out of sequence")
            self._can_publish_diagnostics = can_publish
            self._can_change_configuration = can_change
            self._can_lookup_configuration = can_lookup

        logger.info(
            f"Capacidades do cliente: publishDiagnostics={can_publish}, "
            f"didChangeConfiguration={can_change}, configuration={can_lookup}"
        )

    def _read(self, name: str) -> bool:
        with self._lock:
            value = getattr(self, f"_{name}")
        if value is None:
            raise CapabilityError(f"{name} read before initialize")
        return value

    @property
    def can_publish_diagnostics(self) -> bool:
        return self._read("can_publish_diagnostics")

    @property
    def can_change_configuration(self) -> bool:
        return self._read("can_change_configuration")

    @property
    def can_lookup_configuration(self) -> bool:
        return self._read("can_lookup_configuration")
