"""
settings.py - Configurações efetivas por documento

Propósito:
    Resolve as configurações usadas em cada chamada ao `nu`, combinando
    o valor global (empurrado por workspace/didChangeConfiguration) com a
    configuração por recurso (puxada via workspace/configuration), quando
    o cliente suporta.

Componentes principais:
    - IdeSettings: Configuração tipada com defaults
    - parse_settings: Payload da seção → IdeSettings (default em falha)
    - parse_client_payload: Payload completo do didChangeConfiguration
    - SettingsResolver: get_settings(uri) com cache por URI

Notas de implementação:
    - Seção de configuração: "nushellLanguageServer"
    - maxNushellInvocationTime chega em milissegundos
    - Qualquer campo malformado invalida o payload inteiro (usa defaults)
    - Nenhum lock é mantido durante a ida ao cliente
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Tuple

from nushell_lsp.cache import UriCache
from nushell_lsp.capabilities import CapabilityGate

logger = logging.getLogger(__name__)

SECTION = "nushellLanguageServer"

DEFAULT_MAX_NUMBER_OF_PROBLEMS = 1000
DEFAULT_MAX_INVOCATION_TIME = timedelta(seconds=10)
DEFAULT_EXECUTABLE = "nu"


@dataclass(frozen=True)
class IdeSettings:
    """Configuração efetiva de um documento."""

    show_inferred_types: bool = True
    include_dirs: Tuple[Path, ...] = ()
    max_number_of_problems: int = DEFAULT_MAX_NUMBER_OF_PROBLEMS
    max_invocation_time: timedelta = field(default=DEFAULT_MAX_INVOCATION_TIME)
    executable_path: Path = field(default_factory=lambda: Path(DEFAULT_EXECUTABLE))


def _expect(value: Any, kind: type, name: str):
    # bool é subclasse de int; não aceitar True como número
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise TypeError(f"{name}: esperado {kind.__name__}, recebido {value!r}")
    return value


def _non_negative(value: Any, name: str) -> int:
    number = _expect(value, int, name)
    if number < 0:
        raise ValueError(f"{name}: valor negativo {number}")
    return number


def _parse(payload: dict) -> IdeSettings:
    defaults = IdeSettings()
    _expect(payload, dict, SECTION)

    hints = _expect(payload.get("hints", {}), dict, "hints")
    show_inferred_types = _expect(
        hints.get("showInferredTypes", defaults.show_inferred_types),
        bool,
        "hints.showInferredTypes",
    )

    include_dirs = tuple(
        Path(_expect(item, str, "includeDirs[]"))
        for item in _expect(payload.get("includeDirs", []), list, "includeDirs")
    )

    max_problems = payload.get("maxNumberOfProblems")
    max_time = payload.get("maxNushellInvocationTime")
    executable = payload.get("nushellExecutablePath")

    return IdeSettings(
        show_inferred_types=show_inferred_types,
        include_dirs=include_dirs,
        max_number_of_problems=(
            _non_negative(max_problems, "maxNumberOfProblems")
            if max_problems is not None
            else defaults.max_number_of_problems
        ),
        max_invocation_time=(
            timedelta(milliseconds=_non_negative(max_time, "maxNushellInvocationTime"))
            if max_time is not None
            else defaults.max_invocation_time
        ),
        executable_path=(
            Path(_expect(executable, str, "nushellExecutablePath"))
            if executable
            else defaults.executable_path
        ),
    )


def parse_settings(payload: Any) -> IdeSettings:
    """
    Converte o conteúdo da seção em IdeSettings.

    Campos ausentes usam o default; payload malformado retorna
    IdeSettings() por completo.
    """
    if payload is None:
        return IdeSettings()
    try:
        return _parse(payload)
    except (TypeError, ValueError) as e:
        logger.warning(f"Configuração inválida, usando defaults: {e}")
        return IdeSettings()


def parse_client_payload(payload: Any) -> IdeSettings:
    """Extrai a seção nushellLanguageServer de didChangeConfiguration.settings."""
    if not isinstance(payload, dict):
        return IdeSettings()
    return parse_settings(payload.get(SECTION))


ConfigurationFetcher = Callable[[str], Awaitable[Optional[list]]]


class SettingsResolver:
    """
    Resolve IdeSettings por documento.

    Attributes:
        capabilities: Flags negociadas no initialize
        fetch_configuration: Corrotina uri -> lista de valores do cliente
        document_settings: Cache uri -> IdeSettings
    """

    def __init__(
        self,
        capabilities: CapabilityGate,
        fetch_configuration: ConfigurationFetcher,
    ):
        self.capabilities = capabilities
        self.fetch_configuration = fetch_configuration
        self.document_settings: UriCache[IdeSettings] = UriCache("settings cache")
        self._global_lock = threading.Lock()
        self._global_settings = IdeSettings()

    @property
    def global_settings(self) -> IdeSettings:
        with self._global_lock:
            return self._global_settings

    async def get_settings(self, uri: str) -> IdeSettings:
        """
        Fluxo:
            1. Sem consulta por recurso → settings globais
            2. Cache por URI → valor em cache
            3. workspace/configuration → parse, cache e retorna
            4. Cliente não devolveu nada → defaults (sem cache)
        """
        if not self.capabilities.can_lookup_configuration:
            logger.debug("Sem consulta de configuração por recurso, usando globais")
            return self.global_settings

        cached = self.document_settings.get(uri)
        if cached is not None:
            return cached

        logger.debug(f"Buscando configuração do cliente para {uri}")
        values = await self.fetch_configuration(uri)
        if values:
            settings = parse_settings(values[0])
            self.document_settings.put(uri, settings)
            return settings

        logger.info(f"Cliente não retornou configuração para {uri}, usando defaults")
        return IdeSettings()

    def update(self, payload: Any) -> None:
        """
        Trata workspace/didChangeConfiguration.

        Com consulta por recurso o cache é descartado; sem ela o payload
        empurrado substitui as settings globais.
        """
        if self.capabilities.can_lookup_configuration:
            self.document_settings.clear()
            return

        settings = parse_client_payload(payload)
        with self._global_lock:
            self._global_settings = settings
        logger.info(f"Configuração global atualizada: {settings}")
