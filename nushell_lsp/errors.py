"""
errors.py - Tipos de erro do servidor

Propósito:
    Classifica as falhas em três famílias do JSON-RPC para que o pygls
    devolva o erro apenas à requisição afetada:
    - InvalidParams: URI malformado, documento não rastreado
    - Internal: temp file, spawn, timeout, sequência de protocolo
    - Parse: saída do `nu` não-UTF-8 ou JSON malformado

Notas de implementação:
    - Todas derivam das exceções JSON-RPC do pygls
    - `data` carrega o repr da causa original, quando houver
"""

from __future__ import annotations

from typing import Optional

from pygls.exceptions import (
    JsonRpcInternalError,
    JsonRpcInvalidParams,
    JsonRpcParseError,
)


def _describe(cause: Optional[BaseException]) -> Optional[str]:
    return repr(cause) if cause is not None else None


class InvalidParamsError(JsonRpcInvalidParams):
    """Parâmetros do cliente não podem ser resolvidos."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message=message, data=_describe(cause))


class DocumentNotFound(InvalidParamsError):
    """URI não está no Document Store."""

    def __init__(self, uri: str):
        super().__init__(f"{uri} not found in document cache")
        self.uri = uri


class InternalError(JsonRpcInternalError):
    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message=message, data=_describe(cause))


class CapabilityError(InternalError):
    """Flags de capacidade lidas/escritas fora de sequência."""


class ParseError(JsonRpcParseError):
    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message=message, data=_describe(cause))


class OutputParseError(ParseError):
    """Resposta JSON do `nu` não corresponde ao formato esperado."""

    def __init__(self, cmdline: str, cause: Optional[BaseException] = None):
        super().__init__(f"cannot parse response from {cmdline}", cause)
        self.cmdline = cmdline
