"""
converters.py - Conversão entre a saída do `nu --ide-*` e tipos LSP

Propósito:
    Decodificar o JSON emitido pelo `nu` em tipos tipados e converter
    spans em bytes para Range LSP usando a tabela de conversão do
    documento.

Componentes principais:
    - Span: Intervalo [start, end) em bytes
    - IdeComplete, IdeHover, IdeGotoDef: Respostas de objeto único
    - IdeCheckDiagnostic, IdeCheckHint: Linhas do --ide-check
    - decode_response: stdout → tipo, com OutputParseError em falha
    - convert_severity: severidade do `nu` → DiagnosticSeverity
    - span_to_range: Span → Range LSP via Document

Notas de implementação:
    - Spans são byte offsets no texto exato gravado no arquivo temporário
    - start <= end é assumido, não validado
    - Tags desconhecidas no --ide-check decodificam para None (ignoradas)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Union

from lsprotocol.types import DiagnosticSeverity, Range

from nushell_lsp.compiler import CompilerResponse
from nushell_lsp.errors import OutputParseError

logger = logging.getLogger(__name__)

PRELUDE_FILE = "__prelude__"


def _int(value: Any, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ValueError(f"{name}: offset inválido {value!r}")
    return value


def _str(value: Any, name: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{name}: esperado string, recebido {value!r}")
    return value


def _object(value: Any, name: str) -> dict:
    if not isinstance(value, dict):
        raise ValueError(f"{name}: esperado objeto, recebido {value!r}")
    return value


@dataclass(frozen=True)
class Span:
    start: int
    end: int

    @classmethod
    def from_json(cls, value: Any) -> "Span":
        value = _object(value, "span")
        return cls(start=_int(value["start"], "start"), end=_int(value["end"], "end"))


@dataclass(frozen=True)
class IdeComplete:
    completions: List[str]

    @classmethod
    def from_json(cls, value: Any) -> "IdeComplete":
        value = _object(value, "completion")
        items = value["completions"]
        if not isinstance(items, list):
            raise ValueError("completions: esperado lista")
        return cls(completions=[_str(item, "completions[]") for item in items])


@dataclass(frozen=True)
class IdeHover:
    hover: str
    span: Optional[Span] = None

    @classmethod
    def from_json(cls, value: Any) -> "IdeHover":
        value = _object(value, "hover")
        span = value.get("span")
        return cls(
            hover=_str(value["hover"], "hover"),
            span=Span.from_json(span) if span is not None else None,
        )


@dataclass(frozen=True)
class IdeGotoDef:
    file: str
    start: int
    end: int

    @classmethod
    def from_json(cls, value: Any) -> "IdeGotoDef":
        value = _object(value, "goto-def")
        return cls(
            file=_str(value["file"], "file"),
            start=_int(value["start"], "start"),
            end=_int(value["end"], "end"),
        )

    @property
    def is_prelude(self) -> bool:
        return self.file in ("", PRELUDE_FILE)


@dataclass(frozen=True)
class IdeCheckDiagnostic:
    message: str
    severity: DiagnosticSeverity
    span: Span


@dataclass(frozen=True)
class IdeCheckHint:
    position: Span
    typename: str


IdeCheck = Union[IdeCheckDiagnostic, IdeCheckHint]


_SEVERITIES = {
    "error": DiagnosticSeverity.Error,
    "warning": DiagnosticSeverity.Warning,
    "information": DiagnosticSeverity.Information,
    "info": DiagnosticSeverity.Information,
    "hint": DiagnosticSeverity.Hint,
}


def convert_severity(severity: Any) -> DiagnosticSeverity:
    """
    Mapeia a severidade do `nu` para DiagnosticSeverity do LSP.

    Mapeamento:
        Error       → DiagnosticSeverity.Error (1)
        Warning     → DiagnosticSeverity.Warning (2)
        Information → DiagnosticSeverity.Information (3)
        Hint        → DiagnosticSeverity.Hint (4)

    Raises:
        ValueError: Severidade desconhecida
    """
    try:
        return _SEVERITIES[_str(severity, "severity").lower()]
    except KeyError:
        raise ValueError(f"severidade desconhecida: {severity!r}") from None


def parse_ide_check(line: str) -> Optional[IdeCheck]:
    """
    Decodifica uma linha do --ide-check.

    Returns:
        IdeCheckDiagnostic, IdeCheckHint ou None para tags desconhecidas

    Raises:
        ValueError, KeyError: Linha malformada
    """
    value = _object(json.loads(line), "check")
    tag = value.get("type")
    if tag == "diagnostic":
        return IdeCheckDiagnostic(
            message=_str(value["message"], "message"),
            severity=convert_severity(value["severity"]),
            span=Span.from_json(value["span"]),
        )
    if tag == "hint":
        return IdeCheckHint(
            position=Span.from_json(value["position"]),
            typename=_str(value["typename"], "typename"),
        )
    return None


def decode_checks(stdout: str) -> List[IdeCheck]:
    """Decodifica todas as linhas válidas; linhas malformadas são descartadas."""
    checks: List[IdeCheck] = []
    for line in stdout.splitlines():
        if not line.strip():
            continue
        try:
            check = parse_ide_check(line)
        except (ValueError, KeyError, TypeError) as e:
            logger.debug(f"Linha do --ide-check ignorada ({e}): {line!r}")
            continue
        if check is not None:
            checks.append(check)
    return checks


def decode_response(response: CompilerResponse, cls):
    """
    Decodifica uma resposta de objeto único (complete/hover/goto-def).

    Raises:
        OutputParseError: JSON inválido ou campos ausentes/malformados
    """
    try:
        return cls.from_json(json.loads(response.stdout))
    except (ValueError, KeyError, TypeError) as e:
        raise OutputParseError(response.cmdline, e) from e


def span_to_range(doc, span: Span) -> Range:
    """Converte Span (bytes) em Range LSP (UTF-16) usando o documento."""
    return doc.range_of(span.start, span.end)
