"""
nushell_lsp - Language Server Protocol para Nushell

Propósito:
    Servidor LSP que delega toda a semântica da linguagem ao executável
    `nu` (modo --ide-*), oferecendo diagnósticos, completamento, hover,
    go-to-definition e inlay hints em editores compatíveis com LSP.

Componentes principais:
    - server: Sessão LSP (pygls) e handlers de protocolo
    - documents: Documentos abertos e conversão UTF-16 <-> byte offset
    - settings: Configurações efetivas por documento
    - compiler: Invocação do `nu` como subprocesso com timeout
    - completion/hover/definition/diagnostics/inlay_hints: mapeadores de resposta

Dependências críticas:
    - pygls: Framework LSP
    - lsprotocol: Tipos do protocolo

Exemplo de uso:
    python -m nushell_lsp
"""
from importlib.metadata import PackageNotFoundError, version as _pkg_version
from pathlib import Path
import re


def _read_version_from_pyproject() -> str:
    pyproject = Path(__file__).resolve().parents[1] / "pyproject.toml"
    try:
        text = pyproject.read_text(encoding="utf-8")
    except OSError:
        return "0.0.0"
    match = re.search(r'(?m)^version = "([^"]+)"\s*$', text)
    return match.group(1) if match else "0.0.0"


try:
    __version__ = _pkg_version("nushell-lsp")
except PackageNotFoundError:
    __version__ = _read_version_from_pyproject()

__all__ = ["server", "documents", "settings", "compiler"]
