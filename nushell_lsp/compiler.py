"""
compiler.py - Invocação do `nu` em modo IDE

Propósito:
    Transforma (texto, operação, settings, uri) em uma chamada ao
    executável `nu` e devolve a saída padrão decodificada ou um erro
    tipado.

Componentes principais:
    - IdeOperation / IdeRequest: Operação IDE e seus argumentos
    - include_paths: Diretório do arquivo + includeDirs configurados
    - run_compiler: Executa o subprocesso com timeout
    - CompilerBackend / SubprocessBackend: Interface estreita para trocar
      o backend sem mexer nos mapeadores de resposta

Contrato de linha de comando:
    nu [--ide-check <max> | --ide-complete <off> | --ide-goto-def <off> |
        --ide-hover <off>] [--include-path <dirs separados por 0x1E>] <arquivo>

Notas de implementação:
    - O `nu` só aceita arquivo (não stdin) nos modos IDE; cada chamada
      grava o texto em memória num arquivo temporário exclusivo
    - O arquivo temporário é removido em todos os caminhos de saída
    - Exit status é ignorado: diagnósticos saem com status != 0
    - stdout deve ser UTF-8 válido; caso contrário é erro de parse
    - Em timeout o grupo de processos do `nu` é morto; o chamador espera no
      máximo KILL_GRACE_PERIOD pela saída antes de seguir
"""

from __future__ import annotations

import asyncio
import logging
import os
import shlex
import shutil
import signal
import tempfile
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Protocol
from urllib.parse import unquote, urlparse

from nushell_lsp.errors import InternalError, ParseError
from nushell_lsp.settings import IdeSettings

logger = logging.getLogger(__name__)

INCLUDE_PATH_SEPARATOR = "\x1e"
TEMP_FILE_SUFFIX = ".nu"
KILL_GRACE_PERIOD = 1.0


class CompilerError(Exception):
    """Base para falhas da invocação do `nu`."""


class PathConstructionError(CompilerError, InternalError):
    pass


class TempFileError(CompilerError, InternalError):
    pass


class SpawnError(CompilerError, InternalError):
    pass


class InvocationTimeout(CompilerError, InternalError):
    pass


class OutputDecodeError(CompilerError, ParseError):
    pass


class IdeOperation(Enum):
    CHECK = "--ide-check"
    COMPLETE = "--ide-complete"
    GOTO_DEF = "--ide-goto-def"
    HOVER = "--ide-hover"


@dataclass(frozen=True)
class IdeRequest:
    """Operação IDE com o byte offset do cursor (exceto check)."""

    operation: IdeOperation
    offset: Optional[int] = None

    @classmethod
    def check(cls) -> "IdeRequest":
        return cls(IdeOperation.CHECK)

    @classmethod
    def complete(cls, offset: int) -> "IdeRequest":
        return cls(IdeOperation.COMPLETE, offset)

    @classmethod
    def goto_def(cls, offset: int) -> "IdeRequest":
        return cls(IdeOperation.GOTO_DEF, offset)

    @classmethod
    def hover(cls, offset: int) -> "IdeRequest":
        return cls(IdeOperation.HOVER, offset)

    def arguments(self, settings: IdeSettings) -> List[str]:
        if self.operation is IdeOperation.CHECK:
            return [self.operation.value, str(settings.max_number_of_problems)]
        if self.offset is None:
            raise ValueError(f"{self.operation.value} requer offset")
        return [self.operation.value, str(self.offset)]


@dataclass(frozen=True)
class CompilerResponse:
    """Saída capturada de uma invocação."""

    cmdline: str
    stdout: str


def uri_to_path(uri: str) -> Optional[Path]:
    """
    Converte file URI em Path; outros esquemas retornam None.

    Raises:
        PathConstructionError: URI file:// sem caminho utilizável
    """
    parsed = urlparse(uri)
    if parsed.scheme != "file":
        return None

    path_str = unquote(parsed.path or "")

    # UNC paths: file://server/share/path -> //server/share/path
    if parsed.netloc and parsed.netloc != "localhost":
        path_str = f"//{parsed.netloc}{path_str}"

    # Windows drive: /d:/path -> d:/path
    if len(path_str) >= 3 and path_str[0] == "/" and path_str[2] == ":":
        path_str = path_str[1:]

    if not path_str or "\x00" in path_str:
        raise PathConstructionError(f"cannot convert {uri} to a filesystem path")
    return Path(path_str)


def include_paths(settings: IdeSettings, uri: str) -> List[str]:
    """Diretório do documento (se local) seguido dos includeDirs."""
    dirs: List[str] = []
    path = uri_to_path(uri)
    if path is not None:
        dirs.append(str(path.parent))
    dirs.extend(str(d) for d in settings.include_dirs)
    return dirs


def build_arguments(request: IdeRequest, settings: IdeSettings, uri: str) -> List[str]:
    """Argumentos da operação e de include; o arquivo de entrada vem depois."""
    args = request.arguments(settings)
    dirs = include_paths(settings, uri)
    if dirs:
        args += ["--include-path", INCLUDE_PATH_SEPARATOR.join(dirs)]
    return args


def _write_temp_file(text: str) -> Path:
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            newline="",
            suffix=TEMP_FILE_SUFFIX,
            prefix="nushell-lsp-",
            delete=False,
        ) as handle:
            handle.write(text)
            return Path(handle.name)
    except OSError as e:
        raise TempFileError("cannot write document to temporary file", e) from e


def _remove_temp_file(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Falha ao remover arquivo temporário {path}: {e}")


def _kill_process_group(process: asyncio.subprocess.Process) -> None:
    """Mata o `nu` e qualquer filho que ele tenha criado na mesma sessão."""
    try:
        if hasattr(os, "killpg"):
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()
    except ProcessLookupError:
        pass


async def _execute(executable: Path, args: List[str], timeout: float, cmdline: str) -> bytes:
    try:
        process = await asyncio.create_subprocess_exec(
            str(executable),
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as e:
        raise SpawnError(f"failed to spawn {cmdline}", e) from e

    try:
        stdout, _ = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError as e:
        _kill_process_group(process)
        try:
            await asyncio.wait_for(process.wait(), timeout=KILL_GRACE_PERIOD)
        except asyncio.TimeoutError:
            logger.warning(f"Processo {process.pid} não terminou após kill: {cmdline}")
        raise InvocationTimeout(f"timed out after {timeout}s: {cmdline}", e) from e

    logger.debug(f"{cmdline} terminou com status {process.returncode}")
    return stdout


async def run_compiler(
    text: str, request: IdeRequest, settings: IdeSettings, uri: str
) -> CompilerResponse:
    """
    Executa `nu` sobre o texto em memória.

    Args:
        text: Conteúdo atual do documento
        request: Operação IDE (check/complete/goto-def/hover)
        settings: Settings efetivas do documento
        uri: URI do documento (define o diretório de include)

    Returns:
        CompilerResponse com a linha de comando e o stdout decodificado

    Raises:
        PathConstructionError, TempFileError, SpawnError,
        InvocationTimeout, OutputDecodeError
    """
    args = build_arguments(request, settings, uri)

    file_path = await asyncio.to_thread(_write_temp_file, text)
    try:
        args.append(str(file_path))
        cmdline = shlex.join([str(settings.executable_path), *args])
        logger.debug(f"Executando: {cmdline}")

        started = time.monotonic()
        stdout = await _execute(
            settings.executable_path,
            args,
            settings.max_invocation_time.total_seconds(),
            cmdline,
        )
        logger.debug(f"{request.operation.value} levou {time.monotonic() - started:.3f}s")
    finally:
        _remove_temp_file(file_path)

    try:
        decoded = stdout.decode("utf-8")
    except UnicodeDecodeError as e:
        raise OutputDecodeError(f"non-UTF-8 output from {cmdline}", e) from e

    return CompilerResponse(cmdline=cmdline, stdout=decoded)


class CompilerBackend(Protocol):
    """Qualquer backend capaz de responder a uma operação IDE."""

    async def run(
        self, request: IdeRequest, text: str, settings: IdeSettings, uri: str
    ) -> CompilerResponse:
        ...


class SubprocessBackend:
    """Backend padrão: um processo `nu` por chamada."""

    async def run(
        self, request: IdeRequest, text: str, settings: IdeSettings, uri: str
    ) -> CompilerResponse:
        return await run_compiler(text, request, settings, uri)


def executable_available(settings: IdeSettings) -> bool:
    """Verifica se o executável configurado pode ser encontrado."""
    return shutil.which(str(settings.executable_path)) is not None
