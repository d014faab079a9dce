"""
server.py - Servidor LSP principal para Nushell usando pygls

Propósito:
    Sessão Language Server Protocol que recebe requisições do editor e
    as encaminha ao `nu` em modo IDE, publicando diagnósticos e
    respondendo completion, hover, definition e inlay hints.

Componentes principais:
    - NushellLanguageServer: Sessão com campos de estado independentes
    - validate_document: `nu --ide-check` + publicação de diagnósticos
    - Event handlers: did_open, did_change, did_close, configuração
    - Request handlers: completion, definition, hover, inlay_hint

Dependências críticas:
    - pygls: Framework LSP
    - nushell_lsp.compiler: Invocação do `nu`

Exemplo de uso:
    python -m nushell_lsp

Notas de implementação:
    - Comunica via STDIO (entrada/saída padrão); logs vão para stderr
    - didOpen valida imediatamente; didChange passa pelo throttle (500ms)
    - Cada campo de estado tem seu próprio lock; nenhum lock atravessa um
      await (documentos são copiados antes da chamada ao `nu`)
    - Erros em requisições voltam apenas para a requisição; erros em
      notificações são logados e nunca derrubam a sessão
"""

from __future__ import annotations

import logging
import sys
from typing import List, Optional

from lsprotocol.types import (
    INITIALIZE,
    INITIALIZED,
    SHUTDOWN,
    TEXT_DOCUMENT_COMPLETION,
    TEXT_DOCUMENT_DEFINITION,
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_CLOSE,
    TEXT_DOCUMENT_DID_OPEN,
    TEXT_DOCUMENT_HOVER,
    TEXT_DOCUMENT_INLAY_HINT,
    WORKSPACE_DID_CHANGE_CONFIGURATION,
    WORKSPACE_DID_CHANGE_WORKSPACE_FOLDERS,
    CompletionItem,
    CompletionOptions,
    CompletionParams,
    ConfigurationItem,
    DefinitionParams,
    DidChangeConfigurationParams,
    DidChangeTextDocumentParams,
    DidChangeWorkspaceFoldersParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    Hover,
    HoverParams,
    InitializedParams,
    InitializeParams,
    InlayHint,
    InlayHintOptions,
    InlayHintParams,
    Location,
    MessageType,
    Registration,
    RegistrationParams,
    WorkspaceConfigurationParams,
)
from pygls.exceptions import JsonRpcException
from pygls.protocol import LanguageServerProtocol
from pygls.server import LanguageServer

from nushell_lsp import __version__
from nushell_lsp.cache import UriCache
from nushell_lsp.capabilities import CapabilityGate
from nushell_lsp.compiler import (
    CompilerBackend,
    IdeRequest,
    SubprocessBackend,
    executable_available,
)
from nushell_lsp.completion import compute_completions
from nushell_lsp.converters import decode_checks
from nushell_lsp.definition import compute_definition
from nushell_lsp.diagnostics import build_diagnostics
from nushell_lsp.documents import Document, DocumentStore
from nushell_lsp.errors import DocumentNotFound
from nushell_lsp.hover import compute_hover
from nushell_lsp.inlay_hints import build_inlay_hints, filter_inlay_hints
from nushell_lsp.settings import SECTION, SettingsResolver
from nushell_lsp.throttle import ValidationThrottle

# Configuração de logging (stdout é o canal do protocolo)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


class NushellLanguageServerProtocol(LanguageServerProtocol):
    """
    Protocolo LSP que preserva o código JSON-RPC dos erros de handlers async.

    Notas de implementação:
        - JsonRpcException de handlers `async def` vai ao cliente com o
          próprio código (InvalidParams -32602, Parse -32700)
        - Demais exceções seguem o caminho padrão do pygls (Internal)
    """

    def _execute_request_callback(self, method_name, msg_id, future):
        error = None if future.cancelled() else future.exception()
        if not isinstance(error, JsonRpcException):
            super()._execute_request_callback(method_name, msg_id, future)
            return

        logger.error(f"Erro em {method_name} (id={msg_id}): {error.message}")
        self._send_response(msg_id, error=error.to_response_error())
        self._request_futures.pop(msg_id, None)


class NushellLanguageServer(LanguageServer):
    """
    Servidor LSP especializado para Nushell.

    Attributes:
        capability_gate: Flags do cliente fixadas no initialize
        document_store: Documentos abertos e conversão de posições
        settings_resolver: Settings globais e cache por documento
        throttle: Relógio de validação da sessão
        backend: Executor das operações IDE (subprocesso `nu` por padrão)
        document_inlay_hints: Inlay hints calculados na última validação
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.capability_gate = CapabilityGate()
        self.document_store = DocumentStore()
        self.settings_resolver = SettingsResolver(
            self.capability_gate, self.fetch_document_configuration
        )
        self.throttle = ValidationThrottle()
        self.backend: CompilerBackend = SubprocessBackend()
        self.document_inlay_hints: UriCache[List[InlayHint]] = UriCache("inlay hints")

    async def fetch_document_configuration(self, uri: str) -> Optional[list]:
        """workspace/configuration da seção nushellLanguageServer para o URI."""
        return await self.get_configuration_async(
            WorkspaceConfigurationParams(
                items=[ConfigurationItem(scope_uri=uri, section=SECTION)]
            )
        )


# Instância global do servidor
server = NushellLanguageServer(
    "nushell-lsp", __version__, protocol_cls=NushellLanguageServerProtocol
)


def _report_error(ls: NushellLanguageServer, message: str) -> None:
    """Loga localmente e no cliente (window/logMessage)."""
    logger.error(message)
    ls.show_message_log(message, MessageType.Error)


def _tracked_document(ls: NushellLanguageServer, uri: str) -> Optional[Document]:
    try:
        return ls.document_store.snapshot(uri)
    except DocumentNotFound:
        return None


async def validate_document(ls: NushellLanguageServer, uri: str) -> None:
    """
    Valida um documento Nushell e publica diagnósticos.

    Args:
        ls: Instância do servidor
        uri: URI do documento a validar

    Fluxo:
        1. Sem capacidade publishDiagnostics no cliente → no-op
        2. Copia texto e versão do documento (sem segurar lock)
        3. Resolve settings do documento
        4. Executa `nu --ide-check <maxNumberOfProblems>`
        5. Converte linhas em Diagnostic e InlayHint
        6. Guarda inlay hints e publica diagnósticos com a versão copiada

    Raises:
        DocumentNotFound, CompilerError: Propagados para o handler chamador
    """
    if not ls.capability_gate.can_publish_diagnostics:
        logger.debug("Cliente não reportou capacidade de diagnósticos")
        return

    doc = ls.document_store.snapshot(uri)
    settings = await ls.settings_resolver.get_settings(uri)
    response = await ls.backend.run(IdeRequest.check(), doc.text, settings, uri)

    checks = decode_checks(response.stdout)
    diagnostics = build_diagnostics(checks, doc)

    if settings.show_inferred_types:
        ls.document_inlay_hints.put(uri, build_inlay_hints(checks, doc))
    else:
        ls.document_inlay_hints.invalidate(uri)

    ls.publish_diagnostics(uri, diagnostics, version=doc.version)
    logger.info(f"Validação completa: {uri} (v{doc.version}) - {len(diagnostics)} diagnósticos")


@server.feature(INITIALIZE)
def initialize(ls: NushellLanguageServer, params: InitializeParams) -> None:
    """Fixa as capacidades do cliente (única escrita)."""
    ls.capability_gate.latch(params.capabilities)


@server.feature(INITIALIZED)
async def initialized(ls: NushellLanguageServer, params: InitializedParams) -> None:
    """
    Registra dinamicamente workspace/didChangeConfiguration quando o
    cliente suporta; falha no registro não é fatal.
    """
    if ls.capability_gate.can_change_configuration:
        try:
            await ls.register_capability_async(
                RegistrationParams(
                    registrations=[
                        Registration(
                            id=WORKSPACE_DID_CHANGE_CONFIGURATION,
                            method=WORKSPACE_DID_CHANGE_CONFIGURATION,
                        )
                    ]
                )
            )
        except JsonRpcException as e:
            logger.info(f"Não foi possível registrar capacidade: {e}")

    settings = ls.settings_resolver.global_settings
    if not executable_available(settings):
        ls.show_message_log(
            f"Executável {settings.executable_path} não encontrado no PATH",
            MessageType.Warning,
        )

    logger.info("Servidor inicializado")


@server.feature(SHUTDOWN)
def shutdown(ls: NushellLanguageServer, params) -> None:
    logger.info("Servidor encerrando...")


@server.feature(TEXT_DOCUMENT_DID_OPEN)
async def did_open(ls: NushellLanguageServer, params: DidOpenTextDocumentParams) -> None:
    """
    Handler para abertura de documento.

    Rastreia o documento e valida imediatamente (sem throttle).
    """
    document = params.text_document
    logger.info(f"Documento aberto: {document.uri}")
    try:
        ls.document_store.open(document.uri, document.text, document.version)
        await validate_document(ls, document.uri)
    except JsonRpcException as e:
        _report_error(ls, f"Erro ao abrir {document.uri}: {e}")


@server.feature(TEXT_DOCUMENT_DID_CHANGE)
async def did_change(
    ls: NushellLanguageServer, params: DidChangeTextDocumentParams
) -> None:
    """
    Handler para mudanças no documento.

    Nota sobre throttle:
        - A mudança é sempre aplicada ao Document Store
        - A validação só roda se a última terminou há mais de 500ms
    """
    uri = params.text_document.uri
    logger.debug(f"Documento modificado: {uri} (v{params.text_document.version})")
    try:
        ls.document_store.apply_change(
            uri, params.text_document.version, params.content_changes
        )
    except JsonRpcException as e:
        _report_error(ls, f"Erro ao aplicar mudança em {uri}: {e}")

    try:
        await ls.throttle.throttled_validate(uri, lambda u: validate_document(ls, u))
    except JsonRpcException as e:
        _report_error(ls, f"Erro ao validar {uri}: {e}")


@server.feature(TEXT_DOCUMENT_DID_CLOSE)
def did_close(ls: NushellLanguageServer, params: DidCloseTextDocumentParams) -> None:
    """
    Handler para fechamento de documento.

    Remove o documento, seus inlay hints e limpa diagnósticos.
    """
    uri = params.text_document.uri
    logger.info(f"Documento fechado: {uri}")

    ls.document_store.close(uri)
    ls.document_inlay_hints.invalidate(uri)
    if ls.capability_gate.can_publish_diagnostics:
        ls.publish_diagnostics(uri, [])


@server.feature(WORKSPACE_DID_CHANGE_CONFIGURATION)
async def did_change_configuration(
    ls: NushellLanguageServer, params: DidChangeConfigurationParams
) -> None:
    """
    Handler para mudanças na configuração do workspace.

    Com consulta por recurso, descarta o cache de settings; sem ela,
    params.settings substitui as settings globais. Em seguida revalida
    todos os documentos abertos.
    """
    ls.settings_resolver.update(params.settings)

    uris = ls.document_store.uris()
    logger.info(f"Configuração atualizada, revalidando {len(uris)} documentos")
    for uri in uris:
        try:
            await validate_document(ls, uri)
        except JsonRpcException as e:
            _report_error(ls, f"Erro ao revalidar {uri}: {e}")


@server.feature(WORKSPACE_DID_CHANGE_WORKSPACE_FOLDERS)
def did_change_workspace_folders(
    ls: NushellLanguageServer, params: DidChangeWorkspaceFoldersParams
) -> None:
    added = [folder.uri for folder in params.event.added]
    removed = [folder.uri for folder in params.event.removed]
    logger.info(f"Workspace folders: added={added}; removed={removed}")


@server.feature(TEXT_DOCUMENT_COMPLETION, CompletionOptions())
async def completion(
    ls: NushellLanguageServer, params: CompletionParams
) -> List[CompletionItem]:
    """Sugestões do `nu --ide-complete` na posição do cursor."""
    uri = params.text_document.uri
    doc = ls.document_store.snapshot(uri)
    offset = doc.offset_at(params.position)

    settings = await ls.settings_resolver.get_settings(uri)
    response = await ls.backend.run(IdeRequest.complete(offset), doc.text, settings, uri)
    return compute_completions(response)


@server.feature(TEXT_DOCUMENT_DEFINITION)
async def definition(
    ls: NushellLanguageServer, params: DefinitionParams
) -> Optional[Location]:
    """
    Go-to-definition via `nu --ide-goto-def`.

    Prelude ou arquivo inexistente retornam None.
    """
    uri = params.text_document.uri
    doc = ls.document_store.snapshot(uri)
    offset = doc.offset_at(params.position)

    settings = await ls.settings_resolver.get_settings(uri)
    response = await ls.backend.run(IdeRequest.goto_def(offset), doc.text, settings, uri)
    return compute_definition(
        response, doc, lambda target: _tracked_document(ls, target)
    )


@server.feature(TEXT_DOCUMENT_HOVER)
async def hover(ls: NushellLanguageServer, params: HoverParams) -> Hover:
    """Texto de hover do `nu --ide-hover` na posição do cursor."""
    uri = params.text_document.uri
    doc = ls.document_store.snapshot(uri)
    offset = doc.offset_at(params.position)

    settings = await ls.settings_resolver.get_settings(uri)
    response = await ls.backend.run(IdeRequest.hover(offset), doc.text, settings, uri)
    return compute_hover(response, doc)


@server.feature(TEXT_DOCUMENT_INLAY_HINT, InlayHintOptions(resolve_provider=False))
def inlay_hint(
    ls: NushellLanguageServer, params: InlayHintParams
) -> Optional[List[InlayHint]]:
    """
    Retorna os inlay hints da última validação do documento.

    None se o documento ainda não foi validado (ou hints desligados).
    """
    hints = ls.document_inlay_hints.get(params.text_document.uri)
    if hints is None:
        return None
    return filter_inlay_hints(hints, params.range)


def main() -> None:
    """
    Ponto de entrada principal do servidor.

    Inicia servidor LSP em modo STDIO.
    """
    logger.info("Iniciando Nushell Language Server...")
    logger.info("Python executable: %s", sys.executable)
    logger.info("nushell-lsp package: %s", __version__)
    server.start_io()


if __name__ == "__main__":
    main()
