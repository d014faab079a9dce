"""
Testes para nushell_lsp/settings.py

Cobertura:
- parse_settings: defaults, campos válidos, payload malformado
- parse_client_payload: seção nushellLanguageServer
- SettingsResolver.get_settings com e sem consulta por recurso
- SettingsResolver.update: limpa cache ou substitui globais
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from nushell_lsp.settings import (
    IdeSettings,
    SettingsResolver,
    parse_client_payload,
    parse_settings,
)

URI = "file:///home/user/script.nu"

PAYLOAD = {
    "hints": {"showInferredTypes": False},
    "includeDirs": ["/opt/nu/lib", "/home/user/modules"],
    "maxNumberOfProblems": 50,
    "maxNushellInvocationTime": 2500,
    "nushellExecutablePath": "/usr/local/bin/nu",
}


def _resolver(can_lookup: bool, values=None):
    capabilities = SimpleNamespace(can_lookup_configuration=can_lookup)
    fetch = AsyncMock(return_value=values)
    return SettingsResolver(capabilities, fetch), fetch


class TestParseSettings:
    def test_defaults(self):
        settings = IdeSettings()
        assert settings.show_inferred_types is True
        assert settings.include_dirs == ()
        assert settings.max_number_of_problems == 1000
        assert settings.max_invocation_time == timedelta(seconds=10)
        assert settings.executable_path == Path("nu")

    def test_none_payload(self):
        assert parse_settings(None) == IdeSettings()

    def test_empty_payload_uses_defaults(self):
        assert parse_settings({}) == IdeSettings()

    def test_full_payload(self):
        settings = parse_settings(PAYLOAD)
        assert settings.show_inferred_types is False
        assert settings.include_dirs == (Path("/opt/nu/lib"), Path("/home/user/modules"))
        assert settings.max_number_of_problems == 50
        assert settings.max_invocation_time == timedelta(milliseconds=2500)
        assert settings.executable_path == Path("/usr/local/bin/nu")

    def test_partial_payload(self):
        settings = parse_settings({"maxNumberOfProblems": 7})
        assert settings.max_number_of_problems == 7
        assert settings.show_inferred_types is True

    @pytest.mark.parametrize(
        "payload",
        [
            {"maxNumberOfProblems": -1},
            {"maxNumberOfProblems": "100"},
            {"maxNushellInvocationTime": 1.5},
            {"maxNushellInvocationTime": True},
            {"hints": {"showInferredTypes": "yes"}},
            {"includeDirs": "/opt/nu/lib"},
            {"includeDirs": [1, 2]},
            "not a dict",
        ],
    )
    def test_malformed_payload_falls_back_to_defaults(self, payload):
        assert parse_settings(payload) == IdeSettings()


class TestParseClientPayload:
    def test_section(self):
        settings = parse_client_payload({"nushellLanguageServer": PAYLOAD})
        assert settings.max_number_of_problems == 50

    def test_missing_section(self):
        assert parse_client_payload({"other": {}}) == IdeSettings()

    def test_not_a_dict(self):
        assert parse_client_payload(None) == IdeSettings()


class TestGetSettings:
    def test_without_lookup_returns_global(self):
        resolver, fetch = _resolver(can_lookup=False)
        resolver.document_settings.put(URI, parse_settings(PAYLOAD))

        settings = asyncio.run(resolver.get_settings(URI))

        assert settings == IdeSettings()
        fetch.assert_not_called()

    def test_lookup_fetches_and_caches(self):
        resolver, fetch = _resolver(can_lookup=True, values=[PAYLOAD])

        first = asyncio.run(resolver.get_settings(URI))
        second = asyncio.run(resolver.get_settings(URI))

        assert first.max_number_of_problems == 50
        assert second == first
        fetch.assert_awaited_once_with(URI)
        assert resolver.document_settings.has(URI)

    def test_lookup_parse_failure_caches_defaults(self):
        resolver, _ = _resolver(can_lookup=True, values=[{"maxNumberOfProblems": "x"}])

        settings = asyncio.run(resolver.get_settings(URI))

        assert settings == IdeSettings()
        assert resolver.document_settings.get(URI) == IdeSettings()

    @pytest.mark.parametrize("values", [None, []])
    def test_lookup_nothing_returns_defaults_without_caching(self, values):
        resolver, _ = _resolver(can_lookup=True, values=values)

        settings = asyncio.run(resolver.get_settings(URI))

        assert settings == IdeSettings()
        assert not resolver.document_settings.has(URI)


class TestUpdate:
    def test_update_with_lookup_clears_cache(self):
        resolver, fetch = _resolver(can_lookup=True, values=[PAYLOAD])
        asyncio.run(resolver.get_settings(URI))
        assert resolver.document_settings.has(URI)

        resolver.update({"nushellLanguageServer": {}})

        assert not resolver.document_settings.has(URI)
        assert resolver.global_settings == IdeSettings()
        asyncio.run(resolver.get_settings(URI))
        assert fetch.await_count == 2

    def test_update_without_lookup_replaces_global(self):
        resolver, _ = _resolver(can_lookup=False)

        resolver.update({"nushellLanguageServer": PAYLOAD})

        settings = asyncio.run(resolver.get_settings(URI))
        assert settings.max_number_of_problems == 50
        assert settings.executable_path == Path("/usr/local/bin/nu")

    def test_update_without_lookup_malformed_resets_global(self):
        resolver, _ = _resolver(can_lookup=False)
        resolver.update({"nushellLanguageServer": PAYLOAD})

        resolver.update({"nushellLanguageServer": {"includeDirs": 3}})

        assert resolver.global_settings == IdeSettings()
