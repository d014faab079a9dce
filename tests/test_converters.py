"""
Testes para nushell_lsp/converters.py

Cobertura:
- convert_severity: mapeamento isomórfico
- parse_ide_check: diagnostic, hint, tag desconhecida
- decode_checks: linhas malformadas são descartadas
- decode_response: OutputParseError com a linha de comando
- span_to_range via Document
"""

import json

import pytest
from lsprotocol.types import DiagnosticSeverity, Position

from nushell_lsp.compiler import CompilerResponse
from nushell_lsp.converters import (
    IdeCheckDiagnostic,
    IdeCheckHint,
    IdeComplete,
    IdeGotoDef,
    IdeHover,
    Span,
    convert_severity,
    decode_checks,
    decode_response,
    parse_ide_check,
    span_to_range,
)
from nushell_lsp.documents import Document
from nushell_lsp.errors import OutputParseError

DIAGNOSTIC_LINE = json.dumps(
    {
        "type": "diagnostic",
        "message": "The '||' operator is not supported in Nushell",
        "severity": "Error",
        "span": {"start": 70, "end": 72},
    }
)
HINT_LINE = json.dumps(
    {"type": "hint", "position": {"start": 21, "end": 24}, "typename": "list<string>"}
)


def _response(stdout: str) -> CompilerResponse:
    return CompilerResponse(cmdline="nu --ide-hover 3 /tmp/x.nu", stdout=stdout)


class TestConvertSeverity:
    @pytest.mark.parametrize(
        "severity, expected",
        [
            ("Error", DiagnosticSeverity.Error),
            ("Warning", DiagnosticSeverity.Warning),
            ("Information", DiagnosticSeverity.Information),
            ("Hint", DiagnosticSeverity.Hint),
            ("error", DiagnosticSeverity.Error),
        ],
    )
    def test_mapping(self, severity, expected):
        assert convert_severity(severity) == expected

    def test_unknown(self):
        with pytest.raises(ValueError):
            convert_severity("Fatal")


class TestParseIdeCheck:
    def test_diagnostic(self):
        check = parse_ide_check(DIAGNOSTIC_LINE)
        assert check == IdeCheckDiagnostic(
            message="The '||' operator is not supported in Nushell",
            severity=DiagnosticSeverity.Error,
            span=Span(70, 72),
        )

    def test_hint(self):
        check = parse_ide_check(HINT_LINE)
        assert check == IdeCheckHint(position=Span(21, 24), typename="list<string>")

    def test_unknown_tag_is_ignored(self):
        assert parse_ide_check('{"type": "telemetry", "value": 1}') is None

    def test_missing_field(self):
        with pytest.raises(KeyError):
            parse_ide_check('{"type": "hint", "typename": "int"}')


class TestDecodeChecks:
    def test_mixed_output(self):
        stdout = "\n".join([DIAGNOSTIC_LINE, "not json", "", HINT_LINE, "[1, 2]"])
        checks = decode_checks(stdout)
        assert len(checks) == 2
        assert isinstance(checks[0], IdeCheckDiagnostic)
        assert isinstance(checks[1], IdeCheckHint)

    def test_empty(self):
        assert decode_checks("") == []

    def test_bad_severity_dropped(self):
        line = DIAGNOSTIC_LINE.replace('"Error"', '"Catastrophe"')
        assert decode_checks(line) == []


class TestDecodeResponse:
    def test_complete(self):
        complete = decode_response(_response('{"completions": ["where", "which"]}'), IdeComplete)
        assert complete.completions == ["where", "which"]

    def test_hover_without_span(self):
        hover = decode_response(_response('{"hover": "List the files"}'), IdeHover)
        assert hover.span is None

    def test_hover_with_span(self):
        hover = decode_response(
            _response('{"hover": "x", "span": {"start": 1, "end": 3}}'), IdeHover
        )
        assert hover.span == Span(1, 3)

    def test_goto_def(self):
        goto = decode_response(
            _response('{"file": "/tmp/a.nu", "start": 4, "end": 9}'), IdeGotoDef
        )
        assert goto == IdeGotoDef(file="/tmp/a.nu", start=4, end=9)
        assert not goto.is_prelude

    @pytest.mark.parametrize("file", ["", "__prelude__"])
    def test_goto_def_prelude(self, file):
        assert IdeGotoDef(file=file, start=0, end=0).is_prelude

    @pytest.mark.parametrize(
        "stdout",
        ["", "garbage", '{"hover": 3}', '{"completions": "where"}', "[]"],
    )
    def test_malformed(self, stdout):
        cls = IdeComplete if "completions" in stdout else IdeHover
        with pytest.raises(OutputParseError) as excinfo:
            decode_response(_response(stdout), cls)
        assert "nu --ide-hover 3 /tmp/x.nu" in excinfo.value.message


def test_span_to_range():
    doc = Document("file:///t.nu", "let foo = 1\nls", 1)
    range_ = span_to_range(doc, Span(4, 7))
    assert range_.start == Position(line=0, character=4)
    assert range_.end == Position(line=0, character=7)
