from __future__ import annotations

import json
import sys
import types
from pathlib import Path

import pytest

import complexgraph.cli
import complexgraph.config
from complexgraph.cli import EXIT_CONFIG, EXIT_EXPRESSION, EXIT_OK, format_complex, main, parse_args

# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def test_parse_render_flags() -> None:
    ns = parse_args(
        ["render", "--expr", "sin(z)", "-w", "100", "-H", "50", "-r", "4", "-c", "8", "-s", "0.2", "--angle", "0.25"]
    )
    assert ns.command == "render"
    assert ns.expr == "sin(z)"
    assert (ns.width, ns.height, ns.cells) == (100, 50, 8)
    assert ns.xyrange == 4.0
    assert ns.scale_factor == 0.2
    assert ns.angle == 0.25
    assert ns.output is None


def test_parse_eval_collects_points() -> None:
    ns = parse_args(["eval", "--at=1i", "--at=-2", "--", "z*z"])
    assert ns.at == ["1i", "-2"]
    assert ns.expression == "z*z"
    assert ns.variable == "z"


def test_parse_watch_requires_output() -> None:
    with pytest.raises(SystemExit):
        parse_args(["watch"])


def test_version_flag(capsys) -> None:
    assert main(["--version"]) == 0
    assert "complexgraph" in capsys.readouterr().out


def test_missing_command_is_a_usage_error() -> None:
    assert main([]) == 2


def test_format_complex() -> None:
    assert format_complex(1 + 2j) == "1+2i"
    assert format_complex(-1 + 0j) == "-1+0i"
    assert format_complex(0.5 - 0.25j) == "0.5-0.25i"


# ---------------------------------------------------------------------------
# render
# ---------------------------------------------------------------------------


def test_render_to_file(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    out = tmp_path / "out.svg"
    assert main(["render", "-c", "4", "-o", str(out)]) == EXIT_OK
    svg = out.read_text(encoding="utf-8")
    assert svg.startswith("<svg")
    assert svg.count("<polygon") == 16


def test_render_to_stdout(tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.chdir(tmp_path)
    assert main(["render", "-c", "2", "--expr", "z"]) == EXIT_OK
    out = capsys.readouterr().out
    assert out.count("<polygon") == 4
    assert out.endswith("</svg>\n")


def test_render_uses_config_file(tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / "complexgraph.toml").write_text(
        'version = 1\n[render]\nwidth = 123\ncells = 2\n[expression]\nsource = "w+1"\nvariable = "w"\n',
        encoding="utf-8",
    )
    assert main(["render"]) == EXIT_OK
    out = capsys.readouterr().out
    assert "width='123'" in out
    assert out.count("<polygon") == 4


def test_command_line_overrides_config(tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / "complexgraph.toml").write_text("version = 1\n[render]\nwidth = 123\n", encoding="utf-8")
    assert main(["render", "-c", "1", "-w", "77"]) == EXIT_OK
    assert "width='77'" in capsys.readouterr().out


def test_render_bad_expression(tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.chdir(tmp_path)
    assert main(["render", "--expr", "foo(z)"]) == EXIT_EXPRESSION
    err = capsys.readouterr().err
    assert "error: unknown function 'foo'" in err
    assert "hint: known functions:" in err


def test_render_syntax_error_shows_caret(tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.chdir(tmp_path)
    assert main(["render", "--expr", "(z+1"]) == EXIT_EXPRESSION
    err = capsys.readouterr().err
    assert "  (z+1\n      ^" in err


def test_render_invalid_size(tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.chdir(tmp_path)
    assert main(["render", "-w", "0"]) == EXIT_CONFIG
    assert "width must be >= 1" in capsys.readouterr().err


def test_render_rejects_too_many_cells(tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.chdir(tmp_path)
    assert main(["render", "-c", "100000"]) == EXIT_CONFIG
    assert "cells must be <=" in capsys.readouterr().err


def test_render_invalid_config(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / "complexgraph.toml").write_text("version = 7\n", encoding="utf-8")
    assert main(["render"]) == EXIT_CONFIG


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


def test_check_ok_text(capsys) -> None:
    assert main(["check", "z*z"]) == EXIT_OK
    assert capsys.readouterr().out.strip() == "ok: (z * z)"


def test_check_ok_json(capsys) -> None:
    assert main(["check", "--json", "--variable", "t", "t+1"]) == EXIT_OK
    data = json.loads(capsys.readouterr().out)
    assert data == {
        "command": "check",
        "ok": True,
        "variables": ["t"],
        "normalized": "(t + 1.0)",
    }


def test_check_error_json(capsys) -> None:
    assert main(["check", "--json", "sin(1,2)"]) == EXIT_EXPRESSION
    data = json.loads(capsys.readouterr().out)
    assert data["ok"] is False
    assert data["error"]["kind"] == "ArityError"
    assert data["error"]["name"] == "sin"


def test_check_error_text(capsys) -> None:
    assert main(["check", "z+w"]) == EXIT_EXPRESSION
    assert "too many variables: w, z" in capsys.readouterr().err


# ---------------------------------------------------------------------------
# eval
# ---------------------------------------------------------------------------


def test_eval_defaults_to_origin(capsys) -> None:
    assert main(["eval", "1/(1+(z*z))"]) == EXIT_OK
    assert capsys.readouterr().out.strip() == "z = 0: 1+0i"


def test_eval_json_multiple_points(capsys) -> None:
    assert main(["eval", "--json", "--at=1i", "--at=2", "--", "z*z"]) == EXIT_OK
    data = json.loads(capsys.readouterr().out)
    assert data["ok"] is True
    assert [r["at"] for r in data["results"]] == ["1i", "2"]
    assert data["results"][0]["real"] == -1.0
    assert data["results"][1]["value"] == "4+0i"


def test_eval_pole_is_not_an_error(capsys) -> None:
    assert main(["eval", "--json", "--at=1i", "--", "1/(1+(z*z))"]) == EXIT_OK
    data = json.loads(capsys.readouterr().out)
    assert data["ok"] is True


def test_eval_bad_point(capsys) -> None:
    assert main(["eval", "--json", "--at=q", "--", "z"]) == EXIT_EXPRESSION
    data = json.loads(capsys.readouterr().out)
    assert data["ok"] is False
    assert data["at"] == "q"
    assert data["error"]["kind"] == "NotConstant"


def test_eval_bad_expression(capsys) -> None:
    assert main(["eval", "z +"]) == EXIT_EXPRESSION
    assert "error:" in capsys.readouterr().err


# ---------------------------------------------------------------------------
# serve / watch / mcp dispatch
# ---------------------------------------------------------------------------


def test_serve_refuses_bad_default_expression(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    assert main(["serve", "--expr", "foo(z)"]) == EXIT_EXPRESSION


def test_serve_rejects_bad_address(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    assert main(["serve", "-a", "nowhere"]) == EXIT_CONFIG


def test_main_dispatches_serve(monkeypatch) -> None:
    monkeypatch.setattr(complexgraph.cli, "cmd_serve", lambda args: 0)
    assert main(["serve"]) == 0


def test_main_dispatches_watch(monkeypatch) -> None:
    monkeypatch.setattr(complexgraph.cli, "cmd_watch", lambda args: 0)
    assert main(["watch", "-o", "out.svg"]) == 0


def test_watch_missing_watchfiles(tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setitem(sys.modules, "watchfiles", None)
    assert main(["watch", "-o", "out.svg"]) == EXIT_CONFIG
    assert "pip install complexgraph[watch]" in capsys.readouterr().err


def test_watch_missing_config(tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setitem(sys.modules, "watchfiles", types.ModuleType("watchfiles"))
    monkeypatch.setattr(complexgraph.config, "find_config_file", lambda start: None)
    assert main(["watch", "-o", "out.svg"]) == EXIT_CONFIG
    assert "complexgraph.toml" in capsys.readouterr().err


def test_main_dispatches_mcp(monkeypatch) -> None:
    monkeypatch.setattr(complexgraph.cli, "cmd_mcp", lambda args: 0)
    assert main(["mcp", "serve"]) == 0


def test_check_deeply_nested_expression(capsys) -> None:
    assert main(["check", "--json", "(" * 400 + "z" + ")" * 400]) == EXIT_EXPRESSION
    data = json.loads(capsys.readouterr().out)
    assert data["error"]["kind"] == "TooDeep"


def test_eval_variable_point_message(capsys) -> None:
    assert main(["eval", "--at=z", "--", "z"]) == EXIT_EXPRESSION
    err = capsys.readouterr().err
    assert "expected a constant, found variable z" in err
    assert "undefined variable" not in err
