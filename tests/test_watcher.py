"""Tests for complexgraph.watcher."""

from __future__ import annotations

import argparse
import asyncio
import sys
import types
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

import pytest

from complexgraph.watcher import (
    WatchCycleResult,
    WatchEvent,
    build_cycle_runner,
    filter_watched_files,
    run_watch_loop,
)

CONFIG = Path("/project/complexgraph.toml")

# ---------------------------------------------------------------------------
# Optional dependency check
# ---------------------------------------------------------------------------


def test_check_watchfiles_available_raises_when_missing(monkeypatch) -> None:
    monkeypatch.setitem(sys.modules, "watchfiles", None)

    from complexgraph.watcher import check_watchfiles_available

    with pytest.raises(ImportError, match="pip install complexgraph\\[watch\\]"):
        check_watchfiles_available()


def test_check_watchfiles_available_succeeds_when_installed(monkeypatch) -> None:
    fake = types.ModuleType("watchfiles")
    monkeypatch.setitem(sys.modules, "watchfiles", fake)

    from complexgraph.watcher import check_watchfiles_available

    check_watchfiles_available()


# ---------------------------------------------------------------------------
# File filtering
# ---------------------------------------------------------------------------


def test_filter_keeps_watched_file() -> None:
    changed = frozenset({CONFIG})
    assert filter_watched_files(changed, watched=frozenset({CONFIG})) == changed


def test_filter_drops_siblings() -> None:
    changed = frozenset({Path("/project/out.svg"), Path("/project/notes.txt"), CONFIG})
    assert filter_watched_files(changed, watched=frozenset({CONFIG})) == frozenset({CONFIG})


def test_filter_compares_resolved_paths(tmp_path: Path) -> None:
    cfg = tmp_path / "complexgraph.toml"
    cfg.write_text("version = 1\n", encoding="utf-8")
    (tmp_path / "sub").mkdir()
    indirect = tmp_path / "sub" / ".." / "complexgraph.toml"

    assert filter_watched_files(frozenset({indirect}), watched=frozenset({cfg})) == frozenset(
        {indirect}
    )


# ---------------------------------------------------------------------------
# Watch loop orchestration
# ---------------------------------------------------------------------------


async def _fake_changes(
    batches: list[set[tuple[Any, str]]],
) -> AsyncIterator[set[tuple[Any, str]]]:
    for batch in batches:
        yield batch


def _ok_result(event: WatchEvent) -> WatchCycleResult:
    return WatchCycleResult(exit_code=0, duration_s=0.5, changed_paths=event.changed_paths)


def _run(batches, run_cycle, **kwargs) -> None:
    params: dict[str, Any] = {
        "on_event": lambda msg: None,
        "on_cycle_result": lambda r: None,
        "on_error": lambda e: None,
    }
    params.update(kwargs)
    asyncio.run(
        run_watch_loop(
            changes_iter=_fake_changes(batches),
            run_cycle=run_cycle,
            watched=frozenset({CONFIG}),
            **params,
        )
    )


def test_watch_loop_calls_run_cycle_on_change() -> None:
    cycles: list[WatchEvent] = []

    def fake_run_cycle(event: WatchEvent) -> WatchCycleResult:
        cycles.append(event)
        return _ok_result(event)

    _run([{(1, str(CONFIG))}], fake_run_cycle)
    assert len(cycles) == 1
    assert cycles[0].changed_paths == frozenset({CONFIG})


def test_watch_loop_skips_irrelevant_changes() -> None:
    cycles: list[WatchEvent] = []

    def fake_run_cycle(event: WatchEvent) -> WatchCycleResult:
        cycles.append(event)
        return _ok_result(event)

    _run([{(1, "/project/out.svg")}, {(2, "/elsewhere/complexgraph.toml")}], fake_run_cycle)
    assert cycles == []


def test_watch_loop_reports_events_and_results() -> None:
    events: list[str] = []
    results: list[WatchCycleResult] = []

    _run(
        [{(1, str(CONFIG))}, {(1, str(CONFIG))}],
        _ok_result,
        on_event=events.append,
        on_cycle_result=results.append,
    )
    assert len(results) == 2
    assert events[0] == f"[watch] change detected: {CONFIG}"
    assert events[1] == "[watch] rendering..."
    assert events[2] == "[watch] done (0.5s)"


def test_watch_loop_continues_after_error() -> None:
    errors: list[BaseException] = []
    calls = 0

    def flaky(event: WatchEvent) -> WatchCycleResult:
        nonlocal calls
        calls += 1
        if calls == 1:
            raise RuntimeError("boom")
        return _ok_result(event)

    results: list[WatchCycleResult] = []
    _run(
        [{(1, str(CONFIG))}, {(1, str(CONFIG))}],
        flaky,
        on_error=errors.append,
        on_cycle_result=results.append,
    )
    assert calls == 2
    assert len(errors) == 1
    assert str(errors[0]) == "boom"
    assert len(results) == 1


# ---------------------------------------------------------------------------
# Cycle runner
# ---------------------------------------------------------------------------


def test_build_cycle_runner_renders_output(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    cfg = tmp_path / "complexgraph.toml"
    cfg.write_text('version = 1\n[render]\ncells = 3\n[expression]\nsource = "z"\n', encoding="utf-8")
    out = tmp_path / "out.svg"

    from complexgraph.cli import parse_args

    args: argparse.Namespace = parse_args(["watch", "-o", str(out), "--config", str(cfg)])
    runner = build_cycle_runner(args)
    result = runner(WatchEvent(changed_paths=frozenset({cfg}), timestamp=0.0))

    assert result.exit_code == 0
    assert result.changed_paths == frozenset({cfg})
    assert out.read_text(encoding="utf-8").count("<polygon") == 9


def test_build_cycle_runner_reports_bad_expression(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    cfg = tmp_path / "complexgraph.toml"
    cfg.write_text('version = 1\n[expression]\nsource = "foo(z)"\n', encoding="utf-8")

    from complexgraph.cli import EXIT_EXPRESSION, parse_args

    args = parse_args(["watch", "-o", str(tmp_path / "out.svg"), "--config", str(cfg)])
    result = build_cycle_runner(args)(WatchEvent(changed_paths=frozenset({cfg}), timestamp=0.0))
    assert result.exit_code == EXIT_EXPRESSION
    assert not (tmp_path / "out.svg").exists()
