from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any

from complexgraph import __version__
from complexgraph.errors import ConfigError, ExpressionError

EXIT_OK = 0
EXIT_CONFIG = 2
EXIT_EXPRESSION = 3


def _add_config_flag(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to complexgraph.toml (defaults to searching upward from cwd).",
    )


def _add_render_flags(p: argparse.ArgumentParser) -> None:
    _add_config_flag(p)
    p.add_argument("--expr", type=str, default=None, help="Expression to be evaluated.")
    p.add_argument("--variable", type=str, default=None, help="Name of the free variable.")
    p.add_argument("-w", "--width", type=int, default=None, help="Image width in pixels.")
    p.add_argument("-H", "--height", type=int, default=None, help="Image height in pixels.")
    p.add_argument("-r", "--range", dest="xyrange", type=float, default=None, help="Range for x, y.")
    p.add_argument("-c", "--cells", type=int, default=None, help="Number of cells per side.")
    p.add_argument("-s", "--scale-factor", type=float, default=None, help="Height scale factor.")
    p.add_argument(
        "--angle", type=float, default=None, help="Fraction of a circle to rotate by."
    )


def _add_json_flag(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--json",
        dest="json_output",
        action="store_true",
        help="Emit machine-readable JSON on stdout.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="complexgraph",
        description="Plot |f(z)| of a complex expression as an isometric SVG surface.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")

    subparsers = parser.add_subparsers(dest="command", required=True)

    render_p = subparsers.add_parser("render", help="Write the surface as SVG.")
    _add_render_flags(render_p)
    render_p.add_argument("-o", "--output", type=str, default=None, help="Output file (default stdout).")

    serve_p = subparsers.add_parser("serve", help="Serve rendered surfaces over HTTP.")
    _add_render_flags(serve_p)
    serve_p.add_argument("-a", "--address", type=str, default=None, help="Address to listen on.")

    check_p = subparsers.add_parser("check", help="Validate an expression.")
    check_p.add_argument("expression", type=str)
    check_p.add_argument("--variable", type=str, default="z", help="Name of the free variable.")
    _add_json_flag(check_p)

    eval_p = subparsers.add_parser("eval", help="Evaluate an expression at given points.")
    eval_p.add_argument("expression", type=str)
    eval_p.add_argument("--variable", type=str, default="z", help="Name of the free variable.")
    eval_p.add_argument(
        "--at",
        action="append",
        default=[],
        help="Point to evaluate at, e.g. 1+2i (repeatable; use --at=-1i for negatives).",
    )
    _add_json_flag(eval_p)

    watch_p = subparsers.add_parser("watch", help="Re-render whenever the config file changes.")
    _add_render_flags(watch_p)
    watch_p.add_argument("-o", "--output", type=str, required=True, help="Output SVG file.")

    mcp_p = subparsers.add_parser("mcp", help="Model Context Protocol server.")
    mcp_sub = mcp_p.add_subparsers(dest="mcp_command", required=True)
    mcp_sub.add_parser("serve", help="Run the MCP server on stdio.")

    return parser


def parse_args(argv: list[str]) -> argparse.Namespace:
    return _build_parser().parse_args(argv)


def _eprint(msg: str) -> None:
    print(msg, file=sys.stderr)


def _print_json(payload: dict[str, Any]) -> None:
    print(json.dumps(payload))


def _print_error(e: BaseException, source: str | None = None) -> None:
    from complexgraph.diagnostics import format_error_with_hint

    _eprint(format_error_with_hint(e, source))


def _load_config(args: argparse.Namespace):
    from complexgraph.config import load_config

    config_path = Path(args.config).resolve() if getattr(args, "config", None) else None
    return load_config(config_path=config_path)


def _render_params(args: argparse.Namespace, base):
    """Apply command-line overrides on top of the configured render parameters."""
    from complexgraph.config import validate_render_params

    overrides: dict[str, Any] = {}
    for attr in ("width", "height", "cells", "xyrange", "scale_factor", "angle", "variable"):
        value = getattr(args, attr, None)
        if value is not None:
            overrides[attr] = value
    if args.expr is not None:
        overrides["expression"] = args.expr
    return validate_render_params(replace(base, **overrides))


def format_complex(value: complex) -> str:
    return f"{value.real:g}{value.imag:+g}i"


def cmd_render(args: argparse.Namespace) -> int:
    from complexgraph.compiler import compile_expression
    from complexgraph.render import render_svg

    params = None
    try:
        cfg = _load_config(args)
        params = _render_params(args, cfg.render)
        compiled = compile_expression(params.expression, params.variable)
    except ConfigError as e:
        _print_error(e)
        return EXIT_CONFIG
    except ExpressionError as e:
        _print_error(e, params.expression if params is not None else None)
        return EXIT_EXPRESSION

    svg = render_svg(compiled, params)
    if args.output:
        try:
            Path(args.output).write_text(svg, encoding="utf-8")
        except OSError as e:
            _print_error(e)
            return EXIT_CONFIG
    else:
        sys.stdout.write(svg)
    return EXIT_OK


def cmd_serve(args: argparse.Namespace) -> int:
    from complexgraph.compiler import compile_expression
    from complexgraph.server import serve

    params = None
    try:
        cfg = _load_config(args)
        params = _render_params(args, cfg.render)
        # Refuse to start with a default expression that every request would reject.
        compile_expression(params.expression, params.variable)
        address = args.address or cfg.server.address
        serve(address, defaults=params, cache_size=cfg.server.cache_size)
    except ConfigError as e:
        _print_error(e)
        return EXIT_CONFIG
    except ExpressionError as e:
        _print_error(e, params.expression if params is not None else None)
        return EXIT_EXPRESSION
    except OSError as e:
        _print_error(e)
        return EXIT_CONFIG
    except KeyboardInterrupt:
        pass
    return EXIT_OK


def cmd_check(args: argparse.Namespace) -> int:
    from complexgraph.compiler import compile_expression
    from complexgraph.diagnostics import error_to_dict
    from complexgraph.nodes import format_expr

    try:
        compiled = compile_expression(args.expression, args.variable)
    except ExpressionError as e:
        if args.json_output:
            _print_json({"command": "check", "ok": False, "error": error_to_dict(e)})
        else:
            _print_error(e, args.expression)
        return EXIT_EXPRESSION

    if args.json_output:
        _print_json(
            {
                "command": "check",
                "ok": True,
                "variables": sorted(compiled.variables),
                "normalized": format_expr(compiled.expr),
            }
        )
    else:
        print(f"ok: {format_expr(compiled.expr)}")
    return EXIT_OK


def cmd_eval(args: argparse.Namespace) -> int:
    from complexgraph.compiler import compile_expression, parse_complex
    from complexgraph.diagnostics import error_to_dict

    try:
        compiled = compile_expression(args.expression, args.variable)
    except ExpressionError as e:
        if args.json_output:
            _print_json({"command": "eval", "ok": False, "error": error_to_dict(e)})
        else:
            _print_error(e, args.expression)
        return EXIT_EXPRESSION

    points = args.at or ["0"]
    results: list[dict[str, Any]] = []
    for text in points:
        try:
            point = parse_complex(text)
        except ExpressionError as e:
            if args.json_output:
                _print_json({"command": "eval", "ok": False, "at": text, "error": error_to_dict(e)})
            else:
                _print_error(e, text)
            return EXIT_EXPRESSION
        value = complex(compiled(point))
        results.append(
            {"at": text, "value": format_complex(value), "real": value.real, "imag": value.imag}
        )

    if args.json_output:
        _print_json({"command": "eval", "ok": True, "results": results})
    else:
        for r in results:
            print(f"{args.variable} = {r['at']}: {r['value']}")
    return EXIT_OK


def cmd_watch(args: argparse.Namespace) -> int:
    from complexgraph.config import find_config_file
    from complexgraph.watcher import (
        build_cycle_runner,
        check_watchfiles_available,
        make_watchfiles_iter,
        run_watch_loop,
    )

    try:
        check_watchfiles_available()
    except ImportError as e:
        _print_error(e)
        return EXIT_CONFIG

    config_path = Path(args.config).resolve() if args.config else find_config_file(Path.cwd())
    if config_path is None:
        _print_error(ConfigError("watch mode needs a complexgraph.toml to watch."))
        return EXIT_CONFIG
    args.config = str(config_path)

    # Initial render so the output exists before the first change.
    rc = cmd_render(args)
    if rc == EXIT_CONFIG:
        return rc

    def on_cycle_result(result) -> None:
        if result.exit_code != EXIT_OK:
            _eprint(f"[watch] render failed (exit {result.exit_code})")

    try:
        asyncio.run(
            run_watch_loop(
                changes_iter=make_watchfiles_iter([config_path.parent]),
                run_cycle=build_cycle_runner(args),
                on_event=_eprint,
                on_cycle_result=on_cycle_result,
                on_error=_print_error,
                watched=frozenset({config_path}),
            )
        )
    except KeyboardInterrupt:
        pass
    return EXIT_OK


def cmd_mcp(args: argparse.Namespace) -> int:
    from complexgraph.mcp_server import run_server

    try:
        run_server()
    except ImportError as e:
        _print_error(
            ImportError(f"{e}. fastmcp is required for the MCP server: pip install complexgraph[mcp]")
        )
        return EXIT_CONFIG
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    try:
        args = parse_args(list(sys.argv[1:] if argv is None else argv))
    except SystemExit as e:
        # argparse uses SystemExit for --help/--version and parse errors.
        code = e.code
        return int(code) if isinstance(code, int) else EXIT_CONFIG

    logging.basicConfig(
        format="complexgraph: %(message)s",
        level=logging.DEBUG if args.verbose else logging.WARNING,
    )

    if args.command == "render":
        return cmd_render(args)
    if args.command == "serve":
        return cmd_serve(args)
    if args.command == "check":
        return cmd_check(args)
    if args.command == "eval":
        return cmd_eval(args)
    if args.command == "watch":
        return cmd_watch(args)
    if args.command == "mcp":
        return cmd_mcp(args)

    return EXIT_CONFIG


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
