"""MCP server for complexgraph: exposes check/eval/render as MCP tools.

The server uses FastMCP (optional dependency) for the transport layer.
Core tool functions are plain Python and can be tested without FastMCP installed.
"""

from __future__ import annotations

import io
import json
from contextlib import redirect_stdout
from dataclasses import replace

import complexgraph.cli

# ---------------------------------------------------------------------------
# Core tool functions (no FastMCP dependency)
# ---------------------------------------------------------------------------


def _run_cli_json(argv: list[str]) -> str:
    """Run a CLI command with --json and capture its stdout JSON output.

    If the command produces no stdout (e.g. a usage error that only prints to
    stderr), we synthesise an error envelope so callers always get valid JSON.
    """
    cmd_name = argv[0] if argv else "unknown"
    buf = io.StringIO()
    with redirect_stdout(buf):
        complexgraph.cli.main(argv)
    output = buf.getvalue().strip()
    if not output:
        return json.dumps({"command": cmd_name, "ok": False, "error": "command produced no output"})
    try:
        json.loads(output)
    except (json.JSONDecodeError, ValueError):
        return json.dumps({"command": cmd_name, "ok": False, "error": output[:500]})
    return output


def tool_check(*, expression: str, variable: str = "z") -> str:
    """Validate an expression and return structured results."""
    return _run_cli_json(["check", "--json", "--variable", variable, "--", expression])


def tool_eval(*, expression: str, at: list[str], variable: str = "z") -> str:
    """Evaluate an expression at one or more complex points."""
    argv = ["eval", "--json", "--variable", variable]
    for value in at:
        argv.append(f"--at={value}")
    argv += ["--", expression]
    return _run_cli_json(argv)


def tool_render(
    *,
    expression: str,
    variable: str = "z",
    width: int | None = None,
    height: int | None = None,
    cells: int | None = None,
) -> str:
    """Render the surface of an expression and return the SVG inside JSON."""
    from complexgraph.compiler import compile_expression
    from complexgraph.config import RenderParams, validate_render_params
    from complexgraph.diagnostics import error_to_dict
    from complexgraph.errors import ConfigError, ExpressionError
    from complexgraph.render import render_svg

    overrides = {k: v for k, v in (("width", width), ("height", height), ("cells", cells)) if v is not None}
    try:
        params = validate_render_params(
            replace(RenderParams(), expression=expression, variable=variable, **overrides)
        )
        compiled = compile_expression(params.expression, params.variable)
    except ExpressionError as e:
        return json.dumps({"command": "render", "ok": False, "error": error_to_dict(e)})
    except ConfigError as e:
        return json.dumps({"command": "render", "ok": False, "error": str(e)})

    return json.dumps({"command": "render", "ok": True, "svg": render_svg(compiled, params)})


# ---------------------------------------------------------------------------
# FastMCP server factory
# ---------------------------------------------------------------------------


def create_mcp_server():
    """Create and return a FastMCP server with complexgraph tools registered.

    Raises ImportError if fastmcp is not installed.
    """
    from fastmcp import FastMCP

    mcp = FastMCP("complexgraph", instructions="Complex expression checking, evaluation and plotting")

    @mcp.tool()
    def complexgraph_check(expression: str, variable: str = "z") -> str:
        """Check that an expression in one complex variable is valid.

        Returns JSON with ok=true, or the error kind, message and offset.
        """
        return tool_check(expression=expression, variable=variable)

    @mcp.tool()
    def complexgraph_eval(expression: str, at: list[str], variable: str = "z") -> str:
        """Evaluate an expression at complex points written like 1+2i.

        Returns JSON with one result per point.
        """
        return tool_eval(expression=expression, at=at, variable=variable)

    @mcp.tool()
    def complexgraph_render(
        expression: str,
        variable: str = "z",
        width: int | None = None,
        height: int | None = None,
        cells: int | None = None,
    ) -> str:
        """Render |f(z)| as an isometric SVG surface.

        Returns JSON with the SVG document under "svg".
        """
        return tool_render(
            expression=expression, variable=variable, width=width, height=height, cells=cells
        )

    return mcp


def run_server() -> None:
    """Entry point: create and run the MCP server (stdio transport)."""
    mcp = create_mcp_server()
    mcp.run()
