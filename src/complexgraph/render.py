"""Isometric SVG rendering of the surface ``|f(x + iy)|``.

The sample grid has ``cells + 1`` points per side spanning
``[-xyrange/2, xyrange/2]`` in both x and y. Each grid cell becomes one
quadrilateral in the output. Cells touching a pole (non-finite height) are
left out.
"""

from __future__ import annotations

import io
import logging
import math
from collections.abc import Callable
from typing import TextIO

import numpy as np

from complexgraph.compiler import CompiledExpression
from complexgraph.config import RenderParams

logger = logging.getLogger("complexgraph.render")

SVG_STYLE = "stroke: grey; fill:white ; stroke-width: 0.7"


def _project(x, y, h, p: RenderParams):
    """Map a surface point to SVG coordinates; works on scalars and arrays."""
    a = p.angle_radians
    sx = p.width / 2 + (x - y) * math.cos(a) * p.xyscale
    sy = p.height / 2 + (x + y) * math.sin(a) * p.xyscale - h * p.zscale
    return sx, sy


def grid_coordinate(k, p: RenderParams):
    return p.xyrange * (k / p.cells - 0.5)


def corner(f: Callable[[complex], complex], i: int, j: int, p: RenderParams) -> tuple[float, float]:
    """Project grid vertex ``(i, j)``, calling ``f`` once at that point."""
    x = grid_coordinate(i, p)
    y = grid_coordinate(j, p)
    h = abs(f(complex(x, y)))
    sx, sy = _project(x, y, h, p)
    return float(sx), float(sy)


def _write_document(out: TextIO, p: RenderParams, sx: np.ndarray, sy: np.ndarray) -> int:
    out.write(
        f"<svg xmlns='http://www.w3.org/2000/svg' "
        f"style='{SVG_STYLE}' "
        f"width='{p.width}' height='{p.height}'>"
    )
    finite = np.isfinite(sx) & np.isfinite(sy)
    written = 0
    skipped = 0
    for i in range(p.cells):
        for j in range(p.cells):
            quad = ((i + 1, j), (i, j), (i, j + 1), (i + 1, j + 1))
            if not all(finite[c] for c in quad):
                skipped += 1
                continue
            points = " ".join(f"{sx[c]:g},{sy[c]:g}" for c in quad)
            out.write(f"<polygon points='{points}'/>\n")
            written += 1
    out.write("</svg>\n")
    if skipped:
        logger.debug("skipped %d of %d cells with non-finite corners", skipped, p.cells * p.cells)
    return written


def write_svg(out: TextIO, p: RenderParams, f: Callable[[complex], complex]) -> int:
    """Write the surface of ``f`` to ``out``, one call to ``f`` per grid vertex.

    Returns the number of polygons written.
    """
    n = p.cells + 1
    sx = np.empty((n, n))
    sy = np.empty((n, n))
    for i in range(n):
        for j in range(n):
            sx[i, j], sy[i, j] = corner(f, i, j, p)
    return _write_document(out, p, sx, sy)


def surface_heights(compiled: CompiledExpression, p: RenderParams) -> np.ndarray:
    """``|f|`` over the whole grid, evaluated in one vectorized pass.

    Indexed ``[i, j]`` like :func:`corner`.
    """
    k = np.arange(p.cells + 1)
    xs = grid_coordinate(k, p)
    x, y = np.meshgrid(xs, xs, indexing="ij")
    with np.errstate(all="ignore"):
        return np.abs(compiled.evaluate_many(x + 1j * y))


def render_svg(compiled: CompiledExpression, p: RenderParams) -> str:
    """Render ``compiled`` with parameters ``p`` and return the SVG text."""
    k = np.arange(p.cells + 1)
    xs = grid_coordinate(k, p)
    x, y = np.meshgrid(xs, xs, indexing="ij")
    h = surface_heights(compiled, p)
    with np.errstate(all="ignore"):
        sx, sy = _project(x, y, h, p)
    buf = io.StringIO()
    _write_document(buf, p, sx, sy)
    return buf.getvalue()
