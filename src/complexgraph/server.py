"""HTTP front end: render the surface for query-string parameters.

``GET /?width=&height=&cells=&scalefactor=&angle=&expr=`` returns
``image/svg+xml``. Numeric parameters override the configured defaults only
when they parse and are in range; ``angle`` is a fraction of a full turn.
A bad expression yields ``400`` and a plain-text message; no partial image
is ever sent.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import replace
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import parse_qs, urlsplit

from complexgraph.cache import ExpressionCache
from complexgraph.config import MAX_CELLS, MAX_IMAGE_SIZE, RenderParams
from complexgraph.errors import ConfigError, ExpressionError
from complexgraph.render import render_svg

logger = logging.getLogger("complexgraph.server")

_INT_PARAMS = {
    "width": ("width", MAX_IMAGE_SIZE),
    "height": ("height", MAX_IMAGE_SIZE),
    "cells": ("cells", MAX_CELLS),
}
_FLOAT_PARAMS = {"scalefactor": "scale_factor", "angle": "angle"}


def _first(query: Mapping[str, Sequence[str]], key: str) -> str:
    values = query.get(key) or [""]
    return values[0]


def params_from_query(defaults: RenderParams, query: Mapping[str, Sequence[str]]) -> RenderParams:
    """Return a copy of ``defaults`` with valid query overrides applied.

    Unparseable, non-positive or oversized values are ignored, as is an empty
    ``expr``.
    """
    overrides: dict[str, Any] = {}
    for key, (attr, limit) in _INT_PARAMS.items():
        try:
            value = int(_first(query, key))
        except ValueError:
            continue
        if 0 < value <= limit:
            overrides[attr] = value
    for key, attr in _FLOAT_PARAMS.items():
        try:
            fvalue = float(_first(query, key))
        except ValueError:
            continue
        if fvalue > 0 and fvalue != float("inf"):
            overrides[attr] = fvalue
    expression = _first(query, "expr")
    if expression:
        overrides["expression"] = expression
    return replace(defaults, **overrides)


def parse_address(address: str) -> tuple[str, int]:
    """Split ``host:port`` (host may be empty, meaning all interfaces)."""
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ConfigError(f"Invalid address {address!r}: expected host:port.")
    try:
        port_i = int(port)
    except ValueError as e:
        raise ConfigError(f"Invalid port in address {address!r}.") from e
    if not 0 <= port_i <= 65535:
        raise ConfigError(f"Invalid port in address {address!r}.")
    return host.strip("[]"), port_i


class GraphServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(
        self,
        server_address: tuple[str, int],
        *,
        defaults: RenderParams,
        cache: ExpressionCache,
    ) -> None:
        self.defaults = defaults
        self.cache = cache
        super().__init__(server_address, GraphRequestHandler)


class GraphRequestHandler(BaseHTTPRequestHandler):
    server: GraphServer

    def do_GET(self) -> None:  # noqa: N802 - http.server naming
        query = parse_qs(urlsplit(self.path).query)
        params = params_from_query(self.server.defaults, query)
        try:
            compiled = self.server.cache.get(params.expression, params.variable)
        except ExpressionError as e:
            logger.warning("rejected expression %r: %s", params.expression, e)
            self._send(HTTPStatus.BAD_REQUEST, "text/plain; charset=utf-8", f"error, bad expression: {e}\n")
            return

        body = render_svg(compiled, params)
        self._send(HTTPStatus.OK, "image/svg+xml", body)

    def _send(self, status: HTTPStatus, content_type: str, body: str) -> None:
        data = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
        logger.debug("%s - %s", self.address_string(), format % args)


def make_server(address: str, *, defaults: RenderParams, cache_size: int = 128) -> GraphServer:
    host, port = parse_address(address)
    return GraphServer((host, port), defaults=defaults, cache=ExpressionCache(cache_size))


def serve(address: str, *, defaults: RenderParams, cache_size: int = 128) -> None:
    """Serve until interrupted."""
    httpd = make_server(address, defaults=defaults, cache_size=cache_size)
    host, port = httpd.server_address[:2]
    logger.info("listening on %s:%s", host, port)
    try:
        httpd.serve_forever()
    finally:
        httpd.server_close()
