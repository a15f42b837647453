"""Configuration loading for complexgraph.

This module only reads `complexgraph.toml` and performs light validation. All
config objects are frozen; per-request overrides produce new instances via
:func:`dataclasses.replace` so concurrent requests never see each other's
settings.
"""

from __future__ import annotations

import math
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from complexgraph.errors import ConfigError

CONFIG_FILENAME = "complexgraph.toml"

# Rendering holds several (cells + 1) ** 2 arrays at once.
MAX_CELLS = 500
MAX_IMAGE_SIZE = 10_000


@dataclass(frozen=True)
class RenderParams:
    width: int = 600
    height: int = 320
    cells: int = 100
    xyrange: float = 30.0
    scale_factor: float = 0.4
    angle: float = 1.0 / 12.0  # fraction of a full turn
    expression: str = "1/(1+(z*z))"
    variable: str = "z"

    @property
    def xyscale(self) -> float:
        """Pixels per x or y unit."""
        return self.width / 2.0 / self.xyrange

    @property
    def zscale(self) -> float:
        """Pixels per unit of |f(z)|."""
        return self.height * self.scale_factor

    @property
    def angle_radians(self) -> float:
        return 2 * math.pi * self.angle


@dataclass(frozen=True)
class ServerConfig:
    address: str = "localhost:8000"
    cache_size: int = 128


@dataclass(frozen=True)
class ComplexGraphConfig:
    version: int = 1
    render: RenderParams = field(default_factory=RenderParams)
    server: ServerConfig = field(default_factory=ServerConfig)


def find_config_file(start: Path) -> Path | None:
    """Walk upward from `start` looking for `complexgraph.toml`."""

    cur = start
    try:
        if cur.is_file():
            cur = cur.parent
    except OSError:
        cur = cur.parent

    cur = cur.resolve()
    while True:
        candidate = cur / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        if cur.parent == cur:
            return None
        cur = cur.parent


def _as_table(value: Any, *, name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"Expected [{name}] to be a table.")
    return value


def _as_int(value: Any, *, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ConfigError(f"Expected {name} to be an integer.")
    return value


def _as_float(value: Any, *, name: str) -> float:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise ConfigError(f"Expected {name} to be a number.")
    return float(value)


def _as_str(value: Any, *, name: str) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"Expected {name} to be a string.")
    return value


def validate_render_params(params: RenderParams) -> RenderParams:
    """Reject out-of-range sizes and non-finite numbers."""
    for name, limit in (("width", MAX_IMAGE_SIZE), ("height", MAX_IMAGE_SIZE), ("cells", MAX_CELLS)):
        size = getattr(params, name)
        if size < 1:
            raise ConfigError(f"Invalid render parameters: {name} must be >= 1.")
        if size > limit:
            raise ConfigError(f"Invalid render parameters: {name} must be <= {limit}.")
    for name in ("xyrange", "scale_factor"):
        v = getattr(params, name)
        if not math.isfinite(v) or v <= 0:
            raise ConfigError(f"Invalid render parameters: {name} must be a positive number.")
    if not math.isfinite(params.angle):
        raise ConfigError("Invalid render parameters: angle must be finite.")
    if not params.variable.isidentifier():
        raise ConfigError("Invalid render parameters: variable must be an identifier.")
    return params


def load_config(*, config_path: Path | None = None, start: Path | None = None) -> ComplexGraphConfig:
    """Load and validate `complexgraph.toml`.

    If `config_path` is not given, the file is discovered by walking upward
    from `start` (default: the current working directory). When no file is
    found the built-in defaults are returned.
    """

    if config_path is None:
        config_path = find_config_file(start or Path.cwd())
        if config_path is None:
            return ComplexGraphConfig()

    try:
        raw = config_path.read_bytes()
    except FileNotFoundError as e:
        raise ConfigError(f"Missing {CONFIG_FILENAME} at: {config_path}") from e
    except OSError as e:
        raise ConfigError(f"Failed reading config file: {config_path}") from e

    try:
        data = tomllib.loads(raw.decode("utf-8"))
    except UnicodeDecodeError as e:
        raise ConfigError(f"Config is not valid UTF-8: {config_path}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e

    version = data.get("version", None)
    if version is None:
        raise ConfigError(f"Missing required `version = 1` in {CONFIG_FILENAME}.")
    version_i = _as_int(version, name="version")
    if version_i != 1:
        raise ConfigError(f"Unsupported config version: {version_i} (expected 1).")

    render_tbl = _as_table(data.get("render"), name="render")
    expr_tbl = _as_table(data.get("expression"), name="expression")
    server_tbl = _as_table(data.get("server"), name="server")

    overrides: dict[str, Any] = {}
    for key in ("width", "height", "cells"):
        if key in render_tbl:
            overrides[key] = _as_int(render_tbl[key], name=f"render.{key}")
    for key in ("xyrange", "scale_factor", "angle"):
        if key in render_tbl:
            overrides[key] = _as_float(render_tbl[key], name=f"render.{key}")

    if "source" in expr_tbl:
        overrides["expression"] = _as_str(expr_tbl["source"], name="expression.source")
    if "variable" in expr_tbl:
        overrides["variable"] = _as_str(expr_tbl["variable"], name="expression.variable")

    if "address" in server_tbl:
        address = _as_str(server_tbl["address"], name="server.address")
    else:
        address = ServerConfig.address

    if "cache_size" in server_tbl:
        cache_size = _as_int(server_tbl["cache_size"], name="server.cache_size")
    else:
        cache_size = ServerConfig.cache_size

    # Validation
    render = validate_render_params(replace(RenderParams(), **overrides))

    if cache_size < 1:
        raise ConfigError("Invalid config: server.cache_size must be >= 1.")

    return ComplexGraphConfig(
        version=version_i,
        render=render,
        server=ServerConfig(address=address, cache_size=cache_size),
    )
