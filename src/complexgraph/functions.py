"""Built-in function registry.

Both tables are read-only views built once at import time. Implementations
operate on numpy complex scalars or arrays and follow IEEE semantics (no
exceptions on poles or overflow when called under ``numpy.errstate``).
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from types import MappingProxyType

import numpy as np


@dataclass(frozen=True, slots=True)
class Function:
    name: str
    arity: int
    impl: Callable[..., np.complexfloating]


_BUILTINS = (
    Function("pow", 2, np.power),
    Function("sin", 1, np.sin),
    Function("cos", 1, np.cos),
    Function("sqrt", 1, np.sqrt),
    Function("exp", 1, np.exp),
    Function("log", 1, np.log),
)

FUNCTIONS = MappingProxyType({f.name: f for f in _BUILTINS})

# name -> required argument count
ARITY = MappingProxyType({f.name: f.arity for f in _BUILTINS})
