"""In-process cache of compiled expressions.

Keyed by ``(source, variable)``. Only successful compilations are stored, so
a bad expression is re-parsed (and re-reported) on every request.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict

from complexgraph.compiler import DEFAULT_VARIABLE, CompiledExpression, compile_expression

logger = logging.getLogger("complexgraph.cache")


class ExpressionCache:
    """Thread-safe LRU store of :class:`CompiledExpression` handles."""

    def __init__(self, maxsize: int = 128) -> None:
        if maxsize < 1:
            raise ValueError("maxsize must be >= 1")
        self._maxsize = maxsize
        self._entries: OrderedDict[tuple[str, str], CompiledExpression] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, source: str, variable: str = DEFAULT_VARIABLE) -> CompiledExpression:
        key = (source, variable)
        with self._lock:
            cached = self._entries.get(key)
            if cached is not None:
                self._entries.move_to_end(key)
                self.hits += 1
                logger.debug("cache hit for %r", source)
                return cached
            self.misses += 1

        # Compile outside the lock; errors propagate and nothing is stored.
        compiled = compile_expression(source, variable)

        with self._lock:
            self._entries[key] = compiled
            self._entries.move_to_end(key)
            while len(self._entries) > self._maxsize:
                self._entries.popitem(last=False)
        return compiled

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
