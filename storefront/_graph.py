"""
Graph — small sugar over nodnod for assembling values from inputs.

    from storefront import _graph as G

    @G.node
    class Total:
        def __init__(self, value: float) -> None:
            self.value = value

        @classmethod
        async def __compose__(cls, lines: Lines) -> "Total":
            return cls(sum(line.subtotal for line in lines.data))

    pipeline = G.graph(Total)       # compile once
    total = await pipeline(cart)    # inputs injected by runtime type
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, cast
from collections.abc import Callable, Coroutine

from nodnod import EventLoopAgent, Node, Scope, Value
from nodnod import scalar_node as node


# ═══════════════════════════════════════════════════════════════════════════════
# Compiled — pre-built agent, run many times
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True, frozen=True)
class Compiled[T]:
    """
    Pre-compiled graph for one target node.

    Note: inputs are keyed by their runtime type; two inputs of the
    same type would shadow each other.
    """

    _target: type[T]
    _agent: EventLoopAgent

    async def __call__(self, *inputs: object) -> T:
        scope = Scope(detail="storefront")
        async with scope:
            for value in inputs:
                scope.push(Value(cast(type[Any], type(value)), value))

            run_method = cast(
                Callable[[Scope, dict[type[Any], Scope]], Coroutine[Any, Any, None]],
                getattr(self._agent, "run"),
            )
            await run_method(scope, {})

            result = scope.get(self._target)
            if result is None:
                raise KeyError(f"{self._target.__name__} not produced")
            return cast(T, result.value)


def graph[T](target: type[T]) -> Compiled[T]:
    """Compile the graph reachable from `target`."""
    all_nodes: set[type[Node[Any, Any]]] = {cast(type[Node[Any, Any]], target)}
    return Compiled(_target=target, _agent=EventLoopAgent.build(all_nodes))


__all__ = ("node", "Compiled", "graph")
