#
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2024-2026 The ADGraph Project Authors
#
from typing_extensions import override
from typing import TYPE_CHECKING, Any
import weakref

from adgraph.itf.graph import Node
from adgraph.itf.data import Tensor

from .shape import Shape

if TYPE_CHECKING:
    from .graph import ADGraph

__all__ = [
    "ADNode",
]


class ADNode(Node):
    """Handle to a node of an ADGraph.

    The handle does not keep the graph alive. Shape, value and gradient
    accessors are shortcuts to the corresponding graph methods.
    """

    __slots__ = ("_graph_ref", "_graph_id", "_index")

    def __init__(self, graph: "ADGraph", index: int) -> None:
        self._graph_ref = weakref.ref(graph)
        self._graph_id = id(graph)
        self._index = index

    @property
    @override
    def graph(self) -> "ADGraph | None":
        return self._graph_ref()

    @property
    @override
    def index(self) -> int:
        return self._index

    def _owner(self) -> "ADGraph":
        graph = self.graph
        assert graph is not None, f"graph of node {self._index} was destroyed"
        return graph

    @property
    def shape(self) -> Shape:
        return self._owner().get_shape(self)

    @property
    def value(self) -> Tensor | None:
        return self._owner().get_value(self)

    @property
    def gradient(self) -> Tensor | None:
        return self._owner().get_gradient(self)

    def __add__(self, other: Any) -> "ADNode":
        from . import functions as F

        if isinstance(other, ADNode):
            return F.add(self, other)
        return F.add_const(self, float(other))

    def __radd__(self, other: Any) -> "ADNode":
        from . import functions as F

        return F.add_const(self, float(other))

    def __sub__(self, other: Any) -> "ADNode":
        from . import functions as F

        if isinstance(other, ADNode):
            return F.subtract(self, other)
        return F.add_const(self, -float(other))

    def __rsub__(self, other: Any) -> "ADNode":
        from . import functions as F

        return F.add_const(F.negate(self), float(other))

    def __mul__(self, other: Any) -> "ADNode":
        from . import functions as F

        if isinstance(other, ADNode):
            return F.multiply(self, other)
        return F.multiply_const(self, float(other))

    def __rmul__(self, other: Any) -> "ADNode":
        from . import functions as F

        return F.multiply_const(self, float(other))

    def __truediv__(self, other: Any) -> "ADNode":
        from . import functions as F

        if isinstance(other, ADNode):
            return F.divide(self, other)
        return F.multiply_const(self, 1.0 / float(other))

    def __neg__(self) -> "ADNode":
        from . import functions as F

        return F.negate(self)

    def __matmul__(self, other: "ADNode") -> "ADNode":
        from . import functions as F

        return F.matmul(self, other)

    @override
    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, ADNode):
            return NotImplemented
        return (
            self._graph_id == other._graph_id
            and self._graph_ref() is other._graph_ref()
            and self._index == other._index
        )

    @override
    def __hash__(self) -> int:
        return hash((self._graph_id, self._index))

    @override
    def __repr__(self) -> str:
        return f"ADNode(index={self._index})"
