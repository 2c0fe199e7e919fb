#
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2024-2026 The ADGraph Project Authors
#
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING
from .node import Node
from .operation import Operation
from ..data import Tensor

if TYPE_CHECKING:
    from adgraph.graphs.ad.shape import Shape


class Graph(ABC):
    """An abstract representation of a dynamic computation graph.

    A Graph is a directed acyclic graph (DAG) of operations built
    incrementally: each add_function() call appends a node whose
    arguments are already in the graph, such that the node indices are a
    topological order of the graph.

    Node values are evaluated lazily by forward() and cached, gradients
    are propagated by backward() from any evaluated node.
    """

    @abstractmethod
    def add_function(self, func: Operation, args: Sequence[Node]) -> Node:
        """Appends a new node computing func over args.

        Args:
            func: Operation of the new node, owned by the graph afterwards
            args: List of argument nodes of this graph

        Returns:
            The new node
        """
        ...

    @abstractmethod
    def forward(self, node: Node) -> Tensor:
        """Evaluates the value of a node and of its ancestors.

        Args:
            node: Node to evaluate

        Returns:
            The node value
        """
        ...

    @abstractmethod
    def backward(self, node: Node) -> None:
        """Propagates gradients from a node to all its ancestors.

        Args:
            node: Evaluated node from which to start, seeded with ones
        """
        ...

    @abstractmethod
    def get_shape(self, node: Node) -> "Shape":
        """Returns the shape of a node.

        Returns:
            The node shape
        """
        ...

    @abstractmethod
    def get_value(self, node: Node) -> Tensor | None:
        """Returns the value of a node if already evaluated.

        Returns:
            The node value or None
        """
        ...

    @abstractmethod
    def get_gradient(self, node: Node) -> Tensor | None:
        """Returns the gradient of a node if already computed.

        Returns:
            The node gradient or None
        """
        ...

    @abstractmethod
    def dump(self) -> str:
        """Returns a human readable listing of the graph nodes.

        Returns:
            The listing, one line per node in creation order
        """
        ...
