#
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2024-2026 The ADGraph Project Authors
#
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .graph import Graph


class Node(ABC):
    """An abstract representation of a handle to a graph node.

    A Node identifies one output of the computation recorded in a Graph.
    It carries no data: the shape, value and gradient are kept by the
    Graph which created the node and are accessed through it.
    A Node is only meaningful for the Graph that created it.
    """

    @property
    @abstractmethod
    def graph(self) -> "Graph | None":
        """Returns the graph which created this node.

        Returns:
            The owning Graph, or None if it does not exist anymore
        """
        ...

    @property
    @abstractmethod
    def index(self) -> int:
        """Returns the position of this node in its graph.

        The index is also the node's rank in the topological order.

        Returns:
            The node index
        """
        ...
