#
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2024-2026 The ADGraph Project Authors
#
from typing_extensions import override
from collections.abc import Sequence
from dataclasses import dataclass, field
import logging

from adgraph.itf.graph import Graph, Node, Operation
from adgraph.itf.data import Tensor

from .node import ADNode
from .shape import Shape
from .exceptions import (
    GraphMismatchError,
    UncomputedNodeError,
    GradientAlreadyPresentError,
)

__all__ = [
    "ADGraph",
]


logger = logging.getLogger(__name__)


@dataclass
class NodeRecord:
    shape: Shape
    func: Operation
    args: list[int]
    sinks: list[int] = field(default_factory=list)
    value: Tensor | None = None
    grad: Tensor | None = None


class ADGraph(Graph):
    """Dynamic computation graph with memoized forward and reverse-mode AD.

    Nodes are appended by add_function() and never removed nor renumbered.
    As arguments of a node must already exist when it is added, the node
    index order is a topological order of the graph: forward() never
    cycles and backward() only needs a descending walk over the indices.

    Values and gradients are computed at most once per node: forward()
    caches the values of all the nodes it evaluates, and backward() seeds
    the gradient of a node once, accumulating into it afterwards.
    """

    def __init__(self, name: str | None = None) -> None:
        self._name = name
        self._nodes: list[NodeRecord] = []

    @property
    def name(self) -> str:
        return "" if self._name is None else self._name

    @property
    def num_nodes(self) -> int:
        return len(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def nodes(self) -> list[ADNode]:
        return [ADNode(self, idx) for idx in range(len(self._nodes))]

    def _check_node(self, node: Node) -> int:
        if not isinstance(node, ADNode) or node.graph is not self:
            owner = node.graph if isinstance(node, Node) else None
            raise GraphMismatchError(
                f"graph mismatched, node graph: {id(owner):#x} != this: {id(self):#x}"
            )
        assert 0 <= node.index < len(self._nodes), (
            f"invalid node index, this is a bug: "
            f"node.index: {node.index} >= num nodes: {len(self._nodes)}"
        )
        return node.index

    @override
    def add_function(self, func: Operation, args: Sequence[Node]) -> ADNode:
        args_ids = [self._check_node(arg) for arg in args]
        args_shapes = [self._nodes[arg_id].shape for arg_id in args_ids]

        # May raise on invalid arguments, the graph is unchanged in this case
        ret_shape = func.forward_shape(args_shapes)

        ret_id = len(self._nodes)
        for arg_id in args_ids:
            self._nodes[arg_id].sinks.append(ret_id)
        self._nodes.append(NodeRecord(shape=ret_shape, func=func, args=args_ids))
        logger.debug(
            "added node %d: %s%s -> %s", ret_id, func.name, args_ids, ret_shape
        )
        return ADNode(self, ret_id)

    @override
    def forward(self, node: Node) -> Tensor:
        node_id = self._check_node(node)
        # Post-order walk, arguments in order, equivalent to a memoized
        # recursive evaluation without the recursion depth limit.
        stack = [(node_id, False)]
        while stack:
            cur_id, ready = stack.pop()
            cur = self._nodes[cur_id]
            if cur.value is not None:
                continue
            if not ready:
                stack.append((cur_id, True))
                for arg_id in reversed(cur.args):
                    if self._nodes[arg_id].value is None:
                        stack.append((arg_id, False))
                continue
            args_values = [self._nodes[arg_id].value for arg_id in cur.args]
            value = cur.func.forward(args_values)  # type: ignore[arg-type]
            assert value.shape == cur.shape, (
                f"output shape mismatch for node {cur_id} ({cur.func.name}): "
                f"{value.shape} != {cur.shape}"
            )
            cur.value = value
            logger.debug("computed node %d: %s", cur_id, cur.func.name)
        value = self._nodes[node_id].value
        assert value is not None
        return value

    @override
    def backward(self, node: Node) -> None:
        node_id = self._check_node(node)
        last = self._nodes[node_id]
        if last.value is None:
            raise UncomputedNodeError(
                f"node {node_id} is not calculated in the forward path"
            )
        if last.grad is not None:
            raise GradientAlreadyPresentError(
                f"node {node_id} already has the gradient vector"
            )

        logger.debug("backward from node %d", node_id)
        last.grad = last.value.device.constant(last.shape, 1)
        reached = [False] * (node_id + 1)
        reached[node_id] = True

        # The node index represents the topological order
        for cur_id in range(node_id, -1, -1):
            cur = self._nodes[cur_id]
            if not reached[cur_id] or cur.value is None:
                continue
            assert cur.grad is not None
            args_values = []
            args_grads = []
            for arg_id in cur.args:
                arg = self._nodes[arg_id]
                assert arg.value is not None
                if arg.grad is None:
                    arg.grad = arg.value.device.constant(arg.shape, 0)
                reached[arg_id] = True
                args_values.append(arg.value)
                args_grads.append(arg.grad)
            cur.func.backward(cur.value, cur.grad, args_values, args_grads)
        logger.debug("backward from node %d done", node_id)

    @override
    def get_shape(self, node: Node) -> Shape:
        return self._nodes[self._check_node(node)].shape

    @override
    def get_value(self, node: Node) -> Tensor | None:
        return self._nodes[self._check_node(node)].value

    @override
    def get_gradient(self, node: Node) -> Tensor | None:
        return self._nodes[self._check_node(node)].grad

    def get_function(self, node: Node) -> Operation:
        return self._nodes[self._check_node(node)].func

    def get_args(self, node: Node) -> list[int]:
        return list(self._nodes[self._check_node(node)].args)

    def get_sinks(self, node: Node) -> list[int]:
        return list(self._nodes[self._check_node(node)].sinks)

    @override
    def dump(self) -> str:
        lines = ["Computation graph:"]
        for idx, n in enumerate(self._nodes):
            args = ",".join(str(arg) for arg in n.args)
            sinks = ",".join(str(sink) for sink in n.sinks)
            lines.append(
                f"  [{idx}]: shape={n.shape}, func={n.func.name}, "
                f"args=[{args}], sinks=[{sinks}]"
            )
        return "\n".join(lines) + "\n"

    @override
    def __str__(self) -> str:
        return self.dump()
