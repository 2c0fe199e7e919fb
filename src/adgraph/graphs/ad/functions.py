#
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2024-2026 The ADGraph Project Authors
#
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from adgraph.itf.data import Device

from .graph import ADGraph
from .node import ADNode
from .shape import Shape
from .operations import (
    Input,
    Constant,
    ParameterInput,
    Copy,
    Add,
    Subtract,
    Multiply,
    Divide,
    AddConst,
    MultiplyConst,
    Negate,
    Exp,
    Tanh,
    Sigmoid,
    ReLU,
    Transpose,
    MatrixMultiply,
    Sum,
    BatchSum,
    Concat,
)

if TYPE_CHECKING:
    from adgraph.training.parameter import Parameter

__all__ = [
    "input",
    "constant",
    "parameter",
    "copy",
    "add",
    "subtract",
    "multiply",
    "divide",
    "add_const",
    "multiply_const",
    "negate",
    "exp",
    "tanh",
    "sigmoid",
    "relu",
    "transpose",
    "matmul",
    "sum",
    "batch_sum",
    "concat",
    "squared_error",
]


def _graph(node: ADNode) -> ADGraph:
    graph = node.graph
    assert graph is not None, f"graph of node {node.index} was destroyed"
    return graph


def input(graph: ADGraph, shape: Shape, values: Any, device: Device) -> ADNode:
    return graph.add_function(Input(shape, values, device), [])


def constant(graph: ADGraph, shape: Shape, k: float, device: Device) -> ADNode:
    return graph.add_function(Constant(shape, k, device), [])


def parameter(graph: ADGraph, param: "Parameter") -> ADNode:
    return graph.add_function(ParameterInput(param), [])


def copy(x: ADNode) -> ADNode:
    return _graph(x).add_function(Copy(), [x])


def add(a: ADNode, b: ADNode) -> ADNode:
    return _graph(a).add_function(Add(), [a, b])


def subtract(a: ADNode, b: ADNode) -> ADNode:
    return _graph(a).add_function(Subtract(), [a, b])


def multiply(a: ADNode, b: ADNode) -> ADNode:
    return _graph(a).add_function(Multiply(), [a, b])


def divide(a: ADNode, b: ADNode) -> ADNode:
    return _graph(a).add_function(Divide(), [a, b])


def add_const(x: ADNode, k: float) -> ADNode:
    return _graph(x).add_function(AddConst(k), [x])


def multiply_const(x: ADNode, k: float) -> ADNode:
    return _graph(x).add_function(MultiplyConst(k), [x])


def negate(x: ADNode) -> ADNode:
    return _graph(x).add_function(Negate(), [x])


def exp(x: ADNode) -> ADNode:
    return _graph(x).add_function(Exp(), [x])


def tanh(x: ADNode) -> ADNode:
    return _graph(x).add_function(Tanh(), [x])


def sigmoid(x: ADNode) -> ADNode:
    return _graph(x).add_function(Sigmoid(), [x])


def relu(x: ADNode) -> ADNode:
    return _graph(x).add_function(ReLU(), [x])


def transpose(x: ADNode) -> ADNode:
    return _graph(x).add_function(Transpose(), [x])


def matmul(a: ADNode, b: ADNode) -> ADNode:
    return _graph(a).add_function(MatrixMultiply(), [a, b])


def sum(x: ADNode, dim: int) -> ADNode:
    return _graph(x).add_function(Sum(dim), [x])


def batch_sum(x: ADNode) -> ADNode:
    return _graph(x).add_function(BatchSum(), [x])


def concat(xs: Sequence[ADNode], dim: int) -> ADNode:
    assert len(xs) > 0, "concat of no nodes"
    return _graph(xs[0]).add_function(Concat(dim), xs)


def squared_error(a: ADNode, b: ADNode) -> ADNode:
    """Elementwise (a - b)^2."""
    diff = subtract(a, b)
    return multiply(diff, diff)
