#
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2024-2026 The ADGraph Project Authors
#
import pytest
import numpy as np

from adgraph.graphs.ad import ADGraph, Shape, IncompatibleOperationError
from adgraph.graphs.ad import functions as F
from adgraph.graphs.ad.operations import Add, Concat, Input

from graph_utils import check_gradients, host_device


@pytest.mark.parametrize(
    "build, shapes",
    [
        (lambda xs: F.add(*xs), [Shape([2, 3]), Shape([2, 3])]),
        (lambda xs: F.add(*xs), [Shape([2, 3]), Shape([2, 3], 3)]),
        (lambda xs: F.subtract(*xs), [Shape([3], 2), Shape([3])]),
        (lambda xs: F.multiply(*xs), [Shape([2, 2], 2), Shape([2, 2], 2)]),
        (lambda xs: F.multiply(*xs), [Shape([4]), Shape([4], 3)]),
        (lambda xs: F.divide(*xs), [Shape([3], 2), Shape([3])]),
        (lambda xs: F.add_const(xs[0], 3.0), [Shape([3, 2], 2)]),
        (lambda xs: F.multiply_const(xs[0], -2.5), [Shape([3, 2], 2)]),
        (lambda xs: F.negate(xs[0]), [Shape([3])]),
        (lambda xs: F.copy(xs[0]), [Shape([3], 2)]),
        (lambda xs: F.exp(xs[0]), [Shape([3, 2], 2)]),
        (lambda xs: F.tanh(xs[0]), [Shape([3, 2], 2)]),
        (lambda xs: F.sigmoid(xs[0]), [Shape([3, 2], 2)]),
        (lambda xs: F.relu(xs[0]), [Shape([3, 2], 2)]),
        (lambda xs: F.transpose(xs[0]), [Shape([2, 3], 2)]),
        (lambda xs: F.transpose(xs[0]), [Shape([4])]),
        (lambda xs: F.matmul(*xs), [Shape([2, 3]), Shape([3, 4])]),
        (lambda xs: F.matmul(*xs), [Shape([2, 3]), Shape([3, 4], 2)]),
        (lambda xs: F.matmul(*xs), [Shape([2, 3], 2), Shape([3], 2)]),
        (lambda xs: F.sum(xs[0], 0), [Shape([2, 3], 2)]),
        (lambda xs: F.sum(xs[0], 1), [Shape([2, 3], 2)]),
        (lambda xs: F.sum(xs[0], 1), [Shape([2, 3, 4])]),
        (lambda xs: F.sum(xs[0], 2), [Shape([2, 3])]),
        (lambda xs: F.batch_sum(xs[0]), [Shape([3], 4)]),
        (lambda xs: F.concat(xs, 0), [Shape([2, 3]), Shape([1, 3], 2)]),
        (lambda xs: F.concat(xs, 1), [Shape([2]), Shape([2, 3]), Shape([2, 2])]),
        (lambda xs: F.concat(xs, 2), [Shape([2], 2), Shape([2], 2)]),
        (lambda xs: F.squared_error(*xs), [Shape([3], 2), Shape([3], 2)]),
        (
            lambda xs: F.tanh(F.add(F.matmul(xs[0], xs[1]), xs[2])),
            [Shape([3, 2]), Shape([2], 4), Shape([3], 4)],
        ),
        (
            lambda xs: F.multiply(xs[0], F.exp(F.multiply(xs[0], xs[0]))),
            [Shape([2], 2)],
        ),
    ],
)
def test_gradients(build, shapes):
    check_gradients(build, shapes)


@pytest.fixture
def device():
    return host_device()


def test_matmul_values(device):
    graph = ADGraph()
    a_data = np.arange(6, dtype=float).reshape(2, 3)
    b_data = np.arange(24, dtype=float).reshape(2, 3, 4)
    a = F.input(graph, Shape([2, 3]), a_data, device)
    b = F.input(graph, Shape([3, 4], 2), b_data, device)
    c = F.matmul(a, b)
    value = graph.forward(c)
    assert value.shape == Shape([2, 4], 2)
    np.testing.assert_allclose(value.numpy(), np.matmul(a_data, b_data))


def test_matmul_matrix_vector(device):
    graph = ADGraph()
    a = F.input(graph, Shape([2, 3]), [1, 2, 3, 4, 5, 6], device)
    x = F.input(graph, Shape([3]), [1, 0, -1], device)
    y = F.matmul(a, x)
    assert y.shape == Shape([2])
    assert graph.forward(y).to_list() == [-2.0, -2.0]


def test_transpose_values(device):
    graph = ADGraph()
    x = F.input(graph, Shape([3]), [1, 2, 3], device)
    y = F.transpose(x)
    assert y.shape == Shape([1, 3])
    assert graph.forward(y).to_list() == [1.0, 2.0, 3.0]


def test_sum_values(device):
    graph = ADGraph()
    x = F.input(graph, Shape([2, 3]), [1, 2, 3, 4, 5, 6], device)
    rows = F.sum(x, 1)
    cols = F.sum(x, 0)
    assert rows.shape == Shape([2])
    assert cols.shape == Shape([1, 3])
    assert graph.forward(rows).to_list() == [6.0, 15.0]
    assert graph.forward(cols).to_list() == [5.0, 7.0, 9.0]


def test_batch_sum_values(device):
    graph = ADGraph()
    x = F.input(graph, Shape([2], 3), [1, 2, 3, 4, 5, 6], device)
    y = F.batch_sum(x)
    assert y.shape == Shape([2])
    assert graph.forward(y).to_list() == [9.0, 12.0]


def test_concat_values(device):
    graph = ADGraph()
    a = F.input(graph, Shape([2]), [1, 2], device)
    b = F.input(graph, Shape([3]), [3, 4, 5], device)
    c = F.concat([a, b], 0)
    assert c.shape == Shape([5])
    assert graph.forward(c).to_list() == [1.0, 2.0, 3.0, 4.0, 5.0]
    d = F.concat([a, a], 1)
    assert d.shape == Shape([2, 2])
    assert graph.forward(d).to_list() == [1.0, 1.0, 2.0, 2.0]


def test_constant_and_broadcast(device):
    graph = ADGraph()
    x = F.input(graph, Shape([2], 2), [1, 2, 3, 4], device)
    k = F.constant(graph, Shape([2]), 10.0, device)
    y = F.add(x, k)
    assert y.shape == Shape([2], 2)
    assert graph.forward(y).to_list() == [11.0, 12.0, 13.0, 14.0]
    graph.backward(y)
    assert graph.get_gradient(k).to_list() == [2.0, 2.0]


@pytest.mark.parametrize(
    "build, shapes",
    [
        (lambda xs: F.add(*xs), [Shape([2]), Shape([3])]),
        (lambda xs: F.multiply(*xs), [Shape([2], 2), Shape([2], 3)]),
        (lambda xs: F.matmul(*xs), [Shape([2, 3]), Shape([4, 2])]),
        (lambda xs: F.matmul(*xs), [Shape([2, 3, 2]), Shape([2])]),
        (lambda xs: F.transpose(xs[0]), [Shape([2, 3, 4])]),
        (lambda xs: F.concat(xs, 0), [Shape([2, 3]), Shape([2, 4])]),
        (lambda xs: F.concat(xs, 0), [Shape([2], 2), Shape([2], 3)]),
    ],
)
def test_incompatible_shapes(device, build, shapes):
    graph = ADGraph()
    xs = [
        F.input(graph, shape, np.zeros(shape.num_total_elements), device)
        for shape in shapes
    ]
    with pytest.raises(IncompatibleOperationError):
        build(xs)
    assert len(graph) == len(shapes)


def test_wrong_number_of_arguments(device):
    graph = ADGraph()
    a = F.input(graph, Shape([2]), [1, 2], device)
    with pytest.raises(IncompatibleOperationError):
        graph.add_function(Add(), [a, a, a])
    with pytest.raises(IncompatibleOperationError):
        graph.add_function(Concat(0), [])
    with pytest.raises(IncompatibleOperationError):
        graph.add_function(Input(Shape([2]), [1, 2], device), [a])


def test_input_data_size_is_checked(device):
    with pytest.raises(IncompatibleOperationError):
        Input(Shape([2, 2]), [1, 2, 3], device)


def test_input_copies_its_data(device):
    graph = ADGraph()
    data = np.array([1.0, 2.0])
    a = F.input(graph, Shape([2]), data, device)
    data[0] = 100.0
    assert graph.forward(a).to_list() == [1.0, 2.0]


@pytest.mark.parametrize(
    "build",
    [
        lambda x: F.sum(x, -1),
        lambda x: F.concat([x, x], -1),
    ],
)
def test_negative_axis_is_rejected(device, build):
    graph = ADGraph()
    x = F.input(graph, Shape([2, 3]), np.zeros(6), device)
    with pytest.raises(IncompatibleOperationError):
        build(x)
    assert len(graph) == 1
    assert graph.get_sinks(x) == []
