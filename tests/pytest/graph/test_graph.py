#
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2024-2026 The ADGraph Project Authors
#
import gc
import logging
import pytest
import numpy as np

from adgraph.graphs.ad import (
    ADGraph,
    ADNode,
    Shape,
    GraphMismatchError,
    UncomputedNodeError,
    GradientAlreadyPresentError,
    IncompatibleOperationError,
)
from adgraph.graphs.ad import functions as F
from adgraph.graphs.ad.operations import Add, Multiply, Input, Tanh, Exp

from graph_utils import Counting, host_device


@pytest.fixture
def device():
    return host_device()


def test_indices_are_topological(device):
    graph = ADGraph()
    a = F.input(graph, Shape([2]), [1, 2], device)
    b = F.input(graph, Shape([2]), [3, 4], device)
    c = F.add(a, b)
    d = F.multiply(c, a)
    e = F.tanh(d)
    nodes = [a, b, c, d, e]
    assert [n.index for n in nodes] == list(range(5))
    assert len(graph) == 5
    assert graph.num_nodes == 5
    for node in nodes:
        assert all(arg < node.index for arg in graph.get_args(node))
    assert graph.get_args(d) == [2, 0]
    assert graph.get_sinks(a) == [2, 3]
    assert graph.get_sinks(c) == [3]
    assert graph.get_sinks(e) == []
    assert graph.nodes == nodes


def test_add_function_infers_shape(device):
    graph = ADGraph()
    a = F.input(graph, Shape([2, 3]), np.zeros(6), device)
    b = F.input(graph, Shape([3, 4], 5), np.zeros(60), device)
    c = F.matmul(a, b)
    assert graph.get_shape(c) == Shape([2, 4], 5)
    assert c.shape == Shape([2, 4], 5)
    assert graph.get_function(c).name == "MatrixMultiply"


def test_add_function_failure_keeps_graph_unchanged(device):
    graph = ADGraph()
    a = F.input(graph, Shape([2]), [1, 2], device)
    b = F.input(graph, Shape([3]), [1, 2, 3], device)
    with pytest.raises(IncompatibleOperationError):
        graph.add_function(Add(), [a, b])
    assert len(graph) == 2
    assert graph.get_sinks(a) == []
    assert graph.get_sinks(b) == []
    c = F.add(a, a)
    assert c.index == 2


def test_values_are_absent_before_forward(device):
    graph = ADGraph()
    a = F.input(graph, Shape([2]), [1, 2], device)
    b = F.exp(a)
    assert graph.get_value(a) is None
    assert graph.get_value(b) is None
    assert graph.get_gradient(b) is None
    assert b.value is None


def test_forward_computes_ancestors(device):
    graph = ADGraph()
    a = F.input(graph, Shape([2]), [1, 2], device)
    b = F.input(graph, Shape([2]), [3, 4], device)
    c = F.add(a, b)
    d = F.multiply(c, b)
    unrelated = F.exp(a)
    value = graph.forward(d)
    assert value.to_list() == [12.0, 24.0]
    assert graph.get_value(c).to_list() == [4.0, 6.0]
    assert graph.get_value(unrelated) is None


def test_forward_is_memoized(device):
    graph = ADGraph()
    counters = []

    def counted(op, args):
        op = Counting(op)
        counters.append(op)
        return graph.add_function(op, args)

    a = counted(Input(Shape([2]), [1, 2], device), [])
    b = counted(Tanh(), [a])
    c = counted(Multiply(), [b, b])
    d = counted(Add(), [c, b])
    value = graph.forward(d)
    assert graph.forward(d) is value
    assert graph.get_value(d) is value
    assert [op.num_forward for op in counters] == [1, 1, 1, 1]

    e = counted(Exp(), [d])
    graph.forward(e)
    assert [op.num_forward for op in counters] == [1, 1, 1, 1, 1]


def test_forward_of_long_chain(device):
    graph = ADGraph()
    x = F.input(graph, Shape(), [0.0], device)
    for _ in range(5000):
        x = F.add_const(x, 1.0)
    assert graph.forward(x).to_float() == 5000.0
    graph.backward(x)
    assert graph.get_gradient(graph.nodes[0]).to_float() == 1.0


def test_backward_requires_value(device):
    graph = ADGraph()
    a = F.input(graph, Shape([2]), [1, 2], device)
    b = F.exp(a)
    with pytest.raises(UncomputedNodeError):
        graph.backward(b)
    assert graph.get_gradient(a) is None


def test_backward_twice_fails(device):
    graph = ADGraph()
    a = F.input(graph, Shape([2]), [1, 2], device)
    b = F.exp(a)
    graph.forward(b)
    graph.backward(b)
    with pytest.raises(GradientAlreadyPresentError):
        graph.backward(b)


def test_backward_seeds_ones(device):
    graph = ADGraph()
    a = F.input(graph, Shape([2, 3], 2), np.arange(12), device)
    b = F.tanh(a)
    graph.forward(b)
    graph.backward(b)
    grad = graph.get_gradient(b)
    assert grad.shape == Shape([2, 3], 2)
    np.testing.assert_array_equal(grad.numpy(), np.ones((2, 2, 3)))


def test_chain_rule_square_of_sum(device):
    graph = ADGraph()
    a = F.input(graph, Shape([3]), [1, 2, 3], device)
    b = F.input(graph, Shape([3]), [4, 5, -6], device)
    c = F.add(a, b)
    d = F.multiply(c, c)
    graph.forward(d)
    graph.backward(d)
    expected = 2 * graph.get_value(c).numpy()
    np.testing.assert_allclose(graph.get_gradient(a).numpy(), expected)
    np.testing.assert_allclose(graph.get_gradient(b).numpy(), expected)
    np.testing.assert_allclose(graph.get_gradient(c).numpy(), expected)


def test_backward_calls_each_operation_once(device):
    graph = ADGraph()
    a = F.input(graph, Shape([2]), [1, 2], device)
    b = F.input(graph, Shape([2]), [3, 4], device)
    mul = Counting(Multiply())
    c = graph.add_function(mul, [a, b])
    graph.forward(c)
    graph.backward(c)
    assert mul.num_backward == 1
    np.testing.assert_allclose(graph.get_gradient(a).numpy(), [[3, 4]])
    np.testing.assert_allclose(graph.get_gradient(b).numpy(), [[1, 2]])


def test_backward_leaves_other_nodes_untouched(device):
    graph = ADGraph()
    a = F.input(graph, Shape([2]), [1, 2], device)
    b = F.exp(a)
    c = F.tanh(a)
    graph.forward(b)
    graph.forward(c)
    graph.backward(c)
    assert graph.get_gradient(b) is None
    assert graph.get_gradient(a) is not None
    np.testing.assert_allclose(
        graph.get_gradient(a).numpy(), 1 - np.tanh([[1.0, 2.0]]) ** 2
    )


def test_backward_skips_unevaluated_ancestors(device):
    graph = ADGraph()
    a = F.input(graph, Shape([2]), [1, 2], device)
    b = F.exp(a)
    c = F.tanh(a)
    graph.forward(c)
    graph.backward(c)
    assert graph.get_value(b) is None
    assert graph.get_gradient(b) is None


def test_backward_from_intermediate_node(device):
    graph = ADGraph()
    a = F.input(graph, Shape(), [3.0], device)
    b = F.multiply(a, a)
    c = F.exp(b)
    graph.forward(c)
    graph.backward(b)
    assert graph.get_gradient(c) is None
    assert graph.get_gradient(a).to_float() == pytest.approx(6.0)


@pytest.mark.parametrize(
    "call",
    [
        lambda g, n: g.add_function(Add(), [n, n]),
        lambda g, n: g.forward(n),
        lambda g, n: g.backward(n),
        lambda g, n: g.get_shape(n),
        lambda g, n: g.get_value(n),
        lambda g, n: g.get_gradient(n),
        lambda g, n: g.get_function(n),
        lambda g, n: g.get_args(n),
        lambda g, n: g.get_sinks(n),
    ],
)
def test_node_of_other_graph_is_rejected(device, call):
    g1 = ADGraph()
    g2 = ADGraph()
    a = F.input(g1, Shape([2]), [1, 2], device)
    F.input(g2, Shape([2]), [1, 2], device)
    g1.forward(a)
    with pytest.raises(GraphMismatchError):
        call(g2, a)


def test_mixed_graphs_in_arguments(device):
    g1 = ADGraph()
    g2 = ADGraph()
    a = F.input(g1, Shape([2]), [1, 2], device)
    b = F.input(g2, Shape([2]), [1, 2], device)
    with pytest.raises(GraphMismatchError):
        F.add(a, b)
    assert len(g1) == 1
    assert g1.get_sinks(a) == []


def test_invalid_node_index_is_a_bug(device):
    graph = ADGraph()
    F.input(graph, Shape([2]), [1, 2], device)
    with pytest.raises(AssertionError):
        graph.forward(ADNode(graph, 5))


def test_node_identity(device):
    graph = ADGraph()
    a = F.input(graph, Shape([2]), [1, 2], device)
    assert a == graph.nodes[0]
    assert a == ADNode(graph, 0)
    assert a != ADNode(graph, 1)
    assert a != ADNode(ADGraph(), 0)
    assert len({a, ADNode(graph, 0)}) == 1
    assert a.graph is graph


def test_node_operators(device):
    graph = ADGraph()
    a = F.input(graph, Shape(), [2.0], device)
    b = F.input(graph, Shape(), [8.0], device)
    c = (a + b) * a - b / a + 1 - (-a) * 3
    assert graph.forward(c).to_float() == pytest.approx(20 - 4 + 1 + 6)
    d = 2 * a + 1.5
    assert graph.forward(d).to_float() == pytest.approx(5.5)
    e = 10 - a
    assert graph.forward(e).to_float() == pytest.approx(8.0)


def test_dump(device):
    graph = ADGraph()
    a = F.input(graph, Shape([2]), [1, 2], device)
    b = F.input(graph, Shape([2], 3), np.zeros(6), device)
    c = F.add(a, b)
    F.multiply(c, a)
    assert graph.dump() == (
        "Computation graph:\n"
        "  [0]: shape=[2]x1, func=Input, args=[], sinks=[2,3]\n"
        "  [1]: shape=[2]x3, func=Input, args=[], sinks=[2]\n"
        "  [2]: shape=[2]x3, func=Add, args=[0,1], sinks=[3]\n"
        "  [3]: shape=[2]x3, func=Multiply, args=[2,0], sinks=[]\n"
    )
    assert str(graph) == graph.dump()
    assert graph.get_value(c) is None


def test_debug_logging(device, caplog):
    graph = ADGraph()
    with caplog.at_level(logging.DEBUG, logger="adgraph.graphs.ad.graph"):
        a = F.input(graph, Shape([2]), [1, 2], device)
        graph.forward(a)
        graph.backward(a)
    messages = [record.getMessage() for record in caplog.records]
    assert "added node 0: Input[] -> [2]x1" in messages
    assert "computed node 0: Input" in messages
    assert "backward from node 0" in messages


def test_node_identity_after_graph_is_destroyed(device):
    g1 = ADGraph()
    g2 = ADGraph()
    a1 = F.input(g1, Shape([2]), [1, 2], device)
    a2 = F.input(g2, Shape([2]), [1, 2], device)
    same = ADNode(g1, 0)
    key = hash(a1)
    del g1, g2
    gc.collect()
    assert a1.graph is None
    assert a2.graph is None
    assert a1 != a2
    assert a1 == same
    assert hash(a1) == key
