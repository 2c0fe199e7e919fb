#
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2024-2026 The ADGraph Project Authors
#
from typing_extensions import override
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Callable
import numpy as np

from adgraph.itf.graph import Operation
from adgraph.itf.data import Tensor, Device

from .shape import Shape
from .exceptions import IncompatibleOperationError

if TYPE_CHECKING:
    from adgraph.training.parameter import Parameter

__all__ = [
    "ADOperation",
    "Input",
    "Constant",
    "ParameterInput",
    "Copy",
    "Add",
    "Subtract",
    "Multiply",
    "Divide",
    "AddConst",
    "MultiplyConst",
    "Negate",
    "Exp",
    "Tanh",
    "Sigmoid",
    "ReLU",
    "Transpose",
    "MatrixMultiply",
    "Sum",
    "BatchSum",
    "Concat",
]


def _layout(shape: Shape, rank: int = 0) -> tuple[int, ...]:
    # numpy layout (batch, *dims), padded with 1 up to rank dims
    rank = max(rank, shape.depth)
    return (shape.batch_size, *[shape[i] for i in range(rank)])


def _accumulate(grad: Tensor, array: np.ndarray) -> None:
    # array layout is (k, ...) with the dims of grad, k may differ from
    # the grad batch size when broadcasting
    shape = grad.shape
    diff = grad.device.new_tensor_by_array(shape.resize_batch(array.shape[0]), array)
    grad.inplace_add(diff)


def _check_dim(name: str, dim: int) -> None:
    if dim < 0:
        raise IncompatibleOperationError(f"{name}: invalid axis: {dim}")


class ADOperation(Operation):
    def __init__(self, name: str, num_args: int | None = None) -> None:
        self._name = name
        self._num_args = num_args

    @property
    @override
    def name(self) -> str:
        return self._name

    def _check_num_args(self, args_shapes: Sequence[Shape]) -> None:
        if self._num_args is not None and len(args_shapes) != self._num_args:
            raise IncompatibleOperationError(
                f"{self.name}: expected {self._num_args} arguments, "
                f"got {len(args_shapes)}"
            )

    @override
    def __str__(self) -> str:
        return self._name


class Input(ADOperation):
    """Leaf node holding user data."""

    def __init__(self, shape: Shape, values: Any, device: Device) -> None:
        super().__init__("Input", 0)
        self._shape = shape.copy()
        # Copied, later changes of the caller data do not alter the node
        self._values = np.array(values, copy=True)
        self._device = device
        if self._values.size != shape.num_total_elements:
            raise IncompatibleOperationError(
                f"{self.name}: data size mismatch for shape {shape}: "
                f"{self._values.size} != {shape.num_total_elements}"
            )

    @override
    def forward_shape(self, args_shapes: Sequence[Shape]) -> Shape:
        self._check_num_args(args_shapes)
        return self._shape.copy()

    @override
    def forward(self, args_values: Sequence[Tensor]) -> Tensor:
        return self._device.new_tensor_by_array(self._shape, self._values)

    @override
    def backward(
        self,
        cur_value: Tensor,
        cur_grad: Tensor,
        args_values: Sequence[Tensor],
        args_grads: Sequence[Tensor],
    ) -> None:
        pass


class Constant(ADOperation):
    """Leaf node filled with a single value."""

    def __init__(self, shape: Shape, k: float, device: Device) -> None:
        super().__init__("Constant", 0)
        self._shape = shape.copy()
        self._k = k
        self._device = device

    @override
    def forward_shape(self, args_shapes: Sequence[Shape]) -> Shape:
        self._check_num_args(args_shapes)
        return self._shape.copy()

    @override
    def forward(self, args_values: Sequence[Tensor]) -> Tensor:
        return self._device.constant(self._shape, self._k)

    @override
    def backward(
        self,
        cur_value: Tensor,
        cur_grad: Tensor,
        args_values: Sequence[Tensor],
        args_grads: Sequence[Tensor],
    ) -> None:
        pass


class ParameterInput(ADOperation):
    """Leaf node reading a Parameter, the gradient flows back into it."""

    def __init__(self, param: "Parameter") -> None:
        super().__init__("ParameterInput", 0)
        self._param = param

    @property
    def param(self) -> "Parameter":
        return self._param

    @override
    def forward_shape(self, args_shapes: Sequence[Shape]) -> Shape:
        self._check_num_args(args_shapes)
        return self._param.shape

    @override
    def forward(self, args_values: Sequence[Tensor]) -> Tensor:
        # Snapshot: later parameter updates do not alter computed values
        value = self._param.value
        return value.device.new_tensor_by_array(value.shape, value.numpy())

    @override
    def backward(
        self,
        cur_value: Tensor,
        cur_grad: Tensor,
        args_values: Sequence[Tensor],
        args_grads: Sequence[Tensor],
    ) -> None:
        self._param.add_gradient(cur_grad)


class ElementwiseUnary(ADOperation):
    def __init__(self, name: str) -> None:
        super().__init__(name, 1)

    @override
    def forward_shape(self, args_shapes: Sequence[Shape]) -> Shape:
        self._check_num_args(args_shapes)
        return args_shapes[0].copy()

    def _forward(self, x: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def _backward(self, x: np.ndarray, y: np.ndarray, gy: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    @override
    def forward(self, args_values: Sequence[Tensor]) -> Tensor:
        x = args_values[0]
        return x.device.new_tensor_by_array(x.shape, self._forward(x.numpy()))

    @override
    def backward(
        self,
        cur_value: Tensor,
        cur_grad: Tensor,
        args_values: Sequence[Tensor],
        args_grads: Sequence[Tensor],
    ) -> None:
        gx = self._backward(
            args_values[0].numpy(), cur_value.numpy(), cur_grad.numpy()
        )
        _accumulate(args_grads[0], gx)


class Copy(ElementwiseUnary):
    def __init__(self) -> None:
        super().__init__("Copy")

    @override
    def _forward(self, x: np.ndarray) -> np.ndarray:
        return x

    @override
    def _backward(self, x: np.ndarray, y: np.ndarray, gy: np.ndarray) -> np.ndarray:
        return gy


class Negate(ElementwiseUnary):
    def __init__(self) -> None:
        super().__init__("Negate")

    @override
    def _forward(self, x: np.ndarray) -> np.ndarray:
        return -x

    @override
    def _backward(self, x: np.ndarray, y: np.ndarray, gy: np.ndarray) -> np.ndarray:
        return -gy


class AddConst(ElementwiseUnary):
    def __init__(self, k: float) -> None:
        super().__init__(f"AddConst({k})")
        self._k = k

    @override
    def _forward(self, x: np.ndarray) -> np.ndarray:
        return x + self._k

    @override
    def _backward(self, x: np.ndarray, y: np.ndarray, gy: np.ndarray) -> np.ndarray:
        return gy


class MultiplyConst(ElementwiseUnary):
    def __init__(self, k: float) -> None:
        super().__init__(f"MultiplyConst({k})")
        self._k = k

    @override
    def _forward(self, x: np.ndarray) -> np.ndarray:
        return x * self._k

    @override
    def _backward(self, x: np.ndarray, y: np.ndarray, gy: np.ndarray) -> np.ndarray:
        return gy * self._k


class Exp(ElementwiseUnary):
    def __init__(self) -> None:
        super().__init__("Exp")

    @override
    def _forward(self, x: np.ndarray) -> np.ndarray:
        return np.exp(x)

    @override
    def _backward(self, x: np.ndarray, y: np.ndarray, gy: np.ndarray) -> np.ndarray:
        return gy * y


class Tanh(ElementwiseUnary):
    def __init__(self) -> None:
        super().__init__("Tanh")

    @override
    def _forward(self, x: np.ndarray) -> np.ndarray:
        return np.tanh(x)

    @override
    def _backward(self, x: np.ndarray, y: np.ndarray, gy: np.ndarray) -> np.ndarray:
        return gy * (1.0 - y * y)


class Sigmoid(ElementwiseUnary):
    def __init__(self) -> None:
        super().__init__("Sigmoid")

    @override
    def _forward(self, x: np.ndarray) -> np.ndarray:
        return 0.5 + 0.5 * np.tanh(0.5 * x)

    @override
    def _backward(self, x: np.ndarray, y: np.ndarray, gy: np.ndarray) -> np.ndarray:
        return gy * y * (1.0 - y)


class ReLU(ElementwiseUnary):
    def __init__(self) -> None:
        super().__init__("ReLU")

    @override
    def _forward(self, x: np.ndarray) -> np.ndarray:
        return np.maximum(x, 0)

    @override
    def _backward(self, x: np.ndarray, y: np.ndarray, gy: np.ndarray) -> np.ndarray:
        return gy * (x > 0)


ArrayFn = Callable[[np.ndarray, np.ndarray, np.ndarray, np.ndarray], np.ndarray]


class ElementwiseBinary(ADOperation):
    """Binary operation over same dims, batch of size 1 is broadcast."""

    def __init__(
        self,
        name: str,
        fn: Callable[[np.ndarray, np.ndarray], np.ndarray],
        dfda: ArrayFn,
        dfdb: ArrayFn,
    ) -> None:
        super().__init__(name, 2)
        self._fn = fn
        self._dfda = dfda
        self._dfdb = dfdb

    @override
    def forward_shape(self, args_shapes: Sequence[Shape]) -> Shape:
        self._check_num_args(args_shapes)
        a, b = args_shapes
        if not a.has_same_dims(b) or not a.has_compatible_batch(b):
            raise IncompatibleOperationError(
                f"{self.name}: incompatible shapes: {a}, {b}"
            )
        return a.resize_batch(max(a.batch_size, b.batch_size))

    @override
    def forward(self, args_values: Sequence[Tensor]) -> Tensor:
        a, b = args_values
        shape = self.forward_shape([a.shape, b.shape])
        return a.device.new_tensor_by_array(shape, self._fn(a.numpy(), b.numpy()))

    @override
    def backward(
        self,
        cur_value: Tensor,
        cur_grad: Tensor,
        args_values: Sequence[Tensor],
        args_grads: Sequence[Tensor],
    ) -> None:
        a, b = args_values[0].numpy(), args_values[1].numpy()
        y, gy = cur_value.numpy(), cur_grad.numpy()
        _accumulate(args_grads[0], self._dfda(a, b, y, gy))
        _accumulate(args_grads[1], self._dfdb(a, b, y, gy))


class Add(ElementwiseBinary):
    def __init__(self) -> None:
        super().__init__(
            "Add",
            lambda a, b: a + b,
            lambda a, b, y, gy: gy,
            lambda a, b, y, gy: gy,
        )


class Subtract(ElementwiseBinary):
    def __init__(self) -> None:
        super().__init__(
            "Subtract",
            lambda a, b: a - b,
            lambda a, b, y, gy: gy,
            lambda a, b, y, gy: -gy,
        )


class Multiply(ElementwiseBinary):
    def __init__(self) -> None:
        super().__init__(
            "Multiply",
            lambda a, b: a * b,
            lambda a, b, y, gy: gy * b,
            lambda a, b, y, gy: gy * a,
        )


class Divide(ElementwiseBinary):
    def __init__(self) -> None:
        super().__init__(
            "Divide",
            lambda a, b: a / b,
            lambda a, b, y, gy: gy / b,
            lambda a, b, y, gy: -gy * y / b,
        )


class Transpose(ADOperation):
    def __init__(self) -> None:
        super().__init__("Transpose", 1)

    @override
    def forward_shape(self, args_shapes: Sequence[Shape]) -> Shape:
        self._check_num_args(args_shapes)
        x = args_shapes[0]
        if x.depth > 2:
            raise IncompatibleOperationError(f"{self.name}: depth > 2: {x}")
        return Shape([x[1], x[0]], x.batch_size)

    @override
    def forward(self, args_values: Sequence[Tensor]) -> Tensor:
        x = args_values[0]
        shape = self.forward_shape([x.shape])
        data = x.numpy().reshape(_layout(x.shape, 2)).transpose(0, 2, 1)
        return x.device.new_tensor_by_array(shape, data)

    @override
    def backward(
        self,
        cur_value: Tensor,
        cur_grad: Tensor,
        args_values: Sequence[Tensor],
        args_grads: Sequence[Tensor],
    ) -> None:
        gy = cur_grad.numpy().reshape(_layout(cur_grad.shape, 2)).transpose(0, 2, 1)
        _accumulate(args_grads[0], gy)


class MatrixMultiply(ADOperation):
    def __init__(self) -> None:
        super().__init__("MatrixMultiply", 2)

    @override
    def forward_shape(self, args_shapes: Sequence[Shape]) -> Shape:
        self._check_num_args(args_shapes)
        a, b = args_shapes
        if (
            a.depth > 2
            or b.depth > 2
            or a[1] != b[0]
            or not a.has_compatible_batch(b)
        ):
            raise IncompatibleOperationError(
                f"{self.name}: incompatible shapes: {a}, {b}"
            )
        return Shape([a[0], b[1]], max(a.batch_size, b.batch_size))

    @override
    def forward(self, args_values: Sequence[Tensor]) -> Tensor:
        a, b = args_values
        shape = self.forward_shape([a.shape, b.shape])
        data = np.matmul(
            a.numpy().reshape(_layout(a.shape, 2)),
            b.numpy().reshape(_layout(b.shape, 2)),
        )
        return a.device.new_tensor_by_array(shape, data)

    @override
    def backward(
        self,
        cur_value: Tensor,
        cur_grad: Tensor,
        args_values: Sequence[Tensor],
        args_grads: Sequence[Tensor],
    ) -> None:
        a = args_values[0].numpy().reshape(_layout(args_values[0].shape, 2))
        b = args_values[1].numpy().reshape(_layout(args_values[1].shape, 2))
        gy = cur_grad.numpy().reshape(_layout(cur_grad.shape, 2))
        _accumulate(args_grads[0], np.matmul(gy, b.transpose(0, 2, 1)))
        _accumulate(args_grads[1], np.matmul(a.transpose(0, 2, 1), gy))


class Sum(ADOperation):
    """Sums the elements along one axis."""

    def __init__(self, dim: int) -> None:
        super().__init__(f"Sum({dim})", 1)
        _check_dim(self.name, dim)
        self._dim = dim

    @override
    def forward_shape(self, args_shapes: Sequence[Shape]) -> Shape:
        self._check_num_args(args_shapes)
        return args_shapes[0].resize_dim(self._dim, 1)

    @override
    def forward(self, args_values: Sequence[Tensor]) -> Tensor:
        x = args_values[0]
        shape = self.forward_shape([x.shape])
        data = x.numpy().reshape(_layout(x.shape, self._dim + 1))
        return x.device.new_tensor_by_array(shape, data.sum(axis=1 + self._dim))

    @override
    def backward(
        self,
        cur_value: Tensor,
        cur_grad: Tensor,
        args_values: Sequence[Tensor],
        args_grads: Sequence[Tensor],
    ) -> None:
        x_shape = args_values[0].shape
        rank = self._dim + 1
        gy = cur_grad.numpy().reshape(_layout(cur_grad.shape, rank))
        gx = np.broadcast_to(gy, _layout(x_shape.resize_batch(gy.shape[0]), rank))
        _accumulate(args_grads[0], gx)


class BatchSum(ADOperation):
    """Sums the samples of a mini-batch."""

    def __init__(self) -> None:
        super().__init__("BatchSum", 1)

    @override
    def forward_shape(self, args_shapes: Sequence[Shape]) -> Shape:
        self._check_num_args(args_shapes)
        return args_shapes[0].resize_batch(1)

    @override
    def forward(self, args_values: Sequence[Tensor]) -> Tensor:
        x = args_values[0]
        data = x.numpy().sum(axis=0, keepdims=True)
        return x.device.new_tensor_by_array(x.shape.resize_batch(1), data)

    @override
    def backward(
        self,
        cur_value: Tensor,
        cur_grad: Tensor,
        args_values: Sequence[Tensor],
        args_grads: Sequence[Tensor],
    ) -> None:
        # A batch of 1 is broadcast over the argument samples
        _accumulate(args_grads[0], cur_grad.numpy())


class Concat(ADOperation):
    """Concatenates any number of arguments along one axis."""

    def __init__(self, dim: int) -> None:
        super().__init__(f"Concat({dim})")
        _check_dim(self.name, dim)
        self._dim = dim

    @override
    def forward_shape(self, args_shapes: Sequence[Shape]) -> Shape:
        if len(args_shapes) == 0:
            raise IncompatibleOperationError(f"{self.name}: no arguments")
        first = args_shapes[0]
        size = 0
        k = 1
        for shape in args_shapes:
            if not first.has_same_loo_dims(
                shape, self._dim
            ) or not first.has_compatible_batch(shape):
                raise IncompatibleOperationError(
                    f"{self.name}: incompatible shapes: {first}, {shape}"
                )
            size += shape[self._dim]
            k = max(k, shape.batch_size)
        ret = first.resize_dim(self._dim, size)
        ret.update_batch(k)
        return ret

    @override
    def forward(self, args_values: Sequence[Tensor]) -> Tensor:
        shape = self.forward_shape([x.shape for x in args_values])
        rank = max(shape.depth, self._dim + 1)
        parts = []
        for x in args_values:
            part = x.numpy().reshape(_layout(x.shape, rank))
            parts.append(
                np.broadcast_to(part, (shape.batch_size, *part.shape[1:]))
            )
        data = np.concatenate(parts, axis=1 + self._dim)
        return args_values[0].device.new_tensor_by_array(shape, data)

    @override
    def backward(
        self,
        cur_value: Tensor,
        cur_grad: Tensor,
        args_values: Sequence[Tensor],
        args_grads: Sequence[Tensor],
    ) -> None:
        shape = cur_grad.shape
        rank = max(shape.depth, self._dim + 1)
        gy = cur_grad.numpy().reshape(_layout(shape, rank))
        offset = 0
        for x, gx in zip(args_values, args_grads):
            size = x.shape[self._dim]
            part = np.take(gy, range(offset, offset + size), axis=1 + self._dim)
            _accumulate(gx, part)
            offset += size
