#
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2024-2026 The ADGraph Project Authors
#
from typing_extensions import override
from typing import TYPE_CHECKING, Any
import numpy as np
import numpy.typing

from adgraph.itf.data import Tensor
from adgraph.graphs.ad.shape import Shape

if TYPE_CHECKING:
    from .device import HostDevice

__all__ = [
    "HostTensor",
]


def array_shape(shape: Shape) -> tuple[int, ...]:
    """Returns the numpy layout (batch, *dims) of a shape."""
    return (shape.batch_size, *shape.dims)


class HostTensor(Tensor):
    """Tensor stored in a C-contiguous numpy array of layout (batch, *dims)."""

    def __init__(self, shape: Shape, device: "HostDevice", array: np.ndarray) -> None:
        expected = array_shape(shape)
        if array.shape != expected:
            raise ValueError(
                f"array shape mismatch for tensor {shape}: {array.shape} != {expected}"
            )
        self._shape = shape.copy()
        self._device = device
        self._array = np.ascontiguousarray(array)

    @property
    @override
    def shape(self) -> Shape:
        return self._shape.copy()

    @property
    @override
    def device(self) -> "HostDevice":
        return self._device

    @property
    def dtype(self) -> np.dtype:
        return self._array.dtype

    @override
    def numpy(self) -> numpy.typing.NDArray:
        return self._array.copy()

    @override
    def to_list(self) -> list[float]:
        return [float(x) for x in self._array.ravel()]

    @override
    def to_float(self) -> float:
        if self._shape.num_total_elements != 1:
            raise ValueError(f"tensor is not a scalar: {self._shape}")
        return float(self._array.ravel()[0])

    def _wrap(self, array: np.ndarray) -> "HostTensor":
        shape = Shape(array.shape[1:], array.shape[0])
        return HostTensor(shape, self._device, array.astype(self.dtype, copy=False))

    def _operand(self, other: Any) -> Any:
        if isinstance(other, HostTensor):
            if not self._shape.has_same_dims(other._shape):
                raise ValueError(
                    f"tensor dims mismatch: {self._shape} and {other._shape}"
                )
            if not self._shape.has_compatible_batch(other._shape):
                raise ValueError(
                    f"tensor batch mismatch: {self._shape} and {other._shape}"
                )
            return other._array
        return float(other)

    @override
    def inplace_add(self, diff: Tensor) -> "HostTensor":
        assert isinstance(diff, HostTensor), f"not a host tensor: {type(diff)}"
        src = diff._array
        if not self._shape.has_same_dims(diff._shape):
            raise ValueError(f"tensor dims mismatch: {self._shape} and {diff._shape}")
        if self._shape.batch_size == 1 and diff._shape.batch_size > 1:
            src = src.sum(axis=0, keepdims=True)
        elif not self._shape.has_compatible_batch(diff._shape):
            raise ValueError(f"tensor batch mismatch: {self._shape} and {diff._shape}")
        self._array += src.astype(self.dtype, copy=False)
        return self

    def __add__(self, other: Any) -> "HostTensor":
        return self._wrap(self._array + self._operand(other))

    def __radd__(self, other: Any) -> "HostTensor":
        return self._wrap(self._operand(other) + self._array)

    def __sub__(self, other: Any) -> "HostTensor":
        return self._wrap(self._array - self._operand(other))

    def __rsub__(self, other: Any) -> "HostTensor":
        return self._wrap(self._operand(other) - self._array)

    def __mul__(self, other: Any) -> "HostTensor":
        return self._wrap(self._array * self._operand(other))

    def __rmul__(self, other: Any) -> "HostTensor":
        return self._wrap(self._operand(other) * self._array)

    def __truediv__(self, other: Any) -> "HostTensor":
        return self._wrap(self._array / self._operand(other))

    def __rtruediv__(self, other: Any) -> "HostTensor":
        return self._wrap(self._operand(other) / self._array)

    def __neg__(self) -> "HostTensor":
        return self._wrap(-self._array)

    @override
    def __repr__(self) -> str:
        return f"HostTensor({self._shape}, dtype={self.dtype})"
