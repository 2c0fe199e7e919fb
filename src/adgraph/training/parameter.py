#
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2024-2026 The ADGraph Project Authors
#
from typing import TYPE_CHECKING

from adgraph.itf.data import Tensor, Device
from adgraph.graphs.ad.shape import Shape

if TYPE_CHECKING:
    from .initializers import Initializer

__all__ = [
    "Parameter",
]


class Parameter:
    """A trainable tensor with its gradient accumulator.

    The parameter is read by graphs through a ParameterInput node, which
    pushes the node gradient back with add_gradient() during backward.
    A trainer then updates the value with add_value().
    """

    def __init__(self, shape: Shape, device: Device) -> None:
        if shape.batch_size != 1:
            raise ValueError(f"parameter batch size must be 1: {shape}")
        self._shape = shape.copy()
        self._device = device
        self._value = device.constant(shape, 0)
        self._grad = device.constant(shape, 0)

    @property
    def shape(self) -> Shape:
        return self._shape.copy()

    @property
    def device(self) -> Device:
        return self._device

    @property
    def value(self) -> Tensor:
        return self._value

    @property
    def gradient(self) -> Tensor:
        return self._grad

    def _check_shape(self, diff: Tensor) -> None:
        if not self._shape.has_same_dims(diff.shape):
            raise ValueError(f"shape mismatch: {diff.shape} != {self._shape}")

    def reset_value(self, init: "Initializer") -> None:
        self._value = init.generate(self._shape, self._device)

    def reset_gradient(self) -> None:
        self._grad = self._device.constant(self._shape, 0)

    def add_value(self, diff: Tensor) -> None:
        """value <- value + diff"""
        self._check_shape(diff)
        self._value.inplace_add(diff)

    def add_gradient(self, diff: Tensor) -> None:
        """grad <- grad + diff, a mini-batch diff is summed over samples."""
        self._check_shape(diff)
        self._grad.inplace_add(diff)
