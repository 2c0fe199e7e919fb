#
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2024-2026 The ADGraph Project Authors
#
from abc import ABC, abstractmethod
from typing_extensions import override
import math

from adgraph.itf.data import Tensor, Device
from adgraph.graphs.ad.shape import Shape

__all__ = [
    "Initializer",
    "Constant",
    "Uniform",
    "Normal",
    "XavierUniform",
]


class Initializer(ABC):
    """Policy producing the initial value of a parameter."""

    @abstractmethod
    def generate(self, shape: Shape, device: Device) -> Tensor:
        """Creates an initial value.

        Args:
            shape: Shape of the parameter
            device: Device of the parameter

        Returns:
            The new value
        """
        ...


class Constant(Initializer):
    def __init__(self, k: float) -> None:
        self._k = k

    @override
    def generate(self, shape: Shape, device: Device) -> Tensor:
        return device.constant(shape, self._k)


class Uniform(Initializer):
    def __init__(self, lower: float, upper: float) -> None:
        if lower >= upper:
            raise ValueError(f"invalid uniform range: [{lower}, {upper})")
        self._lower = lower
        self._upper = upper

    @override
    def generate(self, shape: Shape, device: Device) -> Tensor:
        return device.random_uniform(shape, self._lower, self._upper)


class Normal(Initializer):
    def __init__(self, mean: float, sd: float) -> None:
        if sd <= 0:
            raise ValueError(f"invalid standard deviation: {sd}")
        self._mean = mean
        self._sd = sd

    @override
    def generate(self, shape: Shape, device: Device) -> Tensor:
        return device.random_normal(shape, self._mean, self._sd)


class XavierUniform(Initializer):
    """Glorot uniform initialization for matrices."""

    def __init__(self, scale: float = 1.0) -> None:
        self._scale = scale

    @override
    def generate(self, shape: Shape, device: Device) -> Tensor:
        if shape.depth > 2:
            raise ValueError(f"XavierUniform needs a matrix shape: {shape}")
        bound = self._scale * math.sqrt(6.0 / (shape[0] + shape[1]))
        return device.random_uniform(shape, -bound, bound)
