#
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2024-2026 The ADGraph Project Authors
#
from typing_extensions import override
from collections.abc import Sequence
from typing import Any
import os
import numpy as np

from adgraph.itf.data import Device
from adgraph.graphs.ad.shape import Shape

from .tensor import HostTensor, array_shape

__all__ = [
    "HostDevice",
    "get_default_dtype",
]


def get_default_dtype() -> str:
    """
    Return the default floating point type of host tensors.
    Defined in order as:
    - env var ADGRAPH_DTYPE
    - float32
    """
    dtype = os.getenv("ADGRAPH_DTYPE", "float32")
    if np.dtype(dtype).kind != "f":
        raise RuntimeError(f"ADGRAPH_DTYPE is not a floating point type: {dtype}")
    return dtype


class HostDevice(Device):
    def __init__(self, dtype: str | None = None, seed: int | None = None) -> None:
        self._dtype = np.dtype(get_default_dtype() if dtype is None else dtype)
        self._rng = np.random.default_rng(seed)

    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    @override
    def constant(self, shape: Shape, k: float) -> HostTensor:
        return HostTensor(shape, self, np.full(array_shape(shape), k, dtype=self._dtype))

    @override
    def new_tensor_by_array(self, shape: Shape, array: Any) -> HostTensor:
        data = np.asarray(array, dtype=self._dtype)
        if data.size != shape.num_total_elements:
            raise ValueError(
                f"data size mismatch for shape {shape}: "
                f"{data.size} != {shape.num_total_elements}"
            )
        return HostTensor(shape, self, data.reshape(array_shape(shape)).copy())

    @override
    def new_tensor_by_list(self, shape: Shape, values: Sequence[float]) -> HostTensor:
        if len(values) != shape.num_total_elements:
            raise ValueError(
                f"data size mismatch for shape {shape}: "
                f"{len(values)} != {shape.num_total_elements}"
            )
        return self.new_tensor_by_array(shape, list(values))

    @override
    def random_uniform(self, shape: Shape, lower: float, upper: float) -> HostTensor:
        data = self._rng.uniform(lower, upper, size=array_shape(shape))
        return HostTensor(shape, self, data.astype(self._dtype))

    @override
    def random_normal(self, shape: Shape, mean: float, sd: float) -> HostTensor:
        data = self._rng.normal(mean, sd, size=array_shape(shape))
        return HostTensor(shape, self, data.astype(self._dtype))
