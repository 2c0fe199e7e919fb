#
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2024-2026 The ADGraph Project Authors
#
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any
import numpy.typing

if TYPE_CHECKING:
    from adgraph.graphs.ad.shape import Shape


class Tensor(ABC):
    """An abstract representation of a mini-batched multidimensional value.

    A Tensor is the value and gradient type stored in the graph nodes.
    It is created by a Device and keeps a reference to it, such that
    the graph can produce seed tensors (ones, zeros) on the same device
    as the values it already holds.

    Arithmetic operators return new tensors, except inplace_add()
    (and +=) which accumulates into the tensor storage in place.
    """

    @property
    @abstractmethod
    def shape(self) -> "Shape":
        """Returns the tensor's shape, including its batch size.

        Returns:
            The Shape of the tensor
        """
        ...

    @property
    @abstractmethod
    def device(self) -> "Device":
        """Returns the device which owns the tensor storage.

        Returns:
            The Device object
        """
        ...

    @abstractmethod
    def numpy(self) -> numpy.typing.NDArray:
        """Convert the tensor to a numpy array of layout (batch, *dims).

        Returns:
            The tensor's data as a numpy array
        """
        ...

    @abstractmethod
    def to_list(self) -> list[float]:
        """Returns all the elements as a flat list, sample after sample.

        Returns:
            List of the tensor elements
        """
        ...

    @abstractmethod
    def to_float(self) -> float:
        """Returns the single element of a scalar tensor.

        Returns:
            The element value
        """
        ...

    @abstractmethod
    def inplace_add(self, diff: "Tensor") -> "Tensor":
        """Accumulates diff into this tensor in place.

        Batch broadcasting is applied when diff has a batch size of 1.

        Args:
            diff: Tensor to accumulate

        Returns:
            This tensor
        """
        ...

    def __iadd__(self, diff: "Tensor") -> "Tensor":
        return self.inplace_add(diff)


class Device(ABC):
    """An abstract representation of a compute device.

    A Device allocates tensors and fills them. The graph engine only
    relies on constant() to seed gradients, other factories are used
    by operations and parameters.
    """

    @abstractmethod
    def constant(self, shape: "Shape", k: float) -> Tensor:
        """Creates a tensor filled with a constant.

        Args:
            shape: Shape of the new tensor
            k: Fill value

        Returns:
            The new tensor
        """
        ...

    @abstractmethod
    def new_tensor_by_array(self, shape: "Shape", array: Any) -> Tensor:
        """Creates a tensor from an array-like object.

        Args:
            shape: Shape of the new tensor
            array: Data with as many elements as the shape

        Returns:
            The new tensor
        """
        ...

    @abstractmethod
    def new_tensor_by_list(self, shape: "Shape", values: Sequence[float]) -> Tensor:
        """Creates a tensor from a flat list of values, sample after sample.

        Args:
            shape: Shape of the new tensor
            values: Flat list of shape.num_total_elements values

        Returns:
            The new tensor
        """
        ...

    @abstractmethod
    def random_uniform(self, shape: "Shape", lower: float, upper: float) -> Tensor:
        """Creates a tensor filled from U(lower, upper).

        Returns:
            The new tensor
        """
        ...

    @abstractmethod
    def random_normal(self, shape: "Shape", mean: float, sd: float) -> Tensor:
        """Creates a tensor filled from N(mean, sd^2).

        Returns:
            The new tensor
        """
        ...
