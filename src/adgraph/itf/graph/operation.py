#
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2024-2026 The ADGraph Project Authors
#
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING
from ..data import Tensor

if TYPE_CHECKING:
    from adgraph.graphs.ad.shape import Shape


class Operation(ABC):
    """An abstract representation of a differentiable operation.

    An Operation is the computation performed by a Node. It is given to
    the Graph at node construction and owned by the Graph from then on.
    The Graph calls it for three things only:
    - forward_shape() once, when the node is added,
    - forward() at most once, when the node value is first requested,
    - backward() at most once per backward pass reaching the node.

    How shapes, values and gradients are computed is entirely up to the
    Operation.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Returns the name of this operation, for diagnostics.

        Returns:
            The operation's name
        """
        ...

    @abstractmethod
    def forward_shape(self, args_shapes: Sequence["Shape"]) -> "Shape":
        """Infers the output shape from the arguments shapes.

        Args:
            args_shapes: List of the arguments shapes

        Returns:
            The inferred output shape

        Raises:
            IncompatibleOperationError: the arguments shapes are not
                supported by the operation
        """
        ...

    @abstractmethod
    def forward(self, args_values: Sequence[Tensor]) -> Tensor:
        """Computes the output value from the arguments values.

        Args:
            args_values: List of the arguments values

        Returns:
            The output value, stored by the Graph
        """
        ...

    @abstractmethod
    def backward(
        self,
        cur_value: Tensor,
        cur_grad: Tensor,
        args_values: Sequence[Tensor],
        args_grads: Sequence[Tensor],
    ) -> None:
        """Accumulates the output gradient into the arguments gradients.

        The arguments gradients are updated in place, previous contents
        are kept (accumulation, not assignment).

        Args:
            cur_value: Output value of the operation
            cur_grad: Gradient of the output value
            args_values: List of the arguments values
            args_grads: List of the arguments gradients to update
        """
        ...
