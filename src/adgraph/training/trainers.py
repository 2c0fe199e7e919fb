#
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2024-2026 The ADGraph Project Authors
#
from abc import ABC, abstractmethod
from typing_extensions import override
import logging
import numpy as np

from .parameter import Parameter

__all__ = [
    "Trainer",
    "SGD",
    "Adam",
]


logger = logging.getLogger(__name__)


class Trainer(ABC):
    """Base class of the parameter update rules.

    Parameters are registered once with add_parameter(). A training step
    is: reset_gradients(), forward and backward on a graph reading the
    parameters, then update().
    """

    def __init__(self) -> None:
        self._params: list[Parameter] = []
        self._epoch = 0

    @property
    def params(self) -> list[Parameter]:
        return list(self._params)

    @property
    def epoch(self) -> int:
        """Returns the number of update() calls so far."""
        return self._epoch

    def add_parameter(self, param: Parameter) -> None:
        if any(p is param for p in self._params):
            raise ValueError("parameter already registered to the trainer")
        self._params.append(param)
        self.configure_parameter(param)

    def reset_gradients(self) -> None:
        for param in self._params:
            param.reset_gradient()

    def update(self, scale: float = 1.0) -> None:
        """Updates all the registered parameters from their gradients.

        Args:
            scale: Additional factor applied to the learning rate
        """
        for param in self._params:
            self.update_parameter(scale, param)
        self.update_epoch()
        self._epoch += 1
        logger.debug(
            "%s: updated %d parameters, epoch %d",
            type(self).__name__,
            len(self._params),
            self._epoch,
        )

    @abstractmethod
    def configure_parameter(self, param: Parameter) -> None:
        """Prepares the trainer state of a new parameter."""
        ...

    @abstractmethod
    def update_parameter(self, scale: float, param: Parameter) -> None:
        """Updates the value of one parameter."""
        ...

    @abstractmethod
    def update_epoch(self) -> None:
        """Updates the trainer state after all the parameters."""
        ...


class SGD(Trainer):
    """Simple stochastic gradient descent."""

    def __init__(self, eta: float = 0.1) -> None:
        super().__init__()
        self._eta = eta

    @property
    def eta(self) -> float:
        return self._eta

    @override
    def configure_parameter(self, param: Parameter) -> None:
        pass

    @override
    def update_parameter(self, scale: float, param: Parameter) -> None:
        diff = -scale * self._eta * param.gradient.numpy()
        param.add_value(param.device.new_tensor_by_array(param.shape, diff))

    @override
    def update_epoch(self) -> None:
        pass


class Adam(Trainer):
    """Adam optimizer, https://arxiv.org/abs/1412.6980"""

    def __init__(
        self,
        alpha: float = 0.001,
        beta1: float = 0.9,
        beta2: float = 0.999,
        eps: float = 1e-8,
    ) -> None:
        super().__init__()
        self._alpha = alpha
        self._beta1 = beta1
        self._beta2 = beta2
        self._eps = eps
        self._step = 1
        self._moments: dict[int, tuple[np.ndarray, np.ndarray]] = {}

    @property
    def alpha(self) -> float:
        return self._alpha

    @property
    def beta1(self) -> float:
        return self._beta1

    @property
    def beta2(self) -> float:
        return self._beta2

    @property
    def eps(self) -> float:
        return self._eps

    @override
    def configure_parameter(self, param: Parameter) -> None:
        zeros = np.zeros_like(param.value.numpy())
        self._moments[id(param)] = (zeros, zeros.copy())

    @override
    def update_parameter(self, scale: float, param: Parameter) -> None:
        g = param.gradient.numpy()
        m1, m2 = self._moments[id(param)]
        m1 *= self._beta1
        m1 += (1.0 - self._beta1) * g
        m2 *= self._beta2
        m2 += (1.0 - self._beta2) * g * g
        mm1 = m1 / (1.0 - self._beta1**self._step)
        mm2 = m2 / (1.0 - self._beta2**self._step)
        diff = -scale * self._alpha * mm1 / (np.sqrt(mm2) + self._eps)
        param.add_value(param.device.new_tensor_by_array(param.shape, diff))

    @override
    def update_epoch(self) -> None:
        self._step += 1
