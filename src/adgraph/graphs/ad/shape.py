#
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2024-2026 The ADGraph Project Authors
#
from typing_extensions import override
from collections.abc import Iterable
from typing import Any
import functools
import operator

from .exceptions import InvalidShapeError

__all__ = [
    "Shape",
]


def _as_size(d: Any) -> int:
    try:
        return operator.index(d)
    except TypeError:
        raise InvalidShapeError(f"invalid shape, non-integral size: {d!r}") from None


def _check_axis(dim: int) -> None:
    if dim < 0:
        raise InvalidShapeError(f"invalid axis: {dim}")


class Shape:
    """Shape of a node value: dimension sizes and mini-batch size.

    Dimensions are padded with an infinite number of trailing 1, which
    are never stored, hence:
        Shape()          == Shape([1, 1, ...], 1): scalar
        Shape([n])       == Shape([n, 1, ...], 1): column vector
        Shape([n, m])    == Shape([n, m, 1, ...], 1): matrix
        Shape([...], k): k samples of the same dims (mini-batch)
    """

    def __init__(self, dims: Iterable[int] = (), k: int = 1) -> None:
        self._dims = [_as_size(d) for d in dims]
        self._k = _as_size(k)
        self._num_elms_per_sample = 1
        self._adjust()

    def _adjust(self) -> None:
        if any(d == 0 for d in self._dims):
            raise InvalidShapeError(f"invalid shape, zero dimension in: {self._dims}")
        if any(d < 0 for d in self._dims):
            raise InvalidShapeError(f"invalid shape, negative dimension in: {self._dims}")
        if self._k <= 0:
            raise InvalidShapeError(f"invalid shape, batch size must be >= 1: {self._k}")
        while self._dims and self._dims[-1] == 1:
            self._dims.pop()
        self._num_elms_per_sample = functools.reduce(operator.mul, self._dims, 1)

    def __getitem__(self, i: int) -> int:
        _check_axis(i)
        return self._dims[i] if i < self.depth else 1

    @property
    def depth(self) -> int:
        return len(self._dims)

    @property
    def dims(self) -> list[int]:
        return list(self._dims)

    @property
    def batch_size(self) -> int:
        return self._k

    @property
    def num_elements_per_sample(self) -> int:
        return self._num_elms_per_sample

    @property
    def num_total_elements(self) -> int:
        return self._k * self._num_elms_per_sample

    def num_elements_under_rank(self, rank: int) -> int:
        """Returns dims[0] * ... * dims[rank - 1]."""
        _check_axis(rank)
        return functools.reduce(operator.mul, self._dims[:rank], 1)

    def has_same_dims(self, rhs: "Shape") -> bool:
        return self._dims == rhs._dims

    def has_compatible_batch(self, rhs: "Shape") -> bool:
        """True if batch sizes are equal or one of them broadcasts (== 1)."""
        return self._k == rhs._k or self._k == 1 or rhs._k == 1

    def has_same_loo_dims(self, rhs: "Shape", dim: int) -> bool:
        """True if both shapes have the same dims, leaving out axis dim."""
        _check_axis(dim)
        nd = max(self.depth, rhs.depth)
        return all(self[i] == rhs[i] for i in range(nd) if i != dim)

    def resize_dim(self, dim: int, m: int) -> "Shape":
        ret = self.copy()
        ret.update_dim(dim, m)
        return ret

    def resize_batch(self, k: int) -> "Shape":
        ret = self.copy()
        ret.update_batch(k)
        return ret

    def update_dim(self, dim: int, m: int) -> None:
        _check_axis(dim)
        m = _as_size(m)
        if m <= 0:
            raise InvalidShapeError(f"invalid shape, size {m} for dimension {dim}")
        if dim >= self.depth:
            if m == 1:
                return
            self._dims.extend([1] * (dim - self.depth + 1))
        self._dims[dim] = m
        self._adjust()

    def update_batch(self, k: int) -> None:
        k = _as_size(k)
        if k <= 0:
            raise InvalidShapeError(f"invalid shape, batch size must be >= 1: {k}")
        self._k = k

    def copy(self) -> "Shape":
        return Shape(self._dims, self._k)

    def to_string(self) -> str:
        return "[" + ",".join(str(d) for d in self._dims) + f"]x{self._k}"

    @override
    def __eq__(self, rhs: Any) -> bool:
        if not isinstance(rhs, Shape):
            return NotImplemented
        return self.has_same_dims(rhs) and self._k == rhs._k

    __hash__ = None  # type: ignore

    @override
    def __str__(self) -> str:
        return self.to_string()

    @override
    def __repr__(self) -> str:
        return f"Shape({self._dims}, k={self._k})"
