#
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2024-2026 The ADGraph Project Authors
#
"""Graph-related exceptions."""


class GraphMismatchError(RuntimeError):
    """Raised when a node is used with a graph which did not create it."""

    pass


class UncomputedNodeError(RuntimeError):
    """Raised when backward starts from a node without value."""

    pass


class GradientAlreadyPresentError(RuntimeError):
    """Raised when backward starts from a node which has a gradient."""

    pass


class IncompatibleOperationError(RuntimeError):
    """Raised when an operation rejects its arguments shapes."""

    pass


class InvalidShapeError(ValueError):
    """Raised when a shape is built with a zero dimension or batch size."""

    pass
