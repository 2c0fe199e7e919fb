#
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2024-2026 The ADGraph Project Authors
#
from .shape import Shape  # type: ignore
from .node import ADNode  # type: ignore
from .graph import ADGraph  # type: ignore
from .exceptions import (
    GraphMismatchError,  # type: ignore
    UncomputedNodeError,  # type: ignore
    GradientAlreadyPresentError,  # type: ignore
    IncompatibleOperationError,  # type: ignore
    InvalidShapeError,  # type: ignore
)
from . import operations  # type: ignore
from . import functions  # type: ignore
