#
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2024-2026 The ADGraph Project Authors
#
from .parameter import Parameter  # type: ignore
from .trainers import Trainer, SGD, Adam  # type: ignore
from . import initializers  # type: ignore
