#
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2024-2026 The ADGraph Project Authors
#
from .device import HostDevice, get_default_dtype  # type: ignore
from .tensor import HostTensor  # type: ignore
