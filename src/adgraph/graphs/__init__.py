#
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2024-2026 The ADGraph Project Authors
#
