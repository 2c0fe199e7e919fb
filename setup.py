#
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2024-2026 The ADGraph Project Authors
#
from setuptools import setup, find_packages

setup(
    name="adgraph",
    version="0.1.0",
    description="Dynamic computation graph with memoized forward and reverse-mode AD",
    package_dir={"": "src"},
    packages=find_packages("src"),
    python_requires=">=3.10",
    install_requires=[
        "numpy",
        "typing_extensions",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
)
