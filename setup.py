# SPDX-FileCopyrightText: 2026 ShareVault contributors
# SPDX-License-Identifier: MIT

from setuptools import find_packages, setup

setup(
    name="sharevault",
    version="0.1.0",
    description="(t, n)-threshold secret sharing for file keys",
    author="ShareVault contributors",
    license="MIT",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.9",
    install_requires=[
        "click<9.0,>=8.1",
        "cryptography>=38.0.4",
        "PyYAML<7.0,>=6.0",
        "filelock>=3.13.0",
        "tqdm>=4.66.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0.0",
            "pytest-cov>=5.0.0",
            "pytest-timeout>=2.3.0",
            "hypothesis>=6.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "sharevault=sharevault.cli:main",
        ],
    },
)
