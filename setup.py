#!/usr/bin/python3
# Setup file for gitplumb
# Copyright (C) 2008-2022 Jelmer Vernooĳ <jelmer@jelmer.uk>
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later

import os
import re

from setuptools import setup

with open(os.path.join(os.path.dirname(__file__), "gitplumb", "__init__.py")) as f:
    version_tuple = re.search(r"__version__ = \((.*)\)", f.read()).group(1)
    version = ".".join(part.strip() for part in version_tuple.split(","))

tests_require = ["pytest"]


setup(
    name="gitplumb",
    version=version,
    description="Git object model and SSH transport sessions",
    license="Apache-2.0 OR GPL-2.0-or-later",
    packages=["gitplumb"],
    package_data={"": ["py.typed"]},
    python_requires=">=3.9",
    install_requires=["paramiko>=2.9"],
    extras_require={"test": tests_require},
    classifiers=[
        "Development Status :: 3 - Alpha",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3",
        "Operating System :: POSIX",
        "Topic :: Software Development :: Version Control",
    ],
)
