# SPDX-License-Identifier: LGPL-3.0-or-later
from setuptools import setup, find_packages

setup(
    name="winunattend",
    version="0.1.0",
    description="Build, validate and inject Windows autounattend.xml answer files",
    packages=find_packages(include=["winunattend", "winunattend.*"]),
    python_requires=">=3.9",
    install_requires=[l.strip() for l in open("requirements.txt", encoding="utf-8") if l.strip() and not l.startswith("#")],
    extras_require={"test": ["pytest"]},
    entry_points={"console_scripts": ["winunattend=winunattend.cli:main"]},
)
