#!/usr/bin/env python3
"""
Setup script for the spec-converter package

Installs the conversion engine (converter) and its shared models,
configuration, exceptions and logging helpers (shared) from backend/.
"""

from setuptools import find_namespace_packages, setup

setup(
    name="spec-converter",
    version="0.1.0",
    description="Turns pasted or exported tabular data into Markdown specification documents",
    package_dir={"": "backend"},
    packages=find_namespace_packages(
        where="backend",
        include=["converter", "converter.*", "shared", "shared.*"],
        exclude=["*.tests", "*.tests.*"],
    ),
    python_requires=">=3.9",
    install_requires=[
        # 📋 Data Validation & Settings
        "pydantic>=2.5.0",
        "pydantic-settings>=2.1.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        # 🧪 Testing
        "test": [
            "pytest>=7.4.0",
        ],
    },
)
