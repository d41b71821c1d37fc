#!/usr/bin/env python3
"""Setup script for pmx - product manager co-pilot for your repository."""

from pathlib import Path
from setuptools import find_packages, setup


# Avoid importing the package during setup to prevent dependency import errors
version_ns = {}
version_file = Path(__file__).parent / "pmx" / "_version.py"
if version_file.exists():
    exec(version_file.read_text(encoding="utf-8"), version_ns)
PMX_VERSION = version_ns.get("PMX_VERSION", "0.0.0")

# Read the README file
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

# Read requirements
requirements_file = Path(__file__).parent / "requirements.txt"
requirements = []
if requirements_file.exists():
    requirements = [
        line.strip()
        for line in requirements_file.read_text(encoding="utf-8").splitlines()
        if line.strip() and not line.startswith("#")
    ]

setup(
    name="pmx",
    version=PMX_VERSION,
    description="pmx - product manager co-pilot that investigates a repository and drafts product docs",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="pmx Team",
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={
        # Development extras
        'dev': [
            'pytest>=7.0.0',
            'pytest-asyncio>=0.21.0',
            'pytest-cov>=4.0.0',
        ],
    },
    packages=find_packages(
        exclude=["tests", "tests.*", "examples", "examples.*", "build", "build.*"]
    ),
    entry_points={
        "console_scripts": [
            "pmx=pmx.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Documentation",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    keywords="ai agent llm product-management prd investigation openai ollama",
)
