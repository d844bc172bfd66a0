#!/usr/bin/env python3
"""
Setup script for PathDedup
"""

from setuptools import setup, find_packages
import sys

# Ensure Python 3.8+
if sys.version_info < (3, 8):
    sys.exit("Python 3.8 or higher is required")

# Read version from __init__.py
def get_version():
    with open("pathdedup/__init__.py", "r", encoding="utf-8") as f:
        for line in f:
            if line.startswith("__version__"):
                return line.split('"')[1]
    raise RuntimeError("Version not found")

# Read long description from README
def get_long_description():
    with open("README.md", "r", encoding="utf-8") as f:
        return f.read()

# Core requirements (minimal dependencies)
core_requirements = []

# Faster non-cryptographic digests (optional)
fast_requirements = [
    "xxhash>=3.0.0",
]

dev_requirements = [
    "pytest>=7.4.0",
    "pytest-cov>=4.1.0",
    "black>=23.7.0",
    "flake8>=6.0.0",
    "mypy>=1.5.0",
]

setup(
    name="pathdedup",
    version=get_version(),
    author="PathDedup Team",
    author_email="info@pathdedup.dev",
    description="Path-aware duplicate cleanup across mirrored storage volumes",
    long_description=get_long_description(),
    long_description_content_type="text/markdown",
    packages=find_packages(include=["pathdedup", "pathdedup.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: System :: Archiving",
        "Topic :: System :: Systems Administration",
        "Topic :: Utilities",
        "Environment :: Console",
    ],
    python_requires=">=3.8",
    install_requires=core_requirements,
    extras_require={
        "fast": fast_requirements,
        "dev": dev_requirements,
    },
    entry_points={
        "console_scripts": [
            "pathdedup=pathdedup.cli.main:main",
        ],
    },
    include_package_data=True,
    zip_safe=False,
    keywords="deduplication, duplicate-files, unraid, file-management, storage",
)
