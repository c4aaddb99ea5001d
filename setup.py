#!/usr/bin/env python3
"""
Setup script for mangapanels
============================
"""

from pathlib import Path
from setuptools import setup, find_packages

# Read the README
HERE = Path(__file__).parent
README = (HERE / "README.md").read_text(encoding='utf-8')

# Read the requirements
def read_requirements(filename):
    """Read requirements from a file"""
    req_file = HERE / filename
    if req_file.exists():
        return [line.strip() for line in req_file.read_text().splitlines()
                if line.strip() and not line.startswith("#")]
    return []

setup(
    name="mangapanels",
    version="1.0.0",
    description="Deterministic manga panel segmentation in right-to-left reading order",
    long_description=README,
    long_description_content_type="text/markdown",
    license="MIT",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Topic :: Multimedia :: Graphics",
        "Topic :: Scientific/Engineering :: Image Recognition",
    ],
    keywords="manga comics panel segmentation reading order computer vision",

    # Package layout
    package_dir={"": "src"},
    packages=find_packages(where="src"),

    # Requirements
    python_requires=">=3.9",
    install_requires=read_requirements("requirements.txt"),
    extras_require={
        "dev": [
            "pytest>=6.0",
            "pytest-cov",
            "black",
            "flake8",
            "mypy",
        ],
    },

    # Entry points
    entry_points={
        "console_scripts": [
            "mangapanels=mangapanels.__main__:main",
        ],
    },
)
