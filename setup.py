#!/usr/bin/env python3
"""Setup configuration for finger-picker package."""

from setuptools import setup, find_packages
from pathlib import Path

# Read long description from README
readme_path = Path(__file__).parent / "README.md"
long_description = readme_path.read_text() if readme_path.exists() else ""

setup(
    name="finger-picker",
    version="1.0.0",
    description="Multi-finger random picker: touch tracking and timed selection engine",
    long_description=long_description,
    long_description_content_type="text/markdown",
    license="MIT",

    package_dir={"": "src"},
    packages=find_packages(where="src"),

    python_requires=">=3.9",

    install_requires=[
        "numpy>=1.20.0",
        "scipy>=1.7.0",
        "toml>=0.10.0",
    ],

    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=3.0.0",
        ],
    },

    entry_points={
        "console_scripts": [
            "finger-picker=finger_picker.main:main",
        ],
    },

    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Games/Entertainment",
        "Topic :: Software Development :: User Interfaces",
    ],

    keywords="touch multitouch random picker finger chooser",
)
