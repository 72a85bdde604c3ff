"""
Setup configuration for headspin-qoe.

Installs the package and registers its pytest plugin ('--headspin').
"""

from pathlib import Path

from setuptools import find_packages, setup

# Read the README for long description
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding="utf-8")

# Read version from constants.py
version = "0.3.0"
try:
    with open("headspin_qoe/constants.py") as f:
        for line in f:
            if line.startswith("HEADSPIN_QOE_VERSION"):
                version = line.split('"')[1]
                break
except Exception:
    pass  # Fall back to hardcoded version if constants.py is not readable

# Read requirements
requirements = []
with open("requirements.txt") as f:
    requirements = [line.strip() for line in f if line.strip() and not line.startswith("#")]

# Read dev requirements
dev_requirements = []
try:
    with open("requirements-dev.txt") as f:
        dev_requirements = [line.strip() for line in f if line.strip() and not line.startswith("#")]
except FileNotFoundError:
    pass

setup(
    name="headspin-qoe",
    version=version,
    description="Record pytest runs as HeadSpin capture sessions with QoE labels",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["headspin_qoe", "headspin_qoe.*"]),
    entry_points={
        "pytest11": [
            "headspin_qoe=headspin_qoe.plugin",
        ],
    },
    install_requires=requirements,
    extras_require={
        "dev": dev_requirements,
        "test": dev_requirements,
    },
    python_requires=">=3.10",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Framework :: Pytest",
        "Framework :: AsyncIO",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Testing",
    ],
    keywords="headspin qoe pytest device testing performance",
)
