"""Setup script for TinyKNN."""
from setuptools import setup, find_packages

setup(
    name="tinyknn",
    version="0.1.0",
    description="Incremental, persistable k-nearest-neighbor classifier",
    packages=find_packages(include=["tinyknn", "tinyknn.*"]),
    package_dir={"": "."},
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.20",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
)
