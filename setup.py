"""Setup script for the gh-hud package."""

from setuptools import find_packages, setup

setup(
    name="gh-hud",
    version="0.1.0",
    description="Live terminal dashboard for GitHub Actions runs, pull requests and compose services",
    packages=find_packages(include=["hud", "hud.*"]),
    python_requires=">=3.10",
    install_requires=[
        "pyyaml>=6.0",
        "textual>=0.47.0",
        "rich>=13.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "hypothesis>=6.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "gh-hud=hud.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
