#!/usr/bin/env python3
"""
Setup script for Mathemelody
"""

from setuptools import setup, find_packages

# Read the README for long description
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="mathemelody",
    version="1.0.0",
    description="Share grids of equations that play as music",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "Topic :: Multimedia :: Sound/Audio :: Sound Synthesis",
        "Topic :: Education",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.26.0",
        "scipy>=1.14.0,<2.0",
        "soundfile>=0.12.0",
        "sounddevice>=0.4.6",
        "sympy>=1.12",
        "typer[all]>=0.9.0",
        "rich>=13.0.0",
        "fastapi>=0.110.0",
        "uvicorn[standard]>=0.27.0",
        "pydantic[email]>=2.5.0",
        "databases[aiosqlite]>=0.9.0",
        "sqlalchemy>=2.0.0",
        "PyJWT>=2.8.0",
        "bcrypt>=4.0.0",
        "structlog>=23.1.0",
        "prometheus-client>=0.19.0",
        "pyyaml>=6.0",
        "httpx>=0.25.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
        ],
        "postgres": [
            "databases[asyncpg]>=0.9.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "mathemelody=mathemelody.cli:app",
        ],
    },
    include_package_data=True,
    keywords="music algorithmic-composition equations sequencer sympy fastapi",
)
