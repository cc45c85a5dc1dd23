#!/usr/bin/env python3
"""
Setup script for sockchat
"""

from setuptools import setup, find_packages

setup(
    name="sockchat",
    version="0.0.1",
    description="Minimal Socket.IO chat client",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "python-socketio[asyncio_client]==5.11.4",
        "click==8.1.7",
        "typer==0.12.3",
        "rich==13.9.2",
        "aioconsole==0.8.1",
        "PyYAML==6.0.1",
    ],
    extras_require={
        "test": [
            "pytest==8.4.2",
            "pytest-asyncio==1.2.0",
        ],
    },
    python_requires=">=3.8",
    entry_points={
        'console_scripts': [
            'sockchat=chat_client.chat_cli:main',
        ],
    },
)
