# -*- coding: utf-8 -*-
"""Установка."""
from setuptools import find_packages, setup

# Основные зависимости клиента
install_requires = [
    "httpx==0.27.2",
    "pydantic==2.9.2",
    "pydantic-settings==2.11.0",  # Для ChannelConfig, TransportConfig, LoggerConfig
    "structlog==25.4.0",
]

extras_require = {
    "test": [
        "pytest>=8.0",
    ],
}

setup(
    name="dxlstreaming-client",
    version="1.0.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=install_requires,
    extras_require=extras_require,
    python_requires=">=3.10",
    entry_points={
        "console_scripts": [
            "dxlstreaming-cli=dxlstreaming.cli:main",
        ],
    },
)
