# src/app/__init__.py
"""
Application entrypoints for the relay.

Exposes:
- build_app: wire EnvProfile + components into an aiohttp Application
- serve: run the relay until interrupted
- main: command-line entry (`minebuddy-relay`)
"""

from __future__ import annotations

from .cli import main
from .runtime import build_app, serve

__all__ = [
    "build_app",
    "main",
    "serve",
]
