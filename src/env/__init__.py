# env package
# src/env/__init__.py
"""
YAML-backed runtime configuration.
"""

from __future__ import annotations

from .loader import load_environment
from .schema import AntiDetectionPreset, ClientProfile, EnvProfile, ServerProfile

__all__ = [
    "load_environment",
    "AntiDetectionPreset",
    "ClientProfile",
    "EnvProfile",
    "ServerProfile",
]
