"""Configuration management."""

from .settings import ClusterEndpoint, Settings
from .logging import setup_logging

__all__ = ["ClusterEndpoint", "Settings", "setup_logging"]
