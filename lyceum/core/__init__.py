"""Core server functionality for Lyceum."""

from .access import SettingsAccessChecker, TenantAccessChecker
from .exceptions import AccessDeniedError, ConfigurationError, LyceumError
from .server import KnowledgeServer
from .service import KnowledgeService

__all__ = [
    "KnowledgeServer",
    "KnowledgeService",
    "SettingsAccessChecker",
    "TenantAccessChecker",
    "LyceumError",
    "ConfigurationError",
    "AccessDeniedError",
]
