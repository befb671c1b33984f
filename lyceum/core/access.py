"""Tenant access checks."""

from typing import Optional, Protocol, runtime_checkable

from ..config.logging import LoggerMixin
from ..config.settings import Settings


@runtime_checkable
class TenantAccessChecker(Protocol):
    """Answers whether a principal may act on a tenant's data."""

    async def has_access(self, principal_id: Optional[str], tenant_id: str, write: bool = False) -> bool:
        ...

    def is_admin(self, principal_id: Optional[str]) -> bool:
        ...


class SettingsAccessChecker(LoggerMixin):
    """Access checks driven by ``ADMIN_PRINCIPALS`` and ``TENANT_GRANTS``.

    Admins reach every tenant. Everyone may read the shared tenant, but
    writes to it need an explicit grant.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def is_admin(self, principal_id: Optional[str]) -> bool:
        return bool(principal_id) and principal_id in self.settings.ADMIN_PRINCIPALS

    async def has_access(
        self,
        principal_id: Optional[str],
        tenant_id: str,
        write: bool = False,
    ) -> bool:
        if self.is_admin(principal_id):
            return True
        if not write and tenant_id == self.settings.SHARED_TENANT_ID:
            return True
        if not principal_id:
            return False

        allowed = tenant_id in self.settings.TENANT_GRANTS.get(principal_id, [])
        if not allowed:
            self.logger.info("Tenant access refused", principal_id=principal_id, tenant_id=tenant_id)
        return allowed
