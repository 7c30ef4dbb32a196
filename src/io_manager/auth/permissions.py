"""Permission catalog and resolver.

The catalog is a closed enumeration of ``module.action`` capabilities. A
user's effective permissions are the union of the permissions attached to
every role they hold; there is no hierarchy and there are no deny rules.
"""

from enum import Enum
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from io_manager.auth.models import (
    PermissionModel,
    UserModel,
    role_permissions,
    user_roles,
)


class Permission(str, Enum):
    VENDORS_CREATE = "vendors.create"
    VENDORS_READ = "vendors.read"
    VENDORS_UPDATE = "vendors.update"
    VENDORS_DELETE = "vendors.delete"
    VENDORS_EXPORT = "vendors.export"
    VENDORS_IMPORT = "vendors.import"

    PRODUCTS_CREATE = "products.create"
    PRODUCTS_READ = "products.read"
    PRODUCTS_UPDATE = "products.update"
    PRODUCTS_DELETE = "products.delete"
    PRODUCTS_EXPORT = "products.export"
    PRODUCTS_IMPORT = "products.import"

    IO_UNIVERSAL_CREATE = "io-universal.create"
    IO_UNIVERSAL_READ = "io-universal.read"
    IO_UNIVERSAL_UPDATE = "io-universal.update"
    IO_UNIVERSAL_DELETE = "io-universal.delete"
    IO_UNIVERSAL_EXPORT = "io-universal.export"
    IO_UNIVERSAL_IMPORT = "io-universal.import"

    IO_MAPPINGS_CREATE = "io-mappings.create"
    IO_MAPPINGS_READ = "io-mappings.read"
    IO_MAPPINGS_UPDATE = "io-mappings.update"
    IO_MAPPINGS_DELETE = "io-mappings.delete"
    IO_MAPPINGS_EXPORT = "io-mappings.export"
    IO_MAPPINGS_IMPORT = "io-mappings.import"

    USERS_CREATE = "users.create"
    USERS_READ = "users.read"
    USERS_UPDATE = "users.update"
    USERS_DELETE = "users.delete"

    ROLES_CREATE = "roles.create"
    ROLES_READ = "roles.read"
    ROLES_UPDATE = "roles.update"
    ROLES_DELETE = "roles.delete"

    AUDIT_LOGS_READ = "audit_logs.read"

    @property
    def module(self) -> str:
        return self.value.split(".", 1)[0]

    @property
    def action(self) -> str:
        return self.value.split(".", 1)[1]

    @property
    def description(self) -> str:
        label = self.module.replace("_", " ").replace("-", " ")
        return f"{self.action.capitalize()} {label}"

    @classmethod
    def lookup(cls, name: str) -> "Permission | None":
        try:
            return cls(name)
        except ValueError:
            return None


# Holding any permission in these modules grants the administrative shortcut
# on endpoints that opt into it (audit log listing, dashboard counts).
ADMIN_MODULES = frozenset({"users", "roles"})

ADMIN_PERMISSIONS = frozenset(p for p in Permission if p.module in ADMIN_MODULES)


def is_admin_permission(name: str) -> bool:
    """True if ``name`` is a catalogued permission of an administrative module."""
    permission = Permission.lookup(name)
    return permission is not None and permission in ADMIN_PERMISSIONS


def grants_admin(permissions: Iterable[str]) -> bool:
    return any(is_admin_permission(p) for p in permissions)


async def resolve_permissions(session: AsyncSession, user_id: int) -> frozenset[str]:
    """Union of permission names over all roles of an active user.

    Not cached, so a revoked permission takes effect on the next request.
    Users without roles (or inactive users) resolve to the empty set.
    """
    result = await session.execute(
        select(PermissionModel.permission_name)
        .distinct()
        .join(role_permissions, role_permissions.c.permission_id == PermissionModel.permission_id)
        .join(user_roles, user_roles.c.role_id == role_permissions.c.role_id)
        .join(UserModel, UserModel.user_id == user_roles.c.user_id)
        .where(UserModel.user_id == user_id, UserModel.is_active.is_(True))
    )
    return frozenset(result.scalars().all())
